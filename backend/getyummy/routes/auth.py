"""
Get Yummy Backend - Authentication Route Handlers
=================================================

What:  /auth endpoints: register, login, refresh, logout, password reset,
       and the admin-only refresh-token housekeeping endpoints.
How:   Thin handlers over AuthService; these routes own the cookies.

Cookies (http-only, path "/", SameSite and Secure from settings):
    token          access JWT,  max-age 15 min
    refreshToken   refresh JWT, max-age 7 days
"""

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from getyummy.config import Settings
from getyummy.database import get_db_session
from getyummy.dependencies import (
    REFRESH_COOKIE,
    clear_auth_cookies,
    get_auth_service,
    get_settings,
    require_admin,
    set_access_cookie,
    set_refresh_cookie,
)
from getyummy.schemas.auth import (
    CleanupResponse,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    TokenStatsResponse,
)
from getyummy.schemas.common import ErrorResponse, MessageResponse
from getyummy.schemas.user import UserResponse
from getyummy.services.auth_service import AuthService
from getyummy.services.token_codec import AccessClaims

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "Email already registered", "model": ErrorResponse}},
    summary="Create an account",
)
async def register(
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> RegisterResponse:
    user = await auth.register(db, payload)
    return RegisterResponse(data=UserResponse.model_validate(user))


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Log in and receive access/refresh tokens",
)
async def login(
    payload: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
) -> LoginResponse:
    result = await auth.login(db, payload.email, payload.password)
    set_access_cookie(response, settings, result.access_token)
    set_refresh_cookie(response, settings, result.refresh_token)
    return LoginResponse(
        data=UserResponse.model_validate(result.user),
        access_token=result.access_token,
        refresh_token=result.refresh_token,
    )


@router.post(
    "/refresh",
    response_model=RefreshResponse,
    responses={401: {"description": "Refresh token missing, invalid or revoked", "model": ErrorResponse}},
    summary="Exchange the refresh cookie for a new access token",
)
async def refresh(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
) -> RefreshResponse:
    _, access_token = await auth.refresh(db, request.cookies.get(REFRESH_COOKIE))
    set_access_cookie(response, settings, access_token)
    return RefreshResponse(access_token=access_token)


@router.post("/logout", response_model=MessageResponse, summary="Log out and revoke the refresh token")
async def logout(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
) -> MessageResponse:
    await auth.logout(db, request.cookies.get(REFRESH_COOKIE))
    clear_auth_cookies(response, settings)
    return MessageResponse(message="Logged out")


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    responses={
        404: {"description": "No account with this email", "model": ErrorResponse},
        500: {"description": "Email could not be sent", "model": ErrorResponse},
    },
    summary="Email a password reset link",
)
async def forgot_password(
    payload: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await auth.request_password_reset(db, payload.email)
    return MessageResponse(message="A password reset link has been sent to your email")


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    responses={400: {"description": "Weak password or invalid/expired token", "model": ErrorResponse}},
    summary="Set a new password with a reset token",
)
async def reset_password(
    payload: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await auth.reset_password(db, payload.token, payload.new_password)
    return MessageResponse(message="Your password has been reset")


@router.post("/cleanup-tokens", response_model=CleanupResponse, summary="Delete expired/revoked refresh tokens")
async def cleanup_tokens(
    admin: AccessClaims = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> CleanupResponse:
    deleted = await auth.cleanup_tokens(db)
    return CleanupResponse(message=f"Deleted {deleted} refresh tokens", deleted=deleted)


@router.get("/token-stats", response_model=TokenStatsResponse, summary="Refresh-token counts")
async def token_stats(
    admin: AccessClaims = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> TokenStatsResponse:
    return await auth.get_token_stats(db)
