"""
Get Yummy Backend - Request Dependencies & Auth Policies
========================================================

What:  FastAPI dependencies for app-scoped services and the three per-route
       authentication policies, plus the auth cookie helpers.
How:   Services built in create_app() are read from `request.app.state`.
       Policies are plain dependencies a route opts into:

    require_user   (strict)   access token from the `token` cookie or an
                              `Authorization: Bearer` header, else 401
    optional_user  (lenient)  like strict; when the access token is missing
                              or invalid, silently refresh from the
                              `refreshToken` cookie and set a new `token`
                              cookie; otherwise continue anonymous (None)
    require_admin             strict + is_admin, else 403
"""

import logging
from typing import Optional

from fastapi import Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from getyummy.config import Settings
from getyummy.database import get_db_session
from getyummy.exceptions import ForbiddenError, InvalidTokenError, UnauthorizedError
from getyummy.services.auth_service import AuthService
from getyummy.services.image_service import ImageService
from getyummy.services.token_codec import AccessClaims, TokenCodec

logger = logging.getLogger(__name__)

ACCESS_COOKIE = "token"
REFRESH_COOKIE = "refreshToken"


# ── App-scoped services ───────────────────────────────────────────────────

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_codec(request: Request) -> TokenCodec:
    return request.app.state.token_codec


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_image_service(request: Request) -> ImageService:
    return request.app.state.image_service


# ── Cookies ───────────────────────────────────────────────────────────────

def set_access_cookie(response: Response, settings: Settings, access_token: str) -> None:
    response.set_cookie(
        ACCESS_COOKIE,
        access_token,
        max_age=settings.access_token_ttl_minutes * 60,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
        path="/",
    )


def set_refresh_cookie(response: Response, settings: Settings, refresh_token: str) -> None:
    response.set_cookie(
        REFRESH_COOKIE,
        refresh_token,
        max_age=settings.refresh_token_ttl_days * 24 * 3600,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
        path="/",
    )


def clear_auth_cookies(response: Response, settings: Settings) -> None:
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(
            name,
            path="/",
            httponly=True,
            secure=settings.cookie_secure,
            samesite=settings.cookie_samesite,
        )


def _access_token_from(request: Request) -> Optional[str]:
    token = request.cookies.get(ACCESS_COOKIE)
    if token:
        return token
    scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


# ── Policies ──────────────────────────────────────────────────────────────

async def require_user(
    request: Request,
    codec: TokenCodec = Depends(get_token_codec),
) -> AccessClaims:
    """
    Raises:
        UnauthorizedError: no access token on the request
        InvalidTokenError: token present but invalid or expired
    """
    token = _access_token_from(request)
    if not token:
        raise UnauthorizedError("Access token required")
    claims = codec.verify_access(token)
    request.state.user_id = claims.user_id
    return claims


async def optional_user(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
) -> Optional[AccessClaims]:
    token = _access_token_from(request)
    if token:
        try:
            claims = auth.codec.verify_access(token)
            request.state.user_id = claims.user_id
            return claims
        except InvalidTokenError as e:
            logger.debug("Lenient auth: access token rejected (%s)", e.message)

    refreshed = await auth.try_refresh(db, request.cookies.get(REFRESH_COOKIE))
    if refreshed is None:
        return None

    claims, access_token = refreshed
    set_access_cookie(response, settings, access_token)
    request.state.user_id = claims.user_id
    request.state.token_refreshed = True
    return claims


async def require_admin(user: AccessClaims = Depends(require_user)) -> AccessClaims:
    if not user.is_admin:
        logger.info("User %s denied access to an admin endpoint", user.user_id)
        raise ForbiddenError("Administrator rights required")
    return user
