"""
Get Yummy Backend - User Route Handlers
=======================================

    GET    /users              admin     all accounts (with is_admin)
    GET    /users/me           strict    the caller's profile
    GET    /users/{id}         strict    public profile
    PUT    /users/{id}         strict    self or admin
    DELETE /users/{id}         strict    self or admin
    POST   /users/{id}/admin   admin     promote to administrator
"""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from getyummy.database import get_db_session
from getyummy.dependencies import require_admin, require_user
from getyummy.schemas.common import ErrorResponse
from getyummy.schemas.user import UserEnvelope, UserProfileResponse, UserResponse, UserUpdate
from getyummy.services.token_codec import AccessClaims
from getyummy.services.user_service import user_service

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=List[UserProfileResponse], summary="List all users")
async def list_users(
    admin: AccessClaims = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> List[UserProfileResponse]:
    return [UserProfileResponse.model_validate(u) for u in await user_service.list_users(db)]


@router.get("/me", response_model=UserProfileResponse, summary="The caller's profile")
async def get_me(
    user: AccessClaims = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserProfileResponse:
    return UserProfileResponse.model_validate(await user_service.get_user(db, user.user_id))


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    responses={404: {"description": "User not found", "model": ErrorResponse}},
    summary="Get a user",
)
async def get_user(
    user_id: int,
    user: AccessClaims = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return UserResponse.model_validate(await user_service.get_user(db, user_id))


@router.put(
    "/{user_id}",
    response_model=UserEnvelope,
    responses={
        403: {"description": "Not your account", "model": ErrorResponse},
        409: {"description": "Email already registered", "model": ErrorResponse},
    },
    summary="Update a user's name or email",
)
async def update_user(
    user_id: int,
    payload: UserUpdate,
    user: AccessClaims = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserEnvelope:
    updated = await user_service.update_user(db, user_id, payload, user)
    return UserEnvelope(message="User updated", data=UserResponse.model_validate(updated))


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a user")
async def delete_user(
    user_id: int,
    user: AccessClaims = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await user_service.delete_user(db, user_id, user)


@router.post("/{user_id}/admin", response_model=UserProfileResponse, summary="Grant administrator rights")
async def promote_user(
    user_id: int,
    admin: AccessClaims = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserProfileResponse:
    return UserProfileResponse.model_validate(await user_service.set_admin(db, user_id, True))
