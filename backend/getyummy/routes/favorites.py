"""
Get Yummy Backend - Favorite Route Handlers
===========================================

All endpoints act on the caller's own favorites and require a logged-in user.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from getyummy.database import get_db_session
from getyummy.dependencies import require_user
from getyummy.schemas.common import ErrorResponse, MessageResponse
from getyummy.schemas.favorite import (
    FavoriteCheckResponse,
    FavoriteCreate,
    FavoriteCreatedResponse,
    FavoriteListResponse,
    FavoriteResponse,
)
from getyummy.services.favorite_service import favorite_service
from getyummy.services.token_codec import AccessClaims

router = APIRouter(prefix="/favorites", tags=["Favorites"])


@router.post(
    "",
    response_model=FavoriteCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"description": "Recipe not found", "model": ErrorResponse},
        409: {"description": "Already a favorite", "model": ErrorResponse},
    },
    summary="Add a recipe to the caller's favorites",
)
async def add_favorite(
    payload: FavoriteCreate,
    user: AccessClaims = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> FavoriteCreatedResponse:
    favorite = await favorite_service.add_favorite(db, user.user_id, payload.recipe_id)
    return FavoriteCreatedResponse(favorite=FavoriteResponse.model_validate(favorite))


@router.get("", response_model=FavoriteListResponse, summary="The caller's favorites, newest first")
async def list_favorites(
    user: AccessClaims = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> FavoriteListResponse:
    favorites = await favorite_service.list_favorites(db, user.user_id)
    return FavoriteListResponse(favorites=[FavoriteResponse.model_validate(f) for f in favorites])


@router.get("/check/{recipe_id}", response_model=FavoriteCheckResponse, summary="Is this recipe a favorite?")
async def check_favorite(
    recipe_id: int,
    user: AccessClaims = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> FavoriteCheckResponse:
    favorite_id = await favorite_service.check_favorite(db, user.user_id, recipe_id)
    return FavoriteCheckResponse(is_favorite=favorite_id is not None, favorite_id=favorite_id)


@router.delete(
    "/{recipe_id}",
    response_model=MessageResponse,
    responses={404: {"description": "Not a favorite", "model": ErrorResponse}},
    summary="Remove a recipe from the caller's favorites",
)
async def remove_favorite(
    recipe_id: int,
    user: AccessClaims = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await favorite_service.remove_favorite(db, user.user_id, recipe_id)
    return MessageResponse(message="Recipe removed from favorites")
