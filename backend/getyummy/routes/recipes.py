"""
Get Yummy Backend - Recipe Route Handlers
=========================================

Reads are public and use the lenient policy (the detail view reports
`can_edit` for the viewer); every write requires a logged-in user, and the
service enforces owner-or-admin.

Route order matters: the literal paths (/my, /ingredients, /name/..,
/owner/..) are declared before /{recipe_id}.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from getyummy.database import get_db_session
from getyummy.dependencies import optional_user, require_user
from getyummy.schemas.common import ErrorResponse
from getyummy.schemas.recipe import RecipeDetailResponse, RecipeResponse, RecipeWrite
from getyummy.services.recipe_service import recipe_service
from getyummy.services.token_codec import AccessClaims

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recipes", tags=["Recipes"])

WRITE_ERRORS = {
    400: {"description": "Invalid document or child id", "model": ErrorResponse},
    403: {"description": "Not the owner and not an administrator", "model": ErrorResponse},
    404: {"description": "Recipe not found", "model": ErrorResponse},
    409: {"description": "Recipe name already taken", "model": ErrorResponse},
}


@router.get("", response_model=List[RecipeResponse], summary="List all recipes, newest first")
async def list_recipes(
    viewer: Optional[AccessClaims] = Depends(optional_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[RecipeResponse]:
    return _summaries(await recipe_service.list_recipes(db))


@router.get("/my", response_model=List[RecipeResponse], summary="Recipes owned by the caller")
async def my_recipes(
    user: AccessClaims = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[RecipeResponse]:
    return _summaries(await recipe_service.list_by_owner(db, user.user_id))


@router.get("/ingredients", response_model=List[str], summary="Distinct ingredient names")
async def ingredient_options(
    viewer: Optional[AccessClaims] = Depends(optional_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[str]:
    return await recipe_service.ingredient_options(db)


@router.get("/name/{name}", response_model=RecipeDetailResponse, summary="Find a recipe by exact name")
async def get_recipe_by_name(
    name: str,
    viewer: Optional[AccessClaims] = Depends(optional_user),
    db: AsyncSession = Depends(get_db_session),
) -> RecipeDetailResponse:
    recipe = await recipe_service.get_by_name(db, name)
    return _detail(recipe, viewer)


@router.get("/owner/{owner_id}", response_model=List[RecipeResponse], summary="Recipes of one user")
async def recipes_by_owner(
    owner_id: int,
    user: AccessClaims = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[RecipeResponse]:
    return _summaries(await recipe_service.list_by_owner(db, owner_id))


@router.get(
    "/{recipe_id}",
    response_model=RecipeDetailResponse,
    responses={404: {"description": "Recipe not found", "model": ErrorResponse}},
    summary="Get a recipe",
)
async def get_recipe(
    recipe_id: int,
    viewer: Optional[AccessClaims] = Depends(optional_user),
    db: AsyncSession = Depends(get_db_session),
) -> RecipeDetailResponse:
    recipe = await recipe_service.get_recipe(db, recipe_id)
    return _detail(recipe, viewer)


@router.post(
    "",
    response_model=RecipeResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: WRITE_ERRORS[409]},
    summary="Create a recipe",
)
async def create_recipe(
    payload: RecipeWrite,
    user: AccessClaims = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> RecipeResponse:
    return RecipeResponse.model_validate(await recipe_service.create_recipe(db, payload, user))


@router.put("/{recipe_id}", response_model=RecipeResponse, responses=WRITE_ERRORS, summary="Replace a recipe")
async def update_recipe(
    recipe_id: int,
    payload: RecipeWrite,
    user: AccessClaims = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> RecipeResponse:
    return RecipeResponse.model_validate(await recipe_service.update_recipe(db, recipe_id, payload, user))


@router.delete("/{recipe_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a recipe")
async def delete_recipe(
    recipe_id: int,
    user: AccessClaims = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await recipe_service.delete_recipe(db, recipe_id, user)


@router.post("/{recipe_id}/best", response_model=RecipeResponse, summary="Tag a recipe as best")
async def mark_best(
    recipe_id: int,
    user: AccessClaims = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> RecipeResponse:
    return RecipeResponse.model_validate(await recipe_service.set_best(db, recipe_id, user, best=True))


@router.delete("/{recipe_id}/best", response_model=RecipeResponse, summary="Remove the best tag")
async def unmark_best(
    recipe_id: int,
    user: AccessClaims = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> RecipeResponse:
    return RecipeResponse.model_validate(await recipe_service.set_best(db, recipe_id, user, best=False))


def _detail(recipe, viewer: Optional[AccessClaims]) -> RecipeDetailResponse:
    response = RecipeDetailResponse.model_validate(recipe)
    response.can_edit = recipe_service.can_edit(recipe, viewer)
    return response


def _summaries(recipes) -> List[RecipeResponse]:
    return [RecipeResponse.model_validate(recipe) for recipe in recipes]
