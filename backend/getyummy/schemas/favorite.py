"""
Get Yummy Backend - Favorite Schemas
====================================
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from getyummy.schemas.recipe import RecipeResponse


class FavoriteCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    recipe_id: int = Field(alias="recipeId", ge=1)


class FavoriteResponse(BaseModel):
    id: int
    created_at: datetime
    recipe: RecipeResponse

    model_config = {"from_attributes": True}


class FavoriteCreatedResponse(BaseModel):
    message: str = Field(default="Recipe added to favorites")
    favorite: FavoriteResponse


class FavoriteListResponse(BaseModel):
    favorites: List[FavoriteResponse]


class FavoriteCheckResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_favorite: bool = Field(alias="isFavorite")
    favorite_id: Optional[int] = Field(default=None, alias="favoriteId")
