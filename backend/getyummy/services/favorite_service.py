"""
Get Yummy Backend - Favorite Service
====================================

What:  Add, remove, list and check a user's favorite recipes.
How:   Adding inserts directly and lets the (user_id, recipe_id) unique
       constraint reject duplicates; there is no check-then-insert window.
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from getyummy.database import is_unique_violation
from getyummy.exceptions import ConflictError, NotFoundError
from getyummy.models.favorite import Favorite
from getyummy.models.recipe import Recipe
from getyummy.services.user_service import user_service

logger = logging.getLogger(__name__)

FAVORITE_LOAD_OPTIONS = (
    selectinload(Favorite.recipe).selectinload(Recipe.owner),
    selectinload(Favorite.recipe).selectinload(Recipe.ingredients),
    selectinload(Favorite.recipe).selectinload(Recipe.steps),
    selectinload(Favorite.recipe).selectinload(Recipe.tags),
)


class FavoriteService:

    async def add_favorite(self, db: AsyncSession, user_id: int, recipe_id: int) -> Favorite:
        """
        Raises:
            NotFoundError: the recipe does not exist
            ConflictError: the recipe is already a favorite of this user
            UnauthorizedError: the caller's account was deleted
        """
        await user_service.ensure_account_exists(db, user_id)
        if await db.get(Recipe, recipe_id) is None:
            raise NotFoundError(resource="recipe", resource_id=str(recipe_id))

        favorite = Favorite(user_id=user_id, recipe_id=recipe_id)
        db.add(favorite)
        try:
            await db.flush()
        except IntegrityError as e:
            if not is_unique_violation(e):
                raise
            # The request session is rolled back by get_db_session
            raise ConflictError("This recipe is already in your favorites")

        logger.info("User %s added recipe %s to favorites", user_id, recipe_id)
        return await self._load(db, favorite.id)

    async def remove_favorite(self, db: AsyncSession, user_id: int, recipe_id: int) -> None:
        favorite = await self._find(db, user_id, recipe_id)
        if favorite is None:
            raise NotFoundError(resource="favorite", resource_id=str(recipe_id))
        await db.delete(favorite)
        await db.flush()
        logger.info("User %s removed recipe %s from favorites", user_id, recipe_id)

    async def list_favorites(self, db: AsyncSession, user_id: int) -> List[Favorite]:
        """Newest first."""
        result = await db.execute(
            select(Favorite)
            .options(*FAVORITE_LOAD_OPTIONS)
            .where(Favorite.user_id == user_id)
            .order_by(Favorite.created_at.desc(), Favorite.id.desc())
        )
        return list(result.scalars().all())

    async def check_favorite(self, db: AsyncSession, user_id: int, recipe_id: int) -> Optional[int]:
        """Returns the favorite's id, or None when the recipe is not a favorite."""
        favorite = await self._find(db, user_id, recipe_id)
        return favorite.id if favorite is not None else None

    async def _find(self, db: AsyncSession, user_id: int, recipe_id: int) -> Optional[Favorite]:
        result = await db.execute(
            select(Favorite).where(Favorite.user_id == user_id, Favorite.recipe_id == recipe_id)
        )
        return result.scalar_one_or_none()

    async def _load(self, db: AsyncSession, favorite_id: int) -> Favorite:
        result = await db.execute(
            select(Favorite)
            .options(*FAVORITE_LOAD_OPTIONS)
            .where(Favorite.id == favorite_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()


favorite_service = FavoriteService()
