"""
Get Yummy Backend - Recipe Service
==================================

What:  Recipe reads, creation, full-document updates, deletion, and the
       "best" tag toggle.
How:   Every read eager-loads owner and children with selectinload (async
       sessions cannot lazy-load). Updates reconcile each child collection
       against the submitted one and write everything through the request
       session; get_db_session commits or rolls back as a unit.
Who:   /recipes routes and FavoriteService (existence checks).

Update workflow (PUT /recipes/{id}):
    load recipe + children ─▶ owner or admin? ─▶ name free (excluding self)?
          │ 404                 │ 403                 │ 409
          ▼
    reconcile ingredients/steps/tags ─▶ apply scalars + plans ─▶ flush ─▶ re-read
          │ 400 (unknown / duplicate child id)
"""

import logging
from typing import Callable, List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from getyummy.database import is_unique_violation
from getyummy.exceptions import ConflictError, ForbiddenError, NotFoundError
from getyummy.models.recipe import Ingredient, Recipe, Step, Tag
from getyummy.schemas.recipe import RECIPE_SCALAR_FIELDS, RecipeWrite
from getyummy.services.reconcile import ReconcilePlan, reconcile
from getyummy.services.token_codec import AccessClaims
from getyummy.services.user_service import user_service

logger = logging.getLogger(__name__)

BEST_TAG = "best"

INGREDIENT_FIELDS = ("name", "unit", "value")
STEP_FIELDS = ("description", "image")
TAG_FIELDS = ("value",)

RECIPE_LOAD_OPTIONS = (
    selectinload(Recipe.owner),
    selectinload(Recipe.ingredients),
    selectinload(Recipe.steps),
    selectinload(Recipe.tags),
)


def _copy_fields(source, target, fields: Sequence[str]) -> None:
    for name in fields:
        setattr(target, name, getattr(source, name))


def _apply_plan(
    collection: list,
    plan: ReconcilePlan,
    incoming: Sequence,
    build: Callable,
    fields: Sequence[str],
    ordered: bool = False,
) -> None:
    """
    Apply a reconciliation plan to a loaded child collection.

    With `ordered`, every surviving row (updated or created) gets its index
    in `incoming` as its position, so the stored order is the submitted one.
    """
    rows_by_item = {}
    # Removal from the collection deletes the row (delete-orphan cascade)
    for row in plan.to_delete:
        collection.remove(row)
    for row, item in plan.to_update:
        _copy_fields(item, row, fields)
        rows_by_item[id(item)] = row
    for item in plan.to_create:
        row = build(**{name: getattr(item, name) for name in fields})
        collection.append(row)
        rows_by_item[id(item)] = row

    if ordered:
        for position, item in enumerate(incoming):
            rows_by_item[id(item)].position = position


class RecipeService:
    """Stateless; every method receives the request's AsyncSession."""

    # ══════════════════════════════════════════════════════════════════════
    # Reads
    # ══════════════════════════════════════════════════════════════════════

    async def list_recipes(self, db: AsyncSession) -> List[Recipe]:
        result = await db.execute(
            select(Recipe).options(*RECIPE_LOAD_OPTIONS).order_by(Recipe.created_at.desc(), Recipe.id.desc())
        )
        return list(result.scalars().all())

    async def list_by_owner(self, db: AsyncSession, owner_id: int) -> List[Recipe]:
        result = await db.execute(
            select(Recipe)
            .options(*RECIPE_LOAD_OPTIONS)
            .where(Recipe.owner_id == owner_id)
            .order_by(Recipe.created_at.desc(), Recipe.id.desc())
        )
        return list(result.scalars().all())

    async def get_recipe(self, db: AsyncSession, recipe_id: int, refresh: bool = False) -> Recipe:
        """
        Raises:
            NotFoundError: no recipe with this id
        """
        query = select(Recipe).options(*RECIPE_LOAD_OPTIONS).where(Recipe.id == recipe_id)
        if refresh:
            # Reload collections already present in the identity map after a write
            query = query.execution_options(populate_existing=True)
        recipe = (await db.execute(query)).scalar_one_or_none()
        if recipe is None:
            raise NotFoundError(resource="recipe", resource_id=str(recipe_id))
        return recipe

    async def get_by_name(self, db: AsyncSession, name: str) -> Recipe:
        result = await db.execute(
            select(Recipe).options(*RECIPE_LOAD_OPTIONS).where(Recipe.name == name.strip())
        )
        recipe = result.scalar_one_or_none()
        if recipe is None:
            raise NotFoundError(resource="recipe", resource_id=name)
        return recipe

    async def ingredient_options(self, db: AsyncSession) -> List[str]:
        """Distinct ingredient names across all recipes, for autocomplete."""
        result = await db.execute(select(Ingredient.name).distinct().order_by(Ingredient.name))
        return [name for name in result.scalars().all()]

    @staticmethod
    def can_edit(recipe: Recipe, viewer: Optional[AccessClaims]) -> bool:
        if viewer is None:
            return False
        return viewer.is_admin or recipe.owner_id == viewer.user_id

    # ══════════════════════════════════════════════════════════════════════
    # Writes
    # ══════════════════════════════════════════════════════════════════════

    async def create_recipe(self, db: AsyncSession, payload: RecipeWrite, author: AccessClaims) -> Recipe:
        await user_service.ensure_account_exists(db, author.user_id)
        await self._ensure_name_available(db, payload.name)

        recipe = Recipe(owner_id=author.user_id)
        _copy_fields(payload, recipe, RECIPE_SCALAR_FIELDS)
        recipe.ingredients = [
            Ingredient(position=position, **{f: getattr(i, f) for f in INGREDIENT_FIELDS})
            for position, i in enumerate(payload.ingredients)
        ]
        recipe.steps = [
            Step(position=position, **{f: getattr(s, f) for f in STEP_FIELDS})
            for position, s in enumerate(payload.steps)
        ]
        recipe.tags = [Tag(value=t.value) for t in payload.tags]
        db.add(recipe)
        await self._flush_unique_name(db, payload.name)

        logger.info("Recipe %s created by user %s", recipe.id, author.user_id)
        return await self.get_recipe(db, recipe.id, refresh=True)

    async def update_recipe(
        self, db: AsyncSession, recipe_id: int, payload: RecipeWrite, editor: AccessClaims
    ) -> Recipe:
        """
        Replace a recipe with the submitted document.

        Child lists are complete: stored children missing from the payload
        are deleted. All plans are computed before any attribute changes, so
        a rejected child id leaves the session untouched.

        Raises:
            NotFoundError, ForbiddenError, ConflictError, ValidationError
        """
        recipe = await self.get_recipe(db, recipe_id)
        self._ensure_can_edit(recipe, editor)
        if payload.name != recipe.name:
            await self._ensure_name_available(db, payload.name, exclude_id=recipe.id)

        ingredient_plan = reconcile(recipe.ingredients, payload.ingredients, label="ingredient")
        step_plan = reconcile(recipe.steps, payload.steps, label="step")
        tag_plan = reconcile(recipe.tags, payload.tags, label="tag")

        _copy_fields(payload, recipe, RECIPE_SCALAR_FIELDS)
        _apply_plan(
            recipe.ingredients, ingredient_plan, payload.ingredients, Ingredient, INGREDIENT_FIELDS, ordered=True
        )
        _apply_plan(recipe.steps, step_plan, payload.steps, Step, STEP_FIELDS, ordered=True)
        _apply_plan(recipe.tags, tag_plan, payload.tags, Tag, TAG_FIELDS)
        await self._flush_unique_name(db, payload.name)

        logger.info(
            "Recipe %s updated by user %s (ingredients +%d ~%d -%d, steps +%d ~%d -%d, tags +%d ~%d -%d)",
            recipe.id, editor.user_id,
            len(ingredient_plan.to_create), len(ingredient_plan.to_update), len(ingredient_plan.to_delete),
            len(step_plan.to_create), len(step_plan.to_update), len(step_plan.to_delete),
            len(tag_plan.to_create), len(tag_plan.to_update), len(tag_plan.to_delete),
        )
        return await self.get_recipe(db, recipe.id, refresh=True)

    async def delete_recipe(self, db: AsyncSession, recipe_id: int, editor: AccessClaims) -> None:
        recipe = await self.get_recipe(db, recipe_id)
        self._ensure_can_edit(recipe, editor)
        await db.delete(recipe)
        await db.flush()
        logger.info("Recipe %s deleted by user %s", recipe_id, editor.user_id)

    async def set_best(self, db: AsyncSession, recipe_id: int, editor: AccessClaims, best: bool) -> Recipe:
        """Add or remove the `best` tag. Idempotent in both directions."""
        recipe = await self.get_recipe(db, recipe_id)
        self._ensure_can_edit(recipe, editor)

        current = [tag for tag in recipe.tags if tag.value == BEST_TAG]
        if best and not current:
            recipe.tags.append(Tag(value=BEST_TAG))
        elif not best:
            for tag in current:
                recipe.tags.remove(tag)
        await db.flush()
        return await self.get_recipe(db, recipe.id, refresh=True)

    # ── Helpers ───────────────────────────────────────────────────────────

    def _ensure_can_edit(self, recipe: Recipe, editor: AccessClaims) -> None:
        if not self.can_edit(recipe, editor):
            logger.info("User %s denied write access to recipe %s", editor.user_id, recipe.id)
            raise ForbiddenError("Only the recipe's owner or an administrator can modify it")

    async def _ensure_name_available(
        self, db: AsyncSession, name: str, exclude_id: Optional[int] = None
    ) -> None:
        query = select(func.count(Recipe.id)).where(Recipe.name == name)
        if exclude_id is not None:
            query = query.where(Recipe.id != exclude_id)
        if (await db.execute(query)).scalar():
            raise ConflictError(f"A recipe named '{name}' already exists")

    async def _flush_unique_name(self, db: AsyncSession, name: str) -> None:
        try:
            await db.flush()
        except IntegrityError as e:
            if not is_unique_violation(e):
                raise
            raise ConflictError(f"A recipe named '{name}' already exists")


recipe_service = RecipeService()
