"""
Get Yummy Backend - RecipeService Unit Tests
============================================

What we test:
    ✅ create: stores the document with its children, unique names
    ✅ update: child lists reconciled by id (create / update / delete)
    ✅ update: ingredients and steps keep the submitted order
    ✅ update: unknown child ids rejected before anything changes
    ✅ owner-or-admin enforcement on update, delete and the best tag
    ✅ reads: by id, by name, ingredient options, per owner
"""

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from getyummy.exceptions import ConflictError, ForbiddenError, NotFoundError, UnauthorizedError, ValidationError
from getyummy.models.recipe import Ingredient, Recipe, Step, Tag
from getyummy.schemas.recipe import RecipeWrite
from getyummy.services.recipe_service import recipe_service
from getyummy.services.token_codec import AccessClaims


def claims_for(user) -> AccessClaims:
    return AccessClaims(user_id=user.id, email=user.email, is_admin=user.is_admin)


def tarte(**overrides) -> RecipeWrite:
    document = {
        "name": "Tarte Tatin",
        "preparation_time_value": 20,
        "preparation_time_unit": "min",
        "number_of_persons": 6,
        "ingredients": [
            {"name": "apple", "unit": "pcs", "value": 6},
            {"name": "sugar", "unit": "g", "value": "150"},
        ],
        "steps": [{"description": "Caramelize the sugar"}, {"description": "Add the apples"}],
        "tags": [{"value": "dessert"}],
    }
    document.update(overrides)
    return RecipeWrite(**document)


async def _count(db, model) -> int:
    return (await db.execute(select(func.count(model.id)))).scalar()


@pytest_asyncio.fixture
async def owner(make_user):
    return await make_user()


@pytest_asyncio.fixture
async def stranger(make_user):
    return await make_user(name="Mallory", email="mallory@example.com")


@pytest_asyncio.fixture
async def admin(make_user):
    return await make_user(name="Root", email="root@example.com", is_admin=True)


async def _create(db_session, user, **overrides) -> Recipe:
    recipe = await recipe_service.create_recipe(db_session, tarte(**overrides), claims_for(user))
    await db_session.commit()
    return recipe


# ══════════════════════════════════════════════════════════════════════════
# Create
# ══════════════════════════════════════════════════════════════════════════

class TestCreateRecipe:

    @pytest.mark.asyncio
    async def test_create_with_children(self, db_session, owner):
        recipe = await _create(db_session, owner)

        assert recipe.owner_id == owner.id
        assert recipe.owner.name == "Alice"
        assert [i.name for i in recipe.ingredients] == ["apple", "sugar"]
        assert recipe.ingredients[0].value == "6"
        assert [s.description for s in recipe.steps] == ["Caramelize the sugar", "Add the apples"]
        assert [t.value for t in recipe.tags] == ["dessert"]

    @pytest.mark.asyncio
    async def test_child_ids_ignored_on_create(self, db_session, owner):
        recipe = await _create(db_session, owner, ingredients=[{"id": 999, "name": "flour"}])
        assert recipe.ingredients[0].id != 999

    @pytest.mark.asyncio
    async def test_duplicate_name(self, db_session, owner, stranger):
        await _create(db_session, owner)
        with pytest.raises(ConflictError, match="Tarte Tatin"):
            await recipe_service.create_recipe(db_session, tarte(), claims_for(stranger))

    @pytest.mark.asyncio
    async def test_deleted_account_cannot_create(self, db_session):
        ghost = AccessClaims(user_id=9999, email="ghost@example.com", is_admin=False)
        with pytest.raises(UnauthorizedError):
            await recipe_service.create_recipe(db_session, tarte(name="Unique name"), ghost)
        assert await _count(db_session, Recipe) == 0


# ══════════════════════════════════════════════════════════════════════════
# Update
# ══════════════════════════════════════════════════════════════════════════

class TestUpdateRecipe:

    @pytest.mark.asyncio
    async def test_reconciles_children_by_id(self, db_session, owner):
        recipe = await _create(db_session, owner)
        apple = recipe.ingredients[0]

        updated = await recipe_service.update_recipe(
            db_session,
            recipe.id,
            tarte(ingredients=[
                {"id": apple.id, "name": "apple", "unit": "pcs", "value": 8},
                {"name": "butter", "unit": "g", "value": 50},
            ]),
            claims_for(owner),
        )
        await db_session.commit()

        assert [(i.name, i.value) for i in updated.ingredients] == [("apple", "8"), ("butter", "50")]
        assert updated.ingredients[0].id == apple.id
        assert await _count(db_session, Ingredient) == 2

    @pytest.mark.asyncio
    async def test_scalars_replaced(self, db_session, owner):
        recipe = await _create(db_session, owner)
        steps = [{"id": s.id, "description": s.description} for s in recipe.steps]
        tags = [{"id": t.id, "value": t.value} for t in recipe.tags]

        updated = await recipe_service.update_recipe(
            db_session,
            recipe.id,
            tarte(name="Tarte Tatin Deluxe", number_of_persons=8, thermostat="7",
                  steps=steps, tags=tags),
            claims_for(owner),
        )
        assert updated.name == "Tarte Tatin Deluxe"
        assert updated.number_of_persons == 8
        assert updated.thermostat == "7"
        assert updated.preparation_time_value == 20

    @pytest.mark.asyncio
    async def test_step_inserted_in_the_middle_keeps_its_place(self, db_session, owner):
        recipe = await _create(db_session, owner)
        first, last = recipe.steps

        updated = await recipe_service.update_recipe(
            db_session,
            recipe.id,
            tarte(steps=[
                {"id": first.id, "description": first.description},
                {"description": "Peel and quarter the apples"},
                {"id": last.id, "description": last.description},
            ]),
            claims_for(owner),
        )
        await db_session.commit()

        assert [s.description for s in updated.steps] == [
            "Caramelize the sugar",
            "Peel and quarter the apples",
            "Add the apples",
        ]
        assert [s.position for s in updated.steps] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_reordered_children_are_stored_in_submitted_order(self, db_session, owner):
        recipe = await _create(db_session, owner)
        first, last = recipe.steps
        apple, sugar = recipe.ingredients

        updated = await recipe_service.update_recipe(
            db_session,
            recipe.id,
            tarte(
                steps=[
                    {"id": last.id, "description": last.description},
                    {"id": first.id, "description": first.description},
                ],
                ingredients=[
                    {"id": sugar.id, "name": "sugar", "unit": "g", "value": "150"},
                    {"id": apple.id, "name": "apple", "unit": "pcs", "value": 6},
                ],
            ),
            claims_for(owner),
        )
        await db_session.commit()

        assert [s.id for s in updated.steps] == [last.id, first.id]
        assert [i.name for i in updated.ingredients] == ["sugar", "apple"]

        reread = await recipe_service.get_recipe(db_session, recipe.id, refresh=True)
        assert [s.description for s in reread.steps] == ["Add the apples", "Caramelize the sugar"]

    @pytest.mark.asyncio
    async def test_empty_lists_delete_children(self, db_session, owner):
        recipe = await _create(db_session, owner)
        await recipe_service.update_recipe(
            db_session, recipe.id, tarte(ingredients=[], steps=[], tags=[]), claims_for(owner)
        )
        await db_session.commit()

        for model in (Ingredient, Step, Tag):
            assert await _count(db_session, model) == 0

    @pytest.mark.asyncio
    async def test_unknown_child_id_changes_nothing(self, db_session, owner):
        recipe = await _create(db_session, owner)

        with pytest.raises(ValidationError, match="Unknown step id 12345"):
            await recipe_service.update_recipe(
                db_session,
                recipe.id,
                tarte(name="Renamed", steps=[{"id": 12345, "description": "x"}]),
                claims_for(owner),
            )
        assert recipe.name == "Tarte Tatin"
        assert len(recipe.steps) == 2

    @pytest.mark.asyncio
    async def test_duplicate_child_id(self, db_session, owner):
        recipe = await _create(db_session, owner)
        tag_id = recipe.tags[0].id
        with pytest.raises(ValidationError, match="Duplicate tag id"):
            await recipe_service.update_recipe(
                db_session,
                recipe.id,
                tarte(tags=[{"id": tag_id, "value": "a"}, {"id": tag_id, "value": "b"}]),
                claims_for(owner),
            )

    @pytest.mark.asyncio
    async def test_child_id_of_another_recipe(self, db_session, owner):
        first = await _create(db_session, owner)
        second = await _create(db_session, owner, name="Crumble")
        foreign_id = first.ingredients[0].id

        with pytest.raises(ValidationError):
            await recipe_service.update_recipe(
                db_session,
                second.id,
                tarte(name="Crumble", ingredients=[{"id": foreign_id, "name": "stolen"}]),
                claims_for(owner),
            )

    @pytest.mark.asyncio
    async def test_rename_onto_existing_name(self, db_session, owner):
        await _create(db_session, owner, name="Crumble")
        recipe = await _create(db_session, owner)
        with pytest.raises(ConflictError):
            await recipe_service.update_recipe(
                db_session, recipe.id, tarte(name="Crumble"), claims_for(owner)
            )

    @pytest.mark.asyncio
    async def test_stranger_forbidden(self, db_session, owner, stranger):
        recipe = await _create(db_session, owner)
        with pytest.raises(ForbiddenError):
            await recipe_service.update_recipe(db_session, recipe.id, tarte(), claims_for(stranger))

    @pytest.mark.asyncio
    async def test_admin_allowed(self, db_session, owner, admin):
        recipe = await _create(db_session, owner)
        updated = await recipe_service.update_recipe(
            db_session, recipe.id, tarte(link="https://example.com"), claims_for(admin)
        )
        assert updated.link == "https://example.com"
        assert updated.owner_id == owner.id

    @pytest.mark.asyncio
    async def test_missing_recipe(self, db_session, owner):
        with pytest.raises(NotFoundError):
            await recipe_service.update_recipe(db_session, 404, tarte(), claims_for(owner))


# ══════════════════════════════════════════════════════════════════════════
# Delete / Best Tag
# ══════════════════════════════════════════════════════════════════════════

class TestDeleteAndBest:

    @pytest.mark.asyncio
    async def test_delete_cascades_children(self, db_session, owner):
        recipe = await _create(db_session, owner)
        await recipe_service.delete_recipe(db_session, recipe.id, claims_for(owner))
        await db_session.commit()

        for model in (Recipe, Ingredient, Step, Tag):
            assert await _count(db_session, model) == 0

    @pytest.mark.asyncio
    async def test_delete_by_stranger(self, db_session, owner, stranger):
        recipe = await _create(db_session, owner)
        with pytest.raises(ForbiddenError):
            await recipe_service.delete_recipe(db_session, recipe.id, claims_for(stranger))

    @pytest.mark.asyncio
    async def test_best_tag_is_idempotent(self, db_session, owner):
        recipe = await _create(db_session, owner)

        await recipe_service.set_best(db_session, recipe.id, claims_for(owner), best=True)
        tagged = await recipe_service.set_best(db_session, recipe.id, claims_for(owner), best=True)
        assert [t.value for t in tagged.tags] == ["dessert", "best"]

        untagged = await recipe_service.set_best(db_session, recipe.id, claims_for(owner), best=False)
        assert [t.value for t in untagged.tags] == ["dessert"]
        untagged = await recipe_service.set_best(db_session, recipe.id, claims_for(owner), best=False)
        assert [t.value for t in untagged.tags] == ["dessert"]

    @pytest.mark.asyncio
    async def test_best_by_stranger(self, db_session, owner, stranger):
        recipe = await _create(db_session, owner)
        with pytest.raises(ForbiddenError):
            await recipe_service.set_best(db_session, recipe.id, claims_for(stranger), best=True)


# ══════════════════════════════════════════════════════════════════════════
# Reads
# ══════════════════════════════════════════════════════════════════════════

class TestReads:

    @pytest.mark.asyncio
    async def test_get_by_name(self, db_session, owner):
        recipe = await _create(db_session, owner)
        assert (await recipe_service.get_by_name(db_session, " Tarte Tatin ")).id == recipe.id
        with pytest.raises(NotFoundError):
            await recipe_service.get_by_name(db_session, "Quiche")

    @pytest.mark.asyncio
    async def test_list_newest_first(self, db_session, owner, stranger):
        first = await _create(db_session, owner)
        second = await _create(db_session, stranger, name="Crumble")

        assert [r.id for r in await recipe_service.list_recipes(db_session)] == [second.id, first.id]
        assert [r.id for r in await recipe_service.list_by_owner(db_session, owner.id)] == [first.id]

    @pytest.mark.asyncio
    async def test_ingredient_options_distinct_and_sorted(self, db_session, owner):
        await _create(db_session, owner)
        await _create(db_session, owner, name="Crumble", ingredients=[
            {"name": "flour"}, {"name": "apple"}, {"name": "butter"},
        ])
        assert await recipe_service.ingredient_options(db_session) == ["apple", "butter", "flour", "sugar"]

    def test_can_edit(self):
        recipe = Recipe(name="x", owner_id=1)
        assert recipe_service.can_edit(recipe, None) is False
        assert recipe_service.can_edit(recipe, AccessClaims(1, "a@x", False)) is True
        assert recipe_service.can_edit(recipe, AccessClaims(2, "b@x", False)) is False
        assert recipe_service.can_edit(recipe, AccessClaims(2, "b@x", True)) is True
