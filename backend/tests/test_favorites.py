"""
Get Yummy Backend - Favorites Tests
===================================

What we test:
    ✅ add / check / list / remove through the service
    ✅ the (user, recipe) pair is unique: a second add is a 409
    ✅ favorites are per user and disappear with their recipe
    ✅ the /favorites routes require a logged-in user
"""

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from getyummy.exceptions import ConflictError, NotFoundError, UnauthorizedError
from getyummy.models.favorite import Favorite
from getyummy.schemas.recipe import RecipeWrite
from getyummy.services.favorite_service import favorite_service
from getyummy.services.recipe_service import recipe_service
from getyummy.services.token_codec import AccessClaims


@pytest_asyncio.fixture
async def alice(make_user):
    return await make_user()


@pytest_asyncio.fixture
async def bob(make_user):
    return await make_user(name="Bob", email="bob@example.com")


@pytest_asyncio.fixture
async def recipes(db_session, alice):
    claims = AccessClaims(user_id=alice.id, email=alice.email, is_admin=False)
    created = []
    for name in ("Tarte Tatin", "Crumble"):
        created.append(await recipe_service.create_recipe(
            db_session, RecipeWrite(name=name, ingredients=[{"name": "apple"}]), claims
        ))
    await db_session.commit()
    return created


# ══════════════════════════════════════════════════════════════════════════
# Service
# ══════════════════════════════════════════════════════════════════════════

class TestFavoriteService:

    @pytest.mark.asyncio
    async def test_add_and_check(self, db_session, bob, recipes):
        tarte = recipes[0]
        favorite = await favorite_service.add_favorite(db_session, bob.id, tarte.id)
        await db_session.commit()

        assert favorite.recipe.name == "Tarte Tatin"
        assert favorite.recipe.owner.name == "Alice"
        assert await favorite_service.check_favorite(db_session, bob.id, tarte.id) == favorite.id
        assert await favorite_service.check_favorite(db_session, bob.id, recipes[1].id) is None

    @pytest.mark.asyncio
    async def test_duplicate_is_conflict(self, db_session, bob, recipes):
        await favorite_service.add_favorite(db_session, bob.id, recipes[0].id)
        await db_session.commit()

        with pytest.raises(ConflictError, match="already in your favorites"):
            await favorite_service.add_favorite(db_session, bob.id, recipes[0].id)
        await db_session.rollback()

        count = (await db_session.execute(select(func.count(Favorite.id)))).scalar()
        assert count == 1

    @pytest.mark.asyncio
    async def test_unknown_recipe(self, db_session, bob):
        with pytest.raises(NotFoundError):
            await favorite_service.add_favorite(db_session, bob.id, 999)

    @pytest.mark.asyncio
    async def test_deleted_account_is_unauthorized_not_conflict(self, db_session, recipes):
        with pytest.raises(UnauthorizedError):
            await favorite_service.add_favorite(db_session, 9999, recipes[0].id)

    @pytest.mark.asyncio
    async def test_list_newest_first_and_per_user(self, db_session, alice, bob, recipes):
        await favorite_service.add_favorite(db_session, bob.id, recipes[0].id)
        await favorite_service.add_favorite(db_session, bob.id, recipes[1].id)
        await favorite_service.add_favorite(db_session, alice.id, recipes[0].id)
        await db_session.commit()

        names = [f.recipe.name for f in await favorite_service.list_favorites(db_session, bob.id)]
        assert names == ["Crumble", "Tarte Tatin"]
        assert len(await favorite_service.list_favorites(db_session, alice.id)) == 1

    @pytest.mark.asyncio
    async def test_remove(self, db_session, bob, recipes):
        await favorite_service.add_favorite(db_session, bob.id, recipes[0].id)
        await db_session.commit()

        await favorite_service.remove_favorite(db_session, bob.id, recipes[0].id)
        await db_session.commit()
        assert await favorite_service.check_favorite(db_session, bob.id, recipes[0].id) is None

        with pytest.raises(NotFoundError):
            await favorite_service.remove_favorite(db_session, bob.id, recipes[0].id)

    @pytest.mark.asyncio
    async def test_deleting_recipe_removes_favorites(self, db_session, alice, bob, recipes):
        await favorite_service.add_favorite(db_session, bob.id, recipes[0].id)
        await db_session.commit()

        owner = AccessClaims(user_id=alice.id, email=alice.email, is_admin=False)
        await recipe_service.delete_recipe(db_session, recipes[0].id, owner)
        await db_session.commit()

        assert await favorite_service.list_favorites(db_session, bob.id) == []


# ══════════════════════════════════════════════════════════════════════════
# Routes
# ══════════════════════════════════════════════════════════════════════════

class TestFavoriteRoutes:

    @pytest.mark.asyncio
    async def test_requires_login(self, client):
        assert (await client.get("/favorites")).status_code == 401
        assert (await client.post("/favorites", json={"recipeId": 1})).status_code == 401

    @pytest.mark.asyncio
    async def test_round_trip(self, client, bob, recipes, bearer):
        auth = bearer(bob)
        tarte = recipes[0]

        created = await client.post("/favorites", json={"recipeId": tarte.id}, headers=auth)
        assert created.status_code == 201
        body = created.json()
        assert body["message"] == "Recipe added to favorites"
        assert body["favorite"]["recipe"]["id"] == tarte.id

        check = (await client.get(f"/favorites/check/{tarte.id}", headers=auth)).json()
        assert check == {"isFavorite": True, "favoriteId": body["favorite"]["id"]}

        listed = (await client.get("/favorites", headers=auth)).json()
        assert [f["recipe"]["name"] for f in listed["favorites"]] == ["Tarte Tatin"]

        removed = await client.delete(f"/favorites/{tarte.id}", headers=auth)
        assert removed.json() == {"message": "Recipe removed from favorites"}

        check = (await client.get(f"/favorites/check/{tarte.id}", headers=auth)).json()
        assert check == {"isFavorite": False, "favoriteId": None}

    @pytest.mark.asyncio
    async def test_duplicate_is_409(self, client, bob, recipes, bearer):
        payload = {"recipeId": recipes[0].id}
        await client.post("/favorites", json=payload, headers=bearer(bob))
        response = await client.post("/favorites", json=payload, headers=bearer(bob))
        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    @pytest.mark.asyncio
    async def test_unknown_recipe_is_404(self, client, bob, bearer):
        response = await client.post("/favorites", json={"recipeId": 999}, headers=bearer(bob))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_remove_missing_is_404(self, client, bob, recipes, bearer):
        response = await client.delete(f"/favorites/{recipes[0].id}", headers=bearer(bob))
        assert response.status_code == 404
