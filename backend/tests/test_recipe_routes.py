"""
Get Yummy Backend - /recipes Route Tests
========================================

Public reads use the lenient policy: anonymous callers get data with
can_edit=false, and a caller holding only a refresh cookie is silently
re-authenticated. Writes need an access token.
"""

import pytest
import pytest_asyncio

from getyummy.schemas.recipe import RecipeWrite
from getyummy.services.recipe_service import recipe_service
from getyummy.services.token_codec import AccessClaims

TEST_PASSWORD = "Sup3r$ecret"

DOCUMENT = {
    "name": "Tarte Tatin",
    "baking_time_value": 45,
    "baking_time_unit": "min",
    "ingredients": [
        {"name": "apple", "unit": "pcs", "value": 6},
        {"name": "sugar", "unit": "g", "value": 150},
    ],
    "steps": [{"description": "Caramelize"}, {"description": "Bake"}],
    "tags": [{"value": "dessert"}],
}


@pytest_asyncio.fixture
async def alice(make_user):
    return await make_user()


@pytest_asyncio.fixture
async def bob(make_user):
    return await make_user(name="Bob", email="bob@example.com")


@pytest_asyncio.fixture
async def recipe(db_session, alice):
    """A committed recipe owned by alice."""
    claims = AccessClaims(user_id=alice.id, email=alice.email, is_admin=False)
    created = await recipe_service.create_recipe(db_session, RecipeWrite(**DOCUMENT), claims)
    await db_session.commit()
    return created


# ══════════════════════════════════════════════════════════════════════════
# Public Reads
# ══════════════════════════════════════════════════════════════════════════

class TestRecipeReads:

    @pytest.mark.asyncio
    async def test_list_is_public(self, client, recipe):
        response = await client.get("/recipes")
        assert response.status_code == 200
        body = response.json()
        assert [r["name"] for r in body] == ["Tarte Tatin"]
        assert body[0]["owner"]["name"] == "Alice"
        assert "password_hash" not in body[0]["owner"]

    @pytest.mark.asyncio
    async def test_detail_anonymous(self, client, recipe):
        response = await client.get(f"/recipes/{recipe.id}")
        assert response.status_code == 200
        body = response.json()
        assert body["can_edit"] is False
        assert [i["value"] for i in body["ingredients"]] == ["6", "150"]
        assert [s["description"] for s in body["steps"]] == ["Caramelize", "Bake"]

    @pytest.mark.asyncio
    async def test_detail_can_edit_per_viewer(self, client, recipe, alice, bob, make_user, bearer):
        admin = await make_user(name="Root", email="root@example.com", is_admin=True)
        url = f"/recipes/{recipe.id}"
        assert (await client.get(url, headers=bearer(alice))).json()["can_edit"] is True
        assert (await client.get(url, headers=bearer(bob))).json()["can_edit"] is False
        assert (await client.get(url, headers=bearer(admin))).json()["can_edit"] is True

    @pytest.mark.asyncio
    async def test_detail_missing(self, client):
        response = await client.get("/recipes/999")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_non_numeric_id(self, client):
        response = await client.get("/recipes/abc")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_by_name(self, client, recipe):
        response = await client.get("/recipes/name/Tarte Tatin")
        assert response.status_code == 200
        assert response.json()["id"] == recipe.id
        assert (await client.get("/recipes/name/Quiche")).status_code == 404

    @pytest.mark.asyncio
    async def test_ingredient_options(self, client, recipe):
        response = await client.get("/recipes/ingredients")
        assert response.status_code == 200
        assert response.json() == ["apple", "sugar"]


class TestLenientAuth:

    @pytest.mark.asyncio
    async def test_refresh_cookie_alone_reauthenticates(self, client, recipe, alice):
        login = await client.post("/auth/login", json={"email": alice.email, "password": TEST_PASSWORD})
        refresh_token = login.json()["refreshToken"]
        client.cookies.clear()

        response = await client.get(
            f"/recipes/{recipe.id}", headers={"Cookie": f"refreshToken={refresh_token}"}
        )

        assert response.status_code == 200
        assert response.json()["can_edit"] is True
        assert any(h.startswith("token=") for h in response.headers.get_list("set-cookie"))

    @pytest.mark.asyncio
    async def test_invalid_access_token_falls_back_to_refresh(self, client, recipe, alice):
        login = await client.post("/auth/login", json={"email": alice.email, "password": TEST_PASSWORD})
        refresh_token = login.json()["refreshToken"]
        client.cookies.clear()

        response = await client.get(
            f"/recipes/{recipe.id}",
            headers={"Cookie": f"token=garbage; refreshToken={refresh_token}"},
        )
        assert response.json()["can_edit"] is True

    @pytest.mark.asyncio
    async def test_bad_credentials_read_as_anonymous(self, client, recipe):
        response = await client.get(
            f"/recipes/{recipe.id}",
            headers={"Cookie": "token=garbage; refreshToken=garbage"},
        )
        assert response.status_code == 200
        assert response.json()["can_edit"] is False
        assert response.headers.get_list("set-cookie") == []


# ══════════════════════════════════════════════════════════════════════════
# Authenticated Reads & Writes
# ══════════════════════════════════════════════════════════════════════════

class TestRecipeWrites:

    @pytest.mark.asyncio
    async def test_create_requires_login(self, client):
        response = await client.post("/recipes", json=DOCUMENT)
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_create(self, client, alice, bearer):
        response = await client.post("/recipes", json=DOCUMENT, headers=bearer(alice))
        assert response.status_code == 201
        body = response.json()
        assert body["owner_id"] == alice.id
        assert len(body["ingredients"]) == 2

        mine = await client.get("/recipes/my", headers=bearer(alice))
        assert [r["id"] for r in mine.json()] == [body["id"]]

    @pytest.mark.asyncio
    async def test_create_duplicate_name(self, client, recipe, bob, bearer):
        response = await client.post("/recipes", json=DOCUMENT, headers=bearer(bob))
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_create_blank_name(self, client, alice, bearer):
        response = await client.post("/recipes", json={**DOCUMENT, "name": "   "}, headers=bearer(alice))
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_update_reconciles(self, client, recipe, alice, bearer):
        kept = recipe.ingredients[0]
        document = {
            **DOCUMENT,
            "ingredients": [
                {"id": kept.id, "name": "apple", "unit": "pcs", "value": 8},
                {"name": "butter", "unit": "g", "value": 50},
            ],
        }
        response = await client.put(f"/recipes/{recipe.id}", json=document, headers=bearer(alice))

        assert response.status_code == 200
        ingredients = response.json()["ingredients"]
        assert [(i["name"], i["value"]) for i in ingredients] == [("apple", "8"), ("butter", "50")]
        assert ingredients[0]["id"] == kept.id

    @pytest.mark.asyncio
    async def test_update_unknown_child(self, client, recipe, alice, bearer):
        document = {**DOCUMENT, "steps": [{"id": 4242, "description": "x"}]}
        response = await client.put(f"/recipes/{recipe.id}", json=document, headers=bearer(alice))
        assert response.status_code == 400
        assert response.json()["details"]["id"] == 4242

        detail = (await client.get(f"/recipes/{recipe.id}")).json()
        assert [s["description"] for s in detail["steps"]] == ["Caramelize", "Bake"]

    @pytest.mark.asyncio
    async def test_update_by_other_user(self, client, recipe, bob, bearer):
        response = await client.put(f"/recipes/{recipe.id}", json=DOCUMENT, headers=bearer(bob))
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_delete(self, client, recipe, alice, bob, bearer):
        assert (await client.delete(f"/recipes/{recipe.id}", headers=bearer(bob))).status_code == 403
        assert (await client.delete(f"/recipes/{recipe.id}", headers=bearer(alice))).status_code == 204
        assert (await client.get(f"/recipes/{recipe.id}")).status_code == 404

    @pytest.mark.asyncio
    async def test_best_tag(self, client, recipe, alice, bearer):
        url = f"/recipes/{recipe.id}/best"
        tagged = await client.post(url, headers=bearer(alice))
        assert tagged.status_code == 200
        assert [t["value"] for t in tagged.json()["tags"]] == ["dessert", "best"]

        untagged = await client.delete(url, headers=bearer(alice))
        assert [t["value"] for t in untagged.json()["tags"]] == ["dessert"]

    @pytest.mark.asyncio
    async def test_owner_listing_requires_login(self, client, recipe, alice, bob, bearer):
        assert (await client.get(f"/recipes/owner/{alice.id}")).status_code == 401
        response = await client.get(f"/recipes/owner/{alice.id}", headers=bearer(bob))
        assert [r["id"] for r in response.json()] == [recipe.id]

    @pytest.mark.asyncio
    async def test_my_requires_login(self, client):
        assert (await client.get("/recipes/my")).status_code == 401
