"""
HTTP gateway tests.

Purpose
-------
Exercise the FastAPI app end to end (lifespan, pipeline, services, error
rendering) over an in-memory database.

Test Coverage
-------------
- Public registration and login
- Authentication failures render 401 with the denial reason
- Admin, service and self callers on the economy endpoints
- Error body shape and Cache-Control header
- Non-MVP endpoints answer 501 after authorization
"""

from datetime import timedelta

import pytest

from src.api.app import CACHE_CONTROL
from src.core.auth.claims import ClaimsDecoder
from src.core.auth.guard import (
    HIGH_PRIVILEGE_REQUIRED,
    INVALID_CREDENTIAL,
    NOT_SELF,
    TOKEN_EXPIRED,
)
from src.core.config.config import Config

pytestmark = [pytest.mark.asyncio, pytest.mark.database]

PREFIX = Config.GATEWAY_PREFIX


async def _register(client, name="alice", password="pw"):
    response = await client.post(
        f"{PREFIX}/users",
        json={"name": name, "email": f"{name}@example.com", "password": password},
    )
    assert response.status_code == 200, response.text
    return response.json()


async def _create_item(client, bearer, **fields):
    body = {"name": "Sword", "type": 1, "image_id": "img-sword", "coins_price": 100}
    body.update(fields)
    response = await client.post(
        f"{PREFIX}/store_items", json=body, headers=bearer(is_admin=True)
    )
    assert response.status_code == 200, response.text
    return response.json()


# ============================================================================
# PUBLIC ENDPOINTS
# ============================================================================


class TestRegistrationAndLogin:
    async def test_register_hides_password(self, client):
        user = await _register(client)

        assert user["name"] == "alice"
        assert user["coins"] == 0
        assert "password" not in user

    async def test_duplicate_registration(self, client):
        await _register(client)

        response = await client.post(
            f"{PREFIX}/users",
            json={"name": "alice", "email": "x@example.com", "password": "pw"},
        )

        assert response.status_code == 400
        assert response.json() == {
            "error": {
                "code": "INVALID_ARGUMENT",
                "message": "User with such name already exists",
            }
        }

    async def test_login_token_authorizes_own_profile(self, client):
        user = await _register(client, password="s3cret")

        login = await client.post(
            f"{PREFIX}/users/login", json={"id": "alice", "password": "s3cret"}
        )
        assert login.status_code == 200
        token = login.json()["token"]
        assert ClaimsDecoder().decode(token).user_id == user["id"]

        profile = await client.get(
            f"{PREFIX}/users/{user['id']}", headers={"Authorization": f"Bearer {token}"}
        )
        assert profile.status_code == 200
        assert profile.json()["email"] == "alice@example.com"

    async def test_bad_login(self, client):
        await _register(client)

        response = await client.post(
            f"{PREFIX}/users/login", json={"id": "alice", "password": "nope"}
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invalid login/password"

    async def test_malformed_body(self, client):
        response = await client.post(f"{PREFIX}/users", json={"name": "alice"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_ARGUMENT"

    async def test_cache_control_header(self, client):
        response = await client.post(
            f"{PREFIX}/users/login", json={"id": "ghost", "password": "pw"}
        )

        assert response.headers["Cache-Control"] == CACHE_CONTROL


# ============================================================================
# AUTHENTICATION FAILURES
# ============================================================================


class TestAuthentication:
    async def test_missing_header(self, client):
        response = await client.get(f"{PREFIX}/store_items")

        assert response.status_code == 401
        assert response.json() == {
            "error": {"code": "UNAUTHENTICATED", "message": INVALID_CREDENTIAL}
        }

    async def test_garbage_token(self, client):
        response = await client.get(
            f"{PREFIX}/store_items", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == 401

    async def test_expired_token(self, client, bearer):
        response = await client.get(
            f"{PREFIX}/store_items",
            headers=bearer(user_id="u1", expires_in=timedelta(minutes=-1)),
        )

        assert response.status_code == 401
        assert response.json()["error"]["message"] == TOKEN_EXPIRED

    async def test_reading_another_profile(self, client, bearer):
        other = await _register(client, name="bob")

        response = await client.get(
            f"{PREFIX}/users/{other['id']}", headers=bearer(user_id="someone-else")
        )

        assert response.status_code == 401
        assert response.json()["error"]["message"] == NOT_SELF

    async def test_read_profile_by_own_alias(self, client, bearer):
        await _register(client, name="carol")

        response = await client.get(
            f"{PREFIX}/users/carol", headers=bearer(user_id="x", username="carol")
        )

        assert response.status_code == 200


# ============================================================================
# ECONOMY
# ============================================================================


class TestEconomy:
    async def test_non_admin_cannot_grant(self, client, bearer):
        user = await _register(client)

        response = await client.post(
            f"{PREFIX}/users/{user['id']}/currencies",
            json={"add_coins": 1000},
            headers=bearer(user_id=user["id"]),
        )

        assert response.status_code == 401
        assert response.json()["error"]["message"] == HIGH_PRIVILEGE_REQUIRED

    async def test_service_caller_can_grant(self, client, bearer):
        user = await _register(client)

        response = await client.post(
            f"{PREFIX}/users/{user['id']}/currencies",
            json={"add_coins": 1000, "add_gems": 100},
            headers=bearer(aud="svc"),
        )

        assert response.status_code == 200
        assert response.json() == {"user_id": user["id"], "coins": 1000, "gems": 100}

    async def test_buy_and_equip_flow(self, client, bearer):
        # Arrange
        user = await _register(client)
        own = bearer(user_id=user["id"])
        await client.post(
            f"{PREFIX}/users/{user['id']}/currencies",
            json={"add_coins": 1000, "add_gems": 100},
            headers=bearer(is_admin=True),
        )
        item = await _create_item(client, bearer)

        # Act
        buy = await client.post(
            f"{PREFIX}/users/{user['id']}/store_items/{item['id']}/buy", headers=own
        )
        equip = await client.post(
            f"{PREFIX}/users/{user['id']}/store_items/{item['id']}/equip", headers=own
        )

        # Assert
        assert buy.status_code == 200
        assert buy.json() == {}
        assert equip.status_code == 200
        profile = await client.get(f"{PREFIX}/users/{user['id']}", headers=own)
        assert (profile.json()["coins"], profile.json()["gems"]) == (900, 100)
        equipped = await client.get(
            f"{PREFIX}/users/{user['id']}/store_items/equipped", headers=bearer(aud="svc")
        )
        assert equipped.json() == {"items": [{"item_id": item["id"], "equipped": True}]}

    async def test_buy_for_someone_else(self, client, bearer):
        user = await _register(client)
        item = await _create_item(client, bearer)

        response = await client.post(
            f"{PREFIX}/users/{user['id']}/store_items/{item['id']}/buy",
            headers=bearer(user_id="intruder"),
        )

        assert response.status_code == 401

    async def test_insufficient_funds(self, client, bearer):
        user = await _register(client)
        item = await _create_item(client, bearer, gems_price=10)

        response = await client.post(
            f"{PREFIX}/users/{user['id']}/store_items/{item['id']}/buy",
            headers=bearer(user_id=user["id"]),
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Not enough gems"

    async def test_missing_item(self, client, bearer):
        response = await client.get(
            f"{PREFIX}/store_items/nope", headers=bearer(user_id="u1")
        )

        assert response.status_code == 404
        assert response.json() == {"error": {"code": "NOT_FOUND", "message": "Item not found"}}


# ============================================================================
# OTHER ENDPOINTS
# ============================================================================


class TestMisc:
    async def test_list_users_is_unimplemented(self, client, bearer):
        response = await client.get(f"{PREFIX}/users", headers=bearer(user_id="u1"))

        assert response.status_code == 501
        assert response.json()["error"]["code"] == "UNIMPLEMENTED"

    async def test_list_users_still_requires_auth(self, client):
        response = await client.get(f"{PREFIX}/users")

        assert response.status_code == 401

    async def test_version_requires_high_privilege(self, client, bearer):
        denied = await client.get(f"{PREFIX}/version", headers=bearer(user_id="u1"))
        allowed = await client.get(f"{PREFIX}/version", headers=bearer(is_admin=True))

        assert denied.status_code == 401
        assert allowed.json() == {"version": Config.SERVICE_VERSION}

    async def test_stats_round_trip(self, client, bearer):
        await _register(client, name="dave")

        update = await client.post(
            f"{PREFIX}/stats/dave",
            json={"add_kills": 4, "add_games": 1},
            headers=bearer(aud="svc"),
        )
        read = await client.get(f"{PREFIX}/stats/dave", headers=bearer(user_id="u1"))

        assert update.status_code == 200
        assert read.json()["kills"] == 4

    async def test_news_admin_only(self, client, bearer):
        denied = await client.post(
            f"{PREFIX}/news", json={"title": "Hi"}, headers=bearer(user_id="u1")
        )
        created = await client.post(
            f"{PREFIX}/news", json={"title": "Hi"}, headers=bearer(is_admin=True)
        )
        listing = await client.get(f"{PREFIX}/news", headers=bearer(user_id="u1"))

        assert denied.status_code == 401
        assert created.status_code == 200
        assert [n["title"] for n in listing.json()["results"]] == ["Hi"]
