"""
Tests for API key endpoints.

The full secret is only ever returned by the create call; everything else
sees it masked.
"""

import re
from datetime import datetime, timedelta, timezone

import pytest

from app.crud.api_key import api_key as api_key_crud

HEX_KEY = re.compile(r"^[0-9a-f]{64}$")


def _parse(ts: str) -> datetime:
    value = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_admin_creates_key_for_user(client, regular_user, admin_headers):
    response = await client.post(
        "/api/apikeys",
        json={"name": "dev", "userId": regular_user.id},
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "dev"
    assert data["user_id"] == regular_user.id
    assert data["is_active"] is True
    assert HEX_KEY.match(data["key"])

    expires_in = _parse(data["expires_at"]) - datetime.now(timezone.utc)
    assert timedelta(days=364) < expires_in <= timedelta(days=365)


@pytest.mark.asyncio
async def test_create_key_defaults_to_caller(client, regular_user, user_headers):
    response = await client.post("/api/apikeys", json={"name": "mine"}, headers=user_headers)
    assert response.status_code == 200
    assert response.json()["user_id"] == regular_user.id


@pytest.mark.asyncio
async def test_create_key_with_explicit_expiry(client, user_headers):
    expires = "2030-01-01T00:00:00+00:00"
    response = await client.post(
        "/api/apikeys",
        json={"name": "fixed", "expires_at": expires},
        headers=user_headers,
    )
    assert response.status_code == 200
    assert _parse(response.json()["expires_at"]) == _parse(expires)


@pytest.mark.asyncio
async def test_create_key_for_missing_user(client, admin_headers):
    response = await client.post(
        "/api/apikeys",
        json={"name": "dev", "userId": 999},
        headers=admin_headers,
    )
    assert response.status_code == 404
    assert response.json() == {"error": "User not found"}


@pytest.mark.asyncio
async def test_non_admin_cannot_create_key_for_others(client, create_user, user_headers):
    other = await create_user(username="bob")
    response = await client.post(
        "/api/apikeys",
        json={"name": "dev", "userId": other.id},
        headers=user_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_key_requires_name(client, user_headers):
    response = await client.post("/api/apikeys", json={}, headers=user_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Missing required fields"


@pytest.mark.asyncio
async def test_reads_are_masked(client, user_headers):
    created = (await client.post("/api/apikeys", json={"name": "dev"}, headers=user_headers)).json()
    full_key = created["key"]
    expected = "*" * 56 + full_key[-8:]

    one = await client.get(f"/api/apikeys/{created['id']}", headers=user_headers)
    assert one.status_code == 200
    assert one.json()["key"] == expected

    mine = await client.get("/api/apikeys/me", headers=user_headers)
    assert [k["key"] for k in mine.json()] == [expected]

    listing = await client.get("/api/apikeys", headers=user_headers)
    assert listing.json()[0]["key"] == expected
    assert listing.json()[0]["username"] == "alice"


@pytest.mark.asyncio
async def test_admin_lists_every_key_with_owner(client, db, create_user, regular_user, admin_headers, user_headers):
    bob = await create_user(username="bob")
    await api_key_crud.create(db, user_id=regular_user.id, name="alice-key")
    await api_key_crud.create(db, user_id=bob.id, name="bob-key")

    as_admin = await client.get("/api/apikeys", headers=admin_headers)
    assert as_admin.status_code == 200
    assert {(k["name"], k["username"]) for k in as_admin.json()} == {
        ("alice-key", "alice"),
        ("bob-key", "bob"),
    }

    as_alice = await client.get("/api/apikeys", headers=user_headers)
    assert [k["name"] for k in as_alice.json()] == ["alice-key"]


@pytest.mark.asyncio
async def test_list_keys_by_user(client, db, create_user, regular_user, user_headers, admin_headers):
    bob = await create_user(username="bob")
    await api_key_crud.create(db, user_id=bob.id, name="bob-key")

    own = await client.get(f"/api/apikeys/user/{regular_user.id}", headers=user_headers)
    assert own.status_code == 200
    assert own.json() == []

    forbidden = await client.get(f"/api/apikeys/user/{bob.id}", headers=user_headers)
    assert forbidden.status_code == 403

    as_admin = await client.get(f"/api/apikeys/user/{bob.id}", headers=admin_headers)
    assert [k["name"] for k in as_admin.json()] == ["bob-key"]

    nobody = await client.get("/api/apikeys/user/999", headers=admin_headers)
    assert nobody.status_code == 200
    assert nobody.json() == []


@pytest.mark.asyncio
async def test_update_never_changes_the_secret(client, db, regular_user, user_headers):
    key_obj = await api_key_crud.create(db, user_id=regular_user.id, name="dev")
    original_key = key_obj.key

    response = await client.put(
        f"/api/apikeys/{key_obj.id}",
        json={"name": "renamed", "key": "0" * 64},
        headers=user_headers,
    )
    assert response.status_code == 200
    assert response.json()["name"] == "renamed"
    assert response.json()["key"].endswith(original_key[-8:])

    await db.refresh(key_obj)
    assert key_obj.key == original_key


@pytest.mark.asyncio
async def test_activate_and_deactivate(client, db, regular_user, user_headers):
    key_obj = await api_key_crud.create(db, user_id=regular_user.id, name="dev")

    off = await client.put(f"/api/apikeys/{key_obj.id}/deactivate", headers=user_headers)
    assert off.status_code == 200
    assert off.json()["is_active"] is False

    on = await client.put(f"/api/apikeys/{key_obj.id}/activate", headers=user_headers)
    assert on.status_code == 200
    assert on.json()["is_active"] is True


@pytest.mark.asyncio
async def test_other_users_keys_are_forbidden(client, db, create_user, user_headers, admin_headers):
    bob = await create_user(username="bob")
    key_obj = await api_key_crud.create(db, user_id=bob.id, name="bob-key")

    for method, path in [
        ("GET", f"/api/apikeys/{key_obj.id}"),
        ("PUT", f"/api/apikeys/{key_obj.id}/deactivate"),
        ("DELETE", f"/api/apikeys/{key_obj.id}"),
    ]:
        response = await client.request(method, path, headers=user_headers)
        assert response.status_code == 403, path

    as_admin = await client.get(f"/api/apikeys/{key_obj.id}", headers=admin_headers)
    assert as_admin.status_code == 200


@pytest.mark.asyncio
async def test_missing_key(client, user_headers):
    response = await client.get("/api/apikeys/999", headers=user_headers)
    assert response.status_code == 404
    assert response.json() == {"error": "API key not found"}


@pytest.mark.asyncio
async def test_delete_key(client, db, regular_user, user_headers):
    key_obj = await api_key_crud.create(db, user_id=regular_user.id, name="dev")

    response = await client.delete(f"/api/apikeys/{key_obj.id}", headers=user_headers)
    assert response.status_code == 204

    again = await client.get(f"/api/apikeys/{key_obj.id}", headers=user_headers)
    assert again.status_code == 404
