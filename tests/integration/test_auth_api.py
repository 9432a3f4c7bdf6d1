"""Login, refresh, profile and password change."""

import pytest


@pytest.mark.asyncio
async def test_login_and_me(client, admin_user, user_password):
    resp = await client.post(
        "/auth/login", json={"email": "ADMIN@casehub.org", "password": user_password}
    )
    assert resp.status_code == 200
    tokens = resp.json()
    assert tokens["token_type"] == "Bearer"

    me = await client.get(
        "/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"}
    )
    assert me.status_code == 200
    body = me.json()
    assert body["email"] == "admin@casehub.org"
    assert body["role"] == "admin"
    assert body["last_login_at"] is not None


@pytest.mark.asyncio
async def test_login_wrong_password(client, admin_user):
    resp = await client.post(
        "/auth/login", json={"email": "admin@casehub.org", "password": "Wrong123!"}
    )
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "AUTH_INVALID_CREDENTIALS"


@pytest.mark.asyncio
async def test_refresh_issues_new_pair(client, admin_user, user_password):
    login = await client.post(
        "/auth/login", json={"email": "admin@casehub.org", "password": user_password}
    )
    refresh_token = login.json()["refresh_token"]

    resp = await client.post("/auth/refresh", json={"refresh_token": refresh_token})
    assert resp.status_code == 200
    assert resp.json()["access_token"]

    # An access token is not accepted as a refresh token.
    bad = await client.post(
        "/auth/refresh", json={"refresh_token": login.json()["access_token"]}
    )
    assert bad.status_code == 401


@pytest.mark.asyncio
async def test_change_password(client, staff_user, staff_headers, user_password):
    resp = await client.post(
        "/auth/change-password",
        json={"current_password": "Wrong123!", "new_password": "NewPass123!"},
        headers=staff_headers,
    )
    assert resp.status_code == 422

    resp = await client.post(
        "/auth/change-password",
        json={"current_password": user_password, "new_password": "NewPass123!"},
        headers=staff_headers,
    )
    assert resp.status_code == 204

    login = await client.post(
        "/auth/login", json={"email": "staff@casehub.org", "password": "NewPass123!"}
    )
    assert login.status_code == 200
