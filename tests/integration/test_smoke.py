"""Smoke tests: health and auth gates."""

import pytest


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["checks"]["db"] == "ok"
    assert data["checks"]["storage"] == "not_configured"
    assert "x-request-id" in resp.headers


@pytest.mark.asyncio
async def test_request_id_is_echoed(client):
    resp = await client.get("/health", headers={"X-Request-ID": "req-123"})
    assert resp.headers["x-request-id"] == "req-123"


@pytest.mark.asyncio
async def test_protected_endpoint_requires_token(client):
    resp = await client.get("/api/v1/invoices")
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "AUTH_TOKEN_INVALID"


@pytest.mark.asyncio
async def test_garbage_token_rejected(client):
    resp = await client.get("/api/v1/invoices", headers={"Authorization": "Bearer nope"})
    assert resp.status_code == 401
