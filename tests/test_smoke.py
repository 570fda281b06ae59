"""
tests.test_smoke

Minimal smoke tests: the app boots in test mode and serves its health endpoints.
"""

from __future__ import annotations

import pytest

from openplan.auth.jwt import JwtConfig, decode_and_validate


@pytest.mark.asyncio
async def test_health_endpoints(client) -> None:
    r = await client.get("/healthz")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"

    r = await client.get("/readyz")
    assert r.status_code == 200
    assert r.json()["status"] == "ready"
    assert "x-request-id" in r.headers


@pytest.mark.asyncio
async def test_request_id_is_propagated(client) -> None:
    r = await client.get("/healthz", headers={"x-request-id": "abc-123"})
    assert r.headers["x-request-id"] == "abc-123"


@pytest.mark.asyncio
async def test_api_requires_bearer_token(client) -> None:
    r = await client.get("/api/v3/notifications")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_dev_token_authenticates_existing_user(client, seed) -> None:
    user_id = await seed.user("alice@example.net")
    r = await client.post("/v1/dev/token", json={"user_id": user_id})
    assert r.status_code == 200
    token = r.json()["access_token"]

    r = await client.get("/api/v3/notifications", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json() == []


@pytest.mark.asyncio
async def test_dev_token_carries_only_identity_claims(app, client, seed) -> None:
    user_id = await seed.user("alice@example.net")
    r = await client.post("/v1/dev/token", json={"user_id": user_id})

    payload = decode_and_validate(
        cfg=JwtConfig.from_settings(app.state.settings), token=r.json()["access_token"]
    )
    assert payload["sub"] == str(user_id)
    assert "roles" not in payload


@pytest.mark.asyncio
async def test_token_for_unknown_user_is_rejected(client, auth) -> None:
    r = await client.get("/api/v3/notifications", headers=auth(9999))
    assert r.status_code == 401
