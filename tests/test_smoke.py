"""
tests.test_smoke

Minimal smoke tests to validate the service can boot and serve core endpoints.

Responsibilities:
- Ensure the FastAPI app starts with its real client defaults and the DB readiness check works.
- Ensure protected routes reject anonymous callers.
"""

from __future__ import annotations

import httpx
import pytest

from staybook.api.app import create_app
from staybook.settings import Settings


@pytest.mark.asyncio
async def test_health_endpoints(tmp_path) -> None:
    app = create_app(
        settings=Settings(env="test", database_url=f"sqlite+aiosqlite:///{tmp_path / 'smoke.db'}")
    )

    # httpx ASGITransport does not manage lifespan automatically; do it explicitly.
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            r = await client.get("/healthz")
            assert r.status_code == 200
            assert r.json()["status"] == "ok"

            r = await client.get("/readyz")
            assert r.status_code == 200
            assert r.json()["status"] == "ready"
            # No Stripe key or FCM credentials configured in this environment.
            assert r.json()["integrations"]["stripe"] is False
            assert r.json()["integrations"]["push"] is False

            r = await client.get("/v1/users/me")
            assert r.status_code == 401

            r = await client.get("/v1/hotels")
            assert r.status_code == 200
            assert r.json()["total"] == 0


@pytest.mark.asyncio
async def test_request_id_is_echoed(client) -> None:
    r = await client.get("/healthz", headers={"x-request-id": "req-123"})
    assert r.status_code == 200
    assert r.headers.get("x-request-id") == "req-123"
