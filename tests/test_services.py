"""
tests.test_services

Service catalog: availability normalisation, search and provider edits.
"""

from __future__ import annotations

import pytest

from tests.conftest import create_service, register


@pytest.mark.asyncio
async def test_availability_is_normalised(client) -> None:
    provider = await register(client, "SERVICE_PROVIDER")
    service = await create_service(
        client,
        provider,
        availability=[{"day": " monday", "slots": [{"from": "09:00   AM", "to": "10:00 AM "}]}],
    )
    assert service["status"] == "ACTIVE"
    assert service["availability"] == [{"day": "Monday", "slots": [{"from": "09:00 AM", "to": "10:00 AM"}]}]

    r = await client.post(
        "/v1/services",
        json={
            "service_name": "Bad",
            "service_type": "cleaning",
            "price_cents": 100,
            "availability": [{"day": "Funday", "slots": [{"from": "1", "to": "2"}]}],
        },
        headers=provider.headers,
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_search_hides_inactive_services(client) -> None:
    provider = await register(client, "SERVICE_PROVIDER")
    clean = await create_service(client, provider, service_name="Deep clean")
    fix = await create_service(client, provider, service_name="Plumbing fix", service_type="maintenance")

    r = await client.get("/v1/services", params={"service_type": "maintenance"})
    assert [s["id"] for s in r.json()["items"]] == [fix["id"]]

    r = await client.patch(f"/v1/services/{fix['id']}", json={"status": "INACTIVE"}, headers=provider.headers)
    assert r.status_code == 200
    r = await client.get("/v1/services")
    assert [s["id"] for s in r.json()["items"]] == [clean["id"]]

    r = await client.get("/v1/services/mine", headers=provider.headers)
    assert r.json()["total"] == 2


@pytest.mark.asyncio
async def test_only_the_provider_edits(client, storage) -> None:
    provider = await register(client, "SERVICE_PROVIDER")
    other = await register(client, "SERVICE_PROVIDER")
    service = await create_service(client, provider)

    r = await client.patch(f"/v1/services/{service['id']}", json={"price_cents": 1}, headers=other.headers)
    assert r.status_code == 403

    r = await client.patch(f"/v1/services/{service['id']}", json={"price_cents": 7_500}, headers=provider.headers)
    assert r.json()["price_cents"] == 7_500

    r = await client.post(
        f"/v1/services/{service['id']}/cover",
        files={"file": ("cover.jpg", b"jpeg", "image/jpeg")},
        headers=provider.headers,
    )
    assert r.status_code == 200
    assert r.json()["cover_image"].startswith(f"https://cdn.test/services/{service['id']}/")
