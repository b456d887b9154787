"""
tests.test_contacts

Contact requests: owner asks, admin reveals, the directory shows details only after approval.
"""

from __future__ import annotations

import pytest

from tests.conftest import admin, register


def _entry(page: dict, provider_id: str) -> dict:
    (entry,) = [p for p in page["items"] if p["id"] == provider_id]
    return entry


@pytest.mark.asyncio
async def test_contact_details_stay_hidden_until_approved(client) -> None:
    boss = await admin(client)
    owner = await register(client, "PROPERTY_OWNER")
    provider = await register(client, "SERVICE_PROVIDER", contact_number="+1 555 0100")

    r = await client.get("/v1/contact-requests/service-providers", headers=owner.headers)
    assert r.status_code == 200
    entry = _entry(r.json(), provider.id)
    assert entry["contact_status"] == "NONE"
    assert entry["email"] is None

    r = await client.post(f"/v1/contact-requests/{provider.id}", headers=owner.headers)
    assert r.status_code == 201, r.text
    reveal = r.json()
    assert reveal["is_shown"] is False

    r = await client.post(f"/v1/contact-requests/{provider.id}", headers=owner.headers)
    assert r.status_code == 409

    r = await client.get("/v1/contact-requests/service-providers", headers=owner.headers)
    entry = _entry(r.json(), provider.id)
    assert entry["contact_status"] == "REQUESTED"
    assert entry["contact_number"] is None

    # Admins see open requests and get an inbox entry for each.
    r = await client.get("/v1/contact-requests", params={"is_shown": False}, headers=boss.headers)
    assert [c["id"] for c in r.json()["items"]] == [reveal["id"]]
    r = await client.get("/v1/notifications", headers=boss.headers)
    assert [n["title"] for n in r.json()["items"]] == ["Contact request"]

    r = await client.patch(f"/v1/contact-requests/{reveal['id']}", headers=boss.headers)
    assert r.status_code == 200
    assert r.json()["is_shown"] is True

    r = await client.get("/v1/contact-requests/service-providers", headers=owner.headers)
    entry = _entry(r.json(), provider.id)
    assert entry["contact_status"] == "SHOWN"
    assert entry["email"] == provider.user["email"]
    assert entry["contact_number"] == "+1 555 0100"

    r = await client.get("/v1/notifications", headers=owner.headers)
    assert [n["title"] for n in r.json()["items"]] == ["Contact details available"]

    # Approval is per owner.
    other_owner = await register(client, "PROPERTY_OWNER")
    r = await client.get("/v1/contact-requests/service-providers", headers=other_owner.headers)
    assert _entry(r.json(), provider.id)["email"] is None


@pytest.mark.asyncio
async def test_contact_request_permissions(client) -> None:
    owner = await register(client, "PROPERTY_OWNER")
    provider = await register(client, "SERVICE_PROVIDER")
    guest = await register(client)

    r = await client.post(f"/v1/contact-requests/{provider.id}", headers=guest.headers)
    assert r.status_code == 403
    r = await client.post(f"/v1/contact-requests/{provider.id}", headers=provider.headers)
    assert r.status_code == 403

    # Only service providers can be requested.
    r = await client.post(f"/v1/contact-requests/{guest.id}", headers=owner.headers)
    assert r.status_code == 404

    r = await client.post(f"/v1/contact-requests/{provider.id}", headers=owner.headers)
    reveal_id = r.json()["id"]
    r = await client.patch(f"/v1/contact-requests/{reveal_id}", headers=owner.headers)
    assert r.status_code == 403
    r = await client.get("/v1/contact-requests", headers=owner.headers)
    assert r.status_code == 403
