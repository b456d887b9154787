"""
tests.test_notifications

In-app inbox: unread filtering and marking read; Firebase app initialization.
"""

from __future__ import annotations

import firebase_admin
import pytest
from firebase_admin import credentials

from staybook.integrations.push import FirebasePushSender
from tests.conftest import create_hotel, future, register


@pytest.mark.asyncio
async def test_inbox_read_flags(client, push) -> None:
    owner = await register(client, "PROPERTY_OWNER")
    hotel = await create_hotel(client, owner)
    guest = await register(client)

    booking_ids = []
    for start in (3, 10):
        r = await client.post(
            "/v1/hotel-bookings",
            json={"hotel_id": hotel["id"], "booked_from": future(start).isoformat(), "booked_to": future(start + 1).isoformat()},
            headers=guest.headers,
        )
        booking_ids.append(r.json()["id"])
    for booking_id in booking_ids:
        r = await client.patch(
            f"/v1/hotel-bookings/{booking_id}/status", json={"status": "CONFIRMED"}, headers=owner.headers
        )
        assert r.status_code == 200

    r = await client.get("/v1/notifications", params={"unread": True}, headers=guest.headers)
    page = r.json()
    assert page["total"] == 2
    assert {n["booking_id"] for n in page["items"]} == set(booking_ids)
    # No device token registered: inbox only.
    assert push.sent == []

    first = page["items"][0]["id"]
    r = await client.post(f"/v1/notifications/{first}/read", headers=guest.headers)
    assert r.json()["is_read"] is True
    r = await client.get("/v1/notifications", params={"unread": True}, headers=guest.headers)
    assert r.json()["total"] == 1

    r = await client.post("/v1/notifications/read-all", headers=guest.headers)
    assert r.json() == {"updated": 1}

    # Someone else's notification is invisible.
    r = await client.post(f"/v1/notifications/{first}/read", headers=owner.headers)
    assert r.status_code == 404


def test_firebase_app_is_initialized_once(monkeypatch) -> None:
    apps: list[object] = []

    def get_app() -> object:
        if not apps:
            raise ValueError("The default Firebase app does not exist.")
        return apps[0]

    def initialize_app(cert: object) -> object:
        apps.append(cert)
        return cert

    monkeypatch.setattr(firebase_admin, "get_app", get_app)
    monkeypatch.setattr(firebase_admin, "initialize_app", initialize_app)
    monkeypatch.setattr(credentials, "Certificate", lambda path: f"cert:{path}")

    FirebasePushSender(credentials_file="/secrets/fcm.json")
    FirebasePushSender(credentials_file="/secrets/fcm.json")
    FirebasePushSender(credentials_file=None)
    assert apps == ["cert:/secrets/fcm.json"]
