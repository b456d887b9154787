"""
tests.test_service_bookings

Service bookings: slot rules, held payment, provider workflow with proof, payment release.
"""

from __future__ import annotations

import pytest

from tests.conftest import (
    create_hotel,
    create_service,
    onboard,
    post_event,
    register,
    service_booking_payload,
)


async def _setup(client):
    owner = await register(client, "PROPERTY_OWNER")
    provider = await register(client, "SERVICE_PROVIDER")
    await onboard(client, provider)
    hotel = await create_hotel(client, owner)
    service = await create_service(client, provider)
    return owner, provider, hotel, service


async def _held(client, owner, booking, *, intent: str = "pi_service_1"):
    r = await client.post(f"/v1/payments/checkout/service/{booking['id']}", headers=owner.headers)
    assert r.status_code == 200, r.text
    r = await post_event(
        client,
        "checkout.session.completed",
        {"id": r.json()["session_id"], "mode": "payment", "payment_intent": intent},
    )
    assert r.json()["handled"] is True


@pytest.mark.asyncio
async def test_slot_rules(client) -> None:
    owner, _, hotel, service = await _setup(client)
    payload = service_booking_payload(service["id"], hotel["id"])

    r = await client.post("/v1/service-bookings", json=payload, headers=owner.headers)
    assert r.status_code == 201, r.text
    booking = r.json()
    assert booking["status"] == "PENDING"
    assert booking["total_price_cents"] == 5_000
    assert booking["property"] == "Harbour Loft"

    # Same service, date and slot while the first booking is still active.
    r = await client.post("/v1/service-bookings", json=payload, headers=owner.headers)
    assert r.status_code == 409

    wrong_day = {**payload, "day": "Someday"}
    r = await client.post("/v1/service-bookings", json=wrong_day, headers=owner.headers)
    assert r.status_code == 400

    wrong_slot = service_booking_payload(service["id"], hotel["id"], days_ahead=8)
    wrong_slot["slot_from"] = "01:00 PM"
    r = await client.post("/v1/service-bookings", json=wrong_slot, headers=owner.headers)
    assert r.status_code == 400

    past = service_booking_payload(service["id"], hotel["id"], days_ahead=-7)
    r = await client.post("/v1/service-bookings", json=past, headers=owner.headers)
    assert r.status_code == 400

    # Owners book services for their own hotels only.
    other_owner = await register(client, "PROPERTY_OWNER")
    other = service_booking_payload(service["id"], hotel["id"], days_ahead=9)
    r = await client.post("/v1/service-bookings", json=other, headers=other_owner.headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_full_lifecycle_captures_and_transfers(client, gateway, storage) -> None:
    owner, provider, hotel, service = await _setup(client)
    r = await client.post(
        "/v1/service-bookings",
        json=service_booking_payload(service["id"], hotel["id"]),
        headers=owner.headers,
    )
    booking = r.json()

    await _held(client, owner, booking, intent="pi_hold")
    (checkout,) = gateway.called("create_checkout_session")
    assert checkout["manual_capture"] is True

    r = await client.get(
        "/v1/service-bookings/provider", params={"view": "new-requests"}, headers=provider.headers
    )
    assert [b["id"] for b in r.json()] == [booking["id"]]

    r = await client.post(f"/v1/service-bookings/{booking['id']}/accept", headers=provider.headers)
    assert r.json()["status"] == "CONFIRMED"

    # Finishing before starting is refused.
    r = await client.post(
        f"/v1/service-bookings/{booking['id']}/proof/end",
        files=[("files", ("end.mp4", b"video", "video/mp4"))],
        headers=provider.headers,
    )
    assert r.status_code == 400

    r = await client.post(
        f"/v1/service-bookings/{booking['id']}/proof/start",
        files=[("files", ("start.mp4", b"video", "video/mp4"))],
        headers=provider.headers,
    )
    assert r.status_code == 200, r.text
    assert r.json()["is_started"] is True

    # Releasing before the provider finishes is refused.
    r = await client.post(f"/v1/service-bookings/{booking['id']}/release-payment", headers=owner.headers)
    assert r.status_code == 409

    r = await client.post(
        f"/v1/service-bookings/{booking['id']}/proof/end",
        files=[("files", ("end.mp4", b"video", "video/mp4"))],
        headers=provider.headers,
    )
    assert r.json()["is_ended"] is True
    assert len(storage.objects) == 2

    r = await client.get(f"/v1/service-bookings/{booking['id']}/proof", headers=owner.headers)
    assert len(r.json()["starting_urls"]) == 1
    assert len(r.json()["ending_urls"]) == 1

    r = await client.post(f"/v1/service-bookings/{booking['id']}/release-payment", headers=owner.headers)
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "PAID"

    (capture,) = gateway.called("capture_payment_intent")
    assert capture["payment_intent_id"] == "pi_hold"
    (transfer,) = gateway.called("create_transfer")
    assert transfer["amount_cents"] == 4_500
    assert transfer["source_transaction"] == "ch_for_pi_hold"

    r = await client.get(f"/v1/service-bookings/{booking['id']}", headers=owner.headers)
    assert r.json()["status"] == "COMPLETED"
    r = await client.get("/v1/service-bookings/owner", params={"view": "past"}, headers=owner.headers)
    assert [b["id"] for b in r.json()] == [booking["id"]]


@pytest.mark.asyncio
async def test_reject_voids_the_hold(client, gateway) -> None:
    owner, provider, hotel, service = await _setup(client)
    r = await client.post(
        "/v1/service-bookings",
        json=service_booking_payload(service["id"], hotel["id"]),
        headers=owner.headers,
    )
    booking = r.json()
    await _held(client, owner, booking, intent="pi_reject")

    r = await client.post(f"/v1/service-bookings/{booking['id']}/reject", headers=provider.headers)
    assert r.json()["status"] == "REJECTED"
    (cancel,) = gateway.called("cancel_payment_intent")
    assert cancel["payment_intent_id"] == "pi_reject"

    # The slot is free again.
    r = await client.post(
        "/v1/service-bookings",
        json=service_booking_payload(service["id"], hotel["id"]),
        headers=owner.headers,
    )
    assert r.status_code == 201


@pytest.mark.asyncio
async def test_owner_cancel_and_provider_cannot_accept_pending(client, gateway) -> None:
    owner, provider, hotel, service = await _setup(client)
    r = await client.post(
        "/v1/service-bookings",
        json=service_booking_payload(service["id"], hotel["id"]),
        headers=owner.headers,
    )
    booking = r.json()

    # Not paid yet: nothing to accept.
    r = await client.post(f"/v1/service-bookings/{booking['id']}/accept", headers=provider.headers)
    assert r.status_code == 409

    await _held(client, owner, booking, intent="pi_cancel")
    r = await client.post(f"/v1/service-bookings/{booking['id']}/cancel", headers=owner.headers)
    assert r.json()["status"] == "CANCELLED"
    assert [c["payment_intent_id"] for c in gateway.called("cancel_payment_intent")] == ["pi_cancel"]


@pytest.mark.asyncio
async def test_provider_at_booked_hotel_can_update_inventory(client) -> None:
    owner, provider, hotel, service = await _setup(client)
    await client.post(
        "/v1/service-bookings",
        json=service_booking_payload(service["id"], hotel["id"]),
        headers=owner.headers,
    )
    towels = hotel["inventory_items"][0]
    r = await client.patch(
        f"/v1/hotels/{hotel['id']}/inventory",
        json=[{"id": towels["id"], "missing_quantity": 1}],
        headers=provider.headers,
    )
    assert r.status_code == 200, r.text
    assert r.json()[0]["missing_quantity"] == 1


@pytest.mark.asyncio
async def test_superseded_session_paid_first_is_the_one_released(client, gateway) -> None:
    owner, provider, hotel, service = await _setup(client)
    r = await client.post(
        "/v1/service-bookings",
        json=service_booking_payload(service["id"], hotel["id"]),
        headers=owner.headers,
    )
    booking = r.json()
    r = await client.post(f"/v1/payments/checkout/service/{booking['id']}", headers=owner.headers)
    first = r.json()["session_id"]
    r = await client.post(f"/v1/payments/checkout/service/{booking['id']}", headers=owner.headers)
    second = r.json()["session_id"]

    # Both sessions end up paid: the first one holds the booking, the second is voided.
    for session_id, intent in ((first, "pi_first"), (second, "pi_second")):
        r = await post_event(
            client, "checkout.session.completed", {"id": session_id, "mode": "payment", "payment_intent": intent}
        )
        assert r.json()["handled"] is True
    assert [c["payment_intent_id"] for c in gateway.called("cancel_payment_intent")] == ["pi_second"]

    r = await client.post(f"/v1/service-bookings/{booking['id']}/accept", headers=provider.headers)
    assert r.json()["status"] == "CONFIRMED"
    for stage in ("start", "end"):
        r = await client.post(
            f"/v1/service-bookings/{booking['id']}/proof/{stage}",
            files=[("files", (f"{stage}.mp4", b"video", "video/mp4"))],
            headers=provider.headers,
        )
        assert r.status_code == 200, r.text

    r = await client.post(f"/v1/service-bookings/{booking['id']}/release-payment", headers=owner.headers)
    assert r.status_code == 200, r.text
    (capture,) = gateway.called("capture_payment_intent")
    assert capture["payment_intent_id"] == "pi_first"
