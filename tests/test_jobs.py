"""
tests.test_jobs

Periodic sweeps run directly against the app's session factory with a shifted clock.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import timedelta

import httpx
import pytest
import pytest_asyncio

from staybook.db.models import utcnow
from staybook.jobs.tasks import (
    JobDeps,
    complete_checked_out_stays,
    expire_pending_bookings,
    reject_unanswered_requests,
)
from tests.conftest import (
    create_hotel,
    create_service,
    future,
    onboard,
    post_event,
    register,
    service_booking_payload,
)


@pytest_asyncio.fixture
async def deps(app, settings, gateway, push) -> AsyncIterator[JobDeps]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(404))) as http:
        yield JobDeps(
            session_factory=app.state.sessionmaker,
            settings=settings,
            gateway=gateway,
            push=push,
            http=http,
        )


async def _stay(client, *, start: int = 3, nights: int = 2):
    owner = await register(client, "PROPERTY_OWNER")
    hotel = await create_hotel(client, owner)
    guest = await register(client)
    r = await client.post(
        "/v1/hotel-bookings",
        json={
            "hotel_id": hotel["id"],
            "booked_from": future(start).isoformat(),
            "booked_to": future(start + nights).isoformat(),
        },
        headers=guest.headers,
    )
    assert r.status_code == 201
    return owner, hotel, guest, r.json()


@pytest.mark.asyncio
async def test_stale_pending_bookings_expire(client, deps) -> None:
    _, hotel, guest, booking = await _stay(client)

    assert await expire_pending_bookings(deps, now=utcnow()) == 0
    assert await expire_pending_bookings(deps, now=utcnow() + timedelta(hours=1)) == 1

    r = await client.get(f"/v1/hotel-bookings/{booking['id']}", headers=guest.headers)
    assert r.json()["status"] == "EXPIRED"

    # Expired bookings release the dates.
    r = await client.post(
        "/v1/hotel-bookings",
        json={"hotel_id": hotel["id"], "booked_from": booking["booked_from"], "booked_to": booking["booked_to"]},
        headers=guest.headers,
    )
    assert r.status_code == 201


@pytest.mark.asyncio
async def test_expiry_closes_the_stripe_session(client, deps, gateway) -> None:
    owner, _, guest, booking = await _stay(client)
    await onboard(client, owner)
    r = await client.post(f"/v1/payments/checkout/hotel/{booking['id']}", headers=guest.headers)
    session_id = r.json()["session_id"]

    assert await expire_pending_bookings(deps, now=utcnow() + timedelta(hours=1)) == 1
    assert [c["session_id"] for c in gateway.called("expire_checkout_session")] == [session_id]

    # Stripe's own expiry event for the closed session changes nothing.
    r = await post_event(client, "checkout.session.expired", {"id": session_id})
    assert r.status_code == 200
    r = await client.get(f"/v1/hotel-bookings/{booking['id']}", headers=guest.headers)
    assert r.json()["status"] == "EXPIRED"


@pytest.mark.asyncio
async def test_expiry_waits_for_a_paid_session(client, deps, gateway) -> None:
    owner, _, guest, booking = await _stay(client)
    await onboard(client, owner)
    r = await client.post(f"/v1/payments/checkout/hotel/{booking['id']}", headers=guest.headers)
    session_id = r.json()["session_id"]
    gateway.completed_sessions.add(session_id)

    assert await expire_pending_bookings(deps, now=utcnow() + timedelta(hours=1)) == 0

    r = await post_event(
        client, "checkout.session.completed", {"id": session_id, "mode": "payment", "payment_intent": "pi_slow"}
    )
    assert r.json()["handled"] is True
    r = await client.get(f"/v1/hotel-bookings/{booking['id']}", headers=guest.headers)
    assert r.json()["status"] == "CONFIRMED"
    assert gateway.called("refund_destination_charge") == []


@pytest.mark.asyncio
async def test_checked_out_stays_complete(client, deps) -> None:
    owner, _, guest, booking = await _stay(client, start=3, nights=2)
    await client.patch(
        f"/v1/hotel-bookings/{booking['id']}/status", json={"status": "CONFIRMED"}, headers=owner.headers
    )

    # Check-out day itself is still part of the stay.
    assert await complete_checked_out_stays(deps, now=utcnow() + timedelta(days=5)) == 0
    assert await complete_checked_out_stays(deps, now=utcnow() + timedelta(days=6)) == 1

    r = await client.get(f"/v1/hotel-bookings/{booking['id']}", headers=guest.headers)
    assert r.json()["status"] == "COMPLETED"


@pytest.mark.asyncio
async def test_unanswered_requests_are_rejected_and_released(client, deps, gateway) -> None:
    owner = await register(client, "PROPERTY_OWNER")
    provider = await register(client, "SERVICE_PROVIDER")
    await onboard(client, provider)
    hotel = await create_hotel(client, owner)
    service = await create_service(client, provider)
    r = await client.post(
        "/v1/service-bookings",
        json=service_booking_payload(service["id"], hotel["id"]),
        headers=owner.headers,
    )
    booking = r.json()
    r = await client.post(f"/v1/payments/checkout/service/{booking['id']}", headers=owner.headers)
    await post_event(
        client,
        "checkout.session.completed",
        {"id": r.json()["session_id"], "mode": "payment", "payment_intent": "pi_unanswered"},
    )

    assert await reject_unanswered_requests(deps, now=utcnow() + timedelta(hours=1)) == 0

    # A gateway outage leaves the booking for the next sweep.
    gateway.fail_on.add("cancel_payment_intent")
    assert await reject_unanswered_requests(deps, now=utcnow() + timedelta(hours=25)) == 0
    r = await client.get(f"/v1/service-bookings/{booking['id']}", headers=owner.headers)
    assert r.json()["status"] == "NEED_ACCEPT"

    gateway.fail_on.clear()
    assert await reject_unanswered_requests(deps, now=utcnow() + timedelta(hours=25)) == 1
    r = await client.get(f"/v1/service-bookings/{booking['id']}", headers=owner.headers)
    assert r.json()["status"] == "REJECTED"
    assert [c["payment_intent_id"] for c in gateway.called("cancel_payment_intent")] == ["pi_unanswered"]

    r = await client.get("/v1/notifications", params={"unread": True}, headers=owner.headers)
    assert any(n["title"] == "Service request expired" for n in r.json()["items"])
