"""
tests.test_subscriptions

Subscription plans, subscribing, billing webhooks and lapse deactivation.
"""

from __future__ import annotations

import calendar
from datetime import timedelta

import httpx
import pytest

from staybook.db.models import utcnow
from staybook.jobs.tasks import JobDeps, deactivate_lapsed_subscriptions
from tests.conftest import admin, post_event, register


async def _plan(client, boss, **overrides):
    r = await client.post(
        "/v1/subscriptions/plans",
        json={"name": "Gold", "features": ["late checkout"], "price_cents": 1_999, **overrides},
        headers=boss.headers,
    )
    assert r.status_code == 201, r.text
    return r.json()


@pytest.mark.asyncio
async def test_plan_management_is_admin_only(client, gateway) -> None:
    guest = await register(client)
    r = await client.post(
        "/v1/subscriptions/plans", json={"name": "Gold", "price_cents": 100}, headers=guest.headers
    )
    assert r.status_code == 403

    boss = await admin(client)
    plan = await _plan(client, boss)
    (price,) = gateway.called("create_recurring_price")
    assert price["amount_cents"] == 1_999
    assert price["interval"] == "month"

    r = await client.patch(
        f"/v1/subscriptions/plans/{plan['id']}", json={"name": "Platinum"}, headers=boss.headers
    )
    assert r.json()["name"] == "Platinum"
    assert gateway.called("rename_product")[0]["name"] == "Platinum"

    r = await client.get("/v1/subscriptions/plans", params={"search": "plat"})
    assert [p["id"] for p in r.json()] == [plan["id"]]

    r = await client.delete(f"/v1/subscriptions/plans/{plan['id']}", headers=boss.headers)
    assert r.status_code == 204
    assert len(gateway.called("archive_product")) == 1
    r = await client.get(f"/v1/subscriptions/plans/{plan['id']}")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_subscribe_and_billing_events(client, app, settings, gateway, push) -> None:
    boss = await admin(client)
    plan = await _plan(client, boss)
    guest = await register(client)

    r = await client.post(f"/v1/subscriptions/plans/{plan['id']}/subscribe", headers=guest.headers)
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["client_secret"] == "pi_secret"
    assert body["subscription"]["status"] == "INCOMPLETE"
    stripe_sub_id = body["stripe_subscription_id"]

    period_end = utcnow() + timedelta(days=30)
    r = await post_event(
        client,
        "invoice.payment_succeeded",
        {
            "id": "in_1",
            "subscription": stripe_sub_id,
            "amount_paid": 1_999,
            "currency": "usd",
            "lines": {"data": [{"period": {"end": calendar.timegm(period_end.timetuple())}}]},
        },
    )
    assert r.json()["handled"] is True

    r = await client.get("/v1/subscriptions/mine", headers=guest.headers)
    (sub,) = r.json()
    assert sub["status"] == "ACTIVE"
    assert sub["end_date"] is not None
    r = await client.get("/v1/users/me", headers=guest.headers)
    assert r.json()["is_subscribed"] is True
    r = await client.get("/v1/payments/transactions", headers=guest.headers)
    assert [(p["booking_type"], p["amount_cents"]) for p in r.json()] == [("SUBSCRIPTION", 1_999)]

    # One live subscription at a time; plans in use cannot be deleted.
    r = await client.post(f"/v1/subscriptions/plans/{plan['id']}/subscribe", headers=guest.headers)
    assert r.status_code == 409
    r = await client.delete(f"/v1/subscriptions/plans/{plan['id']}", headers=boss.headers)
    assert r.status_code == 409

    async with httpx.AsyncClient() as http:
        deps = JobDeps(
            session_factory=app.state.sessionmaker, settings=settings, gateway=gateway, push=push, http=http
        )
        assert await deactivate_lapsed_subscriptions(deps, now=utcnow()) == 0
        assert await deactivate_lapsed_subscriptions(deps, now=utcnow() + timedelta(days=31)) == 1

    r = await client.get("/v1/users/me", headers=guest.headers)
    assert r.json()["is_subscribed"] is False


@pytest.mark.asyncio
async def test_subscription_deleted_event(client) -> None:
    boss = await admin(client)
    plan = await _plan(client, boss)
    guest = await register(client)
    r = await client.post(f"/v1/subscriptions/plans/{plan['id']}/subscribe", headers=guest.headers)
    stripe_sub_id = r.json()["stripe_subscription_id"]

    r = await post_event(client, "customer.subscription.deleted", {"id": stripe_sub_id})
    assert r.json()["handled"] is True
    r = await client.get("/v1/subscriptions/mine", headers=guest.headers)
    assert r.json()[0]["status"] == "CANCELED"

    r = await post_event(client, "customer.subscription.deleted", {"id": "sub_unknown"})
    assert r.json()["handled"] is False


@pytest.mark.asyncio
async def test_partners_cannot_subscribe(client) -> None:
    boss = await admin(client)
    plan = await _plan(client, boss)
    host = await register(client, "PROPERTY_OWNER")
    r = await client.post(f"/v1/subscriptions/plans/{plan['id']}/subscribe", headers=host.headers)
    assert r.status_code == 403
