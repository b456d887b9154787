"""
tests.conftest

Shared fixtures: an app wired to a temporary SQLite file and in-process fakes for
Stripe, FCM and S3.

Responsibilities:
- Boot `create_app` inside its lifespan context (httpx ASGITransport has no lifespan).
- Record every outbound Stripe / push / storage call for assertions.
- Helpers to register users and sign Stripe webhook payloads.
"""

from __future__ import annotations

import hashlib
import hmac
import itertools
import json
import time
import uuid
from collections.abc import AsyncIterator
from datetime import date, timedelta
from typing import Any

import httpx
import pytest
import pytest_asyncio

from staybook.api.app import create_app
from staybook.db.models import utcnow
from staybook.domain.slots import WEEKDAYS, weekday_name
from staybook.integrations.push import FirebasePushSender
from staybook.integrations.storage import S3Storage, build_key
from staybook.integrations.stripe_gateway import (
    CheckoutSession,
    ConnectStatus,
    PaymentGatewayError,
    StripeGateway,
    SubscriptionHandle,
)
from staybook.settings import Settings

WEBHOOK_SECRET = "whsec_test_secret"
SUPER_ADMIN_EMAIL = "root@staybook.test"
SUPER_ADMIN_PASSWORD = "root-password"
_ids = itertools.count(1)


def _id(prefix: str) -> str:
    return f"{prefix}_{next(_ids)}"


class FakeGateway(StripeGateway):
    """
    Stripe stand-in; signature verification is the real SDK code path.
    """

    def __init__(self) -> None:
        super().__init__(api_key="sk_test_fake", webhook_secret=WEBHOOK_SECRET)
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.verified = True
        self.fail_on: set[str] = set()
        # Sessions the customer paid; Stripe refuses to expire those.
        self.completed_sessions: set[str] = set()

    def _record(self, name: str, /, **kwargs: Any) -> None:
        if name in self.fail_on:
            raise PaymentGatewayError(f"{name} failed")
        self.calls.append((name, kwargs))

    def called(self, name: str) -> list[dict[str, Any]]:
        return [kw for n, kw in self.calls if n == name]

    async def create_connect_account(self, *, email: str, country: str) -> str:
        self._record("create_connect_account", email=email, country=country)
        return _id("acct")

    async def get_connect_status(self, account_id: str) -> ConnectStatus:
        self._record("get_connect_status", account_id=account_id)
        return ConnectStatus(
            account_id=account_id,
            card_payments_active=self.verified,
            transfers_active=self.verified,
            requirements_due=[] if self.verified else ["external_account"],
        )

    async def create_onboarding_link(
        self, *, account_id: str, refresh_url: str, return_url: str
    ) -> str:
        self._record("create_onboarding_link", account_id=account_id)
        return f"https://connect.stripe.test/setup/{account_id}"

    async def create_checkout_session(self, **kwargs: Any) -> CheckoutSession:
        self._record("create_checkout_session", **kwargs)
        sid = _id("cs_test")
        return CheckoutSession(id=sid, url=f"https://checkout.stripe.test/{sid}")

    async def expire_checkout_session(self, session_id: str) -> str:
        self._record("expire_checkout_session", session_id=session_id)
        return "complete" if session_id in self.completed_sessions else "expired"

    async def latest_charge_id(self, payment_intent_id: str) -> str | None:
        self._record("latest_charge_id", payment_intent_id=payment_intent_id)
        return f"ch_for_{payment_intent_id}"

    async def capture_payment_intent(self, payment_intent_id: str, *, idempotency_key: str) -> str:
        self._record(
            "capture_payment_intent",
            payment_intent_id=payment_intent_id,
            idempotency_key=idempotency_key,
        )
        return f"ch_for_{payment_intent_id}"

    async def cancel_payment_intent(self, payment_intent_id: str, *, idempotency_key: str) -> None:
        self._record(
            "cancel_payment_intent",
            payment_intent_id=payment_intent_id,
            idempotency_key=idempotency_key,
        )

    async def create_transfer(self, **kwargs: Any) -> str:
        self._record("create_transfer", **kwargs)
        return _id("tr")

    async def refund_destination_charge(self, *, payment_intent_id: str, idempotency_key: str) -> str:
        self._record(
            "refund_destination_charge",
            payment_intent_id=payment_intent_id,
            idempotency_key=idempotency_key,
        )
        return _id("re")

    async def create_customer(self, *, email: str, name: str, user_id: str) -> str:
        self._record("create_customer", email=email, user_id=user_id)
        return _id("cus")

    async def create_recurring_price(self, **kwargs: Any) -> tuple[str, str]:
        self._record("create_recurring_price", **kwargs)
        return _id("prod"), _id("price")

    async def rename_product(self, product_id: str, *, name: str) -> None:
        self._record("rename_product", product_id=product_id, name=name)

    async def archive_product(self, product_id: str, *, price_id: str | None) -> None:
        self._record("archive_product", product_id=product_id, price_id=price_id)

    async def create_subscription(
        self, *, customer_id: str, price_id: str, metadata: dict[str, str]
    ) -> SubscriptionHandle:
        self._record("create_subscription", customer_id=customer_id, price_id=price_id)
        return SubscriptionHandle(id=_id("sub"), status="incomplete", client_secret="pi_secret")


class FakePush(FirebasePushSender):
    def __init__(self) -> None:
        super().__init__(credentials_file=None)
        self.sent: list[dict[str, Any]] = []

    async def send(
        self, *, token: str, title: str, body: str, data: dict[str, str] | None = None
    ) -> str | None:
        self.sent.append({"token": token, "title": title, "body": body, "data": data})
        return _id("projects/test/messages")


class FakeStorage(S3Storage):
    def __init__(self) -> None:
        # No boto3 client: uploads stay in memory.
        self._bucket = "test-bucket"
        self._public_base = "https://cdn.test"
        self.objects: dict[str, tuple[bytes, str]] = {}

    async def put(self, *, prefix: str, filename: str, body: bytes, content_type: str) -> str:
        key = build_key(prefix, filename)
        self.objects[key] = (body, content_type)
        return self.public_url(key)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'staybook-test.db'}",
        jwt_secret="test-secret",
        stripe_webhook_secret=WEBHOOK_SECRET,
        super_admin_email=SUPER_ADMIN_EMAIL,
        super_admin_password=SUPER_ADMIN_PASSWORD,
        log_level="WARNING",
    )


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def push() -> FakePush:
    return FakePush()


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest_asyncio.fixture
async def app(settings, gateway, push, storage) -> AsyncIterator[Any]:
    app = create_app(settings=settings, gateway=gateway, push=push, storage=storage)
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def client(app) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


# --- Helpers -----------------------------------------------------------------------


class Account:
    def __init__(self, user: dict[str, Any], token: str) -> None:
        self.user = user
        self.token = token

    @property
    def id(self) -> str:
        return self.user["id"]

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


async def register(client: httpx.AsyncClient, role: str = "USER", **extra: Any) -> Account:
    email = f"{role.lower()}-{uuid.uuid4().hex[:8]}@example.com"
    r = await client.post(
        "/v1/auth/register",
        json={"email": email, "password": "correct-horse", "full_name": role.title(), "role": role, **extra},
    )
    assert r.status_code == 201, r.text
    body = r.json()
    return Account(body["user"], body["access_token"])


async def onboard(client: httpx.AsyncClient, partner: Account) -> None:
    r = await client.post("/v1/payments/onboard", headers=partner.headers)
    assert r.status_code == 200, r.text
    assert r.json()["verified"] is True


async def create_hotel(client: httpx.AsyncClient, owner: Account, **overrides: Any) -> dict[str, Any]:
    payload = {
        "property_title": "Harbour Loft",
        "property_address": "1 Quay St",
        "property_description": "Two rooms over the water",
        "max_guests": 4,
        "base_price_cents": 10_000,
        "weekly_offer_percent": 10,
        "monthly_offer_percent": 20,
        "smart_lock_code": "4321",
        "inventory": [{"name": "Towels", "quantity": 8}],
        **overrides,
    }
    r = await client.post("/v1/hotels", json=payload, headers=owner.headers)
    assert r.status_code == 201, r.text
    return r.json()


async def create_service(client: httpx.AsyncClient, provider: Account, **overrides: Any) -> dict[str, Any]:
    payload = {
        "service_name": "Deep clean",
        "service_type": "cleaning",
        "price_cents": 5_000,
        "availability": [
            {"day": day, "slots": [{"from": "09:00 AM", "to": "11:00 AM"}]} for day in WEEKDAYS
        ],
        **overrides,
    }
    r = await client.post("/v1/services", json=payload, headers=provider.headers)
    assert r.status_code == 201, r.text
    return r.json()


def future(days: int) -> date:
    # Services compare against the UTC date.
    return utcnow().date() + timedelta(days=days)


def service_booking_payload(service_id: str, hotel_id: str, *, days_ahead: int = 7) -> dict[str, Any]:
    on = future(days_ahead)
    return {
        "service_id": service_id,
        "hotel_id": hotel_id,
        "date": on.isoformat(),
        "day": weekday_name(on),
        "slot_from": "09:00 AM",
        "slot_to": "11:00 AM",
        "offered_services": [
            {"name": "Kitchen", "price_cents": 3_000},
            {"name": "Bathroom", "price_cents": 2_000},
        ],
    }


def signed_event(event_type: str, obj: dict[str, Any], *, event_id: str | None = None) -> tuple[bytes, dict[str, str]]:
    """
    Build a Stripe event body plus a valid `Stripe-Signature` header for it.
    """

    payload = json.dumps(
        {
            "id": event_id or _id("evt"),
            "object": "event",
            "type": event_type,
            "data": {"object": obj},
        }
    ).encode()
    ts = int(time.time())
    sig = hmac.new(
        WEBHOOK_SECRET.encode(), f"{ts}.".encode() + payload, hashlib.sha256
    ).hexdigest()
    return payload, {"Stripe-Signature": f"t={ts},v1={sig}", "Content-Type": "application/json"}


async def post_event(
    client: httpx.AsyncClient, event_type: str, obj: dict[str, Any], *, event_id: str | None = None
) -> httpx.Response:
    payload, headers = signed_event(event_type, obj, event_id=event_id)
    return await client.post("/v1/payments/webhook", content=payload, headers=headers)


async def login(client: httpx.AsyncClient, email: str, password: str) -> Account:
    r = await client.post("/v1/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    body = r.json()
    return Account(body["user"], body["access_token"])


async def super_admin(client: httpx.AsyncClient) -> Account:
    return await login(client, SUPER_ADMIN_EMAIL, SUPER_ADMIN_PASSWORD)


async def admin(client: httpx.AsyncClient) -> Account:
    root = await super_admin(client)
    email = f"admin-{uuid.uuid4().hex[:8]}@staybook.test"
    r = await client.post(
        "/v1/users/admins",
        json={"email": email, "password": "admin-password", "full_name": "Admin"},
        headers=root.headers,
    )
    assert r.status_code == 201, r.text
    return await login(client, email, "admin-password")
