"""
tests.test_stripe_gateway

The real gateway against patched Stripe SDK entry points: request shapes only.
"""

from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any

import pytest
import stripe

from staybook.integrations.stripe_gateway import StripeGateway, invoice_secret_field


def _gateway() -> StripeGateway:
    return StripeGateway(api_key="sk_test_gateway", webhook_secret="whsec_gateway")


def test_invoice_secret_field_follows_api_version() -> None:
    assert invoice_secret_field("2025-03-31.basil") == "confirmation_secret"
    assert invoice_secret_field("2025-09-30.clover") == "confirmation_secret"
    assert invoice_secret_field("2024-06-20") == "payment_intent"
    assert invoice_secret_field(None) == "payment_intent"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("api_version", "secret_field"),
    [("2025-03-31.basil", "confirmation_secret"), ("2024-06-20", "payment_intent")],
)
async def test_subscription_expands_one_secret_field(monkeypatch, api_version, secret_field) -> None:
    seen: dict[str, Any] = {}

    def create(**kwargs: Any) -> SimpleNamespace:
        seen.update(kwargs)
        return SimpleNamespace(
            id="sub_1",
            status="incomplete",
            latest_invoice={secret_field: {"client_secret": "secret_1"}},
        )

    monkeypatch.setattr(stripe, "api_version", api_version)
    monkeypatch.setattr(stripe.Subscription, "create", create)

    handle = await _gateway().create_subscription(
        customer_id="cus_1", price_id="price_1", metadata={"user_id": "u1"}
    )
    assert seen["expand"] == [f"latest_invoice.{secret_field}"]
    assert seen["api_key"] == "sk_test_gateway"
    assert (handle.id, handle.client_secret) == ("sub_1", "secret_1")


@pytest.mark.asyncio
async def test_checkout_session_request(monkeypatch) -> None:
    seen: dict[str, Any] = {}

    def create(**kwargs: Any) -> SimpleNamespace:
        seen.update(kwargs)
        return SimpleNamespace(id="cs_1", url="https://checkout.stripe.test/cs_1")

    monkeypatch.setattr(stripe.checkout.Session, "create", create)

    session = await _gateway().create_checkout_session(
        amount_cents=21_000,
        currency="usd",
        product_name="Harbour Loft (2 nights)",
        customer_email="guest@staybook.test",
        metadata={"payment_id": "p1"},
        success_url="https://app.test/ok",
        cancel_url="https://app.test/cancel",
        idempotency_key="checkout_p1",
        destination_account="acct_1",
        application_fee_cents=4_000,
        expires_at=datetime(2030, 1, 1, 12, 0),
    )
    assert session.id == "cs_1"
    assert seen["expires_at"] == int(datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc).timestamp())
    assert seen["idempotency_key"] == "checkout_p1"
    intent = seen["payment_intent_data"]
    assert intent["transfer_data"] == {"destination": "acct_1"}
    assert intent["application_fee_amount"] == 4_000
    assert "capture_method" not in intent


@pytest.mark.asyncio
async def test_expire_leaves_completed_sessions_alone(monkeypatch) -> None:
    status = {"cs_paid": "complete", "cs_open": "open"}
    expired: list[str] = []

    def retrieve(session_id: str, **kwargs: Any) -> SimpleNamespace:
        return SimpleNamespace(id=session_id, status=status[session_id])

    def expire(session_id: str, **kwargs: Any) -> SimpleNamespace:
        expired.append(session_id)
        return SimpleNamespace(id=session_id, status="expired")

    monkeypatch.setattr(stripe.checkout.Session, "retrieve", retrieve)
    monkeypatch.setattr(stripe.checkout.Session, "expire", expire)

    gateway = _gateway()
    assert await gateway.expire_checkout_session("cs_paid") == "complete"
    assert await gateway.expire_checkout_session("cs_open") == "expired"
    assert expired == ["cs_open"]
