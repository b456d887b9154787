"""
staybook.integrations.stripe_gateway

Stripe client boundary used by the payment and subscription services.

Responsibilities:
- Wrap the blocking Stripe SDK in a threadpool so the event loop stays free.
- Attach idempotency keys to every money-moving call.
- Convert `stripe.StripeError` into `PaymentGatewayError` at this boundary.
- Verify webhook signatures and hand back the raw event as a plain dict.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import stripe
from starlette.concurrency import run_in_threadpool

from staybook.observability.logging import get_logger

log = get_logger(__name__)


class PaymentGatewayError(Exception):
    pass


class WebhookVerificationError(Exception):
    pass


@dataclass(frozen=True, slots=True)
class CheckoutSession:
    id: str
    url: str | None


@dataclass(frozen=True, slots=True)
class ConnectStatus:
    account_id: str
    card_payments_active: bool
    transfers_active: bool
    requirements_due: list[str] = field(default_factory=list)
    pending: list[str] = field(default_factory=list)

    @property
    def verified(self) -> bool:
        return self.card_payments_active and self.transfers_active


@dataclass(frozen=True, slots=True)
class SubscriptionHandle:
    id: str
    status: str
    client_secret: str | None


def dig(obj: Any, *path: str) -> Any:
    """
    Walk nested Stripe objects or dicts; returns None as soon as a hop is missing.
    """

    cur = obj
    for key in path:
        if cur is None:
            return None
        if isinstance(cur, dict):
            cur = cur.get(key)
        else:
            cur = getattr(cur, key, None)
    return cur


# First API version where invoices no longer carry `payment_intent`.
BASIL_API_VERSION = "2025-03-31"


def invoice_secret_field(api_version: str | None) -> str:
    """
    Invoice field that holds the client secret for the first subscription payment.

    Both fields cannot be expanded in one request: each API version rejects the other.
    """

    if api_version and api_version[:10] >= BASIL_API_VERSION:
        return "confirmation_secret"
    return "payment_intent"


class StripeGateway:
    def __init__(self, *, api_key: str, webhook_secret: str) -> None:
        self._api_key = api_key
        self._webhook_secret = webhook_secret

    async def _call(self, fn, *args: Any, **kwargs: Any) -> Any:
        try:
            return await run_in_threadpool(fn, *args, api_key=self._api_key, **kwargs)
        except stripe.StripeError as e:
            log.warning(
                "stripe_call_failed",
                operation=getattr(fn, "__qualname__", str(fn)),
                code=getattr(e, "code", None),
                error=str(e),
            )
            raise PaymentGatewayError(getattr(e, "user_message", None) or str(e)) from e

    # --- Connect -----------------------------------------------------------

    async def create_connect_account(self, *, email: str, country: str) -> str:
        acct = await self._call(
            stripe.Account.create,
            type="express",
            country=country,
            email=email,
            capabilities={"card_payments": {"requested": True}, "transfers": {"requested": True}},
        )
        return acct.id

    async def get_connect_status(self, account_id: str) -> ConnectStatus:
        acct = await self._call(stripe.Account.retrieve, account_id)
        return ConnectStatus(
            account_id=account_id,
            card_payments_active=dig(acct, "capabilities", "card_payments") == "active",
            transfers_active=dig(acct, "capabilities", "transfers") == "active",
            requirements_due=list(dig(acct, "requirements", "currently_due") or []),
            pending=list(dig(acct, "requirements", "pending_verification") or []),
        )

    async def create_onboarding_link(
        self, *, account_id: str, refresh_url: str, return_url: str
    ) -> str:
        link = await self._call(
            stripe.AccountLink.create,
            account=account_id,
            refresh_url=refresh_url,
            return_url=return_url,
            type="account_onboarding",
        )
        return link.url

    # --- Checkout / payments -------------------------------------------------

    async def create_checkout_session(
        self,
        *,
        amount_cents: int,
        currency: str,
        product_name: str,
        customer_email: str,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
        idempotency_key: str,
        destination_account: str | None = None,
        application_fee_cents: int | None = None,
        manual_capture: bool = False,
        expires_at: datetime | None = None,
    ) -> CheckoutSession:
        extra: dict[str, Any] = {}
        if expires_at is not None:
            extra["expires_at"] = int(expires_at.replace(tzinfo=timezone.utc).timestamp())
        intent_data: dict[str, Any] = {"metadata": metadata}
        if manual_capture:
            intent_data["capture_method"] = "manual"
        if destination_account is not None:
            # Destination charge: Stripe moves (amount - fee) to the partner at capture.
            intent_data["transfer_data"] = {"destination": destination_account}
            if application_fee_cents is not None:
                intent_data["application_fee_amount"] = application_fee_cents

        session = await self._call(
            stripe.checkout.Session.create,
            mode="payment",
            payment_method_types=["card"],
            customer_email=customer_email,
            line_items=[
                {
                    "price_data": {
                        "currency": currency,
                        "product_data": {"name": product_name},
                        "unit_amount": amount_cents,
                    },
                    "quantity": 1,
                }
            ],
            metadata=metadata,
            payment_intent_data=intent_data,
            success_url=success_url,
            cancel_url=cancel_url,
            idempotency_key=idempotency_key,
            **extra,
        )
        return CheckoutSession(id=session.id, url=getattr(session, "url", None))

    async def expire_checkout_session(self, session_id: str) -> str:
        """
        Close an open checkout session so it can no longer be paid.

        Returns the session's final status: "expired", or "complete" when the customer
        paid before the session could be closed.
        """

        session = await self._call(stripe.checkout.Session.retrieve, session_id)
        if session.status != "open":
            return str(session.status)
        session = await self._call(stripe.checkout.Session.expire, session_id)
        return str(session.status)

    async def latest_charge_id(self, payment_intent_id: str) -> str | None:
        intent = await self._call(stripe.PaymentIntent.retrieve, payment_intent_id)
        charge = getattr(intent, "latest_charge", None)
        return charge if isinstance(charge, str) or charge is None else charge.id

    async def capture_payment_intent(self, payment_intent_id: str, *, idempotency_key: str) -> str:
        """
        Capture a held (manual-capture) intent; returns the resulting charge id.
        """

        intent = await self._call(
            stripe.PaymentIntent.capture, payment_intent_id, idempotency_key=idempotency_key
        )
        charge = getattr(intent, "latest_charge", None)
        if charge is None:
            raise PaymentGatewayError("Captured payment has no charge")
        return charge if isinstance(charge, str) else charge.id

    async def cancel_payment_intent(self, payment_intent_id: str, *, idempotency_key: str) -> None:
        await self._call(
            stripe.PaymentIntent.cancel, payment_intent_id, idempotency_key=idempotency_key
        )

    async def create_transfer(
        self,
        *,
        amount_cents: int,
        currency: str,
        destination: str,
        source_transaction: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> str:
        transfer = await self._call(
            stripe.Transfer.create,
            amount=amount_cents,
            currency=currency,
            destination=destination,
            source_transaction=source_transaction,
            metadata=metadata or {},
            idempotency_key=idempotency_key,
        )
        return transfer.id

    async def refund_destination_charge(
        self, *, payment_intent_id: str, idempotency_key: str
    ) -> str:
        # Pull the partner's share back and return the platform fee as well.
        refund = await self._call(
            stripe.Refund.create,
            payment_intent=payment_intent_id,
            reverse_transfer=True,
            refund_application_fee=True,
            idempotency_key=idempotency_key,
        )
        return refund.id

    # --- Billing ---------------------------------------------------------------

    async def create_customer(self, *, email: str, name: str, user_id: str) -> str:
        customer = await self._call(
            stripe.Customer.create,
            email=email,
            name=name,
            metadata={"user_id": user_id},
            idempotency_key=f"customer_{user_id}",
        )
        return customer.id

    async def create_recurring_price(
        self, *, name: str, amount_cents: int, currency: str, interval: str, interval_count: int
    ) -> tuple[str, str]:
        product = await self._call(stripe.Product.create, name=name)
        price = await self._call(
            stripe.Price.create,
            product=product.id,
            unit_amount=amount_cents,
            currency=currency,
            recurring={"interval": interval, "interval_count": interval_count},
        )
        return product.id, price.id

    async def rename_product(self, product_id: str, *, name: str) -> None:
        await self._call(stripe.Product.modify, product_id, name=name)

    async def archive_product(self, product_id: str, *, price_id: str | None) -> None:
        if price_id:
            await self._call(stripe.Price.modify, price_id, active=False)
        await self._call(stripe.Product.modify, product_id, active=False)

    async def create_subscription(
        self, *, customer_id: str, price_id: str, metadata: dict[str, str]
    ) -> SubscriptionHandle:
        secret_field = invoice_secret_field(stripe.api_version)
        sub = await self._call(
            stripe.Subscription.create,
            customer=customer_id,
            items=[{"price": price_id}],
            payment_behavior="default_incomplete",
            payment_settings={"save_default_payment_method": "on_subscription"},
            expand=[f"latest_invoice.{secret_field}"],
            metadata=metadata,
        )
        secret = dig(sub, "latest_invoice", secret_field, "client_secret")
        return SubscriptionHandle(id=sub.id, status=str(sub.status), client_secret=secret)

    # --- Webhooks --------------------------------------------------------------

    def parse_webhook(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        if not signature:
            raise WebhookVerificationError("Missing Stripe-Signature header")
        try:
            stripe.Webhook.construct_event(payload, signature, self._webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            raise WebhookVerificationError(str(e)) from e
        return json.loads(payload)
