"""
staybook.services.subscriptions

Paid subscription plans for guests.

Responsibilities:
- Admin plan management backed by Stripe products and recurring prices.
- Subscribing a user (Stripe customer created once, incomplete subscription + client secret).
- Applying Stripe billing webhooks to the local subscription state.
- Deactivating subscriptions whose paid period has ended.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from staybook.auth.models import Principal
from staybook.db.models import (
    BookingType,
    Payment,
    PaymentStatus,
    SubscriptionPlan,
    SubscriptionStatus,
    UserRole,
    UserSubscription,
)
from staybook.db.repositories.payments import PaymentRepo
from staybook.db.repositories.subscriptions import SubscriptionRepo
from staybook.db.repositories.users import UserRepo
from staybook.integrations.stripe_gateway import StripeGateway, SubscriptionHandle, dig
from staybook.observability.logging import get_logger
from staybook.services.errors import BadRequest, Conflict, Forbidden, NotFound
from staybook.services.guards import active_user

log = get_logger(__name__)

BILLING_EVENTS = frozenset(
    {
        "invoice.payment_succeeded",
        "invoice.payment_failed",
        "customer.subscription.deleted",
        "customer.subscription.updated",
    }
)
INTERVALS = frozenset({"day", "week", "month", "year"})


def _from_epoch(value: Any) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=UTC).replace(tzinfo=None)


def _invoice_subscription_id(invoice: dict[str, Any]) -> str | None:
    # Newer API versions moved the subscription reference under `parent`.
    return invoice.get("subscription") or dig(
        invoice, "parent", "subscription_details", "subscription"
    )


def _period_end(obj: dict[str, Any]) -> datetime | None:
    lines = dig(obj, "lines", "data") or []
    if lines:
        return _from_epoch(dig(lines[0], "period", "end"))
    items = dig(obj, "items", "data") or []
    if obj.get("current_period_end") is not None:
        return _from_epoch(obj["current_period_end"])
    if items:
        return _from_epoch(items[0].get("current_period_end"))
    return None


class SubscriptionService:
    def __init__(self, *, session: AsyncSession, gateway: StripeGateway) -> None:
        self._session = session
        self._gateway = gateway
        self._subs = SubscriptionRepo(session)
        self._users = UserRepo(session)
        self._payments = PaymentRepo(session)

    # --- Plans ---------------------------------------------------------------------

    async def create_plan(
        self,
        principal: Principal,
        *,
        name: str,
        features: list[str],
        price_cents: int,
        currency: str,
        interval: str,
        interval_count: int = 1,
    ) -> SubscriptionPlan:
        if interval not in INTERVALS:
            raise BadRequest(f"Interval must be one of {sorted(INTERVALS)}")
        if price_cents <= 0:
            raise BadRequest("Price must be positive")
        product_id, price_id = await self._gateway.create_recurring_price(
            name=name,
            amount_cents=price_cents,
            currency=currency,
            interval=interval,
            interval_count=interval_count,
        )
        plan = await self._subs.add_plan(
            SubscriptionPlan(
                name=name,
                features=features,
                price_cents=price_cents,
                currency=currency,
                interval=interval,
                interval_count=interval_count,
                stripe_product_id=product_id,
                stripe_price_id=price_id,
                created_by=principal.user_id,
            )
        )
        await self._session.commit()
        log.info("plan_created", plan_id=str(plan.id), price_id=price_id)
        return plan

    async def plans(self, *, search: str | None = None) -> list[SubscriptionPlan]:
        return await self._subs.plans(search=search)

    async def get_plan(self, plan_id: uuid.UUID) -> SubscriptionPlan:
        plan = await self._subs.get_plan(plan_id)
        if plan is None:
            raise NotFound("Plan not found")
        return plan

    async def update_plan(
        self, plan_id: uuid.UUID, *, name: str | None, features: list[str] | None
    ) -> SubscriptionPlan:
        plan = await self.get_plan(plan_id)
        if name is not None and name != plan.name:
            if plan.stripe_product_id:
                await self._gateway.rename_product(plan.stripe_product_id, name=name)
            plan.name = name
        if features is not None:
            plan.features = features
        await self._session.commit()
        return plan

    async def delete_plan(self, plan_id: uuid.UUID) -> None:
        plan = await self.get_plan(plan_id)
        if await self._subs.plan_in_use(plan.id):
            raise Conflict("Plan has active subscribers")
        if plan.stripe_product_id:
            await self._gateway.archive_product(plan.stripe_product_id, price_id=plan.stripe_price_id)
        await self._subs.delete_plan(plan)
        await self._session.commit()

    # --- Subscribing -----------------------------------------------------------------

    async def subscribe(
        self, principal: Principal, plan_id: uuid.UUID
    ) -> tuple[UserSubscription, SubscriptionHandle]:
        user = await active_user(self._users, principal)
        if user.role != UserRole.USER:
            raise Forbidden("Only guests can subscribe")
        if user.is_subscribed:
            raise Conflict("You already have an active subscription")
        plan = await self.get_plan(plan_id)
        if not plan.stripe_price_id:
            raise BadRequest("Plan is not purchasable")

        if not user.stripe_customer_id:
            user.stripe_customer_id = await self._gateway.create_customer(
                email=user.email, name=user.full_name, user_id=str(user.id)
            )
            # Persist the customer even if the subscription call below fails.
            await self._session.commit()

        handle = await self._gateway.create_subscription(
            customer_id=user.stripe_customer_id,
            price_id=plan.stripe_price_id,
            metadata={"user_id": str(user.id), "plan_id": str(plan.id)},
        )
        sub = await self._subs.add(
            UserSubscription(
                user_id=user.id,
                plan_id=plan.id,
                stripe_subscription_id=handle.id,
                stripe_price_id=plan.stripe_price_id,
                status=SubscriptionStatus.INCOMPLETE,
            )
        )
        await self._session.commit()
        log.info("subscription_started", user_id=str(user.id), plan_id=str(plan.id))
        return sub, handle

    async def mine(self, principal: Principal) -> list[UserSubscription]:
        return await self._subs.for_user(principal.user_id)

    # --- Webhooks ----------------------------------------------------------------------

    async def apply_event(self, event_type: str, obj: dict[str, Any]) -> bool:
        """
        Apply one billing event; returns False when it refers to nothing we know.
        The caller commits.
        """

        if event_type.startswith("invoice."):
            stripe_sub_id = _invoice_subscription_id(obj)
        else:
            stripe_sub_id = obj.get("id")
        sub = await self._subs.by_stripe_id(stripe_sub_id) if stripe_sub_id else None
        if sub is None:
            return False
        user = await self._users.get(sub.user_id)

        if event_type == "invoice.payment_succeeded":
            sub.status = SubscriptionStatus.ACTIVE
            sub.end_date = _period_end(obj) or sub.end_date
            if user is not None:
                user.is_subscribed = True
            plan = await self._subs.get_plan(sub.plan_id)
            amount = int(obj.get("amount_paid") or 0)
            await self._payments.add(
                Payment(
                    user_id=sub.user_id,
                    booking_type=BookingType.SUBSCRIPTION,
                    subscription_id=sub.id,
                    amount_cents=amount,
                    currency=str(obj.get("currency") or (plan.currency if plan else "usd")),
                    status=PaymentStatus.PAID,
                    payment_intent_id=obj.get("payment_intent")
                    if isinstance(obj.get("payment_intent"), str)
                    else None,
                    admin_amount_cents=amount,
                    description=f"Subscription: {plan.name}" if plan else "Subscription",
                )
            )
        elif event_type == "invoice.payment_failed":
            sub.status = SubscriptionStatus.INACTIVE
            if user is not None:
                user.is_subscribed = False
        elif event_type == "customer.subscription.deleted":
            sub.status = SubscriptionStatus.CANCELED
            if user is not None:
                user.is_subscribed = False
        elif event_type == "customer.subscription.updated":
            sub.cancel_at_period_end = bool(obj.get("cancel_at_period_end"))
            sub.end_date = _period_end(obj) or sub.end_date

        log.info("subscription_event_applied", event_type=event_type, subscription_id=str(sub.id))
        return True

    async def deactivate_lapsed(self, *, now: datetime) -> int:
        lapsed = await self._subs.lapsed(now=now)
        for sub in lapsed:
            sub.status = SubscriptionStatus.INACTIVE
            user = await self._users.get(sub.user_id)
            if user is not None:
                user.is_subscribed = False
        await self._session.commit()
        return len(lapsed)
