"""
staybook.db.repositories.payments

Repository for `Payment` entities.

Responsibilities:
- Lookups by Stripe identifiers (checkout session, payment intent, charge) for webhooks.
- Payments for a booking by status (a booking may be retried through several checkouts).
- Aggregates for statistics.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from staybook.db.models import BookingType, Payment, PaymentStatus


class PaymentRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, payment: Payment) -> Payment:
        self._session.add(payment)
        await self._session.flush()
        return payment

    async def get(self, payment_id: uuid.UUID) -> Payment | None:
        return await self._session.get(Payment, payment_id)

    async def by_checkout_session(self, session_id: str) -> Payment | None:
        stmt = select(Payment).where(Payment.checkout_session_id == session_id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def by_payment_intent(self, intent_id: str) -> Payment | None:
        stmt = select(Payment).where(Payment.payment_intent_id == intent_id)
        return (await self._session.execute(stmt.limit(1))).scalar_one_or_none()

    async def by_charge(self, charge_id: str) -> Payment | None:
        stmt = select(Payment).where(Payment.charge_id == charge_id)
        return (await self._session.execute(stmt.limit(1))).scalar_one_or_none()

    async def for_hotel_booking(
        self, booking_id: uuid.UUID, *statuses: PaymentStatus
    ) -> list[Payment]:
        """
        Payments for a hotel booking, newest first, optionally narrowed to `statuses`.
        """

        stmt = select(Payment).where(Payment.hotel_booking_id == booking_id)
        if statuses:
            stmt = stmt.where(Payment.status.in_(statuses))
        stmt = stmt.order_by(Payment.created_at.desc())
        return list((await self._session.execute(stmt)).scalars().all())

    async def for_service_booking(
        self, booking_id: uuid.UUID, *statuses: PaymentStatus
    ) -> list[Payment]:
        stmt = select(Payment).where(Payment.service_booking_id == booking_id)
        if statuses:
            stmt = stmt.where(Payment.status.in_(statuses))
        stmt = stmt.order_by(Payment.created_at.desc())
        return list((await self._session.execute(stmt)).scalars().all())

    async def paid_by_user(self, user_id: uuid.UUID) -> list[Payment]:
        stmt = (
            select(Payment)
            .where(Payment.user_id == user_id, Payment.status == PaymentStatus.PAID)
            .order_by(Payment.created_at.desc())
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def paid_to_partner(
        self,
        partner_id: uuid.UUID,
        *,
        booking_type: BookingType,
        since: datetime | None = None,
    ) -> list[Payment]:
        stmt = select(Payment).where(
            Payment.partner_id == partner_id,
            Payment.booking_type == booking_type,
            Payment.status == PaymentStatus.PAID,
        )
        if since is not None:
            stmt = stmt.where(Payment.created_at >= since)
        return list((await self._session.execute(stmt)).scalars().all())

    async def platform_totals(self, *, since: datetime | None = None) -> tuple[int, int]:
        """
        Returns `(admin_earnings_cents, gross_volume_cents)` over PAID payments.
        """

        stmt = select(
            func.coalesce(func.sum(Payment.admin_amount_cents), 0),
            func.coalesce(func.sum(Payment.amount_cents), 0),
        ).where(Payment.status == PaymentStatus.PAID)
        if since is not None:
            stmt = stmt.where(Payment.created_at >= since)
        admin, gross = (await self._session.execute(stmt)).one()
        return int(admin), int(gross)
