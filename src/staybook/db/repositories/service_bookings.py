"""
staybook.db.repositories.service_bookings

Repository for `ServiceBooking` and `ProofVideo` entities.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from staybook.db.models import BookingStatus, ProofVideo, ServiceBooking
from staybook.domain.transitions import SERVICE_ACTIVE


class ServiceBookingRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, booking: ServiceBooking) -> ServiceBooking:
        self._session.add(booking)
        await self._session.flush()
        return booking

    async def get(self, booking_id: uuid.UUID) -> ServiceBooking | None:
        return await self._session.get(ServiceBooking, booking_id)

    async def slot_taken(
        self, *, service_id: uuid.UUID, on: date, slot_from: str, slot_to: str
    ) -> bool:
        stmt = select(ServiceBooking.id).where(
            ServiceBooking.service_id == service_id,
            ServiceBooking.date == on,
            ServiceBooking.slot_from == slot_from,
            ServiceBooking.slot_to == slot_to,
            ServiceBooking.status.in_(SERVICE_ACTIVE),
        )
        return (await self._session.execute(stmt.limit(1))).first() is not None

    async def for_owner(
        self, user_id: uuid.UUID, *, statuses: frozenset[BookingStatus] | None = None
    ) -> list[ServiceBooking]:
        stmt = select(ServiceBooking).where(ServiceBooking.user_id == user_id)
        if statuses is not None:
            stmt = stmt.where(ServiceBooking.status.in_(statuses))
        stmt = stmt.order_by(ServiceBooking.date.desc(), ServiceBooking.created_at.desc())
        return list((await self._session.execute(stmt)).scalars().all())

    async def for_provider(
        self, provider_id: uuid.UUID, *, statuses: frozenset[BookingStatus] | None = None
    ) -> list[ServiceBooking]:
        stmt = select(ServiceBooking).where(ServiceBooking.provider_id == provider_id)
        if statuses is not None:
            stmt = stmt.where(ServiceBooking.status.in_(statuses))
        stmt = stmt.order_by(ServiceBooking.date.asc(), ServiceBooking.created_at.asc())
        return list((await self._session.execute(stmt)).scalars().all())

    async def provider_works_at(self, *, provider_id: uuid.UUID, hotel_id: uuid.UUID) -> bool:
        stmt = select(ServiceBooking.id).where(
            ServiceBooking.provider_id == provider_id,
            ServiceBooking.hotel_id == hotel_id,
            ServiceBooking.status.in_(SERVICE_ACTIVE | {BookingStatus.COMPLETED}),
        )
        return (await self._session.execute(stmt.limit(1))).first() is not None

    async def stale_pending(self, *, created_before: datetime) -> list[ServiceBooking]:
        stmt = select(ServiceBooking).where(
            ServiceBooking.status == BookingStatus.PENDING,
            ServiceBooking.created_at < created_before,
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def unanswered(self, *, held_before: datetime) -> list[ServiceBooking]:
        stmt = select(ServiceBooking).where(
            ServiceBooking.status == BookingStatus.NEED_ACCEPT,
            ServiceBooking.held_at.is_not(None),
            ServiceBooking.held_at < held_before,
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def created_at_for_provider(
        self,
        provider_id: uuid.UUID,
        *,
        statuses: frozenset[BookingStatus],
        since: datetime | None = None,
    ) -> list[datetime]:
        stmt = select(ServiceBooking.created_at).where(
            ServiceBooking.provider_id == provider_id, ServiceBooking.status.in_(statuses)
        )
        if since is not None:
            stmt = stmt.where(ServiceBooking.created_at >= since)
        return list((await self._session.execute(stmt)).scalars().all())

    async def count(self) -> int:
        stmt = select(func.count(ServiceBooking.id))
        return int((await self._session.execute(stmt)).scalar_one())

    # --- Proof videos ------------------------------------------------------------

    async def proof_for(self, booking_id: uuid.UUID) -> ProofVideo | None:
        stmt = select(ProofVideo).where(ProofVideo.booking_id == booking_id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def add_proof(self, proof: ProofVideo) -> ProofVideo:
        self._session.add(proof)
        await self._session.flush()
        return proof
