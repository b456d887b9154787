"""
staybook.db.repositories.hotel_bookings

Repository for `HotelBooking` entities.

Responsibilities:
- Overlap detection against active bookings (half-open `[from, to)` ranges).
- Booker / partner listings.
- Row scans used by the periodic jobs (stale PENDING, past check-out).
"""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from staybook.db.models import BookingStatus, HotelBooking
from staybook.domain.transitions import HOTEL_ACTIVE


class HotelBookingRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, booking: HotelBooking) -> HotelBooking:
        self._session.add(booking)
        await self._session.flush()
        return booking

    async def get(self, booking_id: uuid.UUID) -> HotelBooking | None:
        return await self._session.get(HotelBooking, booking_id)

    async def get_by_external_id(
        self, hotel_id: uuid.UUID, external_id: str
    ) -> HotelBooking | None:
        stmt = select(HotelBooking).where(
            HotelBooking.hotel_id == hotel_id, HotelBooking.external_booking_id == external_id
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def has_overlap(
        self,
        *,
        hotel_id: uuid.UUID,
        start: date,
        end: date,
        exclude_id: uuid.UUID | None = None,
    ) -> bool:
        stmt = select(HotelBooking.id).where(
            HotelBooking.hotel_id == hotel_id,
            HotelBooking.status.in_(HOTEL_ACTIVE),
            HotelBooking.booked_from < end,
            start < HotelBooking.booked_to,
        )
        if exclude_id is not None:
            stmt = stmt.where(HotelBooking.id != exclude_id)
        return (await self._session.execute(stmt.limit(1))).first() is not None

    async def has_active(self, hotel_id: uuid.UUID) -> bool:
        stmt = select(HotelBooking.id).where(
            HotelBooking.hotel_id == hotel_id, HotelBooking.status.in_(HOTEL_ACTIVE)
        )
        return (await self._session.execute(stmt.limit(1))).first() is not None

    async def for_user(
        self, user_id: uuid.UUID, *, status: BookingStatus | None = None
    ) -> list[HotelBooking]:
        stmt = select(HotelBooking).where(HotelBooking.user_id == user_id)
        if status is not None:
            stmt = stmt.where(HotelBooking.status == status)
        stmt = stmt.order_by(HotelBooking.created_at.desc())
        return list((await self._session.execute(stmt)).scalars().all())

    async def for_partner(
        self, partner_id: uuid.UUID, *, status: BookingStatus | None = None
    ) -> list[HotelBooking]:
        stmt = select(HotelBooking).where(HotelBooking.partner_id == partner_id)
        if status is not None:
            stmt = stmt.where(HotelBooking.status == status)
        stmt = stmt.order_by(HotelBooking.booked_from.desc())
        return list((await self._session.execute(stmt)).scalars().all())

    async def stale_pending(self, *, created_before: datetime) -> list[HotelBooking]:
        stmt = select(HotelBooking).where(
            HotelBooking.status == BookingStatus.PENDING,
            HotelBooking.created_at < created_before,
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def checked_out(self, *, today: date) -> list[HotelBooking]:
        # Check-out day itself still counts as the stay; completion happens the day after.
        stmt = select(HotelBooking).where(
            HotelBooking.status == BookingStatus.CONFIRMED,
            HotelBooking.booked_to < today,
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def created_at_for_partner(
        self,
        partner_id: uuid.UUID,
        *,
        statuses: frozenset[BookingStatus],
        since: datetime | None = None,
    ) -> list[datetime]:
        stmt = select(HotelBooking.created_at).where(
            HotelBooking.partner_id == partner_id, HotelBooking.status.in_(statuses)
        )
        if since is not None:
            stmt = stmt.where(HotelBooking.created_at >= since)
        return list((await self._session.execute(stmt)).scalars().all())

    async def count(self) -> int:
        stmt = select(func.count(HotelBooking.id))
        return int((await self._session.execute(stmt)).scalar_one())
