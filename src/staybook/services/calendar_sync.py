"""
staybook.services.calendar_sync

Import Airbnb reservations into the local booking table.

Responsibilities:
- For every hotel with sync enabled, read its Airbnb iCal export.
- Create CONFIRMED `AIRBNB` bookings for reservation UIDs we have not seen.
- Keep dates of known reservations current; cancel them when the feed says so.
- Isolate failures per hotel: a broken feed or a failed write rolls back that hotel only.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from staybook.db.models import BookingSource, BookingStatus, Hotel, HotelBooking
from staybook.db.repositories.hotel_bookings import HotelBookingRepo
from staybook.db.repositories.hotels import HotelRepo
from staybook.domain.ical import CalendarEvent
from staybook.domain.transitions import HOTEL_TRANSITIONS, can_transition
from staybook.integrations.calendar_feed import CalendarFeedClient
from staybook.observability.logging import get_logger

log = get_logger(__name__)


@dataclass(slots=True)
class SyncReport:
    hotels: int = 0
    created: int = 0
    updated: int = 0
    cancelled: int = 0
    failed: int = 0


class CalendarSyncService:
    def __init__(self, *, session: AsyncSession, feeds: CalendarFeedClient) -> None:
        self._session = session
        self._feeds = feeds
        self._hotels = HotelRepo(session)
        self._bookings = HotelBookingRepo(session)

    async def sync_all(self) -> SyncReport:
        report = SyncReport()
        # Plain values: a rollback below expires every loaded hotel.
        targets = [(h.id, h.airbnb_ical_url or "") for h in await self._hotels.sync_enabled()]
        for hotel_id, url in targets:
            report.hotels += 1
            try:
                counts = await self._sync_hotel(hotel_id, url)
            except Exception as e:
                await self._session.rollback()
                report.failed += 1
                log.warning(
                    "calendar_sync_failed",
                    hotel_id=str(hotel_id),
                    error_type=type(e).__name__,
                    error=str(e),
                )
                continue
            report.created += counts.created
            report.updated += counts.updated
            report.cancelled += counts.cancelled
        log.info(
            "calendar_sync_done",
            hotels=report.hotels,
            created=report.created,
            updated=report.updated,
            cancelled=report.cancelled,
            failed=report.failed,
        )
        return report

    async def _sync_hotel(self, hotel_id: uuid.UUID, url: str) -> SyncReport:
        counts = SyncReport()
        events = await self._feeds.reservations(url)
        hotel = await self._hotels.get(hotel_id)
        if hotel is None:
            return counts
        await self._apply(hotel, events, counts)
        await self._session.commit()
        return counts

    async def _apply(self, hotel: Hotel, events: list[CalendarEvent], report: SyncReport) -> None:
        for event in events:
            if event.end <= event.start:
                continue
            existing = await self._bookings.get_by_external_id(hotel.id, event.uid)

            if event.is_cancelled:
                if existing is not None and can_transition(
                    HOTEL_TRANSITIONS, existing.status, BookingStatus.CANCELLED
                ):
                    existing.status = BookingStatus.CANCELLED
                    report.cancelled += 1
                continue

            if existing is not None:
                if (existing.booked_from, existing.booked_to) != (event.start, event.end):
                    existing.booked_from = event.start
                    existing.booked_to = event.end
                    existing.nights = (event.end - event.start).days
                    report.updated += 1
                continue

            if await self._bookings.has_overlap(hotel_id=hotel.id, start=event.start, end=event.end):
                # Already sold on Airbnb; record it anyway so the calendar reflects reality.
                log.warning(
                    "calendar_sync_overlap",
                    hotel_id=str(hotel.id),
                    uid=event.uid,
                    start=event.start.isoformat(),
                    end=event.end.isoformat(),
                )
            await self._bookings.add(
                HotelBooking(
                    hotel=hotel,
                    user_id=None,
                    partner_id=hotel.partner_id,
                    booked_from=event.start,
                    booked_to=event.end,
                    guests=1,
                    nights=(event.end - event.start).days,
                    subtotal_cents=0,
                    discount_cents=0,
                    total_price_cents=0,
                    currency=hotel.currency,
                    status=BookingStatus.CONFIRMED,
                    source=BookingSource.AIRBNB,
                    external_booking_id=event.uid,
                )
            )
            report.created += 1
