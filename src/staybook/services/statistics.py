"""
staybook.services.statistics

Dashboard numbers for admins, property owners and service providers.

Responsibilities:
- Platform overview (users by role, bookings by type, admin earnings, gross volume).
- Partner earnings (hotel partner share / provider share of PAID payments) with a
  zero-filled 12-month trend for the current year.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from staybook.auth.models import Principal
from staybook.db.models import BookingStatus, BookingType, UserRole
from staybook.db.repositories.hotel_bookings import HotelBookingRepo
from staybook.db.repositories.hotels import HotelRepo
from staybook.db.repositories.payments import PaymentRepo
from staybook.db.repositories.service_bookings import ServiceBookingRepo
from staybook.db.repositories.users import UserRepo
from staybook.domain.trends import TimeRange, monthly_trend, range_start
from staybook.services.errors import Forbidden

EARNING_STATUSES = frozenset({BookingStatus.CONFIRMED, BookingStatus.COMPLETED})


@dataclass(frozen=True, slots=True)
class Overview:
    users_by_role: dict[str, int]
    hotels: int
    hotel_bookings: int
    service_bookings: int
    admin_earnings_cents: int
    gross_volume_cents: int


@dataclass(frozen=True, slots=True)
class Earnings:
    total_earnings_cents: int
    paid_payments: int
    bookings: int
    trend: list[dict[str, int | str]] = field(default_factory=list)


class StatisticsService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._users = UserRepo(session)
        self._hotels = HotelRepo(session)
        self._payments = PaymentRepo(session)
        self._hotel_bookings = HotelBookingRepo(session)
        self._service_bookings = ServiceBookingRepo(session)

    async def overview(
        self, *, time_range: TimeRange | None = None, now: datetime
    ) -> Overview:
        admin, gross = await self._payments.platform_totals(since=range_start(time_range, now))
        by_role = await self._users.count_by_role()
        return Overview(
            users_by_role={role.value: n for role, n in by_role.items()},
            hotels=await self._hotels.count(),
            hotel_bookings=await self._hotel_bookings.count(),
            service_bookings=await self._service_bookings.count(),
            admin_earnings_cents=admin,
            gross_volume_cents=gross,
        )

    async def partner_earnings(
        self, principal: Principal, *, time_range: TimeRange | None = None, now: datetime
    ) -> Earnings:
        if principal.has_role(UserRole.PROPERTY_OWNER.value):
            booking_type = BookingType.HOTEL
        elif principal.has_role(UserRole.SERVICE_PROVIDER.value):
            booking_type = BookingType.SERVICE
        else:
            raise Forbidden("Only property owners and service providers have earnings")

        since = range_start(time_range, now)
        paid = await self._payments.paid_to_partner(
            principal.user_id, booking_type=booking_type, since=since
        )
        if booking_type == BookingType.HOTEL:
            booked_at = await self._hotel_bookings.created_at_for_partner(
                principal.user_id, statuses=EARNING_STATUSES, since=since
            )
        else:
            booked_at = await self._service_bookings.created_at_for_provider(
                principal.user_id, statuses=EARNING_STATUSES, since=since
            )

        return Earnings(
            total_earnings_cents=sum(p.partner_amount_cents for p in paid),
            paid_payments=len(paid),
            bookings=len(booked_at),
            trend=monthly_trend(
                earnings=[(p.created_at, p.partner_amount_cents) for p in paid],
                bookings=booked_at,
                year=now.year,
            ),
        )
