"""
staybook.services.hotel_bookings

Hotel stay bookings.

Responsibilities:
- Quote a stay (nightly/custom prices + tiered discount).
- Create PENDING bookings after availability and capacity checks.
- Booker / partner listings and partner status changes.
"""

from __future__ import annotations

import uuid
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from staybook.auth.models import Principal
from staybook.db.models import (
    BookingSource,
    BookingStatus,
    BookingType,
    Hotel,
    HotelBooking,
    UserRole,
    utcnow,
)
from staybook.db.repositories.hotel_bookings import HotelBookingRepo
from staybook.db.repositories.hotels import HotelRepo
from staybook.db.repositories.users import UserRepo
from staybook.domain.pricing import DiscountPolicy, StayQuote, quote_stay
from staybook.domain.transitions import HOTEL_TRANSITIONS
from staybook.observability.logging import get_logger
from staybook.services.errors import BadRequest, Conflict, Forbidden, NotFound
from staybook.services.guards import active_user, apply_transition
from staybook.services.hotels import price_ranges
from staybook.services.notifications import NotificationService
from staybook.services.payments import PaymentService
from staybook.settings import Settings

log = get_logger(__name__)


class HotelBookingService:
    def __init__(
        self,
        *,
        session: AsyncSession,
        settings: Settings,
        notifier: NotificationService,
        payments: PaymentService,
    ) -> None:
        self._session = session
        self._settings = settings
        self._notifier = notifier
        self._payments = payments

        self._users = UserRepo(session)
        self._hotels = HotelRepo(session)
        self._bookings = HotelBookingRepo(session)

    def _policy(self, hotel: Hotel) -> DiscountPolicy:
        return DiscountPolicy(
            weekly_percent=hotel.weekly_offer_percent,
            monthly_percent=hotel.monthly_offer_percent,
            weekly_min_nights=self._settings.weekly_discount_min_nights,
            monthly_min_nights=self._settings.monthly_discount_min_nights,
        )

    async def quote(self, hotel_id: uuid.UUID, *, booked_from: date, booked_to: date) -> StayQuote:
        hotel = await self._hotels.get(hotel_id)
        if hotel is None:
            raise NotFound("Hotel not found")
        if booked_to <= booked_from:
            raise BadRequest("Check-out must be after check-in")
        return quote_stay(
            base_price_cents=hotel.base_price_cents,
            custom_prices=price_ranges(hotel),
            start=booked_from,
            end=booked_to,
            policy=self._policy(hotel),
        )

    async def create(
        self,
        principal: Principal,
        *,
        hotel_id: uuid.UUID,
        booked_from: date,
        booked_to: date,
        guests: int,
    ) -> HotelBooking:
        user = await active_user(self._users, principal)
        hotel = await self._hotels.get(hotel_id)
        if hotel is None:
            raise NotFound("Hotel not found")
        if hotel.partner_id == user.id:
            raise BadRequest("You cannot book your own property")
        if booked_to <= booked_from:
            raise BadRequest("Check-out must be after check-in")
        if booked_from < utcnow().date():
            raise BadRequest("Check-in date is in the past")
        if not 1 <= guests <= hotel.max_guests:
            raise BadRequest(f"Guests must be between 1 and {hotel.max_guests}")
        if await self._bookings.has_overlap(hotel_id=hotel.id, start=booked_from, end=booked_to):
            raise Conflict("Hotel is not available for the selected dates")

        quote = quote_stay(
            base_price_cents=hotel.base_price_cents,
            custom_prices=price_ranges(hotel),
            start=booked_from,
            end=booked_to,
            policy=self._policy(hotel),
        )
        booking = await self._bookings.add(
            HotelBooking(
                hotel=hotel,
                user_id=user.id,
                partner_id=hotel.partner_id,
                booked_from=booked_from,
                booked_to=booked_to,
                guests=guests,
                nights=quote.nights,
                subtotal_cents=quote.subtotal_cents,
                discount_cents=quote.discount_cents,
                total_price_cents=quote.total_cents,
                currency=hotel.currency,
                status=BookingStatus.PENDING,
                source=BookingSource.DIRECT,
            )
        )
        await self._session.commit()
        log.info(
            "hotel_booking_created",
            booking_id=str(booking.id),
            hotel_id=str(hotel.id),
            nights=quote.nights,
            total_cents=quote.total_cents,
        )
        return booking

    async def get(self, principal: Principal, booking_id: uuid.UUID) -> HotelBooking:
        booking = await self._bookings.get(booking_id)
        if booking is None:
            raise NotFound("Booking not found")
        if principal.user_id not in (booking.user_id, booking.partner_id) and not principal.is_admin:
            raise NotFound("Booking not found")
        return booking

    async def mine(
        self, principal: Principal, *, status: BookingStatus | None = None
    ) -> list[HotelBooking]:
        return await self._bookings.for_user(principal.user_id, status=status)

    async def for_partner(
        self, principal: Principal, *, status: BookingStatus | None = None
    ) -> list[HotelBooking]:
        if not principal.has_role(UserRole.PROPERTY_OWNER.value) and not principal.is_admin:
            raise Forbidden("Only property owners have hotel bookings to manage")
        return await self._bookings.for_partner(principal.user_id, status=status)

    async def set_status(
        self, principal: Principal, booking_id: uuid.UUID, status: BookingStatus
    ) -> HotelBooking:
        booking = await self._bookings.get(booking_id)
        if booking is None:
            raise NotFound("Booking not found")
        if booking.partner_id != principal.user_id and not principal.is_admin:
            raise Forbidden("Only the hotel owner can change this booking")

        if status == BookingStatus.CANCELLED:
            # Cancelling may move money; that path lives with the payment logic.
            return await self._payments.cancel_hotel_booking(principal, booking_id)
        if status != BookingStatus.CONFIRMED:
            raise BadRequest("Status must be CONFIRMED or CANCELLED")

        if await self._bookings.has_overlap(
            hotel_id=booking.hotel_id,
            start=booking.booked_from,
            end=booking.booked_to,
            exclude_id=booking.id,
        ):
            raise Conflict("Another booking already holds these dates")
        apply_transition(HOTEL_TRANSITIONS, booking, BookingStatus.CONFIRMED)
        if booking.user_id is not None:
            guest = await self._users.get(booking.user_id)
            if guest is not None:
                await self._notifier.notify(
                    guest,
                    title="Booking confirmed",
                    body=f"Your stay at {booking.hotel.property_title} is confirmed",
                    booking_type=BookingType.HOTEL,
                    booking_id=booking.id,
                )
        await self._session.commit()
        log.info("booking_confirmed", booking_type="HOTEL", booking_id=str(booking.id), by="partner")
        return booking
