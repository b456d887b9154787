"""
staybook.jobs.tasks

Periodic status sweeps.

Each task is a plain coroutine over a `JobDeps` bundle so it can be scheduled by the
arq worker or awaited directly (tests, one-off maintenance).

Responsibilities:
- Expire PENDING bookings whose checkout was never completed, closing their Stripe sessions.
- Complete hotel stays after check-out.
- Reject service requests the provider never answered, releasing the hold.
- Deactivate subscriptions whose paid period ended.
- Import Airbnb calendars.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from staybook.db.models import (
    BookingStatus,
    BookingType,
    HotelBooking,
    Payment,
    PaymentStatus,
    ServiceBooking,
)
from staybook.db.repositories.hotel_bookings import HotelBookingRepo
from staybook.db.repositories.payments import PaymentRepo
from staybook.db.repositories.service_bookings import ServiceBookingRepo
from staybook.db.repositories.users import UserRepo
from staybook.integrations.calendar_feed import CalendarFeedClient
from staybook.integrations.push import FirebasePushSender
from staybook.integrations.stripe_gateway import PaymentGatewayError, StripeGateway
from staybook.observability.logging import get_logger
from staybook.services.calendar_sync import CalendarSyncService, SyncReport
from staybook.services.notifications import NotificationService
from staybook.services.payments import PaymentService
from staybook.services.subscriptions import SubscriptionService
from staybook.settings import Settings

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class JobDeps:
    session_factory: async_sessionmaker[AsyncSession]
    settings: Settings
    gateway: StripeGateway
    push: FirebasePushSender
    http: httpx.AsyncClient


async def _close_checkouts(deps: JobDeps, open_payments: list[Payment]) -> bool:
    """
    Expire the Stripe sessions of a stale booking's unpaid payments.

    False when a session was paid in the meantime (its completion webhook settles the
    booking) or Stripe could not be reached; the booking then stays PENDING for now.
    """

    for payment in open_payments:
        if payment.checkout_session_id:
            try:
                status = await deps.gateway.expire_checkout_session(payment.checkout_session_id)
            except PaymentGatewayError as e:
                log.warning("checkout_expire_failed", payment_id=str(payment.id), error=str(e))
                return False
            if status == "complete":
                return False
        payment.status = PaymentStatus.FAILED
    return True


async def expire_pending_bookings(deps: JobDeps, *, now: datetime) -> int:
    cutoff = now - timedelta(minutes=deps.settings.pending_booking_ttl_minutes)
    expired = 0
    async with deps.session_factory() as session:
        payments = PaymentRepo(session)
        stale: list[tuple[BookingType, HotelBooking | ServiceBooking, list[Payment]]] = []
        for hotel_booking in await HotelBookingRepo(session).stale_pending(created_before=cutoff):
            open_payments = await payments.for_hotel_booking(hotel_booking.id, PaymentStatus.UNPAID)
            stale.append((BookingType.HOTEL, hotel_booking, open_payments))
        for service_booking in await ServiceBookingRepo(session).stale_pending(created_before=cutoff):
            open_payments = await payments.for_service_booking(
                service_booking.id, PaymentStatus.UNPAID
            )
            stale.append((BookingType.SERVICE, service_booking, open_payments))

        for booking_type, booking, open_payments in stale:
            if not await _close_checkouts(deps, open_payments):
                log.info(
                    "booking_expiry_deferred",
                    booking_type=booking_type.value,
                    booking_id=str(booking.id),
                )
                continue
            booking.status = BookingStatus.EXPIRED
            expired += 1
            log.info(
                "booking_expired", booking_type=booking_type.value, booking_id=str(booking.id)
            )
        await session.commit()
    return expired


async def complete_checked_out_stays(deps: JobDeps, *, now: datetime) -> int:
    async with deps.session_factory() as session:
        done = await HotelBookingRepo(session).checked_out(today=now.date())
        for booking in done:
            booking.status = BookingStatus.COMPLETED
            log.info("booking_completed", booking_type="HOTEL", booking_id=str(booking.id))
        await session.commit()
    return len(done)


async def reject_unanswered_requests(deps: JobDeps, *, now: datetime) -> int:
    cutoff = now - timedelta(hours=deps.settings.provider_accept_window_hours)
    rejected = 0
    async with deps.session_factory() as session:
        notifier = NotificationService(session=session, push=deps.push)
        payments = PaymentService(
            session=session, settings=deps.settings, gateway=deps.gateway, notifier=notifier
        )
        users = UserRepo(session)
        for booking in await ServiceBookingRepo(session).unanswered(held_before=cutoff):
            try:
                await payments.release_hold(booking, reason="provider_no_response")
            except PaymentGatewayError as e:
                # Left in NEED_ACCEPT; the next sweep retries with the same idempotency key.
                log.warning("hold_release_failed", booking_id=str(booking.id), error=str(e))
                continue
            booking.status = BookingStatus.REJECTED
            owner = await users.get(booking.user_id)
            if owner is not None:
                await notifier.notify(
                    owner,
                    title="Service request expired",
                    body=(
                        f"{booking.service_name} on {booking.date.isoformat()} was not accepted "
                        "in time; the hold was released"
                    ),
                    booking_type=BookingType.SERVICE,
                    booking_id=booking.id,
                )
            rejected += 1
            log.info("booking_rejected", booking_id=str(booking.id), reason="provider_no_response")
            await session.commit()
    return rejected


async def deactivate_lapsed_subscriptions(deps: JobDeps, *, now: datetime) -> int:
    async with deps.session_factory() as session:
        count = await SubscriptionService(session=session, gateway=deps.gateway).deactivate_lapsed(
            now=now
        )
    if count:
        log.info("subscriptions_deactivated", count=count)
    return count


async def sync_airbnb_calendars(deps: JobDeps) -> SyncReport:
    async with deps.session_factory() as session:
        service = CalendarSyncService(session=session, feeds=CalendarFeedClient(http=deps.http))
        return await service.sync_all()
