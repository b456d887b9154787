"""
staybook.services.webhooks

Stripe webhook processing (the event-driven half of the booking/payment state machine).

Responsibilities:
- Verify the signature and process every Stripe event id at most once.
- Checkout completion: hotel -> payment PAID + booking CONFIRMED;
  service -> payment IN_HOLD + booking NEED_ACCEPT.
- Checkout expiry, failed intents and refunds.
- Delegate billing (invoice/subscription) events to the subscription service.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from staybook.db.models import (
    BookingStatus,
    BookingType,
    HotelBooking,
    Payment,
    PaymentStatus,
    ServiceBooking,
    utcnow,
)
from staybook.db.repositories.hotel_bookings import HotelBookingRepo
from staybook.db.repositories.payments import PaymentRepo
from staybook.db.repositories.service_bookings import ServiceBookingRepo
from staybook.db.repositories.users import UserRepo
from staybook.db.repositories.webhook_events import WebhookEventRepo
from staybook.domain.transitions import HOTEL_TRANSITIONS, SERVICE_TRANSITIONS, can_transition
from staybook.integrations.stripe_gateway import StripeGateway, WebhookVerificationError
from staybook.observability.logging import get_logger
from staybook.services.errors import BadRequest
from staybook.services.notifications import NotificationService
from staybook.services.payments import PaymentService
from staybook.services.subscriptions import BILLING_EVENTS, SubscriptionService

log = get_logger(__name__)


class WebhookService:
    def __init__(
        self,
        *,
        session: AsyncSession,
        gateway: StripeGateway,
        notifier: NotificationService,
        payments: PaymentService,
        subscriptions: SubscriptionService,
    ) -> None:
        self._session = session
        self._gateway = gateway
        self._notifier = notifier
        self._payment_service = payments
        self._subscriptions = subscriptions

        self._events = WebhookEventRepo(session)
        self._payments = PaymentRepo(session)
        self._users = UserRepo(session)
        self._hotel_bookings = HotelBookingRepo(session)
        self._service_bookings = ServiceBookingRepo(session)

    async def handle(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        try:
            event = self._gateway.parse_webhook(payload, signature)
        except WebhookVerificationError as e:
            raise BadRequest(f"Invalid webhook: {e}") from e

        event_id = str(event.get("id", ""))
        event_type = str(event.get("type", ""))
        obj = (event.get("data") or {}).get("object") or {}
        if not event_id:
            raise BadRequest("Webhook event has no id")

        if await self._events.seen(event_id):
            log.info("webhook_duplicate", event_id=event_id, event_type=event_type)
            return {"received": True, "duplicate": True}

        handled = await self._dispatch(event_type, obj)
        await self._events.record(event_id=event_id, event_type=event_type)
        try:
            await self._session.commit()
        except IntegrityError:
            # A concurrent delivery of the same event won the insert.
            await self._session.rollback()
            log.info("webhook_duplicate", event_id=event_id, event_type=event_type)
            return {"received": True, "duplicate": True}

        if not handled:
            log.info("webhook_ignored", event_id=event_id, event_type=event_type)
        return {"received": True, "handled": handled}

    async def _dispatch(self, event_type: str, obj: dict[str, Any]) -> bool:
        if event_type == "checkout.session.completed":
            return await self._checkout_completed(obj)
        if event_type == "checkout.session.expired":
            return await self._checkout_expired(obj)
        if event_type == "payment_intent.payment_failed":
            return await self._intent_failed(obj)
        if event_type == "charge.refunded":
            return await self._charge_refunded(obj)
        if event_type in BILLING_EVENTS:
            return await self._subscriptions.apply_event(event_type, obj)
        return False

    async def _payment_by_metadata(self, obj: dict[str, Any]) -> Payment | None:
        raw = (obj.get("metadata") or {}).get("payment_id")
        if not raw:
            return None
        try:
            payment_id = uuid.UUID(str(raw))
        except ValueError:
            log.warning("webhook_bad_payment_id", payment_id=str(raw))
            return None
        return await self._payments.get(payment_id)

    async def _payment_for_session(self, obj: dict[str, Any]) -> Payment | None:
        payment = await self._payments.by_checkout_session(str(obj.get("id", "")))
        if payment is None:
            payment = await self._payment_by_metadata(obj)
        return payment

    # --- Checkout -------------------------------------------------------------------------

    async def _checkout_completed(self, obj: dict[str, Any]) -> bool:
        if obj.get("mode") == "subscription":
            return False
        payment = await self._payment_for_session(obj)
        if payment is None:
            log.warning("webhook_payment_missing", session_id=obj.get("id"))
            return False
        if payment.status not in (
            PaymentStatus.UNPAID,
            PaymentStatus.FAILED,
            PaymentStatus.CANCELLED,
        ):
            # Already applied (e.g. the same session reported twice under different event ids).
            return True

        intent_id = obj.get("payment_intent")
        payment.payment_intent_id = intent_id if isinstance(intent_id, str) else None

        if payment.booking_type == BookingType.HOTEL and payment.hotel_booking_id:
            booking = await self._hotel_bookings.get(payment.hotel_booking_id)
            if booking is not None:
                await self._hotel_paid(payment, booking)
                return True
        elif payment.booking_type == BookingType.SERVICE and payment.service_booking_id:
            booking = await self._service_bookings.get(payment.service_booking_id)
            if booking is not None:
                await self._service_held(payment, booking)
                return True
        log.warning("webhook_booking_missing", payment_id=str(payment.id))
        return False

    async def _hotel_paid(self, payment: Payment, booking: HotelBooking) -> None:
        payment.status = PaymentStatus.PAID
        if payment.payment_intent_id:
            payment.charge_id = await self._gateway.latest_charge_id(payment.payment_intent_id)

        if booking.status == BookingStatus.CONFIRMED:
            paid = await self._payments.for_hotel_booking(booking.id, PaymentStatus.PAID)
            if not [p for p in paid if p.id != payment.id]:
                # The partner confirmed before the guest paid; this payment settles it.
                log.info(
                    "payment_applied", booking_id=str(booking.id), payment_id=str(payment.id)
                )
                return

        if not can_transition(HOTEL_TRANSITIONS, booking.status, BookingStatus.CONFIRMED):
            # Paid after the booking expired or was cancelled: give the money back.
            await self._payment_service.refund_hotel_payment(payment, reason="late_payment")
            log.warning(
                "late_payment_refunded",
                booking_id=str(booking.id),
                booking_status=booking.status.value,
            )
            return

        booking.status = BookingStatus.CONFIRMED
        receivers = [await self._users.get(booking.partner_id), *await self._users.active_admins()]
        if booking.user_id is not None:
            receivers.append(await self._users.get(booking.user_id))
        await self._notifier.notify_many(
            [u for u in receivers if u is not None],
            title="Booking confirmed",
            body=(
                f"{booking.hotel.property_title}: {booking.booked_from.isoformat()} - "
                f"{booking.booked_to.isoformat()} is paid and confirmed"
            ),
            booking_type=BookingType.HOTEL,
            booking_id=booking.id,
        )
        log.info("booking_confirmed", booking_type="HOTEL", booking_id=str(booking.id))

    async def _service_held(self, payment: Payment, booking: ServiceBooking) -> None:
        payment.status = PaymentStatus.IN_HOLD

        if not can_transition(SERVICE_TRANSITIONS, booking.status, BookingStatus.NEED_ACCEPT):
            await self._payment_service.release_hold(
                booking, reason="late_payment", payment=payment
            )
            log.warning(
                "late_payment_released",
                booking_id=str(booking.id),
                booking_status=booking.status.value,
            )
            return

        booking.status = BookingStatus.NEED_ACCEPT
        booking.held_at = utcnow()
        provider = await self._users.get(booking.provider_id)
        if provider is not None:
            await self._notifier.notify(
                provider,
                title="New service request",
                body=(
                    f"{booking.service_name} at {booking.property} on "
                    f"{booking.date.isoformat()} {booking.slot_from} - {booking.slot_to}"
                ),
                booking_type=BookingType.SERVICE,
                booking_id=booking.id,
            )
        log.info("payment_held", booking_id=str(booking.id), payment_id=str(payment.id))

    async def _checkout_expired(self, obj: dict[str, Any]) -> bool:
        payment = await self._payment_for_session(obj)
        if payment is None:
            return False
        if payment.status != PaymentStatus.UNPAID:
            # Superseded by a newer checkout or already closed by the expiry sweep.
            return True
        payment.status = PaymentStatus.FAILED

        booking: HotelBooking | ServiceBooking | None = None
        if payment.hotel_booking_id:
            booking = await self._hotel_bookings.get(payment.hotel_booking_id)
        elif payment.service_booking_id:
            booking = await self._service_bookings.get(payment.service_booking_id)
        if booking is not None and booking.status == BookingStatus.PENDING:
            booking.status = BookingStatus.EXPIRED
            log.info("booking_expired", booking_id=str(booking.id), reason="checkout_expired")
        return True

    # --- Intents / charges -------------------------------------------------------------

    async def _intent_failed(self, obj: dict[str, Any]) -> bool:
        payment = await self._payment_by_metadata(obj)
        if payment is None and obj.get("id"):
            payment = await self._payments.by_payment_intent(str(obj["id"]))
        if payment is None:
            return False
        if payment.status in (PaymentStatus.UNPAID, PaymentStatus.IN_HOLD):
            payment.status = PaymentStatus.FAILED
            log.info("payment_failed", payment_id=str(payment.id))
        return True

    async def _charge_refunded(self, obj: dict[str, Any]) -> bool:
        payment = await self._payments.by_charge(str(obj.get("id", "")))
        if payment is None and isinstance(obj.get("payment_intent"), str):
            payment = await self._payments.by_payment_intent(obj["payment_intent"])
        if payment is None:
            return False
        payment.status = PaymentStatus.REFUNDED
        return True
