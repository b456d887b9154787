"""
staybook.services.payments

Money movement for bookings (transaction + Stripe owner).

Responsibilities:
- Stripe Connect onboarding for property owners and service providers.
- Checkout sessions: immediate destination charge for hotels, manual-capture hold for services.
- Owner release of a held service payment: capture, then transfer the provider share.
- Booker cancellation: refund (hotel) or void the hold (service).
- Transaction history.

Every money-moving Stripe call carries an idempotency key derived from the payment id,
so retrying a failed request never charges, refunds or transfers twice.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from staybook.auth.models import Principal
from staybook.db.models import (
    BookingStatus,
    BookingType,
    HotelBooking,
    Payment,
    PaymentStatus,
    ServiceBooking,
    User,
    UserRole,
    utcnow,
)
from staybook.db.repositories.hotel_bookings import HotelBookingRepo
from staybook.db.repositories.payments import PaymentRepo
from staybook.db.repositories.service_bookings import ServiceBookingRepo
from staybook.db.repositories.users import UserRepo
from staybook.domain.pricing import hotel_split, service_split
from staybook.domain.transitions import HOTEL_TRANSITIONS, SERVICE_TRANSITIONS
from staybook.integrations.stripe_gateway import CheckoutSession, StripeGateway
from staybook.observability.logging import get_logger
from staybook.services.errors import BadRequest, Conflict, Forbidden, NotFound, PaymentFailed
from staybook.services.guards import active_user, apply_transition, check_transition
from staybook.services.notifications import NotificationService
from staybook.settings import Settings

log = get_logger(__name__)

PARTNER_ROLES = frozenset({UserRole.PROPERTY_OWNER, UserRole.SERVICE_PROVIDER})


@dataclass(frozen=True, slots=True)
class OnboardingResult:
    account_id: str
    verified: bool
    onboarding_url: str | None = None
    requirements_due: tuple[str, ...] = ()
    pending: tuple[str, ...] = ()


class PaymentService:
    def __init__(
        self,
        *,
        session: AsyncSession,
        settings: Settings,
        gateway: StripeGateway,
        notifier: NotificationService,
    ) -> None:
        self._session = session
        self._settings = settings
        self._gateway = gateway
        self._notifier = notifier

        self._users = UserRepo(session)
        self._payments = PaymentRepo(session)
        self._hotel_bookings = HotelBookingRepo(session)
        self._service_bookings = ServiceBookingRepo(session)

    # --- Connect onboarding --------------------------------------------------------

    async def onboard(self, principal: Principal) -> OnboardingResult:
        user = await active_user(self._users, principal)
        if user.role not in PARTNER_ROLES:
            raise Forbidden("Only property owners and service providers receive payouts")

        if not user.stripe_account_id:
            user.stripe_account_id = await self._gateway.create_connect_account(
                email=user.email, country=self._settings.stripe_connect_country
            )
            await self._session.commit()
            log.info("connect_account_created", user_id=str(user.id))

        status = await self._gateway.get_connect_status(user.stripe_account_id)
        if status.verified:
            if not user.is_stripe_connected:
                user.is_stripe_connected = True
                await self._session.commit()
            return OnboardingResult(account_id=status.account_id, verified=True)

        url = await self._gateway.create_onboarding_link(
            account_id=user.stripe_account_id,
            refresh_url=self._settings.stripe_onboarding_refresh_url,
            return_url=self._settings.stripe_onboarding_return_url,
        )
        return OnboardingResult(
            account_id=status.account_id,
            verified=False,
            onboarding_url=url,
            requirements_due=tuple(status.requirements_due),
            pending=tuple(status.pending),
        )

    async def _payout_account(self, partner: User | None) -> str:
        if partner is None or not partner.stripe_account_id:
            raise BadRequest("The host has not set up payouts yet")
        if not partner.is_stripe_connected:
            # The return from onboarding may not have been recorded; ask Stripe once.
            status = await self._gateway.get_connect_status(partner.stripe_account_id)
            if not status.verified:
                raise BadRequest("The host has not finished payout onboarding")
            partner.is_stripe_connected = True
        return partner.stripe_account_id

    # --- Checkout ------------------------------------------------------------------

    async def checkout_hotel(self, principal: Principal, booking_id: uuid.UUID) -> CheckoutSession:
        payer = await active_user(self._users, principal)
        booking = await self._hotel_bookings.get(booking_id)
        if booking is None or booking.user_id != payer.id:
            raise NotFound("Booking not found")
        if booking.status != BookingStatus.PENDING:
            raise Conflict(f"Booking is {booking.status.value}, not PENDING")

        partner = await self._users.get(booking.partner_id)
        destination = await self._payout_account(partner)
        await self._close_open_checkouts(
            await self._payments.for_hotel_booking(booking.id, PaymentStatus.UNPAID)
        )
        split = hotel_split(
            amount_cents=booking.total_price_cents,
            commission_percent=self._settings.hotel_commission_percent,
            vat_percent=self._settings.hotel_vat_percent,
        )
        payment = await self._payments.add(
            Payment(
                user_id=payer.id,
                partner_id=booking.partner_id,
                booking_type=BookingType.HOTEL,
                hotel_booking_id=booking.id,
                amount_cents=split.total_cents,
                currency=booking.currency,
                status=PaymentStatus.UNPAID,
                vat_amount_cents=split.vat_cents,
                admin_amount_cents=split.commission_cents,
                partner_amount_cents=split.partner_share_cents,
                description=f"Stay at {booking.hotel.property_title}",
            )
        )
        session = await self._gateway.create_checkout_session(
            amount_cents=split.total_cents,
            currency=booking.currency,
            product_name=f"{booking.hotel.property_title} ({booking.nights} nights)",
            customer_email=payer.email,
            metadata=self._metadata(payment, BookingType.HOTEL, booking.id),
            success_url=self._settings.checkout_success_url,
            cancel_url=self._settings.checkout_cancel_url,
            idempotency_key=f"checkout_{payment.id}",
            destination_account=destination,
            application_fee_cents=split.application_fee_cents,
            expires_at=self._checkout_expires_at(),
        )
        payment.checkout_session_id = session.id
        booking.checkout_session_id = session.id
        await self._session.commit()
        log.info("checkout_created", booking_type="HOTEL", booking_id=str(booking.id))
        return session

    async def checkout_service(
        self, principal: Principal, booking_id: uuid.UUID
    ) -> CheckoutSession:
        payer = await active_user(self._users, principal)
        booking = await self._service_bookings.get(booking_id)
        if booking is None or booking.user_id != payer.id:
            raise NotFound("Booking not found")
        if booking.status != BookingStatus.PENDING:
            raise Conflict(f"Booking is {booking.status.value}, not PENDING")

        provider = await self._users.get(booking.provider_id)
        await self._payout_account(provider)
        await self._close_open_checkouts(
            await self._payments.for_service_booking(booking.id, PaymentStatus.UNPAID)
        )
        payment = await self._payments.add(
            Payment(
                user_id=payer.id,
                partner_id=booking.provider_id,
                booking_type=BookingType.SERVICE,
                service_booking_id=booking.id,
                amount_cents=booking.total_price_cents,
                currency=booking.currency,
                status=PaymentStatus.UNPAID,
                description=f"{booking.service_name} at {booking.property}",
            )
        )
        # Funds are only authorized here; capture happens when the owner releases payment.
        session = await self._gateway.create_checkout_session(
            amount_cents=booking.total_price_cents,
            currency=booking.currency,
            product_name=f"{booking.service_name} on {booking.date.isoformat()}",
            customer_email=payer.email,
            metadata=self._metadata(payment, BookingType.SERVICE, booking.id),
            success_url=self._settings.checkout_success_url,
            cancel_url=self._settings.checkout_cancel_url,
            idempotency_key=f"checkout_{payment.id}",
            manual_capture=True,
            expires_at=self._checkout_expires_at(),
        )
        payment.checkout_session_id = session.id
        booking.checkout_session_id = session.id
        await self._session.commit()
        log.info("checkout_created", booking_type="SERVICE", booking_id=str(booking.id))
        return session

    async def _close_open_checkouts(self, open_payments: list[Payment]) -> None:
        """
        Expire earlier unpaid checkout sessions of a booking so that only the newest
        one can still be paid.
        """

        for payment in open_payments:
            if payment.checkout_session_id:
                status = await self._gateway.expire_checkout_session(payment.checkout_session_id)
                if status == "complete":
                    # Paid; the completion webhook has not been processed yet.
                    raise Conflict("A payment for this booking is already being processed")
            payment.status = PaymentStatus.CANCELLED
            log.info("checkout_superseded", payment_id=str(payment.id))

    def _checkout_expires_at(self) -> datetime:
        # Stripe accepts 30 minutes to 24 hours; one extra minute covers request latency.
        minutes = max(self._settings.pending_booking_ttl_minutes, 30) + 1
        return utcnow() + timedelta(minutes=min(minutes, 24 * 60))

    @staticmethod
    def _metadata(payment: Payment, booking_type: BookingType, booking_id: uuid.UUID) -> dict[str, str]:
        return {
            "payment_id": str(payment.id),
            "booking_type": booking_type.value,
            "booking_id": str(booking_id),
        }

    # --- Service payment release -----------------------------------------------------

    async def release_service_payment(
        self, principal: Principal, booking_id: uuid.UUID
    ) -> Payment:
        owner = await active_user(self._users, principal)
        booking = await self._service_bookings.get(booking_id)
        if booking is None or booking.user_id != owner.id:
            raise NotFound("Booking not found")
        if booking.status != BookingStatus.COMPLETED_BY_PROVIDER:
            raise Conflict("The provider has not marked this booking as completed")

        held = await self._payments.for_service_booking(booking.id, PaymentStatus.IN_HOLD)
        if not held:
            raise Conflict("No held payment for this booking")
        payment = held[0]
        if not payment.payment_intent_id:
            raise Conflict("Held payment has no payment intent")

        provider = await self._users.get(booking.provider_id)
        destination = await self._payout_account(provider)

        charge_id = await self._gateway.capture_payment_intent(
            payment.payment_intent_id, idempotency_key=f"capture_{payment.id}"
        )
        split = service_split(
            total_cents=payment.amount_cents,
            platform_percent=self._settings.service_platform_percent,
        )
        transfer_id = await self._gateway.create_transfer(
            amount_cents=split.provider_cents,
            currency=payment.currency,
            destination=destination,
            source_transaction=charge_id,
            idempotency_key=f"transfer_{payment.id}",
            metadata={"payment_id": str(payment.id), "booking_id": str(booking.id)},
        )

        payment.charge_id = charge_id
        payment.transfer_id = transfer_id
        payment.admin_amount_cents = split.admin_cents
        payment.partner_amount_cents = split.provider_cents
        payment.status = PaymentStatus.PAID
        apply_transition(SERVICE_TRANSITIONS, booking, BookingStatus.COMPLETED)

        if provider is not None:
            await self._notifier.notify(
                provider,
                title="Payment released",
                body=f"Payment for {booking.service_name} on {booking.date.isoformat()} was released",
                booking_type=BookingType.SERVICE,
                booking_id=booking.id,
            )
        await self._session.commit()
        log.info(
            "payment_captured",
            payment_id=str(payment.id),
            booking_id=str(booking.id),
            provider_cents=split.provider_cents,
            admin_cents=split.admin_cents,
        )
        return payment

    async def release_hold(
        self, booking: ServiceBooking, *, reason: str, payment: Payment | None = None
    ) -> list[Payment]:
        """
        Void held (uncaptured) service payments and close unpaid ones.

        Only `payment` is released when given, otherwise every open payment of the
        booking. The caller moves the booking and commits.
        """

        if payment is not None:
            targets = [payment]
        else:
            targets = await self._payments.for_service_booking(
                booking.id, PaymentStatus.IN_HOLD, PaymentStatus.UNPAID
            )
        for target in targets:
            if target.status == PaymentStatus.IN_HOLD and target.payment_intent_id:
                await self._gateway.cancel_payment_intent(
                    target.payment_intent_id, idempotency_key=f"cancel_{target.id}"
                )
                target.status = PaymentStatus.CANCELLED
                log.info("hold_released", payment_id=str(target.id), reason=reason)
            elif target.status == PaymentStatus.UNPAID:
                target.status = PaymentStatus.CANCELLED
        return targets

    async def refund_hotel_payment(self, payment: Payment, *, reason: str) -> None:
        # Destination charge: reverse the partner transfer and give back the platform fee.
        if not payment.payment_intent_id:
            raise PaymentFailed("Payment has no payment intent to refund")
        await self._gateway.refund_destination_charge(
            payment_intent_id=payment.payment_intent_id,
            idempotency_key=f"refund_{payment.id}",
        )
        payment.status = PaymentStatus.REFUNDED
        log.info("payment_refunded", payment_id=str(payment.id), reason=reason)

    # --- Cancellation ------------------------------------------------------------------

    async def cancel_hotel_booking(
        self, principal: Principal, booking_id: uuid.UUID
    ) -> HotelBooking:
        booking = await self._hotel_bookings.get(booking_id)
        if booking is None:
            raise NotFound("Booking not found")
        is_party = principal.user_id in (booking.user_id, booking.partner_id)
        if not is_party and not principal.is_admin:
            raise NotFound("Booking not found")
        check_transition(HOTEL_TRANSITIONS, booking, BookingStatus.CANCELLED)

        if booking.status == BookingStatus.CONFIRMED:
            for payment in await self._payments.for_hotel_booking(booking.id, PaymentStatus.PAID):
                await self.refund_hotel_payment(payment, reason="booking_cancelled")
        elif booking.status == BookingStatus.PENDING:
            for payment in await self._payments.for_hotel_booking(
                booking.id, PaymentStatus.UNPAID
            ):
                payment.status = PaymentStatus.CANCELLED
        apply_transition(HOTEL_TRANSITIONS, booking, BookingStatus.CANCELLED)

        await self._notify_cancelled(
            [booking.user_id, booking.partner_id],
            title="Booking cancelled",
            body=(
                f"Booking at {booking.hotel.property_title} for "
                f"{booking.booked_from.isoformat()} - {booking.booked_to.isoformat()} was cancelled"
            ),
            booking_type=BookingType.HOTEL,
            booking_id=booking.id,
        )
        await self._session.commit()
        log.info("booking_cancelled", booking_type="HOTEL", booking_id=str(booking.id))
        return booking

    async def cancel_service_booking(
        self, principal: Principal, booking_id: uuid.UUID
    ) -> ServiceBooking:
        booking = await self._service_bookings.get(booking_id)
        if booking is None:
            raise NotFound("Booking not found")
        if booking.user_id != principal.user_id and not principal.is_admin:
            raise NotFound("Booking not found")
        if booking.status not in (
            BookingStatus.PENDING,
            BookingStatus.NEED_ACCEPT,
            BookingStatus.CONFIRMED,
        ):
            raise Conflict(f"Booking is {booking.status.value} and can no longer be cancelled")

        await self.release_hold(booking, reason="booking_cancelled")
        apply_transition(SERVICE_TRANSITIONS, booking, BookingStatus.CANCELLED)

        await self._notify_cancelled(
            [booking.user_id, booking.provider_id],
            title="Service booking cancelled",
            body=f"{booking.service_name} on {booking.date.isoformat()} was cancelled",
            booking_type=BookingType.SERVICE,
            booking_id=booking.id,
        )
        await self._session.commit()
        log.info("booking_cancelled", booking_type="SERVICE", booking_id=str(booking.id))
        return booking

    async def _notify_cancelled(
        self,
        user_ids: list[uuid.UUID | None],
        *,
        title: str,
        body: str,
        booking_type: BookingType,
        booking_id: uuid.UUID,
    ) -> None:
        receivers = [u for u in [await self._users.get(i) for i in user_ids if i] if u is not None]
        await self._notifier.notify_many(
            receivers, title=title, body=body, booking_type=booking_type, booking_id=booking_id
        )

    # --- History -------------------------------------------------------------------------

    async def my_transactions(self, principal: Principal) -> list[Payment]:
        return await self._payments.paid_by_user(principal.user_id)
