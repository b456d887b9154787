"""
staybook.services.service_bookings

Service bookings between property owners and service providers.

Responsibilities:
- Create PENDING bookings for a weekly availability slot.
- Provider workflow: accept / reject the held request, start and finish the job with proof files.
- Owner release of the held payment (delegated to the payment service).
- Owner and provider listings.

Lifecycle:
    PENDING -> NEED_ACCEPT (payment held, via webhook) -> CONFIRMED -> IN_WORKING
            -> COMPLETED_BY_PROVIDER -> COMPLETED (payment captured + transferred)
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any, Literal

from sqlalchemy.ext.asyncio import AsyncSession

from staybook.auth.models import Principal
from staybook.db.models import (
    BookingStatus,
    BookingType,
    Payment,
    ProofVideo,
    ServiceBooking,
    ServiceStatus,
    UserRole,
    utcnow,
)
from staybook.db.repositories.hotels import HotelRepo
from staybook.db.repositories.service_bookings import ServiceBookingRepo
from staybook.db.repositories.services import ServiceRepo
from staybook.db.repositories.users import UserRepo
from staybook.domain.slots import day_matches, find_day, has_slot, normalize_slot
from staybook.domain.transitions import (
    SERVICE_OWNER_ACTIVE,
    SERVICE_OWNER_PAST,
    SERVICE_PROVIDER_FILTERS,
    SERVICE_TRANSITIONS,
)
from staybook.integrations.storage import S3Storage
from staybook.observability.logging import get_logger
from staybook.services.errors import BadRequest, Conflict, Forbidden, NotFound
from staybook.services.guards import active_user, apply_transition, check_transition
from staybook.services.notifications import NotificationService
from staybook.services.payments import PaymentService

log = get_logger(__name__)

OwnerView = Literal["active", "past"]
ProofStage = Literal["start", "end"]


class ServiceBookingService:
    def __init__(
        self,
        *,
        session: AsyncSession,
        notifier: NotificationService,
        payments: PaymentService,
    ) -> None:
        self._session = session
        self._notifier = notifier
        self._payments = payments

        self._users = UserRepo(session)
        self._hotels = HotelRepo(session)
        self._services = ServiceRepo(session)
        self._bookings = ServiceBookingRepo(session)

    async def create(
        self,
        principal: Principal,
        *,
        service_id: uuid.UUID,
        hotel_id: uuid.UUID,
        on: date,
        day: str,
        slot_from: str,
        slot_to: str,
        offered_services: list[dict[str, Any]],
        special_instructions: str | None = None,
    ) -> ServiceBooking:
        owner = await active_user(self._users, principal)
        if owner.role != UserRole.PROPERTY_OWNER:
            raise Forbidden("Only property owners can book services")

        hotel = await self._hotels.get(hotel_id)
        if hotel is None or hotel.partner_id != owner.id:
            raise NotFound("Hotel not found")
        service = await self._services.get(service_id)
        if service is None:
            raise NotFound("Service not found")
        if service.status != ServiceStatus.ACTIVE:
            raise BadRequest("Service is not accepting bookings")

        if on < utcnow().date():
            raise BadRequest("Booking date is in the past")
        if not day_matches(day, on):
            raise BadRequest(f"{on.isoformat()} is not a {day}")
        day_entry = find_day(service.availability, day)
        if day_entry is None:
            raise BadRequest(f"Service is not available on {day}")
        if not has_slot(day_entry, slot_from, slot_to):
            raise BadRequest("Requested time slot is not available")

        slot_from, slot_to = normalize_slot(slot_from), normalize_slot(slot_to)
        if await self._bookings.slot_taken(
            service_id=service.id, on=on, slot_from=slot_from, slot_to=slot_to
        ):
            raise Conflict("This time slot is already booked")

        if not offered_services:
            raise BadRequest("Select at least one offered service")
        total = sum(int(item["price_cents"]) for item in offered_services)
        if total <= 0:
            raise BadRequest("Booking total must be positive")

        booking = await self._bookings.add(
            ServiceBooking(
                service=service,
                provider_id=service.provider_id,
                user_id=owner.id,
                hotel_id=hotel.id,
                property=hotel.property_title,
                service_name=service.service_name,
                offered_services=offered_services,
                date=on,
                day=day.strip().title(),
                slot_from=slot_from,
                slot_to=slot_to,
                special_instructions=special_instructions,
                total_price_cents=total,
                currency=service.currency,
                status=BookingStatus.PENDING,
            )
        )
        await self._session.commit()
        log.info(
            "service_booking_created",
            booking_id=str(booking.id),
            service_id=str(service.id),
            total_cents=total,
        )
        return booking

    async def get(self, principal: Principal, booking_id: uuid.UUID) -> ServiceBooking:
        booking = await self._bookings.get(booking_id)
        if booking is None:
            raise NotFound("Booking not found")
        if principal.user_id not in (booking.user_id, booking.provider_id) and not principal.is_admin:
            raise NotFound("Booking not found")
        return booking

    async def _as_provider(self, principal: Principal, booking_id: uuid.UUID) -> ServiceBooking:
        booking = await self._bookings.get(booking_id)
        if booking is None or booking.provider_id != principal.user_id:
            raise NotFound("Booking not found")
        return booking

    async def _notify_user(
        self, user_id: uuid.UUID, booking: ServiceBooking, *, title: str, body: str
    ) -> None:
        user = await self._users.get(user_id)
        if user is not None:
            await self._notifier.notify(
                user, title=title, body=body, booking_type=BookingType.SERVICE, booking_id=booking.id
            )

    # --- Provider workflow -----------------------------------------------------------

    async def accept(self, principal: Principal, booking_id: uuid.UUID) -> ServiceBooking:
        booking = await self._as_provider(principal, booking_id)
        apply_transition(SERVICE_TRANSITIONS, booking, BookingStatus.CONFIRMED)
        await self._notify_user(
            booking.user_id,
            booking,
            title="Service booking accepted",
            body=f"{booking.service_name} on {booking.date.isoformat()} was accepted",
        )
        await self._session.commit()
        log.info("booking_confirmed", booking_type="SERVICE", booking_id=str(booking.id))
        return booking

    async def reject(self, principal: Principal, booking_id: uuid.UUID) -> ServiceBooking:
        booking = await self._as_provider(principal, booking_id)
        check_transition(SERVICE_TRANSITIONS, booking, BookingStatus.REJECTED)
        await self._payments.release_hold(booking, reason="provider_rejected")
        booking.status = BookingStatus.REJECTED
        await self._notify_user(
            booking.user_id,
            booking,
            title="Service booking rejected",
            body=f"{booking.service_name} on {booking.date.isoformat()} was declined; the hold was released",
        )
        await self._session.commit()
        log.info("booking_rejected", booking_id=str(booking.id))
        return booking

    async def upload_proof(
        self,
        principal: Principal,
        booking_id: uuid.UUID,
        *,
        stage: ProofStage,
        storage: S3Storage,
        files: list[tuple[str, bytes, str]],
    ) -> ProofVideo:
        """
        Starting proof moves CONFIRMED -> IN_WORKING; ending proof moves
        IN_WORKING -> COMPLETED_BY_PROVIDER.
        """

        if not files:
            raise BadRequest("At least one proof file is required")
        booking = await self._as_provider(principal, booking_id)
        proof = await self._bookings.proof_for(booking.id)

        if stage == "start":
            check_transition(SERVICE_TRANSITIONS, booking, BookingStatus.IN_WORKING)
            if proof is not None and proof.is_started:
                raise Conflict("Starting proof already uploaded")
        else:
            if proof is None or not proof.is_started:
                raise BadRequest("Upload the starting proof first")
            check_transition(SERVICE_TRANSITIONS, booking, BookingStatus.COMPLETED_BY_PROVIDER)

        urls: list[str] = []
        for filename, body, content_type in files:
            if not content_type.startswith(("video/", "image/")):
                raise BadRequest(f"Unsupported proof type: {content_type}")
            urls.append(
                await storage.put(
                    prefix=f"proofs/{booking.id}/{stage}",
                    filename=filename,
                    body=body,
                    content_type=content_type,
                )
            )

        if stage == "start":
            if proof is None:
                proof = await self._bookings.add_proof(
                    ProofVideo(booking_id=booking.id, service_id=booking.service_id)
                )
            proof.starting_urls = urls
            proof.is_started = True
            booking.status = BookingStatus.IN_WORKING
            title, body = "Service started", f"{booking.service_name} has started"
        else:
            proof.ending_urls = urls
            proof.is_ended = True
            booking.status = BookingStatus.COMPLETED_BY_PROVIDER
            title = "Service completed"
            body = f"{booking.service_name} is done; review the proof and release the payment"

        await self._notify_user(booking.user_id, booking, title=title, body=body)
        await self._session.commit()
        log.info("proof_uploaded", booking_id=str(booking.id), stage=stage, files=len(urls))
        return proof

    async def proof(self, principal: Principal, booking_id: uuid.UUID) -> ProofVideo:
        booking = await self.get(principal, booking_id)
        proof = await self._bookings.proof_for(booking.id)
        if proof is None:
            raise NotFound("No proof uploaded yet")
        return proof

    # --- Owner -------------------------------------------------------------------------

    async def release_payment(self, principal: Principal, booking_id: uuid.UUID) -> Payment:
        return await self._payments.release_service_payment(principal, booking_id)

    async def for_owner(self, principal: Principal, *, view: OwnerView) -> list[ServiceBooking]:
        statuses = SERVICE_OWNER_ACTIVE if view == "active" else SERVICE_OWNER_PAST
        return await self._bookings.for_owner(principal.user_id, statuses=statuses)

    async def for_provider(self, principal: Principal, *, view: str) -> list[ServiceBooking]:
        statuses = SERVICE_PROVIDER_FILTERS.get(view)
        if statuses is None:
            raise BadRequest(f"Unknown filter: {view}")
        return await self._bookings.for_provider(principal.user_id, statuses=statuses)
