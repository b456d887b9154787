"""
staybook.api.routers.hotel_bookings

Hotel stay bookings.

Responsibilities:
- Price quotes and PENDING booking creation for guests.
- Guest and partner listings.
- Partner confirmation / cancellation; guest cancellation.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from staybook.api.deps import hotel_booking_service, payment_service
from staybook.api.schemas import HotelBookingOut
from staybook.auth.deps import get_principal, require_roles
from staybook.auth.models import Principal
from staybook.db.models import BookingStatus
from staybook.services.hotel_bookings import HotelBookingService
from staybook.services.payments import PaymentService

router = APIRouter(prefix="/v1/hotel-bookings", tags=["hotel-bookings"])


class QuoteResponse(BaseModel):
    nights: int
    subtotal_cents: int
    discount_percent: float
    discount_cents: int
    total_cents: int


class BookingCreateRequest(BaseModel):
    hotel_id: uuid.UUID
    booked_from: date
    booked_to: date
    guests: int = Field(default=1, ge=1)


class StatusRequest(BaseModel):
    status: Literal["CONFIRMED", "CANCELLED"]


@router.get("/quote", response_model=QuoteResponse)
async def quote(
    hotel_id: uuid.UUID,
    booked_from: date = Query(alias="from"),
    booked_to: date = Query(alias="to"),
    svc: HotelBookingService = Depends(hotel_booking_service),
) -> QuoteResponse:
    q = await svc.quote(hotel_id, booked_from=booked_from, booked_to=booked_to)
    return QuoteResponse(
        nights=q.nights,
        subtotal_cents=q.subtotal_cents,
        discount_percent=q.discount_percent,
        discount_cents=q.discount_cents,
        total_cents=q.total_cents,
    )


@router.post("", response_model=HotelBookingOut, status_code=201)
async def create_booking(
    body: BookingCreateRequest,
    principal: Principal = Depends(get_principal),
    svc: HotelBookingService = Depends(hotel_booking_service),
) -> HotelBookingOut:
    booking = await svc.create(
        principal,
        hotel_id=body.hotel_id,
        booked_from=body.booked_from,
        booked_to=body.booked_to,
        guests=body.guests,
    )
    return HotelBookingOut.model_validate(booking)


@router.get("/mine", response_model=list[HotelBookingOut])
async def my_bookings(
    status: BookingStatus | None = None,
    principal: Principal = Depends(get_principal),
    svc: HotelBookingService = Depends(hotel_booking_service),
) -> list[HotelBookingOut]:
    return [HotelBookingOut.model_validate(b) for b in await svc.mine(principal, status=status)]


@router.get("/partner", response_model=list[HotelBookingOut])
async def partner_bookings(
    status: BookingStatus | None = None,
    principal: Principal = Depends(require_roles("PROPERTY_OWNER")),
    svc: HotelBookingService = Depends(hotel_booking_service),
) -> list[HotelBookingOut]:
    return [
        HotelBookingOut.model_validate(b) for b in await svc.for_partner(principal, status=status)
    ]


@router.get("/{booking_id}", response_model=HotelBookingOut)
async def get_booking(
    booking_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    svc: HotelBookingService = Depends(hotel_booking_service),
) -> HotelBookingOut:
    return HotelBookingOut.model_validate(await svc.get(principal, booking_id))


@router.patch("/{booking_id}/status", response_model=HotelBookingOut)
async def set_status(
    booking_id: uuid.UUID,
    body: StatusRequest,
    principal: Principal = Depends(require_roles("PROPERTY_OWNER")),
    svc: HotelBookingService = Depends(hotel_booking_service),
) -> HotelBookingOut:
    booking = await svc.set_status(principal, booking_id, BookingStatus(body.status))
    return HotelBookingOut.model_validate(booking)


@router.post("/{booking_id}/cancel", response_model=HotelBookingOut)
async def cancel_booking(
    booking_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    payments: PaymentService = Depends(payment_service),
) -> HotelBookingOut:
    return HotelBookingOut.model_validate(await payments.cancel_hotel_booking(principal, booking_id))
