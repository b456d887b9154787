"""
staybook.api.routers.service_bookings

Service bookings and proof of work.

Responsibilities:
- Property owners book a provider's slot, cancel, and release the held payment.
- Providers accept / reject requests and upload starting and ending proof.
- Owner and provider listings.
"""

from __future__ import annotations

import uuid
import datetime as dt
from typing import Literal

from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel, Field

from staybook.api.deps import payment_service, service_booking_service, storage_dep
from staybook.api.schemas import PaymentOut, ProofOut, ServiceBookingOut
from staybook.auth.deps import get_principal, require_roles
from staybook.auth.models import Principal
from staybook.integrations.storage import S3Storage
from staybook.services.payments import PaymentService
from staybook.services.service_bookings import ServiceBookingService

router = APIRouter(prefix="/v1/service-bookings", tags=["service-bookings"])


class OfferedService(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    price_cents: int = Field(gt=0)


class ServiceBookingRequest(BaseModel):
    service_id: uuid.UUID
    hotel_id: uuid.UUID
    date: dt.date
    day: str = Field(min_length=3, max_length=16)
    slot_from: str = Field(min_length=1, max_length=16)
    slot_to: str = Field(min_length=1, max_length=16)
    offered_services: list[OfferedService] = Field(min_length=1)
    special_instructions: str | None = Field(default=None, max_length=2000)


@router.post("", response_model=ServiceBookingOut, status_code=201)
async def create_booking(
    body: ServiceBookingRequest,
    principal: Principal = Depends(require_roles("PROPERTY_OWNER")),
    svc: ServiceBookingService = Depends(service_booking_service),
) -> ServiceBookingOut:
    booking = await svc.create(
        principal,
        service_id=body.service_id,
        hotel_id=body.hotel_id,
        on=body.date,
        day=body.day,
        slot_from=body.slot_from,
        slot_to=body.slot_to,
        offered_services=[o.model_dump() for o in body.offered_services],
        special_instructions=body.special_instructions,
    )
    return ServiceBookingOut.model_validate(booking)


@router.get("/owner", response_model=list[ServiceBookingOut])
async def owner_bookings(
    view: Literal["active", "past"] = "active",
    principal: Principal = Depends(require_roles("PROPERTY_OWNER")),
    svc: ServiceBookingService = Depends(service_booking_service),
) -> list[ServiceBookingOut]:
    return [ServiceBookingOut.model_validate(b) for b in await svc.for_owner(principal, view=view)]


@router.get("/provider", response_model=list[ServiceBookingOut])
async def provider_bookings(
    view: Literal["new-requests", "upcoming", "ongoing", "completed"] = "new-requests",
    principal: Principal = Depends(require_roles("SERVICE_PROVIDER")),
    svc: ServiceBookingService = Depends(service_booking_service),
) -> list[ServiceBookingOut]:
    return [
        ServiceBookingOut.model_validate(b) for b in await svc.for_provider(principal, view=view)
    ]


@router.get("/{booking_id}", response_model=ServiceBookingOut)
async def get_booking(
    booking_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    svc: ServiceBookingService = Depends(service_booking_service),
) -> ServiceBookingOut:
    return ServiceBookingOut.model_validate(await svc.get(principal, booking_id))


@router.post("/{booking_id}/accept", response_model=ServiceBookingOut)
async def accept(
    booking_id: uuid.UUID,
    principal: Principal = Depends(require_roles("SERVICE_PROVIDER")),
    svc: ServiceBookingService = Depends(service_booking_service),
) -> ServiceBookingOut:
    return ServiceBookingOut.model_validate(await svc.accept(principal, booking_id))


@router.post("/{booking_id}/reject", response_model=ServiceBookingOut)
async def reject(
    booking_id: uuid.UUID,
    principal: Principal = Depends(require_roles("SERVICE_PROVIDER")),
    svc: ServiceBookingService = Depends(service_booking_service),
) -> ServiceBookingOut:
    return ServiceBookingOut.model_validate(await svc.reject(principal, booking_id))


@router.post("/{booking_id}/cancel", response_model=ServiceBookingOut)
async def cancel(
    booking_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    payments: PaymentService = Depends(payment_service),
) -> ServiceBookingOut:
    return ServiceBookingOut.model_validate(
        await payments.cancel_service_booking(principal, booking_id)
    )


@router.post("/{booking_id}/release-payment", response_model=PaymentOut)
async def release_payment(
    booking_id: uuid.UUID,
    principal: Principal = Depends(require_roles("PROPERTY_OWNER")),
    svc: ServiceBookingService = Depends(service_booking_service),
) -> PaymentOut:
    return PaymentOut.model_validate(await svc.release_payment(principal, booking_id))


# --- Proof of work -----------------------------------------------------------------


@router.post("/{booking_id}/proof/{stage}", response_model=ProofOut)
async def upload_proof(
    booking_id: uuid.UUID,
    stage: Literal["start", "end"],
    files: list[UploadFile] = File(...),
    principal: Principal = Depends(require_roles("SERVICE_PROVIDER")),
    svc: ServiceBookingService = Depends(service_booking_service),
    storage: S3Storage = Depends(storage_dep),
) -> ProofOut:
    payload = [
        (f.filename or "proof", await f.read(), f.content_type or "application/octet-stream")
        for f in files
    ]
    proof = await svc.upload_proof(
        principal, booking_id, stage=stage, storage=storage, files=payload
    )
    return ProofOut.model_validate(proof)


@router.get("/{booking_id}/proof", response_model=ProofOut)
async def get_proof(
    booking_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    svc: ServiceBookingService = Depends(service_booking_service),
) -> ProofOut:
    return ProofOut.model_validate(await svc.proof(principal, booking_id))
