"""
staybook.api.routers.contacts

Contact requests: owners ask for a provider's contact details, admins reveal them.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict

from staybook.api.deps import contact_service
from staybook.api.schemas import PageOut
from staybook.auth.deps import require_roles
from staybook.auth.models import Principal
from staybook.services.contacts import ContactService, ContactStatus, ProviderContact

router = APIRouter(prefix="/v1/contact-requests", tags=["contacts"])


class ContactRevealOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    provider_id: uuid.UUID
    property_owner_id: uuid.UUID
    is_shown: bool
    created_at: datetime


class ProviderContactOut(BaseModel):
    id: uuid.UUID
    full_name: str
    profile_image: str | None
    country: str | None
    contact_status: ContactStatus
    # Only filled in once an admin approved the request.
    email: str | None = None
    contact_number: str | None = None
    address: str | None = None

    @classmethod
    def of(cls, entry: ProviderContact) -> ProviderContactOut:
        p = entry.provider
        shown = entry.status == ContactStatus.SHOWN
        return cls(
            id=p.id,
            full_name=p.full_name,
            profile_image=p.profile_image,
            country=p.country,
            contact_status=entry.status,
            email=p.email if shown else None,
            contact_number=p.contact_number if shown else None,
            address=p.address if shown else None,
        )


@router.post("/{provider_id}", response_model=ContactRevealOut, status_code=201)
async def request_contact(
    provider_id: uuid.UUID,
    principal: Principal = Depends(require_roles("PROPERTY_OWNER")),
    svc: ContactService = Depends(contact_service),
) -> ContactRevealOut:
    return ContactRevealOut.model_validate(await svc.request(principal, provider_id))


@router.get("/service-providers", response_model=PageOut[ProviderContactOut])
async def providers_for_owner(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    principal: Principal = Depends(require_roles("PROPERTY_OWNER")),
    svc: ContactService = Depends(contact_service),
) -> PageOut[ProviderContactOut]:
    page = await svc.providers_for_owner(principal, offset=offset, limit=limit)
    return PageOut[ProviderContactOut](
        items=[ProviderContactOut.of(e) for e in page.items],
        total=page.total,
        offset=page.offset,
        limit=page.limit,
    )


@router.patch(
    "/{reveal_id}",
    response_model=ContactRevealOut,
    dependencies=[Depends(require_roles("ADMIN"))],
)
async def approve_contact(
    reveal_id: uuid.UUID, svc: ContactService = Depends(contact_service)
) -> ContactRevealOut:
    return ContactRevealOut.model_validate(await svc.approve(reveal_id))


@router.get(
    "",
    response_model=PageOut[ContactRevealOut],
    dependencies=[Depends(require_roles("ADMIN"))],
)
async def list_requests(
    is_shown: bool | None = None,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    svc: ContactService = Depends(contact_service),
) -> PageOut[ContactRevealOut]:
    page = await svc.list_requests(is_shown=is_shown, offset=offset, limit=limit)
    return PageOut.of(page, ContactRevealOut)
