"""
staybook.api.routers.services

Service catalog: providers publish services with weekly availability slots.
"""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, Depends, File, Query, UploadFile
from pydantic import BaseModel, Field

from staybook.api.deps import catalog_service, storage_dep
from staybook.api.schemas import PageOut, ServiceOut
from staybook.auth.deps import require_roles
from staybook.auth.models import Principal
from staybook.db.models import ServiceStatus
from staybook.integrations.storage import S3Storage
from staybook.services.service_catalog import ServiceCatalog

router = APIRouter(prefix="/v1/services", tags=["services"])


class SlotIn(BaseModel):
    from_: str = Field(alias="from", min_length=1, max_length=16)
    to: str = Field(min_length=1, max_length=16)


class DayIn(BaseModel):
    day: str
    slots: list[SlotIn]

    def as_doc(self) -> dict[str, Any]:
        return {"day": self.day, "slots": [{"from": s.from_, "to": s.to} for s in self.slots]}


class ServiceCreateRequest(BaseModel):
    service_name: str = Field(min_length=1, max_length=200)
    service_type: str = Field(min_length=1, max_length=64)
    description: str = ""
    experience_years: int = Field(default=0, ge=0)
    price_cents: int = Field(gt=0)
    currency: str = Field(default="usd", min_length=3, max_length=3)
    availability: list[DayIn]


class ServiceUpdateRequest(BaseModel):
    service_name: str | None = Field(default=None, min_length=1, max_length=200)
    service_type: str | None = Field(default=None, min_length=1, max_length=64)
    description: str | None = None
    experience_years: int | None = Field(default=None, ge=0)
    price_cents: int | None = Field(default=None, gt=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    availability: list[DayIn] | None = None
    status: ServiceStatus | None = None


@router.post("", response_model=ServiceOut, status_code=201)
async def create_service(
    body: ServiceCreateRequest,
    principal: Principal = Depends(require_roles("SERVICE_PROVIDER")),
    svc: ServiceCatalog = Depends(catalog_service),
) -> ServiceOut:
    service = await svc.create(
        principal,
        fields=body.model_dump(exclude={"availability"}),
        availability=[d.as_doc() for d in body.availability],
    )
    return ServiceOut.model_validate(service)


@router.get("", response_model=PageOut[ServiceOut])
async def search_services(
    search: str | None = Query(default=None, max_length=200),
    service_type: str | None = Query(default=None, max_length=64),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    svc: ServiceCatalog = Depends(catalog_service),
) -> PageOut[ServiceOut]:
    page = await svc.search(
        search=search,
        service_type=service_type,
        status=ServiceStatus.ACTIVE,
        offset=offset,
        limit=limit,
    )
    return PageOut.of(page, ServiceOut)


@router.get("/mine", response_model=PageOut[ServiceOut])
async def my_services(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    principal: Principal = Depends(require_roles("SERVICE_PROVIDER")),
    svc: ServiceCatalog = Depends(catalog_service),
) -> PageOut[ServiceOut]:
    return PageOut.of(await svc.mine(principal, offset=offset, limit=limit), ServiceOut)


@router.get("/{service_id}", response_model=ServiceOut)
async def get_service(
    service_id: uuid.UUID, svc: ServiceCatalog = Depends(catalog_service)
) -> ServiceOut:
    return ServiceOut.model_validate(await svc.get(service_id))


@router.patch("/{service_id}", response_model=ServiceOut)
async def update_service(
    service_id: uuid.UUID,
    body: ServiceUpdateRequest,
    principal: Principal = Depends(require_roles("SERVICE_PROVIDER")),
    svc: ServiceCatalog = Depends(catalog_service),
) -> ServiceOut:
    service = await svc.update(
        principal,
        service_id,
        fields=body.model_dump(
            exclude_unset=True, exclude_none=True, exclude={"availability", "status"}
        ),
        availability=[d.as_doc() for d in body.availability] if body.availability else None,
        status=body.status,
    )
    return ServiceOut.model_validate(service)


@router.post("/{service_id}/cover", response_model=ServiceOut)
async def upload_cover(
    service_id: uuid.UUID,
    file: UploadFile = File(...),
    principal: Principal = Depends(require_roles("SERVICE_PROVIDER")),
    svc: ServiceCatalog = Depends(catalog_service),
    storage: S3Storage = Depends(storage_dep),
) -> ServiceOut:
    service = await svc.set_cover(
        principal,
        service_id,
        storage=storage,
        filename=file.filename or "cover",
        body=await file.read(),
        content_type=file.content_type or "application/octet-stream",
    )
    return ServiceOut.model_validate(service)
