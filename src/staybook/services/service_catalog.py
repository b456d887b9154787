"""
staybook.services.service_catalog

On-demand services offered by service providers (cleaning, maintenance, ...).
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from staybook.auth.models import Principal
from staybook.db.models import Service, ServiceStatus, UserRole
from staybook.db.repositories.paging import Page
from staybook.db.repositories.services import ServiceRepo
from staybook.db.repositories.users import UserRepo
from staybook.domain.slots import WEEKDAYS, normalize_slot
from staybook.integrations.storage import S3Storage
from staybook.observability.logging import get_logger
from staybook.services.errors import BadRequest, Forbidden, NotFound
from staybook.services.guards import active_user

log = get_logger(__name__)

EDITABLE_FIELDS = frozenset(
    {"service_name", "service_type", "description", "experience_years", "price_cents", "currency"}
)


def clean_availability(availability: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Validate and normalise a weekly availability document.

    Day names are title-cased; slot bounds are whitespace-normalised so matching at
    booking time is exact.
    """

    if not availability:
        raise BadRequest("At least one available day is required")
    seen: set[str] = set()
    cleaned: list[dict[str, Any]] = []
    for entry in availability:
        day = str(entry.get("day", "")).strip().title()
        if day not in WEEKDAYS:
            raise BadRequest(f"Unknown day: {entry.get('day')!r}")
        if day in seen:
            raise BadRequest(f"Day listed twice: {day}")
        seen.add(day)
        slots = entry.get("slots") or []
        if not slots:
            raise BadRequest(f"{day} needs at least one slot")
        cleaned.append(
            {
                "day": day,
                "slots": [
                    {"from": normalize_slot(str(s["from"])), "to": normalize_slot(str(s["to"]))}
                    for s in slots
                ],
            }
        )
    return cleaned


class ServiceCatalog:
    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session
        self._services = ServiceRepo(session)
        self._users = UserRepo(session)

    async def create(
        self, principal: Principal, *, fields: dict[str, Any], availability: list[dict[str, Any]]
    ) -> Service:
        provider = await active_user(self._users, principal)
        if provider.role != UserRole.SERVICE_PROVIDER:
            raise Forbidden("Only service providers can offer services")
        if fields.get("price_cents", 0) <= 0:
            raise BadRequest("Price must be positive")
        service = await self._services.add(
            Service(
                provider_id=provider.id,
                **{k: v for k, v in fields.items() if k in EDITABLE_FIELDS},
                availability=clean_availability(availability),
                status=ServiceStatus.ACTIVE,
            )
        )
        await self._session.commit()
        log.info("service_created", service_id=str(service.id), provider_id=str(provider.id))
        return service

    async def get(self, service_id: uuid.UUID) -> Service:
        service = await self._services.get(service_id)
        if service is None:
            raise NotFound("Service not found")
        return service

    async def update(
        self,
        principal: Principal,
        service_id: uuid.UUID,
        *,
        fields: dict[str, Any],
        availability: list[dict[str, Any]] | None = None,
        status: ServiceStatus | None = None,
    ) -> Service:
        service = await self.get(service_id)
        if service.provider_id != principal.user_id and not principal.is_admin:
            raise Forbidden("You do not own this service")
        for key, value in fields.items():
            if key in EDITABLE_FIELDS:
                setattr(service, key, value)
        if service.price_cents <= 0:
            raise BadRequest("Price must be positive")
        if availability is not None:
            service.availability = clean_availability(availability)
        if status is not None:
            service.status = status
        await self._session.commit()
        return service

    async def set_cover(
        self,
        principal: Principal,
        service_id: uuid.UUID,
        *,
        storage: S3Storage,
        filename: str,
        body: bytes,
        content_type: str,
    ) -> Service:
        service = await self.get(service_id)
        if service.provider_id != principal.user_id:
            raise Forbidden("You do not own this service")
        if not content_type.startswith("image/"):
            raise BadRequest("Cover must be an image")
        service.cover_image = await storage.put(
            prefix=f"services/{service.id}", filename=filename, body=body, content_type=content_type
        )
        await self._session.commit()
        return service

    async def search(
        self,
        *,
        search: str | None,
        service_type: str | None,
        status: ServiceStatus | None,
        offset: int,
        limit: int,
    ) -> Page[Service]:
        return await self._services.search(
            search=search, service_type=service_type, status=status, offset=offset, limit=limit
        )

    async def mine(self, principal: Principal, *, offset: int, limit: int) -> Page[Service]:
        return await self._services.search(provider_id=principal.user_id, offset=offset, limit=limit)
