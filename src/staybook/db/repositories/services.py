from __future__ import annotations

import uuid

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from staybook.db.models import Service, ServiceStatus
from staybook.db.repositories.paging import Page, paginate


class ServiceRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, service: Service) -> Service:
        self._session.add(service)
        await self._session.flush()
        return service

    async def get(self, service_id: uuid.UUID) -> Service | None:
        return await self._session.get(Service, service_id)

    async def search(
        self,
        *,
        search: str | None = None,
        service_type: str | None = None,
        status: ServiceStatus | None = None,
        provider_id: uuid.UUID | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Page[Service]:
        stmt = select(Service)
        if provider_id is not None:
            stmt = stmt.where(Service.provider_id == provider_id)
        if status is not None:
            stmt = stmt.where(Service.status == status)
        if service_type:
            stmt = stmt.where(func.lower(Service.service_type) == service_type.lower())
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(Service.service_name).like(pattern),
                    func.lower(Service.description).like(pattern),
                )
            )
        stmt = stmt.order_by(Service.created_at.desc())
        return await paginate(self._session, stmt, offset=offset, limit=limit)
