from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from staybook.db.models import ContactReveal
from staybook.db.repositories.paging import Page, paginate


class ContactRevealRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, reveal: ContactReveal) -> ContactReveal:
        self._session.add(reveal)
        await self._session.flush()
        return reveal

    async def get(self, reveal_id: uuid.UUID) -> ContactReveal | None:
        return await self._session.get(ContactReveal, reveal_id)

    async def for_pair(
        self, *, provider_id: uuid.UUID, property_owner_id: uuid.UUID
    ) -> ContactReveal | None:
        stmt = select(ContactReveal).where(
            ContactReveal.provider_id == provider_id,
            ContactReveal.property_owner_id == property_owner_id,
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def for_owner(
        self, property_owner_id: uuid.UUID, provider_ids: list[uuid.UUID]
    ) -> dict[uuid.UUID, ContactReveal]:
        if not provider_ids:
            return {}
        stmt = select(ContactReveal).where(
            ContactReveal.property_owner_id == property_owner_id,
            ContactReveal.provider_id.in_(provider_ids),
        )
        return {r.provider_id: r for r in (await self._session.execute(stmt)).scalars().all()}

    async def list_requests(
        self, *, is_shown: bool | None = None, offset: int = 0, limit: int = 20
    ) -> Page[ContactReveal]:
        stmt = select(ContactReveal)
        if is_shown is not None:
            stmt = stmt.where(ContactReveal.is_shown.is_(is_shown))
        # Open requests first, newest first within each group.
        stmt = stmt.order_by(ContactReveal.is_shown.asc(), ContactReveal.created_at.desc())
        return await paginate(self._session, stmt, offset=offset, limit=limit)
