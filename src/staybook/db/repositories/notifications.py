from __future__ import annotations

import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from staybook.db.models import Notification
from staybook.db.repositories.paging import Page, paginate


class NotificationRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, notification: Notification) -> Notification:
        self._session.add(notification)
        await self._session.flush()
        return notification

    async def get(self, notification_id: uuid.UUID) -> Notification | None:
        return await self._session.get(Notification, notification_id)

    async def for_receiver(
        self,
        receiver_id: uuid.UUID,
        *,
        unread_only: bool = False,
        offset: int = 0,
        limit: int = 20,
    ) -> Page[Notification]:
        stmt = select(Notification).where(Notification.receiver_id == receiver_id)
        if unread_only:
            stmt = stmt.where(Notification.is_read.is_(False))
        stmt = stmt.order_by(Notification.created_at.desc())
        return await paginate(self._session, stmt, offset=offset, limit=limit)

    async def mark_all_read(self, receiver_id: uuid.UUID) -> int:
        stmt = (
            update(Notification)
            .where(Notification.receiver_id == receiver_id, Notification.is_read.is_(False))
            .values(is_read=True)
        )
        result = await self._session.execute(stmt)
        return int(result.rowcount or 0)
