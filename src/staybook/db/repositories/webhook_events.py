from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from staybook.db.models import ProcessedWebhookEvent


class WebhookEventRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def seen(self, event_id: str) -> bool:
        return await self._session.get(ProcessedWebhookEvent, event_id) is not None

    async def record(self, *, event_id: str, event_type: str) -> None:
        # Committed together with the state change it guards.
        self._session.add(ProcessedWebhookEvent(id=event_id, event_type=event_type))
        await self._session.flush()
