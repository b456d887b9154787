from __future__ import annotations

import uuid

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from staybook.db.models import Channel, Message
from staybook.db.repositories.paging import Page, paginate


class MessageRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def channel_by_name(self, name: str) -> Channel | None:
        stmt = select(Channel).where(Channel.channel_name == name)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def get_channel(self, channel_id: uuid.UUID) -> Channel | None:
        return await self._session.get(Channel, channel_id)

    async def add_channel(
        self, *, name: str, person1_id: uuid.UUID, person2_id: uuid.UUID
    ) -> Channel:
        channel = Channel(channel_name=name, person1_id=person1_id, person2_id=person2_id)
        self._session.add(channel)
        await self._session.flush()
        return channel

    async def channels_of(self, user_id: uuid.UUID) -> list[Channel]:
        stmt = (
            select(Channel)
            .where(or_(Channel.person1_id == user_id, Channel.person2_id == user_id))
            .order_by(Channel.updated_at.desc())
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def add_message(
        self, *, channel_id: uuid.UUID, sender_id: uuid.UUID, body: str, files: list[str]
    ) -> Message:
        msg = Message(channel_id=channel_id, sender_id=sender_id, body=body, files=files)
        self._session.add(msg)
        await self._session.flush()
        return msg

    async def last_message(self, channel_id: uuid.UUID) -> Message | None:
        stmt = (
            select(Message)
            .where(Message.channel_id == channel_id)
            .order_by(Message.created_at.desc())
            .limit(1)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def messages_in(
        self, channel_id: uuid.UUID, *, offset: int = 0, limit: int = 50
    ) -> Page[Message]:
        stmt = (
            select(Message)
            .where(Message.channel_id == channel_id)
            .order_by(Message.created_at.desc())
        )
        return await paginate(self._session, stmt, offset=offset, limit=limit)
