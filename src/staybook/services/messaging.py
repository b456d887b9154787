"""
staybook.services.messaging

Direct messages between two users.

A channel is identified by the two user ids sorted and concatenated, so both
participants always land in the same channel regardless of who writes first.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from staybook.auth.models import Principal
from staybook.db.models import Channel, Message, UserStatus, utcnow
from staybook.db.repositories.messages import MessageRepo
from staybook.db.repositories.paging import Page
from staybook.db.repositories.users import UserRepo
from staybook.integrations.storage import S3Storage
from staybook.observability.logging import get_logger
from staybook.services.errors import BadRequest, NotFound
from staybook.services.guards import active_user

log = get_logger(__name__)


def channel_name_for(a: uuid.UUID, b: uuid.UUID) -> str:
    first, second = sorted((str(a), str(b)))
    return f"{first}{second}"


@dataclass(frozen=True, slots=True)
class ChannelSummary:
    channel: Channel
    peer_id: uuid.UUID
    last_message: Message | None


class MessagingService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session
        self._messages = MessageRepo(session)
        self._users = UserRepo(session)

    async def send(
        self,
        principal: Principal,
        *,
        receiver_id: uuid.UUID,
        body: str,
        storage: S3Storage | None = None,
        files: list[tuple[str, bytes, str]] | None = None,
    ) -> Message:
        sender = await active_user(self._users, principal)
        if receiver_id == sender.id:
            raise BadRequest("You cannot message yourself")
        receiver = await self._users.get(receiver_id)
        if receiver is None or receiver.status == UserStatus.DELETED:
            raise NotFound("Receiver not found")
        if not body.strip() and not files:
            raise BadRequest("Message is empty")

        name = channel_name_for(sender.id, receiver.id)
        channel = await self._messages.channel_by_name(name)
        if channel is None:
            channel = await self._messages.add_channel(
                name=name, person1_id=sender.id, person2_id=receiver.id
            )
            log.info("channel_created", channel_id=str(channel.id))

        urls: list[str] = []
        if files:
            if storage is None:
                raise BadRequest("File uploads are not available")
            for filename, data, content_type in files:
                urls.append(
                    await storage.put(
                        prefix=f"messages/{channel.id}",
                        filename=filename,
                        body=data,
                        content_type=content_type,
                    )
                )

        message = await self._messages.add_message(
            channel_id=channel.id, sender_id=sender.id, body=body.strip(), files=urls
        )
        channel.updated_at = utcnow()
        await self._session.commit()
        return message

    async def my_channels(self, principal: Principal) -> list[ChannelSummary]:
        out: list[ChannelSummary] = []
        for channel in await self._messages.channels_of(principal.user_id):
            peer = channel.person2_id if channel.person1_id == principal.user_id else channel.person1_id
            out.append(
                ChannelSummary(
                    channel=channel,
                    peer_id=peer,
                    last_message=await self._messages.last_message(channel.id),
                )
            )
        return out

    async def channel_messages(
        self, principal: Principal, channel_id: uuid.UUID, *, offset: int, limit: int
    ) -> Page[Message]:
        channel = await self._messages.get_channel(channel_id)
        if channel is None or principal.user_id not in (channel.person1_id, channel.person2_id):
            # Non-participants cannot learn that the channel exists.
            raise NotFound("Channel not found")
        return await self._messages.messages_in(channel.id, offset=offset, limit=limit)
