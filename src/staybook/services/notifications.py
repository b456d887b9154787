"""
staybook.services.notifications

In-app notifications plus best-effort push delivery.

Responsibilities:
- Store one notification row per recipient (the in-app inbox).
- Push to the recipient's device when an FCM token is registered.
- Never fail the calling booking/payment operation because of push delivery.
"""

from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from staybook.auth.models import Principal
from staybook.db.models import BookingType, Notification, User
from staybook.db.repositories.notifications import NotificationRepo
from staybook.db.repositories.paging import Page
from staybook.db.repositories.users import UserRepo
from staybook.integrations.push import FirebasePushSender, PushDeliveryError
from staybook.observability.logging import get_logger
from staybook.services.errors import NotFound

log = get_logger(__name__)


class NotificationService:
    def __init__(self, *, session: AsyncSession, push: FirebasePushSender) -> None:
        self._session = session
        self._push = push
        self._repo = NotificationRepo(session)
        self._users = UserRepo(session)

    async def notify(
        self,
        receiver: User,
        *,
        title: str,
        body: str,
        booking_type: BookingType | None = None,
        booking_id: uuid.UUID | None = None,
    ) -> Notification:
        """
        Add an inbox row for `receiver` and try to push it. The caller commits.
        """

        notification = await self._repo.add(
            Notification(
                receiver_id=receiver.id,
                title=title,
                body=body,
                booking_type=booking_type,
                booking_id=booking_id,
            )
        )
        if receiver.fcm_token:
            data = {"notification_id": str(notification.id)}
            if booking_id is not None:
                data["booking_id"] = str(booking_id)
            if booking_type is not None:
                data["booking_type"] = booking_type.value
            try:
                await self._push.send(token=receiver.fcm_token, title=title, body=body, data=data)
                notification.pushed = True
            except PushDeliveryError as e:
                log.warning("push_failed", receiver_id=str(receiver.id), error=str(e))
        return notification

    async def notify_many(
        self,
        receivers: list[User],
        *,
        title: str,
        body: str,
        booking_type: BookingType | None = None,
        booking_id: uuid.UUID | None = None,
    ) -> None:
        seen: set[uuid.UUID] = set()
        for receiver in receivers:
            if receiver.id in seen:
                continue
            seen.add(receiver.id)
            await self.notify(
                receiver, title=title, body=body, booking_type=booking_type, booking_id=booking_id
            )

    async def list_mine(
        self, principal: Principal, *, unread_only: bool, offset: int, limit: int
    ) -> Page[Notification]:
        return await self._repo.for_receiver(
            principal.user_id, unread_only=unread_only, offset=offset, limit=limit
        )

    async def mark_read(self, principal: Principal, notification_id: uuid.UUID) -> Notification:
        notification = await self._repo.get(notification_id)
        if notification is None or notification.receiver_id != principal.user_id:
            raise NotFound("Notification not found")
        notification.is_read = True
        await self._session.commit()
        return notification

    async def mark_all_read(self, principal: Principal) -> int:
        updated = await self._repo.mark_all_read(principal.user_id)
        await self._session.commit()
        return updated
