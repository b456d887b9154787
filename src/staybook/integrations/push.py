"""
staybook.integrations.push

Push notification delivery via Firebase Cloud Messaging.
"""

from __future__ import annotations

import firebase_admin
from firebase_admin import credentials, exceptions, messaging
from starlette.concurrency import run_in_threadpool

from staybook.observability.logging import get_logger

log = get_logger(__name__)


class PushDeliveryError(Exception):
    pass


class FirebasePushSender:
    def __init__(self, *, credentials_file: str | None) -> None:
        self._enabled = credentials_file is not None
        if credentials_file:
            try:
                firebase_admin.get_app()
            except ValueError:
                # No default app yet in this process.
                firebase_admin.initialize_app(credentials.Certificate(credentials_file))

    async def send(
        self, *, token: str, title: str, body: str, data: dict[str, str] | None = None
    ) -> str | None:
        if not self._enabled:
            # No credentials configured (local dev); in-app notifications still get stored.
            log.info("push_skipped", reason="firebase_not_configured", title=title)
            return None

        message = messaging.Message(
            token=token,
            notification=messaging.Notification(title=title, body=body),
            data=data or {},
        )
        try:
            return await run_in_threadpool(messaging.send, message)
        except (exceptions.FirebaseError, ValueError) as e:
            raise PushDeliveryError(str(e)) from e
