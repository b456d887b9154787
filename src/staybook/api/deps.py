"""
staybook.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings and DB sessions.
- Expose the external clients built at startup (Stripe, push, storage).
- Assemble request-scoped services over one shared session.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from staybook.integrations.push import FirebasePushSender
from staybook.integrations.storage import S3Storage
from staybook.integrations.stripe_gateway import StripeGateway
from staybook.services.accounts import AccountService
from staybook.services.contacts import ContactService
from staybook.services.hotel_bookings import HotelBookingService
from staybook.services.hotels import HotelService
from staybook.services.messaging import MessagingService
from staybook.services.notifications import NotificationService
from staybook.services.payments import PaymentService
from staybook.services.service_bookings import ServiceBookingService
from staybook.services.service_catalog import ServiceCatalog
from staybook.services.statistics import StatisticsService
from staybook.services.subscriptions import SubscriptionService
from staybook.services.webhooks import WebhookService
from staybook.settings import Settings


def settings_dep(request: Request) -> Settings:
    # The instance `create_app` was built with; tests inject their own.
    return request.app.state.settings  # type: ignore[attr-defined]


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    # The sessionmaker is created on app startup in `staybook.api.app.create_app`.
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    # Request-scoped DB session. Commit/rollback is managed explicitly by the service layer.
    async with session_factory() as session:
        yield session


def gateway_dep(request: Request) -> StripeGateway:
    return request.app.state.gateway  # type: ignore[attr-defined]


def push_dep(request: Request) -> FirebasePushSender:
    return request.app.state.push  # type: ignore[attr-defined]


def storage_dep(request: Request) -> S3Storage:
    return request.app.state.storage  # type: ignore[attr-defined]


# --- Services ---------------------------------------------------------------------


def account_service(
    session: AsyncSession = Depends(db_session), settings: Settings = Depends(settings_dep)
) -> AccountService:
    return AccountService(session=session, settings=settings)


def hotel_service(session: AsyncSession = Depends(db_session)) -> HotelService:
    return HotelService(session=session)


def catalog_service(session: AsyncSession = Depends(db_session)) -> ServiceCatalog:
    return ServiceCatalog(session=session)


def notification_service(
    session: AsyncSession = Depends(db_session), push: FirebasePushSender = Depends(push_dep)
) -> NotificationService:
    return NotificationService(session=session, push=push)


def payment_service(
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
    gateway: StripeGateway = Depends(gateway_dep),
    notifier: NotificationService = Depends(notification_service),
) -> PaymentService:
    return PaymentService(session=session, settings=settings, gateway=gateway, notifier=notifier)


def hotel_booking_service(
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
    notifier: NotificationService = Depends(notification_service),
    payments: PaymentService = Depends(payment_service),
) -> HotelBookingService:
    return HotelBookingService(
        session=session, settings=settings, notifier=notifier, payments=payments
    )


def service_booking_service(
    session: AsyncSession = Depends(db_session),
    notifier: NotificationService = Depends(notification_service),
    payments: PaymentService = Depends(payment_service),
) -> ServiceBookingService:
    return ServiceBookingService(session=session, notifier=notifier, payments=payments)


def subscription_service(
    session: AsyncSession = Depends(db_session), gateway: StripeGateway = Depends(gateway_dep)
) -> SubscriptionService:
    return SubscriptionService(session=session, gateway=gateway)


def webhook_service(
    session: AsyncSession = Depends(db_session),
    gateway: StripeGateway = Depends(gateway_dep),
    notifier: NotificationService = Depends(notification_service),
    payments: PaymentService = Depends(payment_service),
    subscriptions: SubscriptionService = Depends(subscription_service),
) -> WebhookService:
    return WebhookService(
        session=session,
        gateway=gateway,
        notifier=notifier,
        payments=payments,
        subscriptions=subscriptions,
    )


def messaging_service(session: AsyncSession = Depends(db_session)) -> MessagingService:
    return MessagingService(session=session)


def statistics_service(session: AsyncSession = Depends(db_session)) -> StatisticsService:
    return StatisticsService(session=session)


def contact_service(
    session: AsyncSession = Depends(db_session),
    notifier: NotificationService = Depends(notification_service),
) -> ContactService:
    return ContactService(session=session, notifier=notifier)


# --- Module Notes -----------------------------------------------------------
# FastAPI caches dependencies per request, so every service built for one request
# shares the same `db_session` and therefore the same transaction.
