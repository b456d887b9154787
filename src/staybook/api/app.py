"""
staybook.api.app

FastAPI app factory for the staybook marketplace API.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Initialize and dispose shared infrastructure (DB engine/session factory).
- Hold the external clients (Stripe, FCM, object storage); tests inject fakes here.
- Map service-layer errors to HTTP responses in one place.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.status import HTTP_400_BAD_REQUEST, HTTP_502_BAD_GATEWAY

from staybook.api.routers.auth import router as auth_router
from staybook.api.routers.contacts import router as contacts_router
from staybook.api.routers.health import router as health_router
from staybook.api.routers.hotel_bookings import router as hotel_bookings_router
from staybook.api.routers.hotels import router as hotels_router
from staybook.api.routers.messages import router as messages_router
from staybook.api.routers.notifications import router as notifications_router
from staybook.api.routers.payments import router as payments_router
from staybook.api.routers.service_bookings import router as service_bookings_router
from staybook.api.routers.services import router as services_router
from staybook.api.routers.statistics import router as statistics_router
from staybook.api.routers.subscriptions import router as subscriptions_router
from staybook.api.routers.users import router as users_router
from staybook.db.init_db import init_db
from staybook.db.session import create_engine, create_sessionmaker
from staybook.integrations.push import FirebasePushSender
from staybook.integrations.storage import S3Storage, StorageError
from staybook.integrations.stripe_gateway import (
    PaymentGatewayError,
    StripeGateway,
    WebhookVerificationError,
)
from staybook.observability.logging import configure_logging, get_logger
from staybook.observability.middleware import RequestContextMiddleware
from staybook.services.accounts import AccountService
from staybook.services.errors import ServiceError
from staybook.settings import Settings

log = get_logger(__name__)


def create_app(
    *,
    settings: Settings,
    gateway: StripeGateway | None = None,
    push: FirebasePushSender | None = None,
    storage: S3Storage | None = None,
) -> FastAPI:
    # Configure structured logging once at process startup (before app serves requests).
    configure_logging(
        service_name=settings.service_name,
        level=settings.log_level,
        json_logs=settings.env != "dev",
    )

    app = FastAPI(
        title="Staybook Marketplace API",
        version="0.1.0",
        docs_url="/docs",
        openapi_url="/openapi.json",
    )
    app.state.settings = settings
    app.state.gateway = gateway or StripeGateway(
        api_key=settings.stripe_secret_key, webhook_secret=settings.stripe_webhook_secret
    )
    app.state.push = push or FirebasePushSender(
        credentials_file=settings.firebase_credentials_file
    )
    app.state.storage = storage or S3Storage(settings)

    app.add_middleware(RequestContextMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(hotels_router)
    app.include_router(hotel_bookings_router)
    app.include_router(services_router)
    app.include_router(service_bookings_router)
    app.include_router(payments_router)
    app.include_router(subscriptions_router)
    app.include_router(notifications_router)
    app.include_router(messages_router)
    app.include_router(statistics_router)
    app.include_router(contacts_router)

    @app.exception_handler(ServiceError)
    async def _service_error(_: Request, exc: ServiceError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(WebhookVerificationError)
    async def _webhook_error(_: Request, exc: WebhookVerificationError) -> JSONResponse:
        return JSONResponse(status_code=HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(PaymentGatewayError)
    async def _gateway_error(_: Request, exc: PaymentGatewayError) -> JSONResponse:
        log.warning("payment_gateway_error", error=str(exc))
        return JSONResponse(
            status_code=HTTP_502_BAD_GATEWAY, content={"detail": f"Payment provider error: {exc}"}
        )

    @app.exception_handler(StorageError)
    async def _storage_error(_: Request, exc: StorageError) -> JSONResponse:
        log.warning("storage_error", error=str(exc))
        return JSONResponse(
            status_code=HTTP_502_BAD_GATEWAY, content={"detail": f"File storage error: {exc}"}
        )

    @app.on_event("startup")
    async def _startup() -> None:
        log.info("startup", env=settings.env)
        # Create the async DB engine and session factory once and stash them on app.state.
        # Routers obtain sessions via dependencies (see `staybook.api.deps`).
        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        if settings.env in ("dev", "test"):
            # Dev/test convenience: create tables automatically. Prod should use Alembic migrations.
            await init_db(engine)
        if settings.super_admin_email and settings.super_admin_password:
            async with app.state.sessionmaker() as session:
                await AccountService(session=session, settings=settings).ensure_super_admin(
                    email=settings.super_admin_email, password=settings.super_admin_password
                )

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        engine = getattr(app.state, "engine", None)
        if engine is not None:
            await engine.dispose()
        log.info("shutdown")

    return app


# --- Module Notes -----------------------------------------------------------
# App composition stays here; business rules live in `staybook.services` and the
# pure booking/pricing rules in `staybook.domain`.
