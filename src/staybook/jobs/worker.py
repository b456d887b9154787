"""
staybook.jobs.worker

arq worker definition: `arq staybook.jobs.worker.WorkerSettings`.

Responsibilities:
- Build shared infrastructure once per worker process (DB engine, Stripe gateway,
  push sender, HTTP client) and keep it in the arq context.
- Schedule the status sweeps in `staybook.jobs.tasks` as cron jobs.
"""

from __future__ import annotations

from typing import Any

import httpx
from arq.connections import RedisSettings
from arq.cron import cron

from staybook.db.models import utcnow
from staybook.db.session import create_engine, create_sessionmaker
from staybook.integrations.push import FirebasePushSender
from staybook.integrations.stripe_gateway import StripeGateway
from staybook.jobs import tasks
from staybook.observability.logging import configure_logging, get_logger
from staybook.settings import get_settings

log = get_logger(__name__)


async def startup(ctx: dict[str, Any]) -> None:
    settings = get_settings()
    configure_logging(service_name=f"{settings.service_name}-worker", level=settings.log_level)
    engine = create_engine(settings)
    ctx["engine"] = engine
    ctx["deps"] = tasks.JobDeps(
        session_factory=create_sessionmaker(engine),
        settings=settings,
        gateway=StripeGateway(
            api_key=settings.stripe_secret_key, webhook_secret=settings.stripe_webhook_secret
        ),
        push=FirebasePushSender(credentials_file=settings.firebase_credentials_file),
        http=httpx.AsyncClient(
            timeout=settings.calendar_sync_timeout_seconds, follow_redirects=True
        ),
    )
    log.info("worker_startup", env=settings.env)


async def shutdown(ctx: dict[str, Any]) -> None:
    deps: tasks.JobDeps | None = ctx.get("deps")
    if deps is not None:
        await deps.http.aclose()
    engine = ctx.get("engine")
    if engine is not None:
        await engine.dispose()
    log.info("worker_shutdown")


async def expire_pending_bookings(ctx: dict[str, Any]) -> int:
    return await tasks.expire_pending_bookings(ctx["deps"], now=utcnow())


async def complete_checked_out_stays(ctx: dict[str, Any]) -> int:
    return await tasks.complete_checked_out_stays(ctx["deps"], now=utcnow())


async def reject_unanswered_requests(ctx: dict[str, Any]) -> int:
    return await tasks.reject_unanswered_requests(ctx["deps"], now=utcnow())


async def deactivate_lapsed_subscriptions(ctx: dict[str, Any]) -> int:
    return await tasks.deactivate_lapsed_subscriptions(ctx["deps"], now=utcnow())


async def sync_airbnb_calendars(ctx: dict[str, Any]) -> dict[str, int]:
    report = await tasks.sync_airbnb_calendars(ctx["deps"])
    return {"hotels": report.hotels, "created": report.created, "failed": report.failed}


class WorkerSettings:
    redis_settings = RedisSettings.from_dsn(get_settings().redis_url)
    on_startup = startup
    on_shutdown = shutdown

    cron_jobs = [
        cron(expire_pending_bookings, minute=set(range(0, 60, 5))),
        cron(reject_unanswered_requests, minute=set(range(2, 60, 10))),
        cron(complete_checked_out_stays, hour=0, minute=15),
        cron(deactivate_lapsed_subscriptions, hour=0, minute=30),
        cron(sync_airbnb_calendars, minute={0, 30}),
    ]
    max_tries = 3
    job_timeout = 600


# --- Module Notes -----------------------------------------------------------
# Cron times are UTC. The sweeps are idempotent status flips, so overlapping runs
# after a worker restart are harmless.
