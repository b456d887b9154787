"""
staybook.api.routers.health

Liveness and readiness endpoints.

Responsibilities:
- `/healthz`: the process serves HTTP.
- `/readyz`: the database answers; also reports which third-party clients are configured.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from staybook.api.deps import db_session, settings_dep
from staybook.settings import Settings

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(
    session: AsyncSession = Depends(db_session), settings: Settings = Depends(settings_dep)
) -> dict[str, object]:
    # Only the database gates readiness; a missing Stripe/FCM/S3 config degrades single endpoints.
    await session.execute(text("SELECT 1"))
    return {
        "status": "ready",
        "integrations": {
            "stripe": bool(settings.stripe_secret_key),
            "stripe_webhooks": bool(settings.stripe_webhook_secret),
            "push": settings.firebase_credentials_file is not None,
            "storage": bool(settings.storage_bucket),
        },
    }
