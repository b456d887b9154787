"""
staybook.api.routers.statistics

Dashboard statistics for admins and partners.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Literal

from fastapi import APIRouter, Depends

from staybook.api.deps import statistics_service
from staybook.auth.deps import require_roles
from staybook.auth.models import Principal
from staybook.db.models import utcnow
from staybook.services.statistics import StatisticsService

router = APIRouter(prefix="/v1/statistics", tags=["statistics"])

TimeRangeParam = Literal["7d", "30d", "90d", "1y", "all"]


@router.get("/overview", dependencies=[Depends(require_roles("ADMIN"))])
async def overview(
    time_range: TimeRangeParam | None = None,
    svc: StatisticsService = Depends(statistics_service),
) -> dict[str, Any]:
    return asdict(await svc.overview(time_range=time_range, now=utcnow()))


@router.get("/earnings")
async def earnings(
    time_range: TimeRangeParam | None = None,
    principal: Principal = Depends(require_roles("PROPERTY_OWNER", "SERVICE_PROVIDER")),
    svc: StatisticsService = Depends(statistics_service),
) -> dict[str, Any]:
    return asdict(await svc.partner_earnings(principal, time_range=time_range, now=utcnow()))
