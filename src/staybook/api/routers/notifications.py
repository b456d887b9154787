"""
staybook.api.routers.notifications

The signed-in user's notification inbox.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict

from staybook.api.deps import notification_service
from staybook.api.schemas import PageOut
from staybook.auth.deps import get_principal
from staybook.auth.models import Principal
from staybook.services.notifications import NotificationService

router = APIRouter(prefix="/v1/notifications", tags=["notifications"])


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    body: str
    booking_type: str | None
    booking_id: uuid.UUID | None
    is_read: bool
    created_at: datetime


@router.get("", response_model=PageOut[NotificationOut])
async def list_notifications(
    unread: bool = False,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    principal: Principal = Depends(get_principal),
    svc: NotificationService = Depends(notification_service),
) -> PageOut[NotificationOut]:
    page = await svc.list_mine(principal, unread_only=unread, offset=offset, limit=limit)
    return PageOut.of(page, NotificationOut)


@router.post("/read-all")
async def mark_all_read(
    principal: Principal = Depends(get_principal),
    svc: NotificationService = Depends(notification_service),
) -> dict[str, int]:
    return {"updated": await svc.mark_all_read(principal)}


@router.post("/{notification_id}/read", response_model=NotificationOut)
async def mark_read(
    notification_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    svc: NotificationService = Depends(notification_service),
) -> NotificationOut:
    return NotificationOut.model_validate(await svc.mark_read(principal, notification_id))
