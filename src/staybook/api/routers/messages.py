"""
staybook.api.routers.messages

Direct messages between two users (multipart so attachments can ride along).
"""

from __future__ import annotations

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from pydantic import BaseModel, ConfigDict

from staybook.api.deps import messaging_service, storage_dep
from staybook.api.schemas import PageOut
from staybook.auth.deps import get_principal
from staybook.auth.models import Principal
from staybook.integrations.storage import S3Storage
from staybook.services.messaging import MessagingService

router = APIRouter(prefix="/v1/messages", tags=["messages"])


class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    channel_id: uuid.UUID
    sender_id: uuid.UUID
    body: str
    files: list[str]
    created_at: datetime


class ChannelOut(BaseModel):
    id: uuid.UUID
    peer_id: uuid.UUID
    updated_at: datetime
    last_message: MessageOut | None


@router.post("", response_model=MessageOut, status_code=201)
async def send_message(
    receiver_id: uuid.UUID = Form(...),
    body: str = Form(default=""),
    files: list[UploadFile] | None = File(default=None),
    principal: Principal = Depends(get_principal),
    svc: MessagingService = Depends(messaging_service),
    storage: S3Storage = Depends(storage_dep),
) -> MessageOut:
    payload = [
        (f.filename or "file", await f.read(), f.content_type or "application/octet-stream")
        for f in files or []
    ]
    message = await svc.send(
        principal, receiver_id=receiver_id, body=body, storage=storage, files=payload
    )
    return MessageOut.model_validate(message)


@router.get("/channels", response_model=list[ChannelOut])
async def my_channels(
    principal: Principal = Depends(get_principal),
    svc: MessagingService = Depends(messaging_service),
) -> list[ChannelOut]:
    return [
        ChannelOut(
            id=s.channel.id,
            peer_id=s.peer_id,
            updated_at=s.channel.updated_at,
            last_message=MessageOut.model_validate(s.last_message) if s.last_message else None,
        )
        for s in await svc.my_channels(principal)
    ]


@router.get("/channels/{channel_id}", response_model=PageOut[MessageOut])
async def channel_messages(
    channel_id: uuid.UUID,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    principal: Principal = Depends(get_principal),
    svc: MessagingService = Depends(messaging_service),
) -> PageOut[MessageOut]:
    page = await svc.channel_messages(principal, channel_id, offset=offset, limit=limit)
    return PageOut.of(page, MessageOut)
