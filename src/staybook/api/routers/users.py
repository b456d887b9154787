"""
staybook.api.routers.users

Profile management for the signed-in user and user administration for admins.
"""

from __future__ import annotations

import uuid
from typing import Literal

from fastapi import APIRouter, Depends, File, Query, UploadFile
from pydantic import BaseModel, Field

from staybook.api.deps import account_service, storage_dep
from staybook.api.schemas import PageOut, UserOut
from staybook.auth.deps import get_principal, require_roles
from staybook.auth.models import Principal
from staybook.db.models import UserRole, UserStatus
from staybook.integrations.storage import S3Storage
from staybook.services.accounts import AccountService

router = APIRouter(prefix="/v1/users", tags=["users"])


class ProfileUpdateRequest(BaseModel):
    full_name: str | None = Field(default=None, min_length=1, max_length=200)
    contact_number: str | None = Field(default=None, max_length=32)
    country: str | None = Field(default=None, max_length=64)
    address: str | None = Field(default=None, max_length=500)
    fcm_token: str | None = Field(default=None, max_length=512)


class StatusRequest(BaseModel):
    status: Literal["ACTIVE", "INACTIVE"]


class CreateAdminRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=8, max_length=128)
    full_name: str = Field(min_length=1, max_length=200)


@router.get("/me", response_model=UserOut)
async def me(
    principal: Principal = Depends(get_principal), svc: AccountService = Depends(account_service)
) -> UserOut:
    return UserOut.model_validate(await svc.me(principal))


@router.patch("/me", response_model=UserOut)
async def update_me(
    body: ProfileUpdateRequest,
    principal: Principal = Depends(get_principal),
    svc: AccountService = Depends(account_service),
) -> UserOut:
    user = await svc.update_me(principal, body.model_dump(exclude_unset=True))
    return UserOut.model_validate(user)


@router.post("/me/profile-image", response_model=UserOut)
async def upload_profile_image(
    file: UploadFile = File(...),
    principal: Principal = Depends(get_principal),
    svc: AccountService = Depends(account_service),
    storage: S3Storage = Depends(storage_dep),
) -> UserOut:
    user = await svc.upload_profile_image(
        principal,
        storage=storage,
        filename=file.filename or "profile",
        body=await file.read(),
        content_type=file.content_type or "application/octet-stream",
    )
    return UserOut.model_validate(user)


@router.delete("/me", status_code=204)
async def delete_me(
    principal: Principal = Depends(get_principal), svc: AccountService = Depends(account_service)
) -> None:
    await svc.delete_me(principal)


# --- Admin -------------------------------------------------------------------------


@router.get(
    "",
    response_model=PageOut[UserOut],
    dependencies=[Depends(require_roles("ADMIN"))],
)
async def list_users(
    role: UserRole | None = None,
    status: UserStatus | None = None,
    search: str | None = Query(default=None, max_length=200),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    svc: AccountService = Depends(account_service),
) -> PageOut[UserOut]:
    page = await svc.list_users(role=role, status=status, search=search, offset=offset, limit=limit)
    return PageOut.of(page, UserOut)


@router.post(
    "/admins",
    response_model=UserOut,
    status_code=201,
    dependencies=[Depends(require_roles("SUPER_ADMIN"))],
)
async def create_admin(
    body: CreateAdminRequest,
    principal: Principal = Depends(get_principal),
    svc: AccountService = Depends(account_service),
) -> UserOut:
    user = await svc.create_admin(
        principal, email=body.email, password=body.password, full_name=body.full_name
    )
    return UserOut.model_validate(user)


@router.get(
    "/{user_id}",
    response_model=UserOut,
    dependencies=[Depends(require_roles("ADMIN"))],
)
async def get_user(user_id: uuid.UUID, svc: AccountService = Depends(account_service)) -> UserOut:
    return UserOut.model_validate(await svc.get_user(user_id))


@router.patch("/{user_id}/status", response_model=UserOut)
async def set_status(
    user_id: uuid.UUID,
    body: StatusRequest,
    principal: Principal = Depends(require_roles("ADMIN")),
    svc: AccountService = Depends(account_service),
) -> UserOut:
    user = await svc.set_status(principal, user_id, UserStatus(body.status))
    return UserOut.model_validate(user)
