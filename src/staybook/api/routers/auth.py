"""
staybook.api.routers.auth

Registration and login.

Responsibilities:
- Self-registration for guests, property owners and service providers.
- Email/password login returning a bearer token.
- Password change for the signed-in user.
"""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from staybook.api.deps import account_service
from staybook.api.schemas import UserOut
from staybook.auth.deps import get_principal
from staybook.auth.models import Principal
from staybook.db.models import UserRole
from staybook.services.accounts import AccountService

router = APIRouter(prefix="/v1/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=8, max_length=128)
    full_name: str = Field(min_length=1, max_length=200)
    role: Literal["USER", "PROPERTY_OWNER", "SERVICE_PROVIDER"] = "USER"
    contact_number: str | None = Field(default=None, max_length=32)
    country: str | None = Field(default=None, max_length=64)


class LoginRequest(BaseModel):
    email: str
    password: str


class ChangePasswordRequest(BaseModel):
    old_password: str
    new_password: str = Field(min_length=8, max_length=128)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(
    body: RegisterRequest, svc: AccountService = Depends(account_service)
) -> TokenResponse:
    user, token = await svc.register(
        email=body.email,
        password=body.password,
        full_name=body.full_name,
        role=UserRole(body.role),
        contact_number=body.contact_number,
        country=body.country,
    )
    return TokenResponse(access_token=token, user=UserOut.model_validate(user))


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, svc: AccountService = Depends(account_service)) -> TokenResponse:
    user, token = await svc.login(email=body.email, password=body.password)
    return TokenResponse(access_token=token, user=UserOut.model_validate(user))


@router.post("/change-password", status_code=204)
async def change_password(
    body: ChangePasswordRequest,
    principal: Principal = Depends(get_principal),
    svc: AccountService = Depends(account_service),
) -> None:
    await svc.change_password(
        principal, old_password=body.old_password, new_password=body.new_password
    )
