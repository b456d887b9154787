"""
staybook.api.routers.subscriptions

Subscription plans (admin managed) and guest subscriptions.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from staybook.api.deps import subscription_service
from staybook.auth.deps import get_principal, require_roles
from staybook.auth.models import Principal
from staybook.services.subscriptions import SubscriptionService

router = APIRouter(prefix="/v1/subscriptions", tags=["subscriptions"])


class PlanCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    features: list[str] = Field(default_factory=list)
    price_cents: int = Field(gt=0)
    currency: str = Field(default="usd", min_length=3, max_length=3)
    interval: Literal["day", "week", "month", "year"] = "month"
    interval_count: int = Field(default=1, ge=1, le=12)


class PlanUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    features: list[str] | None = None


class PlanOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    features: list[str]
    price_cents: int
    currency: str
    interval: str
    interval_count: int


class SubscriptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    plan_id: uuid.UUID
    status: str
    cancel_at_period_end: bool
    end_date: datetime | None
    created_at: datetime


class SubscribeResponse(BaseModel):
    subscription: SubscriptionOut
    stripe_subscription_id: str
    client_secret: str | None


@router.post(
    "/plans",
    response_model=PlanOut,
    status_code=201,
)
async def create_plan(
    body: PlanCreateRequest,
    principal: Principal = Depends(require_roles("ADMIN")),
    svc: SubscriptionService = Depends(subscription_service),
) -> PlanOut:
    plan = await svc.create_plan(principal, **body.model_dump())
    return PlanOut.model_validate(plan)


@router.get("/plans", response_model=list[PlanOut])
async def list_plans(
    search: str | None = Query(default=None, max_length=200),
    svc: SubscriptionService = Depends(subscription_service),
) -> list[PlanOut]:
    return [PlanOut.model_validate(p) for p in await svc.plans(search=search)]


@router.get("/plans/{plan_id}", response_model=PlanOut)
async def get_plan(
    plan_id: uuid.UUID, svc: SubscriptionService = Depends(subscription_service)
) -> PlanOut:
    return PlanOut.model_validate(await svc.get_plan(plan_id))


@router.patch(
    "/plans/{plan_id}",
    response_model=PlanOut,
    dependencies=[Depends(require_roles("ADMIN"))],
)
async def update_plan(
    plan_id: uuid.UUID,
    body: PlanUpdateRequest,
    svc: SubscriptionService = Depends(subscription_service),
) -> PlanOut:
    plan = await svc.update_plan(plan_id, name=body.name, features=body.features)
    return PlanOut.model_validate(plan)


@router.delete(
    "/plans/{plan_id}",
    status_code=204,
    dependencies=[Depends(require_roles("ADMIN"))],
)
async def delete_plan(
    plan_id: uuid.UUID, svc: SubscriptionService = Depends(subscription_service)
) -> None:
    await svc.delete_plan(plan_id)


@router.post("/plans/{plan_id}/subscribe", response_model=SubscribeResponse, status_code=201)
async def subscribe(
    plan_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    svc: SubscriptionService = Depends(subscription_service),
) -> SubscribeResponse:
    sub, handle = await svc.subscribe(principal, plan_id)
    return SubscribeResponse(
        subscription=SubscriptionOut.model_validate(sub),
        stripe_subscription_id=handle.id,
        client_secret=handle.client_secret,
    )


@router.get("/mine", response_model=list[SubscriptionOut])
async def my_subscriptions(
    principal: Principal = Depends(get_principal),
    svc: SubscriptionService = Depends(subscription_service),
) -> list[SubscriptionOut]:
    return [SubscriptionOut.model_validate(s) for s in await svc.mine(principal)]
