"""
staybook.api.routers.payments

Stripe-facing endpoints.

Responsibilities:
- Connect onboarding for partners (payout accounts).
- Checkout sessions for PENDING hotel and service bookings.
- Transaction history.
- The Stripe webhook receiver (signature-verified, raw body).
"""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, Depends, Header, Request
from pydantic import BaseModel

from staybook.api.deps import payment_service, webhook_service
from staybook.api.schemas import CheckoutOut, PaymentOut
from staybook.auth.deps import get_principal, require_roles
from staybook.auth.models import Principal
from staybook.services.payments import PaymentService
from staybook.services.webhooks import WebhookService

router = APIRouter(prefix="/v1/payments", tags=["payments"])


class OnboardingResponse(BaseModel):
    account_id: str
    verified: bool
    onboarding_url: str | None
    requirements_due: list[str]
    pending: list[str]


@router.post("/onboard", response_model=OnboardingResponse)
async def onboard(
    principal: Principal = Depends(require_roles("PROPERTY_OWNER", "SERVICE_PROVIDER")),
    svc: PaymentService = Depends(payment_service),
) -> OnboardingResponse:
    result = await svc.onboard(principal)
    return OnboardingResponse(
        account_id=result.account_id,
        verified=result.verified,
        onboarding_url=result.onboarding_url,
        requirements_due=list(result.requirements_due),
        pending=list(result.pending),
    )


@router.post("/checkout/hotel/{booking_id}", response_model=CheckoutOut)
async def checkout_hotel(
    booking_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    svc: PaymentService = Depends(payment_service),
) -> CheckoutOut:
    session = await svc.checkout_hotel(principal, booking_id)
    return CheckoutOut(session_id=session.id, url=session.url)


@router.post("/checkout/service/{booking_id}", response_model=CheckoutOut)
async def checkout_service(
    booking_id: uuid.UUID,
    principal: Principal = Depends(require_roles("PROPERTY_OWNER")),
    svc: PaymentService = Depends(payment_service),
) -> CheckoutOut:
    session = await svc.checkout_service(principal, booking_id)
    return CheckoutOut(session_id=session.id, url=session.url)


@router.get("/transactions", response_model=list[PaymentOut])
async def my_transactions(
    principal: Principal = Depends(get_principal),
    svc: PaymentService = Depends(payment_service),
) -> list[PaymentOut]:
    return [PaymentOut.model_validate(p) for p in await svc.my_transactions(principal)]


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None, alias="Stripe-Signature"),
    svc: WebhookService = Depends(webhook_service),
) -> dict[str, Any]:
    # Signature verification needs the exact bytes Stripe signed.
    payload = await request.body()
    return await svc.handle(payload, stripe_signature)
