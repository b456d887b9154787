from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from staybook.db.models import SubscriptionPlan, SubscriptionStatus, UserSubscription


class SubscriptionRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # --- Plans -------------------------------------------------------------------

    async def add_plan(self, plan: SubscriptionPlan) -> SubscriptionPlan:
        self._session.add(plan)
        await self._session.flush()
        return plan

    async def get_plan(self, plan_id: uuid.UUID) -> SubscriptionPlan | None:
        return await self._session.get(SubscriptionPlan, plan_id)

    async def plans(self, *, search: str | None = None) -> list[SubscriptionPlan]:
        stmt = select(SubscriptionPlan)
        if search:
            stmt = stmt.where(func.lower(SubscriptionPlan.name).like(f"%{search.lower()}%"))
        stmt = stmt.order_by(SubscriptionPlan.price_cents.asc())
        return list((await self._session.execute(stmt)).scalars().all())

    async def delete_plan(self, plan: SubscriptionPlan) -> None:
        await self._session.delete(plan)
        await self._session.flush()

    # --- User subscriptions ------------------------------------------------------

    async def add(self, sub: UserSubscription) -> UserSubscription:
        self._session.add(sub)
        await self._session.flush()
        return sub

    async def by_stripe_id(self, stripe_subscription_id: str) -> UserSubscription | None:
        stmt = select(UserSubscription).where(
            UserSubscription.stripe_subscription_id == stripe_subscription_id
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def plan_in_use(self, plan_id: uuid.UUID) -> bool:
        stmt = select(UserSubscription.id).where(
            UserSubscription.plan_id == plan_id,
            UserSubscription.status == SubscriptionStatus.ACTIVE,
        )
        return (await self._session.execute(stmt.limit(1))).first() is not None

    async def for_user(self, user_id: uuid.UUID) -> list[UserSubscription]:
        stmt = (
            select(UserSubscription)
            .where(UserSubscription.user_id == user_id)
            .order_by(UserSubscription.created_at.desc())
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def lapsed(self, *, now: datetime) -> list[UserSubscription]:
        stmt = select(UserSubscription).where(
            UserSubscription.status == SubscriptionStatus.ACTIVE,
            UserSubscription.end_date.is_not(None),
            UserSubscription.end_date < now,
        )
        return list((await self._session.execute(stmt)).scalars().all())
