"""
staybook.db.repositories.users

Repository for `User` entities.
"""

from __future__ import annotations

import uuid

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from staybook.db.models import User, UserRole, UserStatus
from staybook.db.repositories.paging import Page, paginate

ADMIN_ROLES = (UserRole.ADMIN, UserRole.SUPER_ADMIN)


class UserRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        email: str,
        password_hash: str,
        full_name: str,
        role: UserRole,
        contact_number: str | None = None,
        country: str | None = None,
    ) -> User:
        user = User(
            email=email.lower(),
            password_hash=password_hash,
            full_name=full_name,
            role=role,
            status=UserStatus.ACTIVE,
            contact_number=contact_number,
            country=country,
        )
        self._session.add(user)
        await self._session.flush()
        return user

    async def get(self, user_id: uuid.UUID) -> User | None:
        return await self._session.get(User, user_id)

    async def get_by_email(self, email: str) -> User | None:
        stmt = select(User).where(User.email == email.lower())
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def by_stripe_customer(self, customer_id: str) -> User | None:
        stmt = select(User).where(User.stripe_customer_id == customer_id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def list_users(
        self,
        *,
        role: UserRole | None = None,
        status: UserStatus | None = None,
        search: str | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Page[User]:
        stmt = select(User)
        if role is not None:
            stmt = stmt.where(User.role == role)
        if status is not None:
            stmt = stmt.where(User.status == status)
        else:
            stmt = stmt.where(User.status != UserStatus.DELETED)
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(func.lower(User.full_name).like(pattern), func.lower(User.email).like(pattern))
            )
        stmt = stmt.order_by(User.created_at.desc())
        return await paginate(self._session, stmt, offset=offset, limit=limit)

    async def active_admins(self) -> list[User]:
        stmt = select(User).where(User.role.in_(ADMIN_ROLES), User.status == UserStatus.ACTIVE)
        return list((await self._session.execute(stmt)).scalars().all())

    async def count_by_role(self) -> dict[UserRole, int]:
        stmt = (
            select(User.role, func.count())
            .where(User.status != UserStatus.DELETED)
            .group_by(User.role)
        )
        counts = {role: 0 for role in UserRole}
        for role, n in (await self._session.execute(stmt)).all():
            counts[role] = int(n)
        return counts
