from __future__ import annotations

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from staybook.db.models import Review


class ReviewRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(
        self, *, user_id: uuid.UUID, hotel_id: uuid.UUID, rating: int, comment: str | None
    ) -> Review:
        review = Review(user_id=user_id, hotel_id=hotel_id, rating=rating, comment=comment)
        self._session.add(review)
        await self._session.flush()
        return review

    async def stats_for_hotel(self, hotel_id: uuid.UUID) -> tuple[float, int]:
        stmt = select(func.avg(Review.rating), func.count(Review.id)).where(
            Review.hotel_id == hotel_id
        )
        avg, count = (await self._session.execute(stmt)).one()
        return float(avg or 0.0), int(count)

    async def for_hotel(self, hotel_id: uuid.UUID, *, limit: int = 50) -> list[Review]:
        stmt = (
            select(Review)
            .where(Review.hotel_id == hotel_id)
            .order_by(Review.created_at.desc())
            .limit(limit)
        )
        return list((await self._session.execute(stmt)).scalars().all())
