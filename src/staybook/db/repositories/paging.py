from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
    items: list[T]
    total: int
    offset: int
    limit: int


async def paginate(
    session: AsyncSession, stmt: Select[Any], *, offset: int, limit: int
) -> Page[Any]:
    # Count over the filtered statement before ordering/limits are applied by the caller.
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = int((await session.execute(count_stmt)).scalar_one())
    rows = (await session.execute(stmt.offset(offset).limit(limit))).scalars().all()
    return Page(items=list(rows), total=total, offset=offset, limit=limit)
