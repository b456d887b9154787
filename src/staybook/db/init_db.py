"""
staybook.db.init_db

Create the marketplace tables directly from the ORM metadata (dev/test only).
Deployed environments run `alembic upgrade head` instead.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine

from staybook.db import models  # noqa: F401  # registers tables on Base.metadata
from staybook.db.base import Base
from staybook.observability.logging import get_logger

log = get_logger(__name__)


async def init_db(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.info("db_tables_ready", tables=len(Base.metadata.tables))
