"""
staybook.db.session

Async SQLAlchemy engine + session factory, shared by API requests and worker jobs.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from staybook.settings import Settings


def create_engine(settings: Settings) -> AsyncEngine:
    if settings.database_url.startswith("sqlite"):
        # Local/test database file; aiosqlite hands the connection to a worker thread.
        return create_async_engine(
            settings.database_url,
            connect_args={"check_same_thread": False},
            echo=settings.log_level.upper() == "DEBUG",
        )
    return create_async_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        echo=settings.log_level.upper() == "DEBUG",
    )


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Services read attributes after commit when shaping responses.
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)
