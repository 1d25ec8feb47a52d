"""Async database session management."""

from __future__ import annotations

from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from midnight_admin.common.events import discard_queued_events, publish_queued_events
from midnight_admin.config import get_settings

settings = get_settings()

engine: AsyncEngine = create_async_engine(
    settings.database.url,
    pool_size=settings.database.pool_size,
    max_overflow=settings.database.max_overflow,
    echo=settings.database.echo,
    pool_pre_ping=True,
    pool_recycle=300,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: yields an async DB session.

    Commits when the request succeeds, then publishes the events the
    request queued. On failure the events are dropped with the rollback.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            discard_queued_events(session)
            await session.rollback()
            raise
        await publish_queued_events(session)
