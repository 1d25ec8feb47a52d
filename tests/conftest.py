"""
Shared test fixtures.

Uses an in-memory SQLite database (StaticPool, so every session sees the
same data) for unit and integration tests.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from midnight_admin.app import create_app
from midnight_admin.client import AdminAPIClient
from midnight_admin.common.crypto import hash_admin_key
from midnight_admin.common.events import discard_queued_events, publish_queued_events
from midnight_admin.config import Settings, get_settings
from midnight_admin.db.session import get_db_session
from midnight_admin.models import Base

OPENROUTER_URL = "https://openrouter.test/api/v1/chat/completions"
RESEND_URL = "https://resend.test/emails"
VIEWER_KEY = "mnp_admin_viewer_test_key"


# Test Settings Override

def get_test_settings() -> Settings:
    return Settings(
        env="test",
        database={"url": "sqlite+aiosqlite:///:memory:"},  # type: ignore[arg-type]
        redis={"url": "redis://localhost:6379/1"},  # type: ignore[arg-type]
        auth={  # type: ignore[arg-type]
            "master_api_key": "test_admin_key",
            "viewer_key_hashes": [hash_admin_key(VIEWER_KEY)],
        },
        logging={"level": "DEBUG", "format": "console"},  # type: ignore[arg-type]
        llm={  # type: ignore[arg-type]
            "api_base": "https://openrouter.test/api/v1",
            "api_key": "sk-or-test",
            "default_model": "anthropic/claude-3-5-sonnet-20241022",
            "default_temperature": 0.21,
        },
        email={  # type: ignore[arg-type]
            "api_base": "https://resend.test",
            "api_key": "re_test",
            "default_from_address": "Midnight Test <test@midnight.test>",
        },
    )


@pytest.fixture
def test_settings() -> Settings:
    return get_test_settings()


# Database Fixtures

@pytest.fixture
async def test_engine() -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


# App + Client Fixtures

@pytest.fixture
async def app(session_factory: async_sessionmaker[AsyncSession]) -> FastAPI:
    application = create_app()
    application.state.db_session_factory = session_factory

    async def override_db() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                discard_queued_events(session)
                await session.rollback()
                raise
            await publish_queued_events(session)

    application.dependency_overrides[get_db_session] = override_db
    application.dependency_overrides[get_settings] = get_test_settings
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def admin_headers() -> dict[str, str]:
    """Headers with admin authentication."""
    return {"Authorization": "Bearer test_admin_key"}


@pytest.fixture
def viewer_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {VIEWER_KEY}"}


@pytest.fixture
async def admin_client(client: AsyncClient) -> AdminAPIClient:
    """Admin client speaking to the in-process app."""
    return AdminAPIClient("test_admin_key", base_url="http://test", http_client=client)
