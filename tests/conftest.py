"""Shared test fixtures.

Tests run against an in-memory SQLite database (aiosqlite). The schema is
built from the ORM metadata and the rank table is seeded for every test.
Redis is not started; rate limiting is skipped and ``/ready`` degrades.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator

os.environ["C42_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["C42_LOG_FORMAT"] = "console"
os.environ["C42_JWT_SECRET"] = "test-secret-with-at-least-32-bytes!!"

import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402

from c42.config import get_settings  # noqa: E402
from c42.database import close_db, get_engine, get_session_factory, init_db  # noqa: E402
from c42.db.base import Base  # noqa: E402
from c42.main import create_app  # noqa: E402
from c42.ranks.seed import seed_ranks  # noqa: E402
from c42.redis_client import close_redis  # noqa: E402

get_settings.cache_clear()


@pytest_asyncio.fixture
async def db_setup() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh schema with seeded ranks. Yields the session factory."""
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = get_session_factory()
    async with factory() as session:
        await seed_ranks(session)

    yield factory

    await close_db()
    await close_redis()


@pytest_asyncio.fixture
async def db_session(db_setup: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """Direct session for setting up rows and asserting on them."""
    async with db_setup() as session:
        yield session


@pytest_asyncio.fixture
async def app(db_setup: async_sessionmaker[AsyncSession]) -> FastAPI:
    """Fresh application. Its lifespan is not run; ``db_setup`` stands in for it."""
    return create_app()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
