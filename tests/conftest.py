"""
Top-level pytest configuration.

Provides:
  - A test SQLite database (aiosqlite) with all tables created once per session.
  - A db_session fixture that rolls back each test in a transaction.
  - A session_factory fixture for the write-behind writer (real commits,
    tables emptied on teardown).
  - A controllable clock, an in-memory catalog and a TrendingService wired
    to them.
  - An async_client fixture wired to the FastAPI app with Redis replaced by
    fakeredis.
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

# ---------------------------------------------------------------------------
# Environment must be set BEFORE any app module is imported so that
# pydantic-settings picks up the test values.
# ---------------------------------------------------------------------------
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("POSTGRES_HOST", "localhost")
os.environ.setdefault("POSTGRES_USER", "test")
os.environ.setdefault("POSTGRES_PASSWORD", "test")
os.environ.setdefault("POSTGRES_DB", "test")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("API_BASE_URL", "http://trending-api:8000")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

TEST_DATABASE_URL = os.getenv(
    "TEST_DATABASE_URL",
    "sqlite+aiosqlite:///:memory:",
)

# Fixed start time for every clock-driven test
T0 = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# ---------------------------------------------------------------------------
# Session-scoped test engine (SQLite in-memory, shared via StaticPool so all
# connections see the same data within a test process).
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture(scope="session")
async def engine():
    """Create the SQLite test engine and all tables once per test session."""
    # Import Base here (after env vars are set) to ensure models register.
    from app.core.database import Base
    import app.models  # noqa: F401

    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


# ---------------------------------------------------------------------------
# Per-test DB session that rolls back after each test for isolation.
#
# commit() is turned into flush() so repository code that commits never
# persists across tests; the outer transaction is rolled back on teardown.
# SQLite does not handle nested SAVEPOINTs the way PostgreSQL does, so a
# savepoint-based session would escalate to a real commit in aiosqlite.
# ---------------------------------------------------------------------------
class _NonCommittingSession(AsyncSession):
    """AsyncSession subclass where commit() becomes flush()."""

    async def commit(self) -> None:  # type: ignore[override]
        await self.flush()


@pytest_asyncio.fixture
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a per-test database session that is fully rolled back on teardown."""
    async with engine.connect() as conn:
        await conn.begin()  # outer real transaction

        session = _NonCommittingSession(
            bind=conn,
            expire_on_commit=False,
        )

        try:
            yield session
        finally:
            await session.close()
            await conn.rollback()


@pytest_asyncio.fixture
async def session_factory(engine) -> AsyncGenerator[async_sessionmaker, None]:
    """
    Session factory for the persistence writer.

    The writer opens one session per write and commits, so isolation comes
    from emptying the tables afterwards.
    """
    from app.models import FireBadgeRecord, TrendingConfigRecord, TrendingProduct, UserInteraction

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    yield factory

    async with factory() as session:
        for model in (UserInteraction, TrendingProduct, FireBadgeRecord, TrendingConfigRecord):
            await session.execute(delete(model))
        await session.commit()


# ---------------------------------------------------------------------------
# Redis mock: fakeredis, so the snapshot mirror works without a server.
# ---------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def mock_redis(monkeypatch):
    """Replace the Redis client with an in-process fakeredis instance."""
    import fakeredis

    fake_server = fakeredis.FakeServer()
    fake_redis = fakeredis.FakeAsyncRedis(server=fake_server, decode_responses=True)

    async def _get_redis():
        return fake_redis

    monkeypatch.setattr("app.core.cache.get_redis", _get_redis)
    return fake_redis


# ---------------------------------------------------------------------------
# Trending engine fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def catalog():
    from app.schemas.trending import CatalogEntry
    from app.services.catalog_service import InMemoryCatalog

    return InMemoryCatalog([
        CatalogEntry(product_id="samsung-s24", brand="SAMSUNG", name="Galaxy S24", price=899.0),
        CatalogEntry(product_id="iphone-15", brand="APPLE", name="iPhone 15", price=999.0),
        CatalogEntry(product_id="pixel-8", brand="GOOGLE", name="Pixel 8", price=699.0),
        CatalogEntry(product_id="thinkpad-x1", brand="LENOVO", name="ThinkPad X1", price=1499.0),
    ])


@pytest.fixture
def trending_service(clock, catalog):
    """In-memory TrendingService (no persistence, no Redis mirror)."""
    from app.services.trending_service import TrendingService

    return TrendingService(catalog=catalog, clock=clock)


# ---------------------------------------------------------------------------
# FastAPI client. ASGITransport does not run the lifespan, so the service is
# placed on app.state directly.
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def async_client(trending_service) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient backed by the FastAPI app."""
    from app.main import app

    app.state.trending_service = trending_service

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://testserver",
    ) as client:
        yield client

    app.state.trending_service = None
