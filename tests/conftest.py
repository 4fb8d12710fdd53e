"""Pytest fixtures for group desk tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import groupdesk.models  # noqa: F401
from groupdesk.clock import get_clock
from groupdesk.database.base import Base
from groupdesk.database.session import get_db
from groupdesk.models.enums import UserRole
from tests.factories import NOW, FixedClock, make_user

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
def mock_db():
    """Create a mock AsyncSession."""
    session = AsyncMock()
    session.add = MagicMock()
    session.delete = AsyncMock()
    session.flush = AsyncMock()
    session.begin_nested = MagicMock(return_value=AsyncMock())
    return session


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def desk_user():
    return make_user(UserRole.GROUP_DESK, "desk1")


@pytest.fixture
def rc_user():
    return make_user(UserRole.ROUTE_CONTROLLER, "rc1")


@pytest.fixture
def admin_user():
    return make_user(UserRole.ADMIN, "admin")


# ---------------------------------------------------------------------------
# In-memory SQLite
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def async_test_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def async_test_session(async_test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        async_test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def async_client(async_test_session, clock) -> AsyncGenerator[AsyncClient, None]:
    """httpx AsyncClient wired to the app with the SQLite session and a fixed clock."""
    from groupdesk.app import app
    from groupdesk.modules.auth.router import limiter as auth_limiter
    from groupdesk.modules.booking.router import limiter as booking_limiter

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield async_test_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    auth_limiter.reset()
    booking_limiter.reset()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
