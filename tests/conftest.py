"""
Pytest configuration and fixtures.
"""

import sys
import os
from typing import AsyncGenerator
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("CAL_API_KEY", "test-cal-key")
os.environ.setdefault("CAL_WEBHOOK_SECRET", "test-webhook-secret")
os.environ.setdefault("APP_ENV", "development")

# Add app to path
sys.path.append(os.getcwd())

from app.database import Base
import app.models  # noqa: F401  registers tables on Base.metadata

# Use in-memory SQLite for tests
TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(TEST_DB_URL, echo=False, poolclass=StaticPool)

    # SAVEPOINT support: SQLAlchemy emits BEGIN instead of the driver
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for a test."""
    async_session = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def mock_redis():
    """Redis double for the real-time publisher."""
    redis = AsyncMock()
    redis.publish.return_value = 1
    with patch("app.redis.RedisClient.get_client", return_value=redis):
        yield redis


@pytest_asyncio.fixture
async def client(db, mock_redis):
    """HTTP client bound to the test session."""
    from httpx import ASGITransport, AsyncClient

    from app.database import Database, get_db
    from app.main import app as fastapi_app

    async def override_get_db():
        yield db

    # The lifespan does not run under ASGITransport
    fastapi_app.state.db = Database(TEST_DB_URL)
    fastapi_app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as ac:
        yield ac
    fastapi_app.dependency_overrides.clear()
    await fastapi_app.state.db.close()
    fastapi_app.state.db = None


@pytest.fixture
def admin_headers():
    return {"X-Admin-Key": "test-admin-key"}
