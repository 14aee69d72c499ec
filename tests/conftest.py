import io
from collections.abc import AsyncIterator, Iterator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from api_rescue.config import RescueSettings
from api_rescue.config import settings as default_settings
from api_rescue.logging import configure_logging
from tests.dummy.db import Base, get_db
from tests.dummy.main import app
from tests.factories import RecordingLogger

# Pytest only picks up fixtures from conftest.py files. Fixtures defined in other
# modules (like tests/seeds.py) are invisible unless we register them here.
pytest_plugins = ["tests.seeds"]

# In-memory SQLite; StaticPool makes every checkout share the same connection,
# otherwise each connection would get its own empty database
TEST_DATABASE_URL = "sqlite+aiosqlite://"

PROJECT_ROOT = Path(__file__).resolve().parent.parent


@pytest_asyncio.fixture
async def db() -> AsyncIterator[AsyncSession]:
    """Create tables and yield a session, then drop the database after the test."""
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_sessionmaker(engine, expire_on_commit=False)() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture
async def client(db: AsyncSession) -> AsyncIterator[AsyncClient]:
    """HTTP client that uses the test database session."""

    async def override_get_db() -> AsyncIterator[AsyncSession]:
        try:
            yield db
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def settings() -> RescueSettings:
    """Settings that strip the project root from backtrace frames."""
    return RescueSettings(include_backtrace=True, backtrace_root=str(PROJECT_ROOT))


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def log_output() -> Iterator[io.StringIO]:
    """Route the JSON log lines into a buffer for the duration of the test."""
    buffer = io.StringIO()
    configure_logging(default_settings, stream=buffer)
    yield buffer
    configure_logging(default_settings)
