"""
Pytest configuration and fixtures
"""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from typing import AsyncGenerator, List

import models  # noqa: F401  registers every table on Base.metadata
from models.base import Base
from ingestion.rate_limiter import RateLimiter
from ingestion.retry import RetryManager, RetryPolicy
from tests.fakes import FakeSite

# In-memory SQLite shared by every connection of one test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    yield engine
    
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def sleeps() -> List[float]:
    """Delays requested through the injected sleep function"""
    return []


@pytest.fixture
def fake_sleep(sleeps):
    async def sleep(seconds: float) -> None:
        sleeps.append(seconds)
    return sleep


@pytest.fixture
def rate_limiter() -> RateLimiter:
    return RateLimiter(min_interval_ms=0)


@pytest.fixture
def retry_manager(fake_sleep) -> RetryManager:
    return RetryManager(
        policy=RetryPolicy(max_attempts=3, base_delay=1.0),
        sleep=fake_sleep,
        unavailability_wait=300.0,
    )


@pytest.fixture
def site() -> FakeSite:
    return FakeSite()


@pytest_asyncio.fixture
async def browser(site):
    session = site.session()
    await session.open()
    yield session
    await session.close()
