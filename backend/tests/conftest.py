"""
Pytest fixtures for testing.

Tests run against in-memory SQLite by default. Set TEST_DATABASE=postgres to run
against a throwaway PostgreSQL container instead (requires Docker).
"""
import os
from collections.abc import AsyncGenerator, Generator

# Must be set before any app import triggers Settings validation
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
# Ensure tests run in dev mode (bypasses auth) regardless of local .env
os.environ["DEV_MODE"] = "true"

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from models.base import Base  # noqa: E402
from models.user import User  # noqa: E402


@pytest.fixture(scope="session")
def database_url() -> Generator[str]:
    """
    Database URL for the test session.

    The PostgreSQL container is only started when TEST_DATABASE=postgres.
    """
    if os.environ.get("TEST_DATABASE") != "postgres":
        yield "sqlite+aiosqlite://"
        return

    from testcontainers.postgres import PostgresContainer  # noqa: PLC0415

    with PostgresContainer("postgres:16", driver="asyncpg") as postgres:
        yield postgres.get_connection_url()


@pytest.fixture
async def async_engine(database_url: str) -> AsyncGenerator[AsyncEngine]:
    """Create an async engine with a fresh schema for each test."""
    if database_url.startswith("sqlite"):
        # One shared connection, so the in-memory database survives across sessions
        engine = create_async_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_async_engine(database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """
    Create an async session for a test.

    Each test gets a fresh schema, so sessions may commit freely. Services roll
    back on duplicate-URL races, so fixtures commit the rows they set up.
    """
    async with session_factory() as session:
        yield session


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """A committed user to own bookmarks."""
    user = User(auth_subject="test|user-1", email="test@example.com")
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def other_user(db_session: AsyncSession) -> User:
    """A second committed user, for isolation tests."""
    user = User(auth_subject="test|user-2", email="other@example.com")
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def client(
    db_session: AsyncSession,
) -> AsyncGenerator[AsyncClient]:
    """Create a test client with database session override."""
    # Clear the settings cache so it picks up DATABASE_URL from environment
    from core.config import get_settings  # noqa: PLC0415

    get_settings.cache_clear()

    from api.main import app  # noqa: PLC0415
    from db.session import get_async_session  # noqa: PLC0415

    async def override_get_async_session() -> AsyncGenerator[AsyncSession]:
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_async_session] = override_get_async_session

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()
