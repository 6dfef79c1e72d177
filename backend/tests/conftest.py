"""Pytest configuration and fixtures for backend tests.

Database Handling:
- Uses TEST_DATABASE_URL if set (any async SQLAlchemy URL, e.g. PostgreSQL via asyncpg)
- Otherwise uses a throwaway SQLite file (aiosqlite) in a temporary directory
- Tables are created before and dropped after every test
"""

import asyncio
import os
import tempfile
from collections.abc import AsyncGenerator, Awaitable, Callable, Generator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

# Test session credentials
TEST_USER_NAME = "Test User"
TEST_USER_EMAIL = "test.user@example.com"
TEST_USER_PASSWORD = "testpassword123"

_tmp_dir = tempfile.mkdtemp(prefix="taskboard-tests-")


def _get_database_url() -> str:
    """Get database URL, preferring an explicit TEST_DATABASE_URL."""
    explicit_url = os.environ.get("TEST_DATABASE_URL")
    if explicit_url:
        return explicit_url
    return f"sqlite+aiosqlite:///{os.path.join(_tmp_dir, 'taskboard_test.db')}"


# Set test environment variables before importing app modules
os.environ["DATABASE_URL"] = _get_database_url()
os.environ["JWT_SECRET_KEY"] = "test-secret-key-" + "0" * 32
os.environ["REALTIME_OWNER_SCOPED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"


# --- Broadcaster Reset Fixture ---


def _reset_broadcaster() -> None:
    """Drop the broadcaster singleton so no connection leaks between tests."""
    from app.services.broadcaster import TaskEventBroadcaster

    TaskEventBroadcaster._instance = None


@pytest.fixture(autouse=True)
def reset_broadcaster():
    """Give every test a fresh, empty broadcaster."""
    _reset_broadcaster()
    yield
    _reset_broadcaster()


# --- Database Fixtures ---


async def _reset_schema(create: bool) -> None:
    import app.models  # noqa: F401
    from app.core.database import Base

    engine = create_async_engine(_get_database_url(), poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        if create:
            await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create a database engine with a freshly created schema."""
    import app.models  # noqa: F401
    from app.core.database import Base, install_sqlite_functions

    engine = create_async_engine(
        _get_database_url(),
        poolclass=NullPool,
        echo=False,
    )
    install_sqlite_functions(engine)

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables after test
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for testing."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def async_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client with database override.

    The base URL is https because the session cookie is marked Secure.
    """
    from app.core.database import get_db
    from app.main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="https://test") as client:
        yield client

    # Clean up
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def sync_client() -> Generator[TestClient, None, None]:
    """Create a synchronous test client running the app lifespan.

    Used for WebSocket tests. The client's portal runs HTTP requests and
    WebSocket sessions on one event loop, so REST mutations reach open
    realtime connections. No database override: the app's own engine is
    used and the schema is reset around the test.
    """
    from app.main import app

    asyncio.run(_reset_schema(create=True))

    with TestClient(app, base_url="https://testserver") as client:
        yield client

    asyncio.run(_reset_schema(create=False))


# --- Test Factories ---


@pytest.fixture
def user_factory(db_session):
    """Factory for creating test User objects."""
    from app.models.user import User
    from app.services.auth import hash_password

    async def _create_user(
        name: str = TEST_USER_NAME,
        email: str = TEST_USER_EMAIL,
        password: str = TEST_USER_PASSWORD,
    ) -> User:
        user = User(
            name=name,
            email=email,
            password_hash=hash_password(password),
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _create_user


@pytest.fixture
def task_factory(db_session):
    """Factory for creating test Task objects directly (no broadcast)."""
    from app.models.task import Task

    async def _create_task(owner, title: str = "Test task", status: str = "pending") -> Task:
        task = Task(owner_id=owner.id, title=title, status=status)
        db_session.add(task)
        await db_session.commit()
        await db_session.refresh(task)
        return task

    return _create_task


# --- Session Fixtures ---


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def test_user(user_factory):
    """Create the default test user."""
    return await user_factory()


@pytest.fixture
def token_for():
    """Issue a session token for a user without going through /login."""
    from app.services.auth import create_session_token

    return create_session_token


@pytest_asyncio.fixture
async def user_headers(test_user, token_for) -> dict[str, str]:
    """Bearer headers for the default test user."""
    return bearer(token_for(test_user))


@pytest.fixture
def login(async_client) -> Callable[[str, str], Awaitable[dict[str, str]]]:
    """Log in through the API and return Bearer headers for the new session.

    The cookie jar is cleared afterwards so the next request is authenticated
    only by the returned headers (the cookie would otherwise take precedence).
    """

    async def _login(email: str = TEST_USER_EMAIL, password: str = TEST_USER_PASSWORD):
        async_client.cookies.clear()
        response = await async_client.post(
            "/api/auth/login", json={"email": email, "password": password}
        )
        assert response.status_code == 200, response.text
        async_client.cookies.clear()
        return bearer(response.json()["token"])

    return _login
