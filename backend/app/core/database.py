"""Taskboard Database Configuration - Async SQLAlchemy."""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from app.core.config import settings

# Connection pool settings are configurable via environment variables:
# - DB_POOL_SIZE: Number of connections to keep in the pool (default: 20)
# - DB_MAX_OVERFLOW: Additional connections allowed beyond pool_size during high load (default: 20)
# - DB_POOL_TIMEOUT: Seconds to wait before giving up on getting a connection (default: 30)
# - DB_POOL_RECYCLE: Recycle connections after this many seconds (default: 1800 = 30 min)
# SQLite connections are opened per session instead (NullPool), so the pool settings
# do not apply there.


def _engine_options() -> dict[str, Any]:
    options: dict[str, Any] = {
        # Only echo SQL when debug is explicitly enabled
        "echo": settings.debug and settings.log_level == "DEBUG",
    }
    if settings.is_sqlite:
        options["poolclass"] = NullPool
    else:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
            pool_pre_ping=True,  # Verify connection before use
        )
    return options


def _sqlite_lower(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


def _register_sqlite_functions(dbapi_connection: Any, connection_record: Any) -> None:
    # SQLite's built-in lower() only folds ASCII
    dbapi_connection.create_function("lower", 1, _sqlite_lower)


def install_sqlite_functions(async_engine: AsyncEngine) -> None:
    """Make SQL lower() fold case the same way str.lower() does on SQLite connections."""
    if async_engine.dialect.name == "sqlite":
        event.listen(async_engine.sync_engine, "connect", _register_sqlite_functions)


# Create async engine with connection pool settings
engine: AsyncEngine = create_async_engine(settings.database_url, **_engine_options())
install_sqlite_functions(engine)

# Session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# Base class for models
Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except (Exception, BaseException):
            # Catch both regular exceptions and BaseExceptions (e.g., asyncio.CancelledError)
            # to ensure rollback happens even on cancellation
            await session.rollback()
            raise
        finally:
            await session.close()


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Dependency for handlers that open their own short-lived sessions (WebSocket)."""
    return async_session_maker


async def create_tables() -> None:
    """Create any missing tables for the registered models."""
    # Import models so they are registered on Base.metadata
    import app.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def check_db_connection() -> bool:
    """Check if database is reachable."""
    try:
        async with async_session_maker() as session:
            await session.execute(text("SELECT 1"))
            return True
    except (OSError, ConnectionError) as e:
        # Expected network/connection errors
        from app.core.logging import get_logger

        get_logger("database").debug(f"Database connection check failed: {e}")
        return False
    except Exception as e:
        # Unexpected errors - log them
        from app.core.logging import get_logger

        get_logger("database").warning(f"Unexpected error checking database connection: {e}")
        return False
