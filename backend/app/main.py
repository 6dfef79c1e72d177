"""Taskboard Backend - FastAPI Application Factory."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import api_router
from app.api.health import router as health_router
from app.api.realtime import ws_router
from app.core import async_session_maker, check_db_connection, create_tables, settings, setup_logging
from app.core.errors import register_exception_handlers
from app.core.logging import get_logger
from app.middleware import SecurityHeadersMiddleware
from app.services.token_blacklist import cleanup_expired_revoked_tokens

logger = get_logger("main")

BLACKLIST_CLEANUP_INTERVAL_SECONDS = 300


def task_done_callback(task: asyncio.Task[None]) -> None:
    """Log unhandled exceptions from background tasks."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"Background task {task.get_name()} failed: {exc}")


async def _token_blacklist_cleanup_loop() -> None:
    """Periodically remove expired entries from the token blacklist."""
    while True:
        await asyncio.sleep(BLACKLIST_CLEANUP_INTERVAL_SECONDS)
        try:
            async with async_session_maker() as db:
                removed = await cleanup_expired_revoked_tokens(db)
                await db.commit()
                if removed > 0:
                    logger.info(f"Cleaned up {removed} expired token blacklist entries")
        except Exception:
            logger.exception("Error cleaning up token blacklist")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    setup_logging(
        level=settings.log_level,
        format_type="structured" if not settings.debug else "dev",
    )
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")

    for warning in settings.check_security_configuration():
        logger.warning(f"SECURITY: {warning}")

    # The service cannot do anything useful without its store
    if not await check_db_connection():
        logger.critical("Database is unreachable, refusing to start")
        raise RuntimeError("Database connection failed at startup")

    if settings.auto_create_tables:
        await create_tables()

    blacklist_task = asyncio.create_task(_token_blacklist_cleanup_loop())
    blacklist_task.add_done_callback(task_done_callback)

    yield

    # Shutdown
    logger.info("Shutting down...")
    blacklist_task.cancel()
    try:
        await blacklist_task
    except asyncio.CancelledError:
        pass


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Task management API with realtime task events",
        version=settings.app_version,
        lifespan=lifespan,
        # API docs are only exposed in debug mode
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
    )

    register_exception_handlers(app)

    # Security headers middleware
    app.add_middleware(SecurityHeadersMiddleware)

    # CORS middleware - MUST be outermost (added last in Starlette LIFO order)
    # so that CORS headers are present on ALL responses, including errors.
    # Credentials are allowed because the session travels in a cookie.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=[
            "Authorization",
            "Content-Type",
            "Accept",
        ],
    )

    # Include routers
    app.include_router(health_router)  # Health at root level
    app.include_router(api_router)  # API at /api
    app.include_router(ws_router)  # Realtime channel at /ws

    # Root endpoint
    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint with service information."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "message": "Server is running...",
        }

    return app


# Application instance
app = create_app()
