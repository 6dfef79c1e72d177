"""Health check endpoints with database connectivity and realtime status.

Accessible without authentication so container orchestration can poll them.
"""

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from app.core import check_db_connection, settings
from app.services.broadcaster import get_broadcaster

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    database: str


class HealthDetailResponse(HealthResponse):
    """Health check response including realtime channel state."""

    realtime_connections: int
    realtime_owner_scoped: bool


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={
        status.HTTP_200_OK: {"description": "Service is healthy"},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"description": "Service is unhealthy"},
    },
)
async def health_check(response: Response) -> HealthResponse:
    """
    Health check endpoint.

    Returns 503 if the database is unavailable.
    """
    db_healthy = await check_db_connection()

    # Set appropriate status code for container orchestration
    if not db_healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponse(
        status="healthy" if db_healthy else "unhealthy",
        version=settings.app_version,
        database="connected" if db_healthy else "disconnected",
    )


@router.get("/health/detail", response_model=HealthDetailResponse)
async def health_detail(response: Response) -> HealthDetailResponse:
    """Detailed health check, adding the number of open realtime connections."""
    db_healthy = await check_db_connection()
    if not db_healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    broadcaster = get_broadcaster()
    return HealthDetailResponse(
        status="healthy" if db_healthy else "unhealthy",
        version=settings.app_version,
        database="connected" if db_healthy else "disconnected",
        realtime_connections=broadcaster.connection_count,
        realtime_owner_scoped=broadcaster.owner_scoped,
    )
