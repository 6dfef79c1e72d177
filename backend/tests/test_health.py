"""Tests for health check endpoints."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from app.services.broadcaster import RealtimeConnection, get_broadcaster

pytestmark = pytest.mark.asyncio


class TestHealthEndpoints:
    """Test suite for health check functionality."""

    async def test_health_check_returns_status(self, async_client: AsyncClient):
        """Test that health endpoint reports a connected database."""
        response = await async_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "connected"
        assert isinstance(data["version"], str)

    async def test_health_check_database_down(self, async_client: AsyncClient):
        """Test that health endpoint returns 503 when the database is unreachable."""
        with patch("app.api.health.check_db_connection", AsyncMock(return_value=False)):
            response = await async_client.get("/health")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "unhealthy"
        assert data["database"] == "disconnected"

    async def test_health_detail_reports_realtime_connections(self, async_client: AsyncClient):
        """Test that health detail counts open realtime connections."""
        await get_broadcaster().register(RealtimeConnection())

        response = await async_client.get("/health/detail")

        assert response.status_code == 200
        data = response.json()
        assert data["realtime_connections"] == 1
        assert data["realtime_owner_scoped"] is False

    async def test_health_requires_no_session(self, async_client: AsyncClient):
        """Test that health endpoints are public."""
        response = await async_client.get("/health/detail")
        assert response.status_code == 200

    async def test_root(self, async_client: AsyncClient):
        """Test the root endpoint identifies the service."""
        response = await async_client.get("/")
        assert response.status_code == 200
        assert response.json()["message"] == "Server is running..."

    async def test_unknown_route_uses_error_envelope(self, async_client: AsyncClient):
        """Test that a 404 from routing is rendered in the error envelope."""
        response = await async_client.get("/api/nope")
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Not Found"}
