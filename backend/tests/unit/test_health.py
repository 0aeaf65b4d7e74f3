"""Unit tests for health check endpoints."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError, ProgrammingError

from ledgercrm.api.routes.health import (
    REQUIRED_TABLES,
    ReadyResponse,
    health_check,
    readiness_check,
)


class TestHealthEndpoint:
    """Test basic health endpoint."""

    @pytest.mark.asyncio
    async def test_health_returns_healthy(self):
        response = await health_check()

        assert response.status == "healthy"
        assert response.version

    def test_health_over_http(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestReadinessEndpoint:
    """Test readiness check endpoint."""

    @pytest.mark.asyncio
    async def test_ready_database_and_schema_up(self):
        mock_session = AsyncMock()

        response = await readiness_check(session=mock_session)

        assert response.ready is True
        assert response.checks == {"database": True, "schema": True}
        # One ping plus one check per CRM table
        assert mock_session.execute.await_count == 1 + len(REQUIRED_TABLES)

    @pytest.mark.asyncio
    async def test_ready_database_down(self):
        mock_session = AsyncMock()
        mock_session.execute = AsyncMock(
            side_effect=OperationalError("SELECT 1", {}, Exception("Connection refused"))
        )

        response = await readiness_check(session=mock_session)

        assert response.ready is False
        assert response.checks == {"database": False, "schema": False}

    @pytest.mark.asyncio
    async def test_ready_schema_missing(self):
        mock_session = AsyncMock()
        mock_session.execute = AsyncMock(
            side_effect=[None, ProgrammingError("SELECT id", {}, Exception("no such table"))]
        )

        response = await readiness_check(session=mock_session)

        assert response.ready is False
        assert response.checks == {"database": True, "schema": False}

    @pytest.mark.asyncio
    async def test_ready_against_test_database(self, async_session):
        response = await readiness_check(session=async_session)

        assert response.ready is True

    def test_ready_response_model(self):
        response = ReadyResponse(ready=True, checks={"database": True})

        assert response.ready is True
        assert response.checks["database"] is True
