"""Tests for app-level endpoints and error mapping."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

pytestmark = pytest.mark.asyncio


async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "StayLedger"}


async def test_root(client: AsyncClient) -> None:
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["docs"] == "/docs"


async def test_database_failure_is_retryable(client: AsyncClient, auth_headers: dict) -> None:
    with patch(
        "stayledger.services.booking_service.list_user_bookings",
        new_callable=AsyncMock,
        side_effect=OperationalError("SELECT 1", {}, Exception("database is down")),
    ):
        response = await client.get("/api/v1/bookings", headers=auth_headers)

    assert response.status_code == 503
    body = response.json()
    assert body["error"] == "ServiceUnavailable"
    assert "try again later" in body["detail"]
