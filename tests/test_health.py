"""Tests for health endpoints."""

from httpx import AsyncClient

from telemed.api.v1.endpoints import health


async def test_health_check(client: AsyncClient) -> None:
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data


async def test_ping(client: AsyncClient) -> None:
    response = await client.get("/api/v1/ping")
    assert response.json() == {"message": "pong"}


async def test_detailed_health_reports_backlog(client: AsyncClient, redis_mock, monkeypatch) -> None:
    async def healthy() -> bool:
        return True

    monkeypatch.setattr(health, "check_database_connection", healthy)
    monkeypatch.setattr(health, "check_redis_connection", healthy)
    redis_mock.llen.return_value = 3

    response = await client.get("/api/v1/health/detailed")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["notification_backlog"] == 3


async def test_detailed_health_degrades_without_redis(
    client: AsyncClient, monkeypatch
) -> None:
    async def healthy() -> bool:
        return True

    async def unhealthy() -> bool:
        return False

    monkeypatch.setattr(health, "check_database_connection", healthy)
    monkeypatch.setattr(health, "check_redis_connection", unhealthy)

    response = await client.get("/api/v1/health/detailed")

    data = response.json()
    assert data["status"] == "degraded"
    assert data["redis"] == "unhealthy"
    assert data["notification_backlog"] is None
