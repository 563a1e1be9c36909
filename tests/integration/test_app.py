"""Integration tests for app-level endpoints and middleware."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from procapacity.config import settings
from procapacity.core.rate_limiter import RateLimitMiddleware


@pytest.mark.asyncio
class TestAppEndpoints:
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["environment"] == settings.ENVIRONMENT

    async def test_metrics_without_redis(self, client: AsyncClient):
        """Test metrics report unavailable instead of failing when Redis is down."""
        response = await client.get("/metrics")

        assert response.status_code == 503


@pytest.mark.asyncio
class TestRateLimiting:
    async def test_fails_open_without_redis(self, client: AsyncClient, auth_headers: dict):
        response = await client.get("/api/v1/projects", headers=auth_headers)

        assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit"] == str(settings.RATE_LIMIT_REQUESTS)

    async def test_rejects_when_limit_reached(self, client: AsyncClient):
        with patch.object(RateLimitMiddleware, "_hit", AsyncMock(return_value=(False, 0))):
            response = await client.post(
                "/api/v1/auth/login",
                json={"email": "someone@example.com", "password": "whatever123"},
            )

        assert response.status_code == 429
        assert response.headers["Retry-After"] == str(settings.RATE_LIMIT_WINDOW)
        assert response.headers["X-RateLimit-Limit"] == str(settings.AUTH_RATE_LIMIT_REQUESTS)
