"""API tests for the health endpoint."""


class TestHealth:
    async def test_health_without_database(self, test_client):
        # No pool is initialized in tests, so the service reports degraded.
        resp = await test_client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "degraded"
        assert data["database"] == "unreachable"
        assert data["rate_limiter"] == "InMemoryRateLimiter"
        assert "timestamp" in data
