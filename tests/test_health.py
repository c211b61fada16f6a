"""
Tests for the health check endpoints.
"""

import redis

from app.api.endpoints import health


class FakeRedis:
    def __init__(self, error=None):
        self.error = error

    def ping(self):
        if self.error:
            raise self.error
        return True


class TestHealth:
    def test_liveness(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_root(self, client):
        assert client.get("/").json()["message"] == "Hiring Pipeline API"

    def test_detailed_all_healthy(self, client, monkeypatch):
        monkeypatch.setattr(health.settings, "NOTIFICATIONS_ENABLED", True)
        monkeypatch.setattr(health.redis.Redis, "from_url", lambda *args, **kwargs: FakeRedis())

        data = client.get("/health/detailed").json()

        assert data["status"] == "healthy"
        assert data["checks"]["database"]["status"] == "healthy"
        assert data["checks"]["broker"]["status"] == "healthy"

    def test_broker_down_is_degraded(self, client, monkeypatch):
        monkeypatch.setattr(health.settings, "NOTIFICATIONS_ENABLED", True)
        monkeypatch.setattr(
            health.redis.Redis,
            "from_url",
            lambda *args, **kwargs: FakeRedis(redis.ConnectionError("connection refused"))
        )

        data = client.get("/health/detailed").json()

        assert data["status"] == "degraded"
        assert data["checks"]["broker"]["status"] == "unhealthy"
        assert data["checks"]["database"]["status"] == "healthy"

    def test_broker_disabled(self, client, monkeypatch):
        monkeypatch.setattr(health.settings, "NOTIFICATIONS_ENABLED", False)

        data = client.get("/health/detailed").json()

        assert data["status"] == "healthy"
        assert data["checks"]["broker"]["status"] == "disabled"
