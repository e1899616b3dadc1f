"""
Tests for health check and monitoring endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from throwback.services.error_tracking import ErrorTracker


@pytest.mark.unit
class TestHealthEndpoints:
    """Test health, liveness and metrics routes."""

    def test_health_check(self, client: TestClient):
        """Test the database check and the stopped scheduler are reported."""
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["environment"] == "test"
        assert data["checks"] == {"database": True, "redis": False, "scheduler": False}
        assert data["scheduler"] == {"running": False, "jobs": []}

    def test_liveness(self, client: TestClient):
        """Test the liveness probe."""
        data = client.get("/api/health/live").json()

        assert data["status"] == "alive"
        assert isinstance(data["pid"], int)

    def test_stream_tasks_health(self, client: TestClient):
        """Test stream status counters are exposed."""
        data = client.get("/api/health/streams").json()

        assert data["status"] == "healthy"
        assert "tasks" in data

    def test_playlist_tasks_health(self, client: TestClient):
        """Test playlist analytics job state is exposed."""
        tasks = client.get("/api/health/playlists").json()["tasks"]

        assert set(tasks["last_resets"]) == {"daily", "weekly", "monthly"}
        assert "playlists_synced" in tasks
        assert "recent_errors" in tasks

    def test_metrics(self, client: TestClient):
        """Test counters come with derived rates and system usage."""
        client.get("/api/health/live")

        data = client.get("/api/health/metrics").json()

        assert data["requests"]["total"] >= 1
        assert "error_rate_percent" in data["requests"]
        assert "hit_rate_percent" in data["cache"]
        assert "background_jobs" in data
        assert "system" in data


@pytest.mark.unit
class TestRequestPipeline:
    """Test middleware headers and error reporting filters."""

    def test_security_headers(self, client: TestClient):
        """Test responses carry security and request id headers."""
        response = client.get("/api/health/live", headers={"X-Request-ID": "abc123"})

        assert response.headers["X-Frame-Options"] == "DENY"
        assert "player.vimeo.com" in response.headers["Content-Security-Policy"]
        assert response.headers["X-Request-ID"] == "abc123"

    def test_account_responses_not_cached(self, client: TestClient, auth_headers: dict):
        """Test account responses forbid shared caching."""
        response = client.get("/api/auth/me", headers=auth_headers)

        assert response.headers["Cache-Control"] == "no-store, private"

    def test_script_payload_rejected(self, client: TestClient):
        """Test suspicious URLs never reach the routers."""
        response = client.get("/api/search?q=<script>")

        assert response.status_code == 400

    def test_expected_errors_not_reported(self):
        """Test domain and HTTP errors are dropped before reaching Sentry."""
        event = {"exception": {"values": [{"type": "NotFoundError"}]}}

        assert ErrorTracker.before_send(event, {}) is None
        assert ErrorTracker.before_send({"request": {"url": "http://api/api/health"}}, {}) is None

    def test_credentials_scrubbed(self):
        """Test passwords and tokens are filtered from reported requests."""
        event = {
            "request": {
                "url": "http://api/api/auth/login",
                "data": {"email": "a@b.c", "password": "secret", "nested": {"token": "t"}},
            }
        }

        data = ErrorTracker.before_send(event, {})["request"]["data"]

        assert data == {"email": "a@b.c", "password": "[Filtered]", "nested": {"token": "[Filtered]"}}
