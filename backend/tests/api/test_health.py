"""Tests for health check endpoints."""

from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_health_check(self, client: TestClient):
        """Health endpoint should return 200 with status."""
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "version": "0.1.0"}

    def test_readiness_check(self, client: TestClient):
        """Readiness endpoint should report the store backend."""
        response = client.get("/api/ready")
        assert response.status_code == 200
        assert response.json() == {"status": "ready", "store": "connected", "backend": "memory"}

    def test_readiness_unavailable(self, client: TestClient, container):
        """An unreadable store should make readiness return 503."""
        with patch.object(container.store, "health_check", AsyncMock(return_value=False)):
            response = client.get("/api/ready")
        assert response.status_code == 503
        assert response.json()["status"] == "unavailable"


class TestErrorHandling:
    def test_unknown_route(self, client: TestClient):
        """Unknown routes should 404."""
        assert client.get("/api/nope").status_code == 404

    def test_unexpected_error_is_generic_500(self, app, container):
        """Unhandled errors should not leak internals."""
        with patch.object(
            container.store, "health_check", AsyncMock(side_effect=RuntimeError("secret detail"))
        ):
            with TestClient(app, raise_server_exceptions=False) as client:
                response = client.get("/api/ready")
        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "message": "An internal error occurred",
            "code": "server_error",
        }
