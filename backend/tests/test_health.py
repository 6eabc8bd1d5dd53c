"""Tests for health check endpoints."""

import pytest


@pytest.mark.unit
class TestHealth:
    """Health endpoint tests."""

    async def test_health_v1(self, client):
        """GET /api/v1/health returns 200 with app info."""
        resp = await client.get("/api/v1/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["app"] == "Creator Pipeline Engine"
        assert "version" in data

    async def test_health_root(self, client):
        """GET /api/health returns 200 (unversioned, for LB probes)."""
        resp = await client.get("/api/health")
        assert resp.status_code == 200

    async def test_deep_check_reports_database(self, client):
        """Database is reachable; a missing Redis only degrades."""
        resp = await client.get("/api/v1/health/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["database"] == "ok"
        assert data["broker"] in ("ok", "degraded", "unavailable")
        assert data["status"] in ("healthy", "degraded")

    async def test_status_lists_components(self, client):
        resp = await client.get("/api/v1/health/status")
        assert resp.status_code == 200
        data = resp.json()
        assert "uptime_seconds" in data
        assert data["components"]["ai"] == "disabled"
        assert data["backlog"] == {
            "running": 0,
            "paused": 0,
            "waiting_human": 0,
            "open_tasks": 0,
            "overdue_waits": 0,
        }

    async def test_response_has_request_id(self, client):
        """Every response should have X-Request-ID header."""
        resp = await client.get("/api/v1/health")
        assert "x-request-id" in resp.headers

    async def test_custom_request_id_propagated(self, client):
        """If client sends X-Request-ID, it should be echoed back."""
        custom_id = "test-request-12345"
        resp = await client.get(
            "/api/v1/health",
            headers={"X-Request-ID": custom_id},
        )
        assert resp.headers.get("x-request-id") == custom_id
