"""Tests for the /health and / endpoints and the response headers."""


class TestHealth:

    def test_health_reports_database_and_grants(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["db"] == "ok"
        assert data["uptime_seconds"] >= 0
        assert data["version"]
        assert data["grant_count"] > 0

    def test_root_returns_api_info(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.json()["name"] == "Society Access API"
        assert resp.json()["status"] == "running"


class TestResponseHeaders:

    def test_generated_request_id_and_timing(self, client):
        resp = client.get("/health")
        assert len(resp.headers["x-request-id"]) == 16
        assert resp.headers["x-response-time"].endswith("ms")

    def test_incoming_request_id_is_echoed(self, client):
        resp = client.get("/health", headers={"X-Request-ID": "trace-abc"})
        assert resp.headers["x-request-id"] == "trace-abc"

    def test_error_bodies_carry_code_and_message(self, client):
        resp = client.get("/api/auth/me")
        assert resp.status_code == 401
        body = resp.json()
        assert body["error"] == "UNAUTHORIZED"
        assert body["message"]
        assert "x-request-id" in resp.headers
