"""Tests for the token-bucket limiter and its middleware wiring."""

from conftest import USER_PASSWORD
from society_access.core.config import settings
from society_access.middleware.request_context import check_rate_limit


class TestCheckRateLimit:
    """The pure function, without HTTP."""

    def test_first_call_is_allowed(self):
        buckets: dict = {}
        assert check_rate_limit(buckets, "10.0.0.1", max_per_minute=30, now=0.0) == (True, 0.0)

    def test_burst_is_capped(self):
        buckets: dict = {}
        results = [check_rate_limit(buckets, "10.0.0.1", max_per_minute=5, now=0.0)[0] for _ in range(6)]
        assert results == [True] * 5 + [False]

    def test_retry_after_counts_down_to_next_token(self):
        buckets: dict = {}
        for _ in range(60):
            check_rate_limit(buckets, "10.0.0.1", max_per_minute=60, now=0.0)
        allowed, retry_after = check_rate_limit(buckets, "10.0.0.1", max_per_minute=60, now=0.0)
        assert allowed is False
        assert retry_after == 1.0

    def test_tokens_refill_with_time(self):
        buckets: dict = {}
        for _ in range(60):
            check_rate_limit(buckets, "10.0.0.1", max_per_minute=60, now=0.0)
        assert check_rate_limit(buckets, "10.0.0.1", max_per_minute=60, now=1.5)[0] is True

    def test_clients_have_separate_buckets(self):
        buckets: dict = {}
        for _ in range(3):
            check_rate_limit(buckets, "login:10.0.0.1", max_per_minute=3, now=0.0)
        assert check_rate_limit(buckets, "login:10.0.0.1", max_per_minute=3, now=0.0)[0] is False
        assert check_rate_limit(buckets, "login:10.0.0.2", max_per_minute=3, now=0.0)[0] is True
        assert check_rate_limit(buckets, "api:10.0.0.1", max_per_minute=3, now=0.0)[0] is True

    def test_non_positive_limit_disables(self):
        buckets: dict = {}
        assert check_rate_limit(buckets, "x", max_per_minute=0, now=0.0) == (True, 0.0)
        assert check_rate_limit(buckets, "x", max_per_minute=-1, now=0.0) == (True, 0.0)
        assert buckets == {}


class TestRateLimitMiddleware:

    def test_login_attempts_have_their_own_limit(self, client, plain_user, monkeypatch):
        monkeypatch.setattr(settings, "login_rate_limit_per_minute", 2)
        body = {"username": "resident", "password": "wrong-password"}

        assert client.post("/api/auth/login", json=body).status_code == 401
        assert client.post("/api/auth/login", json=body).status_code == 401

        blocked = client.post("/api/auth/login", json={"username": "resident", "password": USER_PASSWORD})
        assert blocked.status_code == 429
        assert blocked.json()["error"] == "RATE_LIMITED"
        assert "retry-after" in blocked.headers
        assert "x-request-id" in blocked.headers

    def test_login_limit_does_not_block_other_endpoints(self, client, user_headers, monkeypatch):
        monkeypatch.setattr(settings, "login_rate_limit_per_minute", 1)
        client.post("/api/auth/login", json={"username": "resident", "password": "nope-nope"})
        assert client.post("/api/auth/login", json={"username": "resident", "password": "nope-nope"}).status_code == 429
        assert client.get("/api/auth/me", headers=user_headers).status_code == 200

    def test_health_is_exempt(self, client, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_per_minute", 1)
        statuses = {client.get("/health").status_code for _ in range(5)}
        assert statuses == {200}
