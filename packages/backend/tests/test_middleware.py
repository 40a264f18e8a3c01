"""Tests for middleware — security headers, request IDs, rate limiting.

Learn: Redis isn't available in tests, so app.state.redis is None and
rate limiting is skipped. The rate-limit tests plug in a tiny in-memory
counter with the two methods the middleware calls (incr, expire).
"""

import pytest
from httpx import ASGITransport, AsyncClient


class CounterStore:
    """Stand-in for the Redis client: just incr/expire."""

    def __init__(self):
        self.counts = {}
        self.ttls = {}

    async def incr(self, key):
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    async def expire(self, key, seconds):
        self.ttls[key] = seconds


class BrokenStore:
    async def incr(self, key):
        raise ConnectionError("redis went away")


# ═══════════════════════════════════════════════════════════
# Security headers / request IDs
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_security_headers_on_health(client):
    """Health endpoint returns security headers."""
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"
    assert r.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"


@pytest.mark.asyncio
async def test_api_responses_are_not_cached(client, alice):
    r = await client.get("/api/auth/profile", headers=alice["headers"])
    assert r.headers["Cache-Control"] == "no-store"


@pytest.mark.asyncio
async def test_request_id_generated(client):
    """Each request gets a unique X-Request-ID header."""
    r1 = await client.get("/health")
    r2 = await client.get("/health")
    assert "X-Request-ID" in r1.headers
    assert "X-Request-ID" in r2.headers
    assert r1.headers["X-Request-ID"] != r2.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    """Incoming X-Request-ID is propagated through the response."""
    custom_id = "test-trace-12345"
    r = await client.get("/health", headers={"X-Request-ID": custom_id})
    assert r.headers["X-Request-ID"] == custom_id


@pytest.mark.asyncio
async def test_request_id_on_error_responses(client):
    r = await client.get("/api/todos")
    assert r.status_code == 401
    assert "X-Request-ID" in r.headers


@pytest.mark.asyncio
async def test_no_hsts_on_http(client):
    """HSTS header is NOT set on HTTP connections (only HTTPS)."""
    r = await client.get("/health")
    assert "Strict-Transport-Security" not in r.headers


@pytest.mark.asyncio
async def test_hsts_on_https(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="https://test") as ac:
        r = await ac.get("/health")
    assert r.headers["Strict-Transport-Security"].startswith("max-age=")


@pytest.mark.asyncio
async def test_health_is_cacheable(client):
    r = await client.get("/health")
    assert "Cache-Control" not in r.headers


# ═══════════════════════════════════════════════════════════
# Rate limiting
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_no_rate_limit_headers_without_redis(client):
    r = await client.get("/health")
    assert "X-RateLimit-Limit" not in r.headers


@pytest.mark.asyncio
async def test_rate_limit_headers(app, client):
    app.state.redis = CounterStore()
    r = await client.get("/health")
    assert r.headers["X-RateLimit-Limit"] == "100"
    assert r.headers["X-RateLimit-Remaining"] == "99"


@pytest.mark.asyncio
async def test_auth_endpoints_have_stricter_limit(app, client):
    store = CounterStore()
    app.state.redis = store

    body = {"email": "nobody@example.com", "password": "whatever1"}
    for _ in range(10):
        r = await client.post("/api/auth/login", json=body)
        assert r.status_code == 401

    r = await client.post("/api/auth/login", json=body)
    assert r.status_code == 429
    assert r.headers["Retry-After"] == "60"
    assert r.json()["error"]["code"] == "RATE_LIMITED"

    # Other endpoints count in their own bucket.
    r = await client.get("/health")
    assert r.status_code == 200
    assert all(ttl == 120 for ttl in store.ttls.values())


@pytest.mark.asyncio
async def test_redis_errors_fail_open(app, client):
    app.state.redis = BrokenStore()
    r = await client.get("/health")
    assert r.status_code == 200
    assert "X-RateLimit-Limit" not in r.headers
