"""Health endpoint tests."""

import pytest


@pytest.mark.asyncio
async def test_health_returns_ok(client):
    """Health endpoint should return server status and version."""
    resp = await client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["server"] == "ok"
    assert data["database"] == "ok"
    assert "version" in data


@pytest.mark.asyncio
async def test_health_needs_no_auth(client):
    resp = await client.get("/health", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 200


class _UnreachableEngine:
    def connect(self):
        raise ConnectionError("database unreachable")


class _UnreachableDatabase:
    engine = _UnreachableEngine()


@pytest.mark.asyncio
async def test_health_degraded_when_database_is_gone(app, client, monkeypatch):
    monkeypatch.setattr(app.state, "database", _UnreachableDatabase())
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "degraded"
    assert resp.json()["database"] == "error"
    assert "unreachable" not in resp.text
