"""Test fixtures — one fresh app and in-memory database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test builds its own app with create_app(Settings(...)). Nothing
   is global, so there's no dependency_overrides bookkeeping.
2. The database is SQLite in memory (aiosqlite + StaticPool), so every
   session in the test shares one connection and the data disappears
   when the engine is disposed.
3. httpx's ASGITransport doesn't run the lifespan, so the fixture creates
   the tables itself. Redis stays None, which turns rate limiting off.

bcrypt runs at the minimum cost (4 rounds) to keep the suite fast.
"""

import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from todo_api.config import Settings
from todo_api.main import create_app

TEST_SECRET = "test-secret-key-with-at-least-32-bytes-of-entropy"
TEST_PASSWORD = "secure_password_123"


@pytest.fixture()
def settings():
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret=TEST_SECRET,
        bcrypt_rounds=4,
        environment="test",
    )


@pytest_asyncio.fixture()
async def app(settings):
    application = create_app(settings)
    await application.state.database.create_all()
    yield application
    await application.state.database.dispose()


@pytest_asyncio.fixture()
async def client(app):
    """HTTP client talking to the app in-process."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def codec(app):
    return app.state.token_codec


@pytest_asyncio.fixture()
async def db_session(app):
    """A session on the test database, for services and direct inspection."""
    async with app.state.database.session_factory() as session:
        yield session


def unique_email(prefix: str = "user") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}@example.com"


async def register(client, email: str, password: str = TEST_PASSWORD) -> dict:
    """Register through the API and return the envelope's data."""
    r = await client.post(
        "/api/auth/register",
        json={"email": email, "password": password},
    )
    assert r.status_code == 201, r.text
    return r.json()["data"]


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture()
async def alice(client):
    """A registered user: {"user": ..., "token": ..., "headers": ...}."""
    data = await register(client, "alice@example.com")
    return {**data, "headers": bearer(data["token"])}


@pytest_asyncio.fixture()
async def bob(client):
    data = await register(client, "bob@example.com")
    return {**data, "headers": bearer(data["token"])}
