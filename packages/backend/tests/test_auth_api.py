"""Auth API tests.

Learn: Tests cover:
1. User registration + duplicate prevention (case/whitespace-insensitive)
2. Validation errors with per-field details
3. Login, and that a wrong password and an unknown email look identical
4. Protected /profile endpoint
5. Token re-issue via /refresh
"""

import pytest
from sqlalchemy import func, select

from conftest import TEST_PASSWORD, bearer, register, unique_email
from todo_api.db.models import User


# ═══════════════════════════════════════════════════════════
# Registration
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_user(client):
    """Register a new user account."""
    email = unique_email("test")
    r = await client.post(
        "/api/auth/register",
        json={"email": email, "password": TEST_PASSWORD},
    )
    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    assert body["message"] == "User registered successfully"

    data = body["data"]
    assert data["user"]["email"] == email
    assert isinstance(data["user"]["id"], int)
    assert data["token"]
    assert data["token_type"] == "bearer"


@pytest.mark.asyncio
async def test_register_never_returns_password(client):
    email = unique_email("secret")
    r = await client.post(
        "/api/auth/register",
        json={"email": email, "password": TEST_PASSWORD},
    )
    assert TEST_PASSWORD not in r.text
    assert "password" not in r.json()["data"]["user"]
    assert "$2b$" not in r.text


@pytest.mark.asyncio
async def test_register_normalizes_email(client):
    data = await register(client, "  Carol@Example.COM ")
    assert data["user"]["email"] == "carol@example.com"


@pytest.mark.asyncio
async def test_register_token_authenticates_same_user(client):
    data = await register(client, unique_email("gate"))
    r = await client.get("/api/auth/profile", headers=bearer(data["token"]))
    assert r.status_code == 200
    assert r.json()["data"]["id"] == data["user"]["id"]


@pytest.mark.asyncio
async def test_register_duplicate_email(client, db_session):
    """Can't register with the same email twice; exactly one row survives."""
    await register(client, "dup@example.com")

    r = await client.post(
        "/api/auth/register",
        json={"email": "  DUP@example.com", "password": "another_password"},
    )
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "CONFLICT"
    assert r.json()["error"]["message"] == "Email already registered"

    count = await db_session.scalar(
        select(func.count()).select_from(User).where(User.email == "dup@example.com")
    )
    assert count == 1


@pytest.mark.asyncio
async def test_register_invalid_email(client):
    r = await client.post(
        "/api/auth/register",
        json={"email": "not-an-email", "password": TEST_PASSWORD},
    )
    assert r.status_code == 400
    err = r.json()["error"]
    assert err["code"] == "VALIDATION_ERROR"
    assert "email" in err["details"]


@pytest.mark.asyncio
@pytest.mark.parametrize("password", ["abc", "x" * 101])
async def test_register_password_length(client, password):
    """Password must be 6-100 characters."""
    r = await client.post(
        "/api/auth/register",
        json={"email": unique_email("short"), "password": password},
    )
    assert r.status_code == 400
    assert "password" in r.json()["error"]["details"]


@pytest.mark.asyncio
async def test_register_missing_field(client):
    r = await client.post("/api/auth/register", json={"email": unique_email()})
    assert r.status_code == 400
    err = r.json()["error"]
    assert err["code"] == "VALIDATION_ERROR"
    assert "password" in err["details"]


@pytest.mark.asyncio
async def test_register_failure_issues_no_token(client):
    r = await client.post(
        "/api/auth/register",
        json={"email": "bad", "password": "x"},
    )
    assert r.status_code == 400
    assert "data" not in r.json()
    assert "token" not in r.text


# ═══════════════════════════════════════════════════════════
# Login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_login_success(client):
    """Login with valid credentials returns a token."""
    email = unique_email("login")
    await register(client, email)

    r = await client.post(
        "/api/auth/login",
        json={"email": email, "password": TEST_PASSWORD},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "Login successful"
    assert body["data"]["user"]["email"] == email
    assert body["data"]["token"]


@pytest.mark.asyncio
async def test_login_is_case_insensitive(client):
    await register(client, "dave@example.com")
    r = await client.post(
        "/api/auth/login",
        json={"email": " DAVE@Example.com ", "password": TEST_PASSWORD},
    )
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_login_wrong_password_matches_unknown_email(client):
    """A wrong password and an unknown email are indistinguishable."""
    email = unique_email("probe")
    await register(client, email)

    wrong_pw = await client.post(
        "/api/auth/login",
        json={"email": email, "password": "wrong_password"},
    )
    unknown = await client.post(
        "/api/auth/login",
        json={"email": unique_email("nobody"), "password": "wrong_password"},
    )

    assert wrong_pw.status_code == unknown.status_code == 401
    assert wrong_pw.json() == unknown.json()
    assert wrong_pw.json()["error"]["message"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_login_tokens_differ_each_time(client):
    email = unique_email("twice")
    first = await register(client, email)
    r = await client.post(
        "/api/auth/login",
        json={"email": email, "password": TEST_PASSWORD},
    )
    assert r.json()["data"]["token"] != first["token"]


# ═══════════════════════════════════════════════════════════
# Profile / refresh
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_profile_with_token(client, alice):
    r = await client.get("/api/auth/profile", headers=alice["headers"])
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "Profile retrieved"
    assert body["data"]["email"] == "alice@example.com"
    assert "password_hash" not in body["data"]


@pytest.mark.asyncio
async def test_profile_without_token(client):
    r = await client.get("/api/auth/profile")
    assert r.status_code == 401
    assert r.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_profile_for_deleted_account_is_404(client, codec):
    token = codec.issue(12345, "gone@example.com")
    r = await client.get("/api/auth/profile", headers=bearer(token))
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_refresh_returns_new_token(client, alice):
    r = await client.post("/api/auth/refresh", headers=alice["headers"])
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["token"] != alice["token"]
    assert data["user"]["id"] == alice["user"]["id"]

    # The new token works.
    r = await client.get("/api/auth/profile", headers=bearer(data["token"]))
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_refresh_requires_token(client):
    r = await client.post("/api/auth/refresh")
    assert r.status_code == 401
