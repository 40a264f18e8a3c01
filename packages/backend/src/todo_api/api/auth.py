"""Auth API — registration, login, profile, token re-issue.

Learn: Routes for user authentication:
- POST /auth/register → create an account, returns user + token
- POST /auth/login → email/password → user + token
- GET /auth/profile → current user info (protected)
- POST /auth/refresh → fresh token built from the current user row (protected)

Routes translate HTTP to AuthService calls; errors raised by the service
are turned into envelopes by api/responses.py.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from todo_api.api.responses import created, ok
from todo_api.auth.dependencies import (
    CurrentIdentity,
    get_current_user,
    get_token_codec,
)
from todo_api.auth.jwt import TokenCodec
from todo_api.config import Settings
from todo_api.db.engine import get_db
from todo_api.schemas.auth import AuthResponse, LoginRequest, RegisterRequest, UserRead
from todo_api.services.auth_service import AuthService

router = APIRouter(prefix="/auth")


def _auth_svc(
    request: Request,
    db: AsyncSession = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
) -> AuthService:
    settings: Settings = request.app.state.settings
    return AuthService(
        db,
        codec,
        bcrypt_rounds=settings.bcrypt_rounds,
        password_min_length=settings.password_min_length,
        password_max_length=settings.password_max_length,
    )


# ─── Register ────────────────────────────────────────────


@router.post("/register", status_code=201)
async def register(body: RegisterRequest, svc: AuthService = Depends(_auth_svc)):
    """Create a new user account and log it in."""
    user, token = await svc.register(body.email, body.password)
    return created(
        "User registered successfully",
        AuthResponse(user=UserRead.model_validate(user), token=token),
    )


# ─── Login ───────────────────────────────────────────────


@router.post("/login")
async def login(body: LoginRequest, svc: AuthService = Depends(_auth_svc)):
    """Login with email and password → token."""
    user, token = await svc.login(body.email, body.password)
    return ok(
        "Login successful",
        AuthResponse(user=UserRead.model_validate(user), token=token),
    )


# ─── Current user ───────────────────────────────────────


@router.get("/profile")
async def get_profile(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: AuthService = Depends(_auth_svc),
):
    """Get the current authenticated user's info."""
    user = await svc.get_user(identity.user_id)
    return ok("Profile retrieved", UserRead.model_validate(user))


@router.post("/refresh")
async def refresh(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: AuthService = Depends(_auth_svc),
):
    """Exchange a valid token for a fresh one with up-to-date claims."""
    user, token = await svc.reissue(identity)
    return ok(
        "Token refreshed",
        AuthResponse(user=UserRead.model_validate(user), token=token),
    )
