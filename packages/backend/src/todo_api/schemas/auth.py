"""Pydantic schemas for registration, login and user profiles.

Learn: Request schemas only check shape (strings present). Email format
and password length are business rules enforced by AuthService, so the
same checks apply no matter how the service is called.
"""

from datetime import datetime

from pydantic import BaseModel


class RegisterRequest(BaseModel):
    email: str
    password: str


class LoginRequest(BaseModel):
    email: str
    password: str


class UserRead(BaseModel):
    """Safe, outward-facing view of a user (no password hash)."""
    id: int
    email: str
    created_at: datetime

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    user: UserRead
    token: str
    token_type: str = "bearer"
