"""Domain errors raised by the service and auth layers.

Learn: Services never build HTTP responses. They raise one of these and
the exception handlers in api/responses.py turn it into the error envelope.
Each class carries its HTTP status and stable error code so the mapping
lives in one place.

Messages are deliberately uniform where a distinct message would leak
information (which credential was wrong, which token check failed, whether
a todo exists under another account).
"""

from typing import Any, Optional


class AppError(Exception):
    """Base class for errors that are reported to the client."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    default_message: str = "An internal error occurred"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationFailed(AppError):
    """Malformed input. `details` maps field name → problem."""

    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Validation failed"


class EmailTaken(AppError):
    status_code = 409
    code = "CONFLICT"
    default_message = "Email already registered"


class InvalidCredentials(AppError):
    """Unknown email or wrong password — the caller can't tell which."""

    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "Invalid email or password"


class Unauthenticated(AppError):
    """Missing, malformed, forged or expired bearer token."""

    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "Authentication required"


class NotFound(AppError):
    """Resource absent, soft-deleted, or owned by someone else."""

    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource", details: Any = None):
        super().__init__(f"{resource} not found", details)
