"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication. The server
keeps no token table; a token is valid if its HMAC signature checks out
under our secret and the current time is inside [nbf, exp).

Claims carried in every token:
- sub: user id (stringified — JWT wants a string subject)
- email: user email at issue time (a snapshot, not a live reference)
- iss / iat / nbf / exp: issuer and validity window
- jti: random token id so two tokens issued in the same second differ

verify() never says *why* a token was rejected. Expired, forged,
wrong-algorithm and garbage tokens all raise the same TokenError; the
concrete reason only goes to the server log.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import structlog

from todo_api.config import HMAC_ALGORITHMS

logger = structlog.get_logger()

REQUIRED_CLAIMS = ["sub", "email", "iss", "iat", "nbf", "exp"]


class TokenError(Exception):
    """Raised when a token can't be verified. Message is always the same."""

    def __init__(self):
        super().__init__("Invalid or expired token")


@dataclass(frozen=True)
class Claims:
    """Verified contents of a token."""

    subject_id: int
    email: str
    issuer: str
    issued_at: datetime
    not_before: datetime
    expires_at: datetime
    token_id: Optional[str] = None


def _from_timestamp(value) -> datetime:
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


class TokenCodec:
    """Signs and verifies access tokens with a shared HMAC secret."""

    def __init__(
        self,
        secret: str,
        issuer: str,
        ttl: timedelta,
        algorithm: str = "HS256",
    ):
        if not secret:
            raise ValueError("token secret must not be empty")
        if algorithm not in HMAC_ALGORITHMS:
            raise ValueError(f"unsupported token algorithm: {algorithm}")
        self._secret = secret
        self.issuer = issuer
        self.ttl = ttl
        self.algorithm = algorithm

    def __repr__(self) -> str:
        return f"<TokenCodec issuer={self.issuer!r} algorithm={self.algorithm}>"

    def issue(
        self,
        subject_id: int,
        email: str,
        ttl: Optional[timedelta] = None,
        now: Optional[datetime] = None,
    ) -> str:
        """Create a signed token for a user.

        A negative ttl gives a token that is already expired.
        """
        now = now or datetime.now(timezone.utc)
        payload = {
            "sub": str(subject_id),
            "email": email,
            "iss": self.issuer,
            "iat": now,
            "nbf": now,
            "exp": now + (self.ttl if ttl is None else ttl),
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Claims:
        """Verify and decode a token.

        Checks, in order: structure, declared algorithm (must be exactly
        ours — no "none", no other HMAC width, no asymmetric algorithms),
        signature, then the nbf/exp window.
        Raises TokenError on any failure.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": REQUIRED_CLAIMS},
            )
            return Claims(
                subject_id=int(payload["sub"]),
                email=str(payload["email"]),
                issuer=str(payload["iss"]),
                issued_at=_from_timestamp(payload["iat"]),
                not_before=_from_timestamp(payload["nbf"]),
                expires_at=_from_timestamp(payload["exp"]),
                token_id=payload.get("jti"),
            )
        except (jwt.InvalidTokenError, ValueError, TypeError) as e:
            logger.debug("token.rejected", reason=type(e).__name__)
            raise TokenError() from None

