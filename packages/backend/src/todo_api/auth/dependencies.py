"""FastAPI auth dependencies.

Learn: get_current_user is the authorization gate. It's attached to every
protected router with include_router(dependencies=[...]) and also
requested by handlers that need the identity; FastAPI caches dependency
results per request, so the token is verified once.

The gate never touches the database. A validly signed, unexpired token is
trusted as-is, including the email it was issued with. Clients that need
fresh claims call POST /api/auth/refresh.
"""

from dataclasses import dataclass
from typing import Optional

import structlog
from fastapi import Depends, Header, Request

from todo_api.auth.jwt import TokenCodec, TokenError
from todo_api.errors import Unauthenticated

logger = structlog.get_logger()


@dataclass(frozen=True)
class CurrentIdentity:
    """The authenticated user making the request.

    Learn: This is the unified auth context. All downstream code takes the
    owner id from here — never from a path parameter or request body.
    """

    user_id: int
    email: str


def get_token_codec(request: Request) -> TokenCodec:
    return request.app.state.token_codec


def parse_bearer(authorization: Optional[str]) -> str:
    """Pull the token out of an Authorization header.

    Accepts exactly "<scheme> <token>" where scheme is "Bearer" in any
    case. Anything else (missing header, other scheme, extra spaces, a
    token containing whitespace) raises Unauthenticated.
    """
    if not authorization:
        raise Unauthenticated()

    scheme, sep, token = authorization.partition(" ")
    if not sep or scheme.lower() != "bearer":
        raise Unauthenticated()
    if not token or token != token.strip() or len(token.split()) != 1:
        raise Unauthenticated()
    return token


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
    codec: TokenCodec = Depends(get_token_codec),
) -> CurrentIdentity:
    """Extract current identity (required — 401 if no valid token)."""
    try:
        token = parse_bearer(authorization)
    except Unauthenticated:
        logger.info("auth.missing_or_malformed_header", path=request.url.path)
        raise

    try:
        claims = codec.verify(token)
    except TokenError:
        logger.info("auth.invalid_token", path=request.url.path)
        raise Unauthenticated() from None

    identity = CurrentIdentity(user_id=claims.subject_id, email=claims.email)
    request.state.identity = identity
    structlog.contextvars.bind_contextvars(user_id=identity.user_id)
    return identity
