"""Per-IP fixed-window rate limiting backed by Redis.

Learn: One counter per (client IP, bucket, minute):

    todo_api:rl:203.0.113.7:auth:29012345

INCR bumps it and the first hit sets a TTL, so old windows clean
themselves up. Two buckets: "auth" for login/register (small limit, slows
down password guessing) and "api" for everything else.

The limiter is fail-open. With no Redis configured (app.state.redis is
None, e.g. in tests) or a Redis error mid-request, requests go through
unlimited rather than failing.
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from todo_api.api.responses import error

logger = structlog.get_logger()

AUTH_PATHS = ("/api/auth/login", "/api/auth/register")
WINDOW_SECONDS = 60
KEY_TTL_SECONDS = 2 * WINDOW_SECONDS


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Reject with 429 once an IP exceeds its per-minute budget."""

    def __init__(self, app, default_rpm: int = 100, auth_rpm: int = 10):
        super().__init__(app)
        self.default_rpm = default_rpm
        self.auth_rpm = auth_rpm

    def bucket_for(self, request: Request) -> tuple[str, int]:
        if request.url.path.startswith(AUTH_PATHS):
            return "auth", self.auth_rpm
        return "api", self.default_rpm

    async def dispatch(self, request: Request, call_next) -> Response:
        redis = getattr(request.app.state, "redis", None)
        if redis is None:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        bucket, limit = self.bucket_for(request)
        window = int(time.time() // WINDOW_SECONDS)
        key = f"todo_api:rl:{client_ip}:{bucket}:{window}"

        try:
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, KEY_TTL_SECONDS)
        except Exception as e:
            logger.warning("rate_limit.redis_error", error=str(e))
            return await call_next(request)

        if count > limit:
            logger.info("rate_limit.exceeded", client_ip=client_ip, bucket=bucket)
            return error(
                429,
                "RATE_LIMITED",
                "Rate limit exceeded. Try again later.",
                headers={"Retry-After": str(WINDOW_SECONDS)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, limit - count))
        return response
