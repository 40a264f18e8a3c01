"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Everything a request needs is built here from one Settings
object and parked on app.state:

- app.state.settings     → Settings
- app.state.database     → Database (engine + session factory)
- app.state.token_codec  → TokenCodec (secret, issuer, ttl)
- app.state.redis        → Redis client or None (set in lifespan)

No module-level engine or settings singleton, so tests build as many
isolated apps as they like.
"""

from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from todo_api import __version__
from todo_api.api import api_router, health_router
from todo_api.api.responses import register_exception_handlers
from todo_api.auth.jwt import TokenCodec
from todo_api.config import Settings
from todo_api.db.engine import Database

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: FastAPI lifespan replaces on_event("startup") / on_event("shutdown").
    Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    settings: Settings = app.state.settings
    logger.info(
        "todo_api.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    if settings.auto_create_schema:
        await app.state.database.create_all()
        logger.info("todo_api.schema_created")

    from todo_api.redis_client import connect_redis
    try:
        app.state.redis = await connect_redis(settings.redis_url)
        logger.info("todo_api.redis_connected")
    except Exception as e:
        logger.warning("todo_api.redis_unavailable", error=str(e))
        # Redis is optional — app works without rate limiting

    yield

    logger.info("todo_api.shutdown")

    if app.state.redis is not None:
        await app.state.redis.aclose()
        app.state.redis = None

    await app.state.database.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or Settings()

    app = FastAPI(
        title="Todo API",
        description="Task management API with JWT authentication",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.database = Database(settings.database_url, echo=settings.debug)
    app.state.token_codec = TokenCodec(
        secret=settings.jwt_secret,
        issuer=settings.jwt_issuer,
        ttl=timedelta(seconds=settings.jwt_expiry_seconds),
        algorithm=settings.jwt_algorithm,
    )
    app.state.redis = None

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → handler

    from todo_api.middleware.rate_limit import RateLimitMiddleware
    from todo_api.middleware.request_id import RequestIdMiddleware
    from todo_api.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )

    register_exception_handlers(app)

    app.include_router(health_router, tags=["health"])
    app.include_router(api_router)

    return app
