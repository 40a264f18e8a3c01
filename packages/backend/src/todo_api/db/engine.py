"""Async SQLAlchemy engine and session factory.

Learn: SQLAlchemy 2.0 async mode — create_async_engine for connection pooling,
AsyncSession for per-request database access, dependency injection via FastAPI.

There is no module-level engine. create_app() builds one Database from the
settings and parks it on app.state; get_db() pulls it off the request.
"""

from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from todo_api.db.models import Base


def _engine_options(url: str, echo: bool) -> dict:
    if url.startswith("sqlite"):
        options: dict = {
            "echo": echo,
            "connect_args": {"check_same_thread": False},
        }
        # In-memory SQLite lives inside one connection, so every session
        # must share it.
        if ":memory:" in url or url.rstrip("/").endswith("aiosqlite:"):
            options["poolclass"] = StaticPool
        return options

    # Connection pool: min 5, max 20 connections.
    return {"echo": echo, "pool_size": 5, "max_overflow": 15}


class Database:
    """Owns the engine and hands out sessions."""

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, **_engine_options(url, echo))
        # Session factory — each request gets its own session.
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_all(self) -> None:
        """Create every table that doesn't exist yet (dev + tests)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency — yields a session per request, auto-closes."""
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
