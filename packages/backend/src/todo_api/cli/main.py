"""todo-api CLI — run the server, create the schema, manage your todos.

Usage:
    todo-api serve                          # Run the API with uvicorn
    todo-api init-db                        # Create tables in TODO_API_DATABASE_URL
    todo-api register me@example.com        # Create an account, print a token
    todo-api login me@example.com           # Log in, print a token
    todo-api add "buy milk" -p high         # Create a todo (needs TODO_API_TOKEN)
    todo-api list                           # List your todos
    todo-api done 42                        # Mark todo #42 completed
    todo-api stats                          # Totals
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import os
import sys
from typing import Optional

import click
import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8080"


def _api_url() -> str:
    return os.environ.get("TODO_API_URL", DEFAULT_API_URL).rstrip("/")


def _client(token: Optional[str] = None) -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the API."""
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return httpx.AsyncClient(base_url=_api_url(), headers=headers, timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        # No running loop — normal CLI invocation
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _token() -> str:
    token = os.environ.get("TODO_API_TOKEN")
    if not token:
        click.secho(
            "Error: TODO_API_TOKEN not set (run `todo-api login` first)",
            fg="red",
            err=True,
        )
        sys.exit(1)
    return token


def _data(r: httpx.Response):
    """Unwrap the response envelope or exit with the API's error message."""
    body = r.json() if r.content else {}
    if r.is_error:
        err = body.get("error", {})
        click.secho(
            f"Error ({r.status_code}): {err.get('message', r.reason_phrase)}",
            fg="red",
            err=True,
        )
        sys.exit(1)
    return body.get("data")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version="0.1.0", prog_name="todo-api")
def main():
    """Todo API — server management and a small command-line client."""


# ---------------------------------------------------------------------------
# Server commands
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", default=None, help="Bind host (default: TODO_API_HOST)")
@click.option("--port", default=None, type=int, help="Bind port (default: TODO_API_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server."""
    import uvicorn

    from todo_api.config import Settings

    settings = Settings()
    uvicorn.run(
        "todo_api.main:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command("init-db")
def init_db():
    """Create all tables that don't exist yet."""
    from todo_api.config import Settings
    from todo_api.db.engine import Database

    async def _init():
        database = Database(Settings().database_url)
        try:
            await database.create_all()
        finally:
            await database.dispose()

    _run(_init())
    click.secho("Database schema created", fg="green")


# ---------------------------------------------------------------------------
# Client commands
# ---------------------------------------------------------------------------


async def _authenticate(path: str, email: str, password: str) -> dict:
    async with _client() as c:
        r = await c.post(path, json={"email": email, "password": password})
        return _data(r)


@main.command()
@click.argument("email")
@click.password_option()
def register(email: str, password: str):
    """Create an account and print its token."""
    data = _run(_authenticate("/api/auth/register", email, password))
    click.secho(f"Registered user #{data['user']['id']}", fg="green", err=True)
    click.echo(data["token"])


@main.command()
@click.argument("email")
@click.option("--password", prompt=True, hide_input=True)
def login(email: str, password: str):
    """Log in and print a token (export it as TODO_API_TOKEN)."""
    data = _run(_authenticate("/api/auth/login", email, password))
    click.echo(data["token"])


@main.command()
@click.argument("title")
@click.option("--description", "-d", default="", help="Longer description")
@click.option(
    "--priority", "-p",
    type=click.Choice(["low", "medium", "high"]),
    default="medium",
)
def add(title: str, description: str, priority: str):
    """Create a todo."""

    async def _add():
        async with _client(_token()) as c:
            r = await c.post(
                "/api/todos",
                json={"title": title, "description": description, "priority": priority},
            )
            return _data(r)

    todo = _run(_add())
    click.secho(f"Todo #{todo['id']} created", fg="green")


@main.command("list")
@click.option("--page", default=1, type=int)
@click.option("--per-page", default=10, type=int)
@click.option("--completed/--pending", default=None, help="Filter by status")
def list_cmd(page: int, per_page: int, completed: Optional[bool]):
    """List your todos."""

    async def _list():
        params: dict = {"page": page, "per_page": per_page}
        if completed is not None:
            params["completed"] = str(completed).lower()
        async with _client(_token()) as c:
            return _data(await c.get("/api/todos", params=params))

    data = _run(_list())
    if not data["todos"]:
        click.echo("No todos.")
        return
    for t in data["todos"]:
        mark = "x" if t["completed"] else " "
        click.echo(f"[{mark}] #{t['id']:<5} {t['priority']:<6}  {t['title']}")
    click.echo(f"page {data['page']}/{max(data['total_pages'], 1)} · {data['total']} total")


@main.command()
@click.argument("todo_id", type=int)
def done(todo_id: int):
    """Mark a todo completed."""

    async def _done():
        async with _client(_token()) as c:
            return _data(await c.put(f"/api/todos/{todo_id}", json={"completed": True}))

    _run(_done())
    click.secho(f"Todo #{todo_id} completed", fg="green")


@main.command()
def stats():
    """Show totals."""

    async def _stats():
        async with _client(_token()) as c:
            return _data(await c.get("/api/todos/stats"))

    data = _run(_stats())
    click.echo(
        f"total: {data['total']}  completed: {data['completed']}  pending: {data['pending']}"
    )


if __name__ == "__main__":
    main()
