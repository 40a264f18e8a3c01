"""Todo service — ownership-scoped CRUD for a user's todos.

Learn: Every method takes the caller's user id (from the auth gate) next
to the todo id, and every lookup matches on both. "Doesn't exist" and
"exists but isn't yours" are the same NotFound, so nobody can probe the
id space to learn about other accounts.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from todo_api.db.models import Todo
from todo_api.db.repositories import TodoRepository
from todo_api.errors import NotFound, ValidationFailed

logger = structlog.get_logger()

DEFAULT_PER_PAGE = 10
MAX_PER_PAGE = 100

# Largest value a signed 64-bit INTEGER column (and LIMIT/OFFSET) accepts.
MAX_ID = 2**63 - 1
MAX_PAGE = MAX_ID // MAX_PER_PAGE

# Fields a client may change on an existing todo. user_id is not one of them.
UPDATABLE_FIELDS = {"title", "description", "completed", "priority", "due_date"}
NULLABLE_FIELDS = {"due_date"}


@dataclass
class TodoPage:
    todos: list[Todo]
    total: int
    page: int
    per_page: int
    total_pages: int


class TodoService:
    """Business logic for todo CRUD, always scoped to one owner."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.todos = TodoRepository(db)

    # ─── Create ──────────────────────────────────────────

    async def create_todo(
        self,
        owner_id: int,
        title: str,
        description: str = "",
        priority: str = "medium",
        due_date: Optional[datetime] = None,
    ) -> Todo:
        todo = Todo(
            user_id=owner_id,
            title=title,
            description=description,
            priority=priority or "medium",
            due_date=due_date,
            completed=False,
        )
        await self.todos.insert(todo)
        await self.db.commit()
        logger.info("todo.created", todo_id=todo.id, user_id=owner_id)
        return todo

    # ─── Read ────────────────────────────────────────────

    async def get_todo(self, todo_id: int, owner_id: int) -> Todo:
        todo = await self.todos.find_by_id_and_owner(todo_id, owner_id)
        if todo is None:
            raise NotFound("Todo")
        return todo

    async def list_todos(
        self,
        owner_id: int,
        page: int = 1,
        per_page: int = DEFAULT_PER_PAGE,
        completed: Optional[bool] = None,
    ) -> TodoPage:
        """One page of the owner's todos, newest first.

        Out-of-range paging falls back to defaults instead of failing:
        page < 1 → 1, per_page outside 1..100 → 10, and page is capped so
        the row offset still fits in a 64-bit integer.
        """
        if page < 1:
            page = 1
        page = min(page, MAX_PAGE)
        if per_page < 1 or per_page > MAX_PER_PAGE:
            per_page = DEFAULT_PER_PAGE

        total = await self.todos.count_by_owner(owner_id, completed=completed)
        todos = await self.todos.list_by_owner(
            owner_id,
            limit=per_page,
            offset=(page - 1) * per_page,
            completed=completed,
        )
        return TodoPage(
            todos=todos,
            total=total,
            page=page,
            per_page=per_page,
            total_pages=math.ceil(total / per_page),
        )

    # ─── Update ──────────────────────────────────────────

    async def update_todo(self, todo_id: int, owner_id: int, changes: dict[str, Any]) -> Todo:
        """Apply a partial update.

        Learn: `changes` holds only the fields the client actually sent
        (see TodoUpdate.changes()). A key that's absent is left alone; a
        key that's present with None clears the field, which is only
        allowed for nullable columns.
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationFailed(details={f: "cannot be updated" for f in sorted(unknown)})
        nulled = {f for f, v in changes.items() if v is None and f not in NULLABLE_FIELDS}
        if nulled:
            raise ValidationFailed(details={f: "must not be null" for f in sorted(nulled)})

        todo = await self.get_todo(todo_id, owner_id)
        for field, value in changes.items():
            setattr(todo, field, value)

        if changes:
            await self.todos.update(todo)
        await self.db.commit()
        logger.info("todo.updated", todo_id=todo.id, fields=sorted(changes))
        return todo

    # ─── Delete ──────────────────────────────────────────

    async def delete_todo(self, todo_id: int, owner_id: int) -> None:
        """Soft-delete in one conditional statement (check + delete are atomic)."""
        deleted = await self.todos.soft_delete(todo_id, owner_id)
        if not deleted:
            raise NotFound("Todo")
        await self.db.commit()
        logger.info("todo.deleted", todo_id=todo_id, user_id=owner_id)

    # ─── Stats ───────────────────────────────────────────

    async def get_stats(self, owner_id: int) -> dict[str, int]:
        total = await self.todos.count_by_owner(owner_id)
        completed = await self.todos.count_by_owner(owner_id, completed=True)
        return {
            "total": total,
            "completed": completed,
            "pending": total - completed,
        }
