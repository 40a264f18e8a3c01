"""Data access for users and todos.

Learn: Repositories are thin wrappers over AsyncSession queries. They
know about soft deletes (deleted_at IS NULL everywhere) and ownership
(todo queries always filter on user_id), and nothing else. Transactions
are the caller's business — repositories flush, services commit.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from todo_api.db.models import Todo, User, utcnow


class UserRepository:
    """Credential store: users looked up by email or id."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.email == email, User.deleted_at.is_(None))
        )
        return result.scalars().first()

    async def find_by_id(self, user_id: int) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.id == user_id, User.deleted_at.is_(None))
        )
        return result.scalars().first()

    async def exists_by_email(self, email: str) -> bool:
        # Soft-deleted rows still hold the unique index, so count them too.
        result = await self.db.execute(
            select(func.count()).select_from(User).where(User.email == email)
        )
        return result.scalar_one() > 0

    async def insert(self, user: User) -> User:
        self.db.add(user)
        await self.db.flush()  # get auto-generated ID
        return user


class TodoRepository:
    """Owned-resource store: every lookup is scoped to an owner."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _owned(self, owner_id: int):
        return select(Todo).where(Todo.user_id == owner_id, Todo.deleted_at.is_(None))

    async def find_by_id_and_owner(self, todo_id: int, owner_id: int) -> Optional[Todo]:
        result = await self.db.execute(self._owned(owner_id).where(Todo.id == todo_id))
        return result.scalars().first()

    async def list_by_owner(
        self,
        owner_id: int,
        limit: int,
        offset: int,
        completed: Optional[bool] = None,
    ) -> list[Todo]:
        query = (
            self._owned(owner_id)
            .order_by(Todo.created_at.desc(), Todo.id.desc())
            .limit(limit)
            .offset(offset)
        )
        if completed is not None:
            query = query.where(Todo.completed == completed)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count_by_owner(self, owner_id: int, completed: Optional[bool] = None) -> int:
        query = (
            select(func.count())
            .select_from(Todo)
            .where(Todo.user_id == owner_id, Todo.deleted_at.is_(None))
        )
        if completed is not None:
            query = query.where(Todo.completed == completed)

        result = await self.db.execute(query)
        return result.scalar_one()

    async def insert(self, todo: Todo) -> Todo:
        self.db.add(todo)
        await self.db.flush()
        return todo

    async def update(self, todo: Todo) -> Todo:
        todo.updated_at = utcnow()
        await self.db.flush()
        return todo

    async def soft_delete(self, todo_id: int, owner_id: int) -> bool:
        """Mark a todo deleted only if it exists, is live and belongs to owner.

        Learn: The ownership check and the delete are one UPDATE statement,
        so there's no window between "is it yours?" and "delete it".
        Returns False when no row matched.
        """
        now: datetime = utcnow()
        result = await self.db.execute(
            update(Todo)
            .where(
                Todo.id == todo_id,
                Todo.user_id == owner_id,
                Todo.deleted_at.is_(None),
            )
            .values(deleted_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0
