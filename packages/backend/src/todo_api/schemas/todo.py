"""Pydantic schemas for todos.

Learn: Separate schemas for create/update/read keeps the API clean.
- TodoCreate: what you POST to create a todo
- TodoUpdate: what you PUT to modify a todo (every field optional)
- TodoRead: what the API returns (never includes user_id)
- TodoList: one page of todos plus paging info
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

PRIORITY_PATTERN = r"^(low|medium|high)$"


class TodoCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(default="", max_length=1000)
    priority: str = Field(default="medium", pattern=PRIORITY_PATTERN)
    due_date: Optional[datetime] = None


class TodoUpdate(BaseModel):
    """Partial update — only the fields the client sent are applied.

    Learn: pydantic tracks which fields were explicitly provided
    (model_fields_set), so {"due_date": null} (clear it) and {} (leave it)
    stay distinguishable without a sentinel value.
    """
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    completed: Optional[bool] = None
    priority: Optional[str] = Field(None, pattern=PRIORITY_PATTERN)
    due_date: Optional[datetime] = None

    def changes(self) -> dict[str, Any]:
        """Supplied fields only (absent ≠ null)."""
        return self.model_dump(exclude_unset=True)


class TodoRead(BaseModel):
    id: int
    title: str
    description: str
    completed: bool
    priority: str
    due_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TodoList(BaseModel):
    todos: list[TodoRead]
    total: int
    page: int
    per_page: int
    total_pages: int

    model_config = {"from_attributes": True}


class TodoStats(BaseModel):
    total: int
    completed: int
    pending: int
