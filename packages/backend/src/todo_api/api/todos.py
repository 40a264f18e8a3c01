"""Todo API routes.

Learn: These routes are the HTTP interface to TodoService. The owner id
always comes from the authenticated identity (Depends(get_current_user)),
never from the URL or body, so a client can't act on someone else's todos
even by guessing ids.

Key patterns:
- POST for creation
- PUT with partial-update semantics (only fields present in the body change)
- Query params for paging and the completed filter
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from todo_api.api.responses import created, ok
from todo_api.auth.dependencies import CurrentIdentity, get_current_user
from todo_api.db.engine import get_db
from todo_api.schemas.todo import TodoCreate, TodoList, TodoRead, TodoStats, TodoUpdate
from todo_api.services.todo_service import DEFAULT_PER_PAGE, MAX_ID, TodoService

router = APIRouter(prefix="/todos")

# Ids that can't exist in an INTEGER column are a 400, like non-numeric ones.
TodoId = Annotated[int, Path(ge=1, le=MAX_ID, description="Todo id")]


def _todo_svc(db: AsyncSession = Depends(get_db)) -> TodoService:
    return TodoService(db)


@router.post("", status_code=201)
async def create_todo(
    body: TodoCreate,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TodoService = Depends(_todo_svc),
):
    """Create a new todo owned by the caller."""
    todo = await svc.create_todo(
        owner_id=identity.user_id,
        title=body.title,
        description=body.description,
        priority=body.priority,
        due_date=body.due_date,
    )
    return created("Todo created successfully", TodoRead.model_validate(todo))


@router.get("")
async def list_todos(
    page: int = Query(1, description="Page number (values < 1 mean 1)"),
    per_page: int = Query(DEFAULT_PER_PAGE, description="Items per page (1-100)"),
    completed: Optional[bool] = Query(None, description="Filter by completed status"),
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TodoService = Depends(_todo_svc),
):
    """List the caller's todos, newest first."""
    result = await svc.list_todos(
        owner_id=identity.user_id,
        page=page,
        per_page=per_page,
        completed=completed,
    )
    return ok("Todos retrieved", TodoList.model_validate(result))


# Registered before /{todo_id} so "stats" isn't parsed as an id.
@router.get("/stats")
async def get_stats(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TodoService = Depends(_todo_svc),
):
    """Totals for the caller's todos."""
    stats = await svc.get_stats(identity.user_id)
    return ok("Statistics retrieved", TodoStats(**stats))


@router.get("/{todo_id}")
async def get_todo(
    todo_id: TodoId,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TodoService = Depends(_todo_svc),
):
    """Get a single todo by ID (404 unless the caller owns it)."""
    todo = await svc.get_todo(todo_id, identity.user_id)
    return ok("Todo retrieved", TodoRead.model_validate(todo))


@router.put("/{todo_id}")
async def update_todo(
    todo_id: TodoId,
    body: TodoUpdate,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TodoService = Depends(_todo_svc),
):
    """Partially update a todo (title, description, completed, priority, due_date)."""
    todo = await svc.update_todo(todo_id, identity.user_id, body.changes())
    return ok("Todo updated successfully", TodoRead.model_validate(todo))


@router.delete("/{todo_id}", status_code=204)
async def delete_todo(
    todo_id: TodoId,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TodoService = Depends(_todo_svc),
):
    """Soft-delete a todo."""
    await svc.delete_todo(todo_id, identity.user_id)
    return Response(status_code=204)
