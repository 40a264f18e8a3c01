"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. This protects all routes in each router
without modifying individual handlers. Health and the auth router are
open; the auth router protects its own /profile and /refresh routes.
"""

from fastapi import APIRouter, Depends

from todo_api.api.auth import router as auth_router
from todo_api.api.health import router as health_router
from todo_api.api.todos import router as todos_router
from todo_api.auth.dependencies import get_current_user

# All protected routers require authentication
_auth = [Depends(get_current_user)]

api_router = APIRouter(prefix="/api")

# Open routes — no auth required
api_router.include_router(auth_router, tags=["auth"])

# Protected routes — require a valid bearer token
api_router.include_router(todos_router, tags=["todos"], dependencies=_auth)

__all__ = ["api_router", "health_router"]
