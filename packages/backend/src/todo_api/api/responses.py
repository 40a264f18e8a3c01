"""Response envelope and exception handlers.

Learn: Every JSON response has the same outer shape:

    {"success": true,  "message": "...", "data": {...}}
    {"success": false, "error": {"code": "...", "message": "...", "details": ...}}

Routes build the success side with ok()/created(). The error side is
produced here from AppError subclasses, FastAPI's request validation
errors, and — as a last resort — any unexpected exception, whose detail
is logged but never sent to the client.
"""

from typing import Any, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from todo_api.errors import AppError, Unauthenticated

logger = structlog.get_logger()


def _payload(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    return jsonable_encoder(data)


def success(status_code: int, message: str, data: Any = None) -> JSONResponse:
    body: dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        body["data"] = _payload(data)
    return JSONResponse(status_code=status_code, content=body)


def ok(message: str, data: Any = None) -> JSONResponse:
    return success(200, message, data)


def created(message: str, data: Any = None) -> JSONResponse:
    return success(201, message, data)


def error(
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    err: dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        err["details"] = jsonable_encoder(details)
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": err},
        headers=headers,
    )


# ─── Exception handlers ─────────────────────────────────


async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    headers = None
    if isinstance(exc, Unauthenticated):
        headers = {"WWW-Authenticate": "Bearer"}
    return error(exc.status_code, exc.code, exc.message, exc.details, headers)


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = {}
    for e in exc.errors():
        # loc is ("body", "title") / ("path", "todo_id") / ("query", "page")
        field = ".".join(str(part) for part in e["loc"][1:]) or str(e["loc"][0])
        details[field] = e["msg"]
    return error(400, "VALIDATION_ERROR", "Validation failed", details)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request.unhandled_error", path=request.url.path)
    return error(500, "INTERNAL_ERROR", "An internal error occurred")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, handle_app_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
