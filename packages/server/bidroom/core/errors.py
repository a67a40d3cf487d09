"""
User-facing error messages and app-level exception handlers.

Access denial is never an exception inside the resolver; guards turn a
``none`` access level into a 403 with the generic "no access" message,
whether or not the resource exists. Infrastructure failures surface as a
generic 503 without internal detail.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

def not_found(resource: str) -> str:
    return f"{resource} not found."


def no_access(resource: str) -> str:
    return f"You don't have access to this {resource}."


def no_permission_invite(resource: str) -> str:
    return f"You don't have permission to add members to this {resource}."


def no_permission_remove(resource: str) -> str:
    return f"You don't have permission to remove members from this {resource}."


def no_permission_archive(resource: str) -> str:
    return f"You don't have permission to archive this {resource}."


def no_permission_restore(resource: str) -> str:
    return f"You don't have permission to restore this {resource}."


def no_permission_rename(resource: str) -> str:
    return f"You don't have permission to rename this {resource}."


NO_PERMISSION_ADMIN = "You don't have permission to perform this action."
NO_PERMISSION_CREATE_PROJECT = "You don't have permission to create projects."
NO_PERMISSION_CREATE_PACKAGE = "You don't have permission to create packages."
NO_TECHNICAL_ACCESS = "You don't have access to technical evaluations."
NO_COMMERCIAL_ACCESS = "You don't have access to commercial evaluations."
MUST_BE_LOGGED_IN = "You must be logged in."
MUST_BE_LOGGED_IN_WITH_ORG = "You must be logged in with an active organization."


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


def error_response(status: int, code: str, message: str) -> JSONResponse:
    """JSON error envelope shared by middleware and exception handlers."""
    return JSONResponse(
        status_code=status,
        content={"error": {"code": code, "message": message, "status": status}},
    )


def _service_unavailable() -> JSONResponse:
    return error_response(
        503, "SERVICE_UNAVAILABLE", "The service is temporarily unavailable. Please try again."
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    log.error("db.failure", path=request.url.path, error=type(exc).__name__)
    return _service_unavailable()


async def redis_error_handler(request: Request, exc: RedisError) -> JSONResponse:
    log.error("redis.failure", path=request.url.path, error=type(exc).__name__)
    return _service_unavailable()


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(RedisError, redis_error_handler)
