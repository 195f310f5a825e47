"""
Uniform JSON response envelope and API error types.

Every route answers with ``{"success": true, "data": ...}`` or
``{"success": false, "error": "..."}``. Handlers raise ``ApiError``
subclasses; the exception handlers registered in ``main.py`` turn them
(and store errors) into the error envelope.
"""

import logging
from typing import Any

from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)


def success_response(
    data: Any = None,
    status_code: int = 200,
    message: str | None = None,
    **extra: Any,
) -> JSONResponse:
    """Build a success envelope. Extra keyword arguments become top-level keys."""
    content: dict[str, Any] = {"success": True}
    if data is not None:
        content["data"] = data
    if message is not None:
        content["message"] = message
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


def error_response(
    error: str,
    status_code: int,
    code: str | None = None,
    headers: dict[str, str] | None = None,
    **extra: Any,
) -> JSONResponse:
    content: dict[str, Any] = {"success": False, "error": error}
    if code:
        content["code"] = code
    content.update({k: v for k, v in extra.items() if v is not None})
    return JSONResponse(status_code=status_code, content=content, headers=headers)


class ApiError(Exception):
    """Base class for errors that map directly onto an HTTP response."""

    status_code = 500
    default_message = "Internal server error"
    code: str | None = None

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        errors: dict[str, list[str]] | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.message = message or self.default_message
        self.code = code or self.code
        self.errors = errors
        self.headers = headers
        super().__init__(self.message)

    def to_response(self) -> JSONResponse:
        return error_response(
            self.message,
            self.status_code,
            code=self.code,
            headers=self.headers,
            errors=self.errors,
        )


class ValidationError(ApiError):
    status_code = 400
    default_message = "Invalid request data"


class UnauthorizedError(ApiError):
    status_code = 401
    default_message = "Unauthorized - Please log in"


class ForbiddenError(ApiError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(ApiError):
    status_code = 409
    default_message = "Resource already exists"


class QueryError(ApiError):
    status_code = 500
    default_message = "Database query failed"
    code = "QUERY_ERROR"


# Postgres SQLSTATE codes for integrity violations
_SQLSTATE_ERRORS = {
    "23505": (409, "Resource already exists"),
    "23503": (400, "Related resource not found"),
    "23502": (400, "Invalid data"),
    "23514": (400, "Invalid data"),
}

# SQLite has no SQLSTATE; match on its message text instead
_SQLITE_MESSAGES = (
    ("UNIQUE constraint failed", "23505"),
    ("FOREIGN KEY constraint failed", "23503"),
    ("NOT NULL constraint failed", "23502"),
    ("CHECK constraint failed", "23514"),
)


def _sqlstate(exc: Exception) -> str | None:
    orig = getattr(exc, "orig", None)
    for attr in ("sqlstate", "pgcode"):
        value = getattr(orig, attr, None)
        if value:
            return str(value)
    text = str(orig or exc)
    for needle, code in _SQLITE_MESSAGES:
        if needle in text:
            return code
    return None


def status_for_store_error(exc: Exception) -> tuple[int, str]:
    """Map a database exception to ``(status_code, public message)``."""
    if isinstance(exc, IntegrityError):
        code = _sqlstate(exc)
        if code in _SQLSTATE_ERRORS:
            return _SQLSTATE_ERRORS[code]
        return 400, "Invalid data"
    return 500, "Database error"
