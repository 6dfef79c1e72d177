"""Typed application errors and their translation into the JSON error envelope.

Services raise ``AppError`` subclasses; the handlers registered by
``register_exception_handlers`` are the single place where failures become
HTTP responses of the form ``{"success": false, "message": ...}``.
"""

import logging
from collections.abc import Sequence
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base application error carrying an HTTP status code."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal Server Error"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(AppError):
    """Input failed format constraints."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class AuthError(AppError):
    """Missing, invalid or revoked credentials (401), or a forbidden action (403)."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized request"


class ConflictError(AppError):
    """The request conflicts with existing state."""

    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class InternalError(AppError):
    pass


def error_body(message: str) -> dict[str, object]:
    """The uniform error envelope."""
    return {"success": False, "message": message}


def format_validation_errors(errors: Sequence[Any]) -> str:
    """Render the first validation error as "field: message"."""
    if not errors:
        return "Invalid request"
    first = errors[0]
    # Drop the "body"/"query"/"path" prefix from the location
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    msg = str(first.get("msg", "Invalid value"))
    # pydantic prefixes messages raised from validators with "Value error, "
    msg = msg.removeprefix("Value error, ")
    return f"{'.'.join(loc)}: {msg}" if loc else msg


async def app_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, AppError)
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message))


async def request_validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, (RequestValidationError, PydanticValidationError))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(format_validation_errors(exc.errors())),
    )


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, StarletteHTTPException)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal Server Error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the error translation handlers on an application."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(PydanticValidationError, request_validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
