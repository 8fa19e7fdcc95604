"""Error taxonomy and the handlers that render it.

Domain code raises these exceptions the same way route handlers raise
``HTTPException``. Every error leaves the API as ``{"message": ...}``,
optionally with extra top-level fields.
"""

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core import get_settings

logger = logging.getLogger(__name__)


class AppError(HTTPException):
    """Base class for errors with a fixed status code and a message body."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        *,
        extra: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(status_code=self.status_code, detail=message, headers=headers)
        self.message = message
        self.extra = extra or {}


class InvalidInputError(AppError):
    """Missing or malformed input."""

    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(AppError):
    """Missing or invalid credential."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Unauthorized.", **kwargs):
        kwargs.setdefault("headers", {"WWW-Authenticate": "Bearer"})
        super().__init__(message, **kwargs)


class ForbiddenError(AppError):
    """Role, tenant or ownership check failed."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(AppError):
    """Resource id does not resolve."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppError):
    """Business rule violation (duplicates, exclusivity, capacity, dependents)."""

    status_code = status.HTTP_400_BAD_REQUEST


class InternalError(AppError):
    """Unexpected or storage failure."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Render any HTTP exception as ``{"message": ..., **extra}``."""
    body: dict[str, Any] = {"message": exc.detail if isinstance(exc.detail, str) else str(exc.detail)}
    body.update(jsonable_encoder(getattr(exc, "extra", {})))
    return JSONResponse(
        status_code=exc.status_code,
        content=body,
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report body and query validation failures as invalid input."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Invalid input.", "error": jsonable_encoder(exc.errors())},
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    """Report unexpected failures; raw details are only exposed in dev."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    body: dict[str, Any] = {"message": "Internal server error."}
    if get_settings().APP_ENV == "dev":
        body["error"] = repr(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error handlers to the application."""
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
