"""Standardized error handling for the API.

This module provides:
1. Custom exception classes for client-facing failures
2. Exception handlers for FastAPI
3. The standard error response model

Every error renders as ``{"message": ...}`` so clients can branch on a
single field.

Usage:
    from coderun.errors import InvalidInputError

    # In controllers:
    if not validate_program_input(text):
        raise InvalidInputError()

    # Register handlers in main.py:
    from coderun.errors import register_exception_handlers
    register_exception_handlers(app)
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Standard error response model."""

    message: str
    context: dict[str, Any] | None = None


class APIError(Exception):
    """Base class for API errors."""

    status_code: int = 500
    message: str = "internal_error"

    def __init__(self, message: str | None = None, **context: Any) -> None:
        self.message = message or self.__class__.message
        self.context = context if context else None
        super().__init__(self.message)

    def to_response(self) -> ErrorResponse:
        """Convert exception to error response model."""
        return ErrorResponse(message=self.message, context=self.context)


class BadRequestError(APIError):
    """Bad request error (400)."""

    status_code = 400
    message = "bad_request"


class InvalidInputError(BadRequestError):
    """Program input rejected by the sanitizer (400)."""

    message = "invalid_input"


class UnknownOutputError(BadRequestError):
    """Toolchain output matched no known shape (400)."""

    message = "unknown_error"


class ResultTimeoutError(APIError):
    """Job result did not arrive before the request gave up (504)."""

    status_code = 504
    message = "timeout"


class ServiceUnavailableError(APIError):
    """Service unavailable error (503)."""

    status_code = 503
    message = "service_unavailable"


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle custom API errors."""
    logger.warning(
        "API error: %s (status=%d, path=%s)",
        exc.message,
        exc.status_code,
        request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(exclude_none=True),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report body binding failures as 400 instead of FastAPI's 422."""
    reasons = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}"
        for err in exc.errors()
    )
    logger.debug("Binding failed (path=%s): %s", request.url.path, reasons)
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(message=f"error binding request: {reasons}").model_dump(exclude_none=True),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
