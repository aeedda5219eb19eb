"""
Error Handling
==============

Two layers turn exceptions into HTTP responses:

1. Exception handlers (registered on the app) map the service's own
   exception families to status codes:

       InvalidFilterError / request validation → 400
       UpstreamRateLimitError                  → 429
       UpstreamError (other)                   → 502
       CircuitBreakerOpenError                 → 503
       StoreError                              → 503
       any other PhotoCacheError               → 500

2. `ErrorHandlingMiddleware` is the last line of defense for anything
   else: it logs the full stack trace and returns a generic 500 without
   leaking internals (tracebacks only in development).
"""

import traceback
from collections.abc import Callable

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from src.core.config.constants import HEADER_THREAD_ID
from src.core.exceptions import (
    CircuitBreakerOpenError,
    PhotoCacheError,
    StoreError,
    UpstreamError,
    UpstreamRateLimitError,
    ValidationError,
)
from src.core.logging.logger import get_logger, get_thread_id

logger = get_logger(__name__)

_ERROR_STATUS: list[tuple[type[PhotoCacheError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (UpstreamRateLimitError, status.HTTP_429_TOO_MANY_REQUESTS),
    (CircuitBreakerOpenError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (UpstreamError, status.HTTP_502_BAD_GATEWAY),
    (StoreError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_for_error(exc: PhotoCacheError) -> int:
    """HTTP status for a service exception; most specific family wins."""
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def photo_cache_exception_handler(request: Request, exc: PhotoCacheError) -> JSONResponse:
    """Handle service exceptions."""
    status_code = status_for_error(exc)
    if exc.thread_id is None:
        exc.thread_id = get_thread_id()

    log = logger.warning if status_code < 500 else logger.error
    log(
        f"Request failed: {exc.message}",
        error_type=type(exc).__name__,
        status_code=status_code,
        path=request.url.path,
        details=exc.details,
    )

    headers = {HEADER_THREAD_ID: exc.thread_id or ""}
    if status_code == status.HTTP_429_TOO_MANY_REQUESTS:
        headers["Retry-After"] = "60"

    return JSONResponse(status_code=status_code, content=exc.to_dict(), headers=headers)


async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed query parameters are client errors (400), like invalid filters."""
    errors = [
        {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error_type": "ValidationError",
            "message": "Invalid request parameters",
            "thread_id": get_thread_id(),
            "details": {"errors": errors},
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PhotoCacheError, photo_cache_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Catch-all for exceptions no handler claimed.

    Unexpected errors are counted under `errors` when the app has a metrics
    accumulator.
    """

    def __init__(self, app, include_traceback: bool = False):
        """
        Args:
            app: The ASGI application
            include_traceback: Include stack traces in error responses
                               (development only)
        """
        super().__init__(app)
        self.include_traceback = include_traceback

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)

        except Exception as e:
            method = request.method
            path = request.url.path
            error_type = type(e).__name__

            logger.error(
                f"Unhandled exception in request: {method} {path}",
                method=method,
                path=path,
                error_type=error_type,
                error_message=str(e),
                exc_info=True,
            )

            metrics = getattr(request.app.state, "metrics", None)
            if metrics is not None:
                metrics.increment("errors")

            error_response = {
                "error": "internal_server_error",
                "message": "An unexpected error occurred while processing your request",
                "error_type": error_type,
            }
            if self.include_traceback:
                error_response["traceback"] = traceback.format_exc()
                error_response["detail"] = str(e)

            return JSONResponse(status_code=500, content=error_response)
