"""
Middleware Package

- error_handler: exception → HTTP status mapping and the catch-all
  ErrorHandlingMiddleware
"""

from .error_handler import (
    ErrorHandlingMiddleware,
    register_exception_handlers,
    status_for_error,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "register_exception_handlers",
    "status_for_error",
]
