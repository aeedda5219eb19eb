"""
Upstream Provider Exceptions

Errors from the Unsplash API. Each carries the HTTP status (when there was one)
so the HTTP layer can map it to a response code.
"""

from typing import Any

from src.core.exceptions.base import PhotoCacheError


class UpstreamError(PhotoCacheError):
    """Base exception for non-success responses and transport failures."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        thread_id: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, thread_id=thread_id, details=details)
        self.status_code = status_code
        if status_code is not None:
            self.details.setdefault("status_code", status_code)


class UpstreamRateLimitError(UpstreamError):
    """Raised on HTTP 429 from the provider."""
    pass


class UpstreamAuthError(UpstreamError):
    """Raised on HTTP 401/403 (missing or rejected access key)."""
    pass


class UpstreamServerError(UpstreamError):
    """Raised on HTTP 5xx from the provider."""
    pass


class UpstreamTimeoutError(UpstreamError):
    """Raised when the provider does not answer within the configured timeout."""
    pass


class UpstreamConnectionError(UpstreamError):
    """Raised on transport failures other than timeouts."""
    pass


class UpstreamResponseError(UpstreamError):
    """Raised when the provider answers 2xx with a body we cannot read."""
    pass
