"""
Base Exception Class

This module contains ONLY the base exception class that all other exceptions inherit from.
All specialized exceptions are in their respective themed modules.
"""

from typing import Any


class PhotoCacheError(Exception):
    """
    Base exception for all photo cache service errors.

    All custom exceptions inherit from this class to enable:
    - Consistent error handling
    - Thread ID correlation
    - Structured error logging
    - Rich context for debugging

    Attributes:
        message: Error message
        thread_id: Thread ID for correlation (if available)
        details: Additional error details (dict)

    Example:
        raise UpstreamServerError(
            "Unsplash API error: 503 Service Unavailable",
            details={"status_code": 503, "partition": "orientation=landscape"},
        )
    """

    def __init__(
        self, message: str, thread_id: str | None = None, details: dict[str, Any] | None = None
    ):
        self.message = message
        self.thread_id = thread_id
        self.details = (details or {}).copy()
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for logging/API responses.

        Returns:
            Dict with error_type, message, thread_id, and details
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "thread_id": self.thread_id,
            "details": self.details,
        }

    def with_context(self, **context) -> "PhotoCacheError":
        """
        Add additional context to the error details.

        Returns:
            Self (for method chaining)
        """
        self.details.update(context)
        return self

    def __repr__(self) -> str:
        details_str = f", details={self.details}" if self.details else ""
        thread_id_str = f", thread_id='{self.thread_id}'" if self.thread_id else ""
        return f"{self.__class__.__name__}(message='{self.message}'{thread_id_str}{details_str})"

    @classmethod
    def from_exception(
        cls,
        exc: Exception,
        message: str | None = None,
        thread_id: str | None = None,
        **details
    ) -> "PhotoCacheError":
        """
        Create an error of this class from another exception.

        Useful for wrapping third-party exceptions (redis, httpx) with context.

        Example:
            >>> try:
            ...     await client.get(url)
            ... except httpx.ConnectError as e:
            ...     raise UpstreamConnectionError.from_exception(e, url=url)
        """
        error_message = message or str(exc)
        error_details = {
            "original_error": exc.__class__.__name__,
            "original_message": str(exc),
            **details
        }
        return cls(error_message, thread_id=thread_id, details=error_details)
