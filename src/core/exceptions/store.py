"""
Store-Related Exceptions

All exceptions raised by the durable key-value store layer. None of these are
retried by the cache engine; they surface to the caller.
"""

from src.core.exceptions.base import PhotoCacheError


class StoreError(PhotoCacheError):
    """Base exception for key-value store errors."""
    pass


class StoreConnectionError(StoreError):
    """
    Raised when unable to connect to the store (Redis).

    Common causes:
    - Redis server is down
    - Incorrect host/port configuration
    - Authentication failure
    """
    pass


class StoreOperationError(StoreError):
    """Raised when a single get/put/list operation fails."""
    pass


class BufferMissingError(StoreError):
    """Raised by promotion when the buffer tier array is absent from the store."""
    pass
