"""
Exception Module

Structured exception hierarchy for the photo cache service.

Module Structure:
-----------------
- **base.py**: PhotoCacheError base class
- **store.py**: Key-value store exceptions (Redis, in-memory)
- **upstream.py**: Unsplash API exceptions
- **circuit_breaker.py**: Circuit breaker exceptions
- **validation.py**: Request filter validation exceptions

Usage:
------
```python
from src.core.exceptions import StoreError, UpstreamRateLimitError
```
"""

# Base exception
from src.core.exceptions.base import PhotoCacheError

# Circuit breaker exceptions
from src.core.exceptions.circuit_breaker import (
    CircuitBreakerError,
    CircuitBreakerOpenError,
)

# Store exceptions
from src.core.exceptions.store import (
    BufferMissingError,
    StoreConnectionError,
    StoreError,
    StoreOperationError,
)

# Upstream exceptions
from src.core.exceptions.upstream import (
    UpstreamAuthError,
    UpstreamConnectionError,
    UpstreamError,
    UpstreamRateLimitError,
    UpstreamResponseError,
    UpstreamServerError,
    UpstreamTimeoutError,
)

# Validation exceptions
from src.core.exceptions.validation import InvalidFilterError, ValidationError

__all__ = [
    # Base
    "PhotoCacheError",
    # Store
    "StoreError",
    "StoreConnectionError",
    "StoreOperationError",
    "BufferMissingError",
    # Upstream
    "UpstreamError",
    "UpstreamRateLimitError",
    "UpstreamAuthError",
    "UpstreamServerError",
    "UpstreamTimeoutError",
    "UpstreamConnectionError",
    "UpstreamResponseError",
    # Circuit Breaker
    "CircuitBreakerError",
    "CircuitBreakerOpenError",
    # Validation
    "ValidationError",
    "InvalidFilterError",
]
