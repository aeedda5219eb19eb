"""
Circuit Breaker Exceptions

All exceptions related to circuit breaker operations
"""

from src.core.exceptions.base import PhotoCacheError


class CircuitBreakerError(PhotoCacheError):
    """Base exception for circuit breaker errors."""
    pass


class CircuitBreakerOpenError(CircuitBreakerError):
    """
    Raised when the upstream circuit breaker is open (fail fast).

    The circuit transitions to half-open after the recovery timeout,
    at which point one probe request is allowed through.
    """
    pass
