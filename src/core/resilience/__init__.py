"""
Resilience Module

Failure isolation for calls to the upstream photo provider.

COMPONENTS:
===========
- CircuitBreaker: in-process fail-fast gate around provider calls

Retries are deliberately absent from the request path: a failed live fetch
is reported to the caller, and the background refill simply runs again on
the next trigger.
"""

from .circuit_breaker import CircuitBreaker

__all__ = [
    "CircuitBreaker",
]
