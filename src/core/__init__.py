"""
Core Module

Foundational components: configuration, logging, exceptions, and interfaces.
"""

from .exceptions import (
    CircuitBreakerOpenError,
    PhotoCacheError,
    StoreError,
    UpstreamError,
    ValidationError,
)
from .logging import (
    clear_thread_id,
    get_logger,
    get_thread_id,
    log_stage,
    set_thread_id,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "set_thread_id",
    "get_thread_id",
    "clear_thread_id",
    "log_stage",
    "PhotoCacheError",
    "StoreError",
    "UpstreamError",
    "CircuitBreakerOpenError",
    "ValidationError",
]
