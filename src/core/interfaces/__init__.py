"""
Core Interfaces Module

Protocols for the collaborators of the cache engine, enabling dependency
injection and testability.

Components:
-----------
- **store.py**: KeyValueStore protocol (Redis, in-memory)
- **upstream.py**: UpstreamFetcher protocol (Unsplash)
- **scheduler.py**: BackgroundScheduler protocol (deferred work)
"""

from src.core.interfaces.scheduler import BackgroundJob, BackgroundScheduler
from src.core.interfaces.store import KeyValueStore
from src.core.interfaces.upstream import UpstreamFetcher

__all__ = [
    "BackgroundJob",
    "BackgroundScheduler",
    "KeyValueStore",
    "UpstreamFetcher",
]
