"""Photo cache services."""

from src.photo_cache.services.background import (
    FastAPIBackgroundScheduler,
    run_guarded,
)
from src.photo_cache.services.cache_key import StoreKeyLayout, build_partition_key
from src.photo_cache.services.cache_orchestrator import (
    CacheOrchestrator,
    ImageResult,
    build_orchestrator,
)
from src.photo_cache.services.metadata_store import MetadataStore
from src.photo_cache.services.refill_scheduler import RefillScheduler
from src.photo_cache.services.slot_cache import SlotCache, TakeResult

__all__ = [
    "CacheOrchestrator",
    "FastAPIBackgroundScheduler",
    "ImageResult",
    "MetadataStore",
    "RefillScheduler",
    "SlotCache",
    "StoreKeyLayout",
    "TakeResult",
    "build_orchestrator",
    "build_partition_key",
    "run_guarded",
]
