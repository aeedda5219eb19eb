"""
Store Factory

Selects the key-value store backend from `STORE_BACKEND`.
"""

from src.core.config.settings import Settings
from src.core.interfaces.store import KeyValueStore
from src.core.logging.logger import get_logger
from src.infrastructure.store.memory_store import InMemoryKeyValueStore
from src.infrastructure.store.redis_store import RedisKeyValueStore

logger = get_logger(__name__)


def create_store(settings: Settings) -> KeyValueStore:
    """
    Build an unconnected store for the configured backend.

    Raises:
        ValueError: Unknown backend
    """
    backend = settings.cache.STORE_BACKEND
    logger.info("Creating key-value store", backend=backend)

    if backend == "redis":
        return RedisKeyValueStore(settings)
    if backend == "memory":
        return InMemoryKeyValueStore()
    raise ValueError(f"Unknown store backend: {backend}")
