"""Key-value store backends."""

from src.infrastructure.store.factory import create_store
from src.infrastructure.store.memory_store import InMemoryKeyValueStore
from src.infrastructure.store.redis_store import RedisKeyValueStore

__all__ = ["InMemoryKeyValueStore", "RedisKeyValueStore", "create_store"]
