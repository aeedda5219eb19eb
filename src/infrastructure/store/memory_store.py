"""
In-Memory Key-Value Store

Per-process storage for development and tests. Nothing is shared between
workers and nothing survives a restart.
"""

import asyncio
from typing import Any

from src.core.config.constants import Stage
from src.core.logging.logger import get_logger

logger = get_logger(__name__)


class InMemoryKeyValueStore:
    """
    Dict-backed `KeyValueStore`.

    Thread-Safety: a single asyncio.Lock guards the dict, so each get/put
    is atomic with respect to other coroutines. Read-modify-write sequences
    across calls are not.
    """

    def __init__(self):
        self._data: dict[str, bytes] = {}
        self._lock = asyncio.Lock()

    async def connect(self) -> None:
        logger.info("In-memory store ready", stage=Stage.STORE.value)

    async def disconnect(self) -> None:
        async with self._lock:
            self._data.clear()

    async def get(self, key: str) -> bytes | None:
        async with self._lock:
            return self._data.get(key)

    async def put(self, key: str, value: bytes) -> None:
        async with self._lock:
            self._data[key] = bytes(value)

    async def delete(self, key: str) -> None:
        """Remove a key. Used by tests to simulate lost entries."""
        async with self._lock:
            self._data.pop(key, None)

    async def health_check(self) -> dict[str, Any]:
        async with self._lock:
            size = len(self._data)
        return {"status": "healthy", "backend": "memory", "keys": size}

    async def list(self, prefix: str) -> list[str]:
        async with self._lock:
            return sorted(key for key in self._data if key.startswith(prefix))
