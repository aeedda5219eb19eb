"""
Key-Value Store Protocol

This module defines the protocol for the durable store that backs partition
metadata and slot arrays.

Architectural Decision: Protocol-based abstraction
- Redis in production, in-memory for development and tests
- Facilitates testing with fakes that inject failures
- The protocol deliberately has no compare-and-swap or transactions: every
  mutation the engine performs is a full read, a local change and a full write
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """
    Protocol for key-value store implementations.

    Implementations:
    - RedisKeyValueStore: Production Redis-backed store
    - InMemoryKeyValueStore: Development/testing store

    Values are opaque bytes; callers own serialization.
    """

    async def connect(self) -> None:
        """
        Establish connection to the store.

        Raises:
            StoreConnectionError: If connection fails
        """
        ...

    async def disconnect(self) -> None:
        """Close connection to the store."""
        ...

    async def get(self, key: str) -> bytes | None:
        """
        Get a value.

        Returns:
            Stored bytes or None if the key is absent

        Raises:
            StoreOperationError: If the operation fails
        """
        ...

    async def put(self, key: str, value: bytes) -> None:
        """
        Overwrite a value.

        Raises:
            StoreOperationError: If the operation fails
        """
        ...

    async def list(self, prefix: str) -> list[str]:
        """
        List keys starting with prefix.

        Raises:
            StoreOperationError: If the operation fails
        """
        ...

    async def health_check(self) -> dict[str, Any]:
        """Report store health."""
        ...
