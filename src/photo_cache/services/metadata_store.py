"""
Partition metadata persistence.

Partitions are created lazily: the first `load` of an unknown key writes a
zeroed metadata record plus two empty tier arrays. There is no eviction of
partitions.
"""

import orjson
from pydantic import ValidationError as PydanticValidationError

from src.core.config.constants import CacheTier, Stage
from src.core.interfaces.store import KeyValueStore
from src.core.logging.logger import get_logger
from src.photo_cache.models.metadata import PartitionMetadata
from src.photo_cache.services.cache_key import StoreKeyLayout
from src.photo_cache.services.slot_cache import SlotCache

logger = get_logger(__name__)


class MetadataStore:
    """
    Loads and saves `PartitionMetadata` records.

    `save` overwrites the whole record; callers must hold the full current
    record before mutating it. Store failures propagate as `StoreError`.
    """

    def __init__(self, store: KeyValueStore, keys: StoreKeyLayout, slot_cache: SlotCache):
        self._store = store
        self._keys = keys
        self._slot_cache = slot_cache

    async def peek(self, partition_key: str) -> PartitionMetadata | None:
        """Read a record without creating it. Undecodable records read as absent."""
        raw = await self._store.get(self._keys.metadata(partition_key))
        if raw is None:
            return None
        try:
            return PartitionMetadata.from_bytes(raw)
        except (orjson.JSONDecodeError, PydanticValidationError) as e:
            logger.warning(
                "Discarding undecodable partition metadata",
                stage=Stage.PARTITION_LOAD.value,
                partition=partition_key,
                error=str(e),
            )
            return None

    async def load(self, partition_key: str) -> PartitionMetadata:
        """
        Return the partition's metadata, initializing the partition if needed.

        Initialization only creates tier arrays that do not exist yet, and
        re-reads the metadata record right before writing it, so a caller that
        raced with another initializer (or a refill) does not reset a
        partition that has already been populated.
        """
        metadata = await self.peek(partition_key)
        if metadata is not None:
            return metadata

        for tier in CacheTier:
            if not await self._slot_cache.tier_exists(partition_key, tier):
                await self._slot_cache.write_empty(partition_key, tier)

        existing = await self.peek(partition_key)
        if existing is not None:
            return existing

        metadata = PartitionMetadata()
        await self.save(partition_key, metadata)
        logger.info(
            "Initialized partition",
            stage=Stage.PARTITION_LOAD.value,
            partition=partition_key,
            capacity=self._slot_cache.capacity,
        )
        return metadata

    async def save(self, partition_key: str, metadata: PartitionMetadata) -> None:
        await self._store.put(self._keys.metadata(partition_key), metadata.to_bytes())

    async def list_partitions(self) -> list[str]:
        """All partition keys that have a metadata record, sorted."""
        store_keys = await self._store.list(self._keys.partitions_prefix())
        partitions = {
            partition
            for partition in (self._keys.partition_from_metadata_key(key) for key in store_keys)
            if partition is not None
        }
        return sorted(partitions)
