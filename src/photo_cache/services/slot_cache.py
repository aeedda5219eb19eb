"""
Rotating slot cache.

Each (partition, tier) pair owns a fixed-length array of optional image
records stored as a single value. Slots are addressed by position only;
occupancy lives in the partition metadata.

Retrieval ("take one"):
    Starting one position after the stored pointer, scan circularly for the
    first occupied slot, advancing the pointer on every step, for at most one
    full wrap. A hit empties the slot, decrements the tier count and rewrites
    the array. The pointer persists across calls, so consecutive reads walk
    around the array instead of always rescanning from slot 0.

Self-healing:
    - Array missing while count > 0: recreate it empty, zero the count
    - Full wrap finds nothing while count > 0: zero the count
    Both report a metadata change so the caller persists the repaired count.
"""

from dataclasses import dataclass

import orjson
from pydantic import ValidationError as PydanticValidationError

from src.core.config.constants import CacheTier, Stage
from src.core.interfaces.store import KeyValueStore
from src.core.logging.logger import get_logger
from src.photo_cache.models.image_record import ImageRecord
from src.photo_cache.models.metadata import PartitionMetadata
from src.photo_cache.services.cache_key import StoreKeyLayout

logger = get_logger(__name__)

Slots = list[ImageRecord | None]


@dataclass
class TakeResult:
    """
    Outcome of a take.

    Attributes:
        record: The record removed from its slot, None on miss
        tier_changed: Metadata was mutated and must be persisted
        repaired: A count/array desync was detected and zeroed
    """

    record: ImageRecord | None
    tier_changed: bool
    repaired: bool = False


class SlotCache:
    """
    Reads, writes and consumes tier arrays in the key-value store.

    Usage:
        slot_cache = SlotCache(store, StoreKeyLayout("photocache"), capacity=30)
        result = await slot_cache.take_one("default", CacheTier.MAIN, metadata)
        if result.tier_changed:
            await metadata_store.save("default", metadata)
    """

    def __init__(self, store: KeyValueStore, keys: StoreKeyLayout, capacity: int):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._store = store
        self._keys = keys
        self._capacity = capacity

    @property
    def capacity(self) -> int:
        return self._capacity

    def empty_slots(self) -> Slots:
        return [None] * self._capacity

    def fit(self, records: list[ImageRecord | None]) -> Slots:
        """Pad or truncate to exactly `capacity` slots."""
        slots = list(records[: self._capacity])
        slots.extend([None] * (self._capacity - len(slots)))
        return slots

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def _encode(self, slots: Slots) -> bytes:
        return orjson.dumps(
            [record.model_dump(mode="json") if record is not None else None for record in slots]
        )

    def _decode(self, raw: bytes) -> Slots:
        items = orjson.loads(raw)
        if not isinstance(items, list):
            raise ValueError("tier array is not a list")
        return self.fit(
            [ImageRecord.model_validate(item) if item is not None else None for item in items]
        )

    # -------------------------------------------------------------------------
    # Whole-array access
    # -------------------------------------------------------------------------

    async def read_tier(self, partition_key: str, tier: CacheTier) -> Slots | None:
        """
        Load a tier array.

        Returns:
            Exactly `capacity` slots, or None when the array is absent or
            cannot be decoded
        """
        raw = await self._store.get(self._keys.tier(partition_key, tier))
        if raw is None:
            return None
        try:
            return self._decode(raw)
        except (orjson.JSONDecodeError, PydanticValidationError, ValueError) as e:
            logger.warning(
                "Discarding undecodable tier array",
                stage=Stage.STORE.value,
                partition=partition_key,
                tier=tier.value,
                error=str(e),
            )
            return None

    async def write_tier(self, partition_key: str, tier: CacheTier, slots: Slots) -> None:
        """Overwrite a tier array with `slots` fitted to capacity."""
        await self._store.put(self._keys.tier(partition_key, tier), self._encode(self.fit(slots)))

    async def write_empty(self, partition_key: str, tier: CacheTier) -> None:
        await self.write_tier(partition_key, tier, self.empty_slots())

    async def tier_exists(self, partition_key: str, tier: CacheTier) -> bool:
        return await self._store.get(self._keys.tier(partition_key, tier)) is not None

    # -------------------------------------------------------------------------
    # Retrieval
    # -------------------------------------------------------------------------

    async def take_one(
        self, partition_key: str, tier: CacheTier, metadata: PartitionMetadata
    ) -> TakeResult:
        """
        Remove and return the next occupied slot of a tier.

        Mutates ``metadata`` in place (pointer, count); the caller persists it
        when ``tier_changed`` is set.
        """
        state = metadata.tier(tier)
        if state.count == 0:
            return TakeResult(record=None, tier_changed=False)

        slots = await self.read_tier(partition_key, tier)
        if slots is None:
            await self.write_empty(partition_key, tier)
            logger.warning(
                "Tier array missing, recreated empty",
                stage=Stage.STORE.value,
                partition=partition_key,
                tier=tier.value,
                recorded_count=state.count,
            )
            state.count = 0
            state.pointer %= self._capacity
            return TakeResult(record=None, tier_changed=True, repaired=True)

        pointer = state.pointer % self._capacity
        for _ in range(self._capacity):
            pointer = (pointer + 1) % self._capacity
            record = slots[pointer]
            if record is None:
                continue

            slots[pointer] = None
            state.pointer = pointer
            state.count = min(state.count, self._capacity) - 1
            await self.write_tier(partition_key, tier, slots)
            return TakeResult(record=record, tier_changed=True)

        logger.warning(
            "Tier count out of sync with array, resetting",
            stage=Stage.STORE.value,
            partition=partition_key,
            tier=tier.value,
            recorded_count=state.count,
        )
        state.pointer = pointer
        state.count = 0
        return TakeResult(record=None, tier_changed=True, repaired=True)
