"""
Partition metadata model.

One record per partition key. `count` mirrors the number of occupied slots in
the matching tier array and `pointer` is the last position scanned; both are
maintained by the engine rather than recomputed from the array.
"""

import orjson
from pydantic import BaseModel, Field

from src.core.config.constants import CacheTier


class TierState(BaseModel):
    """Occupancy and scan position of one tier."""

    count: int = Field(default=0, ge=0)
    pointer: int = Field(default=0, ge=0)


class PartitionMetadata(BaseModel):
    """
    Durable state of one cache partition.

    Attributes:
        main_tier: Tier that serves requests
        buffer_tier: Tier filled from upstream, promoted into main
        is_refilling: Advisory flag set while a refill is in flight
        last_refill_time: Epoch milliseconds of the last completed refill, 0 = never
    """

    main_tier: TierState = Field(default_factory=TierState)
    buffer_tier: TierState = Field(default_factory=TierState)
    is_refilling: bool = False
    last_refill_time: int = 0

    def tier(self, tier: CacheTier) -> TierState:
        return self.main_tier if tier is CacheTier.MAIN else self.buffer_tier

    def is_cold(self) -> bool:
        """Both tiers empty."""
        return self.main_tier.count == 0 and self.buffer_tier.count == 0

    def to_bytes(self) -> bytes:
        return orjson.dumps(self.model_dump())

    @classmethod
    def from_bytes(cls, raw: bytes) -> "PartitionMetadata":
        return cls.model_validate(orjson.loads(raw))
