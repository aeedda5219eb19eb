"""
Cache status report models.

Read-only view of every partition, served by the cache-status endpoint.
"""

from pydantic import BaseModel, Field


class TierStatus(BaseModel):
    """Occupancy of one tier."""

    count: int
    capacity: int
    fill_percent: int = Field(description="Occupied share of capacity, rounded")
    pointer: int


class PartitionStatus(BaseModel):
    """State of one partition."""

    partition_key: str
    main: TierStatus
    buffer: TierStatus
    is_refilling: bool
    last_refill_time: int = Field(description="Epoch milliseconds, 0 = never")
    last_refill: str = Field(description="Relative label such as '5 minutes ago' or 'never'")


class StatusReport(BaseModel):
    """All known partitions."""

    capacity: int
    partition_count: int
    partitions: list[PartitionStatus]
