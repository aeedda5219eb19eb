"""
Partition key derivation and store key layout.

A partition key identifies the slice of the cache that serves one effective
filter set. The store key layout maps a partition to its three durable
entries (metadata, main tier array, buffer tier array).
"""

from dataclasses import dataclass

from src.core.config.constants import (
    DEFAULT_ORIENTATION,
    DEFAULT_PARTITION_KEY,
    STORE_KEY_METADATA_SUFFIX,
    STORE_KEY_METRICS,
    STORE_KEY_PARTITION,
    CacheTier,
)
from src.photo_cache.models.filters import ImageFilters


def build_partition_key(filters: ImageFilters) -> str:
    """
    Derive the partition key for a filter set.

    Fields at their default value are omitted, the rest are rendered as
    ``field=value`` pairs sorted by field name and joined with ``&``. With no
    non-default field the key is ``"default"``, so landscape (the default
    orientation) never appears in a key.

    Examples:
        >>> build_partition_key(ImageFilters())
        'default'
        >>> build_partition_key(ImageFilters(orientation="landscape"))
        'default'
        >>> build_partition_key(ImageFilters(orientation="portrait", collections="9,1"))
        'collections=1,9&orientation=portrait'
    """
    fields: dict[str, str] = {}
    if filters.orientation is not DEFAULT_ORIENTATION:
        fields["orientation"] = filters.orientation.value
    if filters.collections:
        fields["collections"] = ",".join(filters.collections)
    if filters.photo_of_the_day:
        fields["photo_of_the_day"] = "true"

    if not fields:
        return DEFAULT_PARTITION_KEY
    return "&".join(f"{name}={fields[name]}" for name in sorted(fields))


@dataclass(frozen=True)
class StoreKeyLayout:
    """
    Store keys for every partition under a common prefix.

    Layout:
        {prefix}:partition:{partition_key}:meta
        {prefix}:partition:{partition_key}:main
        {prefix}:partition:{partition_key}:buffer
        {prefix}:metrics
    """

    prefix: str

    def partitions_prefix(self) -> str:
        return f"{self.prefix}:{STORE_KEY_PARTITION}:"

    def metadata(self, partition_key: str) -> str:
        return f"{self.partitions_prefix()}{partition_key}:{STORE_KEY_METADATA_SUFFIX}"

    def tier(self, partition_key: str, tier: CacheTier) -> str:
        return f"{self.partitions_prefix()}{partition_key}:{tier.value}"

    def metrics(self) -> str:
        return f"{self.prefix}:{STORE_KEY_METRICS}"

    def partition_from_metadata_key(self, store_key: str) -> str | None:
        """Inverse of `metadata`; None for keys that are not metadata records."""
        suffix = f":{STORE_KEY_METADATA_SUFFIX}"
        head = self.partitions_prefix()
        if not store_key.startswith(head) or not store_key.endswith(suffix):
            return None
        return store_key[len(head):-len(suffix)]
