"""
Unit Tests for MetadataStore

Tests lazy partition creation, persistence, and partition listing.
"""

import pytest

from src.core.config.constants import CacheTier
from src.photo_cache.models.metadata import PartitionMetadata, TierState
from test_fixtures import ImageFactory


@pytest.mark.unit
class TestLoad:
    @pytest.mark.asyncio
    async def test_first_load_initializes_partition(self, metadata_store, slot_cache, memory_store, key_layout):
        metadata = await metadata_store.load("default")

        assert metadata == PartitionMetadata()
        assert await memory_store.get(key_layout.metadata("default")) is not None
        for tier in CacheTier:
            assert await slot_cache.read_tier("default", tier) == [None] * 5

    @pytest.mark.asyncio
    async def test_load_returns_saved_record(self, metadata_store):
        saved = PartitionMetadata(
            main_tier=TierState(count=3, pointer=2), is_refilling=True, last_refill_time=42
        )
        await metadata_store.save("default", saved)

        assert await metadata_store.load("default") == saved

    @pytest.mark.asyncio
    async def test_initialization_keeps_existing_arrays(self, metadata_store, slot_cache):
        records = ImageFactory.records(2)
        await slot_cache.write_tier("default", CacheTier.BUFFER, records)

        await metadata_store.load("default")

        slots = await slot_cache.read_tier("default", CacheTier.BUFFER)
        assert slots[:2] == records

    @pytest.mark.asyncio
    async def test_metadata_round_trip_bytes(self):
        metadata = PartitionMetadata(buffer_tier=TierState(count=30), last_refill_time=1)

        assert PartitionMetadata.from_bytes(metadata.to_bytes()) == metadata


@pytest.mark.unit
class TestPeek:
    @pytest.mark.asyncio
    async def test_peek_does_not_create(self, metadata_store, memory_store, key_layout):
        assert await metadata_store.peek("orientation=portrait") is None
        assert await memory_store.list(key_layout.partitions_prefix()) == []

    @pytest.mark.asyncio
    async def test_undecodable_record_reads_absent(self, metadata_store, memory_store, key_layout):
        await memory_store.put(key_layout.metadata("default"), b"{broken")

        assert await metadata_store.peek("default") is None

    @pytest.mark.asyncio
    async def test_undecodable_record_is_reinitialized_by_load(self, metadata_store, memory_store, key_layout):
        await memory_store.put(key_layout.metadata("default"), b'{"main_tier": {"count": -1}}')

        assert await metadata_store.load("default") == PartitionMetadata()


@pytest.mark.unit
class TestListPartitions:
    @pytest.mark.asyncio
    async def test_lists_sorted_partition_keys(self, metadata_store, memory_store):
        await metadata_store.load("orientation=portrait")
        await metadata_store.load("default")
        await metadata_store.load("collections=1,2")
        await memory_store.put("test:metrics", b"{}")

        assert await metadata_store.list_partitions() == [
            "collections=1,2",
            "default",
            "orientation=portrait",
        ]

    @pytest.mark.asyncio
    async def test_empty(self, metadata_store):
        assert await metadata_store.list_partitions() == []
