"""
Unit Tests for SlotCache

Tests circular retrieval, count/pointer bookkeeping, and self-healing when
the stored array disagrees with the metadata.
"""

import pytest

from src.core.config.constants import CacheTier
from src.photo_cache.models.metadata import PartitionMetadata, TierState
from test_fixtures import ImageFactory

PARTITION = "default"


async def _seed(slot_cache, slots, tier=CacheTier.MAIN):
    await slot_cache.write_tier(PARTITION, tier, slots)


@pytest.mark.unit
class TestArrayShape:
    def test_fit_pads(self, slot_cache):
        slots = slot_cache.fit(ImageFactory.records(2))

        assert len(slots) == 5
        assert slots[2:] == [None, None, None]

    def test_fit_truncates(self, slot_cache):
        slots = slot_cache.fit(ImageFactory.records(8))

        assert [record.id for record in slots] == [f"photo-{i}" for i in range(5)]

    def test_capacity_must_be_positive(self, memory_store, key_layout):
        from src.photo_cache.services.slot_cache import SlotCache

        with pytest.raises(ValueError):
            SlotCache(memory_store, key_layout, capacity=0)

    @pytest.mark.asyncio
    async def test_write_then_read(self, slot_cache):
        records = ImageFactory.records(3)
        await _seed(slot_cache, records)

        slots = await slot_cache.read_tier(PARTITION, CacheTier.MAIN)

        assert slots[:3] == records
        assert slots[3:] == [None, None]

    @pytest.mark.asyncio
    async def test_read_missing_tier(self, slot_cache):
        assert await slot_cache.read_tier(PARTITION, CacheTier.BUFFER) is None

    @pytest.mark.asyncio
    async def test_read_undecodable_tier(self, slot_cache, memory_store, key_layout):
        await memory_store.put(key_layout.tier(PARTITION, CacheTier.MAIN), b"not json")

        assert await slot_cache.read_tier(PARTITION, CacheTier.MAIN) is None


@pytest.mark.unit
class TestTakeOne:
    @pytest.mark.asyncio
    async def test_empty_tier_is_noop(self, slot_cache):
        metadata = PartitionMetadata()

        result = await slot_cache.take_one(PARTITION, CacheTier.MAIN, metadata)

        assert result.record is None
        assert result.tier_changed is False
        assert result.repaired is False

    @pytest.mark.asyncio
    async def test_take_empties_slot_and_decrements(self, slot_cache):
        await _seed(slot_cache, ImageFactory.records(5))
        metadata = PartitionMetadata(main_tier=TierState(count=5, pointer=0))

        result = await slot_cache.take_one(PARTITION, CacheTier.MAIN, metadata)

        assert result.record.id == "photo-1"
        assert result.tier_changed is True
        assert metadata.main_tier == TierState(count=4, pointer=1)
        slots = await slot_cache.read_tier(PARTITION, CacheTier.MAIN)
        assert slots[1] is None
        assert sum(slot is not None for slot in slots) == 4

    @pytest.mark.asyncio
    async def test_full_rotation_serves_each_record_once(self, slot_cache):
        await _seed(slot_cache, ImageFactory.records(5))
        metadata = PartitionMetadata(main_tier=TierState(count=5, pointer=0))

        served = []
        for _ in range(5):
            result = await slot_cache.take_one(PARTITION, CacheTier.MAIN, metadata)
            served.append(result.record.id)

        assert served == ["photo-1", "photo-2", "photo-3", "photo-4", "photo-0"]
        assert metadata.main_tier.count == 0

    @pytest.mark.asyncio
    async def test_pointer_wraps_and_skips_empty_slots(self, slot_cache):
        records = ImageFactory.records(5)
        await _seed(slot_cache, [records[0], None, records[2], None, None])
        metadata = PartitionMetadata(main_tier=TierState(count=2, pointer=3))

        first = await slot_cache.take_one(PARTITION, CacheTier.MAIN, metadata)
        second = await slot_cache.take_one(PARTITION, CacheTier.MAIN, metadata)

        assert first.record.id == "photo-0"
        assert second.record.id == "photo-2"
        assert metadata.main_tier == TierState(count=0, pointer=2)

    @pytest.mark.asyncio
    async def test_buffer_tier_independent(self, slot_cache):
        await _seed(slot_cache, ImageFactory.records(2, start=10), tier=CacheTier.BUFFER)
        metadata = PartitionMetadata(buffer_tier=TierState(count=2))

        result = await slot_cache.take_one(PARTITION, CacheTier.BUFFER, metadata)

        assert result.record.id == "photo-11"
        assert metadata.buffer_tier.count == 1
        assert metadata.main_tier.count == 0


@pytest.mark.unit
class TestSelfHealing:
    @pytest.mark.asyncio
    async def test_missing_array_recreated(self, slot_cache):
        metadata = PartitionMetadata(main_tier=TierState(count=3, pointer=7))

        result = await slot_cache.take_one(PARTITION, CacheTier.MAIN, metadata)

        assert result.record is None
        assert result.tier_changed is True
        assert result.repaired is True
        assert metadata.main_tier.count == 0
        assert metadata.main_tier.pointer == 2
        assert await slot_cache.read_tier(PARTITION, CacheTier.MAIN) == [None] * 5

    @pytest.mark.asyncio
    async def test_count_desync_zeroed_after_full_wrap(self, slot_cache):
        await slot_cache.write_empty(PARTITION, CacheTier.MAIN)
        metadata = PartitionMetadata(main_tier=TierState(count=4, pointer=1))

        result = await slot_cache.take_one(PARTITION, CacheTier.MAIN, metadata)

        assert result.record is None
        assert result.repaired is True
        assert metadata.main_tier.count == 0
        assert metadata.main_tier.pointer == 1

    @pytest.mark.asyncio
    async def test_inflated_count_clamped_to_capacity(self, slot_cache):
        await _seed(slot_cache, ImageFactory.records(5))
        metadata = PartitionMetadata(main_tier=TierState(count=40))

        await slot_cache.take_one(PARTITION, CacheTier.MAIN, metadata)

        assert metadata.main_tier.count == 4
