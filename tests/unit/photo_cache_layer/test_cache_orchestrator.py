"""
Unit Tests for CacheOrchestrator

Walks a partition through its life cycle: cold start, main-tier serving,
drain into the buffer tier, refresh, and live fallback. Background work is
captured by a recording scheduler and run explicitly.
"""

import pytest

from src.core.config.constants import CacheSource, CacheTier
from src.core.exceptions import UpstreamRateLimitError, UpstreamResponseError
from src.photo_cache.models.filters import ImageFilters
from src.photo_cache.models.metadata import TierState
from src.photo_cache.services.cache_orchestrator import CacheOrchestrator

FILTERS = ImageFilters()


async def _warm(orchestrator, scheduler):
    """Cold request plus its warm-up chain."""
    await orchestrator.get_image(FILTERS, False, scheduler)
    await scheduler.run_all()


@pytest.mark.unit
class TestColdStart:
    @pytest.mark.asyncio
    async def test_cold_partition_served_live_and_warmed(self, orchestrator, recording_scheduler, fake_fetcher, metrics):
        result = await orchestrator.get_image(FILTERS, False, recording_scheduler)

        assert result.source is CacheSource.UPSTREAM
        assert result.partition_key == "default"
        assert result.background_scheduled == "warm_cold_partition"
        assert recording_scheduler.names == ["warm_cold_partition"]
        assert fake_fetcher.calls == [(FILTERS, 1)]
        assert metrics.pending["cold_starts"] == 1
        assert metrics.pending["cache_misses"] == 1
        assert metrics.pending["api_calls"] == 1

    @pytest.mark.asyncio
    async def test_warm_chain_fills_both_tiers(self, orchestrator, recording_scheduler, metadata_store):
        await _warm(orchestrator, recording_scheduler)

        metadata = await metadata_store.load("default")
        assert metadata.main_tier.count == 5
        assert metadata.buffer_tier.count == 5

    @pytest.mark.asyncio
    async def test_bypass_on_cold_partition_still_warms(self, orchestrator, recording_scheduler):
        result = await orchestrator.get_image(FILTERS, True, recording_scheduler)

        assert result.source is CacheSource.UPSTREAM
        assert recording_scheduler.names == ["warm_cold_partition"]


@pytest.mark.unit
class TestMainTier:
    @pytest.mark.asyncio
    async def test_served_from_main(self, orchestrator, recording_scheduler, metadata_store, metrics):
        await _warm(orchestrator, recording_scheduler)

        result = await orchestrator.get_image(FILTERS, False, recording_scheduler)

        assert result.source is CacheSource.MAIN
        assert result.background_scheduled is None
        assert recording_scheduler.jobs == []
        assert (await metadata_store.load("default")).main_tier.count == 4
        assert metrics.pending["main_cache_hits"] == 1
        assert metrics.pending["cache_hits"] == 1

    @pytest.mark.asyncio
    async def test_main_images_not_repeated(self, orchestrator, recording_scheduler):
        await _warm(orchestrator, recording_scheduler)

        ids = [
            (await orchestrator.get_image(FILTERS, False, recording_scheduler)).record.id
            for _ in range(5)
        ]

        assert len(set(ids)) == 5

    @pytest.mark.asyncio
    async def test_draining_main_schedules_refresh(self, orchestrator, recording_scheduler):
        await _warm(orchestrator, recording_scheduler)

        for _ in range(4):
            await orchestrator.get_image(FILTERS, False, recording_scheduler)
        assert recording_scheduler.jobs == []

        last = await orchestrator.get_image(FILTERS, False, recording_scheduler)

        assert last.source is CacheSource.MAIN
        assert last.background_scheduled == "refresh_system"
        assert recording_scheduler.names == ["refresh_system"]

    @pytest.mark.asyncio
    async def test_refresh_restores_main(self, orchestrator, recording_scheduler, metadata_store, fake_fetcher):
        await _warm(orchestrator, recording_scheduler)
        for _ in range(5):
            await orchestrator.get_image(FILTERS, False, recording_scheduler)

        await recording_scheduler.run_all()

        metadata = await metadata_store.load("default")
        assert metadata.main_tier == TierState(count=5, pointer=0)
        assert metadata.buffer_tier.count == 5
        assert [count for _, count in fake_fetcher.calls] == [1, 5, 5, 5]


@pytest.mark.unit
class TestBufferTier:
    @pytest.mark.asyncio
    async def test_served_from_buffer_when_main_empty(self, orchestrator, recording_scheduler, metadata_store, metrics):
        await orchestrator.refill_scheduler.refill("default", FILTERS)

        result = await orchestrator.get_image(FILTERS, False, recording_scheduler)

        assert result.source is CacheSource.BUFFER
        assert result.background_scheduled == "refresh_system"
        assert recording_scheduler.names == ["refresh_system"]
        assert (await metadata_store.load("default")).buffer_tier.count == 4
        assert metrics.pending["buffer_cache_hits"] == 1

    @pytest.mark.asyncio
    async def test_buffer_remainder_promoted_and_buffer_refilled(
        self, orchestrator, recording_scheduler, metadata_store, slot_cache
    ):
        await orchestrator.refill_scheduler.refill("default", FILTERS)
        served = await orchestrator.get_image(FILTERS, False, recording_scheduler)

        await recording_scheduler.run_all()

        metadata = await metadata_store.load("default")
        assert metadata.main_tier == TierState(count=4, pointer=0)
        assert metadata.buffer_tier.count == 5
        main = await slot_cache.read_tier("default", CacheTier.MAIN)
        main_ids = {record.id for record in main if record is not None}
        assert len(main_ids) == 4
        assert served.record.id not in main_ids


@pytest.mark.unit
class TestBypassAndLive:
    @pytest.mark.asyncio
    async def test_bypass_leaves_tiers_untouched(self, orchestrator, recording_scheduler, metadata_store):
        await _warm(orchestrator, recording_scheduler)

        result = await orchestrator.get_image(FILTERS, True, recording_scheduler)

        assert result.source is CacheSource.UPSTREAM
        assert recording_scheduler.jobs == []
        metadata = await metadata_store.load("default")
        assert metadata.main_tier.count == 5

    @pytest.mark.asyncio
    async def test_live_failure_propagates_and_counts(self, orchestrator, recording_scheduler, fake_fetcher, metrics):
        fake_fetcher.error = UpstreamRateLimitError("slow down", status_code=429)

        with pytest.raises(UpstreamRateLimitError) as exc_info:
            await orchestrator.get_image(FILTERS, False, recording_scheduler)

        assert exc_info.value.details["partition"] == "default"
        assert metrics.pending["errors"] == 1
        assert metrics.pending["total_requests"] == 1

    @pytest.mark.asyncio
    async def test_empty_live_result(self, orchestrator, recording_scheduler, fake_fetcher):
        fake_fetcher.max_results = 0

        with pytest.raises(UpstreamResponseError):
            await orchestrator.get_image(FILTERS, False, recording_scheduler)

    @pytest.mark.asyncio
    async def test_partitions_are_isolated(self, orchestrator, recording_scheduler):
        await _warm(orchestrator, recording_scheduler)

        result = await orchestrator.get_image(
            ImageFilters(orientation="portrait"), False, recording_scheduler
        )

        assert result.source is CacheSource.UPSTREAM
        assert result.partition_key == "orientation=portrait"
        assert recording_scheduler.names == ["warm_cold_partition"]


@pytest.mark.unit
class TestDesyncRepair:
    @pytest.mark.asyncio
    async def test_repaired_main_falls_through_to_buffer(self, orchestrator, recording_scheduler, metadata_store, slot_cache, metrics):
        await orchestrator.refill_scheduler.refill("default", FILTERS)
        metadata = await metadata_store.load("default")
        metadata.main_tier = TierState(count=3)
        await metadata_store.save("default", metadata)

        result = await orchestrator.get_image(FILTERS, False, recording_scheduler)

        assert result.source is CacheSource.BUFFER
        assert metrics.pending["desync_repairs"] == 1
        assert (await metadata_store.load("default")).main_tier.count == 0

    @pytest.mark.asyncio
    async def test_repaired_tiers_fall_through_to_live(self, orchestrator, recording_scheduler, metadata_store, memory_store, key_layout):
        await metadata_store.load("default")
        metadata = await metadata_store.load("default")
        metadata.main_tier = TierState(count=2)
        await metadata_store.save("default", metadata)
        await memory_store.delete(key_layout.tier("default", CacheTier.MAIN))

        result = await orchestrator.get_image(FILTERS, False, recording_scheduler)

        assert result.source is CacheSource.UPSTREAM
        assert recording_scheduler.names == ["warm_cold_partition"]


@pytest.mark.unit
class TestTrackDownload:
    @pytest.mark.asyncio
    async def test_download_tracked_in_background(self, orchestrator, recording_scheduler, fake_fetcher, metrics):
        orchestrator.track_download("photo-7", recording_scheduler)

        assert recording_scheduler.names == ["track_download"]
        assert fake_fetcher.downloads == []

        await recording_scheduler.run_all()

        assert fake_fetcher.downloads == ["photo-7"]
        assert metrics.pending["downloads"] == 1


@pytest.mark.unit
class TestDescribeStatus:
    @pytest.mark.asyncio
    async def test_empty_report(self, orchestrator):
        report = await orchestrator.describe_status()

        assert report.capacity == 5
        assert report.partition_count == 0
        assert report.partitions == []

    @pytest.mark.asyncio
    async def test_report_after_warm_up(self, orchestrator, recording_scheduler, clock):
        await _warm(orchestrator, recording_scheduler)
        await orchestrator.get_image(FILTERS, False, recording_scheduler)
        clock.advance(90)

        report = await orchestrator.describe_status()

        assert report.partition_count == 1
        status = report.partitions[0]
        assert status.partition_key == "default"
        assert status.main.count == 4
        assert status.main.fill_percent == 80
        assert status.main.pointer == 1
        assert status.buffer.fill_percent == 100
        assert status.is_refilling is False
        assert status.last_refill == "2 minutes ago"

    @pytest.mark.asyncio
    async def test_never_refilled_partition(self, orchestrator, metadata_store):
        await metadata_store.load("orientation=squarish")

        report = await orchestrator.describe_status()

        assert report.partitions[0].last_refill == "never"
        assert report.partitions[0].last_refill_time == 0

    @pytest.mark.asyncio
    async def test_status_does_not_create_partitions(self, orchestrator, metadata_store):
        await orchestrator.describe_status()

        assert await metadata_store.list_partitions() == []

    def test_fill_percent_rounds_half_up(self):
        assert CacheOrchestrator._tier_status(TierState(count=1), 8).fill_percent == 13
        assert CacheOrchestrator._tier_status(TierState(count=1), 3).fill_percent == 33

    def test_relative_label_rounds_half_up(self):
        assert CacheOrchestrator._relative_label(1, 1 + 30_000) == "1 minutes ago"
        assert CacheOrchestrator._relative_label(1, 1 + 29_999) == "0 minutes ago"
        assert CacheOrchestrator._relative_label(0, 10_000) == "never"
