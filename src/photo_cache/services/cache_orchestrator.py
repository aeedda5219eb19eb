"""
Cache Orchestrator
==================

Serves one image per request from the two-tier rotating cache of the
request's partition and keeps the tiers moving in the background.

REQUEST FLOW:
-------------

┌─────────────────────────────────────────────────────────────────┐
│ STAGE 1: PARTITION LOAD                                         │
│ - Derive the partition key from the filters                     │
│ - Load (or lazily create) the partition metadata                │
└─────────────────────────────────────────────────────────────────┘
                            ↓
┌─────────────────────────────────────────────────────────────────┐
│ STAGE 2.1: MAIN TIER (main.count > 0)                           │
│ - Take one record, persist metadata                             │
│ - Main drained and buffer non-empty → schedule refresh_system   │
└─────────────────────────────────────────────────────────────────┘
                            ↓ (miss)
┌─────────────────────────────────────────────────────────────────┐
│ STAGE 2.2: BUFFER TIER (main.count == 0, buffer.count > 0)      │
│ - Take one record, persist metadata                             │
│ - Always schedule refresh_system                                │
└─────────────────────────────────────────────────────────────────┘
                            ↓ (miss, bypass, or cold)
┌─────────────────────────────────────────────────────────────────┐
│ STAGE 3: LIVE FETCH                                             │
│ - Fetch a single image from upstream                            │
│ - Both tiers empty → schedule warm_cold_partition               │
└─────────────────────────────────────────────────────────────────┘

A tier whose count disagrees with its array is repaired in place (count
zeroed, metadata persisted) and the request falls through to the next stage.
Background work never affects the response; its failures are only logged
and counted.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass

from src.core.config.constants import CacheSource, CacheTier, Stage
from src.core.config.settings import Settings
from src.core.exceptions import PhotoCacheError, UpstreamResponseError
from src.core.interfaces.scheduler import BackgroundScheduler
from src.core.interfaces.store import KeyValueStore
from src.core.interfaces.upstream import UpstreamFetcher
from src.core.logging.logger import get_logger, log_stage
from src.infrastructure.monitoring.metrics_collector import MetricsAccumulator
from src.photo_cache.models.filters import ImageFilters
from src.photo_cache.models.image_record import ImageRecord
from src.photo_cache.models.metadata import PartitionMetadata, TierState
from src.photo_cache.models.status import PartitionStatus, StatusReport, TierStatus
from src.photo_cache.services.cache_key import StoreKeyLayout, build_partition_key
from src.photo_cache.services.metadata_store import MetadataStore
from src.photo_cache.services.refill_scheduler import RefillScheduler
from src.photo_cache.services.slot_cache import SlotCache

logger = get_logger(__name__)

_SOURCE_BY_TIER = {CacheTier.MAIN: CacheSource.MAIN, CacheTier.BUFFER: CacheSource.BUFFER}


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


@dataclass
class ImageResult:
    """
    One served image.

    Attributes:
        record: The image
        source: Tier it was taken from, or upstream for a live fetch
        partition_key: Partition the request resolved to
        background_scheduled: Name of the background chain scheduled, if any
    """

    record: ImageRecord
    source: CacheSource
    partition_key: str
    background_scheduled: str | None = None


class CacheOrchestrator:
    """
    Coordinates the slot cache, metadata store, refill scheduler and upstream.

    Usage:
        orchestrator = build_orchestrator(settings, store, fetcher, metrics)
        result = await orchestrator.get_image(ImageFilters(), False, scheduler)
    """

    def __init__(
        self,
        metadata_store: MetadataStore,
        slot_cache: SlotCache,
        refill_scheduler: RefillScheduler,
        fetcher: UpstreamFetcher,
        metrics: MetricsAccumulator,
        clock: Callable[[], float] = time.time,
    ):
        self._metadata_store = metadata_store
        self._slot_cache = slot_cache
        self._refill_scheduler = refill_scheduler
        self._fetcher = fetcher
        self._metrics = metrics
        self._clock = clock

    @property
    def refill_scheduler(self) -> RefillScheduler:
        return self._refill_scheduler

    # -------------------------------------------------------------------------
    # Serving
    # -------------------------------------------------------------------------

    async def get_image(
        self,
        filters: ImageFilters,
        bypass_cache: bool,
        scheduler: BackgroundScheduler,
    ) -> ImageResult:
        """
        Serve one image for the filters.

        Args:
            filters: Content-affecting filters
            bypass_cache: Skip both tiers and fetch live
            scheduler: Receives promotion/refill work

        Raises:
            UpstreamError: Live fetch failed
            CircuitBreakerOpenError: Live fetch refused while upstream is failing
            StoreError: Partition state could not be read or written
        """
        self._metrics.increment("total_requests")
        try:
            return await self._serve(filters, bypass_cache, scheduler)
        except PhotoCacheError as e:
            self._metrics.increment("errors")
            raise e.with_context(partition=build_partition_key(filters))

    async def _serve(
        self,
        filters: ImageFilters,
        bypass_cache: bool,
        scheduler: BackgroundScheduler,
    ) -> ImageResult:
        partition_key = build_partition_key(filters)
        metadata = await self._metadata_store.load(partition_key)
        log_stage(
            logger,
            Stage.PARTITION_LOAD,
            "Partition loaded",
            level="debug",
            partition=partition_key,
            main_count=metadata.main_tier.count,
            buffer_count=metadata.buffer_tier.count,
            bypass_cache=bypass_cache,
        )

        if not bypass_cache:
            if metadata.main_tier.count > 0:
                record = await self._take(partition_key, CacheTier.MAIN, metadata)
                if record is not None:
                    background = None
                    if metadata.main_tier.count == 0 and metadata.buffer_tier.count > 0:
                        background = self._schedule_refresh(partition_key, filters, scheduler)
                    return self._hit(record, CacheTier.MAIN, partition_key, background)

            if metadata.main_tier.count == 0 and metadata.buffer_tier.count > 0:
                record = await self._take(partition_key, CacheTier.BUFFER, metadata)
                if record is not None:
                    background = self._schedule_refresh(partition_key, filters, scheduler)
                    return self._hit(record, CacheTier.BUFFER, partition_key, background)

        return await self._fetch_live(partition_key, filters, metadata, scheduler)

    async def _take(
        self, partition_key: str, tier: CacheTier, metadata: PartitionMetadata
    ) -> ImageRecord | None:
        result = await self._slot_cache.take_one(partition_key, tier, metadata)
        if result.tier_changed:
            await self._metadata_store.save(partition_key, metadata)
        if result.repaired:
            self._metrics.increment("desync_repairs")
        return result.record

    def _hit(
        self,
        record: ImageRecord,
        tier: CacheTier,
        partition_key: str,
        background: str | None,
    ) -> ImageResult:
        self._metrics.increment("cache_hits")
        self._metrics.increment(f"{tier.value}_cache_hits")
        stage = Stage.MAIN_TIER_TAKE if tier is CacheTier.MAIN else Stage.BUFFER_TIER_TAKE
        log_stage(
            logger,
            stage,
            "Served from cache",
            partition=partition_key,
            tier=tier.value,
            photo_id=record.id,
            background=background,
        )
        return ImageResult(
            record=record,
            source=_SOURCE_BY_TIER[tier],
            partition_key=partition_key,
            background_scheduled=background,
        )

    async def _fetch_live(
        self,
        partition_key: str,
        filters: ImageFilters,
        metadata: PartitionMetadata,
        scheduler: BackgroundScheduler,
    ) -> ImageResult:
        self._metrics.increment("cache_misses")

        # Cold partitions are warmed even when this request bypasses the cache
        background = None
        if metadata.is_cold():
            self._metrics.increment("cold_starts")
            background = self._schedule_warm(partition_key, filters, scheduler)

        self._metrics.increment("api_calls")
        records = await self._fetcher.fetch_random(filters, 1)
        if not records:
            raise UpstreamResponseError(
                "Upstream returned no images",
                details={"partition": partition_key},
            )

        record = records[0]
        log_stage(
            logger,
            Stage.LIVE_FETCH,
            "Served live from upstream",
            partition=partition_key,
            photo_id=record.id,
            background=background,
        )
        return ImageResult(
            record=record,
            source=CacheSource.UPSTREAM,
            partition_key=partition_key,
            background_scheduled=background,
        )

    def _schedule_refresh(
        self, partition_key: str, filters: ImageFilters, scheduler: BackgroundScheduler
    ) -> str:
        name = "refresh_system"
        scheduler.schedule(
            lambda: self._refill_scheduler.refresh_system(partition_key, filters),
            name,
        )
        return name

    def _schedule_warm(
        self, partition_key: str, filters: ImageFilters, scheduler: BackgroundScheduler
    ) -> str:
        name = "warm_cold_partition"
        scheduler.schedule(
            lambda: self._refill_scheduler.warm_cold_partition(partition_key, filters),
            name,
        )
        return name

    def track_download(self, photo_id: str, scheduler: BackgroundScheduler) -> None:
        """Report a download to upstream as background work."""
        self._metrics.increment("downloads")
        scheduler.schedule(lambda: self._fetcher.track_download(photo_id), "track_download")

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    async def describe_status(self) -> StatusReport:
        """Snapshot of every partition. Reading status never creates a partition."""
        capacity = self._slot_cache.capacity
        now_ms = int(self._clock() * 1000)

        partitions = []
        for partition_key in await self._metadata_store.list_partitions():
            metadata = await self._metadata_store.peek(partition_key)
            if metadata is None:
                continue
            partitions.append(
                PartitionStatus(
                    partition_key=partition_key,
                    main=self._tier_status(metadata.main_tier, capacity),
                    buffer=self._tier_status(metadata.buffer_tier, capacity),
                    is_refilling=metadata.is_refilling,
                    last_refill_time=metadata.last_refill_time,
                    last_refill=self._relative_label(metadata.last_refill_time, now_ms),
                )
            )

        return StatusReport(
            capacity=capacity, partition_count=len(partitions), partitions=partitions
        )

    @staticmethod
    def _tier_status(state: TierState, capacity: int) -> TierStatus:
        return TierStatus(
            count=state.count,
            capacity=capacity,
            fill_percent=_round_half_up(state.count / capacity * 100),
            pointer=state.pointer,
        )

    @staticmethod
    def _relative_label(last_refill_time: int, now_ms: int) -> str:
        if not last_refill_time:
            return "never"
        minutes = _round_half_up(max(now_ms - last_refill_time, 0) / 60000)
        return f"{minutes} minutes ago"


def build_orchestrator(
    settings: Settings,
    store: KeyValueStore,
    fetcher: UpstreamFetcher,
    metrics: MetricsAccumulator,
) -> CacheOrchestrator:
    """Wire the engine components over a store and an upstream fetcher."""
    keys = StoreKeyLayout(settings.cache.CACHE_KEY_PREFIX)
    slot_cache = SlotCache(store, keys, settings.cache.CACHE_SLOT_CAPACITY)
    metadata_store = MetadataStore(store, keys, slot_cache)
    refill_scheduler = RefillScheduler(metadata_store, slot_cache, fetcher, metrics)
    return CacheOrchestrator(metadata_store, slot_cache, refill_scheduler, fetcher, metrics)
