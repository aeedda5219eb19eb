"""
Buffer refill and buffer→main promotion.

Both operations are meant to run as deferred work after a response has been
sent. Each one reloads the partition's metadata from the store when it is not
handed a record, so a chain scheduled by one request acts on the state that
exists when the chain actually runs.

Concurrency:
    `is_refilling` is an advisory flag. Two callers can both observe it unset
    and refill the same partition concurrently; the second buffer write wins.
    The store offers no compare-and-swap, so this is accepted rather than
    prevented.
"""

import time
from collections.abc import Callable

from src.core.config.constants import CacheTier, Stage
from src.core.exceptions import BufferMissingError
from src.core.interfaces.upstream import UpstreamFetcher
from src.core.logging.logger import get_logger
from src.infrastructure.monitoring.metrics_collector import MetricsAccumulator
from src.photo_cache.models.filters import ImageFilters
from src.photo_cache.models.metadata import PartitionMetadata, TierState
from src.photo_cache.services.metadata_store import MetadataStore
from src.photo_cache.services.slot_cache import SlotCache

logger = get_logger(__name__)


class RefillScheduler:
    """
    Populates buffer tiers from upstream and promotes them into main.

    Chains:
        refresh_system:      promote → refill
        warm_cold_partition: refill → promote → refill
    """

    def __init__(
        self,
        metadata_store: MetadataStore,
        slot_cache: SlotCache,
        fetcher: UpstreamFetcher,
        metrics: MetricsAccumulator,
        clock: Callable[[], float] = time.time,
    ):
        self._metadata_store = metadata_store
        self._slot_cache = slot_cache
        self._fetcher = fetcher
        self._metrics = metrics
        self._clock = clock

    # -------------------------------------------------------------------------
    # Promotion
    # -------------------------------------------------------------------------

    async def promote(
        self, partition_key: str, metadata: PartitionMetadata | None = None
    ) -> PartitionMetadata:
        """
        Copy the buffer tier verbatim into main.

        Main's count becomes the buffer's count and main's pointer resets to 0.
        The buffer is left as-is; the next refill replaces it. Metadata is only
        written after the main array write succeeded.

        Raises:
            BufferMissingError: Buffer array absent from the store
            StoreError: Store read/write failed
        """
        metadata = metadata or await self._metadata_store.load(partition_key)

        buffer_slots = await self._slot_cache.read_tier(partition_key, CacheTier.BUFFER)
        if buffer_slots is None:
            raise BufferMissingError(
                "Buffer cache not found",
                details={"partition": partition_key},
            )

        await self._slot_cache.write_tier(partition_key, CacheTier.MAIN, buffer_slots)

        metadata.main_tier = TierState(count=metadata.buffer_tier.count, pointer=0)
        await self._metadata_store.save(partition_key, metadata)

        logger.info(
            "Buffer promoted to main",
            stage=Stage.PROMOTION.value,
            partition=partition_key,
            main_count=metadata.main_tier.count,
        )
        return metadata

    # -------------------------------------------------------------------------
    # Refill
    # -------------------------------------------------------------------------

    async def refill(
        self,
        partition_key: str,
        filters: ImageFilters,
        metadata: PartitionMetadata | None = None,
    ) -> PartitionMetadata:
        """
        Replace the buffer tier with a fresh full-capacity batch from upstream.

        No-op returning the metadata unchanged while `is_refilling` is set.
        On failure the flag is cleared and persisted before the error is
        re-raised; the buffer array is never partially overwritten.

        The closing metadata write starts from a fresh load and only touches
        the buffer tier, the flag and the refill time, so main-tier reads
        saved while the upstream call was in flight are kept.
        """
        metadata, _ = await self._refill(partition_key, filters, metadata)
        return metadata

    async def _refill(
        self,
        partition_key: str,
        filters: ImageFilters,
        metadata: PartitionMetadata | None,
    ) -> tuple[PartitionMetadata, bool]:
        metadata = metadata or await self._metadata_store.load(partition_key)

        if metadata.is_refilling:
            logger.info(
                "Refill already in progress, skipping",
                stage=Stage.REFILL.value,
                partition=partition_key,
            )
            return metadata, False

        metadata.is_refilling = True
        await self._metadata_store.save(partition_key, metadata)

        try:
            records = await self._fetcher.fetch_random(filters, self._slot_cache.capacity)
            self._metrics.increment("api_calls")

            records = records[: self._slot_cache.capacity]
            await self._slot_cache.write_tier(partition_key, CacheTier.BUFFER, records)

            # Requests may have taken from main during the fetch
            metadata = await self._metadata_store.load(partition_key)
            metadata.buffer_tier = TierState(count=len(records), pointer=0)
            metadata.is_refilling = False
            metadata.last_refill_time = int(self._clock() * 1000)
            await self._metadata_store.save(partition_key, metadata)
        except Exception as e:
            logger.error(
                "Refill failed",
                stage=Stage.REFILL.value,
                partition=partition_key,
                error_type=type(e).__name__,
                error=str(e),
            )
            metadata = await self._metadata_store.load(partition_key)
            metadata.is_refilling = False
            await self._metadata_store.save(partition_key, metadata)
            raise

        logger.info(
            "Buffer refill complete",
            stage=Stage.REFILL.value,
            partition=partition_key,
            buffer_count=metadata.buffer_tier.count,
        )
        return metadata, True

    # -------------------------------------------------------------------------
    # Chains
    # -------------------------------------------------------------------------

    async def refresh_system(self, partition_key: str, filters: ImageFilters) -> PartitionMetadata:
        """
        Promote buffer into main, then refill the buffer.

        Promotion is skipped when main already holds images by the time the
        chain runs (another request's chain promoted first); overwriting it
        again would re-serve images that were already handed out.
        """
        metadata = await self._metadata_store.load(partition_key)

        if metadata.main_tier.count == 0:
            metadata = await self.promote(partition_key, metadata)
        else:
            logger.info(
                "Main tier already populated, skipping promotion",
                stage=Stage.PROMOTION.value,
                partition=partition_key,
                main_count=metadata.main_tier.count,
            )

        return await self.refill(partition_key, filters, metadata)

    async def warm_cold_partition(
        self, partition_key: str, filters: ImageFilters
    ) -> PartitionMetadata:
        """
        Bring a cold partition to a warm main tier and a primed buffer.

        Stops after the first step if another refill already holds the flag;
        that refill's own chain is responsible for what follows.
        """
        metadata, refilled = await self._refill(partition_key, filters, None)
        if not refilled:
            return metadata

        metadata = await self.promote(partition_key, metadata)
        return await self.refill(partition_key, filters, metadata)
