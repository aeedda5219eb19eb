#!/usr/bin/env python3
"""
Metrics Accumulator with Prometheus Integration

Counts cache engine events two ways:
- Prometheus counters, for scraping (process-local)
- A durable snapshot in the key-value store, shared by every instance that
  points at the same store and served by the /metrics endpoint

Increments are synchronous and only touch memory. Pending deltas are merged
into the stored snapshot by a timer task (and on shutdown), so a burst of
requests costs one store round-trip instead of one per event.

Architectural Decision: batched read-merge-write instead of per-event writes
- The store has no atomic increment in its protocol
- Concurrent flushes from several instances can lose deltas; the snapshot is
  an operational signal, not an accounting ledger
"""

import asyncio
from typing import Any

import orjson
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, Counter, Gauge, generate_latest

from src.core.config.constants import Stage
from src.core.exceptions import StoreError
from src.core.interfaces.store import KeyValueStore
from src.core.logging.logger import get_logger

logger = get_logger(__name__)


METRIC_FIELDS = (
    "total_requests",
    "cache_hits",
    "cache_misses",
    "main_cache_hits",
    "buffer_cache_hits",
    "api_calls",
    "downloads",
    "errors",
    "cold_starts",
    "desync_repairs",
    "background_failures",
)

# ============================================================================
# Metric Definitions
# ============================================================================

CACHE_EVENTS = Counter(
    'photocache_events_total',
    'Photo cache engine events',
    ['event']
)

CIRCUIT_BREAKER_STATE = Gauge(
    'photocache_circuit_breaker_state',
    'Circuit breaker state (0=closed, 1=half_open, 2=open)',
    ['name']
)


class MetricsAccumulator:
    """
    Batched event counters.

    STAGE-M: Metrics collection

    Usage:
        metrics = MetricsAccumulator(store, "photocache:metrics", flush_interval=2.0)
        metrics.increment("total_requests")
        snapshot = await metrics.snapshot()
        await metrics.close()
    """

    def __init__(self, store: KeyValueStore, key: str, flush_interval: float = 2.0):
        self._store = store
        self._key = key
        self._flush_interval = flush_interval
        self._pending: dict[str, int] = {}
        self._lock = asyncio.Lock()
        self._flush_task: asyncio.Task | None = None

    @property
    def pending(self) -> dict[str, int]:
        return dict(self._pending)

    def increment(self, field: str, amount: int = 1) -> None:
        """
        Count an event.

        Schedules a flush when called with a running event loop and none is
        scheduled yet.

        Raises:
            ValueError: Unknown metric field
        """
        if field not in METRIC_FIELDS:
            raise ValueError(f"Unknown metric field: {field}")

        self._pending[field] = self._pending.get(field, 0) + amount
        CACHE_EVENTS.labels(event=field).inc(amount)

        if self._flush_task is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                return
            self._flush_task = loop.create_task(self._scheduled_flush())

    async def _scheduled_flush(self) -> None:
        try:
            await asyncio.sleep(self._flush_interval)
            await self.flush()
        finally:
            self._flush_task = None

    async def _read_persisted(self) -> dict[str, int]:
        raw = await self._store.get(self._key)
        if raw is None:
            return {}
        try:
            data = orjson.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("metrics snapshot is not an object")
            return {field: int(data.get(field, 0)) for field in METRIC_FIELDS}
        except (ValueError, TypeError) as e:
            logger.warning(
                "Discarding undecodable metrics snapshot",
                stage=Stage.METRICS.value,
                error=str(e),
            )
            return {}

    async def flush(self) -> bool:
        """
        Merge pending deltas into the stored snapshot.

        Returns:
            False when the store failed; the deltas stay pending, as they
            do when the flush is cancelled part way
        """
        async with self._lock:
            if not self._pending:
                return True

            deltas, self._pending = self._pending, {}
            written = False
            try:
                persisted = await self._read_persisted()
                for field, amount in deltas.items():
                    persisted[field] = persisted.get(field, 0) + amount
                await self._store.put(self._key, orjson.dumps(persisted))
                written = True
            except StoreError as e:
                logger.warning(
                    "Metrics flush failed, keeping deltas",
                    stage=Stage.METRICS.value,
                    error=str(e),
                    pending=len(deltas),
                )
                return False
            finally:
                # Unwritten deltas go back to pending, cancellation included
                if not written:
                    for field, amount in deltas.items():
                        self._pending[field] = self._pending.get(field, 0) + amount

        logger.debug("Metrics flushed", stage=Stage.METRICS.value, fields=len(deltas))
        return True

    async def snapshot(self) -> dict[str, Any]:
        """
        Persisted totals plus pending deltas, with derived rates.

        Raises:
            StoreError: Snapshot could not be read
        """
        totals = {field: 0 for field in METRIC_FIELDS}
        for field, amount in (await self._read_persisted()).items():
            totals[field] += amount
        for field, amount in self._pending.items():
            totals[field] += amount

        requests = totals["total_requests"]
        hit_rate = int(totals["cache_hits"] / requests * 100 + 0.5) if requests else 0
        return {
            **totals,
            "cache_hit_rate": f"{hit_rate}%",
            "average_api_calls_per_request": (
                round(totals["api_calls"] / requests, 4) if requests else 0
            ),
        }

    async def close(self) -> None:
        """Cancel the timer and flush whatever is pending."""
        if self._flush_task is not None:
            self._flush_task.cancel()
            try:
                await self._flush_task
            except asyncio.CancelledError:
                pass
            self._flush_task = None
        await self.flush()

    # =========================================================================
    # Export
    # =========================================================================

    @staticmethod
    def get_prometheus_metrics() -> bytes:
        """Prometheus text format for the process registry."""
        return generate_latest(REGISTRY)

    @staticmethod
    def get_content_type() -> str:
        return CONTENT_TYPE_LATEST
