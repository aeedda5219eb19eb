"""
Status Routes
=============

Operational endpoints:

- `GET /cache-status`       per-partition tier occupancy and refill state
- `GET /metrics`            request/cache/upstream counters (JSON)
- `GET /metrics/prometheus` Prometheus text exposition for scraping

PROMETHEUS SCRAPING:
--------------------
    scrape_configs:
      - job_name: 'photo-rotator'
        static_configs:
          - targets: ['localhost:8000']
        metrics_path: '/metrics/prometheus'
"""

from fastapi import APIRouter, Response

from src.application.api.dependencies import MetricsDep, OrchestratorDep
from src.core.logging.logger import get_logger
from src.photo_cache.models.status import StatusReport

logger = get_logger(__name__)

router = APIRouter(tags=["Status"])


@router.get("/cache-status", response_model=StatusReport)
async def cache_status(orchestrator: OrchestratorDep) -> StatusReport:
    """Tier counts, fill percentages, pointers and last refill per partition."""
    return await orchestrator.describe_status()


@router.get("/metrics")
async def metrics_snapshot(metrics: MetricsDep) -> dict:
    """
    Counters shared through the store plus this instance's unflushed deltas.

    Derived fields:
        cache_hit_rate: cache_hits / total_requests as "N%"
        average_api_calls_per_request: api_calls / total_requests
    """
    return await metrics.snapshot()


@router.get("/metrics/prometheus")
async def prometheus_metrics(metrics: MetricsDep):
    """Expose process-local metrics in Prometheus text format."""
    return Response(content=metrics.get_prometheus_metrics(), media_type=metrics.get_content_type())
