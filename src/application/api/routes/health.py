"""
Health Check Routes
===================

- `GET /health`      store reachability and upstream circuit state; 503 when
                     the store is unhealthy so load balancers drop the instance
- `GET /health/live` liveness probe, never touches dependencies
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from src.application.api.dependencies import StoreDep
from src.core.logging.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str  # "healthy" or "unhealthy"
    timestamp: str  # ISO 8601
    components: dict | None = None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@router.get("", response_model=HealthResponse)
async def health_check(request: Request, store: StoreDep):
    """Readiness: ping the store, report the upstream circuit."""
    store_health = await store.health_check()
    components = {"store": store_health}

    fetcher = getattr(request.app.state, "fetcher", None)
    breaker = getattr(fetcher, "breaker", None)
    if breaker is not None:
        components["upstream_circuit"] = breaker.get_stats()

    healthy = store_health.get("status") == "healthy"
    body = HealthResponse(
        status="healthy" if healthy else "unhealthy",
        timestamp=_now(),
        components=components,
    )
    if not healthy:
        logger.warning("Health check failed", components=components)
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body.model_dump())
    return body


@router.get("/live", response_model=HealthResponse)
async def liveness_probe():
    return HealthResponse(status="healthy", timestamp=_now())
