"""
FastAPI Dependency Injection Module
===================================

Route handlers receive the application singletons through FastAPI's
dependency system instead of importing globals.

HOW IT WORKS:
-------------
The lifespan context manager (see `src.application.app`) builds the engine
once at startup and stores each component on `app.state`. The providers
below read them back from `request.app.state`:

    app.state.orchestrator  → CacheOrchestrator
    app.state.metrics       → MetricsAccumulator
    app.state.store         → KeyValueStore
    app.state.fetcher       → UpstreamFetcher (UnsplashClient in production)

Background work is scheduled per request: `get_background_scheduler`
wraps the request's Starlette `BackgroundTasks`, so promotion and refill
run after the response has been sent.

Example:
    @router.get("/random")
    async def random_image(orchestrator: OrchestratorDep, scheduler: SchedulerDep):
        result = await orchestrator.get_image(filters, False, scheduler)
"""

from typing import Annotated

from fastapi import BackgroundTasks, Depends, Request

from src.core.config.settings import Settings, get_settings
from src.core.interfaces.scheduler import BackgroundScheduler
from src.core.interfaces.store import KeyValueStore
from src.infrastructure.monitoring.metrics_collector import MetricsAccumulator
from src.photo_cache.services.background import FastAPIBackgroundScheduler
from src.photo_cache.services.cache_orchestrator import CacheOrchestrator

# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


def _from_state(request: Request, name: str):
    component = getattr(request.app.state, name, None)
    if component is None:
        raise RuntimeError(
            f"'{name}' not initialized in app.state. "
            "This indicates the application lifespan startup didn't complete properly."
        )
    return component


def get_orchestrator(request: Request) -> CacheOrchestrator:
    """Retrieve the CacheOrchestrator singleton from application state."""
    return _from_state(request, "orchestrator")


def get_metrics(request: Request) -> MetricsAccumulator:
    return _from_state(request, "metrics")


def get_store(request: Request) -> KeyValueStore:
    return _from_state(request, "store")


def get_background_scheduler(
    background_tasks: BackgroundTasks,
    metrics: Annotated[MetricsAccumulator, Depends(get_metrics)],
) -> BackgroundScheduler:
    """
    Scheduler bound to this request's BackgroundTasks.

    FastAPI hands every dependency asking for `BackgroundTasks` the same
    instance it runs after the response, so jobs scheduled here run once the
    client has its image.
    """
    return FastAPIBackgroundScheduler(background_tasks, metrics)


# ============================================================================
# TYPE ALIASES FOR CLEANER ROUTE SIGNATURES
# ============================================================================

OrchestratorDep = Annotated[CacheOrchestrator, Depends(get_orchestrator)]

MetricsDep = Annotated[MetricsAccumulator, Depends(get_metrics)]

StoreDep = Annotated[KeyValueStore, Depends(get_store)]

SchedulerDep = Annotated[BackgroundScheduler, Depends(get_background_scheduler)]

SettingsDep = Annotated[Settings, Depends(get_settings)]
