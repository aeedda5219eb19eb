#!/usr/bin/env python3
"""
FastAPI Application Entry Point

Configures the photo rotator service: lifespan wiring of the cache engine,
middleware, exception handlers and routes.
"""

import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from src.application.api.middleware.error_handler import (
    ErrorHandlingMiddleware,
    register_exception_handlers,
)
from src.application.api.routes.health import router as health_router
from src.application.api.routes.images import router as images_router
from src.application.api.routes.status import router as status_router
from src.core.config.constants import HEADER_CACHE_SOURCE, HEADER_PARTITION_KEY, HEADER_THREAD_ID, Stage
from src.core.config.settings import Settings, get_settings
from src.core.interfaces.store import KeyValueStore
from src.core.interfaces.upstream import UpstreamFetcher
from src.core.logging.logger import clear_thread_id, get_logger, set_thread_id, setup_logging
from src.core.resilience.circuit_breaker import CircuitBreaker
from src.infrastructure.monitoring.metrics_collector import MetricsAccumulator
from src.infrastructure.store.factory import create_store
from src.infrastructure.upstream.unsplash_client import UnsplashClient, UnsplashConfig
from src.photo_cache.services.cache_key import StoreKeyLayout
from src.photo_cache.services.cache_orchestrator import build_orchestrator

logger = get_logger(__name__)


# ============================================================================
# Application Lifespan
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle (startup and shutdown).

    A store or fetcher placed on `app.state` before startup is used as-is
    and left open on shutdown; whatever the lifespan creates, it closes.
    """
    settings: Settings = app.state.settings

    setup_logging(log_level=settings.logging.LOG_LEVEL, log_format=settings.logging.LOG_FORMAT)

    logger.info(
        "Starting Photo Rotator",
        stage=Stage.INITIALIZATION.value,
        environment=settings.app.ENVIRONMENT,
        version=settings.app.APP_VERSION,
        store_backend=settings.cache.STORE_BACKEND,
    )

    owned_store: KeyValueStore | None = None
    owned_fetcher: UnsplashClient | None = None
    metrics: MetricsAccumulator | None = None

    try:
        store = getattr(app.state, "store", None)
        if store is None:
            owned_store = store = create_store(settings)
            await store.connect()
            app.state.store = store
        logger.info("Store connected", stage=Stage.INITIALIZATION.value)

        metrics = MetricsAccumulator(
            store,
            StoreKeyLayout(settings.cache.CACHE_KEY_PREFIX).metrics(),
            flush_interval=settings.metrics.METRICS_FLUSH_INTERVAL,
        )
        app.state.metrics = metrics

        fetcher: UpstreamFetcher | None = getattr(app.state, "fetcher", None)
        if fetcher is None:
            breaker = CircuitBreaker(
                "unsplash",
                failure_threshold=settings.circuit_breaker.CB_FAILURE_THRESHOLD,
                recovery_timeout=settings.circuit_breaker.CB_RECOVERY_TIMEOUT,
            )
            owned_fetcher = UnsplashClient(UnsplashConfig.from_settings(settings), breaker=breaker)
            await owned_fetcher.connect()
            fetcher = app.state.fetcher = owned_fetcher

        app.state.orchestrator = build_orchestrator(settings, store, fetcher, metrics)
        logger.info(
            "Cache orchestrator ready",
            stage=Stage.INITIALIZATION.value,
            capacity=settings.cache.CACHE_SLOT_CAPACITY,
        )

        logger.info("Application startup complete", stage=Stage.INITIALIZATION.value)

        yield

    finally:
        logger.info("Shutting down application")

        if metrics is not None:
            await metrics.close()
        if owned_fetcher is not None:
            await owned_fetcher.close()
            app.state.fetcher = None
        if owned_store is not None:
            await owned_store.disconnect()
            app.state.store = None

        logger.info("Application shutdown complete")


# ============================================================================
# Middleware
# ============================================================================


async def thread_id_middleware(request: Request, call_next):
    """
    Inject thread ID into all requests for correlation.
    """
    thread_id = request.headers.get(HEADER_THREAD_ID) or str(uuid.uuid4())
    set_thread_id(thread_id)

    try:
        response = await call_next(request)
        response.headers[HEADER_THREAD_ID] = thread_id
        return response
    finally:
        clear_thread_id()


# ============================================================================
# Application Factory
# ============================================================================


def create_app(
    settings: Settings | None = None,
    store: KeyValueStore | None = None,
    fetcher: UpstreamFetcher | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Defaults to the global settings
        store: Pre-built store (tests); created from settings when omitted
        fetcher: Pre-built upstream fetcher (tests); Unsplash client when omitted
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app.APP_NAME,
        version=settings.app.APP_VERSION,
        description="Rotating two-tier photo cache over the Unsplash API",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.store = store
    app.state.fetcher = fetcher

    # Middleware runs in reverse registration order: the thread id is set
    # first, so errors caught below are logged with it.
    app.add_middleware(
        ErrorHandlingMiddleware,
        include_traceback=(settings.app.ENVIRONMENT == "development"),
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.app.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[HEADER_THREAD_ID, HEADER_CACHE_SOURCE, HEADER_PARTITION_KEY],
    )
    app.middleware("http")(thread_id_middleware)

    register_exception_handlers(app)

    base_path = settings.app.API_BASE_PATH
    app.include_router(health_router, prefix=base_path)
    app.include_router(images_router, prefix=base_path)
    app.include_router(status_router, prefix=base_path)

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.app.APP_NAME,
            "version": settings.app.APP_VERSION,
            "environment": settings.app.ENVIRONMENT,
            "docs": "/docs",
            "random": f"{base_path}/random",
            "health": f"{base_path}/health",
        }

    return app


# ============================================================================
# Main Entry Point
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "src.application.app:create_app",
        factory=True,
        host=settings.app.API_HOST,
        port=settings.app.API_PORT,
        reload=settings.app.ENVIRONMENT == "development",
        log_level=settings.logging.LOG_LEVEL.lower(),
    )
