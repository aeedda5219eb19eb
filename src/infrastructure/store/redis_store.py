"""
Redis Key-Value Store with Connection Pooling

Architecture:
    RedisKeyValueStore (Public API, implements KeyValueStore)
        ├── ConnectionManager (Connection lifecycle, startup retry)
        ├── OperationExecutor (Command execution with error handling)
        └── HealthMonitor (Health checks and pool metrics)

Values are raw bytes (`decode_responses=False`); serialization belongs to the
callers. Keys are listed with `SCAN MATCH prefix*`, never `KEYS`.
"""

import time
from typing import Any

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import ConnectionError, RedisError, TimeoutError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from src.core.config.constants import Stage
from src.core.config.settings import Settings, get_settings
from src.core.exceptions import StoreConnectionError, StoreOperationError
from src.core.logging.logger import get_logger

logger = get_logger(__name__)


# =============================================================================
# LAYER 1: CONNECTION MANAGEMENT
# =============================================================================


class ConnectionManager:
    """
    Manages Redis connection lifecycle and pooling.

    Connection establishment is retried with exponential backoff and jitter,
    so the service survives Redis starting a few seconds after it. Only
    startup is retried; individual commands fail fast.
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._pool: ConnectionPool | None = None
        self._client: redis.Redis | None = None
        self._is_connected = False

    async def connect(self) -> redis.Redis:
        """
        Establish connection to Redis with connection pooling.

        Raises:
            StoreConnectionError: If every attempt fails
        """
        if self._is_connected and self._client:
            return self._client

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._settings.redis.REDIS_CONNECT_ATTEMPTS),
            wait=wait_exponential_jitter(initial=0.5, max=5.0),
            retry=retry_if_exception_type(StoreConnectionError),
            reraise=True,
        ):
            with attempt:
                await self._connect_once()

        return self._client

    async def _connect_once(self) -> None:
        redis_settings = self._settings.redis
        try:
            self._pool = ConnectionPool(
                host=redis_settings.REDIS_HOST,
                port=redis_settings.REDIS_PORT,
                db=redis_settings.REDIS_DB,
                password=redis_settings.REDIS_PASSWORD,
                max_connections=redis_settings.REDIS_MAX_CONNECTIONS,
                socket_connect_timeout=redis_settings.REDIS_SOCKET_CONNECT_TIMEOUT,
                socket_timeout=redis_settings.REDIS_SOCKET_TIMEOUT,
                retry_on_timeout=True,
                health_check_interval=redis_settings.REDIS_HEALTH_CHECK_INTERVAL,
                decode_responses=False,
            )
            self._client = redis.Redis(connection_pool=self._pool)
            await self._client.ping()
        except (ConnectionError, TimeoutError) as e:
            logger.warning(
                "Redis connection attempt failed",
                stage=Stage.STORE.value,
                host=redis_settings.REDIS_HOST,
                port=redis_settings.REDIS_PORT,
                error=str(e),
            )
            await self._release()
            raise StoreConnectionError(
                message=f"Failed to connect to Redis: {e}",
                details={"host": redis_settings.REDIS_HOST, "port": redis_settings.REDIS_PORT},
            ) from e

        self._is_connected = True
        logger.info(
            "Redis connected successfully",
            stage=Stage.STORE.value,
            host=redis_settings.REDIS_HOST,
            port=redis_settings.REDIS_PORT,
            max_connections=redis_settings.REDIS_MAX_CONNECTIONS,
        )

    async def _release(self) -> None:
        if self._client:
            await self._client.aclose()
        if self._pool:
            await self._pool.disconnect()
        self._client = None
        self._pool = None

    async def disconnect(self) -> None:
        await self._release()
        self._is_connected = False
        logger.info("Redis disconnected", stage=Stage.STORE.value)

    def get_client(self) -> redis.Redis | None:
        return self._client

    def get_pool(self) -> ConnectionPool | None:
        return self._pool

    def is_connected(self) -> bool:
        return self._is_connected


# =============================================================================
# LAYER 2: OPERATION EXECUTOR
# =============================================================================


class OperationExecutor:
    """
    Executes Redis operations with consistent error handling.

    Every RedisError is logged with its key and re-raised as
    StoreOperationError.
    """

    def __init__(self, redis_client: redis.Redis):
        self._redis = redis_client

    async def get(self, key: str) -> bytes | None:
        try:
            return await self._redis.get(key)
        except RedisError as e:
            logger.error("Redis GET failed", stage=Stage.STORE.value, key=key, error=str(e))
            raise StoreOperationError(
                message=f"Redis GET failed: {e}", details={"key": key}
            ) from e

    async def set(self, key: str, value: bytes) -> None:
        try:
            await self._redis.set(key, value)
        except RedisError as e:
            logger.error("Redis SET failed", stage=Stage.STORE.value, key=key, error=str(e))
            raise StoreOperationError(
                message=f"Redis SET failed: {e}", details={"key": key}
            ) from e

    async def scan_prefix(self, prefix: str) -> list[str]:
        try:
            keys = [key async for key in self._redis.scan_iter(match=f"{prefix}*", count=500)]
        except RedisError as e:
            logger.error("Redis SCAN failed", stage=Stage.STORE.value, prefix=prefix, error=str(e))
            raise StoreOperationError(
                message=f"Redis SCAN failed: {e}", details={"prefix": prefix}
            ) from e
        return [key.decode() if isinstance(key, bytes) else key for key in keys]


# =============================================================================
# LAYER 3: HEALTH MONITORING
# =============================================================================


class HealthMonitor:
    """Ping latency and connection pool utilization."""

    def __init__(self, connection_manager: ConnectionManager, settings: Settings):
        self._conn_mgr = connection_manager
        self._settings = settings

    async def health_check(self) -> dict[str, Any]:
        health = {
            "status": "healthy",
            "backend": "redis",
            "connected": self._conn_mgr.is_connected(),
            "host": self._settings.redis.REDIS_HOST,
            "port": self._settings.redis.REDIS_PORT,
            "pool_size": 0,
            "pool_utilization_pct": 0,
            "ping_latency_ms": None,
        }

        client = self._conn_mgr.get_client()
        if not client:
            health["status"] = "unhealthy"
            health["error"] = "Client not initialized"
            return health

        try:
            start = time.perf_counter()
            await client.ping()
            health["ping_latency_ms"] = round((time.perf_counter() - start) * 1000, 2)
        except RedisError as e:
            health["status"] = "unhealthy"
            health["error"] = str(e)
            return health

        pool = self._conn_mgr.get_pool()
        if pool and hasattr(pool, "_available_connections"):
            health["pool_size"] = pool.max_connections
            in_use = pool.max_connections - len(pool._available_connections)
            health["pool_utilization_pct"] = round(100.0 * in_use / pool.max_connections, 1)

        return health


# =============================================================================
# LAYER 4: PUBLIC API
# =============================================================================


class RedisKeyValueStore:
    """
    Redis-backed `KeyValueStore`.

    Usage:
        store = RedisKeyValueStore()
        await store.connect()
        await store.put("photocache:partition:default:meta", b"{...}")
        raw = await store.get("photocache:partition:default:meta")
        await store.disconnect()
    """

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or get_settings()
        self._conn_mgr = ConnectionManager(self._settings)
        self._executor: OperationExecutor | None = None
        self._health_monitor = HealthMonitor(self._conn_mgr, self._settings)

    async def connect(self) -> None:
        client = await self._conn_mgr.connect()
        self._executor = OperationExecutor(client)

    async def disconnect(self) -> None:
        await self._conn_mgr.disconnect()
        self._executor = None

    def _ensure_connected(self) -> OperationExecutor:
        if self._executor is None:
            raise StoreConnectionError("Redis store is not connected")
        return self._executor

    async def get(self, key: str) -> bytes | None:
        return await self._ensure_connected().get(key)

    async def put(self, key: str, value: bytes) -> None:
        await self._ensure_connected().set(key, value)

    async def list(self, prefix: str) -> list[str]:
        return await self._ensure_connected().scan_prefix(prefix)

    async def health_check(self) -> dict[str, Any]:
        return await self._health_monitor.health_check()
