"""
Unsplash HTTP Client
====================

Asynchronous client for the two Unsplash endpoints the cache engine uses:

- `GET /photos/random` returns random photos for a filter set
- `GET /photos/{id}/download` reports a download, as the API guidelines
  require whenever a photo is downloaded

ARCHITECTURAL CONTEXT
---------------------
```
CacheOrchestrator / RefillScheduler → [UnsplashClient] → api.unsplash.com
                                              ↓
                                      [CircuitBreaker]
                                       (in-process)
```

KEY DESIGN DECISIONS
--------------------

1. **No retries**
   A failed live fetch is surfaced to the caller, and a failed refill leaves
   the buffer untouched until the next trigger. Retrying inline would only
   hold the request open against a provider that is rate limiting us.

2. **Circuit breaker on random fetches only**
   Download tracking is best-effort; its failures are logged and must not
   stop the cache from being refilled.

3. **Explicit exception types by status**
   429 → UpstreamRateLimitError, 401/403 → UpstreamAuthError,
   5xx → UpstreamServerError, timeout → UpstreamTimeoutError,
   other transport failure → UpstreamConnectionError.

USAGE
-----
```python
async with UnsplashClient(UnsplashConfig.from_settings(settings)) as client:
    records = await client.fetch_random(ImageFilters(orientation="landscape"), 30)
```
"""

from __future__ import annotations

import math
from typing import Any

import httpx
from pydantic import BaseModel, Field

from src.core.config.constants import (
    UNSPLASH_API_VERSION,
    UNSPLASH_DOWNLOAD_PATH,
    UNSPLASH_MAX_BATCH,
    UNSPLASH_RANDOM_PATH,
    Stage,
)
from src.core.config.settings import Settings
from src.core.exceptions import (
    UpstreamAuthError,
    UpstreamConnectionError,
    UpstreamError,
    UpstreamRateLimitError,
    UpstreamResponseError,
    UpstreamServerError,
    UpstreamTimeoutError,
)
from src.core.logging import get_logger
from src.core.resilience.circuit_breaker import CircuitBreaker
from src.photo_cache.models.filters import ImageFilters
from src.photo_cache.models.image_record import ImageRecord

logger = get_logger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================


class UnsplashConfig(BaseModel):
    """
    Configuration for the Unsplash client.

    Attributes:
        access_key: Public access key sent as `Authorization: Client-ID ...`
        base_url: API root
        timeout: Per-request timeout in seconds
        max_connections: HTTP connection pool size
    """

    model_config = {"frozen": True}

    access_key: str | None = Field(default=None, description="Unsplash access key")
    base_url: str = Field(default="https://api.unsplash.com", description="API root URL")
    timeout: float = Field(default=10.0, gt=0, le=60, description="Request timeout in seconds")
    max_connections: int = Field(default=20, ge=1, le=200, description="HTTP pool size")

    @classmethod
    def from_settings(cls, settings: Settings) -> UnsplashConfig:
        upstream = settings.upstream
        return cls(
            access_key=upstream.UNSPLASH_ACCESS_KEY,
            base_url=upstream.UNSPLASH_BASE_URL.rstrip("/"),
            timeout=upstream.UNSPLASH_TIMEOUT,
            max_connections=upstream.UNSPLASH_MAX_CONNECTIONS,
        )


def _error_for_status(response: httpx.Response) -> UpstreamError:
    status = response.status_code
    details = {"path": response.request.url.path, "body": response.text[:300]}

    if status == 429:
        return UpstreamRateLimitError("Rate limit exceeded", status_code=status, details=details)
    if status in (401, 403):
        return UpstreamAuthError(
            f"Unsplash rejected credentials (HTTP {status})", status_code=status, details=details
        )
    if status >= 500:
        return UpstreamServerError(
            f"Unsplash API error: HTTP {status}", status_code=status, details=details
        )
    return UpstreamError(f"Unsplash API error: HTTP {status}", status_code=status, details=details)


# =============================================================================
# CLIENT
# =============================================================================


class UnsplashClient:
    """
    Unsplash API client implementing `UpstreamFetcher`.

    Must be connected (`connect()` or `async with`) before use.

    Attributes:
        config: Validated configuration
        breaker: Circuit breaker guarding random fetches
    """

    def __init__(
        self,
        config: UnsplashConfig | None = None,
        breaker: CircuitBreaker | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or UnsplashConfig()
        self.breaker = breaker or CircuitBreaker("unsplash")
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        if self._client is not None:
            return

        if not self.config.access_key:
            logger.warning(
                "UNSPLASH_ACCESS_KEY not set, upstream calls will be rejected",
                stage=Stage.INITIALIZATION.value,
            )

        headers = {"Accept-Version": UNSPLASH_API_VERSION}
        if self.config.access_key:
            headers["Authorization"] = f"Client-ID {self.config.access_key}"

        self._client = httpx.AsyncClient(
            base_url=self.config.base_url,
            headers=headers,
            timeout=httpx.Timeout(self.config.timeout),
            limits=httpx.Limits(
                max_connections=self.config.max_connections,
                max_keepalive_connections=max(self.config.max_connections // 2, 1),
            ),
            transport=self._transport,
        )
        logger.info(
            "Unsplash client initialized",
            stage=Stage.INITIALIZATION.value,
            base_url=self.config.base_url,
            timeout=self.config.timeout,
        )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            logger.debug("Unsplash client closed")
        self._client = None

    async def __aenter__(self) -> UnsplashClient:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _ensure_client_initialized(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "UnsplashClient not initialized. Call connect() or use "
                "'async with UnsplashClient() as client:'."
            )
        return self._client

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        client = self._ensure_client_initialized()
        try:
            response = await client.get(path, params=params)
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(
                f"Unsplash request timed out after {self.config.timeout}s",
                details={"path": path, "original_error": str(e)},
            ) from e
        except httpx.TransportError as e:
            raise UpstreamConnectionError.from_exception(
                e, message=f"Cannot connect to Unsplash at {self.config.base_url}", path=path
            ) from e

        if not response.is_success:
            raise _error_for_status(response)

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamResponseError.from_exception(
                e, message="Unsplash returned a non-JSON body", path=path
            ) from e

    # -------------------------------------------------------------------------
    # Random photos
    # -------------------------------------------------------------------------

    async def fetch_random(self, filters: ImageFilters, count: int) -> list[ImageRecord]:
        """
        Fetch up to `count` random photos matching the filters.

        Requests are split into batches of at most 30, the endpoint's limit.

        Raises:
            UpstreamError: Non-2xx response or transport failure
            CircuitBreakerOpenError: Provider is failing fast
        """
        if count <= 0:
            return []

        records: list[ImageRecord] = []
        for batch in range(math.ceil(count / UNSPLASH_MAX_BATCH)):
            batch_size = min(UNSPLASH_MAX_BATCH, count - batch * UNSPLASH_MAX_BATCH)
            records.extend(await self.breaker.call(self._fetch_batch, filters, batch_size))

        logger.info(
            "Fetched random photos",
            stage=Stage.LIVE_FETCH.value,
            requested=count,
            received=len(records),
            **filters.upstream_params(),
        )
        return records

    async def _fetch_batch(self, filters: ImageFilters, count: int) -> list[ImageRecord]:
        params: dict[str, Any] = {"count": count, **filters.upstream_params()}
        payload = await self._get(UNSPLASH_RANDOM_PATH, params)

        # Without `count` the endpoint returns a single object
        items = payload if isinstance(payload, list) else [payload]
        try:
            return [ImageRecord.from_upstream(item) for item in items]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise UpstreamResponseError.from_exception(
                e, message="Unsplash returned an unexpected photo payload"
            ) from e

    # -------------------------------------------------------------------------
    # Download tracking
    # -------------------------------------------------------------------------

    async def track_download(self, photo_id: str) -> bool:
        """
        Report a download. Never raises.

        Returns:
            True when Unsplash acknowledged the download
        """
        path = UNSPLASH_DOWNLOAD_PATH.format(photo_id=photo_id)
        try:
            await self._get(path)
        except (UpstreamError, RuntimeError) as e:
            logger.warning(
                "Download tracking failed",
                stage=Stage.DOWNLOAD_TRACKING.value,
                photo_id=photo_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            return False

        logger.info("Download tracked", stage=Stage.DOWNLOAD_TRACKING.value, photo_id=photo_id)
        return True
