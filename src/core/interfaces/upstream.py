"""
Upstream Fetcher Protocol

The cache engine only needs two capabilities from the photo provider: a batch
of random images for a filter set, and download tracking.
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from src.photo_cache.models.filters import ImageFilters
    from src.photo_cache.models.image_record import ImageRecord


@runtime_checkable
class UpstreamFetcher(Protocol):
    """
    Protocol for random-image providers.

    Implementations:
    - UnsplashClient: httpx-based Unsplash API client
    """

    async def fetch_random(self, filters: "ImageFilters", count: int) -> list["ImageRecord"]:
        """
        Fetch up to `count` random images matching filters.

        Raises:
            UpstreamError: On non-success status or transport failure
            CircuitBreakerOpenError: While the provider is failing fast
        """
        ...

    async def track_download(self, photo_id: str) -> bool:
        """Report a download to the provider. Never raises."""
        ...
