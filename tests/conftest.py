"""
Pytest Configuration and Shared Fixtures

Provides the building blocks every layer's tests share:
- an in-memory key-value store
- a controllable upstream fetcher
- a scheduler that records background jobs instead of running them
- the cache engine wired over those, at a small slot capacity
- a TestClient over the full application
"""

import os
import sys
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

# Add project root to Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.application.app import create_app  # noqa: E402
from src.core.config.settings import Settings  # noqa: E402
from src.infrastructure.monitoring.metrics_collector import MetricsAccumulator  # noqa: E402
from src.infrastructure.store.memory_store import InMemoryKeyValueStore  # noqa: E402
from src.photo_cache.services.cache_key import StoreKeyLayout  # noqa: E402
from src.photo_cache.services.cache_orchestrator import CacheOrchestrator  # noqa: E402
from src.photo_cache.services.metadata_store import MetadataStore  # noqa: E402
from src.photo_cache.services.refill_scheduler import RefillScheduler  # noqa: E402
from src.photo_cache.services.slot_cache import SlotCache  # noqa: E402
from test_fixtures import ImageFactory  # noqa: E402

TEST_CAPACITY = 5
TEST_PREFIX = "test"

# ============================================================================
# Test Doubles
# ============================================================================


class FakeClock:
    """Settable wall clock in seconds."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeFetcher:
    """
    Upstream fetcher returning fresh, uniquely numbered records.

    Attributes:
        calls: (filters, count) for every fetch_random call
        downloads: photo ids passed to track_download
        error: Raised by fetch_random when set
        max_results: Caps how many records a fetch returns when set
    """

    def __init__(self):
        self.calls = []
        self.downloads = []
        self.error: Exception | None = None
        self.max_results: int | None = None
        self._next_index = 0

    async def fetch_random(self, filters, count):
        self.calls.append((filters, count))
        if self.error is not None:
            raise self.error
        if self.max_results is not None:
            count = min(count, self.max_results)
        records = ImageFactory.records(count, start=self._next_index)
        self._next_index += count
        return records

    async def track_download(self, photo_id):
        self.downloads.append(photo_id)
        return True


class RecordingScheduler:
    """Collects scheduled jobs; `run_all` executes them in order, including jobs they schedule."""

    def __init__(self):
        self.jobs = []

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.jobs]

    def schedule(self, job, name):
        self.jobs.append((name, job))

    async def run_all(self):
        while self.jobs:
            _, job = self.jobs.pop(0)
            await job()


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def test_settings():
    """Real settings with a memory store and a small capacity."""
    return Settings(
        STORE_BACKEND="memory",
        CACHE_SLOT_CAPACITY=TEST_CAPACITY,
        CACHE_KEY_PREFIX=TEST_PREFIX,
        METRICS_FLUSH_INTERVAL=60.0,
        LOG_FORMAT="console",
        ENVIRONMENT="development",
    )


@pytest.fixture
def mock_settings():
    """
    Mock Settings object for components that only read a few values.
    """
    settings = MagicMock(spec=Settings)

    settings.cache.STORE_BACKEND = "memory"
    settings.cache.CACHE_SLOT_CAPACITY = TEST_CAPACITY
    settings.cache.CACHE_KEY_PREFIX = TEST_PREFIX

    settings.redis.REDIS_HOST = "localhost"
    settings.redis.REDIS_PORT = 6379
    settings.redis.REDIS_CONNECT_ATTEMPTS = 2

    settings.upstream.UNSPLASH_ACCESS_KEY = "test-access-key"
    settings.upstream.UNSPLASH_BASE_URL = "https://api.unsplash.test/"
    settings.upstream.UNSPLASH_TIMEOUT = 5.0
    settings.upstream.UNSPLASH_MAX_CONNECTIONS = 10

    return settings


# ============================================================================
# Engine Fixtures
# ============================================================================


@pytest.fixture
def memory_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()


@pytest.fixture
def recording_scheduler():
    return RecordingScheduler()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def key_layout():
    return StoreKeyLayout(TEST_PREFIX)


@pytest.fixture
async def metrics(memory_store, key_layout):
    """Accumulator with a long flush interval; tests flush explicitly."""
    accumulator = MetricsAccumulator(memory_store, key_layout.metrics(), flush_interval=60.0)
    yield accumulator
    await accumulator.close()


@pytest.fixture
def slot_cache(memory_store, key_layout):
    return SlotCache(memory_store, key_layout, capacity=TEST_CAPACITY)


@pytest.fixture
def metadata_store(memory_store, key_layout, slot_cache):
    return MetadataStore(memory_store, key_layout, slot_cache)


@pytest.fixture
def refill_scheduler(metadata_store, slot_cache, fake_fetcher, metrics, clock):
    return RefillScheduler(metadata_store, slot_cache, fake_fetcher, metrics, clock=clock)


@pytest.fixture
def orchestrator(metadata_store, slot_cache, refill_scheduler, fake_fetcher, metrics, clock):
    return CacheOrchestrator(
        metadata_store, slot_cache, refill_scheduler, fake_fetcher, metrics, clock=clock
    )


# ============================================================================
# Application Fixtures
# ============================================================================


@pytest.fixture
def app_store():
    """Store handed to the application; tests inspect it after requests."""
    return InMemoryKeyValueStore()


@pytest.fixture
def app_client(test_settings, app_store, fake_fetcher):
    """
    TestClient over the full app with injected store and fetcher.

    Starlette runs background tasks before the client call returns, so
    refills scheduled by a request are complete when the test continues.
    """
    app = create_app(test_settings, store=app_store, fetcher=fake_fetcher)
    with TestClient(app) as client:
        yield client
