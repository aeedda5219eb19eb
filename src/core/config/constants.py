"""
System Constants and Enumerations

This module defines system-wide constants and enumerations used across
the rotating photo cache service.

Architectural Decision: Centralized constants for maintainability
- Single source of truth for magic numbers
- Type-safe enums for state management
- Easy to update and track changes
"""

from enum import Enum

# ============================================================================
# Stage Identifiers (for structured logging)
# ============================================================================


class Stage(str, Enum):
    """
    Request processing stages for structured logging.

    Format: {SEQUENCE}_{DESCRIPTIVE_NAME}
    - SEQUENCE: Numeric order (0.0, 1.0, 2.0) or alphabetic prefix (CB, BG)
    - DESCRIPTIVE_NAME: Clear, uppercase description with underscores

    Examples:
        logger.info("Main tier hit", stage=Stage.MAIN_TIER_TAKE)
    """

    # Main Request Lifecycle
    INITIALIZATION = "0.0_INITIALIZATION"
    FILTER_VALIDATION = "1.0_FILTER_VALIDATION"
    PARTITION_LOAD = "2.0_PARTITION_LOAD"
    MAIN_TIER_TAKE = "2.1_MAIN_TIER_TAKE"
    BUFFER_TIER_TAKE = "2.2_BUFFER_TIER_TAKE"
    LIVE_FETCH = "3.0_LIVE_FETCH"
    RESPONSE = "4.0_RESPONSE"

    # Background work
    BACKGROUND = "BG.0_BACKGROUND_JOB"
    PROMOTION = "BG.1_BUFFER_PROMOTION"
    REFILL = "BG.2_BUFFER_REFILL"
    DOWNLOAD_TRACKING = "BG.3_DOWNLOAD_TRACKING"

    # Cross-Cutting Concerns
    CIRCUIT_BREAKER = "CB_CIRCUIT_BREAKER"
    STORE = "KV_STORE_OPERATIONS"
    METRICS = "M_METRICS_COLLECTION"


# ============================================================================
# Circuit Breaker States
# ============================================================================


class CircuitState(str, Enum):
    """
    Circuit breaker states.

    CLOSED: Normal operation, requests allowed
    OPEN: Failing fast, requests blocked
    HALF_OPEN: Testing recovery, one probe request allowed
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


# ============================================================================
# Cache Tiers
# ============================================================================


class CacheTier(str, Enum):
    """
    Rotating slot cache tiers per partition.

    MAIN: Serves requests
    BUFFER: Refilled from upstream, promoted into main when main drains
    """

    MAIN = "main"
    BUFFER = "buffer"


class CacheSource(str, Enum):
    """Where the image returned to a caller came from."""

    MAIN = "main"
    BUFFER = "buffer"
    UPSTREAM = "upstream"


# ============================================================================
# Image Filters
# ============================================================================


class Orientation(str, Enum):
    """Orientations accepted by the upstream random-photo endpoint."""

    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"
    SQUARISH = "squarish"


class ImageUrlType(str, Enum):
    """Size variants present in an image record's URL set."""

    RAW = "raw"
    FULL = "full"
    REGULAR = "regular"
    SMALL = "small"
    THUMB = "thumb"


# Missing or unrecognized orientations fall back to this one
DEFAULT_ORIENTATION = Orientation.LANDSCAPE

# Unsplash collection holding the daily featured photos
PHOTO_OF_THE_DAY_COLLECTION_ID = "1459961"

# Literal partition key used when no content-affecting filter is set
DEFAULT_PARTITION_KEY = "default"

# ============================================================================
# Upstream
# ============================================================================

UNSPLASH_API_VERSION = "v1"
UNSPLASH_RANDOM_PATH = "/photos/random"
UNSPLASH_DOWNLOAD_PATH = "/photos/{photo_id}/download"

# Upstream caps `count` on the random endpoint
UNSPLASH_MAX_BATCH = 30

# ============================================================================
# Store Key Layout
# ============================================================================

STORE_KEY_PARTITION = "partition"
STORE_KEY_METADATA_SUFFIX = "meta"
STORE_KEY_METRICS = "metrics"

# ============================================================================
# HTTP
# ============================================================================

HEADER_THREAD_ID = "X-Thread-ID"
HEADER_CACHE_SOURCE = "X-Cache-Source"
HEADER_PARTITION_KEY = "X-Cache-Partition"

CACHE_CONTROL_DOWNLOAD = "public, max-age=300"
CACHE_CONTROL_FULL_RECORD = "no-store"
