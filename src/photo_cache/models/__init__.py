"""Photo cache domain models."""

from src.photo_cache.models.filters import ImageFilters
from src.photo_cache.models.image_record import ImageRecord
from src.photo_cache.models.metadata import PartitionMetadata, TierState
from src.photo_cache.models.status import PartitionStatus, StatusReport, TierStatus

__all__ = [
    "ImageFilters",
    "ImageRecord",
    "PartitionMetadata",
    "TierState",
    "PartitionStatus",
    "StatusReport",
    "TierStatus",
]
