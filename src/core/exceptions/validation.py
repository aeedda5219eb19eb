"""
Validation Exceptions

Raised by the request layer before filters reach the cache engine.
"""

from src.core.exceptions.base import PhotoCacheError


class ValidationError(PhotoCacheError):
    """
    Raised when request validation fails.

    This is the base class for all validation-related errors.
    """
    pass


class InvalidFilterError(ValidationError):
    """
    Raised when image filters are malformed or contradictory.

    Common causes:
    - Both addPhotoOfTheDay and collections requested
    - Unknown image URL size variant
    """
    pass
