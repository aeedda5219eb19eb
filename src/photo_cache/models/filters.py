"""
Image filter model.

Only the parameters that change which images the provider returns live here;
presentation parameters (download flag, URL size variant) stay in the HTTP
layer. Instances are normalized on construction so that two equivalent
requests compare equal and land in the same cache partition.
"""

import re
from collections.abc import Iterable

from pydantic import BaseModel, Field, field_validator, model_validator

from src.core.config.constants import (
    DEFAULT_ORIENTATION,
    PHOTO_OF_THE_DAY_COLLECTION_ID,
    Orientation,
)

_NON_DIGIT = re.compile(r"[^0-9]")


class ImageFilters(BaseModel):
    """
    Content-affecting filters for a random image request.

    Attributes:
        orientation: Requested orientation; missing or unknown values become landscape
        collections: Collection ids, de-duplicated and sorted numerically
        photo_of_the_day: Restrict to the photo-of-the-day collection
    """

    model_config = {"frozen": True}

    orientation: Orientation = Field(default=DEFAULT_ORIENTATION, description="Requested orientation")
    collections: tuple[str, ...] = Field(default=(), description="Collection ids")
    photo_of_the_day: bool = Field(default=False, description="Photo of the day only")

    @field_validator("orientation", mode="before")
    @classmethod
    def coerce_orientation(cls, v):
        """Fall back to the default orientation for missing or unrecognized values."""
        if isinstance(v, Orientation):
            return v
        try:
            return Orientation(str(v).strip().lower())
        except ValueError:
            return DEFAULT_ORIENTATION

    @field_validator("collections", mode="before")
    @classmethod
    def normalize_collections(cls, v):
        """Accept "1,2,3" or an iterable; keep digits only, drop blanks, sort."""
        if v is None:
            return ()
        if isinstance(v, str):
            v = v.split(",")
        if not isinstance(v, Iterable):
            raise ValueError("collections must be a comma separated string or a list")
        cleaned = {_NON_DIGIT.sub("", str(item)) for item in v}
        cleaned.discard("")
        return tuple(sorted(cleaned, key=int))

    @model_validator(mode="after")
    def check_exclusive(self):
        """The photo-of-the-day flag and explicit collections cannot be combined."""
        if self.photo_of_the_day and self.collections:
            raise ValueError("Cannot use both addPhotoOfTheDay and collections parameters together")
        return self

    def upstream_params(self) -> dict[str, str]:
        """Query parameters for the provider's random-photo endpoint."""
        params = {"orientation": self.orientation.value}
        if self.photo_of_the_day:
            params["collections"] = PHOTO_OF_THE_DAY_COLLECTION_ID
        elif self.collections:
            params["collections"] = ",".join(self.collections)
        return params
