"""
Image record model.

A minimized projection of an Unsplash photo: just enough to serve, attribute
and link the image. Records are created by the upstream client, stored in slot
arrays by the refill path, and removed from their slot when served.
"""

from typing import Any

from pydantic import BaseModel, Field

from src.core.config.constants import ImageUrlType


class ImageUrls(BaseModel):
    """Size-variant URL set."""

    model_config = {"extra": "ignore"}

    raw: str | None = None
    full: str | None = None
    regular: str | None = None
    small: str | None = None
    thumb: str | None = None

    def for_type(self, url_type: ImageUrlType) -> str | None:
        return getattr(self, url_type.value)


class CreatorLinks(BaseModel):
    model_config = {"extra": "ignore"}

    html: str | None = None


class Creator(BaseModel):
    """Attributed photographer."""

    model_config = {"extra": "ignore"}

    name: str | None = None
    links: CreatorLinks = Field(default_factory=CreatorLinks)


class CollectionRef(BaseModel):
    """A collection the photo belongs to."""

    model_config = {"extra": "ignore"}

    id: int | str
    title: str | None = None


class ImageRecord(BaseModel):
    """
    Cached image.

    Field names follow the provider's JSON so a stored record can be returned
    to clients as-is.
    """

    model_config = {"extra": "ignore"}

    id: str
    urls: ImageUrls = Field(default_factory=ImageUrls)
    user: Creator = Field(default_factory=Creator)
    width: int | None = None
    height: int | None = None
    description: str | None = None
    current_user_collections: list[CollectionRef] = Field(default_factory=list)

    @classmethod
    def from_upstream(cls, payload: dict[str, Any]) -> "ImageRecord":
        """
        Project a full provider photo object down to a record.

        The description falls back to the provider's alt description.
        """
        user = payload.get("user") or {}
        return cls(
            id=str(payload["id"]),
            urls=payload.get("urls") or {},
            user={
                "name": user.get("name"),
                "links": {"html": (user.get("links") or {}).get("html")},
            },
            width=payload.get("width"),
            height=payload.get("height"),
            description=payload.get("description") or payload.get("alt_description"),
            current_user_collections=payload.get("current_user_collections") or [],
        )
