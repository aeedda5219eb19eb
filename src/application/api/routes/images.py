"""
Image Routes
============

`GET /random` serves one random photo from the rotating cache.

QUERY PARAMETERS:
-----------------
Content-affecting (decide the cache partition):
- orientation:      landscape | portrait | squarish; anything else means landscape
- collections:      comma separated collection ids
- addPhotoOfTheDay: true to restrict to the photo-of-the-day collection

Presentation (same partition, different response):
- nocache: true to skip both tiers and fetch live
- dl:      true to report a download to Unsplash
- url:     raw | full | regular | small | thumb; with dl=true returns a compact
           download payload instead of the full record

RESPONSE HEADERS:
-----------------
- X-Cache-Source:    main | buffer | upstream
- X-Cache-Partition: partition key the request resolved to
- Cache-Control:     "no-store" for full records, 5 minutes for download payloads
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from src.application.api.dependencies import OrchestratorDep, SchedulerDep
from src.core.config.constants import (
    CACHE_CONTROL_DOWNLOAD,
    CACHE_CONTROL_FULL_RECORD,
    HEADER_CACHE_SOURCE,
    HEADER_PARTITION_KEY,
    ImageUrlType,
    Stage,
)
from src.core.exceptions import InvalidFilterError
from src.core.logging.logger import get_logger
from src.photo_cache.models.filters import ImageFilters
from src.photo_cache.models.image_record import ImageRecord

logger = get_logger(__name__)

router = APIRouter(tags=["Images"])

DEFAULT_DESCRIPTION = "Unsplash Image"


def parse_filters(
    orientation: str | None, collections: str | None, photo_of_the_day: bool
) -> ImageFilters:
    """
    Build filters from raw query values.

    Raises:
        InvalidFilterError: Conflicting parameters
    """
    try:
        return ImageFilters(
            orientation=orientation,
            collections=collections,
            photo_of_the_day=photo_of_the_day,
        )
    except PydanticValidationError as e:
        errors = [
            {"field": ".".join(str(part) for part in error["loc"]) or "filters", "message": error["msg"]}
            for error in e.errors()
        ]
        logger.info("Rejected image filters", stage=Stage.FILTER_VALIDATION.value, errors=errors)
        raise InvalidFilterError(
            errors[0]["message"] if errors else "Invalid filters",
            details={"errors": errors},
        ) from e


def parse_url_type(url: str | None) -> ImageUrlType | None:
    if not url:
        return None
    try:
        return ImageUrlType(url)
    except ValueError as e:
        raise InvalidFilterError(
            f"url must be one of {[member.value for member in ImageUrlType]}",
            details={"field": "url", "value": url},
        ) from e


def download_payload(record: ImageRecord, url_type: ImageUrlType) -> dict:
    return {
        "imageUrl": record.urls.for_type(url_type),
        "artistName": record.user.name,
        "artistProfileUrl": record.user.links.html,
        "photoId": record.id,
        "description": record.description or DEFAULT_DESCRIPTION,
    }


@router.get("/random")
async def random_image(
    orchestrator: OrchestratorDep,
    scheduler: SchedulerDep,
    orientation: str | None = Query(default=None, description="landscape (default), portrait or squarish"),
    collections: str | None = Query(default=None, description="Comma separated collection ids"),
    add_photo_of_the_day: bool = Query(default=False, alias="addPhotoOfTheDay"),
    nocache: bool = Query(default=False, description="Bypass the cache"),
    dl: bool = Query(default=False, description="Track a download"),
    url: str | None = Query(default=None, description="URL size variant for download payloads"),
):
    """Serve one random image for the requested filters."""
    filters = parse_filters(orientation, collections, add_photo_of_the_day)
    url_type = parse_url_type(url)

    result = await orchestrator.get_image(filters, nocache, scheduler)

    if dl:
        orchestrator.track_download(result.record.id, scheduler)

    headers = {
        HEADER_CACHE_SOURCE: result.source.value,
        HEADER_PARTITION_KEY: result.partition_key,
    }

    if dl and url_type is not None:
        headers["Cache-Control"] = CACHE_CONTROL_DOWNLOAD
        return JSONResponse(content=download_payload(result.record, url_type), headers=headers)

    headers["Cache-Control"] = CACHE_CONTROL_FULL_RECORD
    return JSONResponse(content=result.record.model_dump(mode="json"), headers=headers)
