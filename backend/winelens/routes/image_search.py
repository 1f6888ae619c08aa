"""
/search-wine-image endpoint: reference bottle photo for a wine.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from ..feature_flags import FeatureFlags, get_feature_flags
from ..models import ImageSearchResponse
from ..services.image_search import ImageSearchError, search_wine_image

logger = logging.getLogger(__name__)
router = APIRouter()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ImageSearchResponse(success=False, error=message).model_dump(by_alias=True, exclude_none=True),
    )


@router.get(
    "/search-wine-image",
    response_model=ImageSearchResponse,
    response_model_exclude_none=True,
)
async def search_wine_image_endpoint(
    wine_name: Optional[str] = Query(None, alias="wineName"),
    producer: Optional[str] = Query(None),
    flags: FeatureFlags = Depends(get_feature_flags),
):
    """Find a reference image URL for a wine by name (and producer)."""
    if not flags.feature_image_search:
        raise HTTPException(status_code=404, detail="Image search is disabled")

    if not wine_name or not wine_name.strip():
        return _error(400, "Wine name is required")

    try:
        image_url = await search_wine_image(wine_name, producer)
    except ImageSearchError as e:
        logger.error(f"Image search failed for {wine_name!r}: {e}", exc_info=True)
        return _error(500, str(e))

    if not image_url:
        return _error(404, "No images found")

    return ImageSearchResponse(success=True, image_url=image_url)
