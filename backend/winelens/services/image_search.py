"""
Reference bottle image lookup via the Serper image search API.
"""

import logging
from typing import Optional

import httpx

from ..config import Config

logger = logging.getLogger(__name__)

SERPER_IMAGES_URL = "https://google.serper.dev/images"


class ImageSearchError(Exception):
    """Image search provider failed or is not configured."""


def build_search_query(wine_name: str, producer: Optional[str] = None) -> str:
    """'<producer> <wine name> wine bottle'."""
    parts = [producer.strip() if producer else "", wine_name.strip(), "wine bottle"]
    return " ".join(p for p in parts if p)


def pick_image_url(results: list) -> Optional[str]:
    """First full-size image URL; thumbnails only when no full image exists."""
    thumbnail = None
    for item in results:
        if not isinstance(item, dict):
            continue
        url = item.get("imageUrl") or item.get("url")
        if url:
            return url
        if thumbnail is None:
            thumbnail = item.get("thumbnailUrl")
    return thumbnail


async def search_wine_image(
    wine_name: str,
    producer: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 10.0,
) -> Optional[str]:
    """
    Find a reference image for a wine.

    Args:
        wine_name: Wine name (required)
        producer: Optional producer to narrow the search
        client: Optional shared AsyncClient (tests inject a mock transport)
        timeout: Request timeout in seconds

    Returns:
        Image URL, or None when the search returned no images

    Raises:
        ImageSearchError: missing API key, HTTP failure, or bad response
    """
    api_key = Config.serper_api_key()
    if not api_key:
        raise ImageSearchError("SERPER_API_KEY not configured")

    query = build_search_query(wine_name, producer)
    payload = {"q": query, "gl": "us", "hl": "en"}
    headers = {"X-API-KEY": api_key, "Content-Type": "application/json"}

    try:
        if client is not None:
            response = await client.post(SERPER_IMAGES_URL, json=payload, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=timeout) as owned:
                response = await owned.post(SERPER_IMAGES_URL, json=payload, headers=headers)
        response.raise_for_status()
        data = response.json()
    except httpx.HTTPStatusError as e:
        raise ImageSearchError(f"Serper API error: {e.response.status_code}") from e
    except (httpx.HTTPError, ValueError) as e:
        raise ImageSearchError(f"Serper request failed: {e}") from e

    images = data.get("images") if isinstance(data, dict) else None
    image_url = pick_image_url(images or [])
    logger.debug(f"Image search {query!r} -> {image_url}")
    return image_url
