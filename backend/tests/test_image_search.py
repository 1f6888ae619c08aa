"""
Tests for the Serper-backed wine image search.
"""

import json

import httpx
import pytest

from winelens.services.image_search import (
    SERPER_IMAGES_URL,
    ImageSearchError,
    build_search_query,
    pick_image_url,
    search_wine_image,
)


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestHelpers:
    def test_query_with_producer(self):
        assert build_search_query("Barolo", "Vietti") == "Vietti Barolo wine bottle"

    def test_query_without_producer(self):
        assert build_search_query(" Barolo ") == "Barolo wine bottle"

    def test_full_image_preferred_over_thumbnail(self):
        results = [
            {"thumbnailUrl": "https://t/1.jpg"},
            {"imageUrl": "https://full/2.jpg", "thumbnailUrl": "https://t/2.jpg"},
        ]
        assert pick_image_url(results) == "https://full/2.jpg"

    def test_thumbnail_when_nothing_else(self):
        assert pick_image_url([{"thumbnailUrl": "https://t/1.jpg"}]) == "https://t/1.jpg"

    def test_empty(self):
        assert pick_image_url([]) is None


class TestSearchWineImage:
    """Tests for search_wine_image against a mocked transport."""

    @pytest.mark.asyncio
    async def test_returns_first_image(self, monkeypatch):
        monkeypatch.setenv("SERPER_API_KEY", "test-key")
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["key"] = request.headers["X-API-KEY"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"images": [{"imageUrl": "https://img/opus.jpg"}]})

        async with _client(handler) as client:
            url = await search_wine_image("Opus One", "Opus One Winery", client=client)

        assert url == "https://img/opus.jpg"
        assert seen["url"] == SERPER_IMAGES_URL
        assert seen["key"] == "test-key"
        assert seen["body"] == {"q": "Opus One Winery Opus One wine bottle", "gl": "us", "hl": "en"}

    @pytest.mark.asyncio
    async def test_no_images(self, monkeypatch):
        monkeypatch.setenv("SERPER_API_KEY", "test-key")

        async with _client(lambda r: httpx.Response(200, json={"images": []})) as client:
            assert await search_wine_image("Nothing", client=client) is None

    @pytest.mark.asyncio
    async def test_http_error(self, monkeypatch):
        monkeypatch.setenv("SERPER_API_KEY", "test-key")

        async with _client(lambda r: httpx.Response(403, json={"message": "bad key"})) as client:
            with pytest.raises(ImageSearchError, match="403"):
                await search_wine_image("Opus One", client=client)

    @pytest.mark.asyncio
    async def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("SERPER_API_KEY", raising=False)

        with pytest.raises(ImageSearchError, match="SERPER_API_KEY"):
            await search_wine_image("Opus One")
