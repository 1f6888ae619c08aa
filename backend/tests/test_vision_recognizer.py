"""
Tests for the vision recognizer: tolerant parsing and providers.
"""

import json

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from winelens.services.vision_recognizer import (
    ClaudeVisionRecognizer,
    LiteLLMVisionRecognizer,
    MockVisionRecognizer,
    RECOGNITION_PROMPT,
    RecognitionError,
    create_recognizer,
    normalize_candidate,
    parse_recognition_response,
)


def _make_mock_response(content: str):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


class TestParseRecognitionResponse:
    """Tests for parse_recognition_response."""

    def test_json_array(self):
        text = json.dumps([{"name": "Opus One"}, {"name": "Caymus"}])
        assert [c.name for c in parse_recognition_response(text)] == ["Opus One", "Caymus"]

    def test_fenced_array(self):
        text = '```json\n[{"name": "Barolo", "vintage": "2016"}]\n```'
        candidates = parse_recognition_response(text)

        assert len(candidates) == 1
        assert candidates[0].vintage == "2016"

    def test_single_object_wrapped(self):
        candidates = parse_recognition_response('{"name": "Opus One", "year": 2018}')

        assert len(candidates) == 1
        assert candidates[0].name == "Opus One"
        assert candidates[0].vintage == "2018"

    def test_wines_envelope_unwrapped(self):
        text = json.dumps({"wines": [{"name": "A"}, {"name": "B"}]})
        assert [c.name for c in parse_recognition_response(text)] == ["A", "B"]

    def test_array_inside_prose(self):
        text = 'Here is what I found:\n[{"wine_name": "Sancerre"}]\nHope that helps!'
        assert [c.name for c in parse_recognition_response(text)] == ["Sancerre"]

    def test_object_inside_prose(self):
        text = 'Sure! {"name": "Chablis", "region": "Burgundy"} is on the label.'
        candidates = parse_recognition_response(text)

        assert candidates[0].name == "Chablis"
        assert candidates[0].region == "Burgundy"

    @pytest.mark.parametrize("text", ["", None, "No wines here, sorry.", "[not json", "42"])
    def test_unparseable_returns_empty(self, text):
        assert parse_recognition_response(text) == []

    def test_order_preserved(self):
        text = json.dumps([{"name": n} for n in ["C", "A", "B"]])
        assert [c.name for c in parse_recognition_response(text)] == ["C", "A", "B"]

    def test_nameless_items_dropped(self):
        text = json.dumps([{"producer": "Vietti"}, {"name": "  "}, {"name": "Barolo"}, "junk"])
        assert [c.name for c in parse_recognition_response(text)] == ["Barolo"]


class TestNormalizeCandidate:
    """Tests for field aliasing and coercion."""

    def test_all_aliases(self):
        candidate = normalize_candidate({
            "wineName": "Les Baronnes",
            "year": 2022,
            "brand": "Henri Bourgeois",
            "appellation": "Sancerre",
            "grapeVariety": "Sauvignon Blanc",
        })

        assert candidate.name == "Les Baronnes"
        assert candidate.vintage == "2022"
        assert candidate.producer == "Henri Bourgeois"
        assert candidate.region == "Sancerre"
        assert candidate.varietal == "Sauvignon Blanc"

    def test_canonical_key_wins_over_alias(self):
        candidate = normalize_candidate({"name": "Primary", "wine_name": "Secondary"})
        assert candidate.name == "Primary"

    def test_list_values_joined(self):
        candidate = normalize_candidate({"name": "GSM", "grapes": ["Grenache", "Syrah", "Mourvèdre"]})
        assert candidate.varietal == "Grenache, Syrah, Mourvèdre"

    def test_null_like_strings_dropped(self):
        candidate = normalize_candidate({"name": "Rioja", "vintage": "null", "producer": "Unknown"})

        assert candidate.vintage is None
        assert candidate.producer is None

    def test_non_dict_returns_none(self):
        assert normalize_candidate(["name", "Opus One"]) is None

    def test_price_and_aliases(self):
        assert normalize_candidate({"name": "Chablis", "price": "$54"}).price == "$54"
        assert normalize_candidate({"name": "Chablis", "cost": 54}).price == "54"
        assert normalize_candidate({"name": "Chablis"}).price is None

    def test_describe_is_a_short_label(self):
        candidate = normalize_candidate({
            "name": "Barolo", "vintage": "2016", "producer": "Vietti",
            "region": "Piedmont", "price": "$90",
        })
        assert candidate.describe() == "2016 Vietti Barolo"


class TestLiteLLMVisionRecognizer:
    """Tests for the LiteLLM provider."""

    @pytest.mark.asyncio
    async def test_sends_image_url_and_prompt(self):
        mock_litellm = MagicMock()
        mock_litellm.acompletion = AsyncMock(
            return_value=_make_mock_response('[{"name": "Opus One"}]')
        )
        recognizer = LiteLLMVisionRecognizer(model="gemini/gemini-2.0-flash", timeout=5)

        with patch("winelens.services.vision_recognizer.get_litellm", return_value=mock_litellm):
            candidates = await recognizer.recognize("https://img.example/1.jpg", locale="fr")

        assert [c.name for c in candidates] == ["Opus One"]
        kwargs = mock_litellm.acompletion.call_args.kwargs
        assert kwargs["model"] == "gemini/gemini-2.0-flash"
        content = kwargs["messages"][0]["content"]
        assert content[0]["image_url"]["url"] == "https://img.example/1.jpg"
        # Recognition prompt is English regardless of locale
        assert content[1]["text"] == RECOGNITION_PROMPT

    @pytest.mark.asyncio
    async def test_provider_error_raises_recognition_error(self):
        mock_litellm = MagicMock()
        mock_litellm.acompletion = AsyncMock(side_effect=ConnectionError("network down"))
        recognizer = LiteLLMVisionRecognizer(timeout=5)

        with patch("winelens.services.vision_recognizer.get_litellm", return_value=mock_litellm):
            with pytest.raises(RecognitionError, match="network down"):
                await recognizer.recognize("https://img.example/1.jpg")

    @pytest.mark.asyncio
    async def test_garbage_reply_is_empty_not_error(self):
        mock_litellm = MagicMock()
        mock_litellm.acompletion = AsyncMock(return_value=_make_mock_response("I see a cat."))
        recognizer = LiteLLMVisionRecognizer(timeout=5)

        with patch("winelens.services.vision_recognizer.get_litellm", return_value=mock_litellm):
            assert await recognizer.recognize("https://img.example/1.jpg") == []


class TestClaudeVisionRecognizer:
    """Tests for the Anthropic provider."""

    @pytest.mark.asyncio
    async def test_missing_api_key_raises(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        recognizer = ClaudeVisionRecognizer()

        with pytest.raises(RecognitionError, match="ANTHROPIC_API_KEY"):
            await recognizer.recognize("https://img.example/1.jpg")

    @pytest.mark.asyncio
    async def test_uses_url_image_source(self):
        client = MagicMock()
        client.messages.create.return_value = MagicMock(
            content=[MagicMock(text='{"wines": [{"name": "Caymus", "winery": "Caymus Vineyards"}]}')]
        )
        recognizer = ClaudeVisionRecognizer(model="claude-test")
        recognizer._client = client

        candidates = await recognizer.recognize("https://img.example/2.png")

        assert candidates[0].producer == "Caymus Vineyards"
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["model"] == "claude-test"
        source = kwargs["messages"][0]["content"][0]["source"]
        assert source == {"type": "url", "url": "https://img.example/2.png"}


class TestMockVisionRecognizer:
    """Tests for mock scenarios."""

    @pytest.mark.asyncio
    async def test_full_menu(self):
        candidates = await MockVisionRecognizer("full_menu").recognize("http://x/1.jpg")

        assert [c.name for c in candidates] == [
            "Caymus Cabernet Sauvignon",
            "Sancerre Les Baronnes",
            "Barolo",
        ]
        assert candidates[1].vintage == "2022"
        assert candidates[1].producer == "Henri Bourgeois"
        assert candidates[2].varietal == "Nebbiolo"
        assert candidates[2].vintage is None

    @pytest.mark.asyncio
    async def test_single_bottle(self):
        candidates = await MockVisionRecognizer("single_bottle").recognize("http://x/1.jpg")

        assert len(candidates) == 1
        assert candidates[0].name == "Opus One"
        assert candidates[0].vintage == "2018"

    @pytest.mark.asyncio
    async def test_empty(self):
        assert await MockVisionRecognizer("empty").recognize("http://x/1.jpg") == []

    @pytest.mark.asyncio
    async def test_vision_failure(self):
        with pytest.raises(RecognitionError):
            await MockVisionRecognizer("vision_failure").recognize("http://x/1.jpg")


class TestCreateRecognizer:
    """Tests for the provider factory."""

    def test_mock_flag(self):
        assert isinstance(create_recognizer(use_mock=True), MockVisionRecognizer)

    def test_claude_provider(self):
        assert isinstance(create_recognizer("claude", use_mock=False), ClaudeVisionRecognizer)

    def test_default_is_litellm(self, monkeypatch):
        monkeypatch.delenv("RECOGNIZER_PROVIDER", raising=False)
        assert isinstance(create_recognizer(use_mock=False), LiteLLMVisionRecognizer)
