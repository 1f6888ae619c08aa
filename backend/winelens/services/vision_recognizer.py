"""
Vision recognizer: identify wines in an uploaded image.

Sends the image URL to a multimodal model and extracts candidate
wines from its loosely structured reply.

Providers:
1. LiteLLMVisionRecognizer: any LiteLLM model id (default)
2. ClaudeVisionRecognizer: Anthropic SDK
3. MockVisionRecognizer: canned responses (USE_MOCKS=true)

The prompt is always English; locale only matters for enrichment.
Provider failures raise RecognitionError. Unparseable replies are
not errors: they yield an empty candidate list.
"""

import asyncio
import json
import logging
from typing import Any, Optional, Protocol

from pydantic import ValidationError

from ..config import Config
from ..mocks.fixtures import get_mock_recognition_response
from ..models import RecognizerProvider, WineCandidate
from .llm_client import get_litellm, message_text, strip_code_fences

logger = logging.getLogger(__name__)


RECOGNITION_PROMPT = """You are a wine expert. Identify every wine visible in this image.
The image may show one or more bottles, or a restaurant wine list / menu.

Return a JSON array with one object per wine, in the order they appear:
[
  {
    "name": "wine name as written",
    "vintage": "year or null",
    "producer": "producer or winery, or null",
    "region": "region or appellation, or null",
    "varietal": "grape variety or blend, or null",
    "price": "price exactly as printed, or null"
  }
]

Rules:
- Only include wines you can actually read or recognize
- Use null for anything you cannot determine
- Only report a price that is printed in the image (menu or shelf tag)
- If no wines are visible, return []

Return ONLY the JSON array, no other text."""


# Canonical field -> accepted keys, in priority order
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "name": ("name", "wine_name", "wineName"),
    "vintage": ("vintage", "year"),
    "producer": ("producer", "winery", "brand"),
    "region": ("region", "appellation"),
    "varietal": ("varietal", "grape_variety", "grapeVariety", "grapes"),
    "price": ("price", "cost", "price_usd"),
}


class RecognitionError(Exception):
    """The vision provider call failed (network, auth, configuration)."""


def _coerce_text(value: Any) -> Optional[str]:
    """Coerce a loosely typed JSON value to an optional, stripped string."""
    if value is None:
        return None
    if isinstance(value, list):
        parts = [_coerce_text(v) for v in value]
        value = ", ".join(p for p in parts if p)
    elif isinstance(value, dict):
        return None
    elif not isinstance(value, str):
        value = str(value)
    value = value.strip()
    if not value or value.lower() in ("null", "none", "unknown", "n/a"):
        return None
    return value


def normalize_candidate(item: Any) -> Optional[WineCandidate]:
    """
    Map one raw object onto a WineCandidate using FIELD_ALIASES.

    Returns None when the object has no usable name.
    """
    if not isinstance(item, dict):
        return None

    fields: dict[str, Optional[str]] = {}
    for field, keys in FIELD_ALIASES.items():
        fields[field] = None
        for key in keys:
            text = _coerce_text(item.get(key))
            if text:
                fields[field] = text
                break

    if not fields["name"]:
        return None

    try:
        return WineCandidate(**fields)
    except ValidationError:
        return None


def _find_bracketed(text: str) -> Optional[Any]:
    """Decode the first JSON array or object embedded in prose."""
    decoder = json.JSONDecoder()
    for index, char in enumerate(text):
        if char not in "[{":
            continue
        try:
            value, _ = decoder.raw_decode(text, index)
        except json.JSONDecodeError:
            continue
        return value
    return None


def _as_items(data: Any) -> list:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        wines = data.get("wines")
        if isinstance(wines, list):
            return wines
        return [data]
    return []


def parse_recognition_response(text: Optional[str]) -> list[WineCandidate]:
    """
    Parse a model reply into wine candidates.

    Strategy:
    1. Strip markdown fences and parse the whole reply as JSON
    2. Otherwise decode the first bracketed array/object in the text
    3. Arrays are used as-is; objects are wrapped (or their "wines" unwrapped)

    Anything unparseable yields [].
    """
    cleaned = strip_code_fences(text or "")
    if not cleaned:
        return []

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        data = _find_bracketed(cleaned)
        if data is None:
            logger.warning(f"Recognition reply not parseable as JSON: {cleaned[:200]!r}")
            return []

    candidates = []
    for item in _as_items(data):
        candidate = normalize_candidate(item)
        if candidate is not None:
            candidates.append(candidate)
    return candidates


class VisionRecognizer(Protocol):
    """Interface for vision recognizers."""

    async def recognize(self, image_url: str, locale: Optional[str] = None) -> list[WineCandidate]:
        ...


class VisionRecognizerBase:
    """Shared flow: fetch raw reply from the provider, then parse it."""

    provider = "base"

    async def _complete(self, image_url: str) -> str:
        raise NotImplementedError

    async def recognize(self, image_url: str, locale: Optional[str] = None) -> list[WineCandidate]:
        """
        Identify wines in the image at image_url.

        Args:
            image_url: Publicly fetchable image URL
            locale: Accepted for interface symmetry; the prompt is English

        Returns:
            Candidates in reply order (possibly empty)

        Raises:
            RecognitionError: provider call failed
        """
        try:
            text = await self._complete(image_url)
        except RecognitionError:
            raise
        except Exception as e:
            raise RecognitionError(f"{self.provider} vision call failed: {e}") from e

        candidates = parse_recognition_response(text)
        logger.info(f"{self.provider}: recognized {len(candidates)} wine(s)")
        return candidates


class LiteLLMVisionRecognizer(VisionRecognizerBase):
    """Recognizer backed by any LiteLLM vision-capable model."""

    provider = "litellm"

    def __init__(
        self,
        model: Optional[str] = None,
        max_tokens: int = 2000,
        temperature: float = 0.1,
        timeout: Optional[float] = None,
    ):
        self.model = model or Config.vision_model()
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout if timeout is not None else Config.vision_timeout()

    async def _complete(self, image_url: str) -> str:
        litellm = get_litellm()
        response = await litellm.acompletion(
            model=self.model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "image_url", "image_url": {"url": image_url}},
                        {"type": "text", "text": RECOGNITION_PROMPT},
                    ],
                }
            ],
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            timeout=self.timeout,
        )
        return message_text(response)


class ClaudeVisionRecognizer(VisionRecognizerBase):
    """Recognizer using the Anthropic SDK (sync client, run in executor)."""

    provider = "claude"

    def __init__(
        self,
        model: Optional[str] = None,
        max_tokens: int = 2000,
        timeout: Optional[float] = None,
    ):
        self.model = model or Config.claude_vision_model()
        self.max_tokens = max_tokens
        self.timeout = timeout if timeout is not None else Config.vision_timeout()
        self._client = None

    def _get_client(self):
        """Get or create Anthropic client."""
        if self._client is None:
            api_key = Config.anthropic_api_key()
            if not api_key:
                raise RecognitionError("ANTHROPIC_API_KEY not configured")

            import anthropic
            self._client = anthropic.Anthropic(api_key=api_key, timeout=self.timeout)
        return self._client

    async def _complete(self, image_url: str) -> str:
        client = self._get_client()
        response = await asyncio.get_running_loop().run_in_executor(
            None,
            lambda: client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "image",
                                "source": {"type": "url", "url": image_url},
                            },
                            {"type": "text", "text": RECOGNITION_PROMPT},
                        ],
                    }
                ],
            ),
        )
        return response.content[0].text if response.content else ""


class MockVisionRecognizer(VisionRecognizerBase):
    """Replays canned model replies from mocks.fixtures."""

    provider = "mock"

    def __init__(self, scenario: Optional[str] = None):
        self.scenario = scenario or Config.mock_scenario()

    async def _complete(self, image_url: str) -> str:
        if self.scenario == "vision_failure":
            raise RecognitionError("Mock vision provider unavailable")
        return get_mock_recognition_response(self.scenario)


# Singleton recognizer instance
_recognizer: Optional[VisionRecognizer] = None


def create_recognizer(provider: Optional[str] = None, use_mock: Optional[bool] = None) -> VisionRecognizer:
    """
    Factory for recognizers.

    Args:
        provider: "litellm" or "claude". Defaults to RECOGNIZER_PROVIDER.
        use_mock: Force mock provider. Defaults to USE_MOCKS.
    """
    if use_mock is None:
        use_mock = Config.use_mocks()
    if use_mock:
        logger.info("Using mock vision recognizer")
        return MockVisionRecognizer()

    provider = (provider or Config.recognizer_provider()).lower()
    if provider == RecognizerProvider.CLAUDE.value:
        logger.info("Using Claude for vision recognition")
        return ClaudeVisionRecognizer()
    logger.info(f"Using LiteLLM ({Config.vision_model()}) for vision recognition")
    return LiteLLMVisionRecognizer()


def get_recognizer() -> VisionRecognizer:
    """Get or create recognizer singleton."""
    global _recognizer
    if _recognizer is None:
        _recognizer = create_recognizer()
    return _recognizer
