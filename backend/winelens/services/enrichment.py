"""
Item enrichment: per-wine narrative summary and 0-100 score.

One LiteLLM call per wine, with locale-specific critic prompts
(en, fr, zh, ar) and an optional "no-BS" blunt critic mode.

enrich() never raises. Timeouts, provider errors and malformed
replies produce the fallback score and "Summary unavailable",
with EnrichmentResult.error describing what went wrong.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from ..config import Config
from ..mocks.fixtures import get_mock_enrichment
from ..models import WineCandidate
from .llm_client import get_litellm, message_text, strip_code_fences

logger = logging.getLogger(__name__)


_JSON_INSTRUCTION = {
    "en": "Respond ONLY with a JSON object with the keys 'summary' (string) and 'score' (integer 0-100).",
    "fr": "Répondez UNIQUEMENT avec un objet JSON contenant les clés 'summary' (chaîne) et 'score' (entier 0-100).",
    "zh": "仅以包含'summary'(字符串)和'score'(0-100的整数)键的JSON对象回复。",
    "ar": "الرد فقط بكائن JSON يحتوي على المفتاحين 'summary' (سلسلة) و 'score' (عدد صحيح من 0 إلى 100).",
}

_CRITIC_PROMPTS = {
    "en": (
        "You are a professional wine critic. For the wine described below, write:\n"
        "1. A concise tasting summary (max 2 sentences).\n"
        "2. A numerical quality score (0-100) based on what is known about this wine."
    ),
    "fr": (
        "Vous êtes un critique de vin professionnel. Pour le vin décrit ci-dessous, rédigez:\n"
        "1. Un résumé de dégustation concis (2 phrases maximum), en français.\n"
        "2. Une note de qualité (0-100) basée sur ce que l'on sait de ce vin."
    ),
    "zh": (
        "您是专业葡萄酒评论家。请针对下面描述的葡萄酒，用中文给出:\n"
        "1. 一段简洁的品鉴总结(最多2句话)。\n"
        "2. 一个基于已知信息的质量评分(0-100)。"
    ),
    "ar": (
        "أنت ناقد نبيذ محترف. بالنسبة للنبيذ الموصوف أدناه، اكتب باللغة العربية:\n"
        "1. ملخص تذوق موجز (جملتان كحد أقصى).\n"
        "2. درجة جودة رقمية (0-100) بناءً على المعلومات المتاحة عن هذا النبيذ."
    ),
}

_NO_BS_PROMPTS = {
    "en": (
        "You are a BRUTALLY HONEST, sarcastic wine critic with no filter who hates wine snobbery.\n"
        "For the wine described below, write:\n"
        "1. A blunt review (max 2 sentences). Mock overpriced or pretentious wines and make at "
        "least one comparison to something that has nothing to do with wine.\n"
        "2. An HONEST score (0-100). Do not inflate scores for prestigious labels."
    ),
    "fr": (
        "Vous êtes un critique de vin BRUTALEMENT HONNÊTE et sarcastique, sans filtre, qui déteste "
        "le snobisme autour du vin.\nPour le vin décrit ci-dessous, rédigez en français:\n"
        "1. Une critique franche (2 phrases maximum). Moquez-vous des vins surfacturés ou prétentieux "
        "et faites au moins une comparaison sans rapport avec le vin.\n"
        "2. Une note HONNÊTE (0-100). Ne gonflez pas les notes des étiquettes prestigieuses."
    ),
    "zh": (
        "您是一位极其坦率、讽刺、毫无过滤的葡萄酒评论家，厌恶葡萄酒势利。\n"
        "请针对下面描述的葡萄酒，用中文给出:\n"
        "1. 一段直白的评论(最多2句话)。嘲讽价格虚高或装腔作势的酒，并至少做一个与葡萄酒无关的比较。\n"
        "2. 一个诚实的评分(0-100)。不要夸大名贵酒款的分数。"
    ),
    "ar": (
        "أنت ناقد نبيذ صريح بشكل وحشي وساخر وبدون أي فلتر، وتكره تكلف عالم النبيذ.\n"
        "بالنسبة للنبيذ الموصوف أدناه، اكتب باللغة العربية:\n"
        "1. مراجعة صريحة (جملتان كحد أقصى). اسخر من النبيذ المبالغ في سعره أو المتكلف وقدم مقارنة "
        "واحدة على الأقل بشيء لا علاقة له بالنبيذ.\n"
        "2. درجة صادقة (0-100). لا تضخم الدرجات للعلامات المرموقة."
    ),
}


def normalize_locale(locale: Optional[str]) -> str:
    """
    Reduce a locale tag to a supported language code.

    "fr-CA" -> "fr", "zh_Hant" -> "zh"; unknown or empty -> "en".
    """
    if not locale or not isinstance(locale, str):
        return Config.DEFAULT_LOCALE
    language = locale.strip().replace("_", "-").split("-")[0].lower()
    if language in Config.SUPPORTED_LOCALES:
        return language
    return Config.DEFAULT_LOCALE


def build_enrichment_prompt(locale: str, no_bs_mode: bool = False) -> str:
    """System prompt for the given (normalized) locale and mode."""
    prompts = _NO_BS_PROMPTS if no_bs_mode else _CRITIC_PROMPTS
    return f"{prompts[locale]}\n\n{_JSON_INSTRUCTION[locale]}"


def _format_wine(wine: WineCandidate) -> str:
    lines = [f"Name: {wine.name}"]
    if wine.producer:
        lines.append(f"Producer: {wine.producer}")
    if wine.vintage:
        lines.append(f"Vintage: {wine.vintage}")
    if wine.region:
        lines.append(f"Region: {wine.region}")
    if wine.varietal:
        lines.append(f"Varietal: {wine.varietal}")
    if wine.price:
        lines.append(f"Listed price: {wine.price}")
    return "\n".join(lines)


def default_score(no_bs_mode: bool = False) -> int:
    return Config.DEFAULT_NO_BS_SCORE if no_bs_mode else Config.DEFAULT_SCORE


def clamp_score(value: Any) -> Optional[int]:
    """Coerce a model-provided score to an int in [0, 100], or None."""
    if isinstance(value, bool):
        return None
    try:
        score = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        return None
    return max(0, min(100, score))


@dataclass
class EnrichmentResult:
    """Summary and score for one wine. error is set when the fallback was used."""
    summary: str
    score: int
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


def fallback_result(error: str, no_bs_mode: bool = False) -> EnrichmentResult:
    return EnrichmentResult(
        summary=Config.SUMMARY_UNAVAILABLE,
        score=default_score(no_bs_mode),
        error=error,
    )


def parse_enrichment_response(text: Optional[str], no_bs_mode: bool = False) -> EnrichmentResult:
    """
    Parse {"summary": ..., "score": ...} from a model reply.

    "review" is accepted as an alias for "summary". A missing or
    invalid field falls back individually; error records which.
    """
    cleaned = strip_code_fences(text or "")
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        return fallback_result("Malformed enrichment response", no_bs_mode)

    if not isinstance(data, dict):
        return fallback_result("Malformed enrichment response", no_bs_mode)

    summary = data.get("summary") or data.get("review")
    score = clamp_score(data.get("score"))

    problems = []
    if not isinstance(summary, str) or not summary.strip():
        summary = Config.SUMMARY_UNAVAILABLE
        problems.append("summary")
    if score is None:
        score = default_score(no_bs_mode)
        problems.append("score")

    error = f"Missing {' and '.join(problems)} in enrichment response" if problems else None
    return EnrichmentResult(summary=summary.strip(), score=score, error=error)


class Enricher(Protocol):
    """Interface for wine enrichers."""

    async def enrich(
        self,
        wine: WineCandidate,
        locale: Optional[str] = None,
        no_bs_mode: bool = False,
    ) -> EnrichmentResult:
        ...


class WineEnricher:
    """LiteLLM-backed enricher."""

    def __init__(
        self,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        max_tokens: int = 400,
    ):
        self.model = model or Config.enrichment_model()
        self.timeout = timeout if timeout is not None else Config.enrichment_timeout()
        self.max_tokens = max_tokens

    async def _complete(self, wine: WineCandidate, locale: str, no_bs_mode: bool) -> str:
        litellm = get_litellm()
        response = await litellm.acompletion(
            model=self.model,
            messages=[
                {"role": "system", "content": build_enrichment_prompt(locale, no_bs_mode)},
                {"role": "user", "content": _format_wine(wine)},
            ],
            max_tokens=self.max_tokens,
            temperature=0.9 if no_bs_mode else 0.7,
            response_format={"type": "json_object"},
        )
        return message_text(response)

    async def enrich(
        self,
        wine: WineCandidate,
        locale: Optional[str] = None,
        no_bs_mode: bool = False,
    ) -> EnrichmentResult:
        """
        Generate summary and score for one wine.

        Args:
            wine: Recognized wine
            locale: Locale tag for the generated text (normalized)
            no_bs_mode: Blunt critic prompt and fallback score 50

        Returns:
            EnrichmentResult (never raises)
        """
        language = normalize_locale(locale)
        try:
            text = await asyncio.wait_for(
                self._complete(wine, language, no_bs_mode),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Enrichment timed out after {self.timeout}s for {wine.describe()!r}")
            return fallback_result(f"Enrichment timed out after {self.timeout:g}s", no_bs_mode)
        except Exception as e:
            logger.warning(f"Enrichment failed for {wine.describe()!r}: {e}", exc_info=True)
            return fallback_result(f"Enrichment failed: {e}", no_bs_mode)

        result = parse_enrichment_response(text, no_bs_mode)
        if result.failed:
            logger.warning(f"Enrichment for {wine.describe()!r}: {result.error}")
        return result


class MockEnricher:
    """Canned summaries from mocks.fixtures."""

    async def enrich(
        self,
        wine: WineCandidate,
        locale: Optional[str] = None,
        no_bs_mode: bool = False,
    ) -> EnrichmentResult:
        data = get_mock_enrichment(wine.name)
        return EnrichmentResult(summary=data["summary"], score=data["score"])


# Singleton enricher instance
_enricher: Optional[Enricher] = None


def get_enricher() -> Enricher:
    """Get or create enricher singleton (mock when USE_MOCKS=true)."""
    global _enricher
    if _enricher is None:
        if Config.use_mocks():
            logger.info("Using mock enricher")
            _enricher = MockEnricher()
        else:
            logger.info(f"Using LiteLLM ({Config.enrichment_model()}) for enrichment")
            _enricher = WineEnricher()
    return _enricher
