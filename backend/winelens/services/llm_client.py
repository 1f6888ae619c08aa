"""
Shared helpers for LLM provider calls.

LiteLLM gives one interface over Gemini, OpenAI, Anthropic, etc.
so the vision and enrichment models are configurable by model id.
"""

import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

# Lazy import for litellm to avoid slow network requests during module load
_litellm = None

_FENCE_RE = re.compile(r"```[a-zA-Z]*\s*|\s*```")


def get_litellm():
    """Lazy-load litellm to avoid startup delays from network requests."""
    global _litellm
    if _litellm is None:
        import litellm
        litellm.suppress_debug_info = True
        _litellm = litellm
    return _litellm


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences (```json ... ```) anywhere in the text."""
    return _FENCE_RE.sub("", text or "").strip()


def message_text(response: Any) -> str:
    """Extract the first choice's text from a chat completion response."""
    choices = getattr(response, "choices", None) or []
    if not choices:
        return ""
    content = choices[0].message.content
    return content or ""
