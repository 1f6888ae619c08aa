"""
Feature flags for Wine Lens.

Uses pydantic-settings for typed, validated,
environment-variable-backed feature flags.

Toggle via env vars: FEATURE_RATE_LIMIT=false
All flags default to True (on). Disable via env vars when needed.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class FeatureFlags(BaseSettings):
    """Feature flags backed by environment variables."""

    feature_rate_limit: bool = True
    feature_image_search: bool = True
    feature_partial_results: bool = True

    model_config = {
        "env_prefix": "",
        "case_sensitive": False,
    }


@lru_cache()
def get_feature_flags() -> FeatureFlags:
    """Cached singleton. Use FastAPI Depends() for injection."""
    return FeatureFlags()
