"""
Centralized configuration for the Wine Lens backend.

All constants are defined here to avoid scattered magic numbers
and enable easy configuration management.
"""

import os
from pathlib import Path
from typing import Optional


class Config:
    """Application configuration constants."""

    # === Image Ingress ===
    MAX_IMAGE_SIZE_MB = 10
    MAX_IMAGE_SIZE_BYTES = MAX_IMAGE_SIZE_MB * 1024 * 1024

    # === Enrichment ===
    DEFAULT_SCORE = 85        # Fallback when the model couldn't score a wine
    DEFAULT_NO_BS_SCORE = 50  # Fallback in no-BS mode
    SUMMARY_UNAVAILABLE = "Summary unavailable"
    SUPPORTED_LOCALES = ("en", "fr", "zh", "ar")
    DEFAULT_LOCALE = "en"

    # === Job Pipeline ===
    NO_WINES_MESSAGE = "No wines detected in the image"
    MAX_JOB_ID_LENGTH = 128

    # === Environment ===
    @staticmethod
    def use_mocks() -> bool:
        """Check if mock mode is enabled."""
        return os.getenv("USE_MOCKS", "false").lower() == "true"

    @staticmethod
    def log_level() -> str:
        """Log level (DEBUG, INFO, WARNING, ERROR)."""
        return os.getenv("LOG_LEVEL", "INFO").upper()

    @staticmethod
    def is_dev() -> bool:
        """Local development mode (no GCS bucket configured)."""
        return not Config.gcs_image_bucket()

    # === Providers ===
    @staticmethod
    def anthropic_api_key() -> Optional[str]:
        """Get Anthropic API key from environment."""
        return os.getenv("ANTHROPIC_API_KEY")

    @staticmethod
    def serper_api_key() -> Optional[str]:
        """Get Serper API key (wine image search)."""
        return os.getenv("SERPER_API_KEY")

    @staticmethod
    def recognizer_provider() -> str:
        """Vision recognizer provider (litellm or claude). Default: litellm."""
        return os.getenv("RECOGNIZER_PROVIDER", "litellm").lower()

    @staticmethod
    def vision_model() -> str:
        """LiteLLM model id for recognition. Default: gemini/gemini-2.0-flash."""
        return os.getenv("VISION_MODEL", "gemini/gemini-2.0-flash")

    @staticmethod
    def claude_vision_model() -> str:
        """Claude model used when RECOGNIZER_PROVIDER=claude."""
        return os.getenv("CLAUDE_VISION_MODEL", "claude-3-5-haiku-latest")

    @staticmethod
    def vision_timeout() -> float:
        """Timeout in seconds for the recognition call. Default: 60.0."""
        try:
            return float(os.getenv("VISION_TIMEOUT", "60.0"))
        except ValueError:
            return 60.0

    @staticmethod
    def enrichment_model() -> str:
        """LiteLLM model id for per-wine enrichment."""
        return os.getenv("ENRICHMENT_MODEL", "gemini/gemini-2.0-flash")

    @staticmethod
    def enrichment_timeout() -> float:
        """Wall-clock budget in seconds for one wine's enrichment. Default: 30.0."""
        try:
            return float(os.getenv("ENRICHMENT_TIMEOUT", "30.0"))
        except ValueError:
            return 30.0

    # === Persistence ===
    @staticmethod
    def database_path() -> str:
        """Path to SQLite database file holding job records.
        Default: backend/winelens/data/jobs.db (relative to the package).
        Override with DATABASE_PATH env var for container deployments.
        """
        default = str(Path(__file__).parent / "data" / "jobs.db")
        return os.getenv("DATABASE_PATH", default)

    @staticmethod
    def gcs_image_bucket() -> str:
        """GCS bucket for uploaded images. Empty = local directory storage."""
        return os.getenv("GCS_IMAGE_BUCKET", "")

    @staticmethod
    def local_upload_dir() -> str:
        """Directory for uploaded images when GCS is not configured."""
        default = str(Path(__file__).parent / "data" / "uploads")
        return os.getenv("LOCAL_UPLOAD_DIR", default)

    @staticmethod
    def public_base_url() -> str:
        """Base URL used to build public links for locally stored uploads."""
        return os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/")

    # === Rate Limiting ===
    @staticmethod
    def rate_limit_max_requests() -> int:
        """Max /analyze requests per client per window. Default: 10."""
        try:
            return int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "10"))
        except ValueError:
            return 10

    @staticmethod
    def rate_limit_window_seconds() -> float:
        """Rate limit window length in seconds. Default: 60."""
        try:
            return float(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))
        except ValueError:
            return 60.0

    @staticmethod
    def rate_limit_sweep_seconds() -> float:
        """Interval between expired-window sweeps. Default: 300."""
        try:
            return float(os.getenv("RATE_LIMIT_SWEEP_SECONDS", "300"))
        except ValueError:
            return 300.0

    RATE_LIMIT_MAX_CLIENTS = 10_000  # Bound on tracked client addresses

    # === Job Runner ===
    @staticmethod
    def job_shutdown_grace_seconds() -> float:
        """How long shutdown waits for running jobs before cancelling them."""
        try:
            return float(os.getenv("JOB_SHUTDOWN_GRACE_SECONDS", "10"))
        except ValueError:
            return 10.0

    @staticmethod
    def mock_scenario() -> str:
        """Recognition scenario used when USE_MOCKS=true. Default: full_menu."""
        return os.getenv("MOCK_SCENARIO", "full_menu").lower()
