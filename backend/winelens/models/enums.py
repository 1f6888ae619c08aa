"""
Enums for type-safe string constants in Wine Lens.
"""

from enum import Enum


class JobStatus(str, Enum):
    """Lifecycle status of an analysis job."""
    UPLOADING = "uploading"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


TERMINAL_STATUSES = (JobStatus.COMPLETED, JobStatus.FAILED)


class RecognizerProvider(str, Enum):
    """Backend used by the vision recognizer."""
    LITELLM = "litellm"
    CLAUDE = "claude"
    MOCK = "mock"
