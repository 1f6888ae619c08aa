from .enums import (
    JobStatus,
    RecognizerProvider,
    TERMINAL_STATUSES,
)
from .job import (
    Job,
    JobPatch,
    JobResult,
    PartialResult,
    Wine,
    WineCandidate,
    utc_now,
)
from .response import (
    AnalyzeAccepted,
    AnalyzeError,
    AnalyzeRequest,
    ImageSearchResponse,
    JobStatusData,
    JobStatusResponse,
    PartialInfo,
    StatusErrorResponse,
)

__all__ = [
    "JobStatus",
    "RecognizerProvider",
    "TERMINAL_STATUSES",
    "Job",
    "JobPatch",
    "JobResult",
    "PartialResult",
    "Wine",
    "WineCandidate",
    "utc_now",
    "AnalyzeAccepted",
    "AnalyzeError",
    "AnalyzeRequest",
    "ImageSearchResponse",
    "JobStatusData",
    "JobStatusResponse",
    "PartialInfo",
    "StatusErrorResponse",
]
