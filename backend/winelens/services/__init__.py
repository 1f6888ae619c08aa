from .job_store import JobStore, get_job_store
from .job_runner import JobRunner, get_job_runner
from .orchestrator import JobOrchestrator
from .vision_recognizer import get_recognizer
from .enrichment import get_enricher

__all__ = [
    "JobStore",
    "get_job_store",
    "JobRunner",
    "get_job_runner",
    "JobOrchestrator",
    "get_recognizer",
    "get_enricher",
]
