"""
/analysis-result endpoint for Wine Lens.

Read-only polling view over a job record. Partial and final results
are normalized into one response shape.
"""

import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ..config import Config
from ..models import Job, JobStatus, JobStatusData, JobStatusResponse, PartialInfo, StatusErrorResponse
from ..services.job_store import JobStore, JobStoreError, get_job_store

logger = logging.getLogger(__name__)
router = APIRouter()

_JOB_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def validate_job_id(job_id: Optional[str]) -> Optional[str]:
    """Return an error message for a malformed job id, or None if valid."""
    if job_id is None or not job_id.strip():
        return "Missing jobId parameter"
    if len(job_id) > Config.MAX_JOB_ID_LENGTH:
        return f"jobId must be at most {Config.MAX_JOB_ID_LENGTH} characters"
    if not _JOB_ID_RE.match(job_id):
        return "jobId contains invalid characters"
    return None


def build_status_view(job: Job) -> JobStatusResponse:
    """
    Project a job record onto the polling response.

    wines: in-progress partial wines while processing, else final
    result wines, else legacy top-level wines, else [].
    """
    partial = job.partial_result
    result = job.result

    partial_info = None
    if job.status == JobStatus.PROCESSING and partial is not None and partial.wines:
        wines = partial.wines
        partial_info = PartialInfo(
            processed_count=partial.processed_count,
            total_count=partial.total_count,
        )
    elif result is not None:
        wines = result.wines
    elif job.wines is not None:
        wines = job.wines
    else:
        wines = []

    image_url = (
        job.image_url
        or (result.image_url if result else None)
        or (partial.image_url if partial else None)
    )
    completed_at = job.completed_at or (result.completed_at if result else None)

    return JobStatusResponse(
        status=job.status.value,
        data=JobStatusData(
            error=job.error,
            image_url=image_url,
            wines=wines,
            updated_at=job.updated_at,
            created_at=job.created_at,
            completed_at=completed_at,
            failed_at=job.failed_at,
            message=result.message if result else None,
            partial_info=partial_info,
        ),
    )


def _error(status_code: int, status: str, message: str, details: Optional[str] = None) -> JSONResponse:
    body = StatusErrorResponse(status=status, message=message, details=details)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


@router.get(
    "/analysis-result",
    response_model=JobStatusResponse,
    responses={400: {"model": StatusErrorResponse}, 404: {"model": StatusErrorResponse},
               500: {"model": StatusErrorResponse}},
)
async def get_analysis_result(
    job_id: Optional[str] = Query(None, alias="jobId"),
    store: JobStore = Depends(get_job_store),
):
    """Poll the status and (partial) results of an analysis job."""
    problem = validate_job_id(job_id)
    if problem:
        return _error(400, "not_found", problem)

    try:
        job = store.read(job_id)
    except JobStoreError as e:
        logger.error(f"[{job_id}] Failed to read job: {e}", exc_info=True)
        return _error(500, "failed", "Failed to fetch analysis result", details=str(e))

    if job is None:
        return _error(404, "not_found", f"No analysis job found with id {job_id}")

    return build_status_view(job)
