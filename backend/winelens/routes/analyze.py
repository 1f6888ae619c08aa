"""
/analyze endpoint for Wine Lens.

Validates the image, creates the job record (uploading) and hands the
rest of the pipeline to a background task. Returns 202 immediately.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ..feature_flags import FeatureFlags, get_feature_flags
from ..models import AnalyzeAccepted, AnalyzeError, AnalyzeRequest, JobPatch, JobStatus, utc_now
from ..services.blob_storage import BlobStorage, get_blob_storage
from ..services.enrichment import Enricher, get_enricher, normalize_locale
from ..services.image_ingress import ImageValidationError, decode_image
from ..services.job_runner import JobRunner, get_job_runner
from ..services.job_store import JobStore, JobStoreError, get_job_store
from ..services.orchestrator import JobOrchestrator
from ..services.rate_limiter import RateLimiter, get_rate_limiter
from ..services.vision_recognizer import VisionRecognizer, get_recognizer

logger = logging.getLogger(__name__)
router = APIRouter()


def client_address(request: Request) -> str:
    """Client IP, preferring the first X-Forwarded-For hop (Cloud Run, proxies)."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client:
        return request.client.host
    return "unknown"


def enforce_rate_limit(
    request: Request,
    flags: FeatureFlags = Depends(get_feature_flags),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> None:
    """Reject with 429 once a client exceeds its window."""
    if not flags.feature_rate_limit:
        return

    client = client_address(request)
    decision = limiter.check(client)
    if not decision.allowed:
        logger.warning(f"Rate limit exceeded for {client}")
        raise HTTPException(
            status_code=429,
            detail="Too many requests. Please try again later.",
            headers={"Retry-After": str(decision.retry_after)},
        )


def _error(status_code: int, message: str, job_id: Optional[str] = None) -> JSONResponse:
    body = AnalyzeError(message=message, job_id=job_id)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


@router.post(
    "/analyze",
    status_code=202,
    response_model=AnalyzeAccepted,
    responses={400: {"model": AnalyzeError}, 429: {}, 500: {"model": AnalyzeError}},
    dependencies=[Depends(enforce_rate_limit)],
)
async def analyze(
    request: Request,
    store: JobStore = Depends(get_job_store),
    storage: BlobStorage = Depends(get_blob_storage),
    recognizer: VisionRecognizer = Depends(get_recognizer),
    enricher: Enricher = Depends(get_enricher),
    runner: JobRunner = Depends(get_job_runner),
    flags: FeatureFlags = Depends(get_feature_flags),
):
    """
    Submit an image for analysis.

    Body: {"image": "<base64 or data URL>", "locale": "en", "noBsMode": false}

    Returns:
        202 {"jobId", "status": "processing", "requestId"} with X-Job-Id header
    """
    request_id = str(uuid.uuid4())

    try:
        payload = await request.json()
        body = AnalyzeRequest.model_validate(payload)
    except (ValueError, ValidationError) as e:
        logger.info(f"[{request_id}] Rejected malformed request body: {e}")
        return _error(400, "Invalid request body. Expected JSON with an 'image' field")

    try:
        image = decode_image(body.image)
    except ImageValidationError as e:
        logger.info(f"[{request_id}] Rejected image: {e}")
        return _error(400, str(e))

    job_id = str(uuid.uuid4())
    locale = normalize_locale(body.locale)

    try:
        store.create(
            job_id,
            status=JobStatus.UPLOADING,
            locale=locale,
            request_id=request_id,
            no_bs_mode=body.no_bs_mode,
        )
    except JobStoreError as e:
        logger.error(f"[{request_id}] Failed to create job: {e}", exc_info=True)
        return _error(500, "Failed to create analysis job")

    orchestrator = JobOrchestrator(
        store=store,
        storage=storage,
        recognizer=recognizer,
        enricher=enricher,
        partial_results=flags.feature_partial_results,
    )

    try:
        runner.submit(
            job_id,
            orchestrator.run(
                job_id,
                image,
                locale=locale,
                no_bs_mode=body.no_bs_mode,
                request_id=request_id,
            ),
        )
    except Exception as e:
        logger.error(f"[{request_id}] [{job_id}] Failed to start job: {e}", exc_info=True)
        try:
            store.patch(job_id, JobPatch(status=JobStatus.FAILED, error=str(e), failed_at=utc_now()))
        except JobStoreError:
            logger.error(f"[{request_id}] [{job_id}] Could not mark job failed", exc_info=True)
        return _error(500, "Failed to start analysis job", job_id=job_id)

    logger.info(
        f"[{request_id}] [{job_id}] Accepted {image.content_type} "
        f"{image.width}x{image.height} ({image.size_bytes} bytes), locale={locale}"
    )

    accepted = AnalyzeAccepted(
        job_id=job_id,
        status=JobStatus.PROCESSING.value,
        request_id=request_id,
    )
    return JSONResponse(
        status_code=202,
        content=accepted.model_dump(by_alias=True),
        headers={"X-Job-Id": job_id},
    )
