"""
Job orchestrator: drives one analysis job end to end.

State machine: uploading -> processing -> {completed, failed}

1. (submit handler) job created as uploading
2. upload image, write processing + imageUrl
3. recognize wines; none -> completed with an empty list and a message
4. enrich each wine sequentially, writing partialResult after every item
5. a failed item is still appended with the fallback score and processingError
6. write completed with the full list
7. any exception in 2-6 becomes failed with error + failedAt

The orchestrator is the only writer for a job while it runs.
run() never raises, except CancelledError after a best-effort failed write.
"""

import asyncio
import logging
from typing import Optional

from ..config import Config
from ..models import JobPatch, JobResult, JobStatus, PartialResult, Wine, WineCandidate, utc_now
from .blob_storage import BlobStorage
from .enrichment import Enricher, EnrichmentResult, fallback_result
from .image_ingress import DecodedImage, blob_key_for_job
from .job_store import JobStore, JobStoreError
from .vision_recognizer import VisionRecognizer

logger = logging.getLogger(__name__)


def _error_message(error: BaseException) -> str:
    return str(error) or type(error).__name__


class JobOrchestrator:
    """Runs the upload -> recognize -> enrich pipeline for a job."""

    def __init__(
        self,
        store: JobStore,
        storage: BlobStorage,
        recognizer: VisionRecognizer,
        enricher: Enricher,
        partial_results: bool = True,
    ):
        self.store = store
        self.storage = storage
        self.recognizer = recognizer
        self.enricher = enricher
        self.partial_results = partial_results

    async def run(
        self,
        job_id: str,
        image: DecodedImage,
        locale: str = Config.DEFAULT_LOCALE,
        no_bs_mode: bool = False,
        request_id: Optional[str] = None,
    ) -> None:
        """
        Process a job created in the uploading state.

        Args:
            job_id: Existing job id
            image: Validated image from ingress
            locale: Locale for generated text
            no_bs_mode: Blunt critic mode
            request_id: Submitting request id (log prefix)
        """
        prefix = f"[{request_id}] [{job_id}]" if request_id else f"[{job_id}]"

        try:
            image_url = await self.storage.upload(
                blob_key_for_job(job_id, image),
                image.data,
                image.content_type,
            )
            self.store.patch(job_id, JobPatch(status=JobStatus.PROCESSING, image_url=image_url))
            logger.info(f"{prefix} Image uploaded ({image.size_bytes} bytes), processing")

            candidates = await self.recognizer.recognize(image_url, locale)
            if not candidates:
                logger.info(f"{prefix} No wines detected")
                self._complete(job_id, [], image_url, message=Config.NO_WINES_MESSAGE)
                return

            logger.info(f"{prefix} Recognized {len(candidates)} wine(s), enriching")
            wines = await self._enrich_all(
                job_id, prefix, candidates, image_url, locale, no_bs_mode
            )

            self._complete(job_id, wines, image_url)
            failed_items = sum(1 for w in wines if w.processing_error)
            logger.info(
                f"{prefix} Completed with {len(wines)} wine(s)"
                + (f", {failed_items} without enrichment" if failed_items else "")
            )

        except asyncio.CancelledError:
            logger.warning(f"{prefix} Job cancelled before completion")
            self._fail(job_id, prefix, "Job interrupted by server shutdown")
            raise
        except Exception as e:
            logger.error(f"{prefix} Job failed: {e}", exc_info=True)
            self._fail(job_id, prefix, _error_message(e))

    async def _enrich_all(
        self,
        job_id: str,
        prefix: str,
        candidates: list[WineCandidate],
        image_url: str,
        locale: str,
        no_bs_mode: bool,
    ) -> list[Wine]:
        """Enrich candidates in order, persisting progress after each one."""
        wines: list[Wine] = []
        total = len(candidates)

        for index, candidate in enumerate(candidates, start=1):
            try:
                enrichment = await self.enricher.enrich(candidate, locale, no_bs_mode)
            except Exception as e:
                logger.warning(f"{prefix} Enrichment raised for {candidate.describe()!r}: {e}", exc_info=True)
                enrichment = fallback_result(_error_message(e), no_bs_mode)

            wines.append(self._to_wine(candidate, enrichment, image_url))

            if self.partial_results:
                self.store.patch(job_id, JobPatch(partial_result=PartialResult(
                    wines=list(wines),
                    image_url=image_url,
                    processed_count=index,
                    total_count=total,
                )))
            logger.debug(f"{prefix} Enriched {index}/{total}: {candidate.describe()}")

        return wines

    @staticmethod
    def _to_wine(candidate: WineCandidate, enrichment: EnrichmentResult, image_url: str) -> Wine:
        return Wine(
            **candidate.model_dump(),
            score=enrichment.score,
            summary=enrichment.summary,
            image_url=image_url,
            processing_error=enrichment.error,
        )

    def _complete(
        self,
        job_id: str,
        wines: list[Wine],
        image_url: str,
        message: Optional[str] = None,
    ) -> None:
        completed_at = utc_now()
        self.store.patch(job_id, JobPatch(
            status=JobStatus.COMPLETED,
            result=JobResult(
                wines=wines,
                image_url=image_url,
                completed_at=completed_at,
                message=message,
            ),
            completed_at=completed_at,
        ))

    def _fail(self, job_id: str, prefix: str, error: str) -> None:
        """Best-effort terminal failed write."""
        try:
            self.store.patch(job_id, JobPatch(
                status=JobStatus.FAILED,
                error=error,
                failed_at=utc_now(),
            ))
        except JobStoreError as e:
            logger.error(f"{prefix} Could not record failure ({error}): {e}")
