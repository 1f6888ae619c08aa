"""
Job Store.

Durable SQLite record per analysis job, keyed by job id.

- create(): insert a new record
- patch(): field-level merge (unset fields keep their stored value)
- read(): record or None when the id is unknown

Terminal jobs (completed / failed) are immutable: patching one raises
JobTerminalError. image_url is write-once.
"""

import json
import logging
import sqlite3
from datetime import datetime
from typing import Any, Optional

from ..db import SQLiteRepository, ensure_schema
from ..models import Job, JobPatch, JobResult, JobStatus, PartialResult, Wine, utc_now

logger = logging.getLogger(__name__)


class JobStoreError(Exception):
    """Backing store unreachable or failed."""


class JobNotFoundError(JobStoreError):
    """Patch targeted a job id with no record."""


class JobTerminalError(JobStoreError):
    """Patch targeted a job that already reached a terminal status."""


# Column name for each JobPatch field
_PATCH_COLUMNS = {
    "status": "status",
    "image_url": "image_url",
    "error": "error",
    "result": "result",
    "partial_result": "partial_result",
    "completed_at": "completed_at",
    "failed_at": "failed_at",
}

_TERMINAL_VALUES = (JobStatus.COMPLETED.value, JobStatus.FAILED.value)


def _to_column(value: Any) -> Any:
    """Convert a model value to its SQLite representation."""
    if value is None:
        return None
    if isinstance(value, JobStatus):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (JobResult, PartialResult)):
        return value.model_dump_json(by_alias=True)
    return value


def _load_json(raw: Optional[str]) -> Any:
    if raw is None:
        return None
    return json.loads(raw)


class JobStore(SQLiteRepository):
    """Thread-safe SQLite repository for analysis jobs."""

    def __init__(self, db_path: Optional[str] = None, init_schema: bool = True):
        super().__init__(db_path)
        if init_schema:
            ensure_schema(self.db_path)

    def create(
        self,
        job_id: str,
        status: JobStatus = JobStatus.UPLOADING,
        locale: str = "en",
        request_id: Optional[str] = None,
        no_bs_mode: bool = False,
        image_url: Optional[str] = None,
        wines: Optional[list[Wine]] = None,
    ) -> Job:
        """
        Create a job record.

        Args:
            job_id: Unique job id (UUID)
            status: Initial status, normally UPLOADING
            locale: Locale for generated text (immutable)
            request_id: Id of the submitting request
            no_bs_mode: Blunt critic mode (immutable)
            image_url: Image URL if already known
            wines: Legacy top-level wines (backward-compatible records only)

        Returns:
            The stored Job
        """
        now = utc_now()
        wines_json = None
        if wines is not None:
            wines_json = json.dumps([w.model_dump(mode="json", by_alias=True) for w in wines])

        try:
            with self._transaction() as cursor:
                cursor.execute("""
                    INSERT INTO jobs
                        (id, status, request_id, locale, no_bs_mode, image_url,
                         wines, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    job_id,
                    status.value,
                    request_id,
                    locale,
                    no_bs_mode,
                    image_url,
                    wines_json,
                    now.isoformat(),
                    now.isoformat(),
                ))
        except sqlite3.Error as e:
            raise JobStoreError(f"Failed to create job {job_id}: {e}") from e

        logger.debug(f"[{job_id}] Job created with status={status.value}")
        return Job(
            id=job_id,
            status=status,
            request_id=request_id,
            locale=locale,
            no_bs_mode=no_bs_mode,
            image_url=image_url,
            wines=wines,
            created_at=now,
            updated_at=now,
        )

    def patch(self, job_id: str, patch: JobPatch) -> None:
        """
        Merge the fields set on `patch` into the stored record.

        updated_at is always refreshed. image_url keeps its first
        non-null value.

        Raises:
            JobNotFoundError: no record for job_id
            JobTerminalError: record already completed or failed
            JobStoreError: backing store failure
        """
        fields = patch.set_fields()
        assignments = ["updated_at = ?"]
        params: list[Any] = [utc_now().isoformat()]

        for name, value in fields.items():
            column = _PATCH_COLUMNS[name]
            if column == "image_url":
                assignments.append("image_url = COALESCE(image_url, ?)")
            else:
                assignments.append(f"{column} = ?")
            params.append(_to_column(value))

        params.extend([job_id, *_TERMINAL_VALUES])

        try:
            with self._transaction() as cursor:
                cursor.execute(
                    f"UPDATE jobs SET {', '.join(assignments)} "
                    f"WHERE id = ? AND status NOT IN (?, ?)",
                    params,
                )
                updated = cursor.rowcount
        except sqlite3.Error as e:
            raise JobStoreError(f"Failed to patch job {job_id}: {e}") from e

        if updated == 0:
            existing = self.read(job_id)
            if existing is None:
                raise JobNotFoundError(f"Job {job_id} not found")
            raise JobTerminalError(
                f"Job {job_id} is already {existing.status.value}"
            )

    def read(self, job_id: str) -> Optional[Job]:
        """
        Read a job record.

        Returns:
            Job, or None if no record exists for job_id

        Raises:
            JobStoreError: backing store failure
        """
        try:
            conn = self._get_connection()
            row = conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
        except sqlite3.Error as e:
            raise JobStoreError(f"Failed to read job {job_id}: {e}") from e

        if row is None:
            return None
        return self._row_to_job(row)

    def ping(self) -> None:
        """Verify the backing store is reachable. Raises JobStoreError."""
        try:
            self._get_connection().execute("SELECT 1 FROM jobs LIMIT 1").fetchall()
        except sqlite3.Error as e:
            raise JobStoreError(f"Job store unreachable: {e}") from e

    def _row_to_job(self, row: sqlite3.Row) -> Job:
        return Job(
            id=row["id"],
            status=JobStatus(row["status"]),
            request_id=row["request_id"],
            locale=row["locale"],
            no_bs_mode=bool(row["no_bs_mode"]),
            image_url=row["image_url"],
            error=row["error"],
            result=_load_json(row["result"]),
            partial_result=_load_json(row["partial_result"]),
            wines=_load_json(row["wines"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            completed_at=row["completed_at"],
            failed_at=row["failed_at"],
        )


# Singleton store instance
_job_store: Optional[JobStore] = None


def get_job_store() -> JobStore:
    """Get or create job store singleton."""
    global _job_store
    if _job_store is None:
        _job_store = JobStore()
    return _job_store
