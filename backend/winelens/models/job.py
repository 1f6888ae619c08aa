"""
Pydantic models for the durable job record.

Wire and storage format is camelCase (imageUrl, processedCount, ...);
Python attributes are snake_case.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .enums import JobStatus


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base model serializing with camelCase aliases."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WineCandidate(CamelModel):
    """A wine identified by the vision recognizer, before enrichment."""
    name: str = Field(..., min_length=1, description="Wine name")
    vintage: Optional[str] = Field(None, description="Vintage year")
    producer: Optional[str] = Field(None, description="Producer or winery")
    region: Optional[str] = Field(None, description="Region or appellation")
    varietal: Optional[str] = Field(None, description="Grape varietal(s)")
    price: Optional[str] = Field(None, description="Price as printed on a menu or shelf tag")

    def describe(self) -> str:
        """One-line label used in log lines."""
        parts = [self.vintage, self.producer, self.name]
        return " ".join(p for p in parts if p).strip()


class Wine(WineCandidate):
    """An analyzed wine within a job result."""
    score: int = Field(..., description="Quality score (nominally 0-100)")
    summary: str = Field("", description="Narrative tasting summary")
    image_url: Optional[str] = Field(None, description="The job's uploaded image")
    processing_error: Optional[str] = Field(
        None,
        description="Set when enrichment failed for this wine"
    )


class JobResult(CamelModel):
    """Final payload of a completed job."""
    wines: list[Wine] = Field(default_factory=list)
    image_url: Optional[str] = None
    status: str = JobStatus.COMPLETED.value
    completed_at: Optional[datetime] = None
    message: Optional[str] = None


class PartialResult(CamelModel):
    """Overwritable snapshot of in-progress results."""
    wines: list[Wine] = Field(default_factory=list)
    image_url: Optional[str] = None
    status: str = JobStatus.PROCESSING.value
    partial_result: bool = True
    processed_count: int = Field(0, ge=0)
    total_count: int = Field(0, ge=0)


class Job(CamelModel):
    """Durable record of one analysis job."""
    id: str
    status: JobStatus
    request_id: Optional[str] = None
    locale: str = "en"
    no_bs_mode: bool = False
    image_url: Optional[str] = None
    error: Optional[str] = None
    result: Optional[JobResult] = None
    partial_result: Optional[PartialResult] = None
    # Legacy records stored wines at the top level
    wines: Optional[list[Wine]] = None
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


class JobPatch(CamelModel):
    """
    Field-level update for a job record.

    Only fields explicitly set are written; everything else keeps
    its stored value.
    """
    status: Optional[JobStatus] = None
    image_url: Optional[str] = None
    error: Optional[str] = None
    result: Optional[JobResult] = None
    partial_result: Optional[PartialResult] = None
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None

    def set_fields(self) -> dict:
        """Fields explicitly provided by the caller."""
        return {name: getattr(self, name) for name in self.model_fields_set}
