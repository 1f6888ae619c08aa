"""
Pydantic models for the Wine Lens API requests and responses.

API Contract:
POST /analyze
  -> 202 {"jobId": "...", "status": "processing", "requestId": "..."}

GET /analysis-result?jobId=...
  -> 200 {
       "success": true,
       "status": "processing",
       "data": {
         "error": null,
         "imageUrl": "https://...",
         "wines": [{"name": "...", "score": 91, "summary": "...", ...}],
         "updatedAt": "...", "createdAt": "...", "completedAt": null,
         "partialInfo": {"processedCount": 1, "totalCount": 3, "partialResult": true}
       }
     }
"""

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, Field

from .job import CamelModel, Wine


class AnalyzeRequest(CamelModel):
    """Body of POST /analyze."""
    image: Optional[str] = Field(None, description="Base64 image or data URL")
    locale: Optional[str] = Field(None, description="Locale for generated text (en, fr, zh, ar)")
    no_bs_mode: bool = Field(
        False,
        validation_alias=AliasChoices("noBsMode", "noBSMode", "no_bs_mode"),
        description="Blunt critic mode for summaries",
    )


class AnalyzeAccepted(CamelModel):
    """202 response after a job was accepted."""
    job_id: str
    status: str
    request_id: str


class AnalyzeError(CamelModel):
    """Error response from POST /analyze."""
    status: str = "error"
    message: str
    job_id: Optional[str] = None


class PartialInfo(CamelModel):
    """Progress counters while a job is still processing."""
    processed_count: int
    total_count: int
    partial_result: bool = True


class JobStatusData(CamelModel):
    """Normalized view over a job record for polling clients."""
    error: Optional[str] = None
    image_url: Optional[str] = None
    wines: list[Wine] = Field(default_factory=list)
    updated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    message: Optional[str] = None
    partial_info: Optional[PartialInfo] = None


class JobStatusResponse(CamelModel):
    """200 response from GET /analysis-result."""
    success: bool = True
    status: str
    data: JobStatusData


class StatusErrorResponse(CamelModel):
    """Non-200 response from GET /analysis-result."""
    success: bool = False
    status: str
    message: str
    details: Optional[str] = None


class ImageSearchResponse(CamelModel):
    """Response from GET /search-wine-image."""
    success: bool
    image_url: Optional[str] = None
    error: Optional[str] = None
