"""
Response schemas for the shorts API.

Field names are serialized in camelCase for the web frontend.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serializing field names as camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GenerateShortsResponse(CamelModel):
    """Response after a job has been queued."""

    job_id: str = Field(..., description="Identifier to poll for status")
    status: str = Field(..., description="Initial job status")


class ShortClipResponse(CamelModel):
    """A rendered short."""

    clip_index: int
    output_path: str
    start_seconds: float
    end_seconds: float
    text_placement: float = Field(
        ..., ge=0.0, le=1.0, description="Vertical fraction (0=top, 1=bottom) safe for captions"
    )


class JobStatusResponse(CamelModel):
    """Status of a shorts generation job."""

    job_id: str
    status: str
    video_id: Optional[str] = None
    video_title: Optional[str] = None
    video_length: Optional[float] = None
    shorts: list[str] = Field(default_factory=list)
    clips: list[ShortClipResponse] = Field(default_factory=list)
    success_count: int = 0
    error: Optional[str] = None


class HealthResponse(BaseModel):
    """Basic health check response."""

    status: str = Field(..., description="Service status")
    version: str = Field(..., description="Service version")


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool = Field(..., description="Whether the service can accept jobs")
    face_detector: str = Field(..., description="Face detector status")
    face_detector_backends: list[str] = Field(default_factory=list)
