"""
Pydantic schemas for request/response models.
"""

from app.schemas.requests import GenerateShortsRequest
from app.schemas.responses import (
    GenerateShortsResponse,
    HealthResponse,
    JobStatusResponse,
    ReadinessResponse,
    ShortClipResponse,
)

__all__ = [
    "GenerateShortsRequest",
    "GenerateShortsResponse",
    "JobStatusResponse",
    "ShortClipResponse",
    "HealthResponse",
    "ReadinessResponse",
]
