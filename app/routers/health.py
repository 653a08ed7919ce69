"""
Health check endpoints for the shorts generator.
"""

from fastapi import APIRouter, Request

from app.schemas.responses import HealthResponse, ReadinessResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Basic health check endpoint.

    Returns 200 if the service is running.
    """
    return HealthResponse(status="healthy", version="1.0.0")


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(request: Request):
    """
    Readiness check endpoint.

    Jobs are accepted without a face detector (captions fall back to the
    default position), so readiness only requires the pipeline.
    """
    face_detector = getattr(request.app.state, "face_detector", None)
    pipeline = getattr(request.app.state, "shorts_pipeline", None)

    face_ready = face_detector is not None and face_detector.is_ready()
    backends = face_detector.get_model_info()["backends"] if face_detector is not None else []

    return ReadinessResponse(
        ready=pipeline is not None,
        face_detector="ready" if face_ready else "not_loaded",
        face_detector_backends=backends,
    )
