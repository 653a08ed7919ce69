"""
Shorts API Router - Submit videos and poll job status.
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status

from app.auth import verify_api_key
from app.config import get_settings
from app.schemas.requests import GenerateShortsRequest
from app.schemas.responses import GenerateShortsResponse, JobStatusResponse, ShortClipResponse
from app.services.job_store import JobStatus, JobStore, ShortsJob, generate_job_id
from app.services.shorts_pipeline import ShortsPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/shorts", tags=["Shorts"])

# Semaphore for limiting concurrent jobs
_job_semaphore: Optional[asyncio.Semaphore] = None


def get_job_semaphore() -> asyncio.Semaphore:
    """Get or create job semaphore."""
    global _job_semaphore
    if _job_semaphore is None:
        _job_semaphore = asyncio.Semaphore(get_settings().max_concurrent_jobs)
    return _job_semaphore


# ============================================================================
# Dependencies
# ============================================================================


async def get_job_store(request: Request) -> JobStore:
    """Get the job store from app state (initialized at startup)."""
    if not hasattr(request.app.state, "job_store"):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Job store not initialized",
        )
    return request.app.state.job_store


async def get_shorts_pipeline(request: Request) -> ShortsPipeline:
    """Get the shorts pipeline from app state (initialized at startup)."""
    if not hasattr(request.app.state, "shorts_pipeline"):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Shorts pipeline not initialized",
        )
    return request.app.state.shorts_pipeline


def to_status_response(job: ShortsJob) -> JobStatusResponse:
    return JobStatusResponse(
        job_id=job.job_id,
        status=job.status.value,
        video_id=job.video_id,
        video_title=job.video_title,
        video_length=job.video_length,
        shorts=job.shorts,
        clips=[
            ShortClipResponse(
                clip_index=c.clip_index,
                output_path=c.output_path,
                start_seconds=c.start_seconds,
                end_seconds=c.end_seconds,
                text_placement=c.text_placement,
            )
            for c in job.clips
        ],
        success_count=job.success_count,
        error=job.error,
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.post("/generate", response_model=GenerateShortsResponse)
async def generate_shorts(
    request: GenerateShortsRequest,
    background_tasks: BackgroundTasks,
    job_store: JobStore = Depends(get_job_store),
    pipeline: ShortsPipeline = Depends(get_shorts_pipeline),
    _: None = Depends(verify_api_key),
) -> GenerateShortsResponse:
    """
    Queue a YouTube video for shorts generation.

    The job is processed in the background. Poll GET /status/{job_id} for progress.
    """
    if not request.video_url:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="videoUrl is required",
        )
    if request.youtube_video_id() is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid YouTube URL",
        )

    job_id = generate_job_id()
    job_store.set(ShortsJob(job_id=job_id, status=JobStatus.QUEUED))

    background_tasks.add_task(_process_job_background, pipeline, request.video_url, job_id)

    logger.info(f"Job {job_id} queued for video: {request.video_url[:100]}")
    return GenerateShortsResponse(job_id=job_id, status=JobStatus.QUEUED.value)


@router.get("/status/{job_id}", response_model=JobStatusResponse)
async def get_job_status(
    job_id: str,
    job_store: JobStore = Depends(get_job_store),
) -> JobStatusResponse:
    """Get the status of a shorts job."""
    job = job_store.get(job_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job not found",
        )
    return to_status_response(job)


@router.get("", response_model=list[JobStatusResponse])
async def list_jobs(
    status_filter: Optional[str] = None,
    job_store: JobStore = Depends(get_job_store),
) -> list[JobStatusResponse]:
    """
    List all jobs known to this process.

    Args:
        status_filter: Only return jobs with this status
    """
    return [
        to_status_response(job)
        for job in job_store.list()
        if not status_filter or job.status.value == status_filter
    ]


# ============================================================================
# Background Processing
# ============================================================================


async def _process_job_background(pipeline: ShortsPipeline, video_url: str, job_id: str) -> None:
    """Process a job in the background with concurrency control."""
    async with get_job_semaphore():
        await pipeline.process_video(video_url, job_id)
