"""
FastAPI application entry point for the shorts generator.

Accepts a YouTube URL, cuts fixed 30 second windows from it, reframes each
window to vertical 9:16 and suggests a caption position that avoids faces.
Job status is exposed via polling.
"""

import logging
import os
import shutil
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.routers import health, shorts
from app.services.face_detector import FaceDetector, FaceDetectorConfig
from app.services.frame_extractor import FrameExtractor
from app.services.job_store import InMemoryJobStore
from app.services.rendering_service import RenderingService
from app.services.segment_planner import SegmentPlanner
from app.services.shorts_pipeline import ShortsPipeline
from app.services.text_placement import TextPlacementEstimator
from app.services.video_downloader import VideoDownloaderService

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for startup and shutdown events.
    Loads the face detector and wires the pipeline on startup.
    """
    settings = get_settings()
    logger.info("Starting shorts generator...")

    os.makedirs(settings.output_folder, exist_ok=True)
    os.makedirs(settings.temp_directory, exist_ok=True)
    logger.info(f"Output folder: {settings.output_folder}, temp directory: {settings.temp_directory}")

    _verify_external_tools()

    logger.info("Loading face detection models...")
    face_detector = FaceDetector(FaceDetectorConfig(
        confidence_threshold=settings.face_confidence_threshold,
    ))
    if face_detector.is_ready():
        logger.info("Face detection models loaded successfully")
    else:
        logger.warning("Proceeding without face detection")

    job_store = InMemoryJobStore()
    pipeline = ShortsPipeline(
        job_store=job_store,
        video_downloader=VideoDownloaderService(settings),
        rendering_service=RenderingService(settings, verify_ffmpeg=False),
        text_placement_estimator=TextPlacementEstimator(
            face_detector=face_detector,
            frame_extractor=FrameExtractor(settings.temp_directory),
            settings=settings,
        ),
        segment_planner=SegmentPlanner(settings.min_short_length, settings.max_short_length),
        settings=settings,
    )

    # Store in app state for dependency injection
    app.state.face_detector = face_detector
    app.state.job_store = job_store
    app.state.shorts_pipeline = pipeline

    shorts.get_job_semaphore()
    logger.info(f"Max concurrent jobs: {settings.max_concurrent_jobs}")
    logger.info(f"Supports videos with minimum {settings.min_short_length:g} second duration")
    logger.info(
        f"Will create shorts for 0-{settings.min_short_length:g}s "
        f"and {settings.min_short_length:g}-{settings.max_short_length:g}s"
    )

    yield

    logger.info("Shutting down shorts generator...")
    face_detector.close()

    if os.path.isdir(settings.temp_directory):
        try:
            shutil.rmtree(settings.temp_directory)
        except OSError as e:
            logger.warning(f"Failed to clean up temp directory: {e}")

    logger.info("Shutdown complete")


def _verify_external_tools():
    """
    Check for the FFmpeg binaries at startup.

    ffmpeg is required for every clip and stops startup when missing. Without
    ffprobe, caption placement assumes a 1080x1920 frame.

    Raises:
        RuntimeError: If ffmpeg is not on PATH
    """
    if not shutil.which("ffmpeg"):
        logger.error("✗ FFmpeg for clip rendering and frame extraction NOT FOUND")
        raise RuntimeError("ffmpeg not found in PATH")
    logger.info("✓ FFmpeg for clip rendering and frame extraction available")

    if shutil.which("ffprobe"):
        logger.info("✓ FFprobe for video resolution available")
    else:
        logger.warning("✗ FFprobe NOT FOUND - caption placement will assume 1080x1920 frames")


app = FastAPI(
    title="YouTube Shorts Generator",
    description="""
Cuts a YouTube video into vertical 9:16 shorts.

## Usage

1. Submit a video: `POST /api/shorts/generate` with `{"videoUrl": "..."}`
2. Poll status: `GET /api/shorts/status/{jobId}`
3. List jobs: `GET /api/shorts`
    """,
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, tags=["Health"])
app.include_router(shorts.router)


@app.get("/")
async def root():
    """Root endpoint with basic info."""
    return {
        "service": settings.app_name,
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
    }


if __name__ == "__main__":
    logger.info(f"YouTube Short Generator API running on port {settings.port}")
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
