"""
Services for the shorts generator.

Includes:
- Core clip logic (segment planning, reframing, caption placement)
- Collaborators (face detection, frame extraction, video download)
- Job orchestration (job store, pipeline)
"""

from app.services.face_detector import FaceDetector, FaceDetectorConfig
from app.services.frame_extractor import FrameExtractor
from app.services.job_store import InMemoryJobStore, JobStore
from app.services.rendering_service import RenderingService
from app.services.segment_planner import SegmentPlanner
from app.services.shorts_pipeline import ShortsPipeline
from app.services.text_placement import TextPlacementEstimator
from app.services.video_downloader import VideoDownloaderService

__all__ = [
    # Core
    "SegmentPlanner",
    "RenderingService",
    "TextPlacementEstimator",
    # Collaborators
    "FaceDetector",
    "FaceDetectorConfig",
    "FrameExtractor",
    "VideoDownloaderService",
    # Orchestration
    "JobStore",
    "InMemoryJobStore",
    "ShortsPipeline",
]
