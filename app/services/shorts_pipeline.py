"""
Shorts Pipeline - Orchestrates one shorts generation job.

1. Video info (yt-dlp)
2. Segment planning (fixed 30s windows)
3. Video download
4. Segment normalization and caption placement (FFmpeg frames + face detection)
5. Sequential rendering to 1080x1920

Jobs for the same video are serialized so they never share files in use.
Completion policy is fail-fast: the first error of any kind marks the job
failed and stops the remaining segments. Clips already written stay on disk
but are not reported as the job's shorts.
"""

import asyncio
import logging
import os
from typing import Optional

from app.config import Settings, get_settings
from app.services.job_store import JobStatus, JobStore, ShortClip
from app.services.rendering_service import RenderingService
from app.services.segment_planner import Segment, SegmentPlanner
from app.services.text_placement import TextPlacementEstimator
from app.services.video_downloader import VideoDownloaderService

logger = logging.getLogger(__name__)


class ShortsPipeline:
    """
    Pipeline turning a video URL into vertical shorts.

    Segments are processed one at a time in planner order; each encode is
    CPU-bound and jobs already run concurrently with each other.
    """

    def __init__(
        self,
        job_store: JobStore,
        video_downloader: VideoDownloaderService,
        rendering_service: RenderingService,
        text_placement_estimator: Optional[TextPlacementEstimator] = None,
        segment_planner: Optional[SegmentPlanner] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.job_store = job_store
        self.video_downloader = video_downloader
        self.rendering_service = rendering_service
        self.text_placement_estimator = text_placement_estimator
        self.segment_planner = segment_planner or SegmentPlanner()
        self._video_locks: dict[str, asyncio.Lock] = {}

    def output_path_for(self, video_id: str, clip_number: int) -> str:
        return os.path.join(self.settings.output_folder, f"short_{video_id}_{clip_number}.mp4")

    def _video_lock(self, video_id: str) -> asyncio.Lock:
        """Lock serializing jobs that share a video's source, output and frame files."""
        lock = self._video_locks.get(video_id)
        if lock is None:
            lock = self._video_locks[video_id] = asyncio.Lock()
        return lock

    async def process_video(self, video_url: str, job_id: str) -> None:
        """
        Run a job to completion, recording progress and outcome in the job store.

        Jobs for the same video id run one after another from download to
        source cleanup. Never raises; failures are stored on the job record.
        """
        written = 0
        try:
            info = await self.video_downloader.get_video_info(video_url)
            self.job_store.update(
                job_id,
                video_id=info.id,
                video_title=info.title,
                video_length=info.duration_seconds,
            )

            candidates = self.segment_planner.plan(info.duration_seconds)

            lock = self._video_lock(info.id)
            if lock.locked():
                logger.info(f"Job {job_id} waiting for another job on video {info.id}")

            async with lock:
                video_path: Optional[str] = None
                try:
                    self.job_store.update(job_id, status=JobStatus.DOWNLOADING)
                    video_path = await self.video_downloader.download_video(video_url, info.id)

                    self.job_store.update(job_id, status=JobStatus.ANALYZING)
                    segments = [
                        self.segment_planner.normalize(candidate, info.duration_seconds)
                        for candidate in candidates
                    ]
                    placements = [await self._text_placement(video_path, segment) for segment in segments]

                    self.job_store.update(job_id, status=JobStatus.GENERATING)
                    clips: list[ShortClip] = []
                    for i, (segment, placement) in enumerate(zip(segments, placements), start=1):
                        logger.info(f"Generating short {i} from {segment.start:.1f}s to {segment.end:.1f}s")
                        result = await self.rendering_service.reframe(
                            video_path,
                            segment,
                            self.output_path_for(info.id, i),
                        )
                        written += 1
                        clips.append(ShortClip(
                            clip_index=i,
                            output_path=result.output_path,
                            start_seconds=segment.start,
                            end_seconds=segment.end,
                            text_placement=placement,
                        ))
                finally:
                    if video_path and not self.settings.keep_source_video:
                        self._remove_source(video_path)

            self.job_store.update(
                job_id,
                status=JobStatus.COMPLETED,
                shorts=[clip.output_path for clip in clips],
                clips=clips,
                success_count=len(clips),
            )
            logger.info(f"Job {job_id} completed with {len(clips)} shorts")

        except Exception as e:
            logger.error(f"Job {job_id} failed after {written} shorts: {e}")
            self.job_store.update(
                job_id,
                status=JobStatus.FAILED,
                shorts=[],
                clips=[],
                success_count=written,
                error=str(e),
            )


    async def _text_placement(self, video_path: str, segment: Segment) -> float:
        if self.text_placement_estimator is None or not self.settings.estimate_text_placement:
            return self.settings.text_placement_fallback
        return await self.text_placement_estimator.estimate(video_path, segment.start, segment.duration)

    def _remove_source(self, video_path: str) -> None:
        try:
            if os.path.exists(video_path):
                os.remove(video_path)
        except OSError as e:
            logger.warning(f"Could not remove temporary file {video_path}: {e}")
