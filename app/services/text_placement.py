"""
Text Placement Estimator - Finds a vertical position where captions avoid faces.

Samples up to five frames across a clip, locates faces in each one and
derives a single placement fraction (0 = top, 1 = bottom) from the average
vertical face position. Captioning is cosmetic: every failure path returns
the fallback placement instead of raising.
"""

import asyncio
import logging
import math
from typing import Optional

import numpy as np

from app.config import Settings, get_settings
from app.services.face_detector import FaceDetector, FacePositionError, RelativeFacePosition
from app.services.frame_extractor import FrameExtractionError, FrameExtractor

logger = logging.getLogger(__name__)


class TextPlacementEstimator:
    """
    Estimates a caption-safe vertical placement fraction for a clip.

    Frame extraction and detection run sequentially in the default executor.
    Two estimations for the same video must not overlap, since temp frame
    names only encode the video name and timestamp.
    """

    def __init__(
        self,
        face_detector: FaceDetector,
        frame_extractor: FrameExtractor,
        settings: Optional[Settings] = None,
    ):
        self.face_detector = face_detector
        self.frame_extractor = frame_extractor
        self.settings = settings or get_settings()

    @property
    def fallback(self) -> float:
        return self.settings.text_placement_fallback

    def sample_timestamps(self, segment_start: float, segment_duration: float) -> list[float]:
        """
        Evenly spaced sample times across [segment_start, segment_start + segment_duration).

        Clips shorter than the sample count get one sample per whole second,
        which is zero for clips under one second.
        """
        sample_count = min(self.settings.text_placement_max_samples, math.floor(segment_duration))
        if sample_count <= 0:
            return []
        return [segment_start + (i * segment_duration) / sample_count for i in range(sample_count)]

    def placement_from_positions(self, positions: list[RelativeFacePosition]) -> float:
        """
        Turn collected face positions into a clamped placement fraction.

        Every face counts once; no deduplication across or within frames.
        """
        if not positions:
            return self.fallback

        avg_y = float(np.mean([p.y for p in positions]))
        placement = avg_y - self.settings.text_placement_face_offset
        return max(self.settings.text_placement_min, min(self.settings.text_placement_max, placement))

    async def estimate(
        self,
        video_path: str,
        segment_start: float,
        segment_duration: float,
    ) -> float:
        """
        Estimate the placement fraction for one clip.

        Args:
            video_path: Source video file
            segment_start: Clip start in seconds
            segment_duration: Clip length in seconds

        Returns:
            Placement fraction in [text_placement_min, text_placement_max]
        """
        if not self.face_detector.is_ready():
            logger.info(f"Face detection unavailable, using default text position {self.fallback}")
            return self.fallback

        loop = asyncio.get_event_loop()
        try:
            return await loop.run_in_executor(
                None,
                self._estimate_sync,
                video_path,
                segment_start,
                segment_duration,
            )
        except Exception as e:
            logger.error(f"Error determining text position: {e}")
            return self.fallback

    def _estimate_sync(
        self,
        video_path: str,
        segment_start: float,
        segment_duration: float,
    ) -> float:
        sample_times = self.sample_timestamps(segment_start, segment_duration)
        if not sample_times:
            logger.debug(f"Clip of {segment_duration:.2f}s too short to sample, using default text position")
            return self.fallback

        width, height = self._frame_resolution(video_path)

        positions: list[RelativeFacePosition] = []
        for timestamp in sample_times:
            frame_path = self.frame_extractor.frame_path_for(video_path, timestamp)
            try:
                self.frame_extractor.extract_frame(video_path, timestamp, frame_path)
                faces = self.face_detector.locate(frame_path)
            finally:
                self.frame_extractor.remove_frame(frame_path)

            for face in faces:
                try:
                    positions.append(RelativeFacePosition.from_box(face, width, height))
                except FacePositionError as e:
                    logger.warning(f"Dropping face at {timestamp:.2f}s: {e}")

        if not positions:
            logger.info(f"No faces found in {len(sample_times)} samples, using default text position {self.fallback}")
            return self.fallback

        placement = self.placement_from_positions(positions)
        logger.info(
            f"Text position {placement:.3f} from {len(positions)} faces "
            f"across {len(sample_times)} samples"
        )
        return placement

    def _frame_resolution(self, video_path: str) -> tuple[int, int]:
        try:
            return self.frame_extractor.probe_resolution(video_path)
        except FrameExtractionError as e:
            default = self.settings.default_frame_resolution
            logger.warning(f"Resolution probe failed, assuming {default[0]}x{default[1]}: {e}")
            return default
