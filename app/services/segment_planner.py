"""
Segment Planner - Decides which time ranges of a source video become shorts.

Windows are fixed, not scored: a video of at least 30 seconds always yields
0-30s, and a video of at least 60 seconds also yields 30-60s. Nothing past
the 60 second mark is ever planned.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

from app.config import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Segment:
    """A contiguous time range of the source video, in seconds."""

    start: float
    end: float

    def __post_init__(self):
        if not (math.isfinite(self.start) and math.isfinite(self.end)):
            raise ValueError(f"Segment bounds must be finite: {self.start}-{self.end}")
        if not 0 <= self.start < self.end:
            raise ValueError(f"Invalid segment bounds: {self.start}-{self.end}")

    @property
    def duration(self) -> float:
        return self.end - self.start


class SegmentPlanner:
    """
    Plans candidate windows for a video and normalizes them against its length.

    Both operations are pure functions of their inputs: no randomness and no
    external calls.
    """

    def __init__(
        self,
        min_short_length: Optional[float] = None,
        max_short_length: Optional[float] = None,
    ):
        """
        Initialize the planner.

        Args:
            min_short_length: Shortest usable clip and window size (default from settings)
            max_short_length: Latest point a planned window may end at (default from settings)
        """
        settings = get_settings()
        self.min_short_length = min_short_length if min_short_length is not None else settings.min_short_length
        self.max_short_length = max_short_length if max_short_length is not None else settings.max_short_length

    def plan(self, video_duration: float) -> list[Segment]:
        """
        Convert a video duration into an ordered list of candidate segments.

        Args:
            video_duration: Total video length in seconds

        Returns:
            Segments in playback order

        Raises:
            InsufficientDurationError: If the video is shorter than min_short_length
            NoSegmentsError: If no window fits (NaN input)
        """
        if video_duration < self.min_short_length:
            raise InsufficientDurationError(
                f"Video is too short (must be at least {self.min_short_length:g} seconds)"
            )

        logger.info(
            f"Creating fixed segments of {self.min_short_length:g}s "
            f"up to {self.max_short_length:g}s"
        )

        segments: list[Segment] = []
        window_start = 0.0
        while window_start + self.min_short_length <= self.max_short_length:
            window_end = window_start + self.min_short_length
            if video_duration >= window_end:
                segments.append(Segment(window_start, min(window_end, video_duration)))
            window_start = window_end

        if not segments:
            raise NoSegmentsError("No valid segments could be created")

        return segments

    def normalize(self, segment: Segment, video_duration: float) -> Segment:
        """
        Clamp a candidate segment so it respects the minimum short length.

        The end is first extended forward; if the video runs out before the
        minimum is reached the start is pulled back instead. There is no upper
        clamp on the resulting duration.

        Args:
            segment: Candidate segment from plan()
            video_duration: Total video length in seconds

        Returns:
            Segment within [0, video_duration]
        """
        actual_start = max(0.0, segment.start)
        actual_end = min(segment.end, video_duration)

        if actual_end - actual_start < self.min_short_length:
            actual_end = min(actual_start + self.min_short_length, video_duration)
            if actual_end - actual_start < self.min_short_length:
                actual_start = max(0.0, actual_end - self.min_short_length)

        logger.info(
            f"Creating short from {actual_start:.1f}s to {actual_end:.1f}s "
            f"(duration: {actual_end - actual_start:.1f}s)"
        )
        return Segment(actual_start, actual_end)


class SegmentPlanningError(Exception):
    """Base exception for planning and normalization failures."""
    pass


class InsufficientDurationError(SegmentPlanningError):
    """Raised when the source video is shorter than the minimum usable length."""
    pass


class NoSegmentsError(SegmentPlanningError):
    """Raised when planning produced no segments from the given duration."""
    pass
