"""
Frame extraction service using FFmpeg.
"""

import json
import logging
import os
import subprocess
import tempfile
from typing import Optional

logger = logging.getLogger(__name__)


class FrameExtractor:
    """
    Service for pulling single still frames and resolution info out of videos.

    Frames are written as JPEG files named after the source video and the
    sampled timestamp.
    """

    def __init__(self, temp_directory: Optional[str] = None):
        """
        Initialize frame extractor.

        Args:
            temp_directory: Directory for temporary frame files
        """
        self.temp_directory = temp_directory or tempfile.gettempdir()
        os.makedirs(self.temp_directory, exist_ok=True)

    def frame_path_for(self, video_path: str, timestamp_s: float) -> str:
        """Temp file path for the frame of video_path at timestamp_s."""
        stem = os.path.splitext(os.path.basename(video_path))[0]
        return os.path.join(self.temp_directory, f"temp_frame_{stem}_{timestamp_s:.3f}.jpg")

    def extract_frame(
        self,
        video_path: str,
        timestamp_s: float,
        output_path: Optional[str] = None,
    ) -> str:
        """
        Extract one still frame at a timestamp.

        Args:
            video_path: Path to the video file
            timestamp_s: Position of the frame in seconds
            output_path: Where to write the JPEG (derived from the timestamp if omitted)

        Returns:
            Path of the written image

        Raises:
            FrameExtractionError: If FFmpeg fails or writes nothing
        """
        output_path = output_path or self.frame_path_for(video_path, timestamp_s)

        cmd = [
            "ffmpeg",
            "-y",
            "-ss", f"{timestamp_s:.3f}",
            "-i", video_path,
            "-frames:v", "1",
            "-q:v", "2",  # JPEG quality (2-31, lower is better)
            output_path,
        ]
        logger.debug(f"Extracting frame at {timestamp_s:.3f}s: {' '.join(cmd)}")

        try:
            subprocess.run(cmd, capture_output=True, text=True, check=True)
        except subprocess.CalledProcessError as e:
            logger.error(f"FFmpeg failed: {e.stderr}")
            raise FrameExtractionError(f"Frame extraction failed: {e.stderr}")
        except OSError as e:
            raise FrameExtractionError(f"Frame extraction failed: {e}")

        if not os.path.isfile(output_path):
            raise FrameExtractionError(f"FFmpeg produced no frame at {timestamp_s:.3f}s")

        return output_path

    def probe_resolution(self, video_path: str) -> tuple[int, int]:
        """
        Get the width and height of the first video stream using ffprobe.

        Args:
            video_path: Path to the video file

        Returns:
            (width, height) in pixels

        Raises:
            FrameExtractionError: If ffprobe fails or reports no usable video stream
        """
        cmd = [
            "ffprobe",
            "-v", "quiet",
            "-print_format", "json",
            "-show_streams",
            video_path,
        ]

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=True)
            info = json.loads(result.stdout)
        except (subprocess.CalledProcessError, OSError, json.JSONDecodeError) as e:
            raise FrameExtractionError(f"ffprobe failed for {video_path}: {e}")

        for stream in info.get("streams", []):
            if stream.get("codec_type") == "video":
                width = int(stream.get("width") or 0)
                height = int(stream.get("height") or 0)
                if width > 0 and height > 0:
                    return width, height
                break

        raise FrameExtractionError(f"No video stream with dimensions in {video_path}")

    def remove_frame(self, frame_path: str) -> None:
        """Best-effort removal of an extracted frame; failures are logged."""
        try:
            if os.path.exists(frame_path):
                os.remove(frame_path)
        except OSError as e:
            logger.warning(f"Failed to remove frame file {frame_path}: {e}")


class FrameExtractionError(Exception):
    """Exception raised when a frame or resolution cannot be read from a video."""
    pass
