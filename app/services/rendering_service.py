"""
Rendering Service - FFmpeg-based reframing of clips to vertical 9:16.
"""

import asyncio
import logging
import os
import shutil
import subprocess
from dataclasses import dataclass, field
from typing import Optional

from app.config import Settings, get_settings
from app.services.segment_planner import Segment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReframeSpec:
    """
    Scale + crop parameters from any source resolution to the vertical target.

    The source is scaled to target_height keeping its aspect ratio
    (target_width of -1), then center-cropped to crop_width x crop_height.
    """

    target_width: int = -1
    target_height: int = 1920
    crop_width: int = 1080
    crop_height: int = 1920

    def video_filters(self) -> list[str]:
        return [
            f"scale={self.target_width}:{self.target_height}",
            f"crop={self.crop_width}:{self.crop_height}",
        ]


@dataclass(frozen=True)
class EncodeProfile:
    """Fixed codec settings applied to every rendered short."""

    video_codec: str = "libx264"
    audio_codec: str = "aac"
    preset: str = "fast"
    threads: int = 4

    def output_options(self) -> list[str]:
        return [
            "-c:v", self.video_codec,
            "-c:a", self.audio_codec,
            "-preset", self.preset,
            "-threads", str(self.threads),
        ]


@dataclass
class RenderRequest:
    """Request for reframing one segment of a source video."""

    video_path: str
    output_path: str
    segment: Segment
    reframe_spec: ReframeSpec = field(default_factory=ReframeSpec)


@dataclass
class RenderResult:
    """Result of rendering operation."""

    output_path: str
    file_size_bytes: int
    duration_seconds: float


class RenderingService:
    """
    Service for rendering vertical shorts using FFmpeg.

    Extracts exactly the requested range, scales to the target height, center
    crops to 9:16 and encodes with a fixed H.264/AAC profile. The source file
    is never modified. Failures are not retried.
    """

    def __init__(self, settings: Optional[Settings] = None, verify_ffmpeg: bool = True):
        self.settings = settings or get_settings()
        self.reframe_spec = ReframeSpec(
            target_height=self.settings.target_output_height,
            crop_width=self.settings.target_output_width,
            crop_height=self.settings.target_output_height,
        )
        self.encode_profile = EncodeProfile(
            video_codec=self.settings.ffmpeg_video_codec,
            audio_codec=self.settings.ffmpeg_audio_codec,
            preset=self.settings.ffmpeg_preset,
            threads=self.settings.ffmpeg_threads,
        )
        if verify_ffmpeg:
            self._verify_ffmpeg()

    def _verify_ffmpeg(self):
        """Verify ffmpeg is available."""
        if not shutil.which("ffmpeg"):
            raise RuntimeError("ffmpeg not found in PATH")
        logger.info("FFmpeg available")

    async def reframe(self, video_path: str, segment: Segment, output_path: str) -> RenderResult:
        """
        Render one segment of video_path as a vertical short at output_path.

        Raises:
            TranscodeError: If FFmpeg fails or no output file is written
        """
        return await self.render_clip(RenderRequest(
            video_path=video_path,
            output_path=output_path,
            segment=segment,
            reframe_spec=self.reframe_spec,
        ))

    async def render_clip(self, request: RenderRequest) -> RenderResult:
        """
        Render a clip described by a RenderRequest.

        Args:
            request: RenderRequest with source, output and segment

        Returns:
            RenderResult with output path and metadata
        """
        output_dir = os.path.dirname(request.output_path)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)

        logger.info(
            f"Rendering clip: {request.segment.start:.1f}s-{request.segment.end:.1f}s "
            f"-> {request.output_path}"
        )

        await self._run_cmd(self.build_command(request))

        if not os.path.isfile(request.output_path):
            raise TranscodeError("Render failed: output file not created")

        file_size = os.path.getsize(request.output_path)
        logger.info(f"Clip rendered: {request.output_path} ({file_size / 1024 / 1024:.1f} MB)")

        return RenderResult(
            output_path=request.output_path,
            file_size_bytes=file_size,
            duration_seconds=request.segment.duration,
        )

    def build_command(self, request: RenderRequest) -> list[str]:
        """FFmpeg command line for a render request."""
        return [
            "ffmpeg",
            "-y",
            "-ss", f"{request.segment.start:.6f}",
            "-i", request.video_path,
            "-t", f"{request.segment.duration:.6f}",
            "-vf", ",".join(request.reframe_spec.video_filters()),
            *self.encode_profile.output_options(),
            request.output_path,
        ]

    async def _run_cmd(self, cmd: list[str]) -> None:
        """Run a command asynchronously."""
        logger.debug(f"Running: {' '.join(cmd)}")

        # Use run_in_executor for Windows compatibility
        loop = asyncio.get_event_loop()
        try:
            result = await loop.run_in_executor(
                None,
                lambda: subprocess.run(cmd, capture_output=True)
            )
        except OSError as e:
            raise TranscodeError(f"FFmpeg could not be started: {e}")

        if result.returncode != 0:
            error_msg = result.stderr.decode(errors="replace")[-1000:] if result.stderr else "Unknown error"
            logger.error(f"FFmpeg failed: {error_msg}")
            raise TranscodeError(f"FFmpeg failed: {error_msg}")


class TranscodeError(Exception):
    """Exception raised when transcoding a segment fails."""
    pass
