"""
Video Downloader Service - Fetches video info and files with yt-dlp.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Optional

import yt_dlp
from yt_dlp.utils import DownloadError

from app.config import Settings, get_settings

logger = logging.getLogger(__name__)


# Provider messages that mean the video itself does not exist or is not viewable
NOT_FOUND_MARKERS = (
    "video unavailable",
    "not available",
    "does not exist",
    "private video",
    "has been removed",
    "404",
)


@dataclass
class VideoInfo:
    """Metadata retrieved without downloading."""

    id: str
    title: str
    duration_seconds: float


class VideoDownloaderService:
    """
    Service for retrieving video metadata and downloading source files.

    yt-dlp calls are blocking and run in the default executor.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

        try:
            logger.info(f"VideoDownloaderService initialized with yt-dlp {yt_dlp.version.__version__}")
        except AttributeError:
            logger.info("VideoDownloaderService initialized with yt-dlp library")

    def _build_ytdlp_opts(self, output_path: Optional[str] = None) -> dict:
        """
        Build yt-dlp options dictionary.

        Args:
            output_path: Download target; info-only options when omitted

        Returns:
            Dictionary of yt-dlp options
        """
        opts = {
            "quiet": True,
            "no_warnings": True,
            "noplaylist": True,
            "http_headers": {"User-Agent": self.settings.ytdlp_user_agent},
        }
        if self.settings.ytdlp_proxy:
            opts["proxy"] = self.settings.ytdlp_proxy

        if output_path:
            opts["format"] = self.settings.download_format
            opts["outtmpl"] = output_path
            opts["force_overwrites"] = True
        else:
            opts["skip_download"] = True

        return opts

    async def get_video_info(self, url: str) -> VideoInfo:
        """
        Get id, title and duration of a video without downloading it.

        Raises:
            NotFoundError: If the provider reports the video missing or unavailable
            UpstreamError: For any other provider failure
        """
        logger.debug(f"Getting video info for: {url}")
        opts = self._build_ytdlp_opts()

        def do_extract():
            with yt_dlp.YoutubeDL(opts) as ydl:
                return ydl.extract_info(url, download=False)

        loop = asyncio.get_event_loop()
        try:
            info = await loop.run_in_executor(None, do_extract)
        except DownloadError as e:
            logger.error(f"Error getting video info: {e}")
            if any(marker in str(e).lower() for marker in NOT_FOUND_MARKERS):
                raise NotFoundError(f"Video not found: {e}")
            raise UpstreamError(f"Failed to get video info: {e}")
        except Exception as e:
            logger.error(f"Error getting video info: {e}")
            raise UpstreamError(f"Failed to get video info: {e}")

        if not info or not info.get("id"):
            raise NotFoundError(f"No video information returned for {url}")

        video_info = VideoInfo(
            id=info["id"],
            title=info.get("title") or "YouTube Video",
            duration_seconds=float(info.get("duration") or 0),
        )
        logger.info(
            f"Video info retrieved: ID={video_info.id}, Title={video_info.title}, "
            f"Length={video_info.duration_seconds:g}s"
        )
        return video_info

    def source_path_for(self, video_id: str) -> str:
        return os.path.join(self.settings.output_folder, f"temp_{video_id}.mp4")

    async def download_video(self, url: str, video_id: str) -> str:
        """
        Download a video to the output folder.

        Returns:
            Local path of the downloaded file

        Raises:
            VideoDownloadError: If the download fails or no file appears
        """
        os.makedirs(self.settings.output_folder, exist_ok=True)
        output_path = self.source_path_for(video_id)
        opts = self._build_ytdlp_opts(output_path=output_path)

        logger.info(f"Downloading video {video_id} to {output_path}")

        def do_download():
            with yt_dlp.YoutubeDL(opts) as ydl:
                ydl.download([url])

        loop = asyncio.get_event_loop()
        try:
            await loop.run_in_executor(None, do_download)
        except Exception as e:
            logger.error(f"Error downloading video: {e}")
            raise VideoDownloadError(f"Failed to download video: {e}")

        if not os.path.isfile(output_path):
            raise VideoDownloadError(f"Download completed but output file not found: {output_path}")

        file_size = os.path.getsize(output_path)
        logger.info(f"Video downloaded: {output_path} ({file_size / 1024 / 1024:.1f} MB)")
        return output_path


class VideoDownloadError(Exception):
    """Exception raised when video retrieval fails."""
    pass


class NotFoundError(VideoDownloadError):
    """The provider has no such video or it is not viewable."""
    pass


class UpstreamError(VideoDownloadError):
    """The provider failed for a reason other than a missing video."""
    pass
