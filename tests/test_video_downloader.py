"""
Tests for the yt-dlp backed video downloader.
"""

import asyncio

import pytest
from yt_dlp.utils import DownloadError

from app.services.video_downloader import (
    NotFoundError,
    UpstreamError,
    VideoDownloadError,
    VideoDownloaderService,
)

URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


@pytest.fixture
def downloader(test_settings):
    return VideoDownloaderService(test_settings)


@pytest.fixture
def ydl(mocker):
    """The YoutubeDL instance returned by the context manager."""
    instance = mocker.MagicMock()
    youtube_dl = mocker.patch("app.services.video_downloader.yt_dlp.YoutubeDL")
    youtube_dl.return_value.__enter__.return_value = instance
    return instance


class TestOptions:
    """Tests for yt-dlp option building."""

    def test_info_options_skip_download(self, downloader):
        opts = downloader._build_ytdlp_opts()
        assert opts["skip_download"] is True
        assert "format" not in opts
        assert opts["http_headers"]["User-Agent"].startswith("Mozilla/5.0")

    def test_download_options(self, downloader):
        opts = downloader._build_ytdlp_opts(output_path="/out/temp_x.mp4")
        assert opts["format"] == "best[height<=720]"
        assert opts["outtmpl"] == "/out/temp_x.mp4"

    def test_proxy(self, test_settings):
        test_settings.ytdlp_proxy = "http://proxy:8080"
        opts = VideoDownloaderService(test_settings)._build_ytdlp_opts()
        assert opts["proxy"] == "http://proxy:8080"


class TestGetVideoInfo:
    """Tests for metadata retrieval."""

    def test_info(self, downloader, ydl):
        ydl.extract_info.return_value = {"id": "dQw4w9WgXcQ", "title": "Clip", "duration": 212}

        info = asyncio.run(downloader.get_video_info(URL))

        assert (info.id, info.title, info.duration_seconds) == ("dQw4w9WgXcQ", "Clip", 212.0)
        ydl.extract_info.assert_called_once_with(URL, download=False)

    def test_defaults(self, downloader, ydl):
        ydl.extract_info.return_value = {"id": "abc", "title": None, "duration": None}

        info = asyncio.run(downloader.get_video_info(URL))

        assert info.title == "YouTube Video"
        assert info.duration_seconds == 0

    def test_unavailable_video(self, downloader, ydl):
        ydl.extract_info.side_effect = DownloadError("ERROR: [youtube] abc: Video unavailable")

        with pytest.raises(NotFoundError):
            asyncio.run(downloader.get_video_info(URL))

    def test_other_provider_failure(self, downloader, ydl):
        ydl.extract_info.side_effect = DownloadError("ERROR: Unable to download webpage: timed out")

        with pytest.raises(UpstreamError):
            asyncio.run(downloader.get_video_info(URL))

    def test_errors_share_base_class(self, downloader, ydl):
        ydl.extract_info.side_effect = RuntimeError("socket closed")

        with pytest.raises(VideoDownloadError):
            asyncio.run(downloader.get_video_info(URL))


class TestDownloadVideo:
    """Tests for downloading the source file."""

    def test_download(self, downloader, ydl, test_settings):
        def fake_download(urls):
            with open(downloader.source_path_for("abc"), "wb") as f:
                f.write(b"\x00" * 1024)

        ydl.download.side_effect = fake_download

        path = asyncio.run(downloader.download_video(URL, "abc"))

        assert path.endswith("temp_abc.mp4")
        assert path.startswith(test_settings.output_folder)
        ydl.download.assert_called_once_with([URL])

    def test_missing_file(self, downloader, ydl):
        with pytest.raises(VideoDownloadError, match="output file not found"):
            asyncio.run(downloader.download_video(URL, "abc"))

    def test_download_failure(self, downloader, ydl):
        ydl.download.side_effect = DownloadError("HTTP Error 403: Forbidden")

        with pytest.raises(VideoDownloadError, match="Failed to download"):
            asyncio.run(downloader.download_video(URL, "abc"))
