"""
Pytest configuration and fixtures.
"""

import os
import sys

import pytest

# Add app directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from app.config import Settings  # noqa: E402
from app.services.face_detector import FaceBox  # noqa: E402


@pytest.fixture
def test_settings(tmp_path):
    """Settings pointing all file output at a temp directory."""
    return Settings(output_folder=str(tmp_path / "shorts"), _env_file=None)


@pytest.fixture
def sample_face_box():
    """A 200x200 face centered at (320, 240)."""
    return FaceBox(x=220, y=140, width=200, height=200, confidence=0.9)


@pytest.fixture
def fake_detector(mocker):
    """Ready face detector whose locate() result is set per test."""
    detector = mocker.MagicMock()
    detector.is_ready.return_value = True
    detector.locate.return_value = []
    return detector


@pytest.fixture
def fake_frame_extractor(mocker, tmp_path):
    """Frame extractor that pretends to write frames and reports 1920x1080."""
    extractor = mocker.MagicMock()
    extractor.frame_path_for.side_effect = lambda video, t: str(tmp_path / f"frame_{t:.3f}.jpg")
    extractor.extract_frame.side_effect = lambda video, t, path=None: path
    extractor.probe_resolution.return_value = (1920, 1080)
    return extractor


@pytest.fixture(scope="session")
def sample_image():
    """A 640x480 BGR test image with a skin-colored disc in the middle."""
    import numpy as np

    image = np.zeros((480, 640, 3), dtype=np.uint8)
    yy, xx = np.mgrid[0:480, 0:640]
    image[(xx - 320) ** 2 + (yy - 240) ** 2 < 100 ** 2] = (200, 180, 160)
    return image
