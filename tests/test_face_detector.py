"""
Unit tests for the face detection adapter.
"""

import cv2
import numpy as np
import pytest

from app.services.face_detector import (
    FaceBox,
    FaceDetector,
    FaceDetectorConfig,
    FacePositionError,
    RelativeFacePosition,
)


@pytest.fixture
def haar_only_detector():
    """Detector using only the bundled OpenCV Haar cascade."""
    return FaceDetector(FaceDetectorConfig(use_mediapipe=False))


@pytest.fixture
def unloaded_detector():
    """Detector with every backend disabled."""
    return FaceDetector(FaceDetectorConfig(use_mediapipe=False, use_haar_fallback=False))


class TestFaceBox:
    """Tests for FaceBox geometry."""

    def test_center(self, sample_face_box):
        assert sample_face_box.center == (320, 240)


class TestRelativeFacePosition:
    """Tests for normalization into [0, 1]."""

    def test_from_box(self, sample_face_box):
        position = RelativeFacePosition.from_box(sample_face_box, 640, 480)
        assert position.x == pytest.approx(0.5)
        assert position.y == pytest.approx(0.5)

    def test_edges_allowed(self):
        assert RelativeFacePosition(0.0, 1.0).y == 1.0

    def test_resolution_mismatch_rejected(self, sample_face_box):
        # A 640x480 detection measured against a 160x120 frame
        with pytest.raises(FacePositionError):
            RelativeFacePosition.from_box(sample_face_box, 160, 120)

    def test_error_is_value_error(self):
        with pytest.raises(ValueError):
            RelativeFacePosition(-0.1, 0.5)


class TestFaceDetectorConfig:
    """Tests for detector configuration."""

    def test_defaults(self):
        config = FaceDetectorConfig()
        assert config.confidence_threshold == 0.5
        assert config.use_haar_fallback is True

    def test_config_kept_on_detector(self, unloaded_detector):
        assert unloaded_detector.config.use_mediapipe is False


class TestLocate:
    """Tests for FaceDetector.locate degrade-gracefully behaviour."""

    def test_not_ready_returns_empty(self, unloaded_detector, tmp_path):
        assert unloaded_detector.is_ready() is False
        assert unloaded_detector.locate(str(tmp_path / "frame.jpg")) == []

    def test_detect_faces_requires_backend(self, unloaded_detector, sample_image):
        with pytest.raises(RuntimeError):
            unloaded_detector.detect_faces(sample_image)

    def test_missing_image_returns_empty(self, haar_only_detector, tmp_path):
        assert haar_only_detector.is_ready() is True
        assert haar_only_detector.locate(str(tmp_path / "missing.jpg")) == []

    def test_blank_frame_has_no_faces(self, haar_only_detector, tmp_path):
        path = str(tmp_path / "blank.jpg")
        cv2.imwrite(path, np.zeros((480, 640, 3), dtype=np.uint8))

        assert haar_only_detector.locate(path) == []

    def test_detector_error_returns_empty(self, haar_only_detector, tmp_path, mocker):
        path = str(tmp_path / "frame.jpg")
        cv2.imwrite(path, np.zeros((120, 160, 3), dtype=np.uint8))
        mocker.patch.object(haar_only_detector, "detect_faces", side_effect=RuntimeError("boom"))

        assert haar_only_detector.locate(path) == []

    def test_returns_detections(self, haar_only_detector, tmp_path, mocker, sample_face_box):
        path = str(tmp_path / "frame.jpg")
        cv2.imwrite(path, np.zeros((480, 640, 3), dtype=np.uint8))
        mocker.patch.object(haar_only_detector, "detect_faces", return_value=[sample_face_box])

        assert haar_only_detector.locate(path) == [sample_face_box]


class TestMerge:
    """Tests for merging short-range and full-range detections."""

    def test_iou_identical(self, sample_face_box):
        assert FaceDetector._calculate_iou(sample_face_box, sample_face_box) == pytest.approx(1.0)

    def test_iou_disjoint(self):
        a = FaceBox(0, 0, 10, 10)
        b = FaceBox(50, 50, 10, 10)
        assert FaceDetector._calculate_iou(a, b) == 0.0

    def test_overlapping_full_range_dropped(self, unloaded_detector):
        short_range = [FaceBox(100, 100, 100, 100)]
        full_range = [FaceBox(105, 105, 100, 100), FaceBox(500, 100, 40, 40)]

        merged = unloaded_detector._merge_detections(short_range, full_range)

        assert merged == [short_range[0], full_range[1]]

    def test_one_side_empty(self, unloaded_detector):
        boxes = [FaceBox(1, 2, 30, 30)]
        assert unloaded_detector._merge_detections([], boxes) == boxes
        assert unloaded_detector._merge_detections(boxes, []) == boxes


class TestModelInfo:
    """Tests for backend reporting."""

    def test_haar_backend_reported(self, haar_only_detector):
        info = haar_only_detector.get_model_info()
        assert info["backends"] == ["haar_cascade"]
        assert info["ready"] is True

    def test_close_unloads(self, haar_only_detector):
        haar_only_detector.close()
        assert haar_only_detector.is_ready() is False
