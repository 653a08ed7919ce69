"""
Face detection service with multi-tier detection fallback.

Detection Priority:
1. MediaPipe FaceDetection short-range (purpose-built, most accurate for close-up faces)
2. MediaPipe FaceDetection full-range (for small/distant faces)
3. Haar Cascade (final fallback for edge cases)

The detector is configured through an explicit FaceDetectorConfig passed at
construction. locate() is the adapter used by caption placement: it never
raises and degrades to an empty result.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import cv2
import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class FaceDetectorConfig:
    """Explicit configuration for the face detector backends."""

    confidence_threshold: float = 0.5
    use_mediapipe: bool = True
    use_fullrange_fallback: bool = True
    use_haar_fallback: bool = True
    min_face_size: int = 20  # Pixels, applied to both width and height


@dataclass
class FaceBox:
    """A detected face in absolute pixel units of the frame it came from."""

    x: float
    y: float
    width: float
    height: float
    confidence: float = 1.0
    detection_method: str = "unknown"

    @property
    def center(self) -> tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2


@dataclass(frozen=True)
class RelativeFacePosition:
    """Center of a face normalized by frame resolution; both axes lie in [0, 1]."""

    x: float
    y: float

    def __post_init__(self):
        if not (0.0 <= self.x <= 1.0 and 0.0 <= self.y <= 1.0):
            raise FacePositionError(
                f"Relative face position ({self.x:.3f}, {self.y:.3f}) outside [0, 1]; "
                f"frame resolution does not match the detection"
            )

    @classmethod
    def from_box(cls, box: FaceBox, frame_width: int, frame_height: int) -> "RelativeFacePosition":
        """Normalize the center of a FaceBox by the frame's resolution."""
        center_x, center_y = box.center
        return cls(x=center_x / frame_width, y=center_y / frame_height)


class FaceDetector:
    """
    Multi-tier face detection service with intelligent fallback.

    Uses a priority chain of detectors for maximum reliability:
    1. MediaPipe FaceDetection short-range (best for close faces)
    2. MediaPipe FaceDetection full-range (better for small/distant faces)
    3. Haar Cascade (classical CV fallback)
    """

    # IoU above which a full-range detection duplicates a short-range one
    MERGE_IOU_THRESHOLD = 0.3

    def __init__(self, config: Optional[FaceDetectorConfig] = None):
        """
        Initialize face detector with multi-tier fallback.

        Args:
            config: Detector configuration (defaults used when omitted)
        """
        self.config = config or FaceDetectorConfig()

        self._mediapipe = None  # mediapipe.solutions.face_detection module
        self._haar_cascade = None

        self._ready = False
        self._load_detectors()

    def _load_detectors(self) -> None:
        """Load all available detection backends."""
        detectors_loaded = []

        if self.config.use_mediapipe:
            try:
                import mediapipe as mp

                face_detection = mp.solutions.face_detection
                # Probe once so a broken install is reported at startup
                with face_detection.FaceDetection(
                    model_selection=0,
                    min_detection_confidence=self.config.confidence_threshold,
                ):
                    pass
                self._mediapipe = face_detection
                detectors_loaded.append("MediaPipe FaceDetection")
                logger.info("MediaPipe FaceDetection loaded (primary detector)")
            except ImportError:
                logger.warning("MediaPipe not available, will use fallback detectors")
            except Exception as e:
                logger.warning(f"MediaPipe FaceDetection failed to initialize: {e}")

        if self.config.use_haar_fallback:
            try:
                cascade_path = cv2.data.haarcascades + "haarcascade_frontalface_default.xml"
                self._haar_cascade = cv2.CascadeClassifier(cascade_path)
                if self._haar_cascade.empty():
                    self._haar_cascade = None
                    logger.warning("Haar cascade failed to load")
                else:
                    detectors_loaded.append("Haar Cascade")
                    logger.info("Haar Cascade face detector loaded (final fallback)")
            except Exception as e:
                logger.warning(f"Haar cascade failed to load: {e}")

        self._ready = len(detectors_loaded) > 0
        logger.info(f"Face detector ready with {len(detectors_loaded)} backends: {detectors_loaded}")

    def is_ready(self) -> bool:
        """Check if at least one detector is ready."""
        return self._ready

    def locate(self, image_path: str) -> List[FaceBox]:
        """
        Locate faces in a still image file.

        "No face" and detector failures both yield an empty list; caption
        placement has a safe default so errors are logged, not raised.

        Args:
            image_path: Path to the image file

        Returns:
            Detected faces in the image's pixel coordinates
        """
        if not self.is_ready():
            logger.debug("No face detection backends loaded, skipping detection")
            return []

        try:
            image = cv2.imread(image_path)
            if image is None:
                logger.error(f"Failed to read image: {image_path}")
                return []
            return self.detect_faces(image)
        except Exception as e:
            logger.error(f"Error detecting faces in {image_path}: {e}")
            return []

    def detect_faces(self, image: np.ndarray) -> List[FaceBox]:
        """
        Detect faces using multi-tier detection with fallback.

        Tries detectors in priority order until faces are found.

        Args:
            image: Image as numpy array (BGR format from OpenCV)

        Returns:
            All detected faces
        """
        if not self.is_ready():
            raise RuntimeError("No face detection backends available")

        height, width = image.shape[:2]
        detections: List[FaceBox] = []

        if self._mediapipe is not None:
            short_range = self._detect_with_mediapipe(image, width, height, use_fullrange=False)
            full_range: List[FaceBox] = []
            # Full-range only runs when short-range found nothing
            if not short_range and self.config.use_fullrange_fallback:
                full_range = self._detect_with_mediapipe(image, width, height, use_fullrange=True)
            detections = self._merge_detections(short_range, full_range)
            if detections:
                logger.debug(
                    f"MediaPipe: {len(detections)} faces "
                    f"(short-range: {len(short_range)}, full-range: {len(full_range)})"
                )

        if self._haar_cascade is not None and not detections:
            try:
                detections = self._detect_with_haar(image, width, height)
                if detections:
                    logger.debug(f"Haar Cascade detected {len(detections)} faces")
            except Exception as e:
                logger.warning(f"Haar Cascade detection failed: {e}")

        if not detections:
            logger.debug(f"No faces detected by any backend (frame size: {width}x{height})")

        return detections

    def _detect_with_mediapipe(
        self,
        image: np.ndarray,
        width: int,
        height: int,
        use_fullrange: bool = False,
    ) -> List[FaceBox]:
        """
        Detect faces using MediaPipe FaceDetection.

        Creates a fresh detector instance per call; a shared MediaPipe graph
        is not safe across executor threads.
        """
        detections = []
        if use_fullrange:
            model_selection = 1
            min_confidence = max(0.3, self.config.confidence_threshold - 0.2)
        else:
            model_selection = 0
            min_confidence = self.config.confidence_threshold

        try:
            with self._mediapipe.FaceDetection(
                model_selection=model_selection,
                min_detection_confidence=min_confidence,
            ) as detector:
                # MediaPipe expects RGB format
                results = detector.process(cv2.cvtColor(image, cv2.COLOR_BGR2RGB))

            for detection in results.detections or []:
                bbox = detection.location_data.relative_bounding_box
                w = bbox.width * width
                h = bbox.height * height
                if w > self.config.min_face_size and h > self.config.min_face_size:
                    detections.append(FaceBox(
                        x=bbox.xmin * width,
                        y=bbox.ymin * height,
                        width=w,
                        height=h,
                        confidence=float(detection.score[0]),
                        detection_method="mediapipe_fullrange" if use_fullrange else "mediapipe",
                    ))
        except Exception as e:
            logger.warning(f"MediaPipe {'full-range' if use_fullrange else 'short-range'} detection failed: {e}")

        return detections

    def _detect_with_haar(
        self,
        image: np.ndarray,
        width: int,
        height: int,
    ) -> List[FaceBox]:
        """Detect faces using Haar Cascade (final fallback)."""
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        min_size = max(self.config.min_face_size, 40)

        faces = self._haar_cascade.detectMultiScale(
            gray,
            scaleFactor=1.1,
            minNeighbors=5,
            minSize=(min_size, min_size),
        )

        detections = []
        for (x, y, w, h) in faces:
            # Rough confidence estimate from relative face size
            relative_size = (w * h) / (width * height)
            detections.append(FaceBox(
                x=float(x),
                y=float(y),
                width=float(w),
                height=float(h),
                confidence=min(0.9, 0.3 + relative_size * 2),
                detection_method="haar_cascade",
            ))
        return detections

    def _merge_detections(
        self,
        short_range: List[FaceBox],
        full_range: List[FaceBox],
    ) -> List[FaceBox]:
        """
        Merge short-range and full-range detections.

        Full-range boxes overlapping a short-range box are dropped as duplicates.
        """
        if not full_range:
            return short_range
        if not short_range:
            return full_range

        merged = list(short_range)
        for candidate in full_range:
            if all(self._calculate_iou(candidate, kept) <= self.MERGE_IOU_THRESHOLD for kept in short_range):
                merged.append(candidate)
        return merged

    @staticmethod
    def _calculate_iou(box1: FaceBox, box2: FaceBox) -> float:
        """
        Calculate Intersection over Union between two boxes.

        Returns:
            IoU value between 0 and 1
        """
        xi1 = max(box1.x, box2.x)
        yi1 = max(box1.y, box2.y)
        xi2 = min(box1.x + box1.width, box2.x + box2.width)
        yi2 = min(box1.y + box1.height, box2.y + box2.height)

        if xi2 <= xi1 or yi2 <= yi1:
            return 0.0

        intersection = (xi2 - xi1) * (yi2 - yi1)
        union = box1.width * box1.height + box2.width * box2.height - intersection
        if union <= 0:
            return 0.0
        return intersection / union

    def get_model_info(self) -> dict:
        """Get information about loaded detection backends."""
        backends = []
        if self._mediapipe is not None:
            backends.append("mediapipe")
        if self._haar_cascade is not None:
            backends.append("haar_cascade")

        return {
            "ready": self._ready,
            "backends": backends,
            "primary": backends[0] if backends else None,
            "confidence_threshold": self.config.confidence_threshold,
        }

    def close(self) -> None:
        """Release detector backends."""
        self._mediapipe = None
        self._haar_cascade = None
        self._ready = False


class FacePositionError(ValueError):
    """Raised when a face center falls outside its frame's resolution."""
    pass
