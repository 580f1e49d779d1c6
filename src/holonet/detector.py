"""Hand landmark detection using the MediaPipe HandLandmarker task."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import numpy as np

try:
    import mediapipe as mp
    from mediapipe.tasks.python import BaseOptions
    from mediapipe.tasks.python import vision
except ImportError:
    mp = None

from holonet.config import CameraConfig
from holonet.hands import DetectionFrame, Hand

logger = logging.getLogger("holonet.detector")


class HandDetector:
    """Extracts 21 landmarks per hand from RGB video frames.

    Runs the landmarker in VIDEO mode, so frames must arrive with
    increasing timestamps. A call with a timestamp that is not newer than
    the previous one is a stale frame and returns None without running
    inference.
    """

    def __init__(self, config: Optional[CameraConfig] = None):
        if mp is None:
            raise ImportError(
                "mediapipe is required. Install with: pip install mediapipe"
            )

        self.config = config or CameraConfig()
        model_path = Path(self.config.model_path)
        if not model_path.exists():
            raise FileNotFoundError(f"Hand landmarker model not found: {model_path}")

        options = vision.HandLandmarkerOptions(
            base_options=BaseOptions(model_asset_path=str(model_path)),
            running_mode=vision.RunningMode.VIDEO,
            num_hands=self.config.max_hands,
            min_hand_detection_confidence=self.config.min_detection_confidence,
            min_tracking_confidence=self.config.min_tracking_confidence,
        )
        self._landmarker = vision.HandLandmarker.create_from_options(options)
        self._last_timestamp_ms: Optional[int] = None
        logger.info("Hand landmarker loaded from %s", model_path)

    def detect(self, frame_rgb: np.ndarray, timestamp: float) -> Optional[DetectionFrame]:
        """Detect hands in one frame.

        Args:
            frame_rgb: RGB image as numpy array (H, W, 3), uint8.
            timestamp: Frame time in seconds (monotonic).

        Returns:
            DetectionFrame with 0 to `max_hands` hands, or None for a stale frame.
        """
        timestamp_ms = int(round(timestamp * 1000))
        if self._last_timestamp_ms is not None and timestamp_ms <= self._last_timestamp_ms:
            return None
        self._last_timestamp_ms = timestamp_ms

        image = mp.Image(image_format=mp.ImageFormat.SRGB, data=np.ascontiguousarray(frame_rgb))
        result = self._landmarker.detect_for_video(image, timestamp_ms)

        hands = tuple(
            Hand([[lm.x, lm.y, lm.z] for lm in landmarks])
            for landmarks in (result.hand_landmarks or [])[: self.config.max_hands]
        )
        return DetectionFrame(hands=hands, timestamp=timestamp)

    def close(self):
        """Release MediaPipe resources."""
        self._landmarker.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
