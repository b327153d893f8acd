"""
Camera frame sources.

The console only needs a JPEG snapshot of the scale platform at capture
time; FrameSource hides whether it comes from a webcam or a fixed image.
"""

import threading
from abc import ABC, abstractmethod

import cv2
import numpy as np

from weighstation.core.logging import get_logger

logger = get_logger(__name__)


class CameraError(Exception):
    """Raised when no frame could be captured."""

    pass


class FrameSource(ABC):
    """Abstract source of encoded camera frames."""

    @abstractmethod
    def snapshot(self) -> bytes:
        """
        Capture the current frame.

        Returns:
            bytes: JPEG-encoded frame.

        Raises:
            CameraError: If capture fails.
        """
        pass

    def close(self) -> None:
        """Release the device, if any."""
        return None


class OpenCVCamera(FrameSource):
    """
    Frame source backed by cv2.VideoCapture.

    The device is opened on first snapshot and kept open afterwards.
    Blocking; callers in async code should use the threadpool.

    Example:
        camera = OpenCVCamera(index=0)
        jpeg = camera.snapshot()
    """

    def __init__(self, index: int = 0, jpeg_quality: int = 90):
        self.index = index
        self.jpeg_quality = jpeg_quality
        self._capture: cv2.VideoCapture | None = None
        self._lock = threading.Lock()

    def _get_capture(self) -> cv2.VideoCapture:
        if self._capture is None or not self._capture.isOpened():
            capture = cv2.VideoCapture(self.index)
            if not capture.isOpened():
                raise CameraError(f"Camera {self.index} could not be opened")
            self._capture = capture
            logger.info("camera_opened", index=self.index)
        return self._capture

    def snapshot(self) -> bytes:
        with self._lock:
            ok, frame = self._get_capture().read()
            if not ok or frame is None:
                raise CameraError(f"Camera {self.index} returned no frame")

            ok, buffer = cv2.imencode(
                ".jpg",
                frame,
                [int(cv2.IMWRITE_JPEG_QUALITY), self.jpeg_quality],
            )
            if not ok:
                raise CameraError("Frame could not be encoded")
            return buffer.tobytes()

    def close(self) -> None:
        with self._lock:
            if self._capture is not None:
                self._capture.release()
                self._capture = None
                logger.info("camera_released", index=self.index)


class StaticFrameSource(FrameSource):
    """
    Frame source returning the same image every time.

    Used by tests and simulation setups without a camera. Defaults to a
    small black JPEG.
    """

    def __init__(self, image: bytes | None = None):
        if image is None:
            _, buffer = cv2.imencode(".jpg", np.zeros((48, 64, 3), dtype=np.uint8))
            image = buffer.tobytes()
        self.image = image

    def snapshot(self) -> bytes:
        return self.image
