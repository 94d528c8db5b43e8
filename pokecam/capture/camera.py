"""Camera capture for the card camera."""

from typing import Optional

import cv2
import numpy as np

from ..utils.config import settings
from ..utils.error_handler import CaptureError
from ..utils.log import LoggerMixin


class CameraCapture(LoggerMixin):
    """Thin wrapper around ``cv2.VideoCapture`` that hands out BGR frames."""

    def __init__(
        self,
        camera_index: Optional[int] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ):
        self.cap = None
        self.camera_index = settings.CAMERA_INDEX if camera_index is None else camera_index
        self.width = width or settings.CAMERA_WIDTH
        self.height = height or settings.CAMERA_HEIGHT
        self.is_initialized = False

    def initialize(self) -> None:
        """Open the camera at the target resolution and verify it delivers frames.

        Raises:
            CaptureError: If the device cannot be opened or returns no frame.
        """
        self.cap = cv2.VideoCapture(self.camera_index)
        if not self.cap.isOpened():
            self.cap.release()
            self.cap = None
            raise CaptureError("Failed to open camera",
                               details={"camera_index": self.camera_index})

        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)

        ret, frame = self.cap.read()
        if not ret or frame is None:
            self.release()
            raise CaptureError("Failed to capture test frame",
                               details={"camera_index": self.camera_index})

        self.is_initialized = True
        self.logger.info("Camera initialized successfully",
                         camera_index=self.camera_index,
                         frame_size=f"{frame.shape[1]}x{frame.shape[0]}")

    def read_frame(self) -> Optional[np.ndarray]:
        """Return the current BGR frame, or None if nothing is available."""
        if not self.is_initialized:
            return None

        ret, frame = self.cap.read()
        if ret:
            return frame
        return None

    def release(self):
        """Release camera resources."""
        if self.cap is not None:
            self.cap.release()
            self.cap = None
            self.logger.info("Camera released")
        self.is_initialized = False

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
