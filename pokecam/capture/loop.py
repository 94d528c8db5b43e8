"""
Capture loop: a three-state machine driven once per display refresh.

``preview`` mirrors the camera onto the overlay surface, ``processing``
runs one detection pass and freezes on its result, ``processed`` idles
until the user taps to go back to preview.
"""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional

import cv2
import numpy as np

from ..core.types import BoundingBox, ExtractedCard
from ..detect.runner import CardDetectorService
from ..utils.config import settings
from ..utils.error_handler import ErrorContext, handle_error
from ..utils.log import LoggerMixin
from .camera import CameraCapture
from .extract import extract_card_images
from .overlay import CameraOverlay


class CaptureState(str, Enum):
    PREVIEW = "preview"
    PROCESSING = "processing"
    PROCESSED = "processed"


class CaptureLoop(LoggerMixin):
    """Cooperative per-frame loop over a camera and a detector.

    Each tick runs to completion (including the detector's suspension
    point) before the next one is scheduled, so at most one detection
    pass is ever in progress.
    """

    def __init__(
        self,
        camera: CameraCapture,
        detector: CardDetectorService,
        overlay: Optional[CameraOverlay] = None,
        frame_interval: Optional[float] = None,
        on_render: Optional[Callable[["CaptureLoop"], None]] = None,
    ):
        self.camera = camera
        self.detector = detector
        self.overlay = overlay or CameraOverlay()
        self.frame_interval = settings.FRAME_INTERVAL_S if frame_interval is None else frame_interval
        self.on_render = on_render

        self.state = CaptureState.PREVIEW
        self.surface: Optional[np.ndarray] = None
        self.boxes: List[BoundingBox] = []
        self.extracted_cards: List[ExtractedCard] = []

        self._running = False
        self._pending: Optional[asyncio.Future] = None
        self._handlers: Dict[CaptureState, Callable[[], Awaitable[None]]] = {
            CaptureState.PREVIEW: self._handle_preview,
            CaptureState.PROCESSING: self._handle_processing,
            CaptureState.PROCESSED: self._handle_processed,
        }

    @property
    def is_running(self) -> bool:
        return self._running

    def log_context(self):
        return {"state": self.state.value}

    def tap(self) -> CaptureState:
        """User tap: preview -> processing, processed -> preview; ignored while processing."""
        if self.state is CaptureState.PREVIEW:
            self.state = CaptureState.PROCESSING
        elif self.state is CaptureState.PROCESSED:
            self.state = CaptureState.PREVIEW
        self.logger.debug("Tap", state=self.state.value)
        return self.state

    async def tick(self) -> None:
        await self._handlers[self.state]()

    async def _handle_preview(self) -> None:
        frame = self.camera.read_frame()
        if frame is not None:
            self.surface = frame

    async def _handle_processing(self) -> None:
        frame = self.camera.read_frame()
        if frame is None:
            self.logger.warning("No camera frame available, retrying next tick")
            return

        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        context = self.log_start("process_frame", frame_shape=list(frame.shape))
        try:
            boxes = await self.detector.detect_single_image(rgb)
        except Exception as e:
            handle_error(
                e,
                ErrorContext(operation="detect", module=__name__, function="_handle_processing",
                             input_data={"frame_shape": list(frame.shape)}),
                self.logger,
            )

        self.boxes = boxes
        self.extracted_cards = extract_card_images(frame, boxes)
        self.surface = self.overlay.draw_detections(frame, boxes)
        self.state = CaptureState.PROCESSED
        self.log_success(context, boxes=len(boxes), cards=len(self.extracted_cards))

    async def _handle_processed(self) -> None:
        pass

    async def run(self) -> None:
        """Tick until :meth:`stop` is called."""
        self._running = True
        self.logger.info("Capture loop started")
        try:
            while self._running:
                await self.tick()
                if self.on_render is not None:
                    self.on_render(self)
                if not self._running:
                    break

                self._pending = asyncio.ensure_future(asyncio.sleep(self.frame_interval))
                try:
                    await self._pending
                except asyncio.CancelledError:
                    if self._running:
                        raise
                    break
                finally:
                    self._pending = None
        finally:
            self.stop()

    def stop(self) -> None:
        """Stop scheduling ticks, drop any pending tick and release the camera."""
        was_running = self._running
        self._running = False
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self.camera.release()
        if was_running:
            self.logger.info("Capture loop stopped", state=self.state.value)
