"""Overlay drawing for the camera view: detection boxes and loop status."""

from enum import Enum
from typing import Sequence, Tuple

import cv2
import numpy as np

from ..core.constants import BOX_LINE_WIDTH, DISPLAY_CONFIDENCE
from ..core.types import BoundingBox
from ..utils import LoggerMixin


class OverlayColor(Enum):
    """Colors for different overlay elements (BGR)."""

    CARD_DETECTED = (0, 128, 0)  # Green
    PREVIEW = (255, 255, 255)  # White
    PROCESSING = (0, 165, 255)  # Orange
    PROCESSED = (0, 255, 0)  # Bright green
    TEXT_BG = (0, 0, 0)  # Black
    TEXT_FG = (255, 255, 255)  # White


class CameraOverlay(LoggerMixin):
    """Draws detection results and status text onto frames."""

    def __init__(self):
        self.font = cv2.FONT_HERSHEY_SIMPLEX
        self.font_scale = 0.6
        self.font_thickness = 2
        self.line_thickness = BOX_LINE_WIDTH

    def draw_detections(
        self,
        frame: np.ndarray,
        boxes: Sequence[BoundingBox],
        min_confidence: float = DISPLAY_CONFIDENCE,
    ) -> np.ndarray:
        """Draw each confident box with a ``class (xx.x%)`` label above it."""
        overlay_frame = frame.copy()
        color = OverlayColor.CARD_DETECTED.value

        drawn = 0
        for box in boxes:
            if box.confidence < min_confidence:
                continue

            top_left = (int(round(box.x1)), int(round(box.y1)))
            bottom_right = (int(round(box.x2)), int(round(box.y2)))
            cv2.rectangle(overlay_frame, top_left, bottom_right, color, self.line_thickness)

            label = f"{box.class_name} ({box.confidence:.1f}%)"
            cv2.putText(
                overlay_frame,
                label,
                (top_left[0], top_left[1] - 5),
                self.font,
                self.font_scale,
                color,
                self.font_thickness,
                cv2.LINE_AA,
            )
            drawn += 1

        self.logger.debug("Detections drawn", drawn=drawn, total=len(boxes))
        return overlay_frame

    def draw_status(self, frame: np.ndarray, state: str, card_count: int = 0) -> np.ndarray:
        """Write the capture state (and card count once processed) in the top-left corner."""
        overlay_frame = frame.copy()
        colors = {
            "preview": OverlayColor.PREVIEW.value,
            "processing": OverlayColor.PROCESSING.value,
            "processed": OverlayColor.PROCESSED.value,
        }
        text = state.upper()
        if state == "processed":
            text += f" | {card_count} cards"

        self._draw_text_with_background(
            overlay_frame, text, (20, 40), colors.get(state, OverlayColor.TEXT_FG.value)
        )
        return overlay_frame

    def draw_instructions(self, frame: np.ndarray) -> np.ndarray:
        """Draw key bindings along the bottom edge."""
        overlay_frame = frame.copy()
        height = frame.shape[0]

        instructions = [
            "SPACE: capture / back to preview",
            "S: save crops  U: upload crops  ESC: quit",
        ]

        start_y = height - (len(instructions) * 30) - 20
        for i, instruction in enumerate(instructions):
            self._draw_text_with_background(
                overlay_frame,
                instruction,
                (20, start_y + i * 30),
                OverlayColor.TEXT_FG.value,
                scale=0.5,
            )

        return overlay_frame

    def _draw_text_with_background(
        self,
        frame: np.ndarray,
        text: str,
        position: Tuple[int, int],
        color: Tuple[int, int, int],
        scale: float = 0.7,
        thickness: int = 2,
    ) -> None:
        """Draw text with background for better visibility."""
        (text_width, text_height), baseline = cv2.getTextSize(
            text, self.font, scale, thickness
        )

        x, y = position
        cv2.rectangle(
            frame,
            (x - 2, y - text_height - 2),
            (x + text_width + 2, y + baseline + 2),
            OverlayColor.TEXT_BG.value,
            -1,
        )

        cv2.putText(
            frame, text, position, self.font, scale, color, thickness, cv2.LINE_AA
        )
