from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import cv2
import numpy as np

from .constants import CARD_CLASS_NAME

Point = Tuple[float, float]


@dataclass(frozen=True)
class BoundingBox:
    points: Tuple[Point, Point, Point, Point]  # bottom-left, bottom-right, top-right, top-left
    confidence: float  # percent, 0-100
    class_name: str = CARD_CLASS_NAME
    label: Optional[int] = None

    @property
    def x1(self) -> float:
        return self.points[0][0]

    @property
    def y1(self) -> float:
        return self.points[0][1]

    @property
    def x2(self) -> float:
        return self.points[2][0]

    @property
    def y2(self) -> float:
        return self.points[2][1]

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly shape, keyed the way the web client keyed it."""
        data: Dict[str, Any] = {
            "points": [list(p) for p in self.points],
            "confidence": self.confidence,
            "class": self.class_name,
        }
        if self.label is not None:
            data["label"] = self.label
        return data


@dataclass
class DetectionResult:
    image_index: int
    detections: List[BoundingBox] = field(default_factory=list)


@dataclass
class PreprocessedFrame:
    input: np.ndarray  # [1, model_h, model_w, 3] float32 in [0, 1]
    original_width: int
    original_height: int
    padded_width: int
    padded_height: int


@dataclass
class ExtractedCard:
    image: np.ndarray  # BGR crop
    confidence: float
    selected: bool = False

    def png_bytes(self) -> bytes:
        ok, buf = cv2.imencode(".png", self.image)
        if not ok:
            raise ValueError("PNG encoding failed")
        return buf.tobytes()
