"""Detection package: preprocessing, inference and box decoding."""

from .postprocess import non_max_suppression, to_bounding_boxes
from .preprocess import preprocess_frame
from .runner import CardDetectorService

__all__ = [
    "CardDetectorService",
    "preprocess_frame",
    "non_max_suppression",
    "to_bounding_boxes",
]
