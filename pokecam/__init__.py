"""Pokemon Card Camera - detect, crop and identify trading cards from a live camera feed."""

__version__ = "1.0.0"
__description__ = "Detects Pokemon cards in a camera feed, crops them and sends them for identification"

from .utils.config import settings
from .utils.log import configure_logging, get_logger
from .core.types import BoundingBox, DetectionResult, ExtractedCard
from .detect.runner import CardDetectorService
from .capture.loop import CaptureLoop, CaptureState
from .identify.client import IdentifyClient

__all__ = [
    "__version__",
    "__description__",
    "configure_logging",
    "get_logger",
    "settings",
    "BoundingBox",
    "DetectionResult",
    "ExtractedCard",
    "CardDetectorService",
    "CaptureLoop",
    "CaptureState",
    "IdentifyClient",
]
