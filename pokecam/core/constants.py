from typing import Final

# Detector input resolution (w, h)
MODEL_WIDTH: Final[int] = 640
MODEL_HEIGHT: Final[int] = 640

# Post-processing, calibrated against the exported detector
SCORE_THRESHOLD: Final[float] = 0.1
IOU_THRESHOLD: Final[float] = 0.1
MAX_DETECTIONS: Final[int] = 100

# Boxes below this confidence (percent) are neither drawn nor cropped
DISPLAY_CONFIDENCE: Final[float] = 50.0

CARD_CLASS_NAME: Final[str] = "pokemon_card"
DEFAULT_NUM_CLASSES: Final[int] = 1

# Requested camera resolution (square, the detector pads to square anyway)
CAMERA_TARGET_SIZE: Final[int] = 1920

DEFAULT_IDENTIFY_URL: Final[str] = "https://test3.xarcotic.dev/v1/identify/analyze"

# Overlay box stroke, in pixels
BOX_LINE_WIDTH: Final[int] = 10
