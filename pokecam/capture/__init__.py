"""Capture package for camera handling, overlays and card extraction."""

from .camera import CameraCapture
from .extract import (
    card_filename,
    cards_for_export,
    extract_card_images,
    save_cards,
    toggle_card_selection,
)
from .loop import CaptureLoop, CaptureState
from .overlay import CameraOverlay, OverlayColor

__all__ = [
    "CameraCapture",
    "CameraOverlay",
    "OverlayColor",
    "CaptureLoop",
    "CaptureState",
    "extract_card_images",
    "toggle_card_selection",
    "cards_for_export",
    "card_filename",
    "save_cards",
]
