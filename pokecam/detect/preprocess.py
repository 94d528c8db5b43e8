"""Frame to detector-input tensor conversion."""

from typing import Tuple

import numpy as np

from ..core.constants import MODEL_HEIGHT, MODEL_WIDTH
from ..core.types import PreprocessedFrame
from ..utils.error_handler import InvalidFrameError


def pad_to_square(image: np.ndarray) -> Tuple[np.ndarray, int]:
    """Zero-pad the bottom and right edges so the image becomes max(w, h) square.

    Padding only ever goes after the pixel data, so model-space coordinates
    keep the same origin as the original frame.
    """
    height, width = image.shape[:2]
    max_size = max(width, height)
    pad = [(0, max_size - height), (0, max_size - width)]
    pad += [(0, 0)] * (image.ndim - 2)
    return np.pad(image, pad, mode="constant", constant_values=0), max_size


def _source_samples(in_size: int, out_size: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Lower/upper source indices and blend weights along one axis.

    Output index ``i`` samples source position ``i * in_size / out_size``
    (corner-aligned grid, no half-pixel offset), the sampling the detector
    was calibrated with.
    """
    position = np.arange(out_size, dtype=np.float64) * (in_size / out_size)
    lower = np.floor(position).astype(np.int64)
    upper = np.minimum(np.ceil(position).astype(np.int64), in_size - 1)
    return lower, upper, position - lower


def resize_bilinear(image: np.ndarray, width: int, height: int) -> np.ndarray:
    """Bilinear resize of an ``H x W x C`` image to ``height x width x C`` float32."""
    top, bottom, row_weight = _source_samples(image.shape[0], height)
    left, right, col_weight = _source_samples(image.shape[1], width)

    upper_rows = image[top]
    lower_rows = image[bottom]
    top_left = upper_rows[:, left].astype(np.float64)
    top_right = upper_rows[:, right].astype(np.float64)
    bottom_left = lower_rows[:, left].astype(np.float64)
    bottom_right = lower_rows[:, right].astype(np.float64)

    col_weight = col_weight[np.newaxis, :, np.newaxis]
    top_blend = top_left + (top_right - top_left) * col_weight
    bottom_blend = bottom_left + (bottom_right - bottom_left) * col_weight
    blended = top_blend + (bottom_blend - top_blend) * row_weight[:, np.newaxis, np.newaxis]
    return blended.astype(np.float32)


def preprocess_frame(
    frame: np.ndarray,
    model_width: int = MODEL_WIDTH,
    model_height: int = MODEL_HEIGHT,
) -> PreprocessedFrame:
    """Pad, resize and normalise a frame into a batched detector input.

    Args:
        frame: ``H x W x C`` uint8 pixel buffer, C is 3 (RGB) or 4 (RGBA).
            Alpha is dropped.
        model_width: Detector input width.
        model_height: Detector input height.

    Returns:
        PreprocessedFrame holding a ``[1, model_height, model_width, 3]``
        float32 tensor in [0, 1] and the original/padded dimensions needed
        to map detections back to frame coordinates.

    Raises:
        InvalidFrameError: If the frame is empty or not a colour image.
    """
    if frame is None or frame.ndim != 3 or frame.shape[2] not in (3, 4):
        raise InvalidFrameError(
            "Frame must be an HxWx3 or HxWx4 array",
            details={"shape": None if frame is None else tuple(frame.shape)},
        )
    original_height, original_width = frame.shape[:2]
    if original_width == 0 or original_height == 0:
        raise InvalidFrameError(
            "Frame has zero size",
            details={"width": original_width, "height": original_height},
        )

    rgb = frame[:, :, :3]
    padded, max_size = pad_to_square(rgb)

    resized = resize_bilinear(padded, model_width, model_height)
    tensor = (resized / np.float32(255.0))[np.newaxis, ...]

    return PreprocessedFrame(
        input=tensor,
        original_width=original_width,
        original_height=original_height,
        padded_width=max_size,
        padded_height=max_size,
    )
