"""
Decoding of raw detector output into frame-space bounding boxes.

The detector emits a ``[1, 4 + 1 + num_classes, N]`` tensor: one column per
anchor holding ``[cx, cy, w, h, score, class scores...]`` in 640x640
model space. Decoding converts centres to corners, runs greedy
non-max suppression and maps the survivors back onto the original frame.
"""

import asyncio
from typing import List, Tuple

import numpy as np

from ..core.constants import (
    CARD_CLASS_NAME,
    IOU_THRESHOLD,
    MAX_DETECTIONS,
    MODEL_HEIGHT,
    MODEL_WIDTH,
    SCORE_THRESHOLD,
)
from ..core.types import BoundingBox
from ..utils.error_handler import InferenceError


def split_predictions(
    raw: np.ndarray, num_classes: int
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Split raw predictions into corner boxes, scores and class indices.

    Returns:
        boxes ``[N, 4]`` ordered ``[y1, x1, y2, x2]``, scores ``[N]`` and
        arg-max class indices ``[N]``.
    """
    predictions = np.asarray(raw, dtype=np.float32)
    if predictions.ndim == 3 and predictions.shape[0] == 1:
        predictions = predictions[0]
    if predictions.ndim != 2 or predictions.shape[0] < 5:
        raise InferenceError(
            "Unexpected prediction shape",
            details={"shape": tuple(np.shape(raw))},
        )

    x, y, w, h = predictions[:4]
    x1 = x - w / 2
    y1 = y - h / 2
    x2 = x1 + w
    y2 = y1 + h
    boxes = np.stack([y1, x1, y2, x2], axis=1)

    scores = predictions[4]

    class_rows = predictions[5:5 + num_classes]
    if class_rows.shape[0] == 0:
        # single-class exports carry no per-class rows
        classes = np.zeros(predictions.shape[1], dtype=np.int64)
    else:
        classes = np.argmax(class_rows, axis=0)

    return boxes, scores, classes


def iou_against(box: np.ndarray, others: np.ndarray) -> np.ndarray:
    """IoU of one ``[y1, x1, y2, x2]`` box against each row of ``others``.

    Corners may come in either order. Pairs where either box has no area
    score 0.
    """
    box = np.asarray(box, dtype=np.float64)
    others = np.asarray(others, dtype=np.float64).reshape(-1, 4)

    ymin_a, ymax_a = min(box[0], box[2]), max(box[0], box[2])
    xmin_a, xmax_a = min(box[1], box[3]), max(box[1], box[3])
    ymin_b = np.minimum(others[:, 0], others[:, 2])
    ymax_b = np.maximum(others[:, 0], others[:, 2])
    xmin_b = np.minimum(others[:, 1], others[:, 3])
    xmax_b = np.maximum(others[:, 1], others[:, 3])

    area_a = (ymax_a - ymin_a) * (xmax_a - xmin_a)
    area_b = (ymax_b - ymin_b) * (xmax_b - xmin_b)
    inter_h = np.maximum(np.minimum(ymax_a, ymax_b) - np.maximum(ymin_a, ymin_b), 0.0)
    inter_w = np.maximum(np.minimum(xmax_a, xmax_b) - np.maximum(xmin_a, xmin_b), 0.0)
    intersection = inter_h * inter_w

    iou = np.zeros(len(others), dtype=np.float64)
    valid = (area_a > 0) & (area_b > 0)
    iou[valid] = intersection[valid] / (area_a + area_b[valid] - intersection[valid])
    return iou


def box_iou(a: np.ndarray, b: np.ndarray) -> float:
    """Intersection over union of two ``[y1, x1, y2, x2]`` boxes."""
    return float(iou_against(a, b)[0])


def non_max_suppression(
    boxes: np.ndarray,
    scores: np.ndarray,
    max_output: int = MAX_DETECTIONS,
    iou_threshold: float = IOU_THRESHOLD,
    score_threshold: float = SCORE_THRESHOLD,
) -> np.ndarray:
    """Greedy NMS over ``[y1, x1, y2, x2]`` boxes.

    Candidates scoring at or below ``score_threshold`` are dropped; the rest
    are visited best-first and kept only when their IoU with every kept box
    stays below ``iou_threshold``. At most ``max_output`` indices are
    returned, in descending score order.
    """
    scores = np.asarray(scores, dtype=np.float32).reshape(-1)
    candidates = np.flatnonzero(scores > score_threshold)
    order = candidates[np.argsort(-scores[candidates], kind="stable")]

    keep: List[int] = []
    for idx in order:
        if len(keep) >= max_output:
            break
        if not keep or np.all(iou_against(boxes[idx], boxes[keep]) < iou_threshold):
            keep.append(int(idx))

    return np.asarray(keep, dtype=np.int64)


async def non_max_suppression_async(
    boxes: np.ndarray,
    scores: np.ndarray,
    max_output: int = MAX_DETECTIONS,
    iou_threshold: float = IOU_THRESHOLD,
    score_threshold: float = SCORE_THRESHOLD,
) -> np.ndarray:
    """Run :func:`non_max_suppression` off the event loop thread."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(
        None,
        non_max_suppression,
        boxes,
        scores,
        max_output,
        iou_threshold,
        score_threshold,
    )


def gather_detections(
    boxes: np.ndarray, scores: np.ndarray, classes: np.ndarray, keep: np.ndarray
) -> np.ndarray:
    """Collect kept rows as ``[K, 6]``: ``[y1, x1, y2, x2, score, class]``."""
    keep = np.asarray(keep, dtype=np.int64)
    return np.concatenate(
        [
            boxes[keep].reshape(-1, 4),
            scores[keep].reshape(-1, 1),
            classes[keep].astype(np.float32).reshape(-1, 1),
        ],
        axis=1,
    ).astype(np.float32)


def to_bounding_boxes(
    detections: np.ndarray,
    original_width: int,
    original_height: int,
    padded_width: int,
    padded_height: int,
    model_width: int = MODEL_WIDTH,
    model_height: int = MODEL_HEIGHT,
) -> List[BoundingBox]:
    """Map gathered model-space detections back onto the original frame.

    ``orig = coord * original_dim / model_dim / (original_dim / padded_dim)``,
    which lands on the padded square: boxes reaching into the padding extend
    past the frame edge.
    """
    scale_x = original_width / padded_width
    scale_y = original_height / padded_height

    results: List[BoundingBox] = []
    for y1, x1, y2, x2, score, label in np.asarray(detections, dtype=np.float64):
        orig_x1 = x1 * original_width / model_width / scale_x
        orig_y1 = y1 * original_height / model_height / scale_y
        orig_x2 = x2 * original_width / model_width / scale_x
        orig_y2 = y2 * original_height / model_height / scale_y

        results.append(
            BoundingBox(
                points=(
                    (orig_x1, orig_y1),  # bottom left
                    (orig_x2, orig_y1),  # bottom right
                    (orig_x2, orig_y2),  # top right
                    (orig_x1, orig_y2),  # top left
                ),
                confidence=float(score) * 100,
                class_name=CARD_CLASS_NAME,
                label=int(label),
            )
        )
    return results
