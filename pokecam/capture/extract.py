"""Cropping detected cards out of a frame and exporting them."""

from pathlib import Path
from typing import List, Sequence, Tuple, Union

import cv2
import numpy as np

from ..core.constants import DISPLAY_CONFIDENCE
from ..core.types import BoundingBox, ExtractedCard
from ..utils.log import get_logger

logger = get_logger(__name__)


def _clip_rect(box: BoundingBox, width: int, height: int) -> Tuple[int, int, int, int]:
    x1 = int(round(max(0.0, min(box.x1, box.x2))))
    y1 = int(round(max(0.0, min(box.y1, box.y2))))
    x2 = int(round(min(float(width), max(box.x1, box.x2))))
    y2 = int(round(min(float(height), max(box.y1, box.y2))))
    return x1, y1, x2, y2


def extract_card_images(
    frame: np.ndarray,
    boxes: Sequence[BoundingBox],
    min_confidence: float = DISPLAY_CONFIDENCE,
) -> List[ExtractedCard]:
    """Crop every box at or above ``min_confidence`` out of ``frame``.

    The rectangle runs from the box's first point to its third point and is
    clipped to the frame; boxes that fall entirely outside produce no card.
    """
    height, width = frame.shape[:2]
    cards: List[ExtractedCard] = []

    for box in boxes:
        if box.confidence < min_confidence:
            continue
        x1, y1, x2, y2 = _clip_rect(box, width, height)
        if x2 <= x1 or y2 <= y1:
            logger.debug("Skipping box outside frame", points=[list(p) for p in box.points])
            continue
        cards.append(ExtractedCard(image=frame[y1:y2, x1:x2].copy(),
                                   confidence=box.confidence))

    return cards


def toggle_card_selection(cards: Sequence[ExtractedCard], index: int) -> List[ExtractedCard]:
    """Return a new card list with the selection of ``cards[index]`` flipped."""
    return [
        ExtractedCard(image=card.image, confidence=card.confidence,
                      selected=not card.selected if i == index else card.selected)
        for i, card in enumerate(cards)
    ]


def cards_for_export(cards: Sequence[ExtractedCard]) -> List[Tuple[int, ExtractedCard]]:
    """Selected cards, or every card when nothing is selected, with their list index."""
    selected = [(i, card) for i, card in enumerate(cards) if card.selected]
    return selected or list(enumerate(cards))


def card_filename(card: ExtractedCard, index: int) -> str:
    return f"card-{index + 1}-{card.confidence:.1f}%.png"


def save_cards(cards: Sequence[ExtractedCard], output_dir: Union[str, Path]) -> List[Path]:
    """Write the export set as PNG files named after their position and confidence."""
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    written: List[Path] = []
    for index, card in cards_for_export(cards):
        path = out / card_filename(card, index)
        path.write_bytes(card.png_bytes())
        written.append(path)

    logger.info("Cards saved", count=len(written), output_dir=str(out))
    return written
