"""Upload of extracted cards to the remote identify service."""

import asyncio
import json
from typing import Any, Optional, Sequence

import aiohttp

from ..core.types import ExtractedCard
from ..capture.extract import cards_for_export
from ..utils.config import settings
from ..utils.error_handler import UploadError
from ..utils.log import LoggerMixin


def format_confidence(confidence: float) -> str:
    """Render a confidence the way a JavaScript number prints: ``92`` not ``92.0``."""
    value = float(confidence)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def build_form_data(cards: Sequence[ExtractedCard]) -> aiohttp.FormData:
    """Multipart body with ``card-{i}`` PNG parts and ``confidence-{i}`` text parts."""
    form = aiohttp.FormData()
    for i, (_, card) in enumerate(cards_for_export(cards)):
        form.add_field(
            f"card-{i}",
            card.png_bytes(),
            filename=f"card-{i}.png",
            content_type="image/png",
        )
        form.add_field(f"confidence-{i}", format_confidence(card.confidence))
    return form


class IdentifyClient(LoggerMixin):
    """Posts card crops to the identify endpoint and returns its JSON verbatim."""

    def __init__(self, url: Optional[str] = None, timeout_s: Optional[float] = None):
        self.url = url or settings.IDENTIFY_URL
        self.timeout = aiohttp.ClientTimeout(total=timeout_s or settings.UPLOAD_TIMEOUT_S)

    def log_context(self):
        return {"url": self.url}

    async def upload_cards(self, cards: Sequence[ExtractedCard]) -> Any:
        """Upload the selected cards, or all of them when none is selected.

        Raises:
            UploadError: On transport errors, non-2xx responses or a body
                that is not JSON.
        """
        if not cards:
            raise UploadError("No cards to upload")

        form = build_form_data(cards)
        context = self.log_start("upload", cards=len(cards_for_export(cards)))
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.url, data=form) as response:
                    body = await response.text()
                    if not 200 <= response.status < 300:
                        raise UploadError(
                            f"Upload failed with HTTP {response.status}",
                            details={"status": response.status, "body": body[:500]},
                        )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.log_error(context, e)
            raise UploadError("Upload failed", details={"url": self.url, "error": str(e)}) from e
        except UploadError as e:
            self.log_error(context, e)
            raise

        try:
            result = json.loads(body)
        except json.JSONDecodeError as e:
            self.log_error(context, e)
            raise UploadError("Identify service returned malformed JSON",
                              details={"body": body[:500]}) from e

        self.log_success(context, status=response.status)
        return result

    async def upload_and_report(self, cards: Sequence[ExtractedCard]) -> Any:
        """Upload and always return something displayable: the JSON or ``{"error": ...}``."""
        try:
            return await self.upload_cards(cards)
        except UploadError as e:
            return {"error": e.message or "Upload failed"}
