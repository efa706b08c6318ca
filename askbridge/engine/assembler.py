"""Submission assembler — turns a raw surface submission into an answer.

Inline images are decoded to temp files and returned by path. Text
longer than the threshold is offloaded to a temp file and replaced by
a pointer so the bridge response stays small.
"""
from __future__ import annotations

import base64
import binascii
import itertools
import logging
import re
import secrets
import tempfile
import time
from pathlib import Path

from .models import AnswerPayload

logger = logging.getLogger(__name__)

DEFAULT_LONG_TEXT_THRESHOLD = 500
IMAGE_PREFIX = "askbridge_img_"
INSTRUCTION_PREFIX = "askbridge_instruction_"

_DATA_URL_RE = re.compile(r"^data:image/([\w.+-]+);base64,", re.IGNORECASE)
_EXTENSIONS = {
    "jpeg": "jpg",
    "svg+xml": "svg",
}

_sequence = itertools.count()


def _unique_token() -> str:
    """Timestamp + process-wide sequence + random hex."""
    return f"{int(time.time() * 1000)}_{next(_sequence)}_{secrets.token_hex(4)}"


def _split_data_url(image: str) -> tuple[str, str]:
    """Return (extension, base64 payload) for a data URL or bare base64."""
    match = _DATA_URL_RE.match(image)
    if not match:
        return "png", image
    subtype = match.group(1).lower()
    return _EXTENSIONS.get(subtype, subtype), image[match.end():]


class SubmissionAssembler:
    """Builds ``instruction`` answers from surface submissions."""

    def __init__(
        self,
        temp_dir: str | Path | None = None,
        long_text_threshold: int = DEFAULT_LONG_TEXT_THRESHOLD,
    ) -> None:
        self.temp_dir = Path(temp_dir) if temp_dir else Path(tempfile.gettempdir())
        self.long_text_threshold = long_text_threshold

    def assemble(self, text: str, images: list[str] | None = None) -> AnswerPayload:
        token = _unique_token()
        saved, failed = self._save_images(images or [], token)

        prefix = ""
        if failed:
            prefix = (
                "[askbridge warning] Failed to save image(s): "
                f"{', '.join(str(i) for i in failed)}\n\n"
            )

        if len(text) > self.long_text_threshold:
            path = self.temp_dir / f"{INSTRUCTION_PREFIX}{token}.txt"
            try:
                self.temp_dir.mkdir(parents=True, exist_ok=True)
                path.write_text(text, encoding="utf-8")
            except OSError as exc:
                # The answer still goes out, inline.
                logger.error("Failed to offload instruction to %s: %s", path, exc)
                prefix += (
                    "[askbridge warning] Failed to save long instruction to file; "
                    "sent inline\n\n"
                )
                return AnswerPayload.instruction(prefix + text, saved)
            logger.info(
                "Instruction offloaded to file chars=%d path=%s", len(text), path,
            )
            body = (
                "[Content too long, saved to file]\n\n"
                "The user provided a full instruction; read the following file:\n"
                f"- {path}"
            )
            return AnswerPayload.instruction(prefix + body, saved)

        return AnswerPayload.instruction(prefix + text, saved)

    def _save_images(self, images: list[str], token: str) -> tuple[list[str], list[int]]:
        saved: list[str] = []
        failed: list[int] = []
        for index, image in enumerate(images):
            try:
                ext, data = _split_data_url(str(image))
                raw = base64.b64decode(data, validate=True)
                if not raw:
                    raise ValueError("empty image payload")
                path = self.temp_dir / f"{IMAGE_PREFIX}{token}_{index}.{ext}"
                self.temp_dir.mkdir(parents=True, exist_ok=True)
                path.write_bytes(raw)
                saved.append(str(path))
            except (binascii.Error, ValueError, OSError) as exc:
                logger.error("Failed to save image %d: %s", index + 1, exc)
                failed.append(index + 1)
        return saved, failed
