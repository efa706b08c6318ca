"""Best-effort cleanup for stale submission artifacts.

Targets only files the submission assembler writes (saved images and
offloaded instructions) in the bridge temp directory.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from askbridge.engine.assembler import IMAGE_PREFIX, INSTRUCTION_PREFIX

logger = logging.getLogger(__name__)

_MANAGED_PREFIXES = (IMAGE_PREFIX, INSTRUCTION_PREFIX)


def _is_managed_artifact(path: Path) -> bool:
    return path.is_file() and path.name.startswith(_MANAGED_PREFIXES)


def cleanup_stale_artifacts(
    temp_dir: Path,
    max_age_seconds: float,
    *,
    now: float | None = None,
) -> list[Path]:
    """Delete managed artifacts older than ``max_age_seconds``.

    Returns the removed paths. ``max_age_seconds`` <= 0 disables the sweep.
    """
    if max_age_seconds <= 0:
        return []
    now = time.time() if now is None else now
    removed: list[Path] = []
    try:
        entries = list(Path(temp_dir).iterdir())
    except OSError as exc:
        logger.debug("Temp sweep skipped for %s: %s", temp_dir, exc)
        return removed

    for path in entries:
        try:
            if not _is_managed_artifact(path):
                continue
            if now - path.stat().st_mtime <= max_age_seconds:
                continue
            path.unlink()
            removed.append(path)
        except OSError as exc:
            logger.debug("Could not remove stale artifact %s: %s", path, exc)

    if removed:
        logger.info("Removed %d stale submission artifact(s) from %s", len(removed), temp_dir)
    return removed
