"""Port descriptor file: ``<project root>/.askbridge/port``.

Written atomically so a reader never sees a half-written port number.
"""
from __future__ import annotations

import logging
from pathlib import Path

from askbridge.shared.services.durable_write import atomic_write_text

logger = logging.getLogger(__name__)

LOCAL_DIR_NAME = ".askbridge"
PORT_FILE_NAME = "port"


def port_file_path(root: Path) -> Path:
    return Path(root) / LOCAL_DIR_NAME / PORT_FILE_NAME


def write_port_file(root: Path, port: int) -> Path:
    """Atomically write ``port`` as decimal text under ``root``."""
    path = port_file_path(root)
    atomic_write_text(path, str(port))
    return path


def read_port_file(root: Path) -> int | None:
    """Return the published port, or None if missing or unparsable."""
    path = port_file_path(root)
    try:
        raw = path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        return None
    except OSError as exc:
        logger.warning("Cannot read port file %s: %s", path, exc)
        return None
    try:
        port = int(raw)
    except ValueError:
        logger.warning("Port file %s has invalid contents %r", path, raw[:20])
        return None
    if not 0 < port < 65536:
        return None
    return port


def remove_port_file(root: Path) -> bool:
    """Delete the descriptor under ``root``. Failures are logged."""
    path = port_file_path(root)
    try:
        path.unlink()
        return True
    except FileNotFoundError:
        return False
    except OSError as exc:
        logger.error("Failed to delete stale port file %s: %s", path, exc)
        return False
