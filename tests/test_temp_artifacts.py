from __future__ import annotations

import os
import time
from pathlib import Path

from askbridge.engine.assembler import IMAGE_PREFIX, INSTRUCTION_PREFIX
from askbridge.shared.services.temp_artifacts import cleanup_stale_artifacts

DAY = 24 * 3600


def _touch(path: Path, age_seconds: float) -> Path:
    path.write_text("x", encoding="utf-8")
    stamp = time.time() - age_seconds
    os.utime(path, (stamp, stamp))
    return path


def test_removes_only_old_managed_files(tmp_path: Path) -> None:
    old_image = _touch(tmp_path / f"{IMAGE_PREFIX}1_0.png", 2 * DAY)
    old_text = _touch(tmp_path / f"{INSTRUCTION_PREFIX}1.md", 2 * DAY)
    fresh_image = _touch(tmp_path / f"{IMAGE_PREFIX}2_0.png", 60)
    foreign = _touch(tmp_path / "notes.txt", 10 * DAY)

    removed = cleanup_stale_artifacts(tmp_path, DAY)

    assert sorted(removed) == sorted([old_image, old_text])
    assert not old_image.exists()
    assert not old_text.exists()
    assert fresh_image.exists()
    assert foreign.exists()


def test_zero_max_age_disables_sweep(tmp_path: Path) -> None:
    old = _touch(tmp_path / f"{IMAGE_PREFIX}1_0.png", 10 * DAY)
    assert cleanup_stale_artifacts(tmp_path, 0) == []
    assert old.exists()


def test_missing_directory_is_not_an_error(tmp_path: Path) -> None:
    assert cleanup_stale_artifacts(tmp_path / "nope", DAY) == []


def test_explicit_now(tmp_path: Path) -> None:
    path = _touch(tmp_path / f"{INSTRUCTION_PREFIX}1.md", 0)
    assert cleanup_stale_artifacts(tmp_path, DAY, now=time.time() + 2 * DAY) == [path]
