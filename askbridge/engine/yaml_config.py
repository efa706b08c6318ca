"""YAML configuration loader.

Example YAML:
    bridge:
      base_port: 34500
      max_port_attempts: 100
      randomize_port: false
      request_timeout_minutes: 240   # 0 disables the timeout
      ready_timeout_seconds: 5
      long_text_threshold: 500
      max_body_bytes: 1048576
      temp_dir: /tmp/askbridge
      temp_max_age_hours: 24
      log_level: INFO

    project_roots:
      - .
      - ../frontend

Relative project roots resolve against the YAML file's directory.
Keys missing from the file keep the values of ``base`` (defaults, or
the env-derived config when the caller passes one).
"""
from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path

import yaml

from .config import BridgeConfig

logger = logging.getLogger(__name__)


def load_yaml_config(
    path: str | Path, base: BridgeConfig | None = None,
) -> BridgeConfig:
    """Load a YAML file on top of ``base`` and return the merged config."""
    path = Path(path)
    base = base or BridgeConfig()
    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.error("load_yaml_config: config file not found at %s", path.absolute())
        raise
    except yaml.YAMLError as exc:
        logger.error("load_yaml_config: YAML parse error in %s: %s", path, exc)
        raise

    if not isinstance(raw, dict):
        raise ValueError(f"{path}: top level must be a mapping")

    bridge_raw = raw.get("bridge") or {}
    if not isinstance(bridge_raw, dict):
        raise ValueError(f"{path}: 'bridge' must be a mapping")

    roots_raw = raw.get("project_roots")
    if roots_raw is None:
        project_roots = list(base.project_roots)
    else:
        project_roots = [
            (path.parent / str(r)).resolve() if not Path(str(r)).is_absolute() else Path(str(r))
            for r in roots_raw
        ]

    temp_dir = bridge_raw.get("temp_dir", base.temp_dir)
    config = replace(
        base,
        host=str(bridge_raw.get("host", base.host)),
        base_port=int(bridge_raw.get("base_port", base.base_port)),
        max_port_attempts=int(bridge_raw.get(
            "max_port_attempts", base.max_port_attempts,
        )),
        randomize_port=bool(bridge_raw.get("randomize_port", base.randomize_port)),
        request_timeout_minutes=float(bridge_raw.get(
            "request_timeout_minutes", base.request_timeout_minutes,
        )),
        ready_timeout_seconds=float(bridge_raw.get(
            "ready_timeout_seconds", base.ready_timeout_seconds,
        )),
        long_text_threshold=int(bridge_raw.get(
            "long_text_threshold", base.long_text_threshold,
        )),
        max_body_bytes=int(bridge_raw.get("max_body_bytes", base.max_body_bytes)),
        temp_dir=str(temp_dir) if temp_dir else None,
        temp_max_age_hours=float(bridge_raw.get(
            "temp_max_age_hours", base.temp_max_age_hours,
        )),
        project_roots=project_roots,
        log_level=str(bridge_raw.get("log_level", base.log_level)),
    )
    logger.info(
        "Loaded YAML config %s: roots=%d timeout=%.1fmin",
        path.name, len(config.project_roots), config.request_timeout_minutes,
    )
    return config
