"""Configuration loaded from environment variables.

All settings have sensible defaults. Override via ASKBRIDGE_* env vars
or a YAML file (see yaml_config.py).
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from .assembler import DEFAULT_LONG_TEXT_THRESHOLD
from .port_allocator import DEFAULT_BASE_PORT, DEFAULT_MAX_PORT_ATTEMPTS

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning("Invalid %s=%r; using default %s", name, raw, default)
        return default


@dataclass
class BridgeConfig:
    """Bridge configuration."""

    host: str = "127.0.0.1"
    base_port: int = DEFAULT_BASE_PORT
    max_port_attempts: int = DEFAULT_MAX_PORT_ATTEMPTS
    # Start the port scan at a random offset inside the range.
    randomize_port: bool = False

    # Default per-request wait when the caller sends no timeoutMinutes.
    # Set to 0 (or a negative value) to disable timeout.
    request_timeout_minutes: float = 30.0
    # How long to wait for the surface to signal ready before showing
    # the prompt anyway.
    ready_timeout_seconds: float = 5.0

    long_text_threshold: int = DEFAULT_LONG_TEXT_THRESHOLD
    max_body_bytes: int = 1024 * 1024
    temp_dir: str | None = None
    # Submission artifacts older than this are swept at start.
    # Set to 0 to disable the sweep.
    temp_max_age_hours: float = 24.0

    # Every open project root gets a copy of the port descriptor.
    project_roots: list[Path] = field(default_factory=list)

    log_level: str = "INFO"

    @property
    def request_timeout_seconds(self) -> float:
        return max(0.0, self.request_timeout_minutes * 60.0)

    def roots(self) -> list[Path]:
        return list(self.project_roots) or [Path.cwd()]

    @classmethod
    def from_env(cls) -> BridgeConfig:
        """Load configuration from ASKBRIDGE_* environment variables."""
        bridge_vars = {
            k: v for k, v in os.environ.items() if k.startswith("ASKBRIDGE_")
        }
        if bridge_vars:
            logger.info(
                "BridgeConfig.from_env: ASKBRIDGE_* env overrides: %s",
                ", ".join(f"{k}={v}" for k, v in sorted(bridge_vars.items())),
            )

        roots_raw = os.getenv("ASKBRIDGE_PROJECT_ROOTS", "")
        config = cls(
            host=os.getenv("ASKBRIDGE_HOST", cls.host),
            base_port=_env_number("ASKBRIDGE_BASE_PORT", cls.base_port, int),
            max_port_attempts=_env_number(
                "ASKBRIDGE_MAX_PORT_ATTEMPTS", cls.max_port_attempts, int,
            ),
            randomize_port=(
                os.getenv("ASKBRIDGE_RANDOMIZE_PORT", "").lower() in _TRUTHY
            ),
            request_timeout_minutes=_env_number(
                "ASKBRIDGE_REQUEST_TIMEOUT_MINUTES",
                cls.request_timeout_minutes,
                float,
            ),
            ready_timeout_seconds=_env_number(
                "ASKBRIDGE_READY_TIMEOUT_SECONDS", cls.ready_timeout_seconds, float,
            ),
            long_text_threshold=_env_number(
                "ASKBRIDGE_LONG_TEXT_THRESHOLD", cls.long_text_threshold, int,
            ),
            max_body_bytes=_env_number(
                "ASKBRIDGE_MAX_BODY_BYTES", cls.max_body_bytes, int,
            ),
            temp_dir=os.getenv("ASKBRIDGE_TEMP_DIR") or None,
            temp_max_age_hours=_env_number(
                "ASKBRIDGE_TEMP_MAX_AGE_HOURS", cls.temp_max_age_hours, float,
            ),
            project_roots=[
                Path(p) for p in roots_raw.split(os.pathsep) if p.strip()
            ],
            log_level=os.getenv("ASKBRIDGE_LOG_LEVEL", cls.log_level),
        )
        logger.debug(
            "BridgeConfig.from_env: base_port=%d attempts=%d timeout=%.1fmin",
            config.base_port, config.max_port_attempts,
            config.request_timeout_minutes,
        )
        return config
