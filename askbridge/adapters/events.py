"""Messages exchanged between the bridge and the presentation surface.

Each message is a dataclass keyed by ``type``, converted to and from
plain dicts so surfaces living behind a JSON boundary can use them.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class SurfaceMessage:
    """Base message."""
    type: str = ""


# ── Core → surface ──


@dataclass
class ShowPrompt(SurfaceMessage):
    type: str = "showPrompt"
    prompt: str = ""
    request_id: str = ""
    # Hint for the surface countdown; None means unbounded.
    timeout_minutes: float | None = None


@dataclass
class SetPort(SurfaceMessage):
    type: str = "setPort"
    port: int = 0


# ── Surface → core ──


@dataclass
class Ready(SurfaceMessage):
    type: str = "ready"


@dataclass
class Hidden(SurfaceMessage):
    type: str = "hidden"


@dataclass
class ContinueSignal(SurfaceMessage):
    type: str = "continue"
    request_id: str | None = None


@dataclass
class EndSignal(SurfaceMessage):
    type: str = "end"
    request_id: str | None = None


@dataclass
class Submit(SurfaceMessage):
    type: str = "submit"
    text: str = ""
    images: list[str] = field(default_factory=list)
    request_id: str | None = None


_MESSAGE_MAP: dict[str, type[SurfaceMessage]] = {
    "showPrompt": ShowPrompt,
    "setPort": SetPort,
    "ready": Ready,
    "hidden": Hidden,
    "continue": ContinueSignal,
    "end": EndSignal,
    "submit": Submit,
}

# Wire names used by JS-style surfaces.
_ALIASES = {
    "requestId": "request_id",
    "timeoutMinutes": "timeout_minutes",
}


def message_to_dict(message: SurfaceMessage) -> dict[str, Any]:
    """Convert a typed message to a plain dict for JSON serialization."""
    d: dict[str, Any] = {}
    for f in message.__dataclass_fields__:
        val = getattr(message, f)
        if val is not None:
            d[f] = val
    return d


def dict_to_message(data: dict[str, Any]) -> SurfaceMessage:
    """Convert a surface dict to a typed message; unknown types stay generic."""
    msg_type = str(data.get("type", ""))
    cls = _MESSAGE_MAP.get(msg_type, SurfaceMessage)
    normalized = {_ALIASES.get(k, k): v for k, v in data.items()}
    # Filter dict keys to only those the dataclass accepts
    valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
    filtered = {k: v for k, v in normalized.items() if k in valid_fields}
    if cls is SurfaceMessage:
        filtered["type"] = msg_type
    return cls(**filtered)
