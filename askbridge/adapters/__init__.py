"""Adapters between the bridge core and presentation surfaces."""
from .events import (
    ContinueSignal,
    EndSignal,
    Hidden,
    Ready,
    SetPort,
    ShowPrompt,
    Submit,
    SurfaceMessage,
    dict_to_message,
    message_to_dict,
)
from .surface import PresentationSurface, QueueSurface, SurfaceController

__all__ = [
    "ContinueSignal",
    "EndSignal",
    "Hidden",
    "PresentationSurface",
    "QueueSurface",
    "Ready",
    "SetPort",
    "ShowPrompt",
    "Submit",
    "SurfaceController",
    "SurfaceMessage",
    "dict_to_message",
    "message_to_dict",
]
