"""askbridge engine — port allocation, request ledger, readiness, submissions."""
from .models import Action, AnswerPayload, PendingRequest, ResponseSink
from .config import BridgeConfig
from .errors import (
    BridgeError,
    NoPortAvailable,
    PortBindError,
    RequestValidationError,
    SurfaceUnavailableError,
)
from .assembler import SubmissionAssembler
from .ledger import RequestLedger
from .port_allocator import PortAllocator
from .readiness import ReadinessLatch, ReadinessState

__all__ = [
    # Models
    "Action",
    "AnswerPayload",
    "PendingRequest",
    "ResponseSink",
    # Config
    "BridgeConfig",
    # Errors
    "BridgeError",
    "NoPortAvailable",
    "PortBindError",
    "RequestValidationError",
    "SurfaceUnavailableError",
    # Components
    "PortAllocator",
    "ReadinessLatch",
    "ReadinessState",
    "RequestLedger",
    "SubmissionAssembler",
]
