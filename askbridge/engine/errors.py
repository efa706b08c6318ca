"""Exception hierarchy for the ask bridge.

Allocation errors are the only class allowed to keep the bridge from
starting. Everything raised after a connection is accepted is turned
into a JSON error response at the HTTP boundary.
"""
from __future__ import annotations


class BridgeError(Exception):
    """Base exception for all bridge errors."""


class NoPortAvailable(BridgeError):
    """Every candidate port in the allocation range was in use."""
    def __init__(self, base_port: int, attempts: int):
        self.base_port = base_port
        self.attempts = attempts
        super().__init__(
            f"No free port in {base_port}-{base_port + attempts - 1} "
            f"after {attempts} attempts"
        )


class PortBindError(BridgeError):
    """Binding failed for a reason other than the port being in use."""
    def __init__(self, port: int, reason: str):
        self.port = port
        self.reason = reason
        super().__init__(f"Cannot bind port {port}: {reason}")


class RequestValidationError(BridgeError):
    """An incoming /request body was rejected.

    Carries the HTTP status the endpoint should answer with.
    """
    def __init__(self, message: str, status: int = 400):
        self.message = message
        self.status = status
        super().__init__(message)


class SurfaceUnavailableError(BridgeError):
    """The presentation surface could not display a prompt."""
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Presentation surface unavailable: {reason}")
