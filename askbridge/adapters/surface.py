"""Surface controller — routes messages between the bridge and a surface.

The surface only sees ``post()`` calls carrying ``ShowPrompt`` /
``SetPort`` and pushes ``Ready`` / ``Hidden`` / ``ContinueSignal`` /
``EndSignal`` / ``Submit`` back through ``handle_message()``. Answers
are resolved through the ledger so the active-request fallback for
untagged messages lives in exactly one place.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any, Protocol

from askbridge.adapters.events import (
    ContinueSignal,
    EndSignal,
    Hidden,
    Ready,
    SetPort,
    ShowPrompt,
    Submit,
    SurfaceMessage,
    dict_to_message,
)
from askbridge.engine.assembler import SubmissionAssembler
from askbridge.engine.errors import SurfaceUnavailableError
from askbridge.engine.ledger import RequestLedger
from askbridge.engine.models import AnswerPayload
from askbridge.engine.readiness import ReadinessLatch

logger = logging.getLogger(__name__)


class PresentationSurface(Protocol):
    """Anything that can display bridge messages to a human."""

    async def post(self, message: SurfaceMessage) -> None: ...


class QueueSurface:
    """In-process surface backed by an asyncio queue.

    Used by headless surfaces (the console) and tests: whoever consumes
    ``messages()`` plays the human.
    """

    def __init__(self, maxsize: int = 100) -> None:
        self._queue: asyncio.Queue[SurfaceMessage] = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    async def post(self, message: SurfaceMessage) -> None:
        if self._closed:
            return
        await self._queue.put(message)

    async def get(self) -> SurfaceMessage:
        return await self._queue.get()

    async def messages(self) -> AsyncIterator[SurfaceMessage]:
        """Yield messages as they arrive. Stops on close()."""
        while not self._closed:
            try:
                yield await asyncio.wait_for(self._queue.get(), timeout=0.5)
            except asyncio.TimeoutError:
                continue

    def close(self) -> None:
        self._closed = True


class SurfaceController:
    """Owns the readiness latch and the surface side of the protocol."""

    def __init__(
        self,
        surface: PresentationSurface,
        ledger: RequestLedger,
        assembler: SubmissionAssembler | None = None,
        ready_timeout_seconds: float = 5.0,
    ) -> None:
        self.surface = surface
        self.ledger = ledger
        self.assembler = assembler or SubmissionAssembler()
        self.ready_timeout_seconds = ready_timeout_seconds
        self.latch = ReadinessLatch()
        self.port: int = 0

    # ── Core → surface ──

    async def show_prompt(
        self,
        prompt: str,
        request_id: str,
        timeout_minutes: float | None = None,
    ) -> None:
        """Display a prompt once the surface is ready.

        If readiness does not arrive in time the prompt is posted anyway;
        a slow surface may still pick it up.
        """
        ready = await self.latch.wait_until_ready(self.ready_timeout_seconds)
        if not ready:
            logger.warning(
                "Surface not ready after %.1fs, showing request_id=%s anyway",
                self.ready_timeout_seconds,
                request_id[:8],
            )
        try:
            await self.surface.post(ShowPrompt(
                prompt=prompt,
                request_id=request_id,
                timeout_minutes=timeout_minutes,
            ))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise SurfaceUnavailableError(str(exc)) from exc
        logger.info("Prompt shown request_id=%s chars=%d", request_id[:8], len(prompt))

    async def set_port(self, port: int) -> None:
        self.port = port
        await self.surface.post(SetPort(port=port))

    # ── Surface → core ──

    def handle_message(self, message: SurfaceMessage | dict[str, Any]) -> bool:
        """Apply one surface message. Returns True if it resolved a request."""
        if isinstance(message, dict):
            message = dict_to_message(message)

        if isinstance(message, Ready):
            self.latch.signal_ready()
            return False
        if isinstance(message, Hidden):
            self.latch.reset()
            return False
        if isinstance(message, ContinueSignal):
            return self.ledger.resolve_response(
                AnswerPayload.continue_(), message.request_id or None,
            )
        if isinstance(message, EndSignal):
            return self.ledger.resolve_response(
                AnswerPayload.end(), message.request_id or None,
            )
        if isinstance(message, Submit):
            # Nothing is written to disk for an answer nobody is waiting on.
            target = self.ledger.response_target(message.request_id or None)
            if target is None:
                logger.warning(
                    "Submit ignored request_id=%s (missing or already resolved)",
                    (message.request_id or "-")[:8],
                )
                return False
            payload = self.assembler.assemble(message.text or "", message.images or [])
            return self.ledger.resolve(target, payload)

        logger.warning("Unknown surface message type=%r", message.type)
        return False
