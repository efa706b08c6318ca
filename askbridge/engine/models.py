"""Data models for pending questions and their terminal answers."""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Action(str, Enum):
    CONTINUE = "continue"
    END = "end"
    INSTRUCTION = "instruction"
    ERROR = "error"


@dataclass
class AnswerPayload:
    """Terminal value delivered to the waiting agent."""

    action: Action
    text: str = ""
    images: list[str] = field(default_factory=list)
    error: str | None = None

    @classmethod
    def continue_(cls) -> AnswerPayload:
        return cls(action=Action.CONTINUE)

    @classmethod
    def end(cls) -> AnswerPayload:
        return cls(action=Action.END)

    @classmethod
    def instruction(cls, text: str, images: list[str] | None = None) -> AnswerPayload:
        return cls(action=Action.INSTRUCTION, text=text, images=list(images or []))

    @classmethod
    def failure(cls, message: str) -> AnswerPayload:
        """Synthetic error answer (timeout, supersession, shutdown)."""
        return cls(action=Action.ERROR, error=message)

    @property
    def is_error(self) -> bool:
        return self.action is Action.ERROR

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "action": self.action.value,
            "text": self.text,
            "images": list(self.images),
        }
        if self.error is not None:
            d["error"] = self.error
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AnswerPayload:
        try:
            action = Action(data.get("action", ""))
        except ValueError:
            return cls.failure(f"Unknown action: {data.get('action')!r}")
        images = data.get("images") or []
        return cls(
            action=action,
            text=str(data.get("text") or ""),
            images=[str(i) for i in images],
            error=data.get("error"),
        )


class ResponseSink:
    """Single-consumer channel back to the HTTP exchange that asked.

    The exchange awaits ``wait()``; whichever resolution path calls
    ``deliver()`` first wins, later calls are no-ops.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        loop = loop or asyncio.get_running_loop()
        self._future: asyncio.Future[AnswerPayload] = loop.create_future()

    @property
    def terminated(self) -> bool:
        return self._future.done()

    def deliver(self, payload: AnswerPayload) -> bool:
        if self._future.done():
            return False
        self._future.set_result(payload)
        return True

    async def wait(self) -> AnswerPayload:
        return await asyncio.shield(self._future)

    def result(self) -> AnswerPayload | None:
        if self._future.done() and not self._future.cancelled():
            return self._future.result()
        return None


@dataclass
class PendingRequest:
    """One outstanding question awaiting a human answer."""

    request_id: str
    sink: ResponseSink
    # None means unbounded.
    deadline: float | None = None
    created_at: float = field(default_factory=time.time)
    timer: asyncio.TimerHandle | None = field(default=None, repr=False)

    def cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None
