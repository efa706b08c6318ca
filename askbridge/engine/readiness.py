"""Readiness rendezvous between the bridge and the presentation surface."""
from __future__ import annotations

import asyncio
import logging
from enum import Enum

logger = logging.getLogger(__name__)


class ReadinessState(str, Enum):
    NOT_READY = "not_ready"
    READY = "ready"


class ReadinessLatch:
    """Two-state latch: the surface signals ready, waiters wait with a timeout.

    ``reset()`` puts the latch back to NOT_READY (surface hidden or torn
    down) so the next activation has to signal again. Waiters that are
    already blocked keep waiting on the same latch across a reset.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def state(self) -> ReadinessState:
        return ReadinessState.READY if self._event.is_set() else ReadinessState.NOT_READY

    @property
    def is_ready(self) -> bool:
        return self._event.is_set()

    def signal_ready(self) -> None:
        if not self._event.is_set():
            logger.debug("Surface signalled ready")
        self._event.set()

    def reset(self) -> None:
        if self._event.is_set():
            logger.debug("Surface readiness reset")
        self._event.clear()

    async def wait_until_ready(self, timeout: float | None) -> bool:
        """Return True once ready, False if ``timeout`` seconds pass first.

        ``None`` waits forever.
        """
        if self._event.is_set():
            return True
        try:
            if timeout is None:
                await self._event.wait()
            else:
                await asyncio.wait_for(self._event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True
