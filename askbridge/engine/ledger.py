"""Request ledger — tracks in-flight questions keyed by request id.

All mutation happens on the event loop thread and none of the methods
here await, so every read-check-write is atomic with respect to the
other resolution paths (answer, timeout, supersession, shutdown).
"""
from __future__ import annotations

import asyncio
import logging
import time

from .models import AnswerPayload, PendingRequest, ResponseSink

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Timed out waiting for user response"
SUPERSEDED_MESSAGE = "Superseded by a newer request with the same requestId"
SHUTDOWN_MESSAGE = "Bridge is shutting down"


class RequestLedger:
    """Owns the ``request_id -> PendingRequest`` map.

    ``active_request_id`` points at the most recent registrant (last
    registrant wins). It is only consulted by ``resolve_response`` when
    a surface message arrives without an explicit request id, which can
    misattribute an answer if two requests are pending at once.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._pending: dict[str, PendingRequest] = {}
        self.active_request_id: str | None = None

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._pending

    def get(self, request_id: str) -> PendingRequest | None:
        return self._pending.get(request_id)

    def pending_ids(self) -> list[str]:
        return list(self._pending)

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    # ── Registration ──

    def supersede(self, request_id: str) -> bool:
        """Terminate the current holder of ``request_id``, if any."""
        if request_id not in self._pending:
            return False
        logger.debug("Superseding pending request_id=%s", request_id[:8])
        return self.resolve(request_id, AnswerPayload.failure(SUPERSEDED_MESSAGE))

    def register(
        self,
        request_id: str,
        sink: ResponseSink,
        timeout_seconds: float = 0.0,
    ) -> PendingRequest:
        """Register a new pending request.

        A previous holder of the same id is resolved with a superseded
        error before the new entry takes its place. ``timeout_seconds``
        <= 0 disables the automatic timeout.
        """
        self.supersede(request_id)

        entry = PendingRequest(request_id=request_id, sink=sink)
        if timeout_seconds > 0:
            entry.deadline = entry.created_at + timeout_seconds
            entry.timer = self._get_loop().call_later(
                timeout_seconds, self._expire, request_id, sink,
            )
        self._pending[request_id] = entry
        self.active_request_id = request_id
        logger.info(
            "Registered request_id=%s timeout=%s pending=%d",
            request_id[:8],
            f"{timeout_seconds:.0f}s" if timeout_seconds > 0 else "none",
            len(self._pending),
        )
        return entry

    # ── Resolution ──

    def resolve(
        self,
        request_id: str,
        payload: AnswerPayload,
        sink: ResponseSink | None = None,
    ) -> bool:
        """Resolve one pending request. Returns False if nothing was written.

        With ``sink`` given, only the entry holding that sink is resolved,
        so a caller cannot terminate a newer holder of the same id.
        """
        entry = self._pending.get(request_id)
        if entry is None or (sink is not None and entry.sink is not sink):
            return False
        del self._pending[request_id]
        # Cancel before delivering so a queued timer cannot fire afterwards.
        entry.cancel_timer()
        if self.active_request_id == request_id:
            self.active_request_id = None
        delivered = entry.sink.deliver(payload)
        if delivered:
            logger.info(
                "Resolved request_id=%s action=%s age=%.1fs",
                request_id[:8],
                payload.action.value,
                time.time() - entry.created_at,
            )
        else:
            logger.debug("Request_id=%s already terminated", request_id[:8])
        return delivered

    def response_target(self, request_id: str | None = None) -> str | None:
        """The pending id a surface response would resolve, if any."""
        target = request_id or self.active_request_id
        if target and target in self._pending:
            return target
        return None

    def resolve_response(
        self, payload: AnswerPayload, request_id: str | None = None,
    ) -> bool:
        """Resolve from a surface message, falling back to the active id."""
        target = request_id or self.active_request_id
        if not target:
            logger.warning(
                "Surface response dropped: no request id and no active request",
            )
            return False
        if target not in self._pending:
            logger.warning(
                "Surface response ignored request_id=%s (missing or already resolved)",
                target[:8],
            )
            return False
        return self.resolve(target, payload)

    def discard(self, request_id: str, sink: ResponseSink) -> bool:
        """Drop an entry whose HTTP exchange is gone, without writing."""
        entry = self._pending.get(request_id)
        if entry is None or entry.sink is not sink:
            return False
        self._pending.pop(request_id)
        entry.cancel_timer()
        if self.active_request_id == request_id:
            self.active_request_id = None
        logger.info("Discarded request_id=%s (client went away)", request_id[:8])
        return True

    def _expire(self, request_id: str, sink: ResponseSink) -> None:
        entry = self._pending.get(request_id)
        if entry is None or entry.sink is not sink:
            return
        entry.timer = None
        logger.warning("Request timed out request_id=%s", request_id[:8])
        self.resolve(request_id, AnswerPayload.failure(TIMEOUT_MESSAGE))

    def shutdown(self) -> int:
        """Resolve every pending request with the shutdown error."""
        request_ids = list(self._pending)
        drained = 0
        for request_id in request_ids:
            if self.resolve(request_id, AnswerPayload.failure(SHUTDOWN_MESSAGE)):
                drained += 1
        self.active_request_id = None
        if request_ids:
            logger.info("Ledger shutdown drained %d pending request(s)", drained)
        return drained
