"""Loopback HTTP bridge between an agent and a human.

An agent POSTs a prompt to ``/request`` and the connection stays open
until a human answers through the presentation surface, the request
times out, a newer request reuses its id, or the bridge shuts down.
Exactly one JSON answer is written per request.

Wire format::

    POST /request  {"prompt": str, "requestId"?: str, "timeoutMinutes"?: number}
    200            {"action": "continue"|"end"|"instruction"|"error",
                    "text": str, "images": [str], "error"?: str}
    GET /health    200 "OK"
"""
from __future__ import annotations

import asyncio
import json
import logging
import math
import random
import time
import uuid
from pathlib import Path
from typing import Any

import aiohttp
from aiohttp import web

from askbridge.adapters.surface import PresentationSurface, SurfaceController
from askbridge.engine.assembler import SubmissionAssembler
from askbridge.engine.config import BridgeConfig
from askbridge.engine.errors import RequestValidationError, SurfaceUnavailableError
from askbridge.engine.ledger import RequestLedger
from askbridge.engine.models import AnswerPayload, ResponseSink
from askbridge.engine.port_allocator import PortAllocator
from askbridge.shared.services.temp_artifacts import cleanup_stale_artifacts

logger = logging.getLogger(__name__)


def generate_request_id() -> str:
    return f"req-{uuid.uuid4().hex}"


def validate_request_body(body: Any) -> tuple[str, str, float | None]:
    """Return ``(prompt, request_id, timeout_minutes)`` or raise.

    A blank or missing ``requestId`` gets a fresh generated id.
    ``timeout_minutes`` is None when the caller did not send one.
    """
    if not isinstance(body, dict):
        raise RequestValidationError("Request body must be a JSON object")

    prompt = body.get("prompt")
    if not isinstance(prompt, str) or not prompt.strip():
        raise RequestValidationError("prompt must be a non-empty string")

    raw_id = body.get("requestId")
    if raw_id is not None and not isinstance(raw_id, str):
        raise RequestValidationError("requestId must be a string")
    request_id = (raw_id or "").strip() or generate_request_id()

    timeout = body.get("timeoutMinutes")
    if timeout is not None:
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
            raise RequestValidationError("timeoutMinutes must be a number")
        if not math.isfinite(timeout):
            raise RequestValidationError("timeoutMinutes must be finite")
        timeout = float(timeout)

    return prompt, request_id, timeout


class BridgeServer:
    """HTTP endpoint wiring the ledger, the surface and the port allocator.

    Thin adapter: request bookkeeping lives in RequestLedger, surface
    traffic in SurfaceController. This class only handles HTTP routing,
    validation and lifecycle.
    """

    def __init__(
        self,
        surface: PresentationSurface,
        config: BridgeConfig | None = None,
    ) -> None:
        self._config = config or BridgeConfig()
        self.ledger = RequestLedger()
        self.assembler = SubmissionAssembler(
            temp_dir=self._config.temp_dir,
            long_text_threshold=self._config.long_text_threshold,
        )
        self.controller = SurfaceController(
            surface,
            self.ledger,
            self.assembler,
            ready_timeout_seconds=self._config.ready_timeout_seconds,
        )
        self._allocator = PortAllocator(
            self._config.roots(),
            base_port=self._config.base_port,
            max_attempts=self._config.max_port_attempts,
            host=self._config.host,
        )
        self._app = web.Application(
            middlewares=[self._request_logging_middleware],
            client_max_size=self._config.max_body_bytes,
        )
        self._runner: web.AppRunner | None = None
        self.port: int | None = None
        self._setup_routes()

    @property
    def app(self) -> web.Application:
        return self._app

    @property
    def config(self) -> BridgeConfig:
        return self._config

    # ── Middleware ──

    @web.middleware
    async def _request_logging_middleware(self, request: web.Request, handler) -> web.StreamResponse:
        start = time.monotonic()
        logger.debug("HTTP %s %s from=%s", request.method, request.path_qs, request.remote)
        try:
            response = await handler(request)
            elapsed_ms = (time.monotonic() - start) * 1000
            logger.info(
                "HTTP %s %s status=%s duration_ms=%.1f",
                request.method, request.path_qs,
                getattr(response, "status", "?"), elapsed_ms,
            )
            return response
        except (web.HTTPNotFound, web.HTTPMethodNotAllowed):
            # Only POST /request and GET /health exist; anything else is 404.
            logger.info("HTTP %s %s status=404", request.method, request.path_qs)
            return web.Response(status=404, text="Not Found")
        except web.HTTPException:
            raise
        except asyncio.CancelledError:
            logger.info("HTTP %s %s cancelled (client disconnected)", request.method, request.path_qs)
            raise
        except Exception:
            elapsed_ms = (time.monotonic() - start) * 1000
            logger.exception("HTTP %s %s failed duration_ms=%.1f", request.method, request.path_qs, elapsed_ms)
            raise

    # ── Route setup ──

    def _setup_routes(self) -> None:
        r = self._app.router
        r.add_post("/request", self._handle_request)
        r.add_get("/health", self._handle_health)

    # ── Lifecycle ──

    async def start(self) -> int:
        """Bind a port, start serving and publish the port.

        ``NoPortAvailable`` / ``PortBindError`` propagate: the bridge does
        not exist without a port.
        """
        start_offset = (
            random.randrange(self._config.max_port_attempts)
            if self._config.randomize_port
            else 0
        )
        port = self._allocator.allocate(start_offset)
        runner = web.AppRunner(self._app)
        try:
            await runner.setup()
            site = web.SockSite(runner, self._allocator.socket)
            await site.start()
        except Exception:
            await runner.cleanup()
            self._allocator.release()
            raise
        self._runner = runner
        self.port = port
        logger.info("Bridge listening on %s:%d", self._config.host, port)

        await self.controller.set_port(port)

        if self._config.temp_max_age_hours > 0:
            cleanup_stale_artifacts(
                self.assembler.temp_dir,
                self._config.temp_max_age_hours * 3600.0,
            )
        return port

    async def stop(self) -> int:
        """Answer every pending request with a shutdown error, then close."""
        drained = self.ledger.shutdown()
        # Let resolved handlers write their responses before the socket closes.
        await asyncio.sleep(0)
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
        self._allocator.release()
        self.port = None
        logger.info("Bridge stopped drained=%d", drained)
        return drained

    def port_file_roots(self) -> list[Path]:
        return list(self._allocator.project_roots)

    # ── Handlers ──

    async def _read_body(self, request: web.Request) -> Any:
        limit = self._config.max_body_bytes
        if request.content_length is not None and request.content_length > limit:
            raise RequestValidationError("Request body too large", status=413)
        try:
            raw = await request.read()
        except web.HTTPRequestEntityTooLarge:
            raise RequestValidationError("Request body too large", status=413)
        except (ConnectionError, asyncio.IncompleteReadError, aiohttp.ClientPayloadError) as exc:
            logger.warning("Failed to read request body: %s", exc)
            raise RequestValidationError("Failed to read request body", status=500)
        if len(raw) > limit:
            raise RequestValidationError("Request body too large", status=413)
        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            raise RequestValidationError("Invalid JSON")

    async def _handle_request(self, request: web.Request) -> web.Response:
        try:
            body = await self._read_body(request)
            prompt, request_id, timeout_minutes = validate_request_body(body)
        except RequestValidationError as exc:
            logger.info("Rejected /request status=%d: %s", exc.status, exc.message)
            return web.json_response({"error": exc.message}, status=exc.status)

        if timeout_minutes is None:
            timeout_minutes = self._config.request_timeout_minutes
        timeout_seconds = timeout_minutes * 60.0 if timeout_minutes > 0 else 0.0

        sink = ResponseSink()
        self.ledger.register(request_id, sink, timeout_seconds)
        try:
            try:
                await self.controller.show_prompt(
                    prompt,
                    request_id,
                    timeout_minutes if timeout_minutes > 0 else None,
                )
            except SurfaceUnavailableError as exc:
                logger.error("Surface failed to show request_id=%s: %s", request_id[:8], exc.reason)
                self.ledger.resolve(
                    request_id,
                    AnswerPayload.failure(
                        f"Presentation surface failed to display prompt: {exc.reason}"
                    ),
                    sink=sink,
                )
            payload = await sink.wait()
        except asyncio.CancelledError:
            self.ledger.discard(request_id, sink)
            raise

        return web.json_response(payload.to_dict())

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.Response(text="OK")
