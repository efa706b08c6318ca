"""Agent-side client for the ask bridge.

Finds the bridge port from the descriptor under the project root, asks
a question and formats the answer as plain text an agent can parse.
"""
from __future__ import annotations

import logging
from pathlib import Path

import aiohttp

from askbridge.engine.models import Action, AnswerPayload
from askbridge.shared.services.port_file import read_port_file

logger = logging.getLogger(__name__)


class BridgeUnavailableError(ConnectionError):
    """No bridge could be reached for this project root."""


def discover_port(root: Path | None = None) -> int:
    root = Path(root) if root else Path.cwd()
    port = read_port_file(root)
    if port is None:
        raise BridgeUnavailableError(f"No bridge port published under {root}")
    return port


class BridgeClient:
    """Blocking-style question call over HTTP.

    ``ask()`` returns when the human answers; the server decides the
    timeout, so the HTTP client waits without a read deadline.
    """

    def __init__(self, port: int, host: str = "127.0.0.1") -> None:
        self.base_url = f"http://{host}:{port}"

    async def health(self) -> bool:
        timeout = aiohttp.ClientTimeout(total=5)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(f"{self.base_url}/health") as resp:
                    return resp.status == 200
        except aiohttp.ClientError:
            return False

    async def ask(
        self,
        prompt: str,
        request_id: str | None = None,
        timeout_minutes: float | None = None,
    ) -> AnswerPayload:
        body: dict[str, object] = {"prompt": prompt}
        if request_id:
            body["requestId"] = request_id
        if timeout_minutes is not None:
            body["timeoutMinutes"] = timeout_minutes

        timeout = aiohttp.ClientTimeout(total=None, sock_connect=10)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(f"{self.base_url}/request", json=body) as resp:
                    try:
                        data = await resp.json(content_type=None)
                    except ValueError:
                        data = None
                    if resp.status != 200:
                        message = data.get("error") if isinstance(data, dict) else None
                        return AnswerPayload.failure(
                            message or f"Bridge returned HTTP {resp.status}"
                        )
        except aiohttp.ClientConnectionError as exc:
            raise BridgeUnavailableError(f"Cannot reach bridge at {self.base_url}: {exc}") from exc

        if not isinstance(data, dict):
            return AnswerPayload.failure("Bridge returned a non-object answer")
        return AnswerPayload.from_dict(data)


def format_answer(payload: AnswerPayload) -> str:
    """Render an answer in the fixed text form agents are told to parse."""
    if payload.action is Action.ERROR:
        return f"Error: {payload.error or 'unknown error'}"
    if payload.action is Action.END:
        return "User chose to end"
    if payload.action is Action.CONTINUE and not payload.text and not payload.images:
        return "User chose to continue"

    lines = ["User chose to continue"]
    if payload.text:
        lines.append(f"User instruction: {payload.text}")
    for path in payload.images:
        lines.append(f"User image: {path}")
    return "\n".join(lines)
