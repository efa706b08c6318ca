"""Text-console presentation surface.

Prints each prompt with Rich and collects a multi-line answer from
stdin. A blank line or ``/end`` finishes the input. An empty answer
means continue, ``end`` / ``exit`` ends the interaction, anything else
is submitted as an instruction.

One daemon thread owns stdin for the life of the surface. Each answer
block it reads goes to the prompt shown most recently, so a prompt that
timed out or was superseded never swallows input meant for the next one.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from askbridge.adapters.events import (
    ContinueSignal,
    EndSignal,
    Ready,
    SetPort,
    ShowPrompt,
    Submit,
    SurfaceMessage,
)
from askbridge.adapters.surface import SurfaceController

logger = logging.getLogger(__name__)

END_MARKER = "/end"


def read_answer_block(read_line: Callable[[], str]) -> tuple[list[str], bool]:
    """Read one answer block. Returns ``(lines, hit_eof)``."""
    lines: list[str] = []
    while True:
        try:
            line = read_line()
        except EOFError:
            return lines, True
        if line.strip() == "" or line.strip() == END_MARKER:
            return lines, False
        lines.append(line)


def collect_lines(read_line: Callable[[], str]) -> list[str]:
    """Read lines until a blank line, ``/end`` or EOF."""
    return read_answer_block(read_line)[0]


def interpret_answer(lines: list[str], request_id: str | None = None) -> SurfaceMessage:
    text = "\n".join(lines).strip()
    if not text:
        return ContinueSignal(request_id=request_id)
    if text.lower() in {"end", "exit"}:
        return EndSignal(request_id=request_id)
    return Submit(text=text, images=[], request_id=request_id)


class ConsoleSurface:
    """Surface that talks to the human through the terminal."""

    def __init__(
        self,
        console: Console | None = None,
        read_line: Callable[[], str] = input,
    ) -> None:
        self.console = console or Console()
        self._read_line = read_line
        self._controller: SurfaceController | None = None
        self._current_request_id: str | None = None
        self._reader: threading.Thread | None = None
        self._dispatch_task: asyncio.Task | None = None

    @property
    def current_request_id(self) -> str | None:
        return self._current_request_id

    def attach(self, controller: SurfaceController) -> None:
        """Bind to the controller and report ready."""
        self._controller = controller
        controller.handle_message(Ready())

    async def post(self, message: SurfaceMessage) -> None:
        if isinstance(message, SetPort):
            self.console.print(f"[dim]askbridge listening on port {message.port}[/dim]")
            return
        if isinstance(message, ShowPrompt):
            self._current_request_id = message.request_id
            self._render_prompt(message)
            self._ensure_reader()
            return
        logger.debug("Console surface ignoring message type=%s", message.type)

    def _render_prompt(self, message: ShowPrompt) -> None:
        title = "Agent asks"
        if message.timeout_minutes:
            title += f" (answer within {message.timeout_minutes:g} min)"
        self.console.print(Panel(Text(message.prompt), title=title, border_style="cyan"))
        self.console.print(
            "[yellow]Type your instruction; finish with an empty line. "
            "Empty input continues, 'end' stops.[/yellow]"
        )

    # ── stdin reader ──

    def _ensure_reader(self) -> None:
        if self._reader is not None:
            return
        loop = asyncio.get_running_loop()
        answers: asyncio.Queue[list[str] | None] = asyncio.Queue()
        # Daemon: a thread blocked in input() must not hold up interpreter exit.
        self._reader = threading.Thread(
            target=self._read_loop,
            args=(loop, answers),
            name="askbridge-console-stdin",
            daemon=True,
        )
        self._reader.start()
        self._dispatch_task = asyncio.create_task(self._dispatch_answers(answers))

    def _read_loop(
        self,
        loop: asyncio.AbstractEventLoop,
        answers: asyncio.Queue[list[str] | None],
    ) -> None:
        while True:
            lines, eof = read_answer_block(self._read_line)
            try:
                if lines or not eof:
                    loop.call_soon_threadsafe(answers.put_nowait, lines)
                if eof:
                    loop.call_soon_threadsafe(answers.put_nowait, None)
                    return
            except RuntimeError:
                # Event loop already closed.
                return

    async def _dispatch_answers(self, answers: asyncio.Queue[list[str] | None]) -> None:
        while True:
            lines = await answers.get()
            if lines is None:
                logger.info("Console input closed")
                return
            self._deliver(lines)

    def _deliver(self, lines: list[str]) -> bool:
        if self._controller is None:
            logger.warning("Console answer dropped: surface not attached")
            return False
        request_id = self._current_request_id
        if request_id is None or request_id not in self._controller.ledger:
            self.console.print("[dim]No question is waiting for an answer.[/dim]")
            logger.info("Console answer dropped: no pending prompt on screen")
            return False
        return self._controller.handle_message(interpret_answer(lines, request_id))

    async def close(self) -> None:
        if self._dispatch_task is not None:
            self._dispatch_task.cancel()
            self._dispatch_task = None
