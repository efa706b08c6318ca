from __future__ import annotations

import asyncio
import io
import queue
from collections.abc import Callable
from pathlib import Path

import pytest
from rich.console import Console

from askbridge.adapters.events import ContinueSignal, EndSignal, Submit, SurfaceMessage
from askbridge.adapters.surface import SurfaceController
from askbridge.engine.assembler import SubmissionAssembler
from askbridge.engine.ledger import TIMEOUT_MESSAGE, RequestLedger
from askbridge.engine.models import Action, AnswerPayload, ResponseSink
from askbridge.tui.console import collect_lines, interpret_answer, ConsoleSurface


def _reader(lines: list[str]):
    it = iter(lines)

    def read_line() -> str:
        try:
            return next(it)
        except StopIteration:
            raise EOFError
    return read_line


def test_collect_lines_stops_at_blank_line() -> None:
    assert collect_lines(_reader(["one", "two", "", "three"])) == ["one", "two"]


def test_collect_lines_stops_at_end_marker_and_eof() -> None:
    assert collect_lines(_reader(["one", "/end", "two"])) == ["one"]
    assert collect_lines(_reader(["one"])) == ["one"]


def test_interpret_answer() -> None:
    assert isinstance(interpret_answer([]), ContinueSignal)
    assert isinstance(interpret_answer(["  END "]), EndSignal)
    assert isinstance(interpret_answer(["exit"]), EndSignal)
    submit = interpret_answer(["do", "this"], request_id="r1")
    assert isinstance(submit, Submit)
    assert submit.text == "do\nthis"
    assert submit.request_id == "r1"


@pytest.mark.asyncio
async def test_console_surface_answers_prompt(tmp_path: Path) -> None:
    output = io.StringIO()
    surface = ConsoleSurface(
        console=Console(file=output, width=80),
        read_line=_reader(["ship it", ""]),
    )
    ledger = RequestLedger()
    controller = SurfaceController(surface, ledger, SubmissionAssembler(temp_dir=tmp_path))
    surface.attach(controller)
    assert controller.latch.is_ready

    sink = ResponseSink()
    ledger.register("r1", sink)
    await controller.show_prompt("Deploy now?", "r1", 5)

    answer = await asyncio.wait_for(sink.wait(), timeout=2)
    assert answer.action is Action.INSTRUCTION
    assert answer.text == "ship it"
    assert "Deploy now?" in output.getvalue()
    await surface.close()


@pytest.mark.asyncio
async def test_console_surface_ignores_non_prompt_messages() -> None:
    output = io.StringIO()
    surface = ConsoleSurface(console=Console(file=output, width=80), read_line=_reader([]))
    await surface.post(SurfaceMessage(type="other"))
    assert output.getvalue() == ""


def _stdin() -> tuple[queue.Queue, Callable[[], str]]:
    """Blocking line source; ``None`` in the queue means EOF."""
    lines: queue.Queue = queue.Queue()

    def read_line() -> str:
        line = lines.get()
        if line is None:
            raise EOFError
        return line
    return lines, read_line


async def _wait_terminated(sink: ResponseSink) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + 2
    while not sink.terminated:
        assert loop.time() < deadline
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_answer_goes_to_newest_prompt_after_old_one_expired(tmp_path: Path) -> None:
    lines, read_line = _stdin()
    surface = ConsoleSurface(console=Console(file=io.StringIO(), width=80), read_line=read_line)
    ledger = RequestLedger()
    controller = SurfaceController(surface, ledger, SubmissionAssembler(temp_dir=tmp_path))
    surface.attach(controller)
    try:
        old = ResponseSink()
        ledger.register("old", old)
        await controller.show_prompt("First?", "old")
        ledger.resolve("old", AnswerPayload.failure(TIMEOUT_MESSAGE))

        new = ResponseSink()
        ledger.register("new", new)
        await controller.show_prompt("Second?", "new")
        assert surface.current_request_id == "new"

        lines.put("my answer")
        lines.put("")
        await _wait_terminated(new)

        assert new.result().action is Action.INSTRUCTION
        assert new.result().text == "my answer"
        assert old.result().error == TIMEOUT_MESSAGE
        assert len(ledger) == 0
    finally:
        lines.put(None)
        await surface.close()


@pytest.mark.asyncio
async def test_one_reader_serves_consecutive_prompts(tmp_path: Path) -> None:
    lines, read_line = _stdin()
    surface = ConsoleSurface(console=Console(file=io.StringIO(), width=80), read_line=read_line)
    ledger = RequestLedger()
    controller = SurfaceController(surface, ledger, SubmissionAssembler(temp_dir=tmp_path))
    surface.attach(controller)
    try:
        first = ResponseSink()
        ledger.register("a", first)
        await controller.show_prompt("A?", "a")
        lines.put("end")
        lines.put("")
        await _wait_terminated(first)
        assert first.result().action is Action.END

        second = ResponseSink()
        ledger.register("b", second)
        await controller.show_prompt("B?", "b")
        lines.put("/end")
        await _wait_terminated(second)
        assert second.result().action is Action.CONTINUE
    finally:
        lines.put(None)
        await surface.close()


@pytest.mark.asyncio
async def test_input_without_pending_prompt_is_dropped(tmp_path: Path) -> None:
    output = io.StringIO()
    lines, read_line = _stdin()
    surface = ConsoleSurface(console=Console(file=output, width=80), read_line=read_line)
    ledger = RequestLedger()
    controller = SurfaceController(surface, ledger, SubmissionAssembler(temp_dir=tmp_path))
    surface.attach(controller)
    try:
        sink = ResponseSink()
        ledger.register("r1", sink)
        await controller.show_prompt("Q?", "r1")
        ledger.resolve("r1", AnswerPayload.end())

        lines.put("too late")
        lines.put("")
        loop = asyncio.get_running_loop()
        deadline = loop.time() + 2
        while "No question is waiting" not in output.getvalue():
            assert loop.time() < deadline
            await asyncio.sleep(0.01)
        assert list(tmp_path.iterdir()) == []
    finally:
        lines.put(None)
        await surface.close()
