from __future__ import annotations

from pathlib import Path

import pytest

from askbridge.client import BridgeUnavailableError, discover_port, format_answer
from askbridge.engine.models import Action, AnswerPayload
from askbridge.shared.services.port_file import write_port_file


def test_format_end() -> None:
    assert format_answer(AnswerPayload.end()) == "User chose to end"


def test_format_plain_continue() -> None:
    assert format_answer(AnswerPayload.continue_()) == "User chose to continue"


def test_format_instruction_with_images() -> None:
    payload = AnswerPayload.instruction("fix the test", ["/tmp/a.png"])
    assert format_answer(payload) == (
        "User chose to continue\n"
        "User instruction: fix the test\n"
        "User image: /tmp/a.png"
    )


def test_format_error() -> None:
    payload = AnswerPayload.failure("Timed out waiting for user response")
    assert format_answer(payload) == "Error: Timed out waiting for user response"


def test_payload_round_trip_through_dict() -> None:
    payload = AnswerPayload.failure("boom")
    data = payload.to_dict()
    assert data == {"action": "error", "text": "", "images": [], "error": "boom"}
    assert AnswerPayload.from_dict(data) == payload


def test_from_dict_unknown_action_is_error() -> None:
    payload = AnswerPayload.from_dict({"action": "dance"})
    assert payload.action is Action.ERROR


def test_discover_port(tmp_path: Path) -> None:
    write_port_file(tmp_path, 34501)
    assert discover_port(tmp_path) == 34501


def test_discover_port_missing(tmp_path: Path) -> None:
    with pytest.raises(BridgeUnavailableError):
        discover_port(tmp_path)
