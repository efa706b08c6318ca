"""Prompt panel — shows one agent question and collects the answer."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.message import Message
from textual.widget import Widget
from textual.widgets import Button, Static, TextArea

from askbridge.adapters.events import (
    ContinueSignal,
    EndSignal,
    Submit,
    SurfaceMessage,
)


class PromptPanel(Widget):
    """Renders a prompt with an answer box and Continue / End / Send buttons.

    Once answered the panel posts an ``Answered`` message and locks
    itself so the same request cannot be answered twice from the UI.
    """

    class Answered(Message):
        """Posted when the user answers this prompt."""

        def __init__(self, request_id: str, answer: SurfaceMessage) -> None:
            super().__init__()
            self.request_id = request_id
            self.answer = answer

    DEFAULT_CSS = """
    PromptPanel {
        layout: vertical;
        margin: 1 0;
        padding: 1 2;
        background: $surface-darken-1;
        border: round $warning;
        height: auto;
    }

    PromptPanel .prompt-text {
        margin-bottom: 1;
        text-style: bold;
        height: auto;
        width: 100%;
    }

    PromptPanel TextArea {
        height: 8;
    }

    PromptPanel .prompt-buttons {
        height: auto;
        margin-top: 1;
    }

    PromptPanel.answered {
        border: round $success-darken-1;
        background: $surface-darken-2;
    }

    PromptPanel.answered Button {
        opacity: 50%;
    }
    """

    def __init__(
        self,
        request_id: str,
        prompt: str,
        timeout_minutes: float | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.request_id = request_id
        self.prompt = prompt
        self.timeout_minutes = timeout_minutes
        self.answered = False

    def compose(self) -> ComposeResult:
        label = "Agent asks"
        if self.timeout_minutes:
            label += f" (answer within {self.timeout_minutes:g} min)"
        yield Static(f"[bold]{label}:[/bold]", markup=True)
        yield Static(self.prompt, classes="prompt-text", markup=False)
        yield TextArea(id="answer-input")
        with Horizontal(classes="prompt-buttons"):
            yield Button("Send", variant="primary", id="btn-send")
            yield Button("Continue", variant="success", id="btn-continue")
            yield Button("End", variant="error", id="btn-end")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        if self.answered:
            return
        button_id = event.button.id or ""
        if button_id == "btn-send":
            text = self.query_one("#answer-input", TextArea).text
            if not text.strip():
                answer: SurfaceMessage = ContinueSignal(request_id=self.request_id)
            else:
                answer = Submit(text=text, images=[], request_id=self.request_id)
        elif button_id == "btn-continue":
            answer = ContinueSignal(request_id=self.request_id)
        elif button_id == "btn-end":
            answer = EndSignal(request_id=self.request_id)
        else:
            return
        self.mark_answered()
        self.post_message(self.Answered(self.request_id, answer))

    def mark_answered(self) -> None:
        self.answered = True
        self.add_class("answered")
        for button in self.query(Button):
            button.disabled = True
