"""askbridge TUI — Textual application hosting the bridge."""

from __future__ import annotations

import logging

from textual.app import App, ComposeResult
from textual.containers import VerticalScroll
from textual.widgets import Footer, Header, Static

from askbridge.adapters.events import Hidden, Ready, SetPort, ShowPrompt, SurfaceMessage
from askbridge.engine.config import BridgeConfig
from askbridge.server.bridge import BridgeServer
from askbridge.tui.widgets.prompt_panel import PromptPanel

logger = logging.getLogger(__name__)


class TextualSurface:
    """Presentation surface that renders bridge messages in an AskBridgeApp."""

    def __init__(self, app: AskBridgeApp) -> None:
        self._app = app

    async def post(self, message: SurfaceMessage) -> None:
        if isinstance(message, ShowPrompt):
            await self._app.show_prompt(message)
        elif isinstance(message, SetPort):
            self._app.set_port(message.port)
        else:
            logger.debug("Textual surface ignoring message type=%s", message.type)


class AskBridgeApp(App):
    """Terminal UI where a human answers agent questions."""

    TITLE = "askbridge"
    SUB_TITLE = "Waiting for agent questions"

    BINDINGS = [
        ("ctrl+q", "quit", "Quit"),
    ]

    CSS = """
    #status-line {
        height: 1;
        padding: 0 1;
        color: $text-muted;
    }
    """

    def __init__(self, config: BridgeConfig | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.surface = TextualSurface(self)
        self.bridge = BridgeServer(self.surface, config)

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static("Starting bridge...", id="status-line")
        yield VerticalScroll(id="prompt-list")
        yield Footer()

    async def on_mount(self) -> None:
        await self.bridge.start()
        self.bridge.controller.handle_message(Ready())

    async def on_unmount(self) -> None:
        self.bridge.controller.handle_message(Hidden())
        await self.bridge.stop()

    def set_port(self, port: int) -> None:
        self.query_one("#status-line", Static).update(f"Listening on 127.0.0.1:{port}")

    async def show_prompt(self, message: ShowPrompt) -> None:
        container = self.query_one("#prompt-list", VerticalScroll)
        panel = PromptPanel(
            message.request_id,
            message.prompt,
            timeout_minutes=message.timeout_minutes,
        )
        await container.mount(panel)
        container.scroll_end(animate=False)
        panel.query_one("#answer-input").focus()
        self.bell()

    def on_prompt_panel_answered(self, event: PromptPanel.Answered) -> None:
        resolved = self.bridge.controller.handle_message(event.answer)
        if not resolved:
            self.notify(
                "This request is no longer pending (timed out or superseded).",
                severity="warning",
            )
