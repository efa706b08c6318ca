"""askbridge — main application entry point."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path


def _configure_logging(log_level: str, *, to_stderr: bool) -> Path:
    """Rotating file log under ~/.askbridge/logs, plus stderr when asked.

    The TUI owns the terminal, so it only logs to the file.
    """
    log_dir = Path.home() / ".askbridge" / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "askbridge.log"

    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root.handlers.clear()
    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s [pid=%(process)d] %(message)s"
    )
    file_handler = RotatingFileHandler(
        log_file, maxBytes=2_000_000, backupCount=5, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)
    if to_stderr:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        root.addHandler(stream_handler)
    return log_file


def _load_config(config_path: str | None):
    """Env config, overlaid with YAML from --config or ./.askbridge/askbridge.yaml."""
    from askbridge.engine.config import BridgeConfig
    from askbridge.engine.yaml_config import load_yaml_config

    config = BridgeConfig.from_env()
    path = Path(config_path) if config_path else Path.cwd() / ".askbridge" / "askbridge.yaml"
    if path.exists():
        logging.getLogger(__name__).info("Using config file: %s", path)
        config = load_yaml_config(path, base=config)
    elif config_path:
        print(f"Error: config file not found: {config_path}")
        sys.exit(2)
    return config


async def _serve_console(config) -> None:
    from askbridge.server.bridge import BridgeServer
    from askbridge.tui.console import ConsoleSurface

    surface = ConsoleSurface()
    bridge = BridgeServer(surface, config)
    await bridge.start()
    surface.attach(bridge.controller)
    try:
        await asyncio.Event().wait()
    except (KeyboardInterrupt, asyncio.CancelledError):
        logging.getLogger(__name__).info("Bridge shutting down")
    finally:
        await surface.close()
        await bridge.stop()


async def _ask(prompt: str, request_id: str | None, timeout_minutes: float | None) -> int:
    from askbridge.client import BridgeClient, BridgeUnavailableError, discover_port, format_answer

    try:
        port = int(os.getenv("ASKBRIDGE_PORT") or discover_port(Path.cwd()))
        answer = await BridgeClient(port).ask(
            prompt, request_id=request_id, timeout_minutes=timeout_minutes,
        )
    except BridgeUnavailableError as exc:
        print(f"Error: bridge unavailable: {exc}")
        return 1
    print(format_answer(answer))
    return 1 if answer.is_error else 0


def main() -> None:
    import argparse

    parser = argparse.ArgumentParser(
        prog="askbridge",
        description="askbridge — let an agent ask a human and wait for the answer",
    )
    parser.add_argument(
        "--console", action="store_true",
        help="Run the bridge with a plain terminal surface instead of the TUI",
    )
    parser.add_argument(
        "--ask", metavar="PROMPT",
        help="Ask the running bridge for this project a question and print the answer",
    )
    parser.add_argument(
        "--request-id", metavar="ID",
        help="Request id for --ask (reusing an id supersedes the older question)",
    )
    parser.add_argument(
        "--timeout-minutes", type=float, metavar="N",
        help="Timeout for --ask in minutes (0 = wait forever)",
    )
    parser.add_argument(
        "--config", metavar="PATH",
        help="YAML config file (default: ./.askbridge/askbridge.yaml if present)",
    )
    args = parser.parse_args()

    if args.ask is not None:
        sys.exit(asyncio.run(_ask(args.ask, args.request_id, args.timeout_minutes)))

    config = _load_config(args.config)
    log_file = _configure_logging(
        os.getenv("ASKBRIDGE_LOG_LEVEL", config.log_level), to_stderr=args.console,
    )
    logging.getLogger(__name__).info(
        "Starting askbridge cwd=%s roots=%s log=%s",
        Path.cwd(), [str(r) for r in config.roots()], log_file,
    )

    if args.console:
        from askbridge.engine.errors import BridgeError

        try:
            asyncio.run(_serve_console(config))
        except KeyboardInterrupt:
            pass
        except BridgeError as exc:
            logging.getLogger(__name__).error("Bridge failed to start: %s", exc)
            print(f"Error: {exc}")
            sys.exit(1)
        sys.exit(0)

    # TUI mode
    from askbridge.tui.app import AskBridgeApp

    AskBridgeApp(config).run()


if __name__ == "__main__":
    main()
