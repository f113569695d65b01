# src/taskflow/cli/console.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..core.state import GroupDetailView
from ..sync.controller import TaskflowApp
from .commands import registry as command_registry

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def _prompt(app: TaskflowApp) -> str:
    if not app.session.authenticated:
        return "taskflow (signed out)> "
    scope = "personal"
    if isinstance(app.ui.view, GroupDetailView) and app.groups.selected is not None:
        scope = app.groups.selected.name
    unread = app.notifications.unread_count
    badge = f" [{unread}]" if unread else ""
    return f"taskflow:{scope}{badge}> "


async def run_console_loop(app: TaskflowApp) -> None:
    logger.info("Console started (signed_in=%s).", app.session.authenticated)
    _print_ts("[CONSOLE] Use /help for commands. Plain text adds a task. Use /exit to quit.\n")

    def emit(text: str) -> None:
        # Immediate feedback for multi-step operations.
        print(f"[{_ts_local()}] {text}", flush=True)

    while True:
        try:
            # input() blocks; keep the event loop free while waiting.
            user_input = (await asyncio.to_thread(input, _prompt(app))).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        line = user_input if user_input.startswith("/") else f"/add {user_input}"

        try:
            reply = await command_registry.handle(app, line, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        if reply is not None:
            _print_ts(reply)

    logger.info("Console finished.")
