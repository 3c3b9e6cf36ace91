# src/taskpages/connectors/console_connector.py

from __future__ import annotations

import logging
import sys
import threading
from datetime import datetime

from ..cli.commands import cmd_ls
from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


class ConsoleNotifier:
    """
    Notifier port for the console: prints fired notifications.

    Called from the delivery thread; the print lock keeps lines whole.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    async def deliver(self, *, identifier: str, title: str, body: str) -> None:
        with self._lock:
            sys.stdout.write(f"\n[{_ts_local()}] [NOTIFY] {title}: {body}\n")
            sys.stdout.flush()


def run_console_loop(state: AppState) -> None:
    logger.info("Console started.")
    _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.\n")

    lock = getattr(state, "lock", None)
    app_name = str(getattr(getattr(state, "settings", None), "app_name", "taskpages"))

    def emit(text: str) -> None:
        print(f"[{_ts_local()}] {text}", flush=True)

    print(cmd_ls(state, []))

    while True:
        try:
            user_input = input(f"{app_name}> ").strip()
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

        # Plain text (no slash) is a shortcut for /add.
        line = user_input if user_input.startswith("/") else f"/add {user_input}"

        try:
            if lock:
                with lock:
                    response = command_registry.handle(state, line, emit=emit)
            else:
                response = command_registry.handle(state, line, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            response = "Internal error while handling a command."

        if response is not None:
            print(response)

    logger.info("Console finished.")
