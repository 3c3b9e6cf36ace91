# src/taskpages/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- notification delivery in a background thread,
- console REPL in the main thread (optional).
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import ConsoleNotifier, run_console_loop
from ..logging_setup import setup_logging
from ..reminders.delivery import NotificationRunner, start_notifications_in_background

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    # The console is the UI; only warnings reach it unless asked for more.
    console_level = max(getattr(logging, level_name, logging.INFO), logging.WARNING)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    state = create_initial_state(settings=settings)

    runner: NotificationRunner | None = start_notifications_in_background(
        state.center,
        ConsoleNotifier(),
        interval_seconds=settings.notification_poll_seconds,
    )

    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        signal.signal(signal.SIGTERM, _handle_signal)
    except Exception:
        # Some platforms may not support SIGTERM.
        pass

    try:
        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        else:
            logger.info("Console disabled. Delivering notifications only. Press Ctrl+C to stop.")
            try:
                stop_main.wait()
            except KeyboardInterrupt:
                pass
    finally:
        if runner is not None:
            runner.stop()
            runner.join(timeout=5.0)
        state.store.save()
        logger.info("Bye.")


if __name__ == "__main__":
    main()
