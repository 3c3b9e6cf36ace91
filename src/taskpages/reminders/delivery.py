# src/taskpages/reminders/delivery.py

from __future__ import annotations

"""
Notification delivery.

A small polling loop that:
- pops due requests from the notification center,
- hands them to an injected Notifier port.

Presentation (console print, desktop popup, ...) belongs to the notifier, not the loop.
"""

import asyncio
import contextlib
import logging
import threading
from dataclasses import dataclass
from datetime import datetime

from ..core.ports import Notifier
from .notification_center import LocalNotificationCenter

logger = logging.getLogger(__name__)


async def run_notification_loop(
    center: LocalNotificationCenter,
    notifier: Notifier,
    *,
    interval_seconds: float = 15.0,
    stop_event: asyncio.Event | None = None,
) -> None:
    """
    Simple polling loop.

    Every interval_seconds:
    - pop due requests (repeating ones are re-armed by the center)
    - deliver each via notifier.deliver(...)
      A failed delivery is logged; the loop keeps going.

    To stop, set stop_event or cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))

    while stop_event is None or not stop_event.is_set():
        try:
            due = center.pop_due(datetime.now())
        except Exception:
            logger.exception("pop_due failed")
            due = []

        for request in due:
            try:
                await notifier.deliver(identifier=request.identifier, title=request.title, body=request.body)
                logger.info("Notification delivered id=%s", request.identifier)
            except Exception:
                logger.exception("Notification delivery failed id=%s", request.identifier)

        if stop_event is None:
            await asyncio.sleep(sleep_s)
            continue
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(stop_event.wait(), timeout=sleep_s)


@dataclass(slots=True)
class NotificationRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except Exception:
            logger.debug("Failed to signal notification loop stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_notifications_in_background(
    center: LocalNotificationCenter,
    notifier: Notifier,
    *,
    interval_seconds: float = 15.0,
) -> NotificationRunner | None:
    """
    Run the delivery loop in a background thread.

    The console REPL blocks on input(); the loop wants its own event loop.
    """
    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(
                run_notification_loop(center, notifier, interval_seconds=interval_seconds, stop_event=stop_event)
            )
        finally:
            with contextlib.suppress(Exception):
                loop.stop()
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="notifications", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Notification thread did not initialize properly.")
        return None

    logger.info("Notification delivery thread started (interval=%ss).", interval_seconds)
    return NotificationRunner(thread=t, loop=loop, stop_event=stop_event)
