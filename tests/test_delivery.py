# tests/test_delivery.py

from __future__ import annotations

import asyncio
import time

import pytest

from taskpages.reminders.delivery import run_notification_loop, start_notifications_in_background
from taskpages.reminders.notification_center import LocalNotificationCenter, NotificationRequest
from taskpages.reminders.triggers import IntervalTrigger

from .fakes import FakeNotifier


def _soon(ident: str, seconds: float = 0.05) -> NotificationRequest:
    return NotificationRequest(
        identifier=ident,
        title="Task reminder",
        body=f"body of {ident}",
        trigger=IntervalTrigger(seconds=seconds),
    )


async def _run_until(center, notifier, predicate, timeout: float = 2.0) -> None:
    stop = asyncio.Event()
    task = asyncio.create_task(run_notification_loop(center, notifier, interval_seconds=0.01, stop_event=stop))
    try:
        deadline = asyncio.get_running_loop().time() + timeout
        while not predicate() and asyncio.get_running_loop().time() < deadline:
            await asyncio.sleep(0.01)
    finally:
        stop.set()
        await asyncio.wait_for(task, timeout=1.0)


@pytest.mark.asyncio
async def test_loop_delivers_due_notifications() -> None:
    center = LocalNotificationCenter()
    notifier = FakeNotifier()
    center.add(_soon("a"))

    await _run_until(center, notifier, lambda: len(notifier.delivered) == 1)

    assert [d.identifier for d in notifier.delivered] == ["a"]
    assert notifier.delivered[0].body == "body of a"
    assert center.pending() == []


@pytest.mark.asyncio
async def test_loop_survives_a_failed_delivery() -> None:
    center = LocalNotificationCenter()
    notifier = FakeNotifier(fail_first=True)
    center.add(_soon("first"))
    center.add(_soon("second", seconds=0.1))

    await _run_until(center, notifier, lambda: notifier.calls >= 2)

    assert notifier.calls == 2
    assert [d.identifier for d in notifier.delivered] == ["second"]


@pytest.mark.asyncio
async def test_loop_does_not_deliver_future_notifications() -> None:
    center = LocalNotificationCenter()
    notifier = FakeNotifier()
    center.add(_soon("later", seconds=3600))

    await _run_until(center, notifier, lambda: False, timeout=0.1)

    assert notifier.delivered == []
    assert center.fire_time("later") is not None


def test_background_runner_delivers_and_stops() -> None:
    center = LocalNotificationCenter()
    notifier = FakeNotifier()
    center.add(_soon("bg"))

    runner = start_notifications_in_background(center, notifier, interval_seconds=0.01)
    assert runner is not None
    try:
        deadline = time.monotonic() + 2.0
        while not notifier.delivered and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        runner.stop()
        runner.join(timeout=2.0)

    assert [d.identifier for d in notifier.delivered] == ["bg"]
    assert not runner.thread.is_alive()
