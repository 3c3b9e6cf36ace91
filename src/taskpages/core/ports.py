# src/taskpages/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the notification backend and the front-end swappable and makes testing easier.
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Any, Awaitable, Protocol


class Notifier(Protocol):
    """
    Front-end port: how the delivery loop shows a fired notification.

    The console prints it; tests record it.
    """

    def deliver(self, *, identifier: str, title: str, body: str) -> Awaitable[None]: ...


class NotificationScheduler(Protocol):
    """What the reminder service needs from a notification center."""

    def add(self, request: Any, *, now: datetime | None = None) -> datetime | None: ...
    def remove_pending(self, identifiers: Iterable[str]) -> None: ...
    def remove_delivered(self, identifiers: Iterable[str]) -> None: ...
