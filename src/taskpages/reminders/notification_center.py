# src/taskpages/reminders/notification_center.py

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from .triggers import Trigger

logger = logging.getLogger(__name__)

DEFAULT_MAX_DELIVERED = 50


@dataclass(slots=True, frozen=True)
class NotificationRequest:
    identifier: str
    title: str
    body: str
    trigger: Trigger


@dataclass(slots=True)
class _Pending:
    request: NotificationRequest
    fire_at: datetime


class LocalNotificationCenter:
    """
    In-process notification center.

    - add() replaces a pending request with the same identifier
    - pop_due() is called by the delivery loop; repeating requests are re-armed,
      one-shot requests move to the delivered list
    - the delivered list keeps the most recent max_delivered entries, oldest dropped first

    Thread-safety:
    - the console thread schedules/cancels, the delivery thread pops;
      every method takes the same lock
    """

    def __init__(self, *, max_delivered: int = DEFAULT_MAX_DELIVERED) -> None:
        self._lock = threading.Lock()
        self._max_delivered = max(1, int(max_delivered))
        self._pending: dict[str, _Pending] = {}
        self._delivered: dict[str, NotificationRequest] = {}

    def add(self, request: NotificationRequest, *, now: datetime | None = None) -> datetime | None:
        """Schedule a request. Returns its fire time, or None if it can never fire."""
        now = now or datetime.now()
        fire_at = request.trigger.next_fire(now)
        with self._lock:
            self._pending.pop(request.identifier, None)
            if fire_at is None:
                logger.warning("Notification %s has no future fire time; dropped", request.identifier)
                return None
            self._pending[request.identifier] = _Pending(request=request, fire_at=fire_at)
        logger.debug("Notification scheduled id=%s fire_at=%s", request.identifier, fire_at)
        return fire_at

    def remove_pending(self, identifiers: Iterable[str]) -> None:
        with self._lock:
            for ident in identifiers:
                if self._pending.pop(ident, None) is not None:
                    logger.debug("Notification cancelled id=%s", ident)

    def remove_delivered(self, identifiers: Iterable[str]) -> None:
        with self._lock:
            for ident in identifiers:
                self._delivered.pop(ident, None)

    def pending(self) -> list[tuple[NotificationRequest, datetime]]:
        with self._lock:
            items = [(p.request, p.fire_at) for p in self._pending.values()]
        return sorted(items, key=lambda x: x[1])

    def fire_time(self, identifier: str) -> datetime | None:
        with self._lock:
            p = self._pending.get(identifier)
            return p.fire_at if p else None

    def delivered(self) -> list[NotificationRequest]:
        with self._lock:
            return list(self._delivered.values())

    def _remember_delivered(self, request: NotificationRequest) -> None:
        # Caller holds the lock. Re-inserting moves the identifier to the newest end.
        self._delivered.pop(request.identifier, None)
        self._delivered[request.identifier] = request
        while len(self._delivered) > self._max_delivered:
            del self._delivered[next(iter(self._delivered))]

    def pop_due(self, now: datetime | None = None) -> list[NotificationRequest]:
        now = now or datetime.now()
        due: list[NotificationRequest] = []
        with self._lock:
            for ident, p in list(self._pending.items()):
                if p.fire_at > now:
                    continue
                due.append(p.request)
                self._remember_delivered(p.request)
                if p.request.trigger.repeats:
                    # Missed slots collapse into one delivery.
                    next_at = p.request.trigger.next_fire(max(p.fire_at, now))
                    if next_at is not None:
                        p.fire_at = next_at
                        continue
                del self._pending[ident]
        return due
