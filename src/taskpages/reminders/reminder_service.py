# src/taskpages/reminders/reminder_service.py

from __future__ import annotations

"""
What the app schedules with the notification center.

Identifiers are stable so re-scheduling replaces instead of duplicating:
- task-<task id>               task reminder (trigger from recurrence + remind_at)
- daily-<task id>              follow-up 24h after a task enters the daily view
- daily-fixed-time-reminder    repeating "review your day" reminder
- test-<uuid>                  one-off test notification
"""

import logging
import uuid
from datetime import datetime, time

from ..core.ports import NotificationScheduler
from ..core.prefs import Preferences
from ..pages.models import Task
from ..pages.page_store import PageStore
from .notification_center import NotificationRequest
from .triggers import CalendarTrigger, IntervalTrigger, trigger_for_recurrence

logger = logging.getLogger(__name__)

DAILY_FIXED_TIME_ID = "daily-fixed-time-reminder"
DAILY_FOLLOWUP_SECONDS = 24 * 60 * 60
TEST_NOTIFICATION_DELAY_SECONDS = 1.0


def task_reminder_id(task_id: str) -> str:
    return f"task-{task_id}"


def daily_followup_id(task_id: str) -> str:
    return f"daily-{task_id}"


class ReminderService:
    def __init__(self, center: NotificationScheduler, prefs: Preferences) -> None:
        self._center = center
        self._prefs = prefs

    @property
    def enabled(self) -> bool:
        return bool(self._prefs.notifications_enabled)

    def _cancel(self, identifier: str) -> None:
        self._center.remove_pending([identifier])
        self._center.remove_delivered([identifier])

    # ---- task reminders ----

    def schedule_task_reminder(self, task: Task, *, now: datetime | None = None) -> datetime | None:
        """(Re)schedule the reminder of one task. Returns the fire time, or None."""
        ident = task_reminder_id(task.id)
        self._cancel(ident)
        if not self.enabled or task.remind_at is None or task.is_done:
            return None

        trigger = trigger_for_recurrence(task.recurrence, task.remind_at)
        request = NotificationRequest(
            identifier=ident,
            title="Task reminder",
            body=task.title,
            trigger=trigger,
        )
        fire_at = self._center.add(request, now=now)
        logger.info("Task reminder id=%s recurrence=%s fire_at=%s", task.id, task.recurrence.value, fire_at)
        return fire_at

    def cancel_task_reminder(self, task_id: str) -> None:
        self._cancel(task_reminder_id(task_id))

    # ---- daily view follow-up ----

    def schedule_daily_followup(self, task: Task, *, now: datetime | None = None) -> datetime | None:
        if not self.enabled:
            return None
        request = NotificationRequest(
            identifier=daily_followup_id(task.id),
            title="Daily follow-up",
            body=f'Does "{task.title}" still need to stay in the daily list?',
            trigger=IntervalTrigger(seconds=DAILY_FOLLOWUP_SECONDS, repeats=False),
        )
        return self._center.add(request, now=now)

    def cancel_daily_followup(self, task_id: str) -> None:
        self._cancel(daily_followup_id(task_id))

    def cancel_all_for_task(self, task_id: str) -> None:
        self.cancel_task_reminder(task_id)
        self.cancel_daily_followup(task_id)

    # ---- fixed-time daily reminder ----

    def schedule_daily_reminder(self, at: time, *, now: datetime | None = None) -> datetime | None:
        self.cancel_daily_reminder()
        if not self.enabled:
            return None
        request = NotificationRequest(
            identifier=DAILY_FIXED_TIME_ID,
            title="Daily reminder",
            body="Review your daily tasks and update your list.",
            trigger=CalendarTrigger(hour=at.hour, minute=at.minute, repeats=True),
        )
        return self._center.add(request, now=now)

    def cancel_daily_reminder(self) -> None:
        self._cancel(DAILY_FIXED_TIME_ID)

    def schedule_test_notification(self, *, now: datetime | None = None) -> datetime | None:
        if not self.enabled:
            return None
        request = NotificationRequest(
            identifier=f"test-{uuid.uuid4()}",
            title="Test notification",
            body="This is a test to confirm notifications are working.",
            trigger=IntervalTrigger(seconds=TEST_NOTIFICATION_DELAY_SECONDS),
        )
        return self._center.add(request, now=now)

    # ---- bulk ----

    def reschedule_all(self, store: PageStore, *, now: datetime | None = None) -> int:
        """
        Re-arm everything from stored state (startup, notifications switched back on).

        Daily follow-ups restart their 24h window. Returns the number of scheduled requests.
        """
        if not self.enabled:
            return 0
        count = 0
        if self.schedule_daily_reminder(self._prefs.daily_reminder_time, now=now) is not None:
            count += 1
        for _, task in store.iter_tasks():
            if self.schedule_task_reminder(task, now=now) is not None:
                count += 1
            if task.is_in_daily and self.schedule_daily_followup(task, now=now) is not None:
                count += 1
        logger.info("Rescheduled %d notifications", count)
        return count
