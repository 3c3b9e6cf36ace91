# src/taskpages/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from ..pages.page_store import PageStore
from ..pages.views import TaskFilter
from ..reminders.notification_center import LocalNotificationCenter
from ..reminders.reminder_service import ReminderService
from .prefs import Preferences


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    store: PageStore
    prefs: Preferences
    center: LocalNotificationCenter
    reminders: ReminderService

    # View state of the front-end (what the user is looking at).
    selected_page_id: str | None = None
    task_filter: TaskFilter = TaskFilter.ALL
    query: str = ""

    lock: threading.RLock = field(default_factory=threading.RLock)
