# src/taskpages/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (store/preferences/notifications),
- re-arms reminders from stored tasks.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.prefs import Preferences, load_preferences
from ..core.state import AppState
from ..pages.page_store import PageStore
from ..reminders.notification_center import LocalNotificationCenter
from ..reminders.reminder_service import ReminderService

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.pages_path.parent.mkdir(parents=True, exist_ok=True)
    settings.prefs_path.parent.mkdir(parents=True, exist_ok=True)
    settings.attachments_dir.mkdir(parents=True, exist_ok=True)
    settings.export_dir.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, center: LocalNotificationCenter | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    prefs = load_preferences(settings.prefs_path, Preferences.from_settings(settings))
    center = center or LocalNotificationCenter()
    store = PageStore(settings.pages_path)

    state = AppState(
        settings=settings,
        store=store,
        prefs=prefs,
        center=center,
        reminders=ReminderService(center, prefs),
    )

    if prefs.notifications_enabled:
        state.reminders.reschedule_all(store)
    return state
