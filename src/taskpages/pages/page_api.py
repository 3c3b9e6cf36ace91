# src/taskpages/pages/page_api.py

"""
High-level operations used by the front-end.

Each helper changes the store and keeps notifications and preferences in step
with it (the store itself knows nothing about reminders).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, time
from pathlib import Path

from ..backup import archive
from ..core.prefs import save_preferences
from ..core.state import AppState
from .attachments import import_attachment, remove_attachment_file
from .models import Attachment, Page, Priority, Recurrence, Step, Task
from .page_store import NotFound

logger = logging.getLogger(__name__)


def _sync_task_reminder(state: AppState, task: Task) -> None:
    if task.is_done:
        state.reminders.cancel_task_reminder(task.id)
    else:
        state.reminders.schedule_task_reminder(task)


def _task(state: AppState, task_id: str) -> Task | None:
    page = state.store.page_of_task(task_id)
    if page is None:
        return None
    return next((t for t in page.tasks if t.id == task_id), None)


# ---- pages ----


def delete_page(state: AppState, page_id: str) -> list[Task]:
    removed = state.store.delete_page(page_id)
    for task in removed:
        state.reminders.cancel_all_for_task(task.id)
    if state.selected_page_id == page_id:
        state.selected_page_id = None
    return removed


# ---- tasks ----


def add_task(state: AppState, page_id: str, title: str, priority: Priority = Priority.MEDIUM) -> Task | None:
    task = state.store.add_task(page_id, title, priority)
    if task is not None and task.is_in_daily:
        state.reminders.schedule_daily_followup(task)
    return task


def delete_tasks(state: AppState, page_id: str, ids: Iterable[str]) -> list[Task]:
    removed = state.store.delete_tasks(page_id, ids)
    for task in removed:
        state.reminders.cancel_all_for_task(task.id)
    return removed


def mark_tasks(state: AppState, page_id: str, ids: Iterable[str], done: bool) -> None:
    wanted = list(ids)
    state.store.mark_tasks(page_id, wanted, done)
    page = state.store.get_page(page_id)
    if page is None:
        return
    for task in page.tasks:
        if task.id in wanted:
            _sync_task_reminder(state, task)


def set_task_in_daily(state: AppState, task_id: str, in_daily: bool) -> Task | None:
    task = state.store.set_task_in_daily(task_id, in_daily)
    if task is None:
        return None
    if in_daily:
        state.reminders.schedule_daily_followup(task)
    else:
        state.reminders.cancel_daily_followup(task_id)
    return task


def set_recurrence(state: AppState, task_id: str, recurrence: Recurrence) -> Task | None:
    task = state.store.update_task(task_id, recurrence=recurrence)
    if task is not None:
        _sync_task_reminder(state, task)
    return task


def set_reminder(state: AppState, task_id: str, remind_at: datetime | None) -> datetime | None:
    """Set or clear (None) the task's reminder. Returns the next fire time, if any."""
    task = state.store.update_task(task_id, remind_at=remind_at)
    if task is None:
        raise NotFound(f"no task {task_id}")
    if remind_at is None or task.is_done:
        state.reminders.cancel_task_reminder(task_id)
        return None
    return state.reminders.schedule_task_reminder(task)


# ---- steps ----


def add_step(state: AppState, task_id: str, title: str) -> Step | None:
    step = state.store.add_step(task_id, title)
    task = _task(state, task_id)
    if step is not None and task is not None:
        _sync_task_reminder(state, task)
    return step


def set_step_done(state: AppState, task_id: str, step_id: str, done: bool) -> bool:
    ok = state.store.set_step_done(task_id, step_id, done)
    task = _task(state, task_id)
    if ok and task is not None:
        _sync_task_reminder(state, task)
    return ok


def remove_step(state: AppState, task_id: str, step_id: str) -> bool:
    ok = state.store.remove_step(task_id, step_id)
    task = _task(state, task_id)
    if ok and task is not None:
        _sync_task_reminder(state, task)
    return ok


# ---- attachments ----


def attach_file(state: AppState, task_id: str, source: str | Path) -> Attachment:
    if _task(state, task_id) is None:
        raise NotFound(f"no task {task_id}")
    att = import_attachment(source, state.settings.attachments_dir)  # type: ignore[attr-defined]
    state.store.add_attachment(task_id, att)
    return att


def detach_file(state: AppState, task_id: str, attachment_id: str) -> Attachment | None:
    att = state.store.remove_attachment(task_id, attachment_id)
    if att is not None and state.prefs.delete_attachment_files_on_remove:
        remove_attachment_file(att.file_path)
    return att


# ---- preferences ----


def _save_prefs(state: AppState) -> None:
    save_preferences(state.settings.prefs_path, state.prefs)  # type: ignore[attr-defined]


def set_notifications_enabled(state: AppState, enabled: bool) -> None:
    state.prefs.notifications_enabled = enabled
    _save_prefs(state)
    if enabled:
        state.reminders.reschedule_all(state.store)
    else:
        state.reminders.cancel_daily_reminder()
    logger.info("Notifications %s", "enabled" if enabled else "disabled")


def set_daily_reminder_time(state: AppState, at: time) -> None:
    state.prefs.daily_reminder_time = at
    _save_prefs(state)
    if state.prefs.notifications_enabled:
        state.reminders.schedule_daily_reminder(at)


def set_delete_attachment_files(state: AppState, enabled: bool) -> None:
    state.prefs.delete_attachment_files_on_remove = enabled
    _save_prefs(state)


def set_sort_by_priority(state: AppState, enabled: bool) -> None:
    state.prefs.sort_by_priority = enabled
    _save_prefs(state)


# ---- backup ----


def _replace_all(state: AppState, pages: list[Page]) -> None:
    for _, task in state.store.iter_tasks():
        state.reminders.cancel_all_for_task(task.id)
    state.store.replace_pages(pages)
    state.selected_page_id = None
    state.reminders.reschedule_all(state.store)


def export_data(state: AppState, *, with_attachments: bool = False) -> Path:
    export_dir = state.settings.export_dir  # type: ignore[attr-defined]
    if with_attachments:
        return archive.export_archive(state.store.pages, export_dir)
    return archive.export_json(state.store.pages, export_dir)


def import_data(state: AppState, source: str | Path) -> int:
    """Import a JSON snapshot or a backup archive (by extension). Returns the page count."""
    src = Path(source).expanduser()
    if src.suffix.lower() == ".zip":
        pages = archive.restore_archive(src, state.settings.attachments_dir)  # type: ignore[attr-defined]
    else:
        pages = archive.import_json(src)
    _replace_all(state, pages)
    return len(state.store.pages)
