# src/taskpages/pages/views.py

"""
Read-side helpers: what a page shows.

Nothing here mutates the store. Rows carry the owning page so the front-end
can show "from page X" when a listing mixes pages (daily view, global search).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum

from .models import Page, Task
from .page_store import PageStore


class TaskFilter(StrEnum):
    ALL = "all"
    ACTIVE = "active"
    DONE = "done"


@dataclass(slots=True, frozen=True)
class TaskRow:
    page: Page
    task: Task
    show_page_name: bool = False


def apply_filter(task_filter: TaskFilter, rows: Iterable[TaskRow]) -> list[TaskRow]:
    if task_filter == TaskFilter.ACTIVE:
        return [r for r in rows if not r.task.is_done]
    if task_filter == TaskFilter.DONE:
        return [r for r in rows if r.task.is_done]
    return list(rows)


def apply_search(query: str, rows: Iterable[TaskRow]) -> list[TaskRow]:
    q = (query or "").strip().casefold()
    if not q:
        return list(rows)
    return [r for r in rows if q in r.task.title.casefold()]


def sort_rows(rows: Iterable[TaskRow], *, by_priority: bool) -> list[TaskRow]:
    """Undone first, then priority (high..low), then title (case-insensitive)."""
    if not by_priority:
        return list(rows)
    return sorted(
        rows,
        key=lambda r: (r.task.is_done, r.task.priority.sort_weight, r.task.title.casefold()),
    )


def visible_tasks(
    store: PageStore,
    page_id: str | None,
    *,
    task_filter: TaskFilter = TaskFilter.ALL,
    query: str = "",
    sort_by_priority: bool = True,
) -> list[TaskRow]:
    """
    Tasks to display for the selected page.

    - non-empty query: search every regular page (search -> filter -> sort)
    - daily page: daily-included tasks of every regular page
    - regular page: its own tasks
    """
    if (query or "").strip():
        rows = [TaskRow(page=p, task=t, show_page_name=True) for p, t in store.iter_tasks()]
        rows = apply_search(query, rows)
        rows = apply_filter(task_filter, rows)
        return sort_rows(rows, by_priority=sort_by_priority)

    page = current_page(store, page_id)
    if page is None:
        return []

    if page.is_daily:
        rows = [
            TaskRow(page=p, task=t, show_page_name=True)
            for p, t in store.iter_tasks()
            if t.is_in_daily
        ]
    else:
        rows = [TaskRow(page=page, task=t) for t in page.tasks]

    rows = apply_filter(task_filter, rows)
    rows = apply_search(query, rows)
    return sort_rows(rows, by_priority=sort_by_priority)


def current_page(store: PageStore, page_id: str | None) -> Page | None:
    """Selected page, or the daily page (then the first page) when nothing is selected."""
    if page_id is None:
        return store.daily_page or (store.pages[0] if store.pages else None)
    return store.get_page(page_id)


def remaining_count(store: PageStore, page_id: str | None) -> int:
    page = current_page(store, page_id)
    if page is None:
        return 0
    if page.is_daily:
        return sum(1 for t in store.daily_tasks() if not t.is_done)
    return sum(1 for t in page.tasks if not t.is_done)
