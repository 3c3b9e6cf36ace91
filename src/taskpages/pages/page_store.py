# src/taskpages/pages/page_store.py

from __future__ import annotations

import contextlib
import json
import logging
import os
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from .models import (
    Attachment,
    Page,
    Priority,
    Recurrence,
    Step,
    StoreFormatError,
    Task,
    pages_from_document,
    pages_to_document,
)

logger = logging.getLogger(__name__)


class NotFound(LookupError):
    """A page, task or step reference matched nothing."""


class AmbiguousReference(LookupError):
    """An id prefix matched more than one task or page."""


_UNSET = object()


def default_pages() -> list[Page]:
    return [
        Page(name="Daily", is_daily=True),
        Page(name="General", tasks=[Task(title="Write report", is_done=True, priority=Priority.HIGH)]),
        Page(
            name="Personal",
            tasks=[
                Task(title="Read email", priority=Priority.LOW),
                Task(title="Review tasks", priority=Priority.MEDIUM),
            ],
        ),
    ]


def _norm_name(name: str) -> str:
    return name.strip().casefold()


def _mark_steps_done(task: Task, now: datetime) -> None:
    for step in task.steps:
        step.is_done = True
        step.completed_at = step.completed_at or now


def _auto_complete(task: Task) -> None:
    if not task.steps:
        return
    task.is_done = all(s.is_done for s in task.steps)


class PageStore:
    """
    JSON page store.

    The whole store is one document: a list of page objects.
    - load() reads it once at startup; a missing or broken file yields default pages
    - every mutation saves the full document (temp file + os.replace)

    The daily page never owns tasks: it shows tasks from other pages
    that are flagged is_in_daily.
    """

    def __init__(self, path: str | Path = "tasks_pages.json") -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self.pages: list[Page] = []
        self.load()
        logger.info("PageStore ready path=%s pages=%s", self._path, len(self.pages))

    @property
    def path(self) -> Path:
        return self._path

    # ---- persistence ----

    def load(self) -> None:
        try:
            data = json.loads(self._path.read_text("utf-8"))
            pages = pages_from_document(data)
        except FileNotFoundError:
            logger.info("No pages file at %s; using defaults.", self._path)
            pages = []
        except (OSError, json.JSONDecodeError, StoreFormatError):
            logger.exception("Failed to load pages from %s; using defaults.", self._path)
            pages = []

        if pages:
            self.pages = pages
            return

        self.pages = default_pages()
        self.save()

    def save(self) -> None:
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(json.dumps(pages_to_document(self.pages), ensure_ascii=False, indent=2), "utf-8")
        os.replace(tmp, self._path)
        with contextlib.suppress(Exception):
            os.chmod(self._path, 0o600)
        logger.debug("Saved %d pages to %s", len(self.pages), self._path)

    def replace_pages(self, pages: list[Page]) -> None:
        self.pages = list(pages) if pages else default_pages()
        self.save()
        logger.info("Pages replaced: %d pages", len(self.pages))

    # ---- lookups ----

    @property
    def daily_page(self) -> Page | None:
        return next((p for p in self.pages if p.is_daily), None)

    @property
    def daily_page_id(self) -> str | None:
        page = self.daily_page
        return page.id if page else None

    def get_page(self, page_id: str) -> Page | None:
        return next((p for p in self.pages if p.id == page_id), None)

    def find_page(self, ref: str) -> Page:
        """Find a page by id, id prefix or (case-insensitive) name."""
        key = ref.strip()
        if not key:
            raise NotFound("empty page reference")
        exact = self.get_page(key)
        if exact is not None:
            return exact
        by_name = [p for p in self.pages if _norm_name(p.name) == _norm_name(key)]
        if by_name:
            return by_name[0]
        by_prefix = [p for p in self.pages if p.id.startswith(key.lower())]
        if len(by_prefix) == 1:
            return by_prefix[0]
        if len(by_prefix) > 1:
            raise AmbiguousReference(f"page reference {ref!r} is ambiguous")
        raise NotFound(f"no page matches {ref!r}")

    def iter_tasks(self) -> Iterable[tuple[Page, Task]]:
        for page in self.pages:
            if page.is_daily:
                continue
            for task in page.tasks:
                yield page, task

    def find_task(self, ref: str) -> tuple[Page, Task]:
        """Find a task by full id or unique id prefix."""
        key = ref.strip().lower()
        if not key:
            raise NotFound("empty task reference")
        matches = [(p, t) for p, t in self.iter_tasks() if t.id == key]
        if not matches:
            matches = [(p, t) for p, t in self.iter_tasks() if t.id.startswith(key)]
        if len(matches) > 1:
            raise AmbiguousReference(f"task reference {ref!r} matches {len(matches)} tasks")
        if not matches:
            raise NotFound(f"no task matches {ref!r}")
        return matches[0]

    def page_of_task(self, task_id: str) -> Page | None:
        for page, task in self.iter_tasks():
            if task.id == task_id:
                return page
        return None

    def _get_task(self, task_id: str) -> Task | None:
        for _, task in self.iter_tasks():
            if task.id == task_id:
                return task
        return None

    def daily_tasks(self) -> list[Task]:
        return [t for _, t in self.iter_tasks() if t.is_in_daily]

    # ---- pages ----

    def _is_duplicate_name(self, name: str, excluding_id: str | None = None) -> bool:
        target = _norm_name(name)
        if not target:
            return True
        return any(
            _norm_name(p.name) == target for p in self.pages if excluding_id is None or p.id != excluding_id
        )

    def add_page(self, name: str) -> Page | None:
        clean = name.strip()
        if not clean or self._is_duplicate_name(clean):
            return None
        page = Page(name=clean)
        self.pages.append(page)
        self.save()
        logger.info("Page added id=%s name=%s", page.id, clean)
        return page

    def rename_page(self, page_id: str, new_name: str) -> bool:
        page = self.get_page(page_id)
        if page is None or page.is_daily:
            return False
        clean = new_name.strip()
        if not clean or self._is_duplicate_name(clean, excluding_id=page_id):
            return False
        page.name = clean
        self.save()
        return True

    def delete_page(self, page_id: str) -> list[Task]:
        """Delete a non-daily page. Returns the tasks that went with it."""
        page = self.get_page(page_id)
        if page is None or page.is_daily:
            return []
        self.pages.remove(page)
        self.save()
        logger.info("Page deleted id=%s tasks=%d", page_id, len(page.tasks))
        return list(page.tasks)

    # ---- tasks ----

    def add_task(self, page_id: str, title: str, priority: Priority = Priority.MEDIUM) -> Task | None:
        page = self.get_page(page_id)
        if page is None:
            return None
        clean = title.strip()
        if not clean:
            return None

        task = Task(title=clean, priority=priority)
        if page.is_daily:
            # Daily page owns nothing: file the task under the first regular page.
            target = next((p for p in self.pages if not p.is_daily), None)
            if target is None:
                return None
            task.is_in_daily = True
            task.added_to_daily_at = datetime.now()
            page = target

        page.tasks.insert(0, task)
        self.save()
        logger.debug("Task added id=%s page=%s priority=%s", task.id, page.id, priority.value)
        return task

    def delete_tasks(self, page_id: str, ids: Iterable[str]) -> list[Task]:
        page = self.get_page(page_id)
        if page is None:
            return []
        wanted = set(ids)
        removed = [t for t in page.tasks if t.id in wanted]
        if not removed:
            return []
        page.tasks = [t for t in page.tasks if t.id not in wanted]
        self.save()
        return removed

    def mark_tasks(self, page_id: str, ids: Iterable[str], done: bool) -> None:
        page = self.get_page(page_id)
        if page is None:
            return
        wanted = set(ids)
        now = datetime.now()
        for task in page.tasks:
            if task.id not in wanted:
                continue
            task.is_done = done
            if done:
                _mark_steps_done(task, now)
        self.save()

    def set_priority(self, page_id: str, ids: Iterable[str], priority: Priority) -> None:
        page = self.get_page(page_id)
        if page is None:
            return
        wanted = set(ids)
        for task in page.tasks:
            if task.id in wanted:
                task.priority = priority
        self.save()

    def move_tasks(self, page_id: str, source: Iterable[int], destination: int) -> None:
        """
        Reorder tasks within a page.

        Semantics: take the tasks at the source offsets (keeping their order),
        then insert them before the task that was at `destination`
        (len(tasks) means "at the end").
        """
        page = self.get_page(page_id)
        if page is None:
            return
        n = len(page.tasks)
        offsets = sorted({i for i in source if 0 <= i < n})
        if not offsets:
            return
        destination = max(0, min(n, destination))

        picked = set(offsets)
        moving = [page.tasks[i] for i in offsets]
        rest = [t for i, t in enumerate(page.tasks) if i not in picked]
        insert_at = destination - sum(1 for i in offsets if i < destination)
        page.tasks = rest[:insert_at] + moving + rest[insert_at:]
        self.save()

    def move_task(self, task_id: str, source_page_id: str, target_page_id: str) -> bool:
        source = self.get_page(source_page_id)
        target = self.get_page(target_page_id)
        if source is None or target is None or target.is_daily:
            return False
        task = next((t for t in source.tasks if t.id == task_id), None)
        if task is None:
            return False
        source.tasks.remove(task)
        target.tasks.insert(0, task)
        self.save()
        return True

    def set_task_in_daily(self, task_id: str, in_daily: bool) -> Task | None:
        task = self._get_task(task_id)
        if task is None:
            return None
        task.is_in_daily = in_daily
        task.added_to_daily_at = datetime.now() if in_daily else None
        self.save()
        return task

    def update_task(
        self,
        task_id: str,
        *,
        title: str | None = None,
        notes: str | None = None,
        recurrence: Recurrence | None = None,
        remind_at: datetime | None | object = _UNSET,
    ) -> Task | None:
        """Edit task fields. Pass remind_at=None to clear the reminder."""
        task = self._get_task(task_id)
        if task is None:
            return None
        if title is not None:
            clean = title.strip()
            if not clean:
                return None
            task.title = clean
        if notes is not None:
            task.notes = notes
        if recurrence is not None:
            task.recurrence = recurrence
        if remind_at is not _UNSET:
            task.remind_at = remind_at  # type: ignore[assignment]
        self.save()
        return task

    # ---- steps ----

    def add_step(self, task_id: str, title: str) -> Step | None:
        task = self._get_task(task_id)
        clean = title.strip()
        if task is None or not clean:
            return None
        step = Step(title=clean)
        task.steps.append(step)
        _auto_complete(task)
        self.save()
        return step

    def set_step_done(self, task_id: str, step_id: str, done: bool) -> bool:
        task = self._get_task(task_id)
        if task is None:
            return False
        step = next((s for s in task.steps if s.id == step_id), None)
        if step is None:
            return False
        step.is_done = done
        step.completed_at = (step.completed_at or datetime.now()) if done else None
        _auto_complete(task)
        self.save()
        return True

    def remove_step(self, task_id: str, step_id: str) -> bool:
        task = self._get_task(task_id)
        if task is None:
            return False
        before = len(task.steps)
        task.steps = [s for s in task.steps if s.id != step_id]
        if len(task.steps) == before:
            return False
        _auto_complete(task)
        self.save()
        return True

    # ---- attachments ----

    def add_attachment(self, task_id: str, attachment: Attachment) -> bool:
        task = self._get_task(task_id)
        if task is None:
            return False
        task.attachments.append(attachment)
        self.save()
        return True

    def remove_attachment(self, task_id: str, attachment_id: str) -> Attachment | None:
        """Detach an attachment. Returns the removed Attachment or None."""
        task = self._get_task(task_id)
        if task is None:
            return None
        att = next((a for a in task.attachments if a.id == attachment_id), None)
        if att is None:
            return None
        task.attachments.remove(att)
        self.save()
        return att
