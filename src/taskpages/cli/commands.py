# src/taskpages/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
from collections.abc import Callable
from datetime import datetime
from typing import cast

from ..backup.archive import BackupError
from ..config import parse_hhmm
from ..core.state import AppState
from ..pages import page_api
from ..pages.models import Page, Priority, Recurrence, Task
from ..pages.page_store import AmbiguousReference, NotFound
from ..pages.views import TaskFilter, TaskRow, current_page, remaining_count, visible_tasks

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

SHORT_ID = 8
_ON = ("on", "1", "true", "yes")
_OFF = ("off", "0", "false", "no")


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str, emit: CommandEmitter | None = None) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except AmbiguousReference as e:
            return f"{e}. Use a longer id."
        except NotFound as e:
            return f"Not found: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- formatting ----


def _short(ident: str) -> str:
    return ident[:SHORT_ID]


def format_row(row: TaskRow) -> str:
    task = row.task
    mark = "x" if task.is_done else " "
    parts = [f"[{mark}] {_short(task.id)}  {task.priority.value:<6}  {task.title}"]
    if row.show_page_name:
        parts.append(f"({row.page.name})")
    if task.steps:
        done = sum(1 for s in task.steps if s.is_done)
        parts.append(f"steps {done}/{len(task.steps)}")
    if task.attachments:
        parts.append(f"files {len(task.attachments)}")
    if task.recurrence != Recurrence.NONE:
        parts.append(task.recurrence.value)
    if task.is_in_daily and not row.show_page_name:
        parts.append("*daily")
    return "  ".join(parts)


def _fmt_dt(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"


def format_task_details(state: AppState, page: Page, task: Task) -> str:
    lines = [
        f"{task.title}",
        f"  id: {task.id}",
        f"  page: {page.name}",
        f"  status: {'done' if task.is_done else 'open'}",
        f"  priority: {task.priority.value}",
        f"  created: {_fmt_dt(task.created_at)}",
        f"  daily: {'yes since ' + _fmt_dt(task.added_to_daily_at) if task.is_in_daily else 'no'}",
        f"  repeat: {task.recurrence.value}",
        f"  remind at: {_fmt_dt(task.remind_at)}",
    ]
    fire_at = state.center.fire_time(f"task-{task.id}")
    if fire_at is not None:
        lines.append(f"  next reminder: {_fmt_dt(fire_at)}")
    if task.notes:
        lines.append(f"  notes: {task.notes}")
    if task.steps:
        lines.append(f"  steps ({round(task.steps_progress * 100)}%):")
        for i, step in enumerate(task.steps, start=1):
            when = f" ({_fmt_dt(step.completed_at)})" if step.is_done and step.completed_at else ""
            lines.append(f"    {i}. [{'x' if step.is_done else ' '}] {step.title}{when}")
    if task.attachments:
        lines.append("  attachments:")
        for i, att in enumerate(task.attachments, start=1):
            lines.append(f"    {i}. {att.file_name} [{att.kind.value}]")
    return "\n".join(lines)


# ---- argument helpers ----


def _page_or_current(state: AppState) -> Page | None:
    return current_page(state.store, state.selected_page_id)


def _resolve_tasks(state: AppState, refs: list[str]) -> dict[str, list[str]]:
    """Task refs -> {page_id: [task_id, ...]}. Raises NotFound on bad refs."""
    grouped: dict[str, list[str]] = {}
    for ref in refs:
        page, task = state.store.find_task(ref)
        grouped.setdefault(page.id, []).append(task.id)
    return grouped


def _parse_toggle(raw: str) -> bool | None:
    value = raw.lower()
    if value in _ON:
        return True
    if value in _OFF:
        return False
    return None


def _step_index(task: Task, raw: str) -> str:
    try:
        idx = int(raw)
    except ValueError as e:
        raise NotFound(f"step number expected, got {raw!r}") from e
    if not 1 <= idx <= len(task.steps):
        raise NotFound(f"step {idx} (task has {len(task.steps)})")
    return task.steps[idx - 1].id


# ---- commands ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    prefs = state.prefs
    page = _page_or_current(state)
    return (
        "Status:\n"
        f"  Page: {page.name if page else '-'} ({remaining_count(state.store, state.selected_page_id)} open)\n"
        f"  Filter: {state.task_filter.value}\n"
        f"  Notifications: {'ON' if prefs.notifications_enabled else 'OFF'}\n"
        f"  Daily reminder: {prefs.daily_reminder_time.strftime('%H:%M')}\n"
        f"  Delete files on detach: {'ON' if prefs.delete_attachment_files_on_remove else 'OFF'}\n"
        f"  Sort by priority: {'ON' if prefs.sort_by_priority else 'OFF'}\n"
        f"  Pending notifications: {len(state.center.pending())}"
    )


def cmd_pages(state: AppState, args: list[str]) -> str:
    selected = _page_or_current(state)
    lines = ["Pages:"]
    for page in state.store.pages:
        marker = ">" if selected is not None and page.id == selected.id else " "
        count = remaining_count(state.store, page.id)
        kind = " [daily]" if page.is_daily else ""
        lines.append(f" {marker} {page.name}{kind}  ({count} open)")
    return "\n".join(lines)


def cmd_page(state: AppState, args: list[str]) -> str:
    """
    /page add <name>
    /page rename <page> <new name>
    /page delete <page>
    /page use <page>
    """
    usage = "Usage: /page add <name> | rename <page> <new name> | delete <page> | use <page>"
    if not args:
        return usage
    sub, rest = args[0].lower(), args[1:]

    if sub == "add":
        page = state.store.add_page(" ".join(rest))
        if page is None:
            return "Page name is empty or already exists."
        state.selected_page_id = page.id
        return f"Page added: {page.name}"

    if sub == "rename":
        if len(rest) < 2:
            return usage
        page = state.store.find_page(rest[0])
        if page.is_daily:
            return "The daily page cannot be renamed."
        if not state.store.rename_page(page.id, " ".join(rest[1:])):
            return "Page name is empty or already exists."
        return f"Page renamed: {page.name}"

    if sub == "delete":
        page = state.store.find_page(" ".join(rest))
        if page.is_daily:
            return "The daily page cannot be deleted."
        removed = page_api.delete_page(state, page.id)
        return f"Page deleted: {page.name} ({len(removed)} tasks removed)"

    if sub == "use":
        page = state.store.find_page(" ".join(rest))
        state.selected_page_id = page.id
        state.query = ""
        return cmd_ls(state, [])

    return usage


def _render_listing(state: AppState, title: str, rows: list[TaskRow]) -> str:
    lines = [title]
    if not rows:
        lines.append("  (no tasks)")
    for row in rows:
        lines.append("  " + format_row(row))
    return "\n".join(lines)


def cmd_ls(state: AppState, args: list[str]) -> str:
    """/ls [all|active|done]"""
    if args:
        try:
            state.task_filter = TaskFilter(args[0].lower())
        except ValueError:
            return "Usage: /ls [all|active|done]"
    state.query = ""
    page = _page_or_current(state)
    if page is None:
        return "No pages."
    rows = visible_tasks(
        state.store,
        page.id,
        task_filter=state.task_filter,
        sort_by_priority=state.prefs.sort_by_priority,
    )
    open_count = remaining_count(state.store, page.id)
    return _render_listing(state, f"{page.name} - {open_count} open ({state.task_filter.value})", rows)


def cmd_search(state: AppState, args: list[str]) -> str:
    query = " ".join(args).strip()
    if not query:
        state.query = ""
        return "Search cleared."
    state.query = query
    rows = visible_tasks(
        state.store,
        state.selected_page_id,
        task_filter=state.task_filter,
        query=query,
        sort_by_priority=state.prefs.sort_by_priority,
    )
    return _render_listing(state, f"Search: {query!r} - {len(rows)} found", rows)


def cmd_add(state: AppState, args: list[str]) -> str:
    """/add [!low|!medium|!high] <title>"""
    priority = Priority.MEDIUM
    if args and args[0].startswith("!"):
        raw = args[0][1:].lower()
        if raw not in {p.value for p in Priority}:
            return "Priority must be !low, !medium or !high."
        priority = Priority(raw)
        args = args[1:]
    page = _page_or_current(state)
    if page is None:
        return "No page selected."
    task = page_api.add_task(state, page.id, " ".join(args), priority)
    if task is None:
        return "Task title is empty."
    return f"Added {_short(task.id)}: {task.title}"


def cmd_show(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /show <task>"
    page, task = state.store.find_task(args[0])
    return format_task_details(state, page, task)


def _mark(state: AppState, args: list[str], done: bool) -> str:
    if not args:
        return f"Usage: /{'done' if done else 'undone'} <task...>"
    grouped = _resolve_tasks(state, args)
    for page_id, ids in grouped.items():
        page_api.mark_tasks(state, page_id, ids, done)
    n = sum(len(ids) for ids in grouped.values())
    return f"Marked {n} task(s) {'done' if done else 'open'}."


def cmd_done(state: AppState, args: list[str]) -> str:
    return _mark(state, args, True)


def cmd_undone(state: AppState, args: list[str]) -> str:
    return _mark(state, args, False)


def cmd_prio(state: AppState, args: list[str]) -> str:
    if len(args) < 2 or args[0].lower() not in {p.value for p in Priority}:
        return "Usage: /prio <low|medium|high> <task...>"
    priority = Priority(args[0].lower())
    grouped = _resolve_tasks(state, args[1:])
    for page_id, ids in grouped.items():
        state.store.set_priority(page_id, ids, priority)
    return f"Priority set to {priority.value}."


def cmd_rm(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /rm <task...>"
    grouped = _resolve_tasks(state, args)
    removed = 0
    for page_id, ids in grouped.items():
        removed += len(page_api.delete_tasks(state, page_id, ids))
    return f"Deleted {removed} task(s)."


def cmd_mv(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /mv <task> <page>"
    source, task = state.store.find_task(args[0])
    target = state.store.find_page(" ".join(args[1:]))
    if target.is_daily:
        return "Use /daily <task> on to show a task in the daily page."
    if not state.store.move_task(task.id, source.id, target.id):
        return "Move failed."
    return f"Moved {_short(task.id)} to {target.name}."


def cmd_order(state: AppState, args: list[str]) -> str:
    """/order <from> <to> - 1-based positions in the current page's own order."""
    page = _page_or_current(state)
    if page is None or page.is_daily:
        return "Select a regular page first (/page use <page>)."
    try:
        src, final = int(args[0]) - 1, int(args[1]) - 1
    except (IndexError, ValueError):
        return "Usage: /order <from> <to>"
    n = len(page.tasks)
    if not (0 <= src < n and 0 <= final < n):
        return f"Positions must be between 1 and {n}."
    destination = final + 1 if final > src else final
    state.store.move_tasks(page.id, [src], destination)
    return "\n".join(f"  {i}. {t.title}" for i, t in enumerate(page.tasks, start=1))


def cmd_daily(state: AppState, args: list[str]) -> str:
    if len(args) != 2 or _parse_toggle(args[1]) is None:
        return "Usage: /daily <task> on|off"
    _, task = state.store.find_task(args[0])
    in_daily = bool(_parse_toggle(args[1]))
    page_api.set_task_in_daily(state, task.id, in_daily)
    return f"{task.title}: {'added to' if in_daily else 'removed from'} daily."


def cmd_step(state: AppState, args: list[str]) -> str:
    """
    /step add <task> <title>
    /step done <task> <n>
    /step undone <task> <n>
    /step rm <task> <n>
    """
    usage = "Usage: /step add <task> <title> | done <task> <n> | undone <task> <n> | rm <task> <n>"
    if len(args) < 3:
        return usage
    sub = args[0].lower()
    _, task = state.store.find_task(args[1])

    if sub == "add":
        step = page_api.add_step(state, task.id, " ".join(args[2:]))
        return f"Step added: {step.title}" if step else "Step title is empty."
    if sub in ("done", "undone"):
        page_api.set_step_done(state, task.id, _step_index(task, args[2]), sub == "done")
        return f"Step updated. Task is {'done' if task.is_done else 'open'}."
    if sub == "rm":
        page_api.remove_step(state, task.id, _step_index(task, args[2]))
        return "Step removed."
    return usage


def cmd_note(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /note <task> <text>"
    _, task = state.store.find_task(args[0])
    state.store.update_task(task.id, notes=" ".join(args[1:]))
    return "Notes saved." if len(args) > 1 else "Notes cleared."


def cmd_rename(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /rename <task> <title>"
    _, task = state.store.find_task(args[0])
    if state.store.update_task(task.id, title=" ".join(args[1:])) is None:
        return "Task title is empty."
    return f"Renamed: {task.title}"


def cmd_attach(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /attach <task> <path>"
    _, task = state.store.find_task(args[0])
    try:
        att = page_api.attach_file(state, task.id, " ".join(args[1:]))
    except OSError as e:
        logger.info("Attach failed: %s", e)
        return f"Could not attach file: {e}"
    return f"Attached {att.file_name} [{att.kind.value}]."


def cmd_detach(state: AppState, args: list[str]) -> str:
    if len(args) != 2:
        return "Usage: /detach <task> <n>"
    _, task = state.store.find_task(args[0])
    try:
        idx = int(args[1])
    except ValueError:
        return "Usage: /detach <task> <n>"
    if not 1 <= idx <= len(task.attachments):
        return f"Attachment number must be between 1 and {len(task.attachments)}."
    att = page_api.detach_file(state, task.id, task.attachments[idx - 1].id)
    return f"Detached {att.file_name}." if att else "Detach failed."


def cmd_repeat(state: AppState, args: list[str]) -> str:
    if len(args) != 2 or args[1].lower() not in {r.value for r in Recurrence}:
        return "Usage: /repeat <task> <none|daily|weekly|monthly>"
    _, task = state.store.find_task(args[0])
    page_api.set_recurrence(state, task.id, Recurrence(args[1].lower()))
    return f"{task.title}: repeat {task.recurrence.value}."


def cmd_remind(state: AppState, args: list[str]) -> str:
    """/remind <task> <YYYY-MM-DD HH:MM> | off"""
    usage = "Usage: /remind <task> <YYYY-MM-DD HH:MM> | off"
    if len(args) < 2:
        return usage
    _, task = state.store.find_task(args[0])
    raw = " ".join(args[1:])
    if raw.lower() in _OFF:
        page_api.set_reminder(state, task.id, None)
        return f"{task.title}: reminder cleared."
    try:
        remind_at = datetime.strptime(raw, "%Y-%m-%d %H:%M")
    except ValueError:
        return usage
    fire_at = page_api.set_reminder(state, task.id, remind_at)
    if fire_at is None:
        if task.is_done:
            return "Reminder saved; the task is done, so nothing is scheduled until it is reopened."
        if not state.prefs.notifications_enabled:
            return "Reminder saved (notifications are off)."
        return "Reminder saved, but it is in the past and will not fire."
    return f"{task.title}: next reminder {_fmt_dt(fire_at)}."


def cmd_export(state: AppState, args: list[str]) -> str:
    fmt = (args[0].lower() if args else "json")
    if fmt not in ("json", "zip"):
        return "Usage: /export [json|zip]"
    try:
        path = page_api.export_data(state, with_attachments=fmt == "zip")
    except BackupError as e:
        return f"Export failed: {e}"
    return f"Exported to {path}"


def cmd_import(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args:
        return "Usage: /import <file.json|file.zip>"
    if emit:
        with contextlib.suppress(Exception):
            emit("[IMPORT] Replacing all pages...")
    try:
        count = page_api.import_data(state, " ".join(args))
    except BackupError as e:
        logger.info("Import rejected: %s", e)
        return f"Import failed: {e}"
    return f"Imported {count} pages."


def cmd_set(state: AppState, args: list[str]) -> str:
    """
    /set notifications on|off
    /set time HH:MM
    /set delete-files on|off
    /set sort on|off
    """
    usage = "Usage: /set notifications on|off | time HH:MM | delete-files on|off | sort on|off"
    if len(args) != 2:
        return usage
    key, raw = args[0].lower(), args[1]

    if key == "time":
        try:
            at = parse_hhmm(raw)
        except ValueError:
            return "Time must be HH:MM (24h)."
        page_api.set_daily_reminder_time(state, at)
        return f"Daily reminder at {at.strftime('%H:%M')}."

    value = _parse_toggle(raw)
    if value is None:
        return usage
    if key == "notifications":
        page_api.set_notifications_enabled(state, value)
        return f"Notifications {'ON' if value else 'OFF'}."
    if key == "delete-files":
        page_api.set_delete_attachment_files(state, value)
        return f"Delete files on detach {'ON' if value else 'OFF'}."
    if key == "sort":
        page_api.set_sort_by_priority(state, value)
        return f"Sort by priority {'ON' if value else 'OFF'}."
    return usage


def cmd_test_notify(state: AppState, args: list[str]) -> str:
    if state.reminders.schedule_test_notification() is None:
        return "Notifications are off. Use /set notifications on."
    return "Test notification scheduled."


def cmd_pending(state: AppState, args: list[str]) -> str:
    items = state.center.pending()
    if not items:
        return "No pending notifications."
    lines = ["Pending notifications:"]
    for request, fire_at in items:
        lines.append(f"  {_fmt_dt(fire_at)}  {request.title}: {request.body}  ({request.trigger.describe()})")
    return "\n".join(lines)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show current page and settings.")
registry.register("pages", cmd_pages, help_text="List pages.")
registry.register("page", cmd_page, help_text="Pages: /page add | rename | delete | use.")
registry.register("ls", cmd_ls, help_text="List tasks of the current page: /ls [all|active|done].")
registry.register("search", cmd_search, help_text="Search task titles on every page.", aliases=["find"])
registry.register("add", cmd_add, help_text="Add a task: /add [!low|!medium|!high] <title>.")
registry.register("show", cmd_show, help_text="Show task details: /show <task>.")
registry.register("done", cmd_done, help_text="Mark tasks done: /done <task...>.")
registry.register("undone", cmd_undone, help_text="Mark tasks open: /undone <task...>.")
registry.register("prio", cmd_prio, help_text="Set priority: /prio <low|medium|high> <task...>.")
registry.register("rm", cmd_rm, help_text="Delete tasks: /rm <task...>.")
registry.register("mv", cmd_mv, help_text="Move a task to another page: /mv <task> <page>.")
registry.register("order", cmd_order, help_text="Reorder within the page: /order <from> <to>.")
registry.register("daily", cmd_daily, help_text="Show a task in the daily page: /daily <task> on|off.")
registry.register("step", cmd_step, help_text="Checklist: /step add | done | undone | rm.")
registry.register("note", cmd_note, help_text="Set task notes: /note <task> <text>.")
registry.register("rename", cmd_rename, help_text="Rename a task: /rename <task> <title>.")
registry.register("attach", cmd_attach, help_text="Attach a file: /attach <task> <path>.")
registry.register("detach", cmd_detach, help_text="Remove an attachment: /detach <task> <n>.")
registry.register("repeat", cmd_repeat, help_text="Reminder repeat: /repeat <task> <none|daily|weekly|monthly>.")
registry.register("remind", cmd_remind, help_text="Reminder: /remind <task> <YYYY-MM-DD HH:MM> | off.")
registry.register("export", cmd_export, help_text="Backup: /export [json|zip].")
registry.register("import", cmd_import, help_text="Restore: /import <file.json|file.zip>.")
registry.register("set", cmd_set, help_text="Settings: notifications | time | delete-files | sort.")
registry.register("test-notify", cmd_test_notify, help_text="Send a test notification in 1 second.")
registry.register("pending", cmd_pending, help_text="List scheduled notifications.")
