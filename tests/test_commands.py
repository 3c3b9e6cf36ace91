# tests/test_commands.py

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from taskpages.cli.commands import CommandRegistry, registry
from taskpages.reminders.reminder_service import DAILY_FIXED_TIME_ID, task_reminder_id


def _run(state, line: str) -> str:
    reply = registry.handle(state, line)
    assert reply is not None
    return reply


def _task_id(state, title: str) -> str:
    return next(t.id for _, t in state.store.iter_tasks() if t.title == title)


def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}
    notes: list[str] = []

    def h2(state, args):
        called["h2"] += 1
        return "h2"

    def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a")
    reg.register("b", h3, "b", aliases=["bee"])

    assert reg.handle(state, "/a x") == "h2"
    assert reg.handle(state, "/BEE y", emit=notes.append) == "h3"
    assert called == {"h2": 1, "h3": 1}
    assert notes == ["note"]


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_bad_references_become_replies(state) -> None:
    assert _run(state, "/done zzzz").startswith("Not found")
    assert _run(state, "/page use Nowhere").startswith("Not found")


def test_add_on_daily_page_and_list(state) -> None:
    reply = _run(state, "/add !high Buy milk")
    assert "Buy milk" in reply

    tid = _task_id(state, "Buy milk")
    page, task = state.store.find_task(tid)
    assert page.name == "General"
    assert task.is_in_daily

    listing = _run(state, "/ls")
    assert listing.startswith("Daily - 1 open")
    assert "Buy milk" in listing and "(General)" in listing

    assert _run(state, "/add !urgent x").startswith("Priority must be")
    assert _run(state, "/add").startswith("Task title is empty")


def test_page_flow(state) -> None:
    assert _run(state, "/page add Work") == "Page added: Work"
    assert _run(state, "/page add work").startswith("Page name is empty or already exists")

    _run(state, "/add Draft plan")
    assert state.store.find_page("Work").tasks[0].title == "Draft plan"

    assert _run(state, "/page rename Work Job") == "Page renamed: Job"
    assert "cannot be renamed" in _run(state, "/page rename Daily Other")
    assert "cannot be deleted" in _run(state, "/page delete daily")

    assert _run(state, "/page delete Job") == "Page deleted: Job (1 tasks removed)"
    assert state.selected_page_id is None
    assert "Job" not in _run(state, "/pages")


def test_done_undone_and_filters(state) -> None:
    _run(state, "/page use Personal")
    tid = _task_id(state, "Read email")

    assert _run(state, f"/done {tid[:8]}") == "Marked 1 task(s) done."
    assert state.store.find_task(tid)[1].is_done

    done_listing = _run(state, "/ls done")
    assert "Read email" in done_listing and "Review tasks" not in done_listing

    _run(state, f"/undone {tid}")
    assert not state.store.find_task(tid)[1].is_done
    assert "Usage" in _run(state, "/ls everything")


def test_steps_complete_task(state) -> None:
    tid = _task_id(state, "Review tasks")
    _run(state, f"/step add {tid} first")
    _run(state, f"/step add {tid} second")
    _run(state, f"/step done {tid} 1")
    assert _run(state, f"/step done {tid} 2") == "Step updated. Task is done."
    assert _run(state, f"/step done {tid} 9").startswith("Not found")

    details = _run(state, f"/show {tid}")
    assert "steps (100%)" in details


def test_order_reorders_current_page(state) -> None:
    _run(state, "/page add Order")
    for title in ["c", "b", "a"]:
        _run(state, f"/add {title}")

    reply = _run(state, "/order 1 3")
    assert reply.splitlines() == ["  1. b", "  2. c", "  3. a"]
    assert _run(state, "/order 1 9").startswith("Positions must be")


def test_remind_and_repeat(state) -> None:
    tid = _task_id(state, "Read email")
    when = (datetime.now() + timedelta(days=2)).replace(second=0, microsecond=0)

    reply = _run(state, f"/remind {tid} {when:%Y-%m-%d %H:%M}")
    assert "next reminder" in reply
    assert state.center.fire_time(task_reminder_id(tid)) == when

    assert _run(state, f"/repeat {tid} weekly").endswith("repeat weekly.")
    assert state.center.fire_time(task_reminder_id(tid)) is not None

    # A weekly reminder with a past reference re-arms on the same weekday and time.
    assert "next reminder" in _run(state, f"/remind {tid} 2001-01-01 10:00")  # a Monday
    fire_at = state.center.fire_time(task_reminder_id(tid))
    assert fire_at is not None and fire_at > datetime.now()
    assert (fire_at.weekday(), fire_at.hour, fire_at.minute) == (0, 10, 0)

    _run(state, f"/repeat {tid} none")
    assert _run(state, f"/remind {tid} 2001-01-01 10:00").endswith("will not fire.")
    assert state.center.fire_time(task_reminder_id(tid)) is None

    assert _run(state, f"/remind {tid} off").endswith("reminder cleared.")
    assert state.center.fire_time(task_reminder_id(tid)) is None
    assert _run(state, f"/remind {tid} tomorrow").startswith("Usage")


def test_remind_on_done_task_says_it_is_done(state) -> None:
    tid = _task_id(state, "Read email")
    _run(state, f"/done {tid}")
    when = datetime.now() + timedelta(days=1)

    reply = _run(state, f"/remind {tid} {when:%Y-%m-%d %H:%M}")
    assert "task is done" in reply
    assert state.center.fire_time(task_reminder_id(tid)) is None

    _run(state, f"/undone {tid}")
    assert state.center.fire_time(task_reminder_id(tid)) is not None


def test_internal_errors_are_not_reported_as_not_found(state) -> None:
    reg = CommandRegistry()

    def broken(state, args):
        return {}["missing"]

    reg.register("broken", broken, "broken")
    with pytest.raises(KeyError):
        reg.handle(state, "/broken")


def test_set_commands_persist_preferences(state) -> None:
    assert _run(state, "/set time 07:30") == "Daily reminder at 07:30."
    assert _run(state, "/set time 25:00").startswith("Time must be")
    assert _run(state, "/set sort off") == "Sort by priority OFF."
    assert _run(state, "/set notifications off") == "Notifications OFF."
    assert state.center.fire_time(DAILY_FIXED_TIME_ID) is None
    assert _run(state, "/test-notify").startswith("Notifications are off")

    status = _run(state, "/status")
    assert "Daily reminder: 07:30" in status
    assert "Notifications: OFF" in status
    assert '"sort_by_priority": false' in Path(state.settings.prefs_path).read_text("utf-8")


def test_attach_and_detach_with_file_deletion(state, tmp_path: Path) -> None:
    src = tmp_path / "receipt.pdf"
    src.write_bytes(b"%PDF")
    tid = _task_id(state, "Read email")

    assert _run(state, f"/attach {tid} {src}") == "Attached receipt.pdf [document]."
    stored = Path(state.settings.attachments_dir) / "receipt.pdf"
    assert stored.exists()

    _run(state, "/set delete-files on")
    assert _run(state, f"/detach {tid} 1") == "Detached receipt.pdf."
    assert not stored.exists()
    assert _run(state, f"/attach {tid} {tmp_path / 'missing.txt'}").startswith("Could not attach")


def test_export_and_import_roundtrip(state) -> None:
    _run(state, "/page add Trip")
    reply = _run(state, "/export zip")
    path = reply.removeprefix("Exported to ")
    assert path.endswith(".zip")

    _run(state, "/page delete Trip")
    emitted: list[str] = []
    assert registry.handle(state, f"/import {path}", emit=emitted.append) == "Imported 4 pages."
    assert emitted == ["[IMPORT] Replacing all pages..."]
    assert state.store.find_page("Trip") is not None

    assert _run(state, f"/import {state.settings.data_dir / 'nope.json'}").startswith("Import failed")
