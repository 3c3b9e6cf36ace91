# tests/test_page_store.py

from __future__ import annotations

import json
from pathlib import Path

import pytest

from taskpages.pages.models import Priority, Task
from taskpages.pages.page_store import AmbiguousReference, PageStore


def test_missing_file_yields_default_pages_and_saves(tmp_path: Path) -> None:
    path = tmp_path / "pages.json"
    store = PageStore(path)

    assert [p.name for p in store.pages] == ["Daily", "General", "Personal"]
    assert store.daily_page is not None and store.daily_page.is_daily
    assert path.exists()

    reloaded = PageStore(path)
    assert [p.id for p in reloaded.pages] == [p.id for p in store.pages]


def test_broken_or_empty_file_falls_back_to_defaults(tmp_path: Path) -> None:
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", "utf-8")
    assert [p.name for p in PageStore(bad).pages][0] == "Daily"

    empty = tmp_path / "empty.json"
    empty.write_text("[]", "utf-8")
    assert len(PageStore(empty).pages) == 3


def test_add_page_rejects_empty_and_duplicate_names(store: PageStore) -> None:
    assert store.add_page("   ") is None
    assert store.add_page(" general ") is None

    page = store.add_page("  Work  ")
    assert page is not None
    assert page.name == "Work"
    assert store.pages[-1] is page


def test_rename_and_delete_protect_daily_page(store: PageStore) -> None:
    daily = store.daily_page
    assert daily is not None
    assert store.rename_page(daily.id, "Other") is False
    assert store.delete_page(daily.id) == []
    assert store.daily_page is daily

    personal = store.find_page("personal")
    assert store.rename_page(personal.id, "GENERAL") is False
    assert store.rename_page(personal.id, "Home") is True
    assert store.rename_page(personal.id, "home") is True  # itself is excluded

    removed = store.delete_page(personal.id)
    assert [t.title for t in removed] == ["Read email", "Review tasks"]
    assert store.get_page(personal.id) is None


def test_add_task_inserts_at_top_and_persists(store: PageStore) -> None:
    page = store.find_page("General")
    assert store.add_task(page.id, "   ") is None

    task = store.add_task(page.id, "  Call bank ", Priority.HIGH)
    assert task is not None
    assert page.tasks[0] is task
    assert task.title == "Call bank"

    data = json.loads(store.path.read_text("utf-8"))
    general = next(p for p in data if p["name"] == "General")
    assert general["tasks"][0]["title"] == "Call bank"
    assert general["tasks"][0]["priority"] == "high"


def test_add_task_on_daily_page_files_it_under_first_regular_page(store: PageStore) -> None:
    daily = store.daily_page
    assert daily is not None
    task = store.add_task(daily.id, "Water plants")

    assert task is not None
    assert daily.tasks == []
    assert store.page_of_task(task.id).name == "General"
    assert task.is_in_daily and task.added_to_daily_at is not None
    assert task in store.daily_tasks()


def test_mark_done_completes_steps_keeping_existing_stamps(store: PageStore) -> None:
    page = store.find_page("General")
    task = store.add_task(page.id, "Pack")
    s1 = store.add_step(task.id, "clothes")
    store.add_step(task.id, "charger")
    store.set_step_done(task.id, s1.id, True)
    first_stamp = task.steps[0].completed_at
    assert first_stamp is not None

    store.mark_tasks(page.id, [task.id], True)

    assert task.is_done
    assert all(s.is_done for s in task.steps)
    assert task.steps[0].completed_at == first_stamp
    assert task.steps[1].completed_at is not None

    store.mark_tasks(page.id, [task.id], False)
    assert not task.is_done
    assert all(s.is_done for s in task.steps)


def test_steps_drive_task_completion(store: PageStore) -> None:
    page = store.find_page("General")
    task = store.add_task(page.id, "Trip")
    a = store.add_step(task.id, "tickets")
    b = store.add_step(task.id, "hotel")
    assert not task.is_done

    store.set_step_done(task.id, a.id, True)
    assert not task.is_done
    store.set_step_done(task.id, b.id, True)
    assert task.is_done

    store.set_step_done(task.id, b.id, False)
    assert not task.is_done
    assert task.steps[1].completed_at is None

    store.remove_step(task.id, b.id)
    assert task.is_done  # the remaining step is done

    assert store.add_step(task.id, " ") is None
    assert store.remove_step(task.id, "nope") is False


def test_move_tasks_uses_list_move_semantics(store: PageStore) -> None:
    page = store.add_page("Order")
    for title in ["d", "c", "b", "a"]:
        store.add_task(page.id, title)
    assert [t.title for t in page.tasks] == ["a", "b", "c", "d"]

    store.move_tasks(page.id, [0], 3)  # "a" before "d"
    assert [t.title for t in page.tasks] == ["b", "c", "a", "d"]

    store.move_tasks(page.id, [3], 0)
    assert [t.title for t in page.tasks] == ["d", "b", "c", "a"]

    store.move_tasks(page.id, [0, 2], 4)
    assert [t.title for t in page.tasks] == ["b", "a", "d", "c"]


def test_move_task_between_pages(store: PageStore) -> None:
    general = store.find_page("General")
    personal = store.find_page("Personal")
    task = personal.tasks[1]

    assert store.move_task(task.id, personal.id, general.id) is True
    assert general.tasks[0] is task
    assert task not in personal.tasks

    assert store.move_task(task.id, general.id, store.daily_page_id) is False


def test_daily_flag_and_daily_tasks_order(store: PageStore) -> None:
    general = store.find_page("General")
    personal = store.find_page("Personal")
    t1 = personal.tasks[1]
    t2 = general.tasks[0]

    store.set_task_in_daily(t1.id, True)
    store.set_task_in_daily(t2.id, True)
    assert store.daily_tasks() == [t2, t1]  # page order, then task order

    store.set_task_in_daily(t2.id, False)
    assert t2.added_to_daily_at is None
    assert store.daily_tasks() == [t1]


def test_find_task_by_prefix(store: PageStore) -> None:
    page = store.find_page("General")
    task = page.tasks[0]
    found_page, found = store.find_task(task.id[:8].upper())
    assert found is task and found_page is page

    with pytest.raises(LookupError):
        store.find_task("zzzz")
    page.tasks.append(Task(title="x", id="abc-1"))
    page.tasks.append(Task(title="y", id="abc-2"))
    with pytest.raises(AmbiguousReference):
        store.find_task("abc")
    assert store.find_task("abc-2")[1].title == "y"


def test_update_task_fields(store: PageStore) -> None:
    page = store.find_page("General")
    task = page.tasks[0]

    assert store.update_task(task.id, title="  ") is None
    store.update_task(task.id, title="New title", notes="line")
    assert task.title == "New title"
    assert task.notes == "line"
