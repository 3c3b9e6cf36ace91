# tests/conftest.py

from __future__ import annotations

from datetime import time
from pathlib import Path
from types import SimpleNamespace

import pytest

from taskpages.cli.bootstrap import create_initial_state
from taskpages.core.state import AppState
from taskpages.pages.page_store import PageStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    data_dir = tmp_path / "data"
    return SimpleNamespace(
        app_name="taskpages-test",
        log_level="DEBUG",
        console_enabled=False,
        # Paths (tmp per test run)
        data_dir=data_dir,
        pages_path=data_dir / "tasks_pages.json",
        prefs_path=data_dir / "preferences.json",
        attachments_dir=data_dir / "attachments",
        export_dir=data_dir / "exports",
        # Preference defaults
        notifications_enabled=True,
        daily_reminder_time=time(hour=9, minute=0),
        delete_attachment_files_on_remove=False,
        sort_by_priority=True,
        notification_poll_seconds=0.01,
    )


@pytest.fixture()
def store(tmp_path: Path) -> PageStore:
    return PageStore(tmp_path / "pages.json")


@pytest.fixture()
def state(settings: SimpleNamespace) -> AppState:
    """
    AppState wired through the real composition root.

    The JSON store and the notification center are cheap and local,
    so tests use the real ones.
    """
    return create_initial_state(settings=settings)


@pytest.fixture()
def general(state: AppState):
    return state.store.find_page("General")
