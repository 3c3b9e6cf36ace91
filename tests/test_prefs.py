# tests/test_prefs.py

from __future__ import annotations

import json
from datetime import time
from pathlib import Path

import pytest

from taskpages.config import Settings, parse_hhmm
from taskpages.core.prefs import Preferences, load_preferences, save_preferences


def test_parse_hhmm() -> None:
    assert parse_hhmm(" 07:05 ") == time(7, 5)
    for bad in ("7", "24:00", "aa:bb", ""):
        with pytest.raises(ValueError):
            parse_hhmm(bad)


def test_preferences_roundtrip(tmp_path: Path) -> None:
    path = tmp_path / "prefs" / "preferences.json"
    prefs = Preferences(notifications_enabled=False, daily_reminder_time=time(21, 15), sort_by_priority=False)
    save_preferences(path, prefs)

    assert json.loads(path.read_text("utf-8"))["daily_reminder_time"] == "21:15"
    assert load_preferences(path, Preferences()) == prefs


def test_bad_values_fall_back_to_defaults(tmp_path: Path) -> None:
    path = tmp_path / "preferences.json"
    path.write_text(json.dumps({"notifications_enabled": "yes", "daily_reminder_time": "noon"}), "utf-8")
    defaults = Preferences(daily_reminder_time=time(8, 0))

    prefs = load_preferences(path, defaults)
    assert prefs.notifications_enabled is True
    assert prefs.daily_reminder_time == time(8, 0)

    path.write_text("{broken", "utf-8")
    assert load_preferences(path, defaults) is defaults


def test_settings_from_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TASKPAGES_DATA_DIR", str(tmp_path / "d"))
    monkeypatch.setenv("TASKPAGES_NOTIFICATIONS_ENABLED", "0")
    monkeypatch.setenv("TASKPAGES_DAILY_REMINDER_TIME", "06:30")

    s = Settings.from_env()
    assert s.data_dir == tmp_path / "d"
    assert s.pages_path.parent == s.data_dir
    assert s.notifications_enabled is False
    assert s.daily_reminder_time == time(6, 30)
    assert Preferences.from_settings(s).daily_reminder_time == time(6, 30)
