# src/taskpages/core/prefs.py

"""
User preferences changed at runtime (the settings screen).

Startup defaults come from Settings; once the user changes something it is
persisted to a small JSON file and wins over the defaults on the next run.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from dataclasses import asdict, dataclass
from datetime import time
from pathlib import Path
from typing import Any

from ..config import parse_hhmm

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Preferences:
    notifications_enabled: bool = True
    daily_reminder_time: time = time(hour=9, minute=0)
    delete_attachment_files_on_remove: bool = False
    sort_by_priority: bool = True

    @classmethod
    def from_settings(cls, settings: Any) -> Preferences:
        return cls(
            notifications_enabled=bool(getattr(settings, "notifications_enabled", True)),
            daily_reminder_time=getattr(settings, "daily_reminder_time", time(hour=9, minute=0)),
            delete_attachment_files_on_remove=bool(
                getattr(settings, "delete_attachment_files_on_remove", False)
            ),
            sort_by_priority=bool(getattr(settings, "sort_by_priority", True)),
        )

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["daily_reminder_time"] = self.daily_reminder_time.strftime("%H:%M")
        return d


def load_preferences(path: str | Path, defaults: Preferences) -> Preferences:
    """Read saved preferences over `defaults`. Unknown or invalid values are ignored."""
    p = Path(path)
    if not p.exists():
        return defaults
    try:
        data = json.loads(p.read_text("utf-8"))
    except (OSError, json.JSONDecodeError):
        logger.exception("Failed to load preferences from %s", p)
        return defaults
    if not isinstance(data, dict):
        return defaults

    prefs = Preferences(**asdict(defaults))
    for key in ("notifications_enabled", "delete_attachment_files_on_remove", "sort_by_priority"):
        if isinstance(data.get(key), bool):
            setattr(prefs, key, data[key])
    raw_time = data.get("daily_reminder_time")
    if isinstance(raw_time, str):
        try:
            prefs.daily_reminder_time = parse_hhmm(raw_time)
        except ValueError:
            logger.warning("Ignoring bad daily_reminder_time=%r in %s", raw_time, p)
    logger.info("Loaded preferences from %s", p)
    return prefs


def save_preferences(path: str | Path, prefs: Preferences) -> None:
    p = Path(path)
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        tmp = p.with_suffix(".tmp")
        tmp.write_text(json.dumps(prefs.to_dict(), ensure_ascii=False, indent=2), "utf-8")
        os.replace(tmp, p)
        with contextlib.suppress(Exception):
            os.chmod(p, 0o600)
        logger.debug("Saved preferences to %s", p)
    except Exception:
        logger.exception("Failed to save preferences to %s", p)
