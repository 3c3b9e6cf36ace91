# src/taskpages/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Nothing is required at import time; every value has a local default.
- Settings hold startup defaults only. Values the user changes at runtime
  (notifications, reminder time, ...) live in core/prefs.py.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import time
from pathlib import Path

ENV_PREFIX = "TASKPAGES"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def parse_hhmm(raw: str) -> time:
    """Parse "HH:MM" (24h). Raises ValueError on bad input."""
    text = (raw or "").strip()
    hh, sep, mm = text.partition(":")
    if not sep:
        raise ValueError(f"expected HH:MM, got {raw!r}")
    return time(hour=int(hh), minute=int(mm))


def _env_time(name: str, default: time) -> time:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return parse_hhmm(raw)
    except ValueError:
        return default


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Connector flags ----
    console_enabled: bool

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    pages_path: Path
    prefs_path: Path
    attachments_dir: Path
    export_dir: Path

    # ---- Preference defaults (first run) ----
    notifications_enabled: bool
    daily_reminder_time: time
    delete_attachment_files_on_remove: bool
    sort_by_priority: bool

    # ---- Notification delivery ----
    notification_poll_seconds: float

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskpages") or "taskpages"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskpages"))
        pages_path = _env_path(_k("PAGES_PATH"), data_dir / "tasks_pages.json")
        prefs_path = _env_path(_k("PREFS_PATH"), data_dir / "preferences.json")
        attachments_dir = _env_path(_k("ATTACHMENTS_DIR"), data_dir / "attachments")
        export_dir = _env_path(_k("EXPORT_DIR"), data_dir / "exports")

        notifications_enabled = _env_bool(_k("NOTIFICATIONS_ENABLED"), True)
        daily_reminder_time = _env_time(_k("DAILY_REMINDER_TIME"), time(hour=9, minute=0))
        delete_attachment_files_on_remove = _env_bool(_k("DELETE_ATTACHMENT_FILES_ON_REMOVE"), False)
        sort_by_priority = _env_bool(_k("SORT_BY_PRIORITY"), True)

        notification_poll_seconds = _env_float(_k("NOTIFICATION_POLL_SECONDS"), 15.0)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            data_dir=data_dir,
            pages_path=pages_path,
            prefs_path=prefs_path,
            attachments_dir=attachments_dir,
            export_dir=export_dir,
            notifications_enabled=notifications_enabled,
            daily_reminder_time=daily_reminder_time,
            delete_attachment_files_on_remove=delete_attachment_files_on_remove,
            sort_by_priority=sort_by_priority,
            notification_poll_seconds=notification_poll_seconds,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
