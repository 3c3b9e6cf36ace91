# src/taskpages/pages/models.py

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from pathlib import Path
from typing import Any


class StoreFormatError(ValueError):
    """Raised when a stored pages document is structurally invalid."""


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def sort_weight(self) -> int:
        return {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}[self]

    @classmethod
    def parse(cls, raw: str | None) -> Priority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return cls.MEDIUM


class Recurrence(StrEnum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @classmethod
    def parse(cls, raw: str | None) -> Recurrence:
        if not raw:
            return cls.NONE
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return cls.NONE


_IMAGE_EXT = {"png", "jpg", "jpeg", "heic"}
_AUDIO_EXT = {"m4a", "mp3", "wav", "aac"}
_DOCUMENT_EXT = {"pdf", "doc", "docx", "ppt", "pptx", "xls", "xlsx", "txt", "rtf"}


class AttachmentKind(StrEnum):
    IMAGE = "image"
    DOCUMENT = "document"
    AUDIO = "audio"
    OTHER = "other"

    @classmethod
    def for_file_name(cls, name: str) -> AttachmentKind:
        ext = Path(name).suffix.lstrip(".").lower()
        if ext in _IMAGE_EXT:
            return cls.IMAGE
        if ext in _AUDIO_EXT:
            return cls.AUDIO
        if ext in _DOCUMENT_EXT:
            return cls.DOCUMENT
        return cls.OTHER

    @classmethod
    def parse(cls, raw: str | None) -> AttachmentKind:
        try:
            return cls(str(raw or "").strip().lower())
        except ValueError:
            return cls.OTHER


# ---- JSON helpers ----


def _new_id() -> str:
    return str(uuid.uuid4())


def _dt_to_str(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _str_to_dt(raw: Any) -> datetime | None:
    if raw is None or raw == "":
        return None
    if not isinstance(raw, str):
        raise StoreFormatError(f"expected ISO timestamp, got {type(raw).__name__}")
    try:
        return datetime.fromisoformat(raw)
    except ValueError as e:
        raise StoreFormatError(f"bad timestamp {raw!r}") from e


def _require_dict(raw: Any, what: str) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise StoreFormatError(f"{what} must be an object")
    return raw


def _require_list(raw: Any, what: str) -> list[Any]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise StoreFormatError(f"{what} must be a list")
    return raw


def _id_of(d: dict[str, Any]) -> str:
    raw = d.get("id")
    return str(raw) if raw else _new_id()


# ---- entities ----


@dataclass(slots=True)
class Step:
    title: str
    is_done: bool = False
    completed_at: datetime | None = None
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "is_done": self.is_done,
            "completed_at": _dt_to_str(self.completed_at),
        }

    @classmethod
    def from_dict(cls, raw: Any) -> Step:
        d = _require_dict(raw, "step")
        return cls(
            id=_id_of(d),
            title=str(d.get("title") or ""),
            is_done=bool(d.get("is_done", False)),
            completed_at=_str_to_dt(d.get("completed_at")),
        )


@dataclass(slots=True)
class Attachment:
    file_name: str
    file_path: Path
    kind: AttachmentKind
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "file_name": self.file_name,
            "file_path": str(self.file_path),
            "kind": self.kind.value,
        }

    @classmethod
    def from_dict(cls, raw: Any) -> Attachment:
        d = _require_dict(raw, "attachment")
        path = d.get("file_path")
        if not isinstance(path, str) or not path:
            raise StoreFormatError("attachment.file_path is required")
        file_name = str(d.get("file_name") or Path(path).name)
        kind = d.get("kind")
        return cls(
            id=_id_of(d),
            file_name=file_name,
            file_path=Path(path),
            kind=AttachmentKind.parse(kind) if kind else AttachmentKind.for_file_name(file_name),
        )


@dataclass(slots=True)
class Task:
    title: str
    is_done: bool = False
    priority: Priority = Priority.MEDIUM
    created_at: datetime = field(default_factory=datetime.now)
    recurrence: Recurrence = Recurrence.NONE
    steps: list[Step] = field(default_factory=list)
    notes: str = ""
    attachments: list[Attachment] = field(default_factory=list)
    is_in_daily: bool = False
    added_to_daily_at: datetime | None = None
    remind_at: datetime | None = None
    id: str = field(default_factory=_new_id)

    @property
    def steps_progress(self) -> float:
        if not self.steps:
            return 0.0
        done = sum(1 for s in self.steps if s.is_done)
        return done / len(self.steps)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "is_done": self.is_done,
            "priority": self.priority.value,
            "created_at": _dt_to_str(self.created_at),
            "recurrence": self.recurrence.value,
            "steps": [s.to_dict() for s in self.steps],
            "notes": self.notes,
            "attachments": [a.to_dict() for a in self.attachments],
            "is_in_daily": self.is_in_daily,
            "added_to_daily_at": _dt_to_str(self.added_to_daily_at),
            "remind_at": _dt_to_str(self.remind_at),
        }

    @classmethod
    def from_dict(cls, raw: Any) -> Task:
        d = _require_dict(raw, "task")
        title = d.get("title")
        if not isinstance(title, str):
            raise StoreFormatError("task.title is required")
        return cls(
            id=_id_of(d),
            title=title,
            is_done=bool(d.get("is_done", False)),
            priority=Priority.parse(d.get("priority")),
            created_at=_str_to_dt(d.get("created_at")) or datetime.now(),
            recurrence=Recurrence.parse(d.get("recurrence")),
            steps=[Step.from_dict(s) for s in _require_list(d.get("steps"), "task.steps")],
            notes=str(d.get("notes") or ""),
            attachments=[
                Attachment.from_dict(a) for a in _require_list(d.get("attachments"), "task.attachments")
            ],
            is_in_daily=bool(d.get("is_in_daily", False)),
            added_to_daily_at=_str_to_dt(d.get("added_to_daily_at")),
            remind_at=_str_to_dt(d.get("remind_at")),
        )


@dataclass(slots=True)
class Page:
    name: str
    is_daily: bool = False
    tasks: list[Task] = field(default_factory=list)
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "is_daily": self.is_daily,
            "tasks": [t.to_dict() for t in self.tasks],
        }

    @classmethod
    def from_dict(cls, raw: Any) -> Page:
        d = _require_dict(raw, "page")
        name = d.get("name")
        if not isinstance(name, str):
            raise StoreFormatError("page.name is required")
        return cls(
            id=_id_of(d),
            name=name,
            is_daily=bool(d.get("is_daily", False)),
            tasks=[Task.from_dict(t) for t in _require_list(d.get("tasks"), "page.tasks")],
        )


def pages_to_document(pages: list[Page]) -> list[dict[str, Any]]:
    return [p.to_dict() for p in pages]


def pages_from_document(raw: Any) -> list[Page]:
    """Decode a list of page objects. Raises StoreFormatError on invalid structure."""
    if not isinstance(raw, list):
        raise StoreFormatError("pages document must be a list")
    return [Page.from_dict(p) for p in raw]
