# src/taskpages/backup/archive.py

"""
Backup and restore.

Two formats:
- JSON snapshot: the pages document as stored (attachment paths point at local files)
- Archive (.zip): a fixed layout
    tasks.json             the pages document; attachment paths rewritten to archive names
    attachments/<name>     attachment files, flat namespace, collision-suffixed

Restore rejects anything else in the archive.
"""

from __future__ import annotations

import json
import logging
import uuid
import zipfile
import zlib
from dataclasses import replace
from pathlib import Path, PurePosixPath

from ..pages.attachments import unique_name
from ..pages.models import Page, StoreFormatError, pages_from_document, pages_to_document

logger = logging.getLogger(__name__)

MANIFEST_NAME = "tasks.json"
ATTACHMENTS_PREFIX = "attachments/"


class BackupError(Exception):
    """Export failed or an import/restore source is not a valid backup."""


def _dump(pages: list[Page]) -> str:
    return json.dumps(pages_to_document(pages), ensure_ascii=False, indent=2)


def _decode(text: str, source: str) -> list[Page]:
    try:
        return pages_from_document(json.loads(text))
    except json.JSONDecodeError as e:
        raise BackupError(f"{source}: not valid JSON ({e.msg})") from e
    except StoreFormatError as e:
        raise BackupError(f"{source}: {e}") from e


# ---- JSON snapshot ----


def export_json(pages: list[Page], export_dir: str | Path) -> Path:
    out_dir = Path(export_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / f"TasksExport-{uuid.uuid4()}.json"
    try:
        path.write_text(_dump(pages), "utf-8")
    except OSError as e:
        raise BackupError(f"failed to write {path}: {e}") from e
    logger.info("Exported %d pages to %s", len(pages), path)
    return path


def import_json(path: str | Path) -> list[Page]:
    p = Path(path)
    try:
        text = p.read_text("utf-8")
    except OSError as e:
        raise BackupError(f"cannot read {p}: {e}") from e
    pages = _decode(text, p.name)
    logger.info("Imported %d pages from %s", len(pages), p)
    return pages


# ---- archive ----


def export_archive(pages: list[Page], export_dir: str | Path) -> Path:
    """
    Write pages plus every referenced attachment file into one zip.

    Missing attachment files are skipped (their entries keep the local path).
    """
    out_dir = Path(export_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / f"TasksBackup-{uuid.uuid4()}.zip"

    taken: set[str] = set()
    packed: list[tuple[Path, str]] = []
    manifest_pages: list[Page] = []

    for page in pages:
        tasks = []
        for task in page.tasks:
            attachments = []
            for att in task.attachments:
                src = Path(att.file_path)
                if not src.is_file():
                    logger.warning("Attachment file missing, not archived: %s", src)
                    attachments.append(att)
                    continue
                name = unique_name(src.name, taken)
                taken.add(name)
                packed.append((src, name))
                attachments.append(replace(att, file_path=Path(ATTACHMENTS_PREFIX + name)))
            tasks.append(replace(task, attachments=attachments))
        manifest_pages.append(replace(page, tasks=tasks))

    try:
        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            zf.writestr(MANIFEST_NAME, _dump(manifest_pages))
            for src, name in packed:
                zf.write(src, arcname=ATTACHMENTS_PREFIX + name)
    except OSError as e:
        path.unlink(missing_ok=True)
        raise BackupError(f"failed to write archive {path}: {e}") from e

    logger.info("Archived %d pages and %d attachments to %s", len(pages), len(packed), path)
    return path


# Errors from reading a member of a damaged archive.
_READ_ERRORS = (OSError, EOFError, KeyError, zipfile.BadZipFile, zlib.error)


def _attachment_member(name: str) -> str | None:
    """
    Validate one archive member name.

    Returns the flat attachment file name, "" for the manifest,
    or None for the attachments/ directory entry itself.
    Raises BackupError for anything outside the layout, including names
    that are not written in canonical form ("attachments/./x", "attachments//x").
    """
    if name == MANIFEST_NAME:
        return ""
    if name == ATTACHMENTS_PREFIX:
        return None
    pure = PurePosixPath(name)
    if (
        name.startswith("/")
        or name.endswith("/")
        or "\\" in name
        or pure.as_posix() != name
        or ".." in pure.parts
        or not name.startswith(ATTACHMENTS_PREFIX)
        or len(pure.parts) != 2
    ):
        raise BackupError(f"unexpected archive entry: {name!r}")
    return pure.name


def _archive_key(file_path: Path) -> str:
    return str(file_path).replace("\\", "/")


def restore_archive(archive_path: str | Path, attachments_dir: str | Path) -> list[Page]:
    """
    Read a backup archive and copy its attachments into private storage.

    Returns the restored pages with attachment paths pointing at the copied files.
    Nothing is copied unless the whole archive validates; a failed copy removes
    every file copied so far.
    """
    src = Path(archive_path)
    try:
        zf = zipfile.ZipFile(src)
    except (OSError, zipfile.BadZipFile) as e:
        raise BackupError(f"{src.name}: not a readable archive ({e})") from e

    with zf:
        # member name -> flat attachment file name
        members: dict[str, str] = {}
        has_manifest = False
        for info in zf.infolist():
            flat = _attachment_member(info.filename)
            if flat == "":
                has_manifest = True
            elif flat is not None:
                members[info.filename] = flat

        if not has_manifest:
            raise BackupError(f"{src.name}: missing {MANIFEST_NAME}")

        try:
            manifest = zf.read(MANIFEST_NAME).decode("utf-8")
        except UnicodeDecodeError as e:
            raise BackupError(f"{src.name}: {MANIFEST_NAME} is not UTF-8") from e
        except _READ_ERRORS as e:
            raise BackupError(f"{src.name}: cannot read {MANIFEST_NAME} ({e})") from e
        pages = _decode(manifest, f"{src.name}:{MANIFEST_NAME}")

        referenced: set[str] = set()
        for page in pages:
            for task in page.tasks:
                for att in task.attachments:
                    key = _archive_key(att.file_path)
                    if not key.startswith(ATTACHMENTS_PREFIX):
                        continue
                    if key not in members:
                        raise BackupError(f"{src.name}: manifest references missing entry {key!r}")
                    referenced.add(key)

        dest_dir = Path(attachments_dir)
        dest_dir.mkdir(parents=True, exist_ok=True)
        existing = {p.name for p in dest_dir.iterdir()}

        copied: dict[str, Path] = {}
        target: Path | None = None
        try:
            for key in sorted(referenced):
                data = zf.read(key)
                name = unique_name(members[key], existing)
                existing.add(name)
                target = dest_dir / name
                target.write_bytes(data)
                copied[key] = target
        except _READ_ERRORS as e:
            if target is not None:
                target.unlink(missing_ok=True)
            for path in copied.values():
                path.unlink(missing_ok=True)
            logger.warning("Restore from %s rolled back %d copied attachments", src, len(copied))
            raise BackupError(f"{src.name}: failed to restore attachments ({e})") from e

    for page in pages:
        for task in page.tasks:
            for att in task.attachments:
                key = _archive_key(att.file_path)
                if key in copied:
                    att.file_path = copied[key]
                    att.file_name = copied[key].name

    logger.info("Restored %d pages and %d attachments from %s", len(pages), len(copied), src)
    return pages
