# src/taskpages/pages/attachments.py

"""File side of task attachments: copy into private storage, remove on request."""

from __future__ import annotations

import logging
import os
import shutil
import uuid
from pathlib import Path

from .models import Attachment, AttachmentKind

logger = logging.getLogger(__name__)


def import_attachment(source: str | Path, attachments_dir: str | Path) -> Attachment:
    """
    Copy `source` into the attachments directory under its own name.

    An existing file with the same name is replaced.
    Raises FileNotFoundError / OSError when the source cannot be read.
    """
    src = Path(source).expanduser()
    if not src.is_file():
        raise FileNotFoundError(f"attachment source not found: {src}")

    dest_dir = Path(attachments_dir)
    dest_dir.mkdir(parents=True, exist_ok=True)
    dest = dest_dir / src.name

    if dest.exists() and dest.resolve() != src.resolve():
        dest.unlink()
    if not dest.exists():
        try:
            shutil.copy2(src, dest)
        except OSError:
            # Fallback: plain byte copy (no metadata).
            logger.debug("copy2 failed for %s; retrying as byte copy", src, exc_info=True)
            dest.write_bytes(src.read_bytes())

    logger.info("Attachment imported src=%s dest=%s", src, dest)
    return Attachment(file_name=dest.name, file_path=dest, kind=AttachmentKind.for_file_name(dest.name))


def import_attachment_bytes(data: bytes, suggested_name: str, attachments_dir: str | Path) -> Attachment:
    """Store raw image bytes (photo/scan) under a unique name."""
    dest_dir = Path(attachments_dir)
    dest_dir.mkdir(parents=True, exist_ok=True)
    name = f"{uuid.uuid4()}-{Path(suggested_name).name or 'image.jpg'}"
    dest = dest_dir / name
    dest.write_bytes(data)
    return Attachment(file_name=name, file_path=dest, kind=AttachmentKind.IMAGE)


def remove_attachment_file(path: str | Path) -> bool:
    p = Path(path)
    if not p.exists():
        return False
    try:
        os.remove(p)
    except OSError:
        logger.exception("Failed to remove attachment file %s", p)
        return False
    logger.info("Attachment file removed %s", p)
    return True


def unique_name(name: str, taken: set[str]) -> str:
    """
    Collision suffixing for a flat namespace: report.pdf, report-1.pdf, report-2.pdf, ...

    `taken` is compared case-insensitively.
    """
    lowered = {t.casefold() for t in taken}
    if name.casefold() not in lowered:
        return name
    p = Path(name)
    stem, suffix = p.stem, p.suffix
    n = 1
    while True:
        candidate = f"{stem}-{n}{suffix}"
        if candidate.casefold() not in lowered:
            return candidate
        n += 1
