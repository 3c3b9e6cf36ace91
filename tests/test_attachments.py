# tests/test_attachments.py

from __future__ import annotations

from pathlib import Path

import pytest

from taskpages.pages.attachments import (
    import_attachment,
    import_attachment_bytes,
    remove_attachment_file,
    unique_name,
)
from taskpages.pages.models import AttachmentKind


def test_import_copies_and_replaces_same_name(tmp_path: Path) -> None:
    dest = tmp_path / "attachments"
    first = tmp_path / "a" / "notes.txt"
    first.parent.mkdir()
    first.write_text("v1", "utf-8")

    att = import_attachment(first, dest)
    assert att.file_path == dest / "notes.txt"
    assert att.kind == AttachmentKind.DOCUMENT

    second = tmp_path / "b" / "notes.txt"
    second.parent.mkdir()
    second.write_text("v2", "utf-8")
    import_attachment(second, dest)

    assert (dest / "notes.txt").read_text("utf-8") == "v2"
    assert first.read_text("utf-8") == "v1"

    with pytest.raises(FileNotFoundError):
        import_attachment(tmp_path / "missing.mp3", dest)


def test_import_bytes_uses_unique_image_name(tmp_path: Path) -> None:
    a = import_attachment_bytes(b"\xff\xd8", "scan.jpg", tmp_path)
    b = import_attachment_bytes(b"\xff\xd8", "scan.jpg", tmp_path)

    assert a.kind == AttachmentKind.IMAGE
    assert a.file_name.endswith("-scan.jpg")
    assert a.file_path != b.file_path
    assert a.file_path.read_bytes() == b"\xff\xd8"


def test_remove_attachment_file(tmp_path: Path) -> None:
    path = tmp_path / "x.bin"
    path.write_bytes(b"1")
    assert remove_attachment_file(path) is True
    assert remove_attachment_file(path) is False


def test_unique_name_suffixes_case_insensitively() -> None:
    assert unique_name("a.pdf", set()) == "a.pdf"
    assert unique_name("A.pdf", {"a.pdf"}) == "A-1.pdf"
    assert unique_name("a.pdf", {"a.pdf", "a-1.pdf"}) == "a-2.pdf"
    assert unique_name("README", {"readme"}) == "README-1"
