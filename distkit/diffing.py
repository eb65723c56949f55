"""Checking generated files against what is already on disk."""

from __future__ import annotations

import difflib
from pathlib import Path


class CheckFileMismatch(Exception):
    """A file on disk differs from what would be generated."""

    def __init__(self, path: str, contents: str, diff: str) -> None:
        super().__init__(
            f"{path} is out of date; regenerate it or allow it to be dirty\n{diff}"
        )
        self.path = path
        self.contents = contents
        self.diff = diff


def _dos2unix(text: str) -> str:
    return text.replace("\r\n", "\n")


def _unified_diff(old: str, new: str, header: str) -> str:
    lines = difflib.unified_diff(
        old.splitlines(keepends=True),
        new.splitlines(keepends=True),
        fromfile=header,
        tofile=header,
    )
    return "".join(line if line.endswith("\n") else line + "\n" for line in lines)


def diff_files(existing_file: str | Path, new_file_contents: str) -> None:
    """Raise CheckFileMismatch if the file does not hold these contents.

    A missing or unreadable file counts as empty; newline style is ignored.
    """
    path = Path(existing_file)
    try:
        existing = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        existing = ""

    diff = _unified_diff(_dos2unix(existing), _dos2unix(new_file_contents), str(existing_file))
    if diff:
        raise CheckFileMismatch(str(existing_file), existing, diff)