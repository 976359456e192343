"""Source file representation and span tracking for diagnostics."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Span:
    """A range within a source file.

    Lines and columns are 1-indexed and inclusive; offsets index into the
    source text, with ``end_offset`` one past the last character.
    """

    file: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int
    start_offset: int = 0
    end_offset: int = 0

    def __str__(self) -> str:
        return f"{self.file}:{self.start_line}:{self.start_col}"

    def sort_key(self) -> tuple[int, int]:
        return (self.start_line, self.start_col)


class SourceFile:
    """A loaded source file with line access for diagnostics."""

    def __init__(self, path: Path, content: str | None = None) -> None:
        self.path = path
        self.content = path.read_text(encoding="utf-8") if content is None else content
        self.lines = self.content.splitlines()

    @property
    def name(self) -> str:
        return str(self.path)

    def line_at(self, n: int) -> str:
        """Return the 1-indexed line, or empty string if out of range."""
        if 1 <= n <= len(self.lines):
            return self.lines[n - 1]
        return ""
