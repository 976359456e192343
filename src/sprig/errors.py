"""Diagnostics for the Sprig front end and their Rust-style rendering."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from sprig.source import SourceFile

if TYPE_CHECKING:
    from sprig.source import Span


class Severity(Enum):
    ERROR = "error"


class LexErrorKind(Enum):
    """Lexical failures. The value is the diagnostic code."""

    MALFORMED_NUMBER = "E101"
    UNTERMINATED_LITERAL = "E102"
    UNRECOGNIZED_CHARACTER = "E103"


class ParseErrorKind(Enum):
    """Syntactic and structural failures. The value is the diagnostic code."""

    EXPECTED_TOKEN = "E201"
    EXPECTED_TYPE = "E202"
    UNBALANCED_DELIMITER = "E203"
    DUPLICATE_FIELD = "E204"
    EXTERN_WITH_BODY = "E205"
    MISSING_BODY_FOR_NON_EXTERN = "E206"
    AMBIGUOUS_GENERIC_CLOSE = "E207"
    INVALID_TUPLE_ARITY = "E208"
    DUPLICATE_WILDCARD = "E209"
    WILDCARD_NOT_LAST = "E210"
    INVALID_ASSIGN_TARGET = "E211"


ErrorKind = LexErrorKind | ParseErrorKind


# ANSI color codes
_COLORS = {
    Severity.ERROR: "\033[1;31m",    # bold red
}
_BOLD = "\033[1m"
_BLUE = "\033[1;34m"
_RESET = "\033[0m"


@dataclass(frozen=True)
class DiagnosticLabel:
    """Points to a specific source location."""

    span: Span
    message: str
    style: str = "primary"  # "primary" or "secondary"


@dataclass
class Diagnostic:
    """A single diagnostic message with labels and notes."""

    severity: Severity
    code: str
    message: str
    labels: list[DiagnosticLabel] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    @classmethod
    def error(
        cls, kind: ErrorKind, message: str, span: Span, label: str = "",
    ) -> Diagnostic:
        return cls(
            severity=Severity.ERROR,
            code=kind.value,
            message=message,
            labels=[DiagnosticLabel(span=span, message=label)],
        )

    @property
    def span(self) -> Span | None:
        """The primary label's span, if any."""
        for label in self.labels:
            if label.style == "primary":
                return label.span
        return None

    def is_kind(self, kind: ErrorKind) -> bool:
        return self.code == kind.value


def _position(diag: Diagnostic) -> tuple[int, int]:
    span = diag.span
    if span is None:
        return (0, 0)
    return span.sort_key()


class DiagnosticRenderer:
    """Renders diagnostics in Rust-style format with colors."""

    def __init__(self, *, color: bool = True) -> None:
        self.color = color
        self._sources: dict[str, SourceFile] = {}

    def _c(self, code: str) -> str:
        return code if self.color else ""

    def register_source(self, source: SourceFile) -> None:
        """Render labels in ``source.name`` against the already loaded text."""
        self._sources[source.name] = source

    def _get_source_line(self, filename: str, line_num: int) -> str | None:
        """Load and cache the source file, return the 1-indexed line."""
        source = self._sources.get(filename)
        if source is None:
            path = Path(filename)
            try:
                source = SourceFile(path) if path.is_file() else SourceFile(path, "")
            except (OSError, UnicodeDecodeError):
                source = SourceFile(path, "")
            self._sources[filename] = source
        if not 1 <= line_num <= len(source.lines):
            return None
        return source.line_at(line_num)

    def render(self, diag: Diagnostic) -> str:
        lines: list[str] = []
        sev = diag.severity
        color = _COLORS[sev]

        # Header: error[E204]: message
        lines.append(
            f"{self._c(color)}{sev.value}[{diag.code}]{self._c(_RESET)}"
            f"{self._c(_BOLD)}: {diag.message}{self._c(_RESET)}"
        )

        for label in diag.labels:
            span = label.span
            lines.append(
                f"  {self._c(_BLUE)}-->{self._c(_RESET)} {span}"
            )
            gutter = f"{span.start_line:>4}"
            lines.append(f"  {self._c(_BLUE)}   |{self._c(_RESET)}")

            source_line = self._get_source_line(span.file, span.start_line)
            if source_line is not None:
                lines.append(
                    f"  {self._c(_BLUE)}{gutter} |{self._c(_RESET)} {source_line}"
                )

            # Carets only make sense for a single-line span
            if span.start_line == span.end_line:
                caret_len = max(1, span.end_col - span.start_col + 1)
                padding = " " * (span.start_col - 1)
                carets = "^" * caret_len
                lines.append(
                    f"  {self._c(_BLUE)}   |{self._c(_RESET)} "
                    f"{padding}{self._c(color)}{carets}{self._c(_RESET)}"
                )

            if label.message:
                lines.append(
                    f"  {self._c(_BLUE)}   |{self._c(_RESET)}   "
                    f"{self._c(color)}{label.message}{self._c(_RESET)}"
                )

        for note in diag.notes:
            lines.append(f"  {self._c(_BLUE)}={self._c(_RESET)} note: {note}")

        return "\n".join(lines)


class CompileError(Exception):
    """Front-end failure carrying one or more diagnostics, ordered by position."""

    def __init__(self, diagnostics: list[Diagnostic]) -> None:
        self.diagnostics = sorted(diagnostics, key=_position)
        messages = [d.message for d in self.diagnostics]
        super().__init__(f"{len(diagnostics)} error(s): {'; '.join(messages)}")

    def has(self, kind: ErrorKind) -> bool:
        return any(d.is_kind(kind) for d in self.diagnostics)
