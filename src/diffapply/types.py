"""Typed records shared by the diff parser, hunk applier and patch engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Tuple


class PatchError(RuntimeError):
    """Raised when a patch cannot be processed as requested."""

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = dict(details or {})


class DiffParseError(PatchError):
    """Raised by the strict parsing policy on malformed or orphan lines."""


class DiffFormat(str, Enum):
    """Diff dialects accepted by ``apply_diff``."""

    UNIFIED = "unified"
    GIT = "git"
    CONTEXT = "context"


class ParsePolicy(str, Enum):
    """How the parser treats lines it cannot attribute to a hunk."""

    LENIENT = "lenient"
    STRICT = "strict"


class LineKind(str, Enum):
    """Role of a single line inside a hunk body."""

    CONTEXT = "context"
    ADDITION = "addition"
    DELETION = "deletion"


class ErrorKind(str, Enum):
    """Reported failure categories; none of them are raised as exceptions."""

    FILE_NOT_FOUND = "FileNotFound"
    READ_FAILURE = "ReadFailure"
    NO_PATCH_FOR_FILE = "NoPatchForFile"
    CONTEXT_MISMATCH = "ContextMismatch"
    HUNK_OUT_OF_BOUNDS = "HunkOutOfBounds"
    OVERLAPPING_HUNK = "OverlappingHunk"
    UNSUPPORTED_FEATURE = "UnsupportedFeature"
    FORMAT_NOT_IMPLEMENTED = "FormatNotImplemented"
    PATCH_TOO_LARGE = "PatchTooLarge"
    WRITE_FAILURE = "WriteFailure"


_PREFIXES = {LineKind.CONTEXT: " ", LineKind.ADDITION: "+", LineKind.DELETION: "-"}


@dataclass(slots=True, frozen=True)
class TaggedLine:
    """Hunk body line stripped of its one-character prefix."""

    kind: LineKind
    text: str

    @property
    def consumes_original(self) -> bool:
        """True for lines that must exist in the file before patching."""
        return self.kind is not LineKind.ADDITION

    def render(self) -> str:
        return f"{_PREFIXES[self.kind]}{self.text}"


@dataclass(slots=True, frozen=True)
class Hunk:
    """Single ``@@`` block of a unified diff."""

    original_start: int
    original_lines: int
    new_start: int
    new_lines: int
    lines: Tuple[TaggedLine, ...] = ()
    section: str = ""
    # Set by a "\ No newline at end of file" marker after the last old or new line.
    original_missing_newline: bool = False
    new_missing_newline: bool = False

    @property
    def context(self) -> Tuple[str, ...]:
        return tuple(line.text for line in self.lines if line.kind is LineKind.CONTEXT)

    @property
    def additions(self) -> Tuple[str, ...]:
        return tuple(line.text for line in self.lines if line.kind is LineKind.ADDITION)

    @property
    def deletions(self) -> Tuple[str, ...]:
        return tuple(line.text for line in self.lines if line.kind is LineKind.DELETION)

    @property
    def is_pure_insertion(self) -> bool:
        """True when the hunk does not consume any existing line."""
        return self.original_lines == 0 or not any(line.consumes_original for line in self.lines)

    def actual_counts(self) -> tuple[int, int]:
        """Return ``(original, new)`` line counts derived from the body."""
        context = len(self.context)
        return context + len(self.deletions), context + len(self.additions)

    def count_mismatch(self) -> str | None:
        """Describe a disagreement between the header and the body, if any."""
        seen_original, seen_new = self.actual_counts()
        if seen_original == self.original_lines and seen_new == self.new_lines:
            return None
        return (
            f"header declares -{self.original_lines}/+{self.new_lines} "
            f"but body has -{seen_original}/+{seen_new}"
        )

    def header(self) -> str:
        text = f"@@ -{self.original_start},{self.original_lines} +{self.new_start},{self.new_lines} @@"
        if self.section:
            text = f"{text} {self.section}"
        return text


@dataclass(slots=True, frozen=True)
class PatchFile:
    """All hunks a patch holds for one file."""

    file_path: str
    hunks: Tuple[Hunk, ...] = ()
    new_path: str | None = None


@dataclass(slots=True, frozen=True)
class DroppedLine:
    """Line discarded by the lenient parsing policy."""

    line_number: int
    text: str
    reason: str


@dataclass(slots=True, frozen=True)
class PatchSet:
    """Immutable result of parsing a diff."""

    files: Tuple[PatchFile, ...] = ()
    dropped_lines: Tuple[DroppedLine, ...] = ()

    def __iter__(self):
        return iter(self.files)

    def __len__(self) -> int:
        return len(self.files)

    def __getitem__(self, index: int) -> PatchFile:
        return self.files[index]


@dataclass(slots=True)
class HunkApplicationResult:
    """Per-hunk outcome reported back to the caller."""

    hunk_index: int
    success: bool
    message: str
    line_offset_delta: int = 0
    original_start: int = 0
    error: ErrorKind | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "hunk": self.hunk_index,
            "success": self.success,
            "message": self.message,
            "line_offset_delta": self.line_offset_delta,
            "original_start": self.original_start,
            "error": self.error.value if self.error else None,
        }


@dataclass(slots=True)
class ApplyOutcome:
    """Terminal result of one ``apply_diff`` invocation."""

    success: bool
    message: str
    per_hunk: Tuple[HunkApplicationResult, ...] = ()
    path: Path | None = None
    error: ErrorKind | None = None
    dry_run: bool = False
    written: bool = False
    content: str | None = field(default=None, repr=False)

    @property
    def applied_count(self) -> int:
        return sum(1 for result in self.per_hunk if result.success)

    @property
    def failed_count(self) -> int:
        return sum(1 for result in self.per_hunk if not result.success)

    def render(self) -> str:
        """Return the summary followed by one line per hunk."""
        lines = [self.message]
        if self.per_hunk:
            lines.append("")
            for result in self.per_hunk:
                status = "Success" if result.success else "Failed"
                lines.append(f"Hunk {result.hunk_index}: {status} - {result.message}")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "path": self.path.as_posix() if self.path else None,
            "error": self.error.value if self.error else None,
            "dry_run": self.dry_run,
            "written": self.written,
            "per_hunk": [result.to_dict() for result in self.per_hunk],
        }


__all__ = [
    "ApplyOutcome",
    "DiffFormat",
    "DiffParseError",
    "DroppedLine",
    "ErrorKind",
    "Hunk",
    "HunkApplicationResult",
    "LineKind",
    "ParsePolicy",
    "PatchError",
    "PatchFile",
    "PatchSet",
    "TaggedLine",
]
