"""Line-oriented tokenizer that turns unified diff text into a ``PatchSet``.

Parsing is pure: no filesystem access happens here, so the parser can be
exercised on arbitrary input independently of the engine.  Lines the parser
cannot attribute to a hunk are handled by a named :class:`ParsePolicy`:
``LENIENT`` (the default) records them in ``PatchSet.dropped_lines`` and
carries on, ``STRICT`` raises :class:`DiffParseError` on the first one.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from .types import (
    DiffFormat,
    DiffParseError,
    DroppedLine,
    Hunk,
    LineKind,
    ParsePolicy,
    PatchError,
    PatchFile,
    PatchSet,
    TaggedLine,
)

LOGGER = logging.getLogger(__name__)

_HUNK_HEADER = re.compile(
    r"^@@ -(?P<old_start>\d+)(?:,(?P<old_count>\d+))? "
    r"\+(?P<new_start>\d+)(?:,(?P<new_count>\d+))? @@(?P<section>.*)$"
)
_BODY_KINDS = {" ": LineKind.CONTEXT, "+": LineKind.ADDITION, "-": LineKind.DELETION}
_NULL_PATH = "/dev/null"


@dataclass(slots=True)
class _HunkBuilder:
    original_start: int
    original_lines: int
    new_start: int
    new_lines: int
    section: str
    lines: list[TaggedLine] = field(default_factory=list)
    pending_blanks: int = 0
    original_missing_newline: bool = False
    new_missing_newline: bool = False

    def add(self, kind: LineKind, text: str) -> None:
        # Blank lines only count as empty context once a later body line follows.
        for _ in range(self.pending_blanks):
            self.lines.append(TaggedLine(LineKind.CONTEXT, ""))
        self.pending_blanks = 0
        self.lines.append(TaggedLine(kind, text))

    def mark_missing_newline(self) -> None:
        """Attach a ``\\ No newline at end of file`` marker to the previous line."""
        # A marker proves the blank lines before it were real context lines.
        self.lines.extend(TaggedLine(LineKind.CONTEXT, "") for _ in range(self.pending_blanks))
        self.pending_blanks = 0
        if not self.lines:
            return
        kind = self.lines[-1].kind
        if kind is not LineKind.ADDITION:
            self.original_missing_newline = True
        if kind is not LineKind.DELETION:
            self.new_missing_newline = True

    def build(self) -> Hunk:
        return Hunk(
            original_start=self.original_start,
            original_lines=self.original_lines,
            new_start=self.new_start,
            new_lines=self.new_lines,
            lines=tuple(self.lines),
            section=self.section,
            original_missing_newline=self.original_missing_newline,
            new_missing_newline=self.new_missing_newline,
        )


@dataclass(slots=True)
class _FileBuilder:
    path: str
    new_path: str | None
    hunks: list[Hunk] = field(default_factory=list)

    def build(self) -> PatchFile:
        return PatchFile(file_path=self.path, hunks=tuple(self.hunks), new_path=self.new_path)


def _normalise_line_endings(text: str) -> str:
    """Convert CRLF sequences to LF, leaving lone carriage returns in place."""
    return text.replace("\r\n", "\n")


def _header_path(operand: str) -> str:
    """Extract the path from a ``---``/``+++`` operand, dropping any timestamp."""
    path = operand.split("\t", 1)[0].strip()
    if len(path) >= 2 and path.startswith('"') and path.endswith('"'):
        path = path[1:-1]
    return path


def _default_count(value: str | None) -> int:
    """Return the number of lines represented in a hunk header."""
    return int(value) if value is not None else 1


class DiffParser:
    """Tokenize unified diff text into an immutable :class:`PatchSet`."""

    def __init__(self, policy: ParsePolicy | str = ParsePolicy.LENIENT) -> None:
        self.policy = ParsePolicy(policy)

    def parse(self, diff_text: str) -> PatchSet:
        lines = _normalise_line_endings(diff_text or "").split("\n")
        files: list[PatchFile] = []
        dropped: list[DroppedLine] = []
        current_file: _FileBuilder | None = None
        current_hunk: _HunkBuilder | None = None
        # Set after a /dev/null header; everything until the next header is skipped.
        skipping = False

        def drop(number: int, text: str, reason: str, *, tolerated: bool = False) -> None:
            if self.policy is ParsePolicy.STRICT and not tolerated:
                raise DiffParseError(
                    f"Line {number}: {reason}",
                    details={"line": number, "text": text, "reason": reason},
                )
            dropped.append(DroppedLine(line_number=number, text=text, reason=reason))

        def close_hunk() -> None:
            nonlocal current_hunk
            if current_hunk is not None and current_file is not None:
                current_file.hunks.append(current_hunk.build())
            current_hunk = None

        def close_file() -> None:
            nonlocal current_file
            close_hunk()
            if current_file is not None:
                files.append(current_file.build())
            current_file = None

        index = 0
        while index < len(lines):
            line = lines[index]
            number = index + 1
            followed_by_new_header = index + 1 < len(lines) and lines[index + 1].startswith("+++ ")

            if line.startswith("--- ") and (current_hunk is None or followed_by_new_header):
                close_file()
                path = _header_path(line[4:])
                new_path: str | None = None
                if followed_by_new_header:
                    new_path = _header_path(lines[index + 1][4:])
                    index += 1
                if path == _NULL_PATH:
                    skipping = True
                    LOGGER.debug("Skipping file section with %s source at line %d", _NULL_PATH, number)
                else:
                    skipping = False
                    current_file = _FileBuilder(path=path, new_path=new_path)
                index += 1
                continue

            if line.startswith("@@"):
                close_hunk()
                if skipping:
                    drop(number, line, "hunk belongs to a /dev/null file section", tolerated=True)
                    index += 1
                    continue
                match = _HUNK_HEADER.match(line)
                if not match:
                    drop(number, line, "malformed hunk header")
                elif current_file is None:
                    drop(number, line, "hunk header before any file header")
                else:
                    current_hunk = _HunkBuilder(
                        original_start=int(match.group("old_start")),
                        original_lines=_default_count(match.group("old_count")),
                        new_start=int(match.group("new_start")),
                        new_lines=_default_count(match.group("new_count")),
                        section=match.group("section").strip(),
                    )
                index += 1
                continue

            if current_hunk is not None:
                if line == "":
                    current_hunk.pending_blanks += 1
                elif line[0] in _BODY_KINDS:
                    current_hunk.add(_BODY_KINDS[line[0]], line[1:])
                elif line.startswith("\\"):
                    current_hunk.mark_missing_newline()
                else:
                    close_hunk()
                index += 1
                continue

            if line.startswith(("+", "-")) and not line.startswith(("+++ ", "--- ")):
                if skipping:
                    drop(number, line, "line belongs to a /dev/null file section", tolerated=True)
                else:
                    drop(number, line, "line outside of any hunk")
            index += 1

        close_file()
        return PatchSet(files=tuple(files), dropped_lines=tuple(dropped))


def parse_diff(
    diff_text: str,
    *,
    format: DiffFormat | str = DiffFormat.UNIFIED,
    policy: ParsePolicy | str = ParsePolicy.LENIENT,
) -> PatchSet:
    """Parse ``diff_text`` written in ``format``.

    ``git`` diffs are unified diffs with extra header lines and share the
    unified parser.  Context diffs are not parsed at all.
    """
    dialect = DiffFormat(format)
    if dialect is DiffFormat.CONTEXT:
        raise PatchError(
            "Context diff format is not implemented; supply a unified diff.",
            details={"format": dialect.value},
        )
    return DiffParser(policy).parse(diff_text)


__all__ = ["DiffParser", "parse_diff"]
