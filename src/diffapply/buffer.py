"""Line buffer used by the engine to hold and rewrite one file's content."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple


@dataclass(slots=True, frozen=True)
class Splice:
    """Replace ``remove_count`` lines at ``start`` with ``insert_lines``."""

    start: int
    remove_count: int
    insert_lines: Tuple[str, ...] = ()

    @property
    def end(self) -> int:
        return self.start + self.remove_count

    def overlaps(self, other: "Splice") -> bool:
        """True when both splices touch a common original line.

        Two insertions at the same index also conflict since their relative
        order would be ambiguous.
        """
        if self.remove_count == 0 and other.remove_count == 0:
            return self.start == other.start
        if self.remove_count == 0:
            return other.start < self.start < other.end
        if other.remove_count == 0:
            return self.start < other.start < self.end
        return self.start < other.end and other.start < self.end


@dataclass(slots=True)
class LineBuffer:
    """File text split into lines, remembering its newline conventions."""

    lines: list[str]
    newline: str = "\n"
    trailing_newline: bool = True

    @classmethod
    def from_text(cls, text: str) -> "LineBuffer":
        newline = "\r\n" if "\r\n" in text else "\n"
        if not text:
            return cls(lines=[], newline=newline, trailing_newline=True)
        trailing = text.endswith(newline)
        body = text[: -len(newline)] if trailing else text
        return cls(lines=body.split(newline), newline=newline, trailing_newline=trailing)

    def to_text(self) -> str:
        if not self.lines:
            return ""
        text = self.newline.join(self.lines)
        if self.trailing_newline:
            text += self.newline
        return text

    def __len__(self) -> int:
        return len(self.lines)

    def apply_splices(self, splices: Iterable[Splice]) -> None:
        """Apply non-overlapping splices computed against the current lines.

        Every splice is expressed in coordinates of the unmodified buffer, so
        they are applied in a single forward pass instead of one at a time.
        """
        ordered: Sequence[Splice] = sorted(splices, key=lambda item: (item.start, item.remove_count))
        for previous, current in zip(ordered, ordered[1:]):
            if previous.overlaps(current) or current.start < previous.end:
                raise ValueError(f"Overlapping splices at lines {previous.start} and {current.start}")

        rebuilt: list[str] = []
        cursor = 0
        for splice in ordered:
            if splice.start > len(self.lines) or splice.end > len(self.lines):
                raise ValueError(f"Splice {splice.start}:{splice.end} exceeds {len(self.lines)} lines")
            rebuilt.extend(self.lines[cursor : splice.start])
            rebuilt.extend(splice.insert_lines)
            cursor = splice.end
        rebuilt.extend(self.lines[cursor:])
        self.lines = rebuilt


__all__ = ["LineBuffer", "Splice"]
