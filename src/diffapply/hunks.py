"""Verify a single hunk against live file lines and plan its splice."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Sequence, Tuple

from .buffer import Splice
from .types import ErrorKind, Hunk, LineKind

LOGGER = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


@dataclass(slots=True)
class HunkPlan:
    """Outcome of checking one hunk; describes the splice without performing it."""

    success: bool
    message: str
    error: ErrorKind | None = None
    splice_start: int = 0
    splice_remove_count: int = 0
    splice_lines: Tuple[str, ...] = ()
    offset_delta: int = 0

    def to_splice(self) -> Splice:
        return Splice(
            start=self.splice_start,
            remove_count=self.splice_remove_count,
            insert_lines=self.splice_lines,
        )


def lines_match(expected: str, actual: str, ignore_whitespace: bool = False) -> bool:
    """Compare two lines, optionally ignoring every whitespace character."""
    if ignore_whitespace:
        return _WHITESPACE.sub("", expected) == _WHITESPACE.sub("", actual)
    return expected == actual


class HunkApplier:
    """Check hunks against a line array and compute the replacement block.

    The applier never mutates ``lines``; callers collect the returned plans and
    splice them in themselves.
    """

    def __init__(self, *, ignore_whitespace: bool = False, fuzzy_matching: bool = False) -> None:
        self.ignore_whitespace = ignore_whitespace
        self.fuzzy_matching = fuzzy_matching

    def apply(self, lines: Sequence[str], hunk: Hunk, cumulative_offset: int = 0) -> HunkPlan:
        # "-0,0" headers (empty original) anchor at the first line.
        start = max(hunk.original_start, 1) - 1 + cumulative_offset
        last_valid = len(lines) if hunk.is_pure_insertion else len(lines) - 1
        if start < 0 or start > last_valid:
            return self._annotate(
                hunk,
                HunkPlan(
                    success=False,
                    message=(
                        f"Hunk's start line {hunk.original_start} is out of bounds "
                        f"(adjusted to {start}, file has {len(lines)} lines)"
                    ),
                    error=ErrorKind.HUNK_OUT_OF_BOUNDS,
                ),
            )

        replacement: list[str] = []
        cursor = start
        for tagged in hunk.lines:
            if tagged.kind is LineKind.ADDITION:
                replacement.append(tagged.text)
                continue
            if cursor >= len(lines):
                return self._annotate(hunk, self._mismatch(start, cursor, tagged.text, None))
            live = lines[cursor]
            if not lines_match(tagged.text, live, self.ignore_whitespace):
                return self._annotate(hunk, self._mismatch(start, cursor, tagged.text, live))
            if tagged.kind is LineKind.CONTEXT:
                replacement.append(live)
            cursor += 1

        plan = HunkPlan(
            success=True,
            message=f"Applied hunk at line {start + 1}",
            splice_start=start,
            splice_remove_count=cursor - start,
            splice_lines=tuple(replacement),
            offset_delta=len(hunk.additions) - len(hunk.deletions),
        )
        LOGGER.debug(
            "Planned hunk at line %d: remove %d, insert %d",
            start + 1,
            plan.splice_remove_count,
            len(plan.splice_lines),
        )
        return self._annotate(hunk, plan)

    def _mismatch(self, start: int, cursor: int, expected: str, actual: str | None) -> HunkPlan:
        found = "end of file" if actual is None else repr(actual)
        if self.fuzzy_matching:
            return HunkPlan(
                success=False,
                message=(
                    f"Context doesn't match at line {start + 1}, "
                    "and fuzzy matching is not implemented"
                ),
                error=ErrorKind.UNSUPPORTED_FEATURE,
            )
        return HunkPlan(
            success=False,
            message=(
                f"Context mismatch at line {start + 1}: expected {expected!r} "
                f"at file line {cursor + 1}, found {found}"
            ),
            error=ErrorKind.CONTEXT_MISMATCH,
        )

    @staticmethod
    def _annotate(hunk: Hunk, plan: HunkPlan) -> HunkPlan:
        mismatch = hunk.count_mismatch()
        if mismatch:
            plan.message = f"{plan.message} (warning: {mismatch})"
        return plan


__all__ = ["HunkApplier", "HunkPlan", "lines_match"]
