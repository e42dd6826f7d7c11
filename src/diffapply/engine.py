"""Apply a unified diff to one file and report the outcome hunk by hunk."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Sequence, Tuple

from .buffer import LineBuffer, Splice
from .config import ApplyOptions, coerce_options
from .hunks import HunkApplier
from .locator import locate_patch
from .parser import parse_diff
from .types import (
    ApplyOutcome,
    DiffFormat,
    DiffParseError,
    ErrorKind,
    Hunk,
    HunkApplicationResult,
    PatchFile,
)

LOGGER = logging.getLogger(__name__)
TELEMETRY_LOGGER = logging.getLogger("diffapply.telemetry")


def _serialise_event_value(value: Any) -> Any:
    """Convert telemetry payload values into JSON-friendly representations."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, Path):
        return value.as_posix()
    if isinstance(value, (list, tuple, set)):
        return [_serialise_event_value(item) for item in value]
    if isinstance(value, Mapping):
        return {str(key): _serialise_event_value(child) for key, child in value.items()}
    return str(value)


def _emit_patch_event(event: str, **fields: Any) -> None:
    """Log structured telemetry events while applying a diff."""
    if not TELEMETRY_LOGGER.isEnabledFor(logging.INFO):
        return
    payload = {"event": event, "timestamp": datetime.now(timezone.utc).isoformat()}
    for key, value in fields.items():
        payload[key] = _serialise_event_value(value)
    TELEMETRY_LOGGER.info(json.dumps(payload, separators=(",", ":"), ensure_ascii=True))


@dataclass(slots=True)
class PatchEngine:
    """Read, patch and (unless dry-running) rewrite a single file."""

    options: ApplyOptions = field(default_factory=ApplyOptions)

    def apply_diff(
        self,
        file_path: Path | str,
        diff_content: str,
        format: DiffFormat | str = DiffFormat.UNIFIED,
    ) -> ApplyOutcome:
        target = Path(file_path)
        _emit_patch_event("diff_apply_started", path=target, format=format, options=self.options.model_dump())

        try:
            dialect = DiffFormat(format)
        except ValueError:
            return self._fail(target, ErrorKind.FORMAT_NOT_IMPLEMENTED, f"Unknown diff format: {format}")
        if dialect is DiffFormat.CONTEXT:
            return self._fail(
                target,
                ErrorKind.FORMAT_NOT_IMPLEMENTED,
                "Context diff format is not implemented; supply a unified diff.",
            )

        limit = self.options.max_patch_bytes
        patch_bytes = len((diff_content or "").encode("utf-8", errors="replace"))
        if limit > 0 and patch_bytes > limit:
            return self._fail(
                target,
                ErrorKind.PATCH_TOO_LARGE,
                f"Patch size {patch_bytes} bytes exceeds limit of {limit} bytes.",
            )

        if not target.is_file():
            return self._fail(target, ErrorKind.FILE_NOT_FOUND, f"File does not exist: {target}")

        try:
            original = target.read_bytes().decode(self.options.encoding)
        except (OSError, UnicodeDecodeError) as error:
            return self._fail(target, ErrorKind.READ_FAILURE, f"Failed to read {target}: {error}")

        try:
            patch_set = parse_diff(diff_content, format=dialect, policy=self.options.parse_policy)
        except DiffParseError as error:
            return self._fail(target, ErrorKind.NO_PATCH_FOR_FILE, f"No patch found for file: {target} ({error})")
        if patch_set.dropped_lines:
            LOGGER.debug("Parser dropped %d line(s) from the patch", len(patch_set.dropped_lines))

        patch = locate_patch(patch_set, str(file_path))
        if patch is None:
            return self._fail(target, ErrorKind.NO_PATCH_FOR_FILE, f"No patch found for file: {target}")
        if not patch.hunks:
            return self._finish(
                ApplyOutcome(
                    success=True,
                    message=f"Patch for {target} contains no hunks; nothing to apply.",
                    path=target,
                    dry_run=self.options.dry_run,
                    content=original,
                )
            )

        buffer = LineBuffer.from_text(original)
        results, splices, aborted, eof_newline = self._plan(buffer.lines, patch)
        per_hunk = tuple(sorted(results, key=lambda result: result.hunk_index))

        if aborted is not None:
            return self._finish(
                ApplyOutcome(
                    success=False,
                    message=f"Failed to apply hunk {aborted.hunk_index}: {aborted.message}",
                    per_hunk=per_hunk,
                    path=target,
                    error=aborted.error,
                    dry_run=self.options.dry_run,
                )
            )

        buffer.apply_splices(splices)
        if eof_newline is not None:
            buffer.trailing_newline = eof_newline
        content = buffer.to_text()
        failures = [result for result in per_hunk if not result.success]
        total = len(per_hunk)
        if failures:
            message = f"Applied {total - len(failures)} of {total} hunks to {target}; {len(failures)} hunks failed."
        else:
            message = f"Successfully applied patch with {total} hunks."

        outcome = ApplyOutcome(
            success=not failures,
            message=message,
            per_hunk=per_hunk,
            path=target,
            error=failures[0].error if failures else None,
            dry_run=self.options.dry_run,
            content=content,
        )

        if self.options.dry_run:
            outcome.message = f"Dry run: {message}"
            return self._finish(outcome)

        if content != original:
            try:
                target.write_bytes(content.encode(self.options.encoding))
            except (OSError, UnicodeEncodeError) as error:
                return self._fail(
                    target,
                    ErrorKind.WRITE_FAILURE,
                    f"Failed to write {target}: {error}",
                    per_hunk=per_hunk,
                )
            outcome.written = True
        return self._finish(outcome)

    def _plan(
        self,
        lines: Sequence[str],
        patch: PatchFile,
    ) -> tuple[list[HunkApplicationResult], list[Splice], HunkApplicationResult | None, bool | None]:
        """Check every hunk against the unmodified lines, bottom-most first.

        Processing hunks by descending ``original_start`` keeps each hunk's
        line numbers valid: splices are only collected here and performed
        afterwards in one pass, so no hunk sees another hunk's edits.
        The last element is the trailing-newline state requested by a
        "No newline at end of file" marker on a hunk reaching the end of the
        file, or ``None`` when no such hunk applied.
        """
        applier = HunkApplier(
            ignore_whitespace=self.options.ignore_whitespace,
            fuzzy_matching=self.options.fuzzy_matching,
        )
        ordered = sorted(
            enumerate(patch.hunks, start=1),
            key=lambda item: item[1].original_start,
            reverse=True,
        )

        results: list[HunkApplicationResult] = []
        accepted: list[tuple[int, Splice]] = []
        eof_newline: bool | None = None
        for index, hunk in ordered:
            plan = applier.apply(lines, hunk)
            result = HunkApplicationResult(
                hunk_index=index,
                success=plan.success,
                message=plan.message,
                line_offset_delta=plan.offset_delta if plan.success else 0,
                original_start=hunk.original_start,
                error=plan.error,
            )
            if plan.success:
                splice = plan.to_splice()
                clash = next((other for other, existing in accepted if splice.overlaps(existing)), None)
                if clash is None:
                    accepted.append((index, splice))
                    if splice.end == len(lines):
                        if hunk.new_missing_newline:
                            eof_newline = False
                        elif hunk.original_missing_newline:
                            eof_newline = True
                else:
                    result.success = False
                    result.line_offset_delta = 0
                    result.error = ErrorKind.OVERLAPPING_HUNK
                    result.message = (
                        f"Hunk at line {hunk.original_start} overlaps hunk {clash}; not applied"
                    )
            results.append(result)
            self._log_hunk(hunk, result)

            if not result.success and self.options.reject_hunks:
                return results, [], result, None

        return results, [splice for _, splice in accepted], None, eof_newline

    @staticmethod
    def _log_hunk(hunk: Hunk, result: HunkApplicationResult) -> None:
        _emit_patch_event(
            "hunk_applied" if result.success else "hunk_failed",
            hunk=result.hunk_index,
            original_start=hunk.original_start,
            offset_delta=result.line_offset_delta,
            error=result.error,
            message=result.message,
        )

    def _fail(
        self,
        target: Path,
        error: ErrorKind,
        message: str,
        *,
        per_hunk: Tuple[HunkApplicationResult, ...] = (),
    ) -> ApplyOutcome:
        LOGGER.info("%s", message)
        return self._finish(
            ApplyOutcome(
                success=False,
                message=message,
                per_hunk=per_hunk,
                path=target,
                error=error,
                dry_run=self.options.dry_run,
            )
        )

    @staticmethod
    def _finish(outcome: ApplyOutcome) -> ApplyOutcome:
        _emit_patch_event(
            "diff_apply_finished" if outcome.success else "diff_apply_failed",
            path=outcome.path,
            success=outcome.success,
            error=outcome.error,
            dry_run=outcome.dry_run,
            written=outcome.written,
            applied=outcome.applied_count,
            failed=outcome.failed_count,
            message=outcome.message,
        )
        return outcome


def apply_diff(
    file_path: Path | str,
    diff_content: str,
    format: DiffFormat | str = DiffFormat.UNIFIED,
    options: ApplyOptions | Mapping[str, Any] | None = None,
) -> ApplyOutcome:
    """Apply ``diff_content`` to ``file_path`` and describe what happened.

    Hunks are checked bottom-up against the current file content.  Failing
    hunks are reported in ``per_hunk`` while the rest are still applied,
    unless ``reject_hunks`` is set, in which case the first failure aborts
    without writing.  ``dry_run`` runs the full pipeline but never writes.
    """
    engine = PatchEngine(options=coerce_options(options))
    return engine.apply_diff(file_path, diff_content, format)


__all__ = ["PatchEngine", "apply_diff"]
