"""Unified diff parsing and per-hunk patch application."""

from .buffer import LineBuffer, Splice
from .config import ApplyOptions, ConfigError, load_options
from .engine import PatchEngine, apply_diff
from .hunks import HunkApplier, HunkPlan, lines_match
from .locator import locate_patch
from .parser import DiffParser, parse_diff
from .types import (
    ApplyOutcome,
    DiffFormat,
    DiffParseError,
    DroppedLine,
    ErrorKind,
    Hunk,
    HunkApplicationResult,
    LineKind,
    ParsePolicy,
    PatchError,
    PatchFile,
    PatchSet,
    TaggedLine,
)

__all__ = [
    "ApplyOptions",
    "ApplyOutcome",
    "ConfigError",
    "DiffFormat",
    "DiffParseError",
    "DiffParser",
    "DroppedLine",
    "ErrorKind",
    "Hunk",
    "HunkApplicationResult",
    "HunkApplier",
    "HunkPlan",
    "LineBuffer",
    "LineKind",
    "ParsePolicy",
    "PatchEngine",
    "PatchError",
    "PatchFile",
    "PatchSet",
    "Splice",
    "TaggedLine",
    "apply_diff",
    "lines_match",
    "load_options",
    "locate_patch",
    "parse_diff",
]
