"""Select the patch entry that belongs to a target file."""

from __future__ import annotations

import os
import posixpath
from pathlib import Path

from .types import PatchFile, PatchSet

_VCS_PREFIXES = ("a/", "b/")


def _strip_vcs_prefix(path: str) -> str:
    """Drop a single leading ``a/`` or ``b/`` from a diff header path."""
    if path.startswith(_VCS_PREFIXES):
        return path[2:]
    return path


def _basename(path: str) -> str:
    return posixpath.basename(path.replace(os.sep, "/"))


def locate_patch(patch_set: PatchSet, target_path: str | Path) -> PatchFile | None:
    """Return the first ``PatchFile`` matching ``target_path``.

    Candidates are tried in order of precedence: exact path equality, equal
    base filenames, then equality after stripping an ``a/``/``b/`` prefix
    (full path or basename).  ``None`` means the patch does not touch the file.
    """
    target = str(target_path)
    target_name = _basename(target)

    for entry in patch_set:
        if entry.file_path == target:
            return entry

    for entry in patch_set:
        if _basename(entry.file_path) == target_name:
            return entry

    for entry in patch_set:
        stripped = _strip_vcs_prefix(entry.file_path)
        if stripped == target or _basename(stripped) == target_name:
            return entry

    return None


__all__ = ["locate_patch"]
