from __future__ import annotations

import difflib
import sys
from dataclasses import dataclass
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


def unified_diff(old: str, new: str, name: str = "sample.txt", *, context: int = 3) -> str:
    """Render a git-style unified diff between two texts using ``difflib``."""
    lines = difflib.unified_diff(
        old.splitlines(),
        new.splitlines(),
        fromfile=f"a/{name}",
        tofile=f"b/{name}",
        lineterm="",
        n=context,
    )
    return "\n".join(lines) + "\n"


@dataclass(slots=True)
class PatchTarget:
    """File on disk that a test patches."""

    path: Path

    def read(self) -> str:
        return self.path.read_bytes().decode("utf-8")

    def write(self, text: str) -> None:
        self.path.write_bytes(text.encode("utf-8"))


@pytest.fixture()
def target(tmp_path: Path) -> PatchTarget:
    """Create ``sample.txt`` holding three short lines."""

    path = tmp_path / "sample.txt"
    path.write_bytes(b"a\nb\nc\n")
    return PatchTarget(path=path)


@pytest.fixture()
def make_diff():
    """Expose :func:`unified_diff` to tests."""

    return unified_diff
