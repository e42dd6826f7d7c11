"""Command line entry point for applying and inspecting unified diffs."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Optional

import typer

from .config import ConfigError, load_options
from .engine import apply_diff
from .parser import DiffParser
from .types import DiffFormat, DiffParseError, ParsePolicy

APP_HELP = "Apply unified diffs to individual files with per-hunk reporting."

app = typer.Typer(help=APP_HELP)


def _read_patch(patch: Optional[Path]) -> str:
    """Read patch text from ``patch`` or standard input."""
    if patch is None or str(patch) == "-":
        return sys.stdin.read()
    if not patch.exists():
        raise typer.BadParameter(f"Patch file not found: {patch}", param_hint="--patch")
    return patch.read_text(encoding="utf-8")


@app.command("apply")
def apply_command(
    path: Path = typer.Argument(..., help="File to patch."),
    patch: Optional[Path] = typer.Option(
        None,
        "--patch",
        "-p",
        help="Patch file to read; defaults to standard input.",
    ),
    diff_format: DiffFormat = typer.Option(
        DiffFormat.UNIFIED,
        "--format",
        "-f",
        help="Diff dialect of the patch.",
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Check and report without writing the file."),
    ignore_whitespace: bool = typer.Option(
        False,
        "--ignore-whitespace",
        help="Ignore whitespace differences when matching context.",
    ),
    fuzzy: bool = typer.Option(
        False,
        "--fuzzy",
        help="Request fuzzy context matching (reported as unsupported).",
    ),
    reject_hunks: bool = typer.Option(
        False,
        "--reject-hunks",
        help="Abort without writing on the first failing hunk.",
    ),
    strict: bool = typer.Option(
        False,
        "--strict",
        help="Fail on malformed or orphan patch lines instead of dropping them.",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML configuration file with an 'apply' section.",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the outcome as JSON."),
) -> None:
    """Apply a unified diff to PATH."""
    # Unset flags fall back to the config file rather than forcing False.
    try:
        options = load_options(
            config,
            dry_run=dry_run or None,
            ignore_whitespace=ignore_whitespace or None,
            fuzzy_matching=fuzzy or None,
            reject_hunks=reject_hunks or None,
            parse_policy=ParsePolicy.STRICT if strict else None,
        )
    except ConfigError as error:
        typer.echo(f"Configuration error: {error}", err=True)
        raise typer.Exit(code=2) from error

    diff_text = _read_patch(patch)
    outcome = apply_diff(path, diff_text, diff_format, options)

    if as_json:
        typer.echo(json.dumps(outcome.to_dict(), indent=2))
    else:
        typer.echo(outcome.render())
    if not outcome.success:
        raise typer.Exit(code=1)


@app.command("inspect")
def inspect_command(
    patch: Optional[Path] = typer.Option(
        None,
        "--patch",
        "-p",
        help="Patch file to read; defaults to standard input.",
    ),
    strict: bool = typer.Option(False, "--strict", help="Fail on malformed or orphan patch lines."),
    show_body: bool = typer.Option(False, "--body", help="Print each hunk's body lines as well."),
    as_json: bool = typer.Option(False, "--json", help="Print the parsed patch as JSON."),
) -> None:
    """List the files and hunks a patch contains."""
    diff_text = _read_patch(patch)
    parser = DiffParser(ParsePolicy.STRICT if strict else ParsePolicy.LENIENT)
    try:
        patch_set = parser.parse(diff_text)
    except DiffParseError as error:
        typer.echo(f"Malformed patch: {error}", err=True)
        raise typer.Exit(code=1) from error

    if as_json:
        payload = {
            "files": [
                {
                    "path": entry.file_path,
                    "new_path": entry.new_path,
                    "hunks": [
                        {
                            "header": hunk.header(),
                            "additions": len(hunk.additions),
                            "deletions": len(hunk.deletions),
                            "warning": hunk.count_mismatch(),
                            "lines": [line.render() for line in hunk.lines],
                        }
                        for hunk in entry.hunks
                    ],
                }
                for entry in patch_set
            ],
            "dropped_lines": [
                {"line": dropped.line_number, "text": dropped.text, "reason": dropped.reason}
                for dropped in patch_set.dropped_lines
            ],
        }
        typer.echo(json.dumps(payload, indent=2))
        return

    if not patch_set.files:
        typer.echo("No file patches found.")
    for entry in patch_set:
        typer.echo(f"{entry.file_path} ({len(entry.hunks)} hunks)")
        for hunk in entry.hunks:
            typer.echo(f"  {hunk.header()}  +{len(hunk.additions)}/-{len(hunk.deletions)}")
            mismatch = hunk.count_mismatch()
            if mismatch:
                typer.echo(f"    ! {mismatch}")
            if show_body:
                for line in hunk.lines:
                    typer.echo(f"    {line.render()}")
    if patch_set.dropped_lines:
        typer.echo("Dropped lines:")
        for dropped in patch_set.dropped_lines:
            typer.echo(f"  line {dropped.line_number}: {dropped.reason}")


if __name__ == "__main__":
    app()
