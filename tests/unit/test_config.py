from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from diffapply.config import ApplyOptions, ConfigError, coerce_options, load_options
from diffapply.types import ParsePolicy


def test_coerce_options_accepts_camel_case_aliases() -> None:
    options = coerce_options({"dryRun": True, "rejectHunks": True})

    assert options.dry_run is True
    assert options.reject_hunks is True
    assert options.ignore_whitespace is False


def test_coerce_options_rejects_unknown_keys() -> None:
    with pytest.raises(ConfigError):
        coerce_options({"dry_run": True, "bogus": 1})


def test_load_options_reads_apply_section(tmp_path: Path) -> None:
    config_path = tmp_path / "diffapply.yaml"
    config_path.write_text(
        textwrap.dedent(
            """
            apply:
              ignore_whitespace: true
              parse_policy: strict
              max_patch_bytes: 1024
            """
        ).lstrip(),
        encoding="utf-8",
    )

    options = load_options(config_path, env={})

    assert options.ignore_whitespace is True
    assert options.parse_policy is ParsePolicy.STRICT
    assert options.max_patch_bytes == 1024


def test_load_options_env_and_overrides_take_precedence(tmp_path: Path) -> None:
    config_path = tmp_path / "diffapply.yaml"
    config_path.write_text("apply:\n  max_patch_bytes: 10\n  dry_run: false\n", encoding="utf-8")

    options = load_options(
        config_path,
        env={"DIFFAPPLY_MAX_PATCH_BYTES": "4096"},
        dry_run=True,
        reject_hunks=None,
    )

    assert options.max_patch_bytes == 4096
    assert options.dry_run is True
    assert options.reject_hunks is False


def test_load_options_defaults_without_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)

    assert load_options(env={}) == ApplyOptions()


def test_load_options_missing_explicit_config(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_options(tmp_path / "absent.yaml", env={})


def test_load_options_rejects_invalid_yaml(tmp_path: Path) -> None:
    config_path = tmp_path / "diffapply.yaml"
    config_path.write_text("apply: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_options(config_path, env={})


def test_load_options_merges_camel_case_config_with_overrides(tmp_path: Path) -> None:
    config_path = tmp_path / "diffapply.yaml"
    config_path.write_text("apply:\n  dryRun: false\n  maxPatchBytes: 100\n  rejectHunks: true\n", encoding="utf-8")

    options = load_options(
        config_path,
        env={"DIFFAPPLY_MAX_PATCH_BYTES": "5000"},
        dry_run=True,
    )

    assert options.dry_run is True
    assert options.max_patch_bytes == 5000
    assert options.reject_hunks is True


def test_load_options_keeps_camel_case_config_without_overrides(tmp_path: Path) -> None:
    config_path = tmp_path / "diffapply.yaml"
    config_path.write_text("apply:\n  maxPatchBytes: 100\n  parsePolicy: strict\n", encoding="utf-8")

    options = load_options(config_path, env={})

    assert options.max_patch_bytes == 100
    assert options.parse_policy is ParsePolicy.STRICT
