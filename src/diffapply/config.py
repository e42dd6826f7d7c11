"""Options controlling ``apply_diff`` and how they are loaded from disk."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .types import ParsePolicy, PatchError

DEFAULT_CONFIG_NAME = "diffapply.yaml"
DEFAULT_MAX_PATCH_BYTES = 200_000
MAX_PATCH_BYTES_ENV = "DIFFAPPLY_MAX_PATCH_BYTES"


class ConfigError(PatchError):
    """Raised when configuration cannot be read or validated."""


class ApplyOptions(BaseModel):
    """Switches accepted by ``apply_diff``.

    Field names are snake_case; the camelCase spellings used by JSON callers
    (``dryRun``, ``ignoreWhitespace`` ...) are accepted as aliases.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    dry_run: bool = Field(default=False, alias="dryRun")
    ignore_whitespace: bool = Field(default=False, alias="ignoreWhitespace")
    fuzzy_matching: bool = Field(default=False, alias="fuzzyMatching")
    reject_hunks: bool = Field(default=False, alias="rejectHunks")
    parse_policy: ParsePolicy = Field(default=ParsePolicy.LENIENT, alias="parsePolicy")
    max_patch_bytes: int = Field(default=DEFAULT_MAX_PATCH_BYTES, ge=0, alias="maxPatchBytes")
    encoding: str = "utf-8"


def coerce_options(options: ApplyOptions | Mapping[str, Any] | None) -> ApplyOptions:
    """Return ``options`` as an ``ApplyOptions`` instance."""
    if options is None:
        return ApplyOptions()
    if isinstance(options, ApplyOptions):
        return options
    try:
        return ApplyOptions.model_validate(dict(options))
    except ValidationError as error:
        raise ConfigError(f"Invalid apply options: {error}", details={"options": dict(options)}) from error


def _field_names(values: Mapping[str, Any]) -> dict[str, Any]:
    """Rewrite camelCase aliases in ``values`` to their snake_case field names."""
    aliases = {info.alias: name for name, info in ApplyOptions.model_fields.items() if info.alias}
    return {aliases.get(str(key), key): value for key, value in values.items()}


def _read_config_file(config_path: Path | str | None) -> Mapping[str, Any]:
    """Load the YAML configuration, treating a missing default file as empty."""
    explicit = config_path is not None
    candidate = Path(config_path) if explicit else Path(DEFAULT_CONFIG_NAME)
    if not candidate.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {candidate}")
        return {}
    try:
        with candidate.open("r", encoding="utf-8") as handle:
            loaded = yaml.safe_load(handle) or {}
    except yaml.YAMLError as error:
        raise ConfigError(f"Failed to parse config {candidate}: {error}") from error
    if not isinstance(loaded, Mapping):
        raise ConfigError("Configuration must be a mapping at the top level.")
    return loaded


def load_options(
    config_path: Path | str | None = None,
    *,
    env: Mapping[str, str] | None = None,
    **overrides: Any,
) -> ApplyOptions:
    """Build ``ApplyOptions`` from the config file, environment and overrides.

    Later sources win: the ``apply`` section of the YAML file, then
    ``DIFFAPPLY_MAX_PATCH_BYTES``, then keyword overrides whose value is not
    ``None``.
    """
    env_mapping = os.environ if env is None else env
    config = _read_config_file(config_path)

    section = config.get("apply") or {}
    if not isinstance(section, Mapping):
        raise ConfigError("The 'apply' section must be a mapping.")
    merged = _field_names(section)

    env_limit = env_mapping.get(MAX_PATCH_BYTES_ENV)
    if env_limit is not None:
        try:
            parsed = int(str(env_limit).strip())
            if parsed >= 0:
                merged["max_patch_bytes"] = parsed
        except ValueError:
            pass

    for key, value in _field_names(overrides).items():
        if value is not None:
            merged[key] = value

    return coerce_options(merged)


__all__ = [
    "ApplyOptions",
    "ConfigError",
    "DEFAULT_CONFIG_NAME",
    "DEFAULT_MAX_PATCH_BYTES",
    "MAX_PATCH_BYTES_ENV",
    "coerce_options",
    "load_options",
]
