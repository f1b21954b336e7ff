"""Configuration loader with per-environment overlays and validation."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from databank_couchdb.config.errors import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigValidationError,
)
from databank_couchdb.config.models import AppSettings, CouchDbSettings
from databank_couchdb.config.placeholders import resolve_placeholders

DEFAULT_CONFIG_DIR = Path("config")
DEFAULT_BASE_FILE = "appsettings.json"
ENV_VAR_NAME = "DATABANK_ENV"
DEFAULT_ENV = "development"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return ``base`` updated recursively with ``override``; inputs are not modified."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def load_json_file(path: Path) -> dict[str, Any]:
    """Load and parse a JSON configuration file.

    Raises:
        ConfigFileNotFoundError: If the file does not exist.
    """
    if not path.exists():
        raise ConfigFileNotFoundError(str(path))

    with path.open(encoding="utf-8") as f:
        return json.load(f)


def _validation_errors(exc: ValidationError) -> list[dict[str, str]]:
    return [
        {"loc": " -> ".join(str(part) for part in err["loc"]), "msg": err["msg"]}
        for err in exc.errors()
    ]


def load_config(
    *,
    config_dir: Path | str | None = None,
    env: str | None = None,
    strict_placeholders: bool = True,
) -> AppSettings:
    """Load application configuration.

    ``<config_dir>/appsettings.json`` is read first, then deep-merged with
    ``appsettings.<env>.json`` when that file exists. ``${VAR}`` placeholders are
    resolved from the process environment before validation.

    Args:
        config_dir: Directory containing configuration files. Defaults to "config".
        env: Environment name. Defaults to DATABANK_ENV or "development".
        strict_placeholders: If True, raise for unresolved placeholders.

    Raises:
        ConfigFileNotFoundError: If the base configuration file is missing.
        ConfigValidationError: If the merged configuration is invalid.
        PlaceholderResolutionError: If a required placeholder cannot be resolved.
    """
    directory = DEFAULT_CONFIG_DIR if config_dir is None else Path(config_dir)
    environment = env if env is not None else os.environ.get(ENV_VAR_NAME, DEFAULT_ENV)

    config = load_json_file(directory / DEFAULT_BASE_FILE)
    overlay_path = directory / f"appsettings.{environment}.json"
    if overlay_path.exists():
        config = deep_merge(config, load_json_file(overlay_path))

    config = resolve_placeholders(config, strict=strict_placeholders)

    try:
        return AppSettings.model_validate(config)
    except ValidationError as e:
        raise ConfigValidationError(_validation_errors(e)) from e


def load_couchdb_settings(
    *,
    config_dir: Path | str | None = None,
    env: str | None = None,
) -> CouchDbSettings:
    """Load configuration and return its ``couchdb`` section.

    Raises:
        ConfigError: If the configuration has no ``couchdb`` section.
    """
    settings = load_config(config_dir=config_dir, env=env)
    if settings.couchdb is None:
        raise ConfigError("Configuration has no 'couchdb' section")
    return settings.couchdb
