"""Configuration-specific exceptions."""

from __future__ import annotations

from databank_couchdb.errors import DatabankError


class ConfigError(DatabankError):
    """Base exception for configuration errors."""


class ConfigFileNotFoundError(ConfigError):
    """Raised when a required configuration file is not found."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Configuration file not found: {path}")


class ConfigValidationError(ConfigError):
    """Raised when configuration validation fails.

    ``errors`` holds one ``{"loc": ..., "msg": ...}`` entry per failed field.
    """

    def __init__(self, errors: list[dict[str, str]]) -> None:
        self.errors = errors
        lines = [
            f"  - {err.get('loc', 'unknown')}: {err.get('msg', 'validation error')}"
            for err in errors
        ]
        super().__init__("Configuration validation failed:\n" + "\n".join(lines))


class PlaceholderResolutionError(ConfigError):
    """Raised when an environment variable placeholder cannot be resolved."""

    def __init__(self, placeholder: str, key_path: str) -> None:
        self.placeholder = placeholder
        self.key_path = key_path
        super().__init__(
            f"Cannot resolve placeholder '{placeholder}' at '{key_path}': "
            "environment variable not set and no default given"
        )
