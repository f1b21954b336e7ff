"""Environment variable placeholder resolution.

Strings may reference ``${NAME}`` or ``${NAME:-fallback}``. Substituted values
are always strings; pydantic coerces them during validation.
"""

from __future__ import annotations

import os
import re
from typing import Any

from databank_couchdb.config.errors import PlaceholderResolutionError

PLACEHOLDER_PATTERN = re.compile(r"\$\{(?P<name>[^}:]+)(?::-(?P<default>[^}]*))?\}")


def resolve_placeholders(data: Any, *, strict: bool = True, path: str = "") -> Any:
    """Return a copy of ``data`` with placeholders in every string replaced.

    Args:
        data: Parsed configuration (dicts, lists and scalars).
        strict: If True, an unset variable without a default is an error;
            otherwise the placeholder is left as written.
        path: Location of ``data`` inside the document, used in error messages.

    Raises:
        PlaceholderResolutionError: If strict=True and a placeholder cannot be resolved.
    """
    if isinstance(data, dict):
        return {
            key: resolve_placeholders(value, strict=strict, path=f"{path}.{key}" if path else key)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [
            resolve_placeholders(item, strict=strict, path=f"{path}[{index}]")
            for index, item in enumerate(data)
        ]
    if isinstance(data, str):
        return _substitute(data, path, strict)
    return data


def _substitute(value: str, path: str, strict: bool) -> str:
    def replace(match: re.Match[str]) -> str:
        env_value = os.environ.get(match.group("name"))
        if env_value is not None:
            return env_value
        default = match.group("default")
        if default is not None:
            return default
        if strict:
            raise PlaceholderResolutionError(match.group(0), path)
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(replace, value)
