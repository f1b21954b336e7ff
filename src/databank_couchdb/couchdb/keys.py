"""Mapping between ``(type, id)`` pairs and CouchDB document ids."""

from __future__ import annotations

from typing import Any

SEPARATOR = ":"


def document_key(type_: str, id_: Any) -> str:
    """Return the CouchDB document id for ``(type_, id_)``.

    Injective as long as ``type_`` does not contain ``SEPARATOR``.
    """
    return f"{type_}{SEPARATOR}{id_}"


def type_prefix(type_: str) -> str:
    """Return the id prefix shared by every document of ``type_``."""
    return f"{type_}{SEPARATOR}"
