"""Compile search criteria into CouchDB queries.

Two forms are supported. ``build_selector`` returns a Mango ``_find`` selector and
is the default on CouchDB 2.x and later. ``build_map_function`` generates the
JavaScript map function for servers that still offer ``_temp_view``; it emits the
ordered criterion values as the row key, so it must be queried with
``build_query_key`` for the same criteria.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any

from databank_couchdb.couchdb.keys import type_prefix

DATA_FIELD = "data"

_REGEX_SPECIAL = re.compile(r"([\\^$.|?*+()\[\]{}])")

_MAP_FUNCTION_TEMPLATE = """function (doc) {
    var getDottedProperty = function (obj, path) {
        for (var i = 0; i < path.length; i++) {
            if (obj === null || typeof obj !== "object") return undefined;
            if (!Object.prototype.hasOwnProperty.call(obj, path[i])) return undefined;
            obj = obj[path[i]];
        }
        return obj;
    };
    var prefix = %(prefix)s;
    if (doc._id.substr(0, prefix.length) !== prefix) return;
    var paths = %(paths)s;
    var values = [];
    for (var i = 0; i < paths.length; i++) {
        var value = getDottedProperty(doc.%(data_field)s, paths[i]);
        if (value === undefined) return;
        values.push(value);
    }
    emit(values, doc);
}"""


def split_path(path: str) -> list[str]:
    """Split a dotted criterion path into its segments."""
    return path.split(".")


def build_query_key(criteria: Mapping[str, Any]) -> list[Any]:
    """Return the view key matching ``criteria``: its values in criteria order."""
    return list(criteria.values())


def build_map_function(type_: str, criteria: Mapping[str, Any]) -> str:
    """Generate the ``_temp_view`` map function for a search over ``type_``."""
    return _MAP_FUNCTION_TEMPLATE % {
        "prefix": json.dumps(type_prefix(type_)),
        "paths": json.dumps([split_path(path) for path in criteria]),
        "data_field": DATA_FIELD,
    }


def _escape_regex(text: str) -> str:
    return _REGEX_SPECIAL.sub(r"\\\1", text)


def build_selector(type_: str, criteria: Mapping[str, Any]) -> dict[str, Any]:
    """Build a Mango selector matching ``type_`` documents whose values equal ``criteria``.

    Equality on a field also requires the field to exist, so documents missing a
    referenced path are excluded.
    """
    selector: dict[str, Any] = {"_id": {"$regex": f"^{_escape_regex(type_prefix(type_))}"}}
    for path, value in criteria.items():
        selector[f"{DATA_FIELD}.{path}"] = {"$eq": value}
    return selector
