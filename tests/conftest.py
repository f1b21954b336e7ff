"""Shared fixtures: an in-memory CouchDB standing in for the HTTP server."""

from __future__ import annotations

import re
from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import unquote

import pytest

import databank_couchdb.couchdb.databank as databank_module
from databank_couchdb.config.models import CouchDbSettings
from databank_couchdb.couchdb.client import CouchDBError, CouchServer
from databank_couchdb.couchdb.databank import CouchDBDatabank

_MISSING = object()


def _lookup(value: Any, path: list[str]) -> Any:
    for segment in path:
        if not isinstance(value, dict) or segment not in value:
            return _MISSING
        value = value[segment]
    return value


def _matches(document: dict[str, Any], selector: dict[str, Any]) -> bool:
    for field, condition in selector.items():
        value = _lookup(document, field.split("."))
        if value is _MISSING:
            return False
        for operator, expected in condition.items():
            if operator == "$eq" and value != expected:
                return False
            if operator == "$regex" and re.search(expected, value) is None:
                return False
    return True


class FakeCouchServer(CouchServer):
    """Answers ``request`` from in-memory databases instead of HTTP.

    ``errors`` maps a route such as ``"GET doc"`` or ``"POST _find"`` to the
    exception raised for every matching request.
    """

    def __init__(self) -> None:
        super().__init__("http://couch.test:5984")
        self.databases: dict[str, dict[str, dict[str, Any]]] = {}
        self.deleted: dict[str, dict[str, str]] = {}
        self.errors: dict[str, BaseException] = {}
        self.requests: list[tuple[str, str, dict[str, str] | None, Any]] = []
        self.temp_view_rows: list[dict[str, Any]] = []
        self.close_calls = 0
        self._revision = 0

    def _next_rev(self) -> str:
        self._revision += 1
        return f"{self._revision}-fake"

    def _docs(self, name: str) -> dict[str, dict[str, Any]]:
        if name not in self.databases:
            raise CouchDBError(404, "not_found", "Database does not exist.")
        return self.databases[name]

    def store(self, database: str, doc_id: str, data: Any) -> None:
        """Seed a document directly."""
        self.databases.setdefault(database, {})[doc_id] = {
            "_id": doc_id,
            "_rev": self._next_rev(),
            "data": data,
        }

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        body: Any | None = None,
    ) -> Any:
        self.requests.append((method, path, params, body))
        name, _, rest = path.partition("/")
        name = unquote(name)
        if not rest:
            route = f"{method} db"
        elif rest.startswith("_"):
            route = f"{method} {rest}"
        else:
            route = f"{method} doc"

        if route in self.errors:
            raise self.errors[route]

        handler = getattr(self, "_" + "_".join(part.strip("_") for part in route.lower().split()))
        if route.endswith(" doc"):
            return handler(name, unquote(rest), params=params, body=body)
        return handler(name, params=params, body=body)

    def _get_db(self, name: str, **_: Any) -> dict[str, Any]:
        return {"db_name": name, "doc_count": len(self._docs(name))}

    def _put_db(self, name: str, **_: Any) -> dict[str, Any]:
        if name in self.databases:
            raise CouchDBError(412, "file_exists", "The database could not be created.")
        self.databases[name] = {}
        return {"ok": True}

    def _delete_db(self, name: str, **_: Any) -> dict[str, Any]:
        self._docs(name)
        del self.databases[name]
        self.deleted.pop(name, None)
        return {"ok": True}

    def _get_doc(self, name: str, doc_id: str, **_: Any) -> dict[str, Any]:
        docs = self._docs(name)
        if doc_id not in docs:
            reason = "deleted" if doc_id in self.deleted.get(name, {}) else "missing"
            raise CouchDBError(404, "not_found", reason)
        return dict(docs[doc_id])

    def _put_doc(self, name: str, doc_id: str, *, body: Any, **_: Any) -> dict[str, Any]:
        docs = self._docs(name)
        current = docs.get(doc_id)
        if (current is None and "_rev" in body) or (
            current is not None and body.get("_rev") != current["_rev"]
        ):
            raise CouchDBError(409, "conflict", "Document update conflict.")
        rev = self._next_rev()
        docs[doc_id] = {**body, "_id": doc_id, "_rev": rev}
        self.deleted.get(name, {}).pop(doc_id, None)
        return {"ok": True, "id": doc_id, "rev": rev}

    def _delete_doc(
        self, name: str, doc_id: str, *, params: dict[str, str] | None, **_: Any
    ) -> dict[str, Any]:
        docs = self._docs(name)
        current = docs.get(doc_id)
        if current is None:
            raise CouchDBError(404, "not_found", "missing")
        if params is None or params.get("rev") != current["_rev"]:
            raise CouchDBError(409, "conflict", "Document update conflict.")
        rev = self._next_rev()
        del docs[doc_id]
        self.deleted.setdefault(name, {})[doc_id] = rev
        return {"ok": True, "id": doc_id, "rev": rev}

    def _post_all_docs(self, name: str, *, body: Any, **_: Any) -> dict[str, Any]:
        docs = self._docs(name)
        rows = []
        for key in body["keys"]:
            if key in docs:
                doc = docs[key]
                rows.append({"id": key, "key": key, "value": {"rev": doc["_rev"]}, "doc": doc})
            elif key in self.deleted.get(name, {}):
                rev = self.deleted[name][key]
                rows.append(
                    {"id": key, "key": key, "value": {"rev": rev, "deleted": True}, "doc": None}
                )
            else:
                rows.append({"key": key, "error": "not_found"})
        return {"total_rows": len(docs), "rows": rows}

    def _post_find(self, name: str, *, body: Any, **_: Any) -> dict[str, Any]:
        matches = [
            doc for _, doc in sorted(self._docs(name).items()) if _matches(doc, body["selector"])
        ]
        offset = int(body.get("bookmark") or 0)
        page = matches[offset : offset + body["limit"]]
        return {"docs": page, "bookmark": str(offset + len(page))}

    def _post_temp_view(self, name: str, **_: Any) -> dict[str, Any]:
        self._docs(name)
        return {"total_rows": len(self.temp_view_rows), "offset": 0, "rows": self.temp_view_rows}

    async def close(self) -> None:
        self.close_calls += 1


@pytest.fixture(autouse=True)
def reset_test_database_flag(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(databank_module, "_TEST_DATABASE_CLEARED", False)


@pytest.fixture
def couch_server(monkeypatch: pytest.MonkeyPatch) -> FakeCouchServer:
    server = FakeCouchServer()
    server.databases["databank"] = {}
    monkeypatch.setattr(databank_module, "_create_server", lambda settings: server)
    return server


@pytest.fixture
def settings() -> CouchDbSettings:
    return CouchDbSettings(database="databank", search_page_size=2)


@pytest.fixture
async def databank(
    couch_server: FakeCouchServer, settings: CouchDbSettings
) -> AsyncIterator[CouchDBDatabank]:
    bank = CouchDBDatabank(settings)
    await bank.connect()
    yield bank
    await bank.close()
