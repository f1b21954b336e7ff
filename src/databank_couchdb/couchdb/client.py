"""Minimal asyncio CouchDB HTTP client backed by aiohttp."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import quote

import aiohttp


class CouchDBError(Exception):
    """Error response returned by the CouchDB HTTP API."""

    def __init__(self, status: int, error: str | None, reason: str | None) -> None:
        self.status = status
        self.error = error
        self.reason = reason
        super().__init__(
            f"CouchDB responded {status}: {error or 'unknown_error'} "
            f"({reason or 'no reason given'})"
        )

    @classmethod
    def from_payload(cls, status: int, payload: Any) -> CouchDBError:
        if isinstance(payload, Mapping):
            error = payload.get("error")
            reason = payload.get("reason")
            return cls(
                status,
                None if error is None else str(error),
                None if reason is None else str(reason),
            )
        return cls(status, None, None if payload is None else str(payload))

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation for diagnostics."""
        return {"status": self.status, "error": self.error, "reason": self.reason}


def _quote(segment: str) -> str:
    return quote(segment, safe="")


class CouchServer:
    """Connection settings plus a lazily created HTTP session for one server."""

    def __init__(
        self,
        location: str,
        *,
        username: str | None = None,
        password: str | None = None,
        timeout_seconds: float = 30.0,
        session: Any | None = None,
    ) -> None:
        self.location = location.rstrip("/")
        self.username = username
        self._password = password
        self.timeout_seconds = timeout_seconds
        self._session = session
        self._owns_session = session is None

    @property
    def uses_auth(self) -> bool:
        return self.username is not None or self._password is not None

    def database(self, name: str) -> CouchDatabase:
        """Return a handle for a database on this server."""
        return CouchDatabase(self, name)

    def _get_session(self) -> Any:
        if self._session is None:
            auth = None
            if self.uses_auth:
                auth = aiohttp.BasicAuth(self.username or "", self._password or "")
            self._session = aiohttp.ClientSession(
                auth=auth,
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            )
        return self._session

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        body: Any | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            CouchDBError: If CouchDB answers with an error status.
        """
        session = self._get_session()
        kwargs: dict[str, Any] = {}
        if params:
            kwargs["params"] = dict(params)
        if body is not None:
            kwargs["json"] = body

        async with session.request(method, f"{self.location}/{path}", **kwargs) as response:
            status = response.status
            text = await response.text()

        if status >= 400:
            try:
                payload = json.loads(text) if text else None
            except ValueError:
                payload = text
            raise CouchDBError.from_payload(status, payload)

        return json.loads(text) if text else None

    async def close(self) -> None:
        """Close the HTTP session when this server created it."""
        session, self._session = self._session, None
        if session is not None and self._owns_session:
            await session.close()


class CouchDatabase:
    """Handle for a single CouchDB database."""

    def __init__(self, server: CouchServer, name: str) -> None:
        self.server = server
        self.name = name

    def _path(self, *segments: str) -> str:
        return "/".join([_quote(self.name), *segments])

    async def info(self) -> dict[str, Any]:
        return await self.server.request("GET", self._path())

    async def create(self) -> None:
        await self.server.request("PUT", self._path())

    async def drop(self) -> None:
        await self.server.request("DELETE", self._path())

    def document(self, doc_id: str) -> CouchDocument:
        """Return an unloaded handle for ``doc_id``."""
        return CouchDocument(self, doc_id)

    async def temp_view(
        self,
        map_source: str,
        *,
        key: Any | None = None,
    ) -> list[dict[str, Any]]:
        """Run an ad-hoc map function (CouchDB 1.x ``_temp_view``) and return its rows."""
        params = None if key is None else {"key": json.dumps(key)}
        payload = await self.server.request(
            "POST",
            self._path("_temp_view"),
            params=params,
            body={"language": "javascript", "map": map_source},
        )
        return list(payload.get("rows", []))

    async def find(
        self,
        selector: Mapping[str, Any],
        *,
        limit: int,
        bookmark: str | None = None,
    ) -> dict[str, Any]:
        """Run a Mango ``_find`` query and return the raw response page."""
        body: dict[str, Any] = {"selector": dict(selector), "limit": limit}
        if bookmark is not None:
            body["bookmark"] = bookmark
        return await self.server.request("POST", self._path("_find"), body=body)

    async def all_docs(
        self,
        keys: Iterable[str],
        *,
        include_docs: bool = True,
    ) -> list[dict[str, Any]]:
        """Fetch many documents by id in one request."""
        payload = await self.server.request(
            "POST",
            self._path("_all_docs"),
            params={"include_docs": "true" if include_docs else "false"},
            body={"keys": list(keys)},
        )
        return list(payload.get("rows", []))


class CouchDocument:
    """A single document; ``body`` holds the JSON fields including ``_rev``."""

    def __init__(
        self,
        database: CouchDatabase,
        doc_id: str,
        body: dict[str, Any] | None = None,
    ) -> None:
        self.database = database
        self.id = doc_id
        self.body: dict[str, Any] = {} if body is None else body

    @property
    def rev(self) -> str | None:
        return self.body.get("_rev")

    def _path(self) -> str:
        return self.database._path(_quote(self.id))

    async def get(self) -> CouchDocument:
        payload = await self.database.server.request("GET", self._path())
        self.body = dict(payload)
        return self

    async def save(self) -> str:
        """Write ``body``; a present ``_rev`` makes this an update."""
        body = {**self.body, "_id": self.id}
        payload = await self.database.server.request("PUT", self._path(), body=body)
        rev = str(payload["rev"])
        self.body["_id"] = self.id
        self.body["_rev"] = rev
        return rev

    async def delete(self) -> None:
        params = None if self.rev is None else {"rev": self.rev}
        await self.database.server.request("DELETE", self._path(), params=params)
