"""CouchDB implementation of the databank storage contract."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Iterable, Mapping
from time import perf_counter
from typing import Any, ClassVar

from databank_couchdb.config.models import CouchDbSettings
from databank_couchdb.couchdb.client import (
    CouchDatabase,
    CouchDBError,
    CouchDocument,
    CouchServer,
)
from databank_couchdb.couchdb.errors import ErrorKind, translate_error
from databank_couchdb.couchdb.keys import SEPARATOR, document_key
from databank_couchdb.couchdb.query import (
    DATA_FIELD,
    build_map_function,
    build_query_key,
    build_selector,
)
from databank_couchdb.databank import SearchCallback
from databank_couchdb.errors import (
    AlreadyConnectedError,
    AlreadyExistsError,
    NoSuchThingError,
    NotConnectedError,
)
from databank_couchdb.health import HealthStatus
from databank_couchdb.observability._observable import ObservableMixin
from databank_couchdb.observability.metrics import MetricsRecorder

__all__ = ["SEPARATOR", "CouchDBDatabank", "create_couchdb_databank", "document_key"]

logger = logging.getLogger(__name__)

# Process-wide: the destructive test reset runs for the first qualifying connect only.
_TEST_DATABASE_CLEARED = False


def _create_server(settings: CouchDbSettings) -> CouchServer:
    password = None if settings.password is None else settings.password.get_secret_value()
    return CouchServer(
        settings.location,
        username=settings.username,
        password=password,
        timeout_seconds=settings.timeout_seconds,
    )


def _is_couch_error(exc: BaseException, error: str) -> bool:
    return isinstance(exc, CouchDBError) and exc.error == error


class CouchDBDatabank(ObservableMixin):
    """Stores ``(type, id) -> value`` pairs as CouchDB documents.

    Each value lives in the ``data`` field of the document whose id is
    ``document_key(type, id)``. Every failure is raised as a ``DatabankError``
    subclass; CouchDB ``not_found`` and ``conflict`` responses become
    ``NoSuchThingError`` and ``AlreadyExistsError``.

    Example usage::

        databank = CouchDBDatabank(CouchDbSettings(database="app"))
        await databank.connect()
        await databank.save("user", "evan", {"name": "Evan"})
        user = await databank.read("user", "evan")
        await databank.disconnect()
    """

    _resource_name: ClassVar[str] = "couchdb"

    def __init__(
        self,
        settings: CouchDbSettings,
        *,
        metrics: MetricsRecorder | None = None,
    ) -> None:
        self.settings = settings
        self.schema = settings.schema_
        self._metrics = metrics
        self._server: CouchServer | None = None
        self.connection: CouchDatabase | None = None

    @property
    def location(self) -> str:
        return self.settings.location

    @property
    def database(self) -> str:
        return self.settings.database

    @property
    def is_connected(self) -> bool:
        """Whether the adapter holds an open database handle."""
        return self.connection is not None

    def _require_connection(self) -> CouchDatabase:
        if self.connection is None:
            raise NotConnectedError()
        return self.connection

    async def _release(self) -> None:
        server, self._server, self.connection = self._server, None, None
        if server is not None:
            await server.close()

    async def _clear_test_database(self, connection: CouchDatabase) -> None:
        global _TEST_DATABASE_CLEARED
        if not self.settings.clear_database_for_test_run or _TEST_DATABASE_CLEARED:
            return

        _TEST_DATABASE_CLEARED = True
        logger.warning(
            "Dropping and recreating CouchDB test database",
            extra={"location": self.location, "database": self.database},
        )
        try:
            try:
                await connection.drop()
            except CouchDBError as exc:
                if exc.error != "not_found":
                    raise
            await connection.create()
        except Exception as exc:
            raise translate_error(
                exc,
                ErrorKind.CLEAR_TEST_DATABASE,
                location=self.location,
                database=self.database,
            )

    async def connect(self, params: Mapping[str, Any] | None = None) -> None:
        """Open the database handle and verify the server answers.

        Raises:
            AlreadyConnectedError: If a handle is already open.
            ConnectionFailedError: If the test reset or the info probe fails.
        """
        del params
        with self._observed("connect"):
            if self.connection is not None:
                raise AlreadyConnectedError()

            self._server = _create_server(self.settings)
            self.connection = self._server.database(self.database)
            try:
                await self._clear_test_database(self.connection)
                try:
                    await self.connection.info()
                except Exception as exc:
                    raise translate_error(
                        exc,
                        ErrorKind.CONNECT,
                        location=self.location,
                        database=self.database,
                    )
            except Exception:
                await self._release()
                raise

        logger.info(
            "Connected to CouchDB",
            extra={"location": self.location, "database": self.database},
        )

    async def disconnect(self) -> None:
        """Drop the database handle and close its HTTP session."""
        with self._observed("disconnect"):
            self._require_connection()
            await self._release()

        logger.info(
            "Disconnected from CouchDB",
            extra={"location": self.location, "database": self.database},
        )

    async def _fetch_document(self, type_: str, id_: Any) -> CouchDocument:
        connection = self._require_connection()
        document = connection.document(document_key(type_, id_))
        try:
            return await document.get()
        except Exception as exc:
            if _is_couch_error(exc, "not_found"):
                raise NoSuchThingError(type_, id_) from exc
            raise translate_error(exc, ErrorKind.READ_DOCUMENT, document_id=document.id)

    async def _persist_document(
        self,
        document: CouchDocument,
        value: Any,
        *,
        type_: str,
        id_: Any,
    ) -> Any:
        document.body[DATA_FIELD] = value
        try:
            await document.save()
        except Exception as exc:
            if _is_couch_error(exc, "conflict"):
                raise AlreadyExistsError(type_, id_) from exc
            raise translate_error(exc, ErrorKind.SAVE_DOCUMENT, document_id=document.id)
        return value

    async def create(self, type_: str, id_: Any, value: Any) -> Any:
        """Store a new value.

        No existence probe is made: CouchDB rejects a write without revision to an
        existing id, which surfaces as ``AlreadyExistsError``.
        """
        with self._observed("create"):
            connection = self._require_connection()
            document = connection.document(document_key(type_, id_))
            return await self._persist_document(document, value, type_=type_, id_=id_)

    async def read(self, type_: str, id_: Any) -> Any:
        with self._observed("read"):
            try:
                document = await self._fetch_document(type_, id_)
            except Exception as exc:
                raise translate_error(exc, ErrorKind.READ, document_id=document_key(type_, id_))
            return document.body.get(DATA_FIELD)

    async def update(self, type_: str, id_: Any, value: Any) -> Any:
        """Overwrite an existing value, keeping the document revision chain."""
        with self._observed("update"):
            self._require_connection()
            document = await self._fetch_document(type_, id_)
            return await self._persist_document(document, value, type_=type_, id_=id_)

    async def save(self, type_: str, id_: Any, value: Any) -> Any:
        """Update the value when it exists, create it otherwise.

        Only a missing document leads to a create; any other read failure is
        raised. Two concurrent saves of a new id may both take the create path,
        in which case one of them fails with ``AlreadyExistsError``.
        """
        with self._observed("save"):
            connection = self._require_connection()
            try:
                document = await self._fetch_document(type_, id_)
            except NoSuchThingError:
                logger.debug("Creating %s", document_key(type_, id_))
                document = connection.document(document_key(type_, id_))
            return await self._persist_document(document, value, type_=type_, id_=id_)

    async def delete(self, type_: str, id_: Any) -> None:
        with self._observed("delete"):
            self._require_connection()
            document = await self._fetch_document(type_, id_)
            try:
                await document.delete()
            except Exception as exc:
                raise translate_error(exc, ErrorKind.DELETE, document_id=document.id)

    async def _search_temp_view(
        self,
        connection: CouchDatabase,
        type_: str,
        criteria: Mapping[str, Any],
    ) -> list[Any]:
        rows = await connection.temp_view(
            build_map_function(type_, criteria),
            key=build_query_key(criteria),
        )
        return [row["value"].get(DATA_FIELD) for row in rows]

    async def _search_mango(
        self,
        connection: CouchDatabase,
        type_: str,
        criteria: Mapping[str, Any],
    ) -> list[Any]:
        selector = build_selector(type_, criteria)
        page_size = self.settings.search_page_size
        values: list[Any] = []
        bookmark: str | None = None
        while True:
            page = await connection.find(selector, limit=page_size, bookmark=bookmark)
            if bookmark is None and "warning" in page:
                logger.debug("CouchDB _find warning: %s", page["warning"])

            docs = page.get("docs", [])
            values.extend(doc.get(DATA_FIELD) for doc in docs)
            bookmark = page.get("bookmark")
            if len(docs) < page_size or not bookmark:
                return values

    async def search(
        self,
        type_: str,
        criteria: Mapping[str, Any],
        on_result: SearchCallback,
    ) -> None:
        """Deliver each ``type_`` value whose dotted paths equal ``criteria``.

        All matches are fetched before the first ``on_result`` call, so a failed
        query delivers nothing. ``on_result`` may be a coroutine function.

        With ``_temp_view`` this is one round trip. The default ``_find`` path
        pages with bookmarks, requesting ``search_page_size`` documents at a
        time until a page comes back short.
        """
        with self._observed("search"):
            connection = self._require_connection()
            try:
                if self.settings.use_temp_views:
                    values = await self._search_temp_view(connection, type_, criteria)
                else:
                    values = await self._search_mango(connection, type_, criteria)
            except Exception as exc:
                raise translate_error(exc, ErrorKind.SEARCH, type=type_)

            for value in values:
                result = on_result(value)
                if inspect.isawaitable(result):
                    await result

    async def read_all(self, type_: str, ids: Iterable[Any]) -> dict[Any, Any]:
        """Fetch many values of one type in a single request.

        Every requested id is present in the result; missing or deleted
        documents map to ``None``. Ids sharing a document key, such as ``1``
        and ``"1"``, each map to that document's value.
        """
        with self._observed("read_all"):
            connection = self._require_connection()
            requested = list(ids)
            keys = list(dict.fromkeys(document_key(type_, id_) for id_ in requested))
            try:
                rows = await connection.all_docs(keys)
            except Exception as exc:
                raise translate_error(exc, ErrorKind.READ_ALL, type=type_)

            by_key: dict[str, Any] = {}
            for row in rows:
                doc = row.get("doc")
                if doc is not None:
                    by_key[row.get("key")] = doc.get(DATA_FIELD)
            return {id_: by_key.get(document_key(type_, id_)) for id_ in requested}

    async def health_check(self) -> HealthStatus:
        """Probe database info; never raises."""
        start = perf_counter()
        try:
            await self._require_connection().info()
        except Exception as exc:
            return HealthStatus(
                healthy=False,
                latency_ms=(perf_counter() - start) * 1000,
                message=str(exc),
                details={"error_type": exc.__class__.__name__, "database": self.database},
            )
        return HealthStatus(
            healthy=True,
            latency_ms=(perf_counter() - start) * 1000,
            message="ok",
            details={"database": self.database},
        )

    async def close(self) -> None:
        """Disconnect when connected; safe to call repeatedly."""
        if self.connection is not None:
            await self.disconnect()


async def create_couchdb_databank(
    settings: CouchDbSettings,
    *,
    metrics: MetricsRecorder | None = None,
) -> CouchDBDatabank:
    """Build a connected adapter from settings."""
    databank = CouchDBDatabank(settings, metrics=metrics)
    await databank.connect()
    return databank
