"""Translation of CouchDB failures into the databank error taxonomy."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from databank_couchdb.errors import BackendError, ConnectionFailedError, DatabankError


class ErrorKind(Enum):
    """Backend-facing operations and the message template used when they fail."""

    CLEAR_TEST_DATABASE = (
        "clear_test_database",
        "CouchDB cannot create the test database {database} at {location}",
    )
    CONNECT = ("connect", "CouchDB cannot connect to database {database} at {location}")
    DELETE = ("delete", "CouchDB error deleting document {document_id}")
    READ = ("read", "CouchDB error while reading document {document_id}")
    READ_DOCUMENT = ("read_document", "CouchDB error while reading document {document_id}")
    READ_ALL = ("read_all", "CouchDB error while reading all {type} documents")
    SAVE_DOCUMENT = ("save_document", "CouchDB error while saving document {document_id}")
    SEARCH = ("search", "CouchDB error while searching for a {type}")

    def __init__(self, operation: str, template: str) -> None:
        self.operation = operation
        self.template = template

    @property
    def is_connection_failure(self) -> bool:
        return self in (ErrorKind.CLEAR_TEST_DATABASE, ErrorKind.CONNECT)

    def format(self, **context: Any) -> str:
        return self.template.format(**context)


def _serialize(exc: BaseException) -> str:
    to_dict = getattr(exc, "to_dict", None)
    if callable(to_dict):
        raw = to_dict()
    else:
        raw = {"error": type(exc).__name__, "reason": str(exc)}
    return json.dumps(raw, default=str, sort_keys=True)


def translate_error(exc: BaseException, kind: ErrorKind, **context: Any) -> DatabankError:
    """Normalize ``exc`` raised while performing ``kind``.

    Errors that already belong to the databank taxonomy are returned unchanged,
    so translating twice never double-wraps.
    """
    if isinstance(exc, DatabankError):
        return exc

    message = f"{kind.format(**context)}: {_serialize(exc)}"
    error: BackendError
    if kind.is_connection_failure:
        error = ConnectionFailedError(
            kind.operation,
            str(context["location"]),
            str(context["database"]),
            message,
        )
    else:
        error = BackendError(kind.operation, message)
    error.__cause__ = exc
    return error
