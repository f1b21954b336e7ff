"""CouchDB backend for the databank storage contract."""

from databank_couchdb.couchdb.client import (
    CouchDatabase,
    CouchDBError,
    CouchDocument,
    CouchServer,
)
from databank_couchdb.couchdb.databank import CouchDBDatabank, create_couchdb_databank
from databank_couchdb.couchdb.errors import ErrorKind, translate_error
from databank_couchdb.couchdb.keys import SEPARATOR, document_key
from databank_couchdb.couchdb.query import build_map_function, build_query_key, build_selector

__all__ = [
    "SEPARATOR",
    "CouchDBDatabank",
    "CouchDBError",
    "CouchDatabase",
    "CouchDocument",
    "CouchServer",
    "ErrorKind",
    "build_map_function",
    "build_query_key",
    "build_selector",
    "create_couchdb_databank",
    "document_key",
    "translate_error",
]
