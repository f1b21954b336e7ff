"""CouchDB storage adapter for the databank key-value contract."""

from databank_couchdb.couchdb import CouchDBDatabank, create_couchdb_databank, document_key
from databank_couchdb.databank import Databank
from databank_couchdb.errors import (
    AlreadyConnectedError,
    AlreadyExistsError,
    BackendError,
    ConnectionFailedError,
    DatabankError,
    MissingDependencyError,
    NoSuchThingError,
    NotConnectedError,
)
from databank_couchdb.health import HealthStatus

__all__ = [
    "AlreadyConnectedError",
    "AlreadyExistsError",
    "BackendError",
    "ConnectionFailedError",
    "CouchDBDatabank",
    "Databank",
    "DatabankError",
    "HealthStatus",
    "MissingDependencyError",
    "NoSuchThingError",
    "NotConnectedError",
    "create_couchdb_databank",
    "document_key",
]
