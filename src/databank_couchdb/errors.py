"""Backend-independent error taxonomy surfaced by databank adapters."""

from __future__ import annotations

from typing import Any


class DatabankError(Exception):
    """Base exception for this package.

    Adapters raise only subclasses of this type; callers branch on the
    subclasses below for the conditions they care about.
    """


class MissingDependencyError(DatabankError):
    """Raised when an optional dependency is required but not installed."""


class NotConnectedError(DatabankError):
    """Raised when an operation needs an open connection and there is none."""

    def __init__(self) -> None:
        super().__init__("Not connected")


class AlreadyConnectedError(DatabankError):
    """Raised when connecting an adapter that already holds a connection."""

    def __init__(self) -> None:
        super().__init__("Already connected")


class NoSuchThingError(DatabankError):
    """Raised when no value is stored under ``(type, id)``."""

    def __init__(self, type_: str, id_: Any) -> None:
        self.type = type_
        self.id = id_
        super().__init__(f"No such {type_}: {id_}")


class AlreadyExistsError(DatabankError):
    """Raised when creating a value that is already stored under ``(type, id)``."""

    def __init__(self, type_: str | None = None, id_: Any = None) -> None:
        self.type = type_
        self.id = id_
        if type_ is None:
            super().__init__("Already exists")
        else:
            super().__init__(f"Already exists: {type_} {id_}")


class BackendError(DatabankError):
    """Normalized backend failure with the name of the failing operation."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        super().__init__(message)


class ConnectionFailedError(BackendError):
    """Raised when the backend cannot be prepared or reached during connect."""

    def __init__(self, operation: str, location: str, database: str, message: str) -> None:
        self.location = location
        self.database = database
        super().__init__(operation, message)
