"""Generic typed key-value storage contract."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any, Protocol, runtime_checkable

SearchCallback = Callable[[Any], "Awaitable[None] | None"]


@runtime_checkable
class Databank(Protocol):
    """Common contract for storage backends.

    Values are addressed by a ``(type, id)`` pair. Implementations should raise
    ``DatabankError`` subclasses for every failure.
    """

    async def connect(self, params: Mapping[str, Any] | None = None) -> None:
        """Open the backend connection."""
        ...

    async def disconnect(self) -> None:
        """Release the backend connection."""
        ...

    async def create(self, type_: str, id_: Any, value: Any) -> Any:
        """Store a new value and return it."""
        ...

    async def read(self, type_: str, id_: Any) -> Any:
        """Return the stored value."""
        ...

    async def update(self, type_: str, id_: Any, value: Any) -> Any:
        """Replace an existing value and return the new one."""
        ...

    async def save(self, type_: str, id_: Any, value: Any) -> Any:
        """Create or update a value and return it."""
        ...

    async def delete(self, type_: str, id_: Any) -> None:
        """Remove a stored value."""
        ...

    async def search(
        self,
        type_: str,
        criteria: Mapping[str, Any],
        on_result: SearchCallback,
    ) -> None:
        """Deliver every value of ``type_`` matching ``criteria`` to ``on_result``."""
        ...

    async def read_all(self, type_: str, ids: Iterable[Any]) -> dict[Any, Any]:
        """Return ``id -> value`` for every requested id, ``None`` when absent."""
        ...
