"""Health primitives for managed resources."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@dataclass(slots=True)
class HealthStatus:
    """Represents an infrastructure health check result."""

    healthy: bool
    latency_ms: float
    message: str | None = None
    details: dict[str, str] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""
        payload: dict[str, Any] = {
            "healthy": self.healthy,
            "latency_ms": max(0.0, float(self.latency_ms)),
        }
        if self.message is not None:
            payload["message"] = self.message
        if self.details:
            payload["details"] = dict(self.details)
        return payload


@runtime_checkable
class Resource(Protocol):
    """Contract for managed resources with lifecycle and health check support."""

    async def health_check(self) -> HealthStatus:
        """Return current health status of this resource."""
        ...

    async def close(self) -> None:
        """Release any held connections or resources."""
        ...
