"""Reusable observability mixin for resource classes."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from time import perf_counter
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from databank_couchdb.observability.metrics import MetricsRecorder


class ObservableMixin:
    """Mixin recording operation latency, outcome and error type.

    Subclasses set ``_resource_name`` and may set ``_metrics`` to override the
    process-level recorder.
    """

    _resource_name: str
    _metrics: MetricsRecorder | None

    def _metrics_recorder(self) -> MetricsRecorder:
        from databank_couchdb.observability.metrics import get_metrics_recorder

        return get_metrics_recorder() if self._metrics is None else self._metrics

    def _observe_operation(self, operation: str, started: float, *, success: bool) -> None:
        self._metrics_recorder().observe_operation(
            resource=self._resource_name,
            operation=operation,
            duration_seconds=perf_counter() - started,
            success=success,
        )

    def _observe_error(self, operation: str, started: float, exc: Exception) -> None:
        self._observe_operation(operation, started, success=False)
        self._metrics_recorder().observe_error(
            resource=self._resource_name,
            operation=operation,
            error_type=type(exc).__name__,
        )

    @contextmanager
    def _observed(self, operation: str) -> Iterator[None]:
        """Record the enclosed block as one ``operation``; exceptions propagate."""
        started = perf_counter()
        try:
            yield
        except Exception as exc:
            self._observe_error(operation, started, exc)
            raise
        self._observe_operation(operation, started, success=True)
