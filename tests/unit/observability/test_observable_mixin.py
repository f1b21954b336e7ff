"""Tests for ObservableMixin."""

from __future__ import annotations

from time import perf_counter
from typing import Any
from unittest.mock import MagicMock

import pytest

from databank_couchdb.observability._observable import ObservableMixin
from databank_couchdb.observability.metrics import (
    NoopMetricsRecorder,
    get_metrics_recorder,
    set_metrics_recorder,
)


class PlainResource(ObservableMixin):
    _resource_name = "plain"

    def __init__(self, *, metrics: Any = None) -> None:
        self._metrics = metrics


@pytest.fixture()
def recorder() -> MagicMock:
    return MagicMock(spec=NoopMetricsRecorder)


class TestMetricsRecorder:
    def test_returns_injected_recorder(self, recorder: MagicMock) -> None:
        assert PlainResource(metrics=recorder)._metrics_recorder() is recorder

    def test_falls_back_to_process_recorder(self, recorder: MagicMock) -> None:
        previous = get_metrics_recorder()
        set_metrics_recorder(recorder)
        try:
            assert PlainResource()._metrics_recorder() is recorder
        finally:
            set_metrics_recorder(previous)


class TestObserveError:
    def test_records_operation_failure_and_error(self, recorder: MagicMock) -> None:
        resource = PlainResource(metrics=recorder)

        resource._observe_error("save", perf_counter(), ValueError("bad"))

        op_call = recorder.observe_operation.call_args
        assert op_call.kwargs["resource"] == "plain"
        assert op_call.kwargs["operation"] == "save"
        assert op_call.kwargs["success"] is False
        err_call = recorder.observe_error.call_args
        assert err_call.kwargs["error_type"] == "ValueError"


class TestObserved:
    def test_success_is_recorded_once(self, recorder: MagicMock) -> None:
        resource = PlainResource(metrics=recorder)

        with resource._observed("read"):
            pass

        recorder.observe_operation.assert_called_once()
        call_kwargs = recorder.observe_operation.call_args.kwargs
        assert call_kwargs["operation"] == "read"
        assert call_kwargs["success"] is True
        assert call_kwargs["duration_seconds"] >= 0
        recorder.observe_error.assert_not_called()

    def test_failure_is_recorded_and_reraised(self, recorder: MagicMock) -> None:
        resource = PlainResource(metrics=recorder)

        with pytest.raises(KeyError), resource._observed("search"):
            raise KeyError("missing")

        recorder.observe_operation.assert_called_once()
        assert recorder.observe_operation.call_args.kwargs["success"] is False
        assert recorder.observe_error.call_args.kwargs == {
            "resource": "plain",
            "operation": "search",
            "error_type": "KeyError",
        }

    def test_instance_resource_name_overrides_class(self, recorder: MagicMock) -> None:
        resource = PlainResource(metrics=recorder)
        resource._resource_name = "custom"

        with resource._observed("connect"):
            pass

        assert recorder.observe_operation.call_args.kwargs["resource"] == "custom"
