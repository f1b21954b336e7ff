"""Logging and metrics helpers."""

from databank_couchdb.observability._observable import ObservableMixin
from databank_couchdb.observability.logging import (
    JsonFormatter,
    SamplingFilter,
    TextFormatter,
    bootstrap_logging,
    bootstrap_logging_from_app_settings,
)
from databank_couchdb.observability.metrics import (
    MetricsRecorder,
    NoopMetricsRecorder,
    PrometheusMetricsRecorder,
    configure_metrics_from_settings,
    configure_prometheus_metrics,
    get_metrics_recorder,
    render_prometheus_metrics,
    set_metrics_recorder,
)

__all__ = [
    "JsonFormatter",
    "MetricsRecorder",
    "NoopMetricsRecorder",
    "ObservableMixin",
    "PrometheusMetricsRecorder",
    "SamplingFilter",
    "TextFormatter",
    "bootstrap_logging",
    "bootstrap_logging_from_app_settings",
    "configure_metrics_from_settings",
    "configure_prometheus_metrics",
    "get_metrics_recorder",
    "render_prometheus_metrics",
    "set_metrics_recorder",
]
