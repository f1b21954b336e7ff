"""Structured logging bootstrap."""

from __future__ import annotations

import json
import logging
import os
import random
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, TextIO

if TYPE_CHECKING:
    from databank_couchdb.config.models import AppSettings

# Attributes every LogRecord carries; anything else came in through ``extra``.
_STANDARD_RECORD_KEYS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}

_RESERVED_PAYLOAD_KEYS = frozenset({"timestamp", "level", "logger", "message", "service", "env"})


class SamplingFilter(logging.Filter):
    """Keep every WARNING-or-above record and a random share of the rest."""

    def __init__(self, sampling: float) -> None:
        super().__init__()
        self._sampling = sampling

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno >= logging.WARNING:
            return True
        return random.random() < self._sampling


class JsonFormatter(logging.Formatter):
    """One JSON object per record with service metadata and ``extra`` fields."""

    def __init__(self, *, service: str, env: str) -> None:
        super().__init__()
        self._service = service
        self._env = env

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": _format_timestamp(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self._service,
            "env": self._env,
        }
        payload.update(_extra_fields(record))

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str, ensure_ascii=True)


class TextFormatter(logging.Formatter):
    """Plain text formatter with service metadata and ``extra`` fields appended."""

    def __init__(self, *, service: str, env: str) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s %(message)s")
        self._service = service
        self._env = env

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        fields = " ".join(f"{key}={value}" for key, value in _extra_fields(record).items())
        suffix = f" {fields}" if fields else ""
        return f"{base} service={self._service} env={self._env}{suffix}"


def bootstrap_logging(
    *,
    service: str,
    env: str | None = None,
    level: str = "INFO",
    log_format: str = "json",
    sampling: float | None = None,
    logger: logging.Logger | None = None,
    stream: TextIO | None = None,
    force: bool = True,
) -> logging.Logger:
    """Configure ``logger`` (the root logger by default) with a single stream handler."""
    resolved_env = env if env is not None else os.getenv("DATABANK_ENV", "development")
    target_logger = logger or logging.getLogger()

    if force:
        for handler in list(target_logger.handlers):
            target_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    if log_format == "text":
        handler.setFormatter(TextFormatter(service=service, env=resolved_env))
    else:
        handler.setFormatter(JsonFormatter(service=service, env=resolved_env))

    if sampling is not None and sampling < 1.0:
        handler.addFilter(SamplingFilter(sampling))

    target_logger.addHandler(handler)
    target_logger.setLevel(level.upper())
    if target_logger is not logging.getLogger():
        target_logger.propagate = False
    return target_logger


def bootstrap_logging_from_app_settings(
    app_settings: AppSettings,
    *,
    env: str | None = None,
    logger: logging.Logger | None = None,
    stream: TextIO | None = None,
    force: bool = True,
) -> logging.Logger:
    """Bootstrap logging using values from typed appsettings."""
    return bootstrap_logging(
        service=app_settings.service.name,
        env=env,
        level=app_settings.logging.level,
        log_format=app_settings.logging.format,
        sampling=app_settings.logging.sampling,
        logger=logger,
        stream=stream,
        force=force,
    )


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _STANDARD_RECORD_KEYS
        and key not in _RESERVED_PAYLOAD_KEYS
        and not key.startswith("_")
    }


def _format_timestamp(created: float) -> str:
    timestamp = datetime.fromtimestamp(created, tz=UTC)
    return timestamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")
