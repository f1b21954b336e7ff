"""Configuration loading and validation module."""

from databank_couchdb.config.errors import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigValidationError,
    PlaceholderResolutionError,
)
from databank_couchdb.config.loader import deep_merge, load_config, load_couchdb_settings
from databank_couchdb.config.models import (
    AppSettings,
    CouchDbSettings,
    LoggingSettings,
    MetricsSettings,
    ServiceSettings,
)

__all__ = [
    "AppSettings",
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigValidationError",
    "CouchDbSettings",
    "LoggingSettings",
    "MetricsSettings",
    "PlaceholderResolutionError",
    "ServiceSettings",
    "deep_merge",
    "load_config",
    "load_couchdb_settings",
]
