"""Typed configuration models with Pydantic validation."""

from __future__ import annotations

import os
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr


class ServiceSettings(BaseModel):
    """Service identification."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Service name")
    version: str = Field(..., min_length=1, description="Service version")


class LoggingSettings(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(frozen=True)

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    format: Literal["json", "text"] = Field(default="json", description="Log output format")
    sampling: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Optional sampling ratio for low-severity logs",
    )


class MetricsSettings(BaseModel):
    """Prometheus metrics configuration."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=False, description="Record Prometheus metrics")
    prefix: str = Field(default="databank", min_length=1, description="Metric name prefix")


class CouchDbSettings(BaseModel):
    """CouchDB connection settings for the databank adapter."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    schema_: dict[str, Any] = Field(
        default_factory=dict,
        alias="schema",
        description="Application schema, passed through untouched",
    )
    location: str = Field(
        default="http://localhost:5984",
        min_length=1,
        description="CouchDB server URL",
    )
    username: str | None = Field(default=None, description="Basic auth user name")
    password: SecretStr | None = Field(default=None, description="Basic auth password")
    database: str = Field(..., min_length=1, description="Database name")
    clear_database_for_test_run: bool = Field(
        default=False,
        description=(
            "Drop and recreate the database on the first connect of the process. "
            "Only meant for test runs."
        ),
    )
    timeout_seconds: float = Field(default=30.0, gt=0.0, description="HTTP request timeout")
    use_temp_views: bool = Field(
        default=False,
        description="Search with _temp_view map functions (CouchDB 1.x) instead of _find",
    )
    search_page_size: int = Field(
        default=200,
        ge=1,
        description="Documents fetched per _find request",
    )

    @classmethod
    def from_env(cls, prefix: str = "DATABANK_") -> CouchDbSettings:
        """Build settings from ``<prefix>COUCHDB_*`` environment variables.

        Optional fields fall back to class defaults when the env var is absent.
        """

        def env(name: str) -> str | None:
            return os.getenv(f"{prefix}COUCHDB_{name}")

        def env_bool(name: str, default: bool = False) -> bool:
            value = env(name)
            if value is None:
                return default
            return value.strip().lower() in {"1", "true", "yes", "on"}

        def env_number(name: str, default: float, parse: Any) -> Any:
            value = env(name)
            if value is None:
                return default
            try:
                return parse(value)
            except ValueError as parse_error:
                raise ValueError(
                    f"Invalid {prefix}COUCHDB_{name}={value!r}: expected {parse.__name__}"
                ) from parse_error

        database = env("DATABASE")
        if not database:
            raise ValueError(f"{prefix}COUCHDB_DATABASE must be set")

        password = env("PASSWORD")
        return cls(
            location=env("LOCATION") or "http://localhost:5984",
            username=env("USERNAME"),
            password=SecretStr(password) if password else None,
            database=database,
            clear_database_for_test_run=env_bool("CLEAR_DATABASE_FOR_TEST_RUN"),
            timeout_seconds=env_number("TIMEOUT_SECONDS", 30.0, float),
            use_temp_views=env_bool("USE_TEMP_VIEWS"),
            search_page_size=env_number("SEARCH_PAGE_SIZE", 200, int),
        )


class AppSettings(BaseModel):
    """Root application settings."""

    model_config = ConfigDict(frozen=True)

    service: ServiceSettings
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    metrics: MetricsSettings = Field(default_factory=MetricsSettings)
    couchdb: CouchDbSettings | None = Field(default=None)
