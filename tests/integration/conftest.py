"""Fixtures for integration tests against a real CouchDB server."""

from __future__ import annotations

import os
import time
from collections.abc import Iterator
from contextlib import suppress
from urllib.error import HTTPError
from urllib.request import urlopen
from uuid import uuid4

import pytest

from databank_couchdb.config import CouchDbSettings

COUCHDB_USER = os.getenv("DATABANK_COUCHDB_USERNAME", "admin")
COUCHDB_PASSWORD = os.getenv("DATABANK_COUCHDB_PASSWORD", "password")


def _require_docker() -> None:
    docker = pytest.importorskip("docker")
    try:
        client = docker.from_env()
        client.ping()
    except Exception as exc:  # pragma: no cover - environment dependent
        pytest.skip(f"Docker is not available for integration tests: {exc}")


def _wait_for_http_ready(url: str, timeout_seconds: float = 30.0) -> None:
    deadline = time.monotonic() + timeout_seconds
    while time.monotonic() < deadline:
        try:
            with urlopen(url, timeout=1.0) as response:
                if response.status < 500:
                    return
        except HTTPError as exc:
            if exc.code < 500:
                return
            time.sleep(0.2)
        except OSError:
            time.sleep(0.2)
    raise RuntimeError(f"Timed out waiting for service readiness: {url}")


@pytest.fixture(scope="session")
def couchdb_url() -> Iterator[str]:
    external_url = os.getenv("DATABANK_COUCHDB_URL")
    if external_url:
        yield external_url
        return

    _require_docker()
    DockerContainer = pytest.importorskip("testcontainers.core.container").DockerContainer
    image = os.getenv("DATABANK_COUCHDB_IMAGE", "couchdb:3")
    container = (
        DockerContainer(image)
        .with_env("COUCHDB_USER", COUCHDB_USER)
        .with_env("COUCHDB_PASSWORD", COUCHDB_PASSWORD)
        .with_exposed_ports(5984)
    )

    try:
        container.start()
    except Exception as exc:  # pragma: no cover - environment dependent
        pytest.skip(f"Could not start CouchDB container: {exc}")

    try:
        host = container.get_container_host_ip()
        port = container.get_exposed_port(5984)
        url = f"http://{host}:{port}"
        _wait_for_http_ready(f"{url}/_up")
        yield url
    finally:
        with suppress(Exception):
            container.stop()


@pytest.fixture
def couchdb_settings(couchdb_url: str) -> CouchDbSettings:
    return CouchDbSettings(
        location=couchdb_url,
        username=COUCHDB_USER,
        password=COUCHDB_PASSWORD,
        database=f"databank_it_{uuid4().hex[:8]}",
        clear_database_for_test_run=True,
        search_page_size=2,
    )

