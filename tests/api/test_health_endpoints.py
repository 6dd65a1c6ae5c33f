# This file tests API health, readiness, and version endpoints.
# It exists to validate operational contracts used by orchestration and monitoring.
# The tests confirm request IDs and version metadata are always returned.

from __future__ import annotations

import subprocess
from typing import Any

import pytest
from sqlalchemy.exc import OperationalError

from src.api.routers import health as health_router
from tests.api.support import (
    FakeDBClient,
    FakeProductStore,
    api_test_client,
    build_product_service,
    build_test_config,
    make_product,
)


def test_health_endpoint_returns_expected_fields() -> None:
    config = build_test_config()
    with api_test_client(config=config, db_client=FakeDBClient()) as client:
        response = client.get("/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["environment"] == "test"
    assert payload["service_name"] == config.api_name
    assert payload["request_id"]
    assert "timestamp" in payload


def test_ready_endpoint_reflects_product_table_status() -> None:
    with api_test_client(db_client=FakeDBClient(connected=True)) as client:
        response = client.get("/ready")

    assert response.status_code == 200
    payload = response.json()
    assert payload["db_connected"] is True
    assert payload["product_source_ready"] is True
    assert payload["ready"] is True
    assert payload["database"] == "reachable"


def test_ready_endpoint_reports_missing_table() -> None:
    db_client = FakeDBClient(connected=True, existing_tables=set())
    with api_test_client(db_client=db_client) as client:
        response = client.get("/ready")

    payload = response.json()
    assert payload["db_connected"] is True
    assert payload["product_source_ready"] is False
    assert payload["ready"] is False


def test_ready_endpoint_when_database_unreachable() -> None:
    with api_test_client(db_client=FakeDBClient(connected=False)) as client:
        response = client.get("/ready")

    payload = response.json()
    assert payload["ready"] is False
    assert payload["database"] == "unreachable"


def test_version_endpoint_returns_version_metadata() -> None:
    config = build_test_config()
    with api_test_client(config=config, db_client=FakeDBClient()) as client:
        response = client.get("/version")

    assert response.status_code == 200
    payload = response.json()
    assert payload["api_prefix"] == "/api"
    assert payload["app_version"] == config.app_version
    assert payload["project"] == config.api_name
    assert payload["version"] == config.app_version


def test_metrics_endpoint_exposes_request_counters() -> None:
    service = build_product_service(FakeProductStore([make_product("p-1")]))
    with api_test_client(db_client=FakeDBClient(), product_service=service) as client:
        client.get("/api/products/p-1")
        response = client.get("/metrics")

    assert response.status_code == 200
    assert "api_http_requests_total" in response.text
    assert 'path="/api/products/{product_id}"' in response.text
    assert 'path="/products/{product_id}"' not in response.text
    assert 'path="/api/products/p-1"' not in response.text


def test_request_log_is_written_off_the_event_loop_when_enabled() -> None:
    config = build_test_config(enable_request_logging=True)
    db_client = FakeDBClient()
    service = build_product_service(FakeProductStore([make_product("p-1")]))
    with api_test_client(config=config, db_client=db_client, product_service=service) as client:
        response = client.get("/api/products/p-1", headers={"x-request-id": "req-log-1"})

    assert response.status_code == 200
    assert len(db_client.logged_requests) == 1
    entry = db_client.logged_requests[0]
    assert entry["table_name"] == "api_request_log"
    assert entry["request_id"] == "req-log-1"
    assert entry["path"] == "/api/products/p-1"
    assert entry["method"] == "GET"
    assert entry["status_code"] == 200
    assert entry["duration_ms"] >= 0
    assert entry["on_event_loop"] is False


def test_request_log_is_skipped_when_disabled() -> None:
    db_client = FakeDBClient()
    with api_test_client(config=build_test_config(), db_client=db_client) as client:
        client.get("/health")

    assert db_client.logged_requests == []


class _FailingLogDBClient(FakeDBClient):
    def log_request(self, **entry: Any) -> None:
        raise RuntimeError("request log table is locked")


def test_request_log_failure_does_not_change_response() -> None:
    config = build_test_config(enable_request_logging=True)
    with api_test_client(config=config, db_client=_FailingLogDBClient()) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


class _DroppingDBClient(FakeDBClient):
    def table_exists(self, table_name: str) -> bool:
        raise OperationalError("SELECT", {}, Exception("connection dropped"))


def test_ready_endpoint_when_table_lookup_fails_after_connect() -> None:
    with api_test_client(db_client=_DroppingDBClient(connected=True)) as client:
        response = client.get("/ready")

    assert response.status_code == 200
    payload = response.json()
    assert payload["db_connected"] is True
    assert payload["product_source_ready"] is False
    assert payload["ready"] is False


def test_git_commit_lookup_runs_once(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[list[str]] = []

    def fake_run(args: list[str], **_: Any) -> subprocess.CompletedProcess[str]:
        calls.append(args)
        return subprocess.CompletedProcess(args, 0, stdout="abc1234\n", stderr="")

    health_router.git_commit.cache_clear()
    monkeypatch.setattr(health_router.subprocess, "run", fake_run)
    try:
        with api_test_client() as client:
            first = client.get("/version").json()
            second = client.get("/version").json()
    finally:
        health_router.git_commit.cache_clear()

    assert first["git_commit"] == "abc1234"
    assert second["git_commit"] == "abc1234"
    assert len(calls) == 1
