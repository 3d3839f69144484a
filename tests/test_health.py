from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from userservice.config import ServiceConfig
from userservice.database import Database, DatabaseUnavailableError
from userservice.health import check_health
from userservice.service import create_app


class UnreachableDatabase:
    def initialize(self) -> None:
        return None

    def query(self, sql, params=None):
        raise AssertionError("health checks must not query data")

    def ping(self) -> None:
        raise DatabaseUnavailableError("connection refused")


@pytest.fixture
def database(tmp_path: Path):
    db = Database(tmp_path / "users.sqlite3")
    yield db
    db.close()


def test_health_reports_healthy_with_fresh_timestamp(database: Database) -> None:
    app = create_app(database=database, config=ServiceConfig())

    with TestClient(app) as client:
        response = client.get("/api/health")

    assert response.status_code == 200, response.text
    payload = response.json()
    assert payload["status"] == "healthy"
    checked_at = datetime.fromisoformat(payload["timestamp"].replace("Z", "+00:00"))
    assert abs((datetime.now(timezone.utc) - checked_at).total_seconds()) < 5


def test_health_timestamp_is_not_cached(database: Database) -> None:
    first = check_health(database)
    second = check_health(database)
    assert first.healthy and second.healthy
    assert second.checked_at >= first.checked_at
    assert second.checked_at is not first.checked_at


def test_health_does_not_require_users_table(database: Database) -> None:
    app = create_app(database=database, config=ServiceConfig(), initialize_database=False)

    with TestClient(app) as client:
        response = client.get("/api/health")

    assert response.status_code == 200, response.text


def test_health_reports_unhealthy_when_store_unreachable() -> None:
    app = create_app(database=UnreachableDatabase(), config=ServiceConfig(), initialize_database=False)

    with TestClient(app) as client:
        response = client.get("/api/health")

    assert response.status_code == 503, response.text
    assert response.json() == {"status": "unhealthy", "error": "connection refused"}


def test_check_health_never_raises_for_gateway_errors() -> None:
    report = check_health(UnreachableDatabase())
    assert report.healthy is False
    assert report.error == "connection refused"
