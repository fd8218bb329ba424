import pytest
from fastapi.testclient import TestClient

from app.database import Database
from app.main import create_app
from app.routers import health

from conftest import make_settings


@pytest.fixture
def unreachable_client(tmp_path):
    # the parent directory does not exist, so SQLite cannot open the file
    url = f"sqlite:///{tmp_path / 'missing' / 'tasks.db'}"
    database = Database(url)
    # no context manager: startup (schema init) is not run
    yield TestClient(create_app(make_settings(url), database))
    database.close()


class ExplodingDatabase(Database):
    def test_connection(self):
        raise RuntimeError("probe exploded")


def test_liveness(client):
    resp = client.get("/api/health/live")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "alive"
    assert body["uptime"] >= 0
    assert "timestamp" in body


def test_readiness(client):
    resp = client.get("/api/health/ready")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ready"


def test_composite_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "healthy"
    assert body["environment"] == "test"
    assert body["version"] == "9.9.9"
    assert body["database"] == {"status": "connected"}
    assert body["memory"]["used"].endswith(" MB")
    assert body["memory"]["total"].endswith(" MB")


def test_liveness_ignores_database(unreachable_client):
    resp = unreachable_client.get("/api/health/live")
    assert resp.status_code == 200
    assert resp.json()["status"] == "alive"


def test_readiness_without_database(unreachable_client):
    resp = unreachable_client.get("/api/health/ready")
    assert resp.status_code == 503
    body = resp.json()
    assert body["status"] == "not ready"
    assert body["reason"] == "database not available"


def test_composite_health_without_database(unreachable_client):
    resp = unreachable_client.get("/api/health")
    assert resp.status_code == 503
    body = resp.json()
    assert body["status"] == "unhealthy"
    assert body["database"] == {"status": "disconnected"}
    assert body["uptime"] >= 0


def test_composite_health_never_raises(tmp_path):
    url = f"sqlite:///{tmp_path / 'tasks.db'}"
    client = TestClient(create_app(make_settings(url), ExplodingDatabase(url)))

    resp = client.get("/api/health")
    assert resp.status_code == 503
    assert resp.json()["status"] == "unhealthy"
    assert resp.json()["error"] == "probe exploded"

    resp = client.get("/api/health/ready")
    assert resp.status_code == 503
    assert resp.json()["status"] == "not ready"


class FakeMemoryInfo:
    rss = 50 * 1024 * 1024
    vms = 400 * 1024 * 1024


class FakeProcess:
    def memory_info(self):
        return FakeMemoryInfo()


def test_composite_health_reports_resident_and_virtual_memory(client, monkeypatch):
    monkeypatch.setattr(health.psutil, "Process", FakeProcess)
    body = client.get("/api/health").json()
    assert body["memory"] == {"used": "50 MB", "total": "400 MB"}
