"""Tests for health endpoints."""

from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from ponto_api.main import app

client = TestClient(app)


def test_health_check():
    """Test health endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "ponto-api"


def test_readiness_reports_pending_migrations(monkeypatch):
    """An unmigrated database is reachable but not ready."""
    monkeypatch.setattr("redis.from_url", lambda *args, **kwargs: MagicMock())

    response = client.get("/ready")
    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "not_ready"
    assert data["checks"] == {"database": True, "migrations": False, "redis": True}


def test_metrics_exposed():
    response = client.get("/metrics/")
    assert response.status_code == 200
    assert "ponto_" in response.text


def test_root():
    """Test root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["service"] == "Ponto API"


def test_correlation_id_echoed():
    response = client.get("/health", headers={"x-correlation-id": "abc-123"})
    assert response.headers["x-correlation-id"] == "abc-123"
    assert client.get("/health").headers["x-correlation-id"]
