import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock

from community_backend.main import create_app
from community_backend.boundary.db import get_async_db


@pytest.fixture
def client():
    app = create_app()
    return TestClient(app)


def test_health_check(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "message": "Server Healthy"}


def test_health_check_db(client):
    db = AsyncMock()
    client.app.dependency_overrides[get_async_db] = lambda: db

    response = client.get("/api/v1/health/db")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "message": "Database connection OK"}
    db.execute.assert_awaited_once()


def test_health_check_db_unavailable(client):
    db = AsyncMock()
    db.execute.side_effect = ConnectionRefusedError("no database")
    client.app.dependency_overrides[get_async_db] = lambda: db

    response = client.get("/api/v1/health/db")

    assert response.status_code == 503


def test_correlation_header_is_returned(client):
    response = client.get("/api/v1/health", headers={"X-Correlation-ID": "trace-1"})
    assert response.headers["X-Correlation-ID"] == "trace-1"
