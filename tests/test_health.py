import pytest
from fastapi import status

def test_health_check(client):
    """Test the /health endpoint returns 200 and up status."""
    response = client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "up"
    assert "version" in data
    assert "timestamp" in data

def test_readiness_check(client):
    """Test the /readiness endpoint returns 200 and database status."""
    response = client.get("/readiness")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "ready"
    assert data["components"]["database"] == "connected"

def test_liveness_matches_health(client):
    assert client.get("/liveness").json()["status"] == "up"

def test_root_endpoint(client):
    """Test the API root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    assert "Performance360 API" in response.json()["message"]

def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"
    assert "X-Process-Time" in response.headers
    assert response.headers["X-Content-Type-Options"] == "nosniff"

def test_request_id_is_generated(client):
    response = client.get("/health")
    assert response.headers.get("X-Request-ID")

def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/does-not-exist")
    assert response.status_code == 404
    assert response.json()["success"] is False


def test_readiness_reports_database_outage(client):
    from unittest.mock import patch
    from sqlalchemy.exc import OperationalError

    with patch("performance360.main.check_connection", side_effect=OperationalError("SELECT 1", {}, Exception("down"))):
        response = client.get("/readiness")
    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.json() == {"success": False, "errors": [{"msg": "Database unavailable"}]}
