"""Tests for health endpoints."""

from uuid import uuid4

from fastapi.testclient import TestClient


def test_liveness(client: TestClient) -> None:
    """Test the liveness endpoint."""
    response = client.get("/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}


def test_readiness_without_database(client: TestClient) -> None:
    """Without the lifespan the services are missing and the API is degraded."""
    response = client.get("/health/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert data["database"] is False
    assert "environment" in data


def test_readiness_with_services(wired_client: TestClient) -> None:
    """Test the readiness endpoint once services are wired."""
    data = wired_client.get("/health/ready").json()
    assert data["status"] == "ready"
    assert data["distributed_locks"] is False


def test_health(client: TestClient) -> None:
    """Test the general health endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["app_name"] == "learnhub"
    assert "version" in data
    assert "environment" in data


def test_root(client: TestClient) -> None:
    """Test the root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "learnhub" in data["message"]
    assert "version" in data


def test_progress_routes_unavailable_without_database(
    client: TestClient, make_token
) -> None:
    """Routes answer 503 when the services were never initialized."""
    user_id = uuid4()
    response = client.get(
        f"/v1/progress/{user_id}/enrolled-courses",
        headers={"Authorization": f"Bearer {make_token(user_id)}"},
    )
    assert response.status_code == 503
    assert response.json()["request_id"]
