"""Tests for health check and root endpoints."""


def test_health_check(api_client):
    """Test health endpoint returns healthy status with a loaded project."""
    response = api_client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["services"] == {"database": "ok", "code_model": "ok", "config": "ok"}


def test_health_check_missing_database(empty_api_client):
    response = empty_api_client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "unhealthy"
    assert data["services"]["database"] == "missing"
    assert data["services"]["code_model"] == "unavailable"


def test_root(api_client):
    response = api_client.get("/")

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "apitag API"
    assert data["endpoints"]["health"] == "/health"


def test_request_id_headers(api_client):
    response = api_client.get("/health", headers={"X-Request-ID": "req-42"})

    assert response.headers["X-Request-ID"] == "req-42"
    assert "X-Process-Time-ms" in response.headers
