"""Tests for the symbol detail endpoint."""

from factories import ACCOUNT_TAG, CONTROLLER, FETCH_IMPL, GET_ACCOUNT, SERVICE, SERVICE_IMPL


def test_method_symbol(api_client):
    response = api_client.get(f"/api/v1/symbols/{GET_ACCOUNT}")

    assert response.status_code == 200
    data = response.json()
    assert data["kind"] == "method"
    assert data["name"] == "getAccount"
    assert data["layer"] == "entry_point"
    assert data["declaring_type"] == CONTROLLER
    assert data["parameters"] == ["Long"]
    assert data["tag"] == ACCOUNT_TAG


def test_type_symbol(api_client):
    response = api_client.get(f"/api/v1/symbols/{SERVICE_IMPL}")

    assert response.status_code == 200
    data = response.json()
    assert data["kind"] == "type"
    assert data["layer"] == "implementation"
    assert data["interfaces"] == [SERVICE]
    assert data["is_interface"] is False
    assert data["tag"] is None


def test_symbol_after_sync(api_client):
    api_client.post("/api/v1/sync", json={"fqn": GET_ACCOUNT})

    data = api_client.get(f"/api/v1/symbols/{SERVICE}").json()
    assert data["layer"] == "abstraction"
    assert data["tag"] == ACCOUNT_TAG
    assert ACCOUNT_TAG in data["documentation"]

    assert api_client.get(f"/api/v1/symbols/{FETCH_IMPL}").json()["tag"] is None


def test_symbol_not_found(api_client):
    response = api_client.get("/api/v1/symbols/com.acme.Nope")

    assert response.status_code == 404
    assert response.json()["detail"] == "Symbol not found: com.acme.Nope"
