"""Tests for tenant API endpoints."""
import pytest


@pytest.fixture
def accounts(fake_api):
    fake_api.add_account("sk_alpha_1234567")
    fake_api.add_account("sk_beta_7654321")
    return fake_api


def _create(client, name="Alpha", api_key="sk_alpha_1234567", **extra):
    return client.post("/api/v1/tenants/", json={"name": name, "api_key": api_key, **extra})


def test_create_tenant(client, accounts):
    """Test creating a tenant returns a masked key."""
    response = _create(client, currency="gbp")

    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Alpha"
    assert data["slug"] == "alpha"
    assert data["currency"] == "gbp"
    assert data["status"] == "active"
    assert data["api_key_masked"] == "sk_*********4567"
    assert data["event_count"] == 0
    assert "api_key" not in data


def test_create_tenant_with_invalid_key(client, accounts):
    """Test that an upstream-rejected key returns 400."""
    response = _create(client, api_key="sk_wrong")

    assert response.status_code == 400
    assert "Invalid API key" in response.json()["detail"]
    assert client.get("/api/v1/tenants/").json()["total"] == 0


def test_create_tenant_missing_fields(client, accounts):
    """Test request validation."""
    response = client.post("/api/v1/tenants/", json={"name": "Alpha"})

    assert response.status_code == 422


def test_list_tenants_with_status_filter(client, accounts):
    """Test listing tenants by status."""
    _create(client)
    beta = _create(client, name="Beta", api_key="sk_beta_7654321").json()
    client.patch(f"/api/v1/tenants/{beta['id']}", json={"status": "paused"})

    all_tenants = client.get("/api/v1/tenants/").json()
    active = client.get("/api/v1/tenants/", params={"status": "active"}).json()

    assert all_tenants["total"] == 2
    assert [t["slug"] for t in active["tenants"]] == ["alpha"]
    assert client.get("/api/v1/tenants/", params={"status": "bogus"}).status_code == 422


def test_get_tenant(client, accounts):
    """Test fetching a tenant by ID."""
    created = _create(client).json()

    response = client.get(f"/api/v1/tenants/{created['id']}")

    assert response.status_code == 200
    assert response.json()["slug"] == "alpha"


def test_get_tenant_not_found(client):
    """Test fetching an unknown tenant."""
    assert client.get("/api/v1/tenants/999").status_code == 404


def test_update_tenant(client, accounts):
    """Test renaming a tenant."""
    created = _create(client).json()

    response = client.patch(f"/api/v1/tenants/{created['id']}", json={"name": "Alpha Hall"})

    assert response.status_code == 200
    assert response.json()["name"] == "Alpha Hall"
    assert response.json()["slug"] == "alpha"


def test_update_tenant_revalidates_new_key(client, accounts):
    """A replacement key is checked upstream and rejected keys change nothing."""
    created = _create(client).json()

    bad = client.patch(f"/api/v1/tenants/{created['id']}", json={"api_key": "sk_wrong_key_123"})
    good = client.patch(f"/api/v1/tenants/{created['id']}", json={"api_key": "sk_beta_7654321"})

    assert bad.status_code == 400
    assert good.status_code == 200
    assert good.json()["api_key_masked"].endswith("4321")


def test_update_tenant_not_found(client):
    """Test updating an unknown tenant."""
    assert client.patch("/api/v1/tenants/999", json={"name": "X"}).status_code == 404


def test_delete_tenant(client, accounts):
    """Test deleting a tenant."""
    created = _create(client).json()

    response = client.delete(f"/api/v1/tenants/{created['id']}", params={"delete_events": True})

    assert response.status_code == 204
    assert client.get(f"/api/v1/tenants/{created['id']}").status_code == 404


def test_delete_tenant_not_found(client):
    """Test deleting an unknown tenant."""
    assert client.delete("/api/v1/tenants/999").status_code == 404


def test_health(client):
    """Test health check endpoint."""
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_metrics(client):
    """Test Prometheus metrics endpoint."""
    client.get("/health")

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "eventsync_api_requests_total" in response.text
