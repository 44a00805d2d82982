"""
Integration tests for the HTTP API: authentication, error envelopes and access control
"""

import pytest

from treasury.models.user import UserRole

PASSWORD = "Secreto123!"


@pytest.mark.integration
class TestHealth:
    """Test the health endpoint"""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["environment"] == "testing"
        assert "transactions" in data["tables"]


@pytest.mark.integration
class TestAuthentication:
    """Test registration, login and bearer tokens"""

    def test_register_login_me(self, client, login_as):
        headers = login_as("nuevo@example.com")
        response = client.get("/api/auth/me", headers=headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["email"] == "nuevo@example.com"
        assert data["role"] == "TREASURY_MANAGER"
        assert "password_hash" not in data

    def test_login_returns_token_metadata(self, client, login_as):
        login_as("meta@example.com")
        response = client.post("/api/auth/login", json={"email": "meta@example.com", "password": PASSWORD})
        data = response.json()["data"]
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == 480 * 60

    def test_duplicate_registration(self, client, auth_headers):
        response = client.post(
            "/api/auth/register", json={"email": "gestor@example.com", "password": PASSWORD}
        )
        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"

    def test_wrong_password(self, client, auth_headers):
        response = client.post("/api/auth/login", json={"email": "gestor@example.com", "password": "incorrecta"})
        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "UNAUTHORIZED"

    def test_missing_token(self, client):
        response = client.get("/api/companies")
        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHORIZED"

    def test_invalid_token(self, client):
        response = client.get("/api/companies", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_TOKEN"


@pytest.mark.integration
class TestErrorEnvelope:
    """Test the shape of error responses"""

    def test_request_validation(self, client):
        response = client.post("/api/auth/register", json={"email": "corto@example.com", "password": "123"})
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "VALIDATION_ERROR"
        assert body["validation_errors"]
        assert body["error_id"]

    def test_domain_validation(self, client, auth_headers, api_company):
        response = client.post(
            "/api/transactions",
            json={"company_id": api_company["id"], "type": "EXPENSE", "amount": "-5", "due_date": "2030-01-10"},
            headers=auth_headers,
        )
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert any("amount" in message for message in body["validation_errors"])

    def test_not_found(self, client, auth_headers):
        response = client.get("/api/companies/missing", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"


@pytest.mark.integration
class TestAccessControl:
    """Test data isolation between users and role permissions"""

    def test_other_users_data_is_invisible(self, client, login_as, api_company):
        headers = login_as("ajeno@example.com")
        response = client.get(f"/api/companies/{api_company['id']}", headers=headers)
        assert response.status_code == 404
        assert client.get("/api/companies", headers=headers).json()["data"] == []

    def test_viewer_can_read_but_not_write(self, client, viewer_headers):
        assert client.get("/api/companies", headers=viewer_headers).status_code == 200
        response = client.post("/api/companies", json={"name": "No permitida SL"}, headers=viewer_headers)
        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"

    def test_company_manager_cannot_manage_payment_orders(self, client, login_as):
        headers = login_as("empresa@example.com", UserRole.COMPANY_MANAGER)
        response = client.post("/api/payment-orders", json={"title": "Pagos", "items": []}, headers=headers)
        assert response.status_code == 403

    def test_audit_logs_need_permission(self, client, login_as, auth_headers, api_company):
        response = client.get("/api/audit-logs", params={"entity_type": "company"}, headers=auth_headers)
        assert response.status_code == 200
        [entry] = response.json()["data"]
        assert entry["action"] == "CREATE"
        assert entry["entity_id"] == api_company["id"]

        headers = login_as("empresa@example.com", UserRole.COMPANY_MANAGER)
        assert client.get("/api/audit-logs", headers=headers).status_code == 403


@pytest.mark.integration
class TestRateLimiting:
    """Test 429 responses once a window is exhausted"""

    def test_auth_rate_limit(self, limited_client):
        client = limited_client(auth_max_requests=2)
        credentials = {"email": "limite@example.com", "password": PASSWORD}
        assert client.post("/api/auth/register", json=credentials).status_code == 201
        assert client.post("/api/auth/login", json=credentials).status_code == 200
        response = client.post("/api/auth/login", json=credentials)
        assert response.status_code == 429
        assert response.json()["code"] == "RATE_LIMITED"
        assert int(response.headers["Retry-After"]) >= 1

    def test_health_rate_limit(self, limited_client):
        client = limited_client(health_max_requests=2)
        assert client.get("/health").status_code == 200
        assert client.get("/health").status_code == 200
        response = client.get("/health")
        assert response.status_code == 429
        assert "Retry-After" in response.headers
