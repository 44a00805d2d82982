"""
Pytest configuration and fixtures for the treasury test suite
"""

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from treasury.api.main import create_app
from treasury.config.settings import (
    AppConfig,
    DatabaseConfig,
    Environment,
    RateLimitConfig,
    SecurityConfig,
    Settings,
)
from treasury.container import Container, cleanup_container
from treasury.models.account import Account
from treasury.models.company import Company
from treasury.models.transaction import Transaction, TransactionType
from treasury.models.user import UserCreate, UserRole
from treasury.models.worker import Worker

VALID_IBAN = "ES9121000418450200051332"
TEST_PASSWORD = "Secreto123!"


def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")


def make_settings(db_path, **rate_limit) -> Settings:
    return Settings(
        database=DatabaseConfig(path=str(db_path), connection_timeout=5.0),
        security=SecurityConfig(
            secret_key="test_secret_key_for_testing_only_32_chars",
            bcrypt_rounds=4,  # Faster for tests
        ),
        app=AppConfig(environment=Environment.TESTING, log_level="WARNING"),
        rate_limit=RateLimitConfig(enabled=bool(rate_limit), **rate_limit),
    )


@pytest.fixture
def test_settings(tmp_path):
    """Test settings on a throwaway database file with rate limiting disabled"""
    return make_settings(tmp_path / "treasury_test.db")


@pytest.fixture
def container(test_settings):
    """Fully wired container on a fresh database"""
    c = Container()
    c.configure(test_settings)
    yield c
    c.cleanup()


@pytest.fixture
def user(container):
    """Registered treasury manager"""
    return container.get_user_service().register(
        UserCreate(email="tesoreria@example.com", password=TEST_PASSWORD, display_name="Tesorería")
    )


@pytest.fixture
def other_user(container):
    """A second user whose data must stay invisible to ``user``"""
    return container.get_user_service().register(
        UserCreate(email="otro@example.com", password=TEST_PASSWORD, display_name="Otro")
    )


@pytest.fixture
def company(container, user):
    """Company owned by ``user``"""
    return container.get_company_service().create_company(user, Company(name="Acme Servicios SL", cif="b12345678"))


@pytest.fixture
def account(container, user, company):
    """Primary account with 10.000 € confirmed"""
    return container.get_account_service().create_account(
        user,
        Account(
            company_id=company.id,
            bank_name="BBVA",
            alias="Cuenta operativa",
            current_balance=Decimal("10000"),
            is_primary=True,
        ),
    )


@pytest.fixture
def worker(container, user, company):
    """Active worker with a valid Spanish IBAN"""
    return container.get_worker_service().create_worker(
        user,
        Worker(
            company_id=company.id,
            display_name="Ana García",
            iban=VALID_IBAN,
            default_amount=Decimal("1500"),
            default_extra_amount=Decimal("1800"),
        ),
    )


@pytest.fixture
def make_transaction(container, user, company):
    """Factory creating transactions through the service"""

    def factory(amount="100", tx_type=TransactionType.EXPENSE, due_date=None, **fields):
        result = container.get_transaction_service().create_transaction(
            user,
            Transaction(
                company_id=fields.pop("company_id", company.id),
                type=tx_type,
                amount=Decimal(str(amount)),
                due_date=due_date or date.today(),
                description=fields.pop("description", f"Movimiento {amount}"),
                **fields,
            ),
        )
        return result["transaction"]

    return factory


@pytest.fixture
def client(test_settings):
    """API client bound to a fresh database"""
    app = create_app(test_settings)
    with TestClient(app) as test_client:
        yield test_client
    cleanup_container()


def register_and_login(client, email, role=UserRole.TREASURY_MANAGER):
    """Register a user through the API and return its bearer headers"""
    response = client.post(
        "/api/auth/register",
        json={"email": email, "password": TEST_PASSWORD, "display_name": email.split("@")[0], "role": role.value},
    )
    assert response.status_code == 201, response.text
    response = client.post("/api/auth/login", json={"email": email, "password": TEST_PASSWORD})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['data']['access_token']}"}


@pytest.fixture
def auth_headers(client):
    """Bearer headers of a treasury manager"""
    return register_and_login(client, "gestor@example.com")


@pytest.fixture
def viewer_headers(client):
    """Bearer headers of a read-only user"""
    return register_and_login(client, "lector@example.com", UserRole.VIEWER)


@pytest.fixture
def api_company(client, auth_headers):
    """Company created through the API"""
    response = client.post("/api/companies", json={"name": "Acme API SL"}, headers=auth_headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture
def api_account(client, auth_headers, api_company):
    """Account with 5.000 € created through the API"""
    response = client.post(
        "/api/accounts",
        json={"company_id": api_company["id"], "bank_name": "Santander", "current_balance": "5000"},
        headers=auth_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture
def login_as(client):
    """Register and log in another user on ``client``"""

    def login(email, role=UserRole.TREASURY_MANAGER):
        return register_and_login(client, email, role)

    return login


@pytest.fixture
def limited_client(tmp_path):
    """Factory for API clients with rate limiting switched on"""
    clients = []

    def factory(**rate_limit):
        app = create_app(make_settings(tmp_path / f"limited_{len(clients)}.db", **rate_limit))
        test_client = TestClient(app)
        test_client.__enter__()
        clients.append(test_client)
        return test_client

    yield factory
    for test_client in clients:
        test_client.__exit__(None, None, None)
    cleanup_container()
