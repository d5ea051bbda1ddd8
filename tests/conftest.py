"""Shared pytest fixtures for the pizza API tests."""

import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app
from tests.mocks import MemoryStore

EMAIL = "test@test.com"
PASSWORD = "abCD12!@"
MISSING_ID = "5f0f2a2b9d1e8a3c4b5d6e7f"


@pytest.fixture
def settings() -> Settings:
    return Settings(environment="test", session_secret="test-secret", bcrypt_rounds=4)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def app(settings, store):
    return create_app(settings, store)


@pytest.fixture
def client(app):
    """Anonymous client; server errors are returned as 500 responses."""
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture
def auth_client(client):
    """Client holding the session cookie of a freshly signed-up user."""
    response = client.post("/api/auth/sign-up", json={"email": EMAIL, "password": PASSWORD})
    assert response.status_code == 201
    return client


@pytest.fixture
def create_pizza(auth_client):
    def _create(name: str = "Margherita", image: str = "margherita.png", price=10.5) -> dict:
        response = auth_client.post(
            "/api/pizzas", json={"name": name, "image": image, "price": price}
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def create_order(auth_client, create_pizza):
    def _create(pizza_ids=None, name: str = "Alice", address: str = "1 Main St") -> dict:
        if pizza_ids is None:
            pizza_ids = [create_pizza()["id"]]
        response = auth_client.post(
            "/api/orders",
            json={"customer": {"name": name, "address": address}, "pizzas": pizza_ids},
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create
