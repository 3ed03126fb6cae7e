import pytest
from fastapi.testclient import TestClient

from bulletin_service.config import Settings
from bulletin_service.main import create_app

TEST_SECRET = "test-secret-that-is-long-enough-for-hs256"


def make_settings(**overrides) -> Settings:
    values = {
        "DATABASE_URL": "sqlite://",
        "JWT_SECRET": TEST_SECRET,
        "APP_ENV": "test",
        "SEED_ACCOUNTS": [],
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def app():
    return create_app(make_settings())


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def register(client, name="Bob Smith", email="bob@example.com", password="testing12345"):
    return client.post("/auth/cadastrar", json={"name": name, "email": email, "password": password})


def login(client, email="bob@example.com", password="testing12345"):
    return client.post("/auth/login", json={"email": email, "password": password})


@pytest.fixture
def auth_header(client):
    register(client)
    token = login(client).json()["token"]
    return {"Authorization": f"Bearer {token}"}
