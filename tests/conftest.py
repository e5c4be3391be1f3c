"""
Shared fixtures.

Service tests run against a throwaway SQLite file per test; API tests drive
the full app through FastAPI's TestClient against the same kind of database.
No network, no shared state between tests.
"""

from datetime import date

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from finance_api.config import Settings
from finance_api.db import Database
from finance_api.main import create_app
from finance_api.models import UserModel
from finance_api.schemas import TransactionIn


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        secret_key="test-secret",
        log_json=False,
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def database(settings):
    db = Database(settings.database_url)
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def session(database):
    async with database.session_factory() as s:
        yield s


@pytest_asyncio.fixture
async def users(session):
    """Two users; returns their ids as (alice, bob)."""
    alice = UserModel(name="Alice", email="alice@example.com", password_hash="x")
    bob = UserModel(name="Bob", email="bob@example.com", password_hash="x")
    session.add_all([alice, bob])
    await session.commit()
    return alice.id, bob.id


@pytest.fixture
def make_tx():
    def _make(**overrides) -> TransactionIn:
        data = {
            "type": "income",
            "category": "Salary",
            "amount": 100.0,
            "sender": "Employer",
            "receiver": "Me",
            "date": date(2024, 4, 1),
        }
        data.update(overrides)
        return TransactionIn(**data)

    return _make


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c


@pytest.fixture
def login(client):
    """Register a user and return bearer headers for them."""

    def _login(email="alice@example.com", password="password123", name="Alice"):
        resp = client.post("/auth/register", json={"name": name, "email": email, "password": password})
        assert resp.status_code == 201, resp.text
        resp = client.post("/auth/login", data={"username": email, "password": password})
        assert resp.status_code == 200, resp.text
        return {"Authorization": f"Bearer {resp.json()['access_token']}"}

    return _login


@pytest.fixture
def auth_headers(login):
    return login()
