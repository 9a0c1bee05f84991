"""
tests/conftest.py -- Shared test fixtures for CarStore integration tests.

This module provides:
  - _make_test_stores(): creates isolated in-memory DBs for users + inventory
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus a seeded user and a pre-issued JWT
  - web_client: TestClient with follow_redirects=False for web route tests
  - car_payload / customer_payload: valid request bodies

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process. Each test
module gets its own database name so seeded users never collide.

Environment variables must be set before any core/auth import because
get_settings() is read once, at module load, by auth.tokens and api.main.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any core/auth/api import.
os.environ.setdefault("DEBUG", "true")  # auto-generated SECRET_KEY
os.environ.setdefault("BCRYPT_ROUNDS", "4")  # fast hashing in tests
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')  # TestClient's Host header

import pytest
from fastapi.testclient import TestClient

from api.main import attach_stores
from asgi import app
from auth.schemas import build_user_flow
from auth.store import UserStore
from auth.tokens import create_access_token
from inventory.store import InventoryStore

TEST_USERNAME = "testadmin"
TEST_EMAIL = "testadmin@carstore.example.com"
TEST_PASSWORD = "testpass123"


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, InventoryStore]:
    """Create isolated named shared-memory SQLite stores for test isolation.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    users_url = f"sqlite:///file:test_users_{db_suffix}?mode=memory&cache=shared&uri=true"
    inventory_url = f"sqlite:///file:test_inventory_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=users_url), InventoryStore(db_url=inventory_url)


def _seed_user(user_store: UserStore) -> int:
    """Create the test user through the real mutation flow (password gets hashed)."""
    return build_user_flow(user_store).create(
        {
            "fullname": "Test Admin",
            "username": TEST_USERNAME,
            "email": TEST_EMAIL,
            "password": TEST_PASSWORD,
            "is_admin": True,
        }
    )


def _patch_lifespan(user_store: UserStore, inventory: InventoryStore):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores (and flows built on them) into app.state so
    TestClient routes see isolated test DBs rather than the real database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        attach_stores(app, user_store, inventory)
        yield

    return test_lifespan


def _module_suffix(request: pytest.FixtureRequest) -> str:
    return request.module.__name__.rsplit(".", 1)[-1]


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request: pytest.FixtureRequest) -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, token, user_id) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so
    tests hit real route handlers and middleware but use isolated in-memory
    stores. The token is meant for the Authorization header; the client's
    cookie jar starts empty.
    """
    user_store, inventory = _make_test_stores(f"api_{_module_suffix(request)}")
    uid = _seed_user(user_store)
    token = create_access_token(user_store.get(uid), expire_seconds=3600)

    app.router.lifespan_context = _patch_lifespan(user_store, inventory)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, uid

    user_store.close()
    inventory.close()


@pytest.fixture(scope="module")
def web_client(request: pytest.FixtureRequest) -> Generator[tuple[TestClient, str], None, None]:
    """Yield (client, token) for web route integration tests.

    follow_redirects=False is essential for web route tests: we assert on
    redirect *locations* (e.g. 302 to /login), which are invisible once
    the client follows the redirect and returns the final 200 response.
    """
    user_store, inventory = _make_test_stores(f"web_{_module_suffix(request)}")
    uid = _seed_user(user_store)
    token = create_access_token(user_store.get(uid), expire_seconds=3600)

    app.router.lifespan_context = _patch_lifespan(user_store, inventory)

    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as client:
        yield client, token

    user_store.close()
    inventory.close()


# ---------------------------------------------------------------------------
# Valid payloads
# ---------------------------------------------------------------------------


@pytest.fixture
def car_payload() -> dict:
    return {
        "brand": "Volkswagen",
        "model": "Gol",
        "color": "azul",
        "year_manufacture": 2018,
        "imported": False,
        "plates": "ABC-1D23",
        "selling_date": "2021-06-15",
        "selling_price": 42500.0,
    }


@pytest.fixture
def customer_payload() -> dict:
    return {
        "name": "Maria da Silva",
        "ident_document": "123.456.789-09",
        "birth_date": "1985-04-12",
        "street_name": "Rua das Flores",
        "house_number": "120",
        "complements": "Apto 31",
        "district": "Centro",
        "municipality": "Franca",
        "state": "SP",
        "phone": "(16) 99123-4567",
        "email": "maria@example.com",
    }
