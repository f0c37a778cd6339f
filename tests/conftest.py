"""Shared fixtures for the storefront tests.

Both services run in-process against throwaway SQLite databases and a
temporary storage root. The environment is set before either service is
imported because their configuration is read at import time.
"""
import asyncio
import os
import tempfile
from pathlib import Path

STORAGE_ROOT = Path(tempfile.mkdtemp(prefix="storefront-tests-"))

os.environ["API_DATABASE_URL"] = f"sqlite+aiosqlite:///{STORAGE_ROOT / 'api.db'}"
os.environ["WEB_DATABASE_URL"] = f"sqlite+aiosqlite:///{STORAGE_ROOT / 'web.db'}"
os.environ["BLOB_ROOT"] = str(STORAGE_ROOT / "blobs")
os.environ["BLOB_BASE_URL"] = "http://api/blobs"
os.environ["FILESHARE_ROOT"] = str(STORAGE_ROOT / "shares")
os.environ["RABBITMQ_URL"] = ""
os.environ["ADMIN_PASSWORD"] = ""
os.environ["SECRET_KEY"] = "test-secret"

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from api_service.app.db import models as api_models  # noqa: E402,F401
from api_service.app.db.database import Base as ApiBase, SessionLocal as ApiSessionLocal  # noqa: E402
from api_service.app.db.database import engine as api_engine  # noqa: E402
from api_service.app.main import app as api_app  # noqa: E402
from web_service.app.api_client import FunctionsApiClient, get_api_client  # noqa: E402
from web_service.app.auth_utils import hash_password  # noqa: E402
from web_service.app.db import models as web_models  # noqa: E402,F401
from web_service.app.db.database import Base as WebBase, SessionLocal as WebSessionLocal  # noqa: E402
from web_service.app.db.database import engine as web_engine  # noqa: E402
from web_service.app.db.functions import create_user  # noqa: E402
from web_service.app.main import app as web_app  # noqa: E402


async def _reset(engine, base):
    async with engine.begin() as conn:
        await conn.run_sync(base.metadata.drop_all)
        await conn.run_sync(base.metadata.create_all)


@pytest.fixture(autouse=True)
def clean_databases():
    """Every test starts with empty tables."""
    asyncio.run(_reset(api_engine, ApiBase))
    asyncio.run(_reset(web_engine, WebBase))
    yield


@pytest.fixture
def api_session_factory():
    return ApiSessionLocal


@pytest.fixture
def api_client() -> TestClient:
    return TestClient(api_app)


@pytest.fixture
def web_client() -> TestClient:
    """Web front end wired to the in-process API."""
    web_app.dependency_overrides[get_api_client] = lambda: FunctionsApiClient(
        base_url="http://api", transport=httpx.ASGITransport(app=api_app),
    )
    yield TestClient(web_app)
    web_app.dependency_overrides.clear()


@pytest.fixture
def make_customer(api_client):
    def _make(username="jdoe", **fields):
        payload = {
            "name": "John",
            "surname": "Doe",
            "username": username,
            "email": f"{username}@example.com",
            "shipping_address": "1 Main Road",
        }
        payload.update(fields)
        response = api_client.post("/api/customers", json=payload)
        assert response.status_code == 201, response.text
        return response.json()
    return _make


@pytest.fixture
def make_product(api_client):
    def _make(product_name="Kettle", price="19.99", stock_available=10, **fields):
        payload = {
            "product_name": product_name,
            "description": "Stainless steel",
            "price": price,
            "stock_available": stock_available,
        }
        payload.update(fields)
        response = api_client.post("/api/products", json=payload)
        assert response.status_code == 201, response.text
        return response.json()
    return _make


@pytest.fixture
def make_user():
    """Create a web user directly in the user store."""
    def _make(username="jdoe", password="secret123", role="Customer", customer_id=None):
        async def _create():
            async with WebSessionLocal() as db:
                return await create_user(
                    db, username, f"{username}@example.com", hash_password(password),
                    role=role, customer_id=customer_id,
                )
        return asyncio.run(_create())
    return _make


@pytest.fixture
def login(web_client):
    def _login(username="jdoe", password="secret123"):
        response = web_client.post("/login", data={"username": username, "password": password})
        assert response.status_code == 200
        assert "access_token" in web_client.cookies
        return web_client
    return _login
