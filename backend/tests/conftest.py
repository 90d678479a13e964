"""
DocCRUD Backend - Test Configuration (conftest.py)
====================================================

Shared fixtures:
    ├── mongo_client:  in-memory mongomock-motor client (no server needed)
    ├── store:         StoreConnection wrapping mongo_client
    ├── app:           fresh create_app() with the store attached
    ├── test_client:   HTTPX AsyncClient talking to `app` over ASGITransport
    └── failing_store: StoreConnection whose collections raise driver errors
"""

import os

# Must run before doccrud.config is imported anywhere
os.environ["MONGODB_URL"] = "mongodb://test-host:27017"
os.environ["MONGODB_DATABASE"] = "doccrud_test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_ENABLED"] = "false"

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from doccrud.database import StoreConnection


@pytest.fixture
def mongo_client():
    return AsyncMongoMockClient()


@pytest.fixture
def store(mongo_client):
    return StoreConnection(
        url="mongodb://test-host:27017",
        database="doccrud_test",
        client=mongo_client,
    )


@pytest.fixture
def app(store):
    from doccrud.main import create_app
    return create_app(store=store)


@pytest_asyncio.fixture
async def test_client(app):
    """
    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def failing_store():
    """
    A store whose every collection call raises the error put in
    `failing_store.error` (set by the test before use).
    """
    collection = MagicMock()
    store = MagicMock(spec=StoreConnection)
    store.collection.return_value = collection

    def fail_with(exc):
        for name in ("insert_one", "find_one", "update_one", "delete_one"):
            setattr(collection, name, AsyncMock(side_effect=exc))
        cursor = MagicMock()
        cursor.to_list = AsyncMock(side_effect=exc)
        collection.find = MagicMock(return_value=cursor)

    store.fail_with = fail_with
    return store


@pytest.fixture
def sample_user():
    return {"name": "Ada Lovelace", "email": "ada@example.com", "role": "admin"}
