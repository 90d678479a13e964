"""
DocCRUD Backend - Store Connection Tests
==========================================

What we test:
    ✅ connect() retries transient ConnectionFailure and then succeeds
    ✅ connect() gives up after the configured attempts with StoreUnavailableError
    ✅ A store that failed at startup recovers once it answers a ping
    ✅ close() is idempotent and ping() reports False once closed
    ✅ get_store() rejects a missing or unreachable store
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo.errors import ConnectionFailure

from doccrud.database import StoreConnection, get_store
from doccrud.exceptions import StoreUnavailableError


def _mock_client(side_effect):
    client = MagicMock()
    client.admin.command = AsyncMock(side_effect=side_effect)
    return client


def _store(client, attempts=3):
    store = StoreConnection(
        url="mongodb://unused",
        database="doccrud_test",
        client=client,
        retry_attempts=attempts,
        retry_min_wait=0,
        retry_max_wait=0,
    )
    store.connected = False
    return store


class TestConnect:

    @pytest.mark.asyncio
    async def test_retries_then_connects(self):
        client = _mock_client([ConnectionFailure("down"), {"ok": 1}])
        store = _store(client)

        await store.connect()

        assert store.connected is True
        assert client.admin.command.await_count == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_attempts(self):
        client = _mock_client(ConnectionFailure("down"))
        store = _store(client, attempts=2)

        with pytest.raises(StoreUnavailableError) as exc_info:
            await store.connect()

        assert client.admin.command.await_count == 2
        assert exc_info.value.context["attempts"] == 2
        assert store.connected is False
        client.close.assert_not_called()

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self):
        client = _mock_client(RuntimeError("bad config"))
        store = _store(client)

        with pytest.raises(RuntimeError):
            await store.connect()
        assert client.admin.command.await_count == 1


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_ping_and_close(self):
        client = _mock_client([{"ok": 1}])
        store = _store(client)

        assert await store.ping() is True

        store.close()
        store.close()

        client.close.assert_called_once()
        assert await store.ping() is False
        with pytest.raises(StoreUnavailableError):
            store.collection("users")

    @pytest.mark.asyncio
    async def test_ping_failure_is_false(self):
        store = _store(_mock_client(ConnectionFailure("down")))
        assert await store.ping() is False

    def test_injected_client_counts_as_connected(self, mongo_client):
        store = StoreConnection("mongodb://unused", "doccrud_test", client=mongo_client)
        assert store.connected is True


class TestRecovery:

    @pytest.mark.asyncio
    async def test_failed_startup_then_store_comes_back(self):
        client = _mock_client([ConnectionFailure("down"), ConnectionFailure("down"), {"ok": 1}])
        store = _store(client, attempts=2)

        with pytest.raises(StoreUnavailableError):
            await store.connect()

        assert await store.ping() is True
        assert store.connected is True

    @pytest.mark.asyncio
    async def test_ping_failure_marks_disconnected(self):
        store = _store(_mock_client([{"ok": 1}, ConnectionFailure("down")]))

        assert await store.ping() is True
        assert await store.ping() is False
        assert store.connected is False


class TestGetStore:

    @staticmethod
    def _request(store):
        return SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(store=store)))

    @pytest.mark.asyncio
    async def test_returns_connected_store(self, store):
        assert await get_store(self._request(store)) is store

    @pytest.mark.asyncio
    async def test_missing_store(self):
        with pytest.raises(StoreUnavailableError):
            await get_store(self._request(None))

    @pytest.mark.asyncio
    async def test_unreachable_store(self):
        store = _store(_mock_client(ConnectionFailure("down")))

        with pytest.raises(StoreUnavailableError) as exc_info:
            await get_store(self._request(store))
        assert exc_info.value.context["reason"] == "not_reachable"

    @pytest.mark.asyncio
    async def test_disconnected_store_that_answers_is_returned(self):
        client = _mock_client([{"ok": 1}])
        store = _store(client)

        assert await get_store(self._request(store)) is store
        assert store.connected is True
        client.admin.command.assert_awaited_once_with("ping")
