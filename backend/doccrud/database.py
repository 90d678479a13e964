"""
DocCRUD Backend - Document Store Connection
=============================================

What:  Owns the motor client, hands out collections, and exposes the
       connection to route handlers through a FastAPI dependency.
How:   A StoreConnection is built and connected once in the app lifespan,
       attached to `app.state.store`, and injected into each request via
       `get_store`. Nothing holds the client as module-level state.

Lifecycle:
    startup   → StoreConnection.connect()  (ping with tenacity retry)
    requests  → get_store(request).collection(name)
    shutdown  → StoreConnection.close()

The rest of the application consumes five driver primitives only:
insert_one, find, find_one, update_one (optional upsert) and delete_one.
"""

import logging
from typing import Any, Optional

from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import ConnectionFailure
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from doccrud.config import settings
from doccrud.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)


class StoreConnection:
    """
    Handle on one database of a MongoDB-compatible document store.

    A pre-built client may be injected (tests pass a mongomock-motor client);
    otherwise `connect()` creates an AsyncIOMotorClient from `url`.

    Attributes:
        database_name: Name of the database holding every collection
        connected:     True between a successful connect() and close()
    """

    def __init__(
        self,
        url: str,
        database: str,
        client: Optional[Any] = None,
        retry_attempts: int = 3,
        retry_min_wait: float = 1,
        retry_max_wait: float = 10,
        server_selection_timeout_ms: int = 5000,
    ):
        self.url = url
        self.database_name = database
        self.retry_attempts = retry_attempts
        self.retry_min_wait = retry_min_wait
        self.retry_max_wait = retry_max_wait
        self.server_selection_timeout_ms = server_selection_timeout_ms
        self._client = client
        self.connected = client is not None

    @classmethod
    def from_settings(cls) -> "StoreConnection":
        return cls(
            url=settings.mongodb_url,
            database=settings.mongodb_database,
            retry_attempts=settings.retry_max_attempts,
            retry_min_wait=settings.retry_min_wait,
            retry_max_wait=settings.retry_max_wait,
            server_selection_timeout_ms=settings.mongodb_server_selection_timeout_ms,
        )

    @property
    def client(self) -> Any:
        if self._client is None:
            raise StoreUnavailableError(context={"reason": "not_connected"})
        return self._client

    @property
    def database(self) -> Any:
        return self.client[self.database_name]

    def collection(self, name: str) -> Any:
        """Returns the driver collection `name` in the configured database."""
        return self.database[name]

    async def connect(self) -> None:
        """
        Creates the client (unless one was injected) and verifies the server
        answers a ping.

        Transient ConnectionFailure errors are retried with exponential
        backoff and jitter. When the attempts run out StoreUnavailableError is
        raised and the client stays open: motor reconnects by itself and the
        next successful ping() marks the store connected again.
        """
        if self._client is None:
            self._client = AsyncIOMotorClient(
                self.url,
                serverSelectionTimeoutMS=self.server_selection_timeout_ms,
            )

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(ConnectionFailure),
                stop=stop_after_attempt(self.retry_attempts),
                wait=wait_exponential_jitter(
                    initial=self.retry_min_wait,
                    max=self.retry_max_wait,
                    jitter=1 if self.retry_max_wait else 0,
                ),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    await self._client.admin.command("ping")
        except ConnectionFailure as e:
            logger.error(
                "Document store unreachable after %d attempts: %s",
                self.retry_attempts,
                str(e),
            )
            self.connected = False
            raise StoreUnavailableError(
                message="Could not connect to the document store.",
                context={"attempts": self.retry_attempts, "error_type": type(e).__name__},
            ) from e

        self.connected = True
        logger.info("Connected to document store database '%s'", self.database_name)

    async def ping(self) -> bool:
        """
        Liveness probe used by the health route and by get_store while the
        store is disconnected. Updates `connected` with the outcome.
        """
        if self._client is None:
            return False
        try:
            await self._client.admin.command("ping")
        except Exception as e:
            logger.warning("Document store ping failed: %s", str(e))
            self.connected = False
            return False
        if not self.connected:
            logger.info("Document store reachable again")
        self.connected = True
        return True

    def close(self) -> None:
        """Releases the client. Safe to call more than once."""
        if self._client is not None:
            self._client.close()
            self._client = None
        self.connected = False


async def get_store(request: Request) -> StoreConnection:
    """
    FastAPI dependency returning the connection attached during startup.

    A store that failed its startup ping is pinged again here, so record
    routes recover once the server is back.

    Raises:
        StoreUnavailableError: no store attached, or it still does not answer
    """
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise StoreUnavailableError(context={"reason": "no_store_attached"})
    if not store.connected and not await store.ping():
        raise StoreUnavailableError(context={"reason": "not_reachable"})
    return store
