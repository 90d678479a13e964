"""
DocCRUD Backend - HTTP Client
===============================

What:  The consumer side of the API. Each user action (submit a form, click
       delete, open a page) becomes exactly one HTTP request, and the JSON
       acknowledgment decides what happens next.
How:   CollectionClient wraps an httpx.AsyncClient bound to one collection.
       CollectionView and RecordForm hold the state a page would hold (a
       loaded list, an edit form) and update it from the responses.

Success is read from the acknowledgment, not from the status code alone:

    create  → response carries insertedId
    update  → modifiedCount > 0 (or a record was upserted)
    patch   → modifiedCount > 0
    delete  → deletedCount > 0

There is no retry, debounce or optimistic concurrency: one request, one
response handler.

Example:
    async with CollectionClient("http://localhost:8000", "users") as users:
        user_id = await users.create({"name": "Ada", "email": "ada@example.com"})
        view = CollectionView(users)
        await view.load()
        await view.remove(user_id)
"""

import logging
from typing import Any, Callable, Dict, List, Optional

import httpx

from doccrud.exceptions import RequestFailedError

logger = logging.getLogger(__name__)

Notifier = Callable[[str], None]


def _log_notice(message: str) -> None:
    logger.info(message)


class CollectionClient:
    """
    Issues CRUD requests against /api/{collection}.

    Args:
        base_url:   Service root, e.g. "http://localhost:8000"
        collection: Collection name
        http:       Existing httpx.AsyncClient to reuse (the caller closes it)
        notify:     Called with a short message after each successful action
        timeout:    Per-request timeout in seconds for an owned client
    """

    def __init__(
        self,
        base_url: str,
        collection: str,
        http: Optional[httpx.AsyncClient] = None,
        notify: Optional[Notifier] = None,
        timeout: float = 10.0,
    ):
        self.collection = collection
        self.notify = notify or _log_notice
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._path = f"/api/{collection}"

    async def __aenter__(self) -> "CollectionClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    # ── Response handling ─────────────────────────────────────────────────

    @staticmethod
    def _raise_for_error(response: httpx.Response) -> None:
        if response.is_success:
            return
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        raise RequestFailedError(
            status_code=response.status_code,
            error=body.get("error", "http_error"),
            message=body.get("message", response.reason_phrase or "The request failed"),
            context={"request_id": body.get("request_id") or response.headers.get("X-Request-ID")},
        )

    # ── Operations ────────────────────────────────────────────────────────

    async def create(self, fields: Dict[str, Any]) -> Optional[str]:
        """Creates a record. Returns the assigned id, or None when absent."""
        response = await self._http.post(self._path, json=fields)
        self._raise_for_error(response)
        inserted_id = response.json().get("insertedId")
        if inserted_id:
            self.notify(f"Record {inserted_id} created in {self.collection}")
        return inserted_id

    async def list(self, **filters: Any) -> List[Dict[str, Any]]:
        """Reads every record equal to `filters` on each given field."""
        response = await self._http.get(self._path, params=filters or None)
        self._raise_for_error(response)
        return response.json()

    async def get(self, record_id: str) -> Optional[Dict[str, Any]]:
        """Reads one record; None when the service answers 404."""
        response = await self._http.get(f"{self._path}/{record_id}")
        if response.status_code == 404:
            return None
        self._raise_for_error(response)
        return response.json()

    async def update(
        self,
        record_id: str,
        fields: Dict[str, Any],
        upsert: Optional[bool] = None,
    ) -> bool:
        """Merges `fields` into the record. True when something changed."""
        params = None if upsert is None else {"upsert": str(upsert).lower()}
        response = await self._http.put(f"{self._path}/{record_id}", json=fields, params=params)
        self._raise_for_error(response)
        ack = response.json()
        changed = ack.get("modifiedCount", 0) > 0 or bool(ack.get("upsertedId"))
        if changed:
            self.notify(f"Record {record_id} updated")
        return changed

    async def patch(self, fields: Dict[str, Any], match_field: Optional[str] = None) -> bool:
        """Merges `fields` into the record matched by `match_field`."""
        params = {"match": match_field} if match_field else None
        response = await self._http.patch(self._path, json=fields, params=params)
        self._raise_for_error(response)
        changed = response.json().get("modifiedCount", 0) > 0
        if changed:
            self.notify(f"Record in {self.collection} patched")
        return changed

    async def delete(self, record_id: str) -> bool:
        """Deletes a record. True when one was removed."""
        response = await self._http.delete(f"{self._path}/{record_id}")
        self._raise_for_error(response)
        deleted = response.json().get("deletedCount", 0) > 0
        if deleted:
            self.notify(f"Record {record_id} deleted")
        return deleted


class CollectionView:
    """
    A list page: loads the collection once and keeps it as local state.

    Deleting through the view removes the row from `records` without
    fetching the list again.
    """

    def __init__(self, client: CollectionClient, filters: Optional[Dict[str, Any]] = None):
        self.client = client
        self.filters = dict(filters or {})
        self.records: List[Dict[str, Any]] = []
        self.loaded = False

    async def load(self) -> List[Dict[str, Any]]:
        if not self.loaded:
            self.records = await self.client.list(**self.filters)
            self.loaded = True
        return self.records

    async def remove(self, record_id: str) -> bool:
        deleted = await self.client.delete(record_id)
        if deleted:
            self.records = [r for r in self.records if r.get("id") != record_id]
        return deleted


class RecordForm:
    """
    A create/edit form.

    With a `record_id` the form edits that record: load() pre-populates
    `fields` from it and submit() sends an update. Without one, submit()
    creates a record and clears `fields` on success.
    """

    def __init__(self, client: CollectionClient, record_id: Optional[str] = None):
        self.client = client
        self.record_id = record_id
        self.fields: Dict[str, Any] = {}

    async def load(self) -> Dict[str, Any]:
        if self.record_id is None:
            return self.fields
        record = await self.client.get(self.record_id)
        if record is not None:
            self.fields = {k: v for k, v in record.items() if k != "id"}
        return self.fields

    async def submit(self) -> bool:
        if self.record_id is None:
            inserted_id = await self.client.create(self.fields)
            if inserted_id:
                self.fields = {}
                return True
            return False
        return await self.client.update(self.record_id, self.fields)
