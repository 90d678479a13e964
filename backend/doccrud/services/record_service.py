"""
DocCRUD Backend - Record Service
==================================

What:  The create / read / update / patch / delete operations over a named
       collection. Each operation is one store call (plus the batched join
       lookup for enriched reads).
How:   Stateless: the store connection and collection name are passed in on
       every call. Driver errors are translated here so routes only ever see
       DocCRUDError subclasses:

           ConnectionFailure      → StoreUnavailableError (503)
           any other PyMongoError → DatabaseError (500)

Update vs Patch:
    Both merge the supplied fields into one document with `$set`; fields the
    caller leaves out are untouched. They differ only in addressing: Update
    targets a record id (optionally upserting), Patch targets the first
    record whose match field equals the value carried in the body.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from pymongo.errors import ConnectionFailure, PyMongoError

from doccrud.config import settings
from doccrud.database import StoreConnection
from doccrud.exceptions import (
    DatabaseError,
    DocCRUDError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from doccrud.models.record import (
    IDENTIFIER_FIELDS,
    ensure_no_identifier,
    ensure_plain_keys,
    parse_object_id,
    to_record,
    validate_write_fields,
)
from doccrud.schemas.record import CreateResponse, DeleteResponse, UpdateResponse
from doccrud.services.enrichment import enrich_records

logger = logging.getLogger(__name__)


class RecordService:
    """
    Business logic for Record operations.

    Responsibilities:
        - create_record():  insert_one, returns the assigned id
        - list_records():   find by equality filter, join-enriched when configured
        - get_record():     find_one by id, NotFoundError when absent
        - update_record():  update_one by id with $set, optional upsert
        - patch_records():  update_one by match field with $set
        - delete_record():  delete_one by id, deletedCount 0 when absent
    """

    def _collection(self, store: StoreConnection, collection: str) -> Any:
        if collection not in settings.collections_list:
            raise NotFoundError(resource="collection", resource_id=collection)
        return store.collection(collection)

    def _store_error(
        self, exc: PyMongoError, action: str, context: Dict[str, Any]
    ) -> DocCRUDError:
        """Maps a driver exception to the application exception to raise."""
        context = {**context, "error_type": type(exc).__name__}
        if isinstance(exc, ConnectionFailure):
            logger.error("Document store unreachable while trying to %s: %s", action, str(exc))
            return StoreUnavailableError(context=context)
        logger.error("Database error while trying to %s: %s", action, str(exc), exc_info=True)
        return DatabaseError(
            message=f"Could not {action}. Please try again.",
            context=context,
        )

    async def create_record(
        self,
        store: StoreConnection,
        collection: str,
        fields: Mapping[str, Any],
    ) -> CreateResponse:
        """
        Inserts a new Record; the store assigns its id.

        Raises:
            ValidationError: empty body, body carrying `id`/`_id`, operator keys
            NotFoundError:   unknown collection
        """
        target = self._collection(store, collection)
        validate_write_fields(fields)
        document = dict(fields)

        try:
            result = await target.insert_one(document)
        except PyMongoError as e:
            raise self._store_error(e, "create the record", {"collection": collection}) from e

        inserted_id = str(result.inserted_id)
        logger.info("Record %s created in '%s'", inserted_id, collection)
        return CreateResponse(inserted_id=inserted_id)

    async def list_records(
        self,
        store: StoreConnection,
        collection: str,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Returns every Record equal to `filters` on each given field.

        An `id` filter is matched against the store identifier. Order is the
        store's natural order. When a join is configured for `collection`
        each row is enriched with its parent's fields.
        """
        target = self._collection(store, collection)
        query: Dict[str, Any] = dict(filters or {})
        ensure_plain_keys(query)
        if "_id" in query:
            raise ValidationError(message="Filter by 'id', not '_id'", field="_id")
        if "id" in query:
            query["_id"] = parse_object_id(query.pop("id"))

        try:
            documents = await target.find(query).to_list(length=None)
            records = [to_record(document) for document in documents]

            join = settings.join_for(collection)
            if join is not None and records:
                records = await enrich_records(store, join, records)
        except PyMongoError as e:
            raise self._store_error(e, "list records", {"collection": collection}) from e

        logger.debug("Listed %d records from '%s' (filter=%s)", len(records), collection, list(query))
        return records

    async def get_record(
        self,
        store: StoreConnection,
        collection: str,
        record_id: str,
    ) -> Dict[str, Any]:
        """
        Looks up one Record by exact id.

        Raises:
            ValidationError: `record_id` is not a valid id
            NotFoundError:   no Record has that id
        """
        target = self._collection(store, collection)
        object_id = parse_object_id(record_id)

        try:
            document = await target.find_one({"_id": object_id})
        except PyMongoError as e:
            raise self._store_error(
                e, "retrieve the record", {"collection": collection, "record_id": record_id}
            ) from e

        if document is None:
            raise NotFoundError(resource="record", resource_id=record_id)
        return to_record(document)

    async def update_record(
        self,
        store: StoreConnection,
        collection: str,
        record_id: str,
        fields: Mapping[str, Any],
        upsert: bool = False,
    ) -> UpdateResponse:
        """
        Merges `fields` into the Record with `record_id`.

        With `upsert`, a missing Record is created with that id and the given
        fields. Without it, a missing Record gives matchedCount 0.
        """
        target = self._collection(store, collection)
        object_id = parse_object_id(record_id)
        validate_write_fields(fields)

        try:
            result = await target.update_one(
                {"_id": object_id},
                {"$set": dict(fields)},
                upsert=upsert,
            )
        except PyMongoError as e:
            raise self._store_error(
                e, "update the record", {"collection": collection, "record_id": record_id}
            ) from e

        upserted_id = str(result.upserted_id) if result.upserted_id is not None else None
        logger.info(
            "Update of %s in '%s': matched=%d modified=%d upserted=%s",
            record_id,
            collection,
            result.matched_count,
            result.modified_count,
            upserted_id,
        )
        return UpdateResponse(
            matched_count=result.matched_count,
            modified_count=result.modified_count,
            upserted_id=upserted_id,
        )

    async def patch_records(
        self,
        store: StoreConnection,
        collection: str,
        match_field: str,
        fields: Mapping[str, Any],
    ) -> UpdateResponse:
        """
        Merges every field except `match_field` into the first Record whose
        `match_field` equals `fields[match_field]`.

        Raises:
            ValidationError: match field is the id, missing from the body, or
                             the body carries nothing else to set
        """
        target = self._collection(store, collection)
        if match_field in IDENTIFIER_FIELDS:
            raise ValidationError(
                message="Use PUT /api/{collection}/{id} to address a record by id",
                field=match_field,
            )
        ensure_no_identifier(fields)
        ensure_plain_keys(fields)
        if match_field not in fields:
            raise ValidationError(
                message=f"The request body must include the match field '{match_field}'",
                field=match_field,
            )
        changes = {key: value for key, value in fields.items() if key != match_field}
        if not changes:
            raise ValidationError(
                message=f"The request body must contain at least one field besides '{match_field}'",
            )

        try:
            result = await target.update_one(
                {match_field: {"$eq": fields[match_field]}},
                {"$set": changes},
            )
        except PyMongoError as e:
            raise self._store_error(
                e, "patch the record", {"collection": collection, "match_field": match_field}
            ) from e

        logger.info(
            "Patch of '%s' by %s: matched=%d modified=%d",
            collection,
            match_field,
            result.matched_count,
            result.modified_count,
        )
        return UpdateResponse(
            matched_count=result.matched_count,
            modified_count=result.modified_count,
        )

    async def delete_record(
        self,
        store: StoreConnection,
        collection: str,
        record_id: str,
    ) -> DeleteResponse:
        """Removes at most one Record. A missing Record is not an error."""
        target = self._collection(store, collection)
        object_id = parse_object_id(record_id)

        try:
            result = await target.delete_one({"_id": object_id})
        except PyMongoError as e:
            raise self._store_error(
                e, "delete the record", {"collection": collection, "record_id": record_id}
            ) from e

        if result.deleted_count:
            logger.info("Record %s deleted from '%s'", record_id, collection)
        return DeleteResponse(deleted_count=result.deleted_count)


record_service = RecordService()
