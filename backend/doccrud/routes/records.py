"""
DocCRUD Backend - Record Route Handlers
=========================================

What:  The HTTP surface over configured collections.

    POST   /api/{collection}              create        → 201 {insertedId}
    GET    /api/{collection}?f=v          read-all      → [Record, ...]
    GET    /api/{collection}/{id}         read-one      → Record | 404
    PUT    /api/{collection}/{id}         update        → {matchedCount, modifiedCount, upsertedId}
    PATCH  /api/{collection}?match=field  patch         → {matchedCount, modifiedCount, upsertedId}
    DELETE /api/{collection}/{id}         delete        → {deletedCount}

How:   Handlers extract path, query and body values and hand them to
       RecordService. Bodies must be JSON objects; FastAPI rejects anything
       else before the handler runs.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, Response

from doccrud.config import settings
from doccrud.database import StoreConnection, get_store
from doccrud.schemas.record import (
    CreateResponse,
    DeleteResponse,
    ErrorResponse,
    UpdateResponse,
)
from doccrud.services.record_service import record_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Records"])


@router.post(
    "/{collection}",
    status_code=201,
    response_model=CreateResponse,
    responses={
        201: {"description": "Record created", "model": CreateResponse},
        400: {"description": "Body cannot be stored", "model": ErrorResponse},
        404: {"description": "Unknown collection", "model": ErrorResponse},
        503: {"description": "Document store unavailable", "model": ErrorResponse},
    },
    summary="Create a record",
)
async def create_record(
    collection: str,
    fields: Dict[str, Any] = Body(..., description="Fields of the new record (no id)"),
    store: StoreConnection = Depends(get_store),
) -> CreateResponse:
    return await record_service.create_record(store=store, collection=collection, fields=fields)


@router.get(
    "/{collection}",
    response_model=List[Dict[str, Any]],
    responses={
        404: {"description": "Unknown collection", "model": ErrorResponse},
        503: {"description": "Document store unavailable", "model": ErrorResponse},
    },
    summary="List records, optionally filtered",
    description=(
        "Every query parameter is an equality filter on the field of the same name "
        "(e.g. ?email=a@x.com). Collections with a configured join are returned with "
        "the related record's fields copied onto each row."
    ),
)
async def list_records(
    collection: str,
    request: Request,
    response: Response,
    store: StoreConnection = Depends(get_store),
) -> List[Dict[str, Any]]:
    filters = dict(request.query_params)
    records = await record_service.list_records(
        store=store, collection=collection, filters=filters
    )
    response.headers["X-Total-Count"] = str(len(records))
    return records


@router.get(
    "/{collection}/{record_id}",
    response_model=Dict[str, Any],
    responses={
        400: {"description": "Malformed record id", "model": ErrorResponse},
        404: {"description": "Record or collection not found", "model": ErrorResponse},
    },
    summary="Get a single record by id",
)
async def get_record(
    collection: str,
    record_id: str,
    store: StoreConnection = Depends(get_store),
) -> Dict[str, Any]:
    return await record_service.get_record(
        store=store, collection=collection, record_id=record_id
    )


@router.put(
    "/{collection}/{record_id}",
    response_model=UpdateResponse,
    responses={
        400: {"description": "Malformed id or body", "model": ErrorResponse},
        404: {"description": "Unknown collection", "model": ErrorResponse},
    },
    summary="Update a record by id",
    description=(
        "Merges the given fields into the record; fields not in the body are left as "
        "they are. With upsert (the configured default), a missing record is created."
    ),
)
async def update_record(
    collection: str,
    record_id: str,
    fields: Dict[str, Any] = Body(..., description="Fields to set"),
    upsert: Optional[bool] = Query(
        default=None,
        description="Create the record when absent (defaults to the UPDATE_UPSERT setting)",
    ),
    store: StoreConnection = Depends(get_store),
) -> UpdateResponse:
    return await record_service.update_record(
        store=store,
        collection=collection,
        record_id=record_id,
        fields=fields,
        upsert=settings.update_upsert if upsert is None else upsert,
    )


@router.patch(
    "/{collection}",
    response_model=UpdateResponse,
    responses={
        400: {"description": "Match field missing or nothing to set", "model": ErrorResponse},
        404: {"description": "Unknown collection", "model": ErrorResponse},
    },
    summary="Patch the record matching a field",
    description=(
        "The body carries the match field (e.g. email) and the fields to set. The first "
        "record whose match field equals the body's value is updated."
    ),
)
async def patch_records(
    collection: str,
    fields: Dict[str, Any] = Body(..., description="Match field plus fields to set"),
    match: Optional[str] = Query(
        default=None,
        min_length=1,
        description="Name of the match field (defaults to the PATCH_MATCH_FIELD setting)",
    ),
    store: StoreConnection = Depends(get_store),
) -> UpdateResponse:
    return await record_service.patch_records(
        store=store,
        collection=collection,
        match_field=match or settings.patch_match_field,
        fields=fields,
    )


@router.delete(
    "/{collection}/{record_id}",
    response_model=DeleteResponse,
    responses={
        400: {"description": "Malformed record id", "model": ErrorResponse},
        404: {"description": "Unknown collection", "model": ErrorResponse},
    },
    summary="Delete a record by id",
    description="Deleting a record that does not exist returns deletedCount 0.",
)
async def delete_record(
    collection: str,
    record_id: str,
    store: StoreConnection = Depends(get_store),
) -> DeleteResponse:
    return await record_service.delete_record(
        store=store, collection=collection, record_id=record_id
    )
