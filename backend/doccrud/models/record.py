"""
DocCRUD Backend - Record Document Helpers
===========================================

What:  Conversions between store documents and API Records.
How:   The store keys documents by `_id` (ObjectId). On the wire a Record
       carries the same value as the string field `id`, and any nested
       ObjectId is rendered as its hex string.
"""

from typing import Any, Dict, Mapping

from bson import ObjectId
from bson.errors import InvalidId

from doccrud.exceptions import ValidationError

# Keys a client may never write: the identifier is assigned by the store
IDENTIFIER_FIELDS = ("id", "_id")


def parse_object_id(value: str, field: str = "id") -> ObjectId:
    """
    Parses a record identifier taken from a path or a body.

    Raises:
        ValidationError: `value` is not a 24-character hex ObjectId
    """
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise ValidationError(
            message=f"'{value}' is not a valid record id",
            field=field,
        )


def _jsonable(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, Mapping):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def to_record(document: Mapping[str, Any]) -> Dict[str, Any]:
    """Maps a store document to an API Record (`_id` becomes `id`)."""
    record: Dict[str, Any] = {}
    if "_id" in document:
        record["id"] = _jsonable(document["_id"])
    for key, value in document.items():
        if key == "_id":
            continue
        record[key] = _jsonable(value)
    return record


def ensure_no_identifier(fields: Mapping[str, Any]) -> None:
    """Rejects a write body that tries to set the store-assigned id."""
    for key in IDENTIFIER_FIELDS:
        if key in fields:
            raise ValidationError(
                message="The record id is assigned by the store and cannot be written",
                field=key,
            )


def ensure_not_empty(fields: Mapping[str, Any]) -> None:
    if not fields:
        raise ValidationError(message="The request body must contain at least one field")


def ensure_plain_keys(fields: Mapping[str, Any]) -> None:
    """Rejects top-level keys the store would read as operators or paths."""
    for key in fields:
        if not key or key.startswith("$") or "." in key:
            raise ValidationError(
                message=f"'{key}' is not a valid field name",
                field=key,
            )


def validate_write_fields(fields: Mapping[str, Any]) -> None:
    """Checks shared by every body that is written to the store."""
    ensure_not_empty(fields)
    ensure_no_identifier(fields)
    ensure_plain_keys(fields)
