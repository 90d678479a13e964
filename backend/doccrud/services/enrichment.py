"""
DocCRUD Backend - Join Enrichment
===================================

What:  Copies display fields from a related collection onto rows read from
       another one (e.g. a job application gains its job's title and company).
How:   One batched lookup per read instead of one lookup per row:

    rows ──collect distinct foreign ids──▶ find({_id: {$in: ids}}) on target
         ◀──────── copy configured fields from each matching parent ─────────

Rows whose foreign id is missing, malformed or points at nothing are
returned as they are. Row order is preserved.
"""

import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId

from doccrud.config import JoinRule
from doccrud.database import StoreConnection
from doccrud.models.record import to_record

logger = logging.getLogger(__name__)


def _foreign_key(record: Dict[str, Any], join: JoinRule) -> Optional[str]:
    """Normalized string form of the row's foreign id, or None."""
    value = record.get(join.foreign_key)
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        return None
    return str(ObjectId(value))


async def enrich_records(
    store: StoreConnection,
    join: JoinRule,
    records: List[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """
    Returns `records` with `join.fields` copied from their parents.

    Args:
        store:   Connection used to read the target collection
        join:    The rule describing source, foreign key, target and fields
        records: API Records (already passed through to_record)

    Raises:
        pymongo.errors.PyMongoError: propagated to the caller, which owns
        error translation for the whole read
    """
    wanted = {key for key in (_foreign_key(r, join) for r in records) if key}
    if not wanted:
        return records

    cursor = store.collection(join.target).find(
        {"_id": {"$in": [ObjectId(key) for key in wanted]}}
    )
    parents = {
        str(document["_id"]): to_record(document)
        for document in await cursor.to_list(length=None)
    }
    logger.debug(
        "Join %s.%s -> %s: %d of %d parents found",
        join.source,
        join.foreign_key,
        join.target,
        len(parents),
        len(wanted),
    )

    enriched = []
    for record in records:
        parent = parents.get(_foreign_key(record, join) or "")
        if parent is None:
            enriched.append(record)
            continue
        merged = dict(record)
        for field in join.fields:
            if field in parent:
                merged[field] = parent[field]
        enriched.append(merged)
    return enriched
