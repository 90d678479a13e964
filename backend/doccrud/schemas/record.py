"""
DocCRUD Backend - Pydantic Request/Response Schemas
=====================================================

What:  The structural types of every acknowledgment the API returns.
How:   Field names are snake_case in Python and camelCase on the wire
       (`insertedId`, `modifiedCount`, ...), matching what the store driver
       reports. FastAPI serializes response models by alias.

Records themselves are schemaless and travel as plain JSON objects; only
the acknowledgments and error/health envelopes have fixed shapes.
"""

from typing import Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Acknowledgments
# ══════════════════════════════════════════════════════════════════════════


class CreateResponse(BaseModel):
    """Returned by POST /api/{collection} with HTTP 201."""

    inserted_id: str = Field(alias="insertedId", description="Store-assigned record id")

    model_config = {"populate_by_name": True}


class UpdateResponse(BaseModel):
    """
    Returned by PUT /api/{collection}/{id} and PATCH /api/{collection}.

    modified_count is 0 when the target matched but every given field already
    had the given value; upserted_id is set only when PUT created the record.
    """

    matched_count: int = Field(alias="matchedCount", description="Documents matched by the filter")
    modified_count: int = Field(alias="modifiedCount", description="Documents actually changed")
    upserted_id: Optional[str] = Field(
        default=None,
        alias="upsertedId",
        description="Id of the record created by an upsert (null otherwise)",
    )

    model_config = {"populate_by_name": True}


class DeleteResponse(BaseModel):
    """Returned by DELETE /api/{collection}/{id}. A missing record yields 0."""

    deleted_count: int = Field(alias="deletedCount", description="Documents removed (0 or 1)")

    model_config = {"populate_by_name": True}


# ══════════════════════════════════════════════════════════════════════════
# Error and Health Envelopes
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Error format shared by every endpoint.

    Example:
        {
            "error": "not_found",
            "message": "record with ID '65f0c1...' was not found",
            "request_id": "a1b2c3d4"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Document store connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
