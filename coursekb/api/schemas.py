"""Pydantic request/response schemas for the coursekb HTTP API.

Defines the public contract for the three operations (ingest, search, log
completion) plus health, the capability manifest and the error body.
Request schemas end with ``Request`` and response schemas with ``Response``.
Malformed bodies fail validation before any external call is made; the API
maps those failures to HTTP 400.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from coursekb.models.records import FeedbackOutcome, RecordType, SearchResult


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


class IngestContentRequest(BaseModel):
    """Raw course text to chunk, embed and store."""

    course: str = Field(..., min_length=1, description="Owning subject or class.")
    type: RecordType = Field(..., description="Record category for every chunk.")
    raw_text: str = Field(..., min_length=1, description="Text to ingest.")
    subtopic: str | None = None
    assignment_type: str | None = None
    chunk_profile: str | None = Field(
        default=None,
        description="short_form, default or long_book; unknown names use default.",
    )
    source_name: str | None = Field(default=None, description="Provenance label.")


class IngestContentResponse(BaseModel):
    success: bool = True
    chunks_stored: int
    ids: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


class SearchContentRequest(BaseModel):
    """Similarity search with optional filters.

    ``query`` may also be sent as ``queryText``.  ``top_k`` and
    ``threshold`` fall back to the configured defaults when omitted.
    """

    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("query", "queryText"),
        description="Text to match against stored records.",
    )
    course: str | None = None
    types: list[RecordType] | None = None
    subtopic: str | None = None
    assignment_type: str | None = None
    top_k: int | None = Field(default=None, ge=1, description="Maximum results.")
    threshold: float | None = Field(
        default=None, ge=0.0, le=1.0, description="Minimum similarity."
    )


class SearchResultItem(BaseModel):
    """A matched record flattened for the wire."""

    id: str
    course: str
    type: RecordType
    subtopic: str | None = None
    assignment_type: str | None = None
    source_name: str | None = None
    chunk_index: int
    content: str
    similarity: float

    @classmethod
    def from_result(cls, result: SearchResult) -> SearchResultItem:
        record = result.record
        return cls(
            id=record.id,
            course=record.course,
            type=record.type,
            subtopic=record.subtopic,
            assignment_type=record.assignment_type,
            source_name=record.source_name,
            chunk_index=record.chunk_index,
            content=record.content,
            similarity=result.similarity,
        )


class SearchContentResponse(BaseModel):
    success: bool = True
    results: list[SearchResultItem] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Feedback
# ---------------------------------------------------------------------------


class LogCompletionRequest(BaseModel):
    """A graded completion to store as a feedback record."""

    course: str = Field(..., min_length=1)
    assignment_type: str = Field(..., min_length=1)
    model_answer: str = Field(..., min_length=1, description="The submitted answer.")
    outcome: FeedbackOutcome = Field(..., description="Exactly 'success' or 'failure'.")
    subtopic: str | None = None
    original_prompt: str | None = None
    score: int | float | None = None
    teacher_feedback: str | None = None


class LogCompletionResponse(BaseModel):
    success: bool = True
    id: str


# ---------------------------------------------------------------------------
# Health, manifest, errors
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ManifestOperation(BaseModel):
    name: str
    method: str
    path: str
    description: str
    input_schema: dict[str, Any]


class ManifestResponse(BaseModel):
    """Machine-readable description of the operations this service offers."""

    name: str
    version: str
    description: str
    operations: list[ManifestOperation]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    success: bool = False
    error: str
    detail: str | None = None
