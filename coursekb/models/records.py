"""Knowledge-base data models for coursekb.

Defines Pydantic v2 models for chunk profiles, stored records, search
queries and results, and the summaries returned by the ingestion and
feedback services.  All models use frozen config so values handed between
services cannot be mutated along the way.

Record lifecycle:

    1. INGESTION: course material or instructions are split into word
       windows by the TextChunker, one :class:`ChunkRecord` per window.
    2. FEEDBACK: a graded completion becomes a single :class:`ChunkRecord`
       typed ``completion_good`` or ``completion_bad``.
    3. STORAGE: records and their embedding vectors (passed beside the
       records, positionally aligned) are written to the vector store.
    4. RETRIEVAL: a :class:`SearchQuery` is embedded and matched; the store
       answers with :class:`SearchResult` objects.

Records are never mutated after creation.
"""

from __future__ import annotations

import uuid
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RecordType(str, Enum):
    """Closed vocabulary of record categories stored in the knowledge base."""

    RESOURCE = "resource"
    INSTRUCTION = "instruction"
    COMPLETION_GOOD = "completion_good"
    COMPLETION_BAD = "completion_bad"


class FeedbackOutcome(str, Enum):
    """Explicit grading outcome accepted by the feedback logger."""

    SUCCESS = "success"
    FAILURE = "failure"


class ChunkProfileName(str, Enum):
    """Named chunking profiles.  Unknown names fall back to ``DEFAULT``."""

    SHORT_FORM = "short_form"
    DEFAULT = "default"
    LONG_BOOK = "long_book"


# ---------------------------------------------------------------------------
# ChunkProfile: word-window configuration for the TextChunker.
# ---------------------------------------------------------------------------
class ChunkProfile(BaseModel):
    """Window size and overlap, both counted in words.

    ``overlap_words`` must be strictly smaller than ``size_words`` so every
    window advances by at least one word.
    """

    model_config = ConfigDict(frozen=True)

    size_words: int = Field(gt=0, description="Maximum words per chunk.")
    overlap_words: int = Field(
        ge=0, description="Words shared by consecutive chunks."
    )

    @model_validator(mode="after")
    def _overlap_below_size(self) -> ChunkProfile:
        if self.overlap_words >= self.size_words:
            raise ValueError(
                f"overlap_words ({self.overlap_words}) must be smaller than "
                f"size_words ({self.size_words})"
            )
        return self


# ---------------------------------------------------------------------------
# ChunkRecord: the fundamental unit of the knowledge base.
# ---------------------------------------------------------------------------
class ChunkRecord(BaseModel):
    """One retrievable unit: a chunk of source text or an encoded feedback summary.

    The embedding vector is not part of the record; writers pass it beside
    the record to :meth:`IVectorStoreProvider.add_records`.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique identifier (UUID) used as the store primary key.",
    )
    course: str = Field(min_length=1, description="Owning subject or class.")
    type: RecordType = Field(description="Record category.")
    subtopic: str | None = Field(default=None, description="Optional subtopic tag.")
    assignment_type: str | None = Field(
        default=None, description="Optional assignment category, e.g. 'essay'."
    )
    source_name: str | None = Field(
        default=None, description="Provenance label, e.g. a file or document title."
    )
    chunk_index: int = Field(
        default=0,
        ge=0,
        description="Zero-based position within the ingested source; 0 for feedback.",
    )
    content: str = Field(description="Literal text payload of this record.")


# ---------------------------------------------------------------------------
# Search models.
# ---------------------------------------------------------------------------
class SearchQuery(BaseModel):
    """A similarity search request with optional categorical filters."""

    model_config = ConfigDict(frozen=True)

    query_text: str = Field(description="Text to embed and match against.")
    course: str | None = None
    types: list[RecordType] | None = None
    subtopic: str | None = None
    assignment_type: str | None = None
    top_k: int = Field(default=10, ge=1, description="Maximum results returned.")
    threshold: float = Field(
        default=0.7, ge=0.0, le=1.0, description="Minimum similarity score."
    )


class SearchFilters(BaseModel):
    """Normalized categorical filters passed to the vector store.

    ``None`` always means "unconstrained".  Blank strings and empty type
    lists are normalized to ``None`` so an unset filter can never become a
    constraint that excludes every record.
    """

    model_config = ConfigDict(frozen=True)

    course: str | None = None
    types: list[RecordType] | None = None
    subtopic: str | None = None
    assignment_type: str | None = None

    @classmethod
    def from_query(cls, query: SearchQuery) -> SearchFilters:
        return cls(
            course=_blank_to_none(query.course),
            types=list(dict.fromkeys(query.types)) if query.types else None,
            subtopic=_blank_to_none(query.subtopic),
            assignment_type=_blank_to_none(query.assignment_type),
        )

    def is_unconstrained(self) -> bool:
        return (
            self.course is None
            and self.types is None
            and self.subtopic is None
            and self.assignment_type is None
        )


class SearchResult(BaseModel):
    """A stored record returned by a similarity search, with its score."""

    model_config = ConfigDict(frozen=True)

    record: ChunkRecord
    similarity: float = Field(
        ge=0.0,
        le=1.0,
        description="Cosine similarity between the query and this record.",
    )


# ---------------------------------------------------------------------------
# Service results.
# ---------------------------------------------------------------------------
class IngestionResult(BaseModel):
    """Summary of a single ingestion call."""

    model_config = ConfigDict(frozen=True)

    chunk_count: int = Field(ge=0, description="Number of chunk records stored.")
    ids: list[str] = Field(
        default_factory=list,
        description="Stored record ids, aligned with chunk order.",
    )
    profile: ChunkProfileName = Field(
        default=ChunkProfileName.DEFAULT, description="Profile used for chunking."
    )
    ingestion_time: float = Field(
        default=0.0, ge=0.0, description="Wall-clock seconds for the call."
    )


class FeedbackResult(BaseModel):
    """Identifier and derived type of a logged completion."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: RecordType


class StoreStats(BaseModel):
    """Aggregate counts over the stored records."""

    model_config = ConfigDict(frozen=True)

    total_records: int = Field(default=0, ge=0)
    records_by_type: dict[str, int] = Field(default_factory=dict)
    records_by_course: dict[str, int] = Field(default_factory=dict)


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None
