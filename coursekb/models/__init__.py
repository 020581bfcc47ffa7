"""coursekb domain models; re-exports all public model classes."""

from __future__ import annotations

from coursekb.models.records import (
    ChunkProfile,
    ChunkProfileName,
    ChunkRecord,
    FeedbackOutcome,
    FeedbackResult,
    IngestionResult,
    RecordType,
    SearchFilters,
    SearchQuery,
    SearchResult,
    StoreStats,
)

__all__ = [
    "ChunkProfile",
    "ChunkProfileName",
    "ChunkRecord",
    "FeedbackOutcome",
    "FeedbackResult",
    "IngestionResult",
    "RecordType",
    "SearchFilters",
    "SearchQuery",
    "SearchResult",
    "StoreStats",
]
