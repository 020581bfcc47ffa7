"""Unit tests for coursekb domain models."""

from __future__ import annotations

import uuid

import pytest
from pydantic import ValidationError

from coursekb.models.records import (
    ChunkProfile,
    ChunkRecord,
    FeedbackOutcome,
    RecordType,
    SearchFilters,
    SearchQuery,
    SearchResult,
)


class TestChunkProfile:
    def test_overlap_must_be_below_size(self) -> None:
        with pytest.raises(ValidationError):
            ChunkProfile(size_words=100, overlap_words=100)

    def test_size_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            ChunkProfile(size_words=0, overlap_words=0)

    def test_zero_overlap_allowed(self) -> None:
        assert ChunkProfile(size_words=5, overlap_words=0).overlap_words == 0

    def test_frozen(self) -> None:
        profile = ChunkProfile(size_words=10, overlap_words=2)
        with pytest.raises(ValidationError):
            profile.size_words = 20


class TestChunkRecord:
    def test_id_is_fresh_uuid(self) -> None:
        first = ChunkRecord(course="bio", type=RecordType.RESOURCE, content="a")
        second = ChunkRecord(course="bio", type=RecordType.RESOURCE, content="a")
        assert first.id != second.id
        assert uuid.UUID(first.id).version == 4

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ChunkRecord(course="bio", type="lecture", content="a")

    def test_negative_chunk_index_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ChunkRecord(course="bio", type="resource", content="a", chunk_index=-1)


class TestEnums:
    def test_record_type_values(self) -> None:
        assert {t.value for t in RecordType} == {
            "resource",
            "instruction",
            "completion_good",
            "completion_bad",
        }

    def test_feedback_outcome_values(self) -> None:
        assert {o.value for o in FeedbackOutcome} == {"success", "failure"}


class TestSearchFilters:
    def test_blank_and_empty_become_unconstrained(self) -> None:
        query = SearchQuery(query_text="q", course="  ", types=[], subtopic="", assignment_type=None)
        filters = SearchFilters.from_query(query)
        assert filters.is_unconstrained()
        assert filters.types is None

    def test_values_are_kept_and_stripped(self) -> None:
        query = SearchQuery(
            query_text="q",
            course=" bio ",
            types=["resource", "instruction", "resource"],
            subtopic="cells",
            assignment_type="essay",
        )
        filters = SearchFilters.from_query(query)
        assert filters.course == "bio"
        assert filters.types == [RecordType.RESOURCE, RecordType.INSTRUCTION]
        assert filters.subtopic == "cells"
        assert filters.assignment_type == "essay"
        assert not filters.is_unconstrained()


class TestSearchQuery:
    def test_defaults(self) -> None:
        query = SearchQuery(query_text="photosynthesis")
        assert query.top_k == 10
        assert query.threshold == 0.7

    @pytest.mark.parametrize("threshold", [-0.1, 1.1])
    def test_threshold_bounds(self, threshold: float) -> None:
        with pytest.raises(ValidationError):
            SearchQuery(query_text="q", threshold=threshold)

    def test_top_k_positive(self) -> None:
        with pytest.raises(ValidationError):
            SearchQuery(query_text="q", top_k=0)


def test_search_result_similarity_bounds() -> None:
    record = ChunkRecord(course="bio", type="resource", content="x")
    with pytest.raises(ValidationError):
        SearchResult(record=record, similarity=1.5)
