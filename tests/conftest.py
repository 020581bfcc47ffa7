"""Shared pytest fixtures for the coursekb test suite."""

from __future__ import annotations

import hashlib
from pathlib import Path

import pytest

from coursekb.config.settings import Settings
from coursekb.interfaces.embedding_provider import IEmbeddingProvider
from coursekb.interfaces.vector_store_provider import IVectorStoreProvider
from coursekb.models.records import ChunkRecord, SearchFilters, SearchResult, StoreStats
from coursekb.services.embedding_service import EmbeddingService
from coursekb.services.feedback_service import FeedbackService
from coursekb.services.ingestion import IngestionService, TextChunker
from coursekb.services.retrieval_service import RetrievalService

# ---------------------------------------------------------------------------
# In-memory providers
# ---------------------------------------------------------------------------

EMBEDDING_DIM = 64


def hash_to_vector(text: str, dim: int = EMBEDDING_DIM) -> list[float]:
    """Generate a deterministic unit-length vector by hashing *text*.

    Same text always produces the same vector, so a stored chunk searched
    with its own text scores a similarity of 1.0.
    """
    raw = hashlib.sha256(text.encode("utf-8")).digest()
    while len(raw) < dim:
        raw += hashlib.sha256(raw).digest()
    values = [(byte - 127.5) / 127.5 for byte in raw[:dim]]
    magnitude = max(sum(v * v for v in values) ** 0.5, 1e-10)
    return [v / magnitude for v in values]


class HashEmbeddingProvider(IEmbeddingProvider):
    """In-memory deterministic embedding provider for tests."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [hash_to_vector(t) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        return (await self.embed([text]))[0]

    def get_dimension(self) -> int:
        return EMBEDDING_DIM

    def get_provider_name(self) -> str:
        return "hash-embedding"

    def is_available(self) -> bool:
        return True


class InMemoryVectorStore(IVectorStoreProvider):
    """Vector store backed by an insertion-ordered dict.

    Scores by cosine similarity (vectors are unit length, so a dot product)
    and honours the same match contract as the ChromaDB adapter.
    """

    def __init__(self) -> None:
        self.rows: dict[str, tuple[ChunkRecord, list[float]]] = {}
        self.add_calls = 0

    async def add_records(
        self,
        records: list[ChunkRecord],
        embeddings: list[list[float]],
    ) -> list[str]:
        if len(records) != len(embeddings):
            raise ValueError("records and embeddings length mismatch")
        self.add_calls += 1
        for record, vector in zip(records, embeddings, strict=True):
            self.rows[record.id] = (record, vector)
        return [record.id for record in records]

    async def match_records(
        self,
        query_embedding: list[float],
        top_k: int,
        threshold: float,
        filters: SearchFilters | None = None,
    ) -> list[SearchResult]:
        matches: list[SearchResult] = []
        for record, vector in self.rows.values():
            if filters is not None and not _matches(record, filters):
                continue
            dot = sum(a * b for a, b in zip(query_embedding, vector, strict=True))
            similarity = max(0.0, min(1.0, dot))
            if similarity >= threshold:
                matches.append(SearchResult(record=record, similarity=similarity))
        return sorted(matches, key=lambda m: m.similarity, reverse=True)[:top_k]

    async def get_stats(self) -> StoreStats:
        by_type: dict[str, int] = {}
        by_course: dict[str, int] = {}
        for record, _ in self.rows.values():
            by_type[record.type.value] = by_type.get(record.type.value, 0) + 1
            by_course[record.course] = by_course.get(record.course, 0) + 1
        return StoreStats(
            total_records=len(self.rows),
            records_by_type=by_type,
            records_by_course=by_course,
        )

    def get_provider_name(self) -> str:
        return "in-memory"

    def is_available(self) -> bool:
        return True


def _matches(record: ChunkRecord, filters: SearchFilters) -> bool:
    if filters.course is not None and record.course != filters.course:
        return False
    if filters.types is not None and record.type not in filters.types:
        return False
    if filters.subtopic is not None and record.subtopic != filters.subtopic:
        return False
    if filters.assignment_type is not None and record.assignment_type != filters.assignment_type:
        return False
    return True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def test_settings() -> Settings:
    """Settings that never touch a real provider and never read ``.env``."""
    return Settings(
        _env_file=None,
        openai_api_key="",
        embedding_provider="openai",
        max_retries=2,
        retry_backoff_s=0.0,
    )


@pytest.fixture
def embedding_provider() -> HashEmbeddingProvider:
    return HashEmbeddingProvider()


@pytest.fixture
def vector_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture
def embedding_service(embedding_provider: HashEmbeddingProvider) -> EmbeddingService:
    return EmbeddingService(provider=embedding_provider, timeout_s=5.0, max_retries=2, backoff_s=0.0)


@pytest.fixture
def ingestion_service(
    embedding_service: EmbeddingService, vector_store: InMemoryVectorStore
) -> IngestionService:
    return IngestionService(
        chunker=TextChunker(),
        embedding_service=embedding_service,
        vector_store=vector_store,
    )


@pytest.fixture
def retrieval_service(
    embedding_service: EmbeddingService, vector_store: InMemoryVectorStore
) -> RetrievalService:
    return RetrievalService(embedding_service=embedding_service, vector_store=vector_store)


@pytest.fixture
def feedback_service(
    embedding_service: EmbeddingService, vector_store: InMemoryVectorStore
) -> FeedbackService:
    return FeedbackService(embedding_service=embedding_service, vector_store=vector_store)


@pytest.fixture
def long_text() -> str:
    """1000 distinct words: ``w0 w1 ... w999``."""
    return " ".join(f"w{i}" for i in range(1000))
