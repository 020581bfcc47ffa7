"""Abstract base class for vector-store service providers.

Defines the contract for durably storing knowledge-base records with their
embedding vectors and for filtered similarity search over them.  The
ingestion, feedback and retrieval services depend only on this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from coursekb.models.records import ChunkRecord, SearchFilters, SearchResult, StoreStats


# Concrete implementation: ChromaDBProvider (coursekb/providers/vector_store/)
class IVectorStoreProvider(ABC):
    """Contract for vector stores backing the course knowledge base.

    All query and mutation methods are async so network-backed stores do
    not block the event loop.
    """

    @abstractmethod
    async def add_records(
        self,
        records: list[ChunkRecord],
        embeddings: list[list[float]],
    ) -> list[str]:
        """Store *records* with their positionally aligned *embeddings*.

        Returns
        -------
        list[str]
            The stored record ids, in the same order as *records*.

        Raises
        ------
        coursekb.utils.errors.StoreError
            If the write fails.  When some records were committed before
            the failure, their ids are listed in ``committed_ids``.
        """

    @abstractmethod
    async def match_records(
        self,
        query_embedding: list[float],
        top_k: int,
        threshold: float,
        filters: SearchFilters | None = None,
    ) -> list[SearchResult]:
        """Return records similar to *query_embedding*.

        Every result has ``similarity >= threshold``; at most *top_k* are
        returned, sorted by descending similarity with ties kept in store
        order.  A ``None`` field in *filters* leaves that field
        unconstrained; ``filters.types`` matches any of the listed types.

        Raises
        ------
        coursekb.utils.errors.StoreError
            If the search fails.
        """

    @abstractmethod
    async def get_stats(self) -> StoreStats:
        """Return record counts, overall and broken down by type and course."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier such as ``"chromadb"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the store is reachable."""
