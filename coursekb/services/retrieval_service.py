"""Similarity search over the knowledge base."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from coursekb.models.records import SearchFilters, SearchQuery, SearchResult
from coursekb.utils.errors import InputValidationError

if TYPE_CHECKING:
    from coursekb.interfaces.vector_store_provider import IVectorStoreProvider
    from coursekb.services.embedding_service import EmbeddingService

logger = structlog.get_logger(logger_name=__name__)


class RetrievalService:
    """Embeds a query and delegates the match to the vector store.

    Results come back exactly as the store ranks them: at most ``top_k``,
    all at or above ``threshold``, highest similarity first.
    """

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_store: IVectorStoreProvider,
    ) -> None:
        self._embedding_service = embedding_service
        self._vector_store = vector_store

    async def search(self, query: SearchQuery) -> list[SearchResult]:
        if not query.query_text or not query.query_text.strip():
            raise InputValidationError("Missing required field: query")

        query_embedding = await self._embedding_service.embed_single(query.query_text)
        filters = SearchFilters.from_query(query)

        results = await self._vector_store.match_records(
            query_embedding,
            top_k=query.top_k,
            threshold=query.threshold,
            filters=filters,
        )
        logger.info(
            "search_complete",
            query_length=len(query.query_text),
            course=filters.course,
            types=[t.value for t in filters.types] if filters.types else None,
            top_k=query.top_k,
            threshold=query.threshold,
            results=len(results),
        )
        return results
