"""Shared embed-then-write path for the ingestion and feedback services."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from coursekb.utils.errors import StoreError

if TYPE_CHECKING:
    from coursekb.interfaces.vector_store_provider import IVectorStoreProvider
    from coursekb.models.records import ChunkRecord
    from coursekb.services.embedding_service import EmbeddingService

logger = structlog.get_logger(logger_name=__name__)


class RecordWriter:
    """Embeds texts for a batch of records and stores them in one call.

    The text that is embedded need not be the record content: feedback
    records store a labelled summary but embed only the model answer.
    """

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_store: IVectorStoreProvider,
    ) -> None:
        self._embedding_service = embedding_service
        self._vector_store = vector_store

    async def write(
        self,
        records: list[ChunkRecord],
        embed_texts: list[str] | None = None,
    ) -> list[str]:
        """Embed and store *records*, returning their ids in order.

        *embed_texts* defaults to each record's content.  Embedding
        failures propagate before anything is written.
        """
        if not records:
            return []
        texts = embed_texts if embed_texts is not None else [r.content for r in records]
        if len(texts) != len(records):
            raise ValueError(
                f"embed_texts and records length mismatch: {len(texts)} != {len(records)}"
            )

        embeddings = await self._embedding_service.embed(texts)

        try:
            ids = await self._vector_store.add_records(records, embeddings)
        except StoreError as exc:
            logger.error(
                "record_write_failed",
                store=self._vector_store.get_provider_name(),
                records=len(records),
                committed=len(exc.committed_ids),
                error=exc.message,
            )
            raise

        if len(ids) != len(records):
            raise StoreError(
                message=f"Store acknowledged {len(ids)} of {len(records)} records",
                provider_name=self._vector_store.get_provider_name(),
                committed_ids=ids,
            )
        return ids
