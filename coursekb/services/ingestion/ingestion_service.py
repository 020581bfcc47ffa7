"""Orchestrator for the text ingestion pipeline.

Pipeline stages: **validate -> chunk -> build records -> embed -> store**.

:class:`IngestionService` coordinates its collaborators (chunker, embedding
service, vector store) without any of them knowing about each other.  All
dependencies are injected through the constructor so providers can be
swapped, or faked in tests, without touching this class.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import structlog

from coursekb.models.records import ChunkProfileName, ChunkRecord, IngestionResult, RecordType
from coursekb.services.ingestion.chunker import (
    TextChunker,
    resolve_chunk_profile,
    resolve_chunk_profile_name,
)
from coursekb.services.record_writer import RecordWriter
from coursekb.utils.errors import EmptyContentError, InputValidationError

if TYPE_CHECKING:
    from coursekb.interfaces.vector_store_provider import IVectorStoreProvider
    from coursekb.services.embedding_service import EmbeddingService

logger = structlog.get_logger(logger_name=__name__)


class IngestionService:
    """Chunks raw course text and stores one record per chunk.

    Parameters
    ----------
    chunker:
        Splits raw text into overlapping word windows.
    embedding_service:
        Generates embedding vectors for chunk text.
    vector_store:
        Persists records for similarity search.
    """

    def __init__(
        self,
        chunker: TextChunker,
        embedding_service: EmbeddingService,
        vector_store: IVectorStoreProvider,
    ) -> None:
        self._chunker = chunker
        self._writer = RecordWriter(embedding_service, vector_store)

    async def ingest(
        self,
        course: str,
        type: str | RecordType,
        raw_text: str,
        subtopic: str | None = None,
        assignment_type: str | None = None,
        source_name: str | None = None,
        chunk_profile: str | ChunkProfileName | None = None,
    ) -> IngestionResult:
        """Chunk, embed and store *raw_text* under the given metadata.

        Every chunk becomes a :class:`ChunkRecord` sharing the same course,
        type and tags, with ``chunk_index`` equal to its position.

        Raises
        ------
        InputValidationError
            If ``course`` or ``type`` is blank, ``raw_text`` is empty, or ``type`` is
            not a known record type.  Raised before any external call.
        EmptyContentError
            If the text contains no words (empty after whitespace is removed).
        ProviderError
            If embedding fails; nothing is written in that case.
        StoreError
            If the write fails; ``committed_ids`` lists what was stored.
        """
        start = time.monotonic()

        if not course or not course.strip():
            raise InputValidationError("Missing required field: course")
        course = course.strip()
        record_type = _parse_record_type(type)
        if not raw_text:
            raise InputValidationError("Missing required field: raw_text")

        profile_name = resolve_chunk_profile_name(chunk_profile)
        profile = resolve_chunk_profile(profile_name)
        chunks = self._chunker.chunk(raw_text, profile)
        if not chunks:
            raise EmptyContentError("Content produced no chunks")

        records = [
            ChunkRecord(
                course=course,
                type=record_type,
                subtopic=_optional(subtopic),
                assignment_type=_optional(assignment_type),
                source_name=_optional(source_name),
                chunk_index=index,
                content=text,
            )
            for index, text in enumerate(chunks)
        ]

        ids = await self._writer.write(records)
        elapsed = round(time.monotonic() - start, 3)

        logger.info(
            "ingestion_complete",
            course=course,
            type=record_type.value,
            source_name=source_name,
            profile=profile_name.value,
            chunks=len(ids),
            elapsed_s=elapsed,
        )
        return IngestionResult(
            chunk_count=len(ids),
            ids=ids,
            profile=profile_name,
            ingestion_time=elapsed,
        )


def _parse_record_type(value: str | RecordType | None) -> RecordType:
    if isinstance(value, RecordType):
        return value
    if not value or not str(value).strip():
        raise InputValidationError("Missing required field: type")
    try:
        return RecordType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in RecordType)
        raise InputValidationError(
            f"Invalid type '{value}'; expected one of: {allowed}"
        ) from None


def _optional(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None
