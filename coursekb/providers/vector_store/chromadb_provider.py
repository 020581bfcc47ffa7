"""ChromaDB vector store provider adapter.

Wraps ``chromadb.PersistentClient`` (embedded, on-disk) or
``chromadb.HttpClient`` (remote Chroma server) to implement
:class:`IVectorStoreProvider`.  Uses cosine distance; similarity is
reported as ``1 - distance`` clamped to ``[0, 1]``.
"""

from __future__ import annotations

import asyncio
import os
from typing import Any, Callable, TypeVar

# Disable ChromaDB's anonymous telemetry before chromadb is imported.
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import chromadb
import httpx
import structlog

from coursekb.interfaces.embedding_provider import IEmbeddingProvider
from coursekb.interfaces.vector_store_provider import IVectorStoreProvider
from coursekb.models.records import (
    ChunkRecord,
    RecordType,
    SearchFilters,
    SearchResult,
    StoreStats,
)
from coursekb.utils.errors import ConfigurationError, StoreError
from coursekb.utils.retry import call_with_retries

logger = structlog.get_logger(logger_name=__name__)

_T = TypeVar("_T")

_UPSERT_PAGE_SIZE = 500
_STATS_PAGE_SIZE = 5000

# Errors worth another attempt against a remote Chroma server.
_TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    ConnectionError,
    httpx.TransportError,
)


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """Embedding function that prevents ChromaDB from loading its default model.

    coursekb always passes pre-computed embeddings, so ChromaDB's built-in
    embedder must never run.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "coursekb uses pre-computed embeddings; "
            "ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        return "noop_precomputed"


class ChromaDBProvider(IVectorStoreProvider):
    """Vector store provider backed by a ChromaDB collection.

    The injected :class:`IEmbeddingProvider` is used only for its dimension
    and name: every vector written or queried must have that dimension, and
    an existing collection built with another model is refused at start-up.
    All blocking ChromaDB calls run in a worker thread, bounded by
    *timeout_s* and retried on connection failures.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        persist_directory: str = "./data/chromadb",
        collection_name: str = "course_content",
        host: str = "",
        port: int = 8000,
        timeout_s: float = 30.0,
        max_retries: int = 2,
        backoff_s: float = 0.5,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._dimension = embedding_provider.get_dimension()
        self._collection_name = collection_name
        self._timeout_s = timeout_s
        self._max_retries = max_retries
        self._backoff_s = backoff_s

        client_settings = chromadb.config.Settings(anonymized_telemetry=False)
        if host:
            self._client = chromadb.HttpClient(host=host, port=port, settings=client_settings)
            self._location = f"{host}:{port}"
        else:
            self._client = chromadb.PersistentClient(
                path=persist_directory, settings=client_settings
            )
            self._location = persist_directory

        # A collection persisted with a different embedding function makes
        # newer ChromaDB versions raise ValueError; reopen it without one.
        try:
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=_NoopEmbeddingFunction(),
            )
        except ValueError:
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
            )

        self._validate_embedding_dimensions()
        logger.info(
            "chromadb_collection_ready",
            collection=collection_name,
            location=self._location,
            dimension=self._dimension,
        )

    # ------------------------------------------------------------------
    # Startup validation
    # ------------------------------------------------------------------

    def _validate_embedding_dimensions(self) -> None:
        """Refuse to start when stored vectors have a different dimension.

        Peeks at one stored vector and compares its length to the
        provider's declared dimension.
        """
        try:
            collection_count = self._collection.count()
            if collection_count == 0:
                return

            sample = self._collection.peek(limit=1)
            embeddings = sample.get("embeddings") if sample else None
            if embeddings is None or len(embeddings) == 0:
                return
            stored_dim = len(embeddings[0])
        except Exception as exc:
            logger.warning("embedding_dimension_check_skipped", error=str(exc))
            return

        if stored_dim != self._dimension:
            logger.error(
                "embedding_dimension_mismatch",
                stored_dim=stored_dim,
                expected_dim=self._dimension,
                provider=self._embedding_provider.get_provider_name(),
            )
            raise ConfigurationError(
                message=(
                    f"Embedding dimension mismatch: collection '{self._collection_name}' "
                    f"holds {stored_dim}-dim vectors but provider "
                    f"'{self._embedding_provider.get_provider_name()}' produces "
                    f"{self._dimension}-dim vectors. Set OPENAI_EMBEDDING_MODEL to "
                    f"the model used to build the collection."
                ),
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "embedding_dimension_validated",
            dimension=stored_dim,
            stored_records=collection_count,
        )

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def add_records(
        self,
        records: list[ChunkRecord],
        embeddings: list[list[float]],
    ) -> list[str]:
        """Upsert records in pages of 500.

        Upserts are keyed by record id, so retrying a page is idempotent.
        If a page fails, the ids of the pages already written are reported
        on the raised :class:`StoreError`.
        """
        if len(records) != len(embeddings):
            raise StoreError(
                message=(
                    f"records and embeddings length mismatch: "
                    f"{len(records)} != {len(embeddings)}"
                ),
                provider_name=self.get_provider_name(),
            )
        if not records:
            return []
        for vector in embeddings:
            self._check_dimension(vector)

        committed: list[str] = []
        for start in range(0, len(records), _UPSERT_PAGE_SIZE):
            page_records = records[start : start + _UPSERT_PAGE_SIZE]
            page_embeddings = embeddings[start : start + _UPSERT_PAGE_SIZE]
            ids = [record.id for record in page_records]

            try:
                await self._run(
                    "chromadb_upsert",
                    lambda: self._collection.upsert(
                        ids=ids,
                        embeddings=page_embeddings,
                        documents=[record.content for record in page_records],
                        metadatas=[self._record_to_metadata(r) for r in page_records],
                    ),
                )
            except Exception as exc:
                logger.error(
                    "chromadb_upsert_failed",
                    committed=len(committed),
                    failed_page_start=start,
                    total=len(records),
                    error=str(exc) or type(exc).__name__,
                )
                raise StoreError(
                    message=(
                        f"ChromaDB upsert failed after {len(committed)} of "
                        f"{len(records)} records were stored: "
                        f"{str(exc) or type(exc).__name__}"
                    ),
                    provider_name=self.get_provider_name(),
                    committed_ids=committed,
                ) from exc
            committed.extend(ids)

        logger.info(
            "chromadb_add_records",
            count=len(committed),
            pages=(len(records) + _UPSERT_PAGE_SIZE - 1) // _UPSERT_PAGE_SIZE,
        )
        return committed

    async def match_records(
        self,
        query_embedding: list[float],
        top_k: int,
        threshold: float,
        filters: SearchFilters | None = None,
    ) -> list[SearchResult]:
        """Run a cosine-similarity query with an optional ``where`` clause."""
        self._check_dimension(query_embedding)
        where_clause = self._translate_filters(filters) if filters else None

        try:
            total = await self._run("chromadb_count", self._collection.count)
            if total == 0 or top_k <= 0:
                return []

            kwargs: dict[str, Any] = {
                "query_embeddings": [query_embedding],
                "n_results": min(top_k, total),
                "include": ["documents", "metadatas", "distances"],
            }
            if where_clause:
                kwargs["where"] = where_clause

            results = await self._run(
                "chromadb_query", lambda: self._collection.query(**kwargs)
            )
        except StoreError:
            raise
        except Exception as exc:
            raise StoreError(
                message=f"ChromaDB query failed: {str(exc) or type(exc).__name__}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not results["ids"] or not results["ids"][0]:
            return []

        ids = results["ids"][0]
        documents = results["documents"][0] if results["documents"] else [""] * len(ids)
        metadatas = results["metadatas"][0] if results["metadatas"] else [{}] * len(ids)
        distances = results["distances"][0] if results["distances"] else [1.0] * len(ids)

        matches: list[SearchResult] = []
        for record_id, doc_text, meta, distance in zip(
            ids, documents, metadatas, distances, strict=True
        ):
            similarity = max(0.0, min(1.0, 1.0 - float(distance)))
            if similarity < threshold:
                continue
            matches.append(
                SearchResult(
                    record=self._metadata_to_record(record_id, meta or {}, doc_text or ""),
                    similarity=similarity,
                )
            )

        # sorted() is stable, so equal scores keep ChromaDB's order.
        ranked = sorted(matches, key=lambda m: m.similarity, reverse=True)[:top_k]

        logger.info(
            "chromadb_query",
            raw_results=len(ids),
            results_count=len(ranked),
            threshold=threshold,
            filtered=where_clause is not None,
            top_score=ranked[0].similarity if ranked else 0.0,
        )
        return ranked

    async def get_stats(self) -> StoreStats:
        """Count records by type and course, paging through all metadata."""
        try:
            total = await self._run("chromadb_count", self._collection.count)
            by_type: dict[str, int] = {}
            by_course: dict[str, int] = {}

            for offset in range(0, total, _STATS_PAGE_SIZE):
                page = await self._run(
                    "chromadb_get_metadata",
                    lambda offset=offset: self._collection.get(
                        include=["metadatas"], limit=_STATS_PAGE_SIZE, offset=offset
                    ),
                )
                for meta in page["metadatas"] or []:
                    record_type = str(meta.get("type", "unknown"))
                    course = str(meta.get("course", "unknown"))
                    by_type[record_type] = by_type.get(record_type, 0) + 1
                    by_course[course] = by_course.get(course, 0) + 1
        except StoreError:
            raise
        except Exception as exc:
            raise StoreError(
                message=f"ChromaDB get_stats failed: {str(exc) or type(exc).__name__}",
                provider_name=self.get_provider_name(),
            ) from exc

        return StoreStats(
            total_records=total,
            records_by_type=by_type,
            records_by_course=by_course,
        )

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        """Return ``True`` if the ChromaDB collection is accessible."""
        try:
            self._collection.count()
            return True
        except Exception:
            return False

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _run(self, operation_name: str, fn: Callable[[], _T]) -> _T:
        """Run a blocking ChromaDB call in a thread with timeout and retries."""
        try:
            return await call_with_retries(
                lambda: asyncio.to_thread(fn),
                operation_name=operation_name,
                max_retries=self._max_retries,
                backoff_s=self._backoff_s,
                timeout_s=self._timeout_s,
                retry_on=_TRANSIENT_ERRORS,
            )
        except asyncio.TimeoutError as exc:
            raise StoreError(
                message=f"{operation_name} timed out after {self._timeout_s}s",
                provider_name=self.get_provider_name(),
            ) from exc

    def _check_dimension(self, vector: list[float]) -> None:
        if len(vector) != self._dimension:
            raise StoreError(
                message=(
                    f"Vector has {len(vector)} dimensions; collection "
                    f"'{self._collection_name}' expects {self._dimension}"
                ),
                provider_name=self.get_provider_name(),
            )

    @staticmethod
    def _record_to_metadata(record: ChunkRecord) -> dict[str, str | int]:
        """Convert a ChunkRecord to a ChromaDB-compatible metadata dict.

        ChromaDB metadata values cannot be ``None``, so unset optional
        fields are left out.
        """
        meta: dict[str, str | int] = {
            "course": record.course,
            "type": record.type.value,
            "chunk_index": record.chunk_index,
        }
        if record.subtopic is not None:
            meta["subtopic"] = record.subtopic
        if record.assignment_type is not None:
            meta["assignment_type"] = record.assignment_type
        if record.source_name is not None:
            meta["source_name"] = record.source_name
        return meta

    @staticmethod
    def _metadata_to_record(record_id: str, meta: dict[str, Any], text: str) -> ChunkRecord:
        """Reverse :meth:`_record_to_metadata`."""
        return ChunkRecord(
            id=record_id,
            course=str(meta.get("course", "unknown")),
            type=RecordType(meta.get("type", RecordType.RESOURCE.value)),
            subtopic=meta.get("subtopic"),
            assignment_type=meta.get("assignment_type"),
            source_name=meta.get("source_name"),
            chunk_index=int(meta.get("chunk_index", 0)),
            content=text,
        )

    @staticmethod
    def _translate_filters(filters: SearchFilters) -> dict[str, Any] | None:
        """Translate :class:`SearchFilters` into a ChromaDB ``where`` clause.

        Unset filters contribute no clause, so an unconstrained filter set
        yields ``None``.  ChromaDB requires ``$and`` for two or more clauses.
        """
        if filters.is_unconstrained():
            return None

        clauses: list[dict[str, Any]] = []
        if filters.course is not None:
            clauses.append({"course": {"$eq": filters.course}})
        if filters.types:
            values = [t.value for t in filters.types]
            if len(values) == 1:
                clauses.append({"type": {"$eq": values[0]}})
            else:
                clauses.append({"type": {"$in": values}})
        if filters.subtopic is not None:
            clauses.append({"subtopic": {"$eq": filters.subtopic}})
        if filters.assignment_type is not None:
            clauses.append({"assignment_type": {"$eq": filters.assignment_type}})

        if not clauses:
            return None
        if len(clauses) == 1:
            return clauses[0]
        return {"$and": clauses}
