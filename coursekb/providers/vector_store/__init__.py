"""Vector store provider adapters."""

from coursekb.providers.vector_store.chromadb_provider import ChromaDBProvider

__all__ = ["ChromaDBProvider"]
