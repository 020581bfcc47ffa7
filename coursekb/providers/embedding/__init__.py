"""Embedding provider adapters."""

from coursekb.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from coursekb.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["NomicEmbeddingProvider", "OpenAIEmbeddingProvider"]
