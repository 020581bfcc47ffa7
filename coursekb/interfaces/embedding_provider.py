"""Abstract base class for text-embedding service providers.

Defines the contract for turning text into fixed-dimension vectors.
Implementations may wrap an OpenAI-compatible embeddings API, Nomic
``nomic-embed-text`` served locally by Ollama, or any other backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations (coursekb/providers/embedding/):
#   OpenAIEmbeddingProvider: text-embedding-ada-002 by default
#   NomicEmbeddingProvider: nomic-embed-text via Ollama (local)
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the knowledge base.

    Callers go through
    :class:`~coursekb.services.embedding_service.EmbeddingService`, which
    adds timeouts, retries and count/dimension checks on top of this
    interface.
    """

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed.  Implementations split the
            batch internally if the underlying API has a per-call limit.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*.

        Raises
        ------
        coursekb.utils.errors.RateLimitError
            If the provider throttled the request.
        coursekb.utils.errors.ProviderUnavailableError
            If the provider could not be reached.
        coursekb.utils.errors.ProviderError
            For any other API failure.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors.

        Constant for the lifetime of the provider instance, e.g. ``1536``
        for ``text-embedding-ada-002`` or ``768`` for ``nomic-embed-text``.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier such as ``"openai_embedding"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured and reachable."""
