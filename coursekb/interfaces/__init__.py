"""Public interface definitions for the external services coursekb uses.

Every external service is reached exclusively through the abstract base
classes in this package.  Concrete adapters live in ``coursekb/providers/``
and are wired together in ``coursekb/main.py`` at application start, so
services can be tested against in-memory fakes.

    Interface              →  Concrete implementations
    ─────────────────────────────────────────────────────
    IEmbeddingProvider     →  OpenAIEmbeddingProvider, NomicEmbeddingProvider
    IVectorStoreProvider   →  ChromaDBProvider
"""

from coursekb.interfaces.embedding_provider import IEmbeddingProvider
from coursekb.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "IEmbeddingProvider",
    "IVectorStoreProvider",
]
