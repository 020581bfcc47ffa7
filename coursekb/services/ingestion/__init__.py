"""Text ingestion pipeline for the coursekb knowledge base.

Stages:

1. **Chunk** (chunker.py / TextChunker) -- splits raw text into overlapping
   word windows sized by a named profile (short_form, default, long_book).

2. **Embed** (via EmbeddingService) -- generates one vector per chunk in a
   single aligned batch.

3. **Store** (via IVectorStoreProvider) -- persists the records with their
   vectors for similarity search.
"""

from coursekb.services.ingestion.chunker import TextChunker, resolve_chunk_profile
from coursekb.services.ingestion.ingestion_service import IngestionService

__all__ = [
    "IngestionService",
    "TextChunker",
    "resolve_chunk_profile",
]
