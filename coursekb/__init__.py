"""coursekb: course knowledge base for ingestion, retrieval and feedback logging."""

__version__ = "0.1.0"
