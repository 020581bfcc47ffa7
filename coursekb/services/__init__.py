"""Business services: ingestion, retrieval and feedback logging."""

from coursekb.services.embedding_service import EmbeddingService
from coursekb.services.feedback_service import FeedbackService
from coursekb.services.ingestion import IngestionService, TextChunker
from coursekb.services.record_writer import RecordWriter
from coursekb.services.retrieval_service import RetrievalService

__all__ = [
    "EmbeddingService",
    "FeedbackService",
    "IngestionService",
    "RecordWriter",
    "RetrievalService",
    "TextChunker",
]
