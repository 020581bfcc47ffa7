"""coursekb FastAPI application entry point.

Wires together providers, services, and routes via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml`` and
configures structured logging.

When no embedding provider or vector store can be built (missing API key,
unreachable Ollama, unreachable Chroma server), the services are left unset
and every operation answers 503 instead of the process failing to start.
A persisted collection whose vectors do not match the embedding model is
different: that raises :class:`ConfigurationError` and startup aborts.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from coursekb import __version__
from coursekb.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
    configure_validation_errors,
)
from coursekb.api.routes import router as api_router
from coursekb.config.loader import load_config
from coursekb.config.settings import Settings
from coursekb.interfaces.embedding_provider import IEmbeddingProvider
from coursekb.interfaces.vector_store_provider import IVectorStoreProvider
from coursekb.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from coursekb.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from coursekb.providers.vector_store.chromadb_provider import ChromaDBProvider
from coursekb.services.embedding_service import EmbeddingService
from coursekb.services.feedback_service import FeedbackService
from coursekb.services.ingestion import IngestionService, TextChunker
from coursekb.services.retrieval_service import RetrievalService
from coursekb.utils.errors import ConfigurationError
from coursekb.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "config.yaml"

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def _build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider | None:
    """Build the embedding provider named by ``EMBEDDING_PROVIDER``.

    Returns ``None`` when it is not configured or not reachable.
    """
    provider_name = app_settings.embedding_provider.strip().lower()

    if provider_name == "openai":
        if not app_settings.openai_api_key:
            _logger.warning("embedding_provider_unconfigured", provider="openai")
            return None
        return OpenAIEmbeddingProvider(settings=app_settings)

    if provider_name == "nomic":
        provider = NomicEmbeddingProvider(settings=app_settings)
        if provider.is_available():
            return provider
        _logger.warning(
            "embedding_provider_unreachable",
            provider="nomic",
            base_url=app_settings.ollama_base_url,
        )
        return None

    _logger.warning("embedding_provider_unknown", provider=provider_name)
    return None


def _build_vector_store(
    app_settings: Settings,
    embedding_provider: IEmbeddingProvider,
) -> IVectorStoreProvider | None:
    """Open the ChromaDB collection, or return ``None`` if Chroma is unreachable.

    A dimension mismatch against stored vectors is not recoverable and is
    re-raised.
    """
    try:
        return ChromaDBProvider(
            embedding_provider=embedding_provider,
            persist_directory=app_settings.chromadb_persist_dir,
            collection_name=app_settings.chromadb_collection,
            host=app_settings.chromadb_host,
            port=app_settings.chromadb_port,
            timeout_s=app_settings.store_timeout_s,
            max_retries=app_settings.max_retries,
            backoff_s=app_settings.retry_backoff_s,
        )
    except ConfigurationError:
        raise
    except Exception as exc:
        _logger.error(
            "vector_store_init_failed",
            provider="chromadb",
            host=app_settings.chromadb_host or None,
            error=str(exc),
        )
        return None


# ---------------------------------------------------------------------------
# Full DI assembly for the FastAPI application
# ---------------------------------------------------------------------------


def _build_all(app_settings: Settings) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    Services are ``None`` when their providers could not be built.
    """
    embedding_provider = _build_embedding_provider(app_settings)
    vector_store = (
        _build_vector_store(app_settings, embedding_provider)
        if embedding_provider is not None
        else None
    )

    ingestion_service = None
    retrieval_service = None
    feedback_service = None
    if embedding_provider is not None and vector_store is not None:
        embedding_service = EmbeddingService(
            provider=embedding_provider,
            timeout_s=app_settings.embedding_timeout_s,
            max_retries=app_settings.max_retries,
            backoff_s=app_settings.retry_backoff_s,
        )
        ingestion_service = IngestionService(
            chunker=TextChunker(),
            embedding_service=embedding_service,
            vector_store=vector_store,
        )
        retrieval_service = RetrievalService(
            embedding_service=embedding_service,
            vector_store=vector_store,
        )
        feedback_service = FeedbackService(
            embedding_service=embedding_service,
            vector_store=vector_store,
        )

    provider_registry = {
        "embedding": embedding_provider.get_provider_name() if embedding_provider else None,
        "vector_store": vector_store.get_provider_name() if vector_store else None,
    }

    return {
        "embedding_provider": embedding_provider,
        "vector_store": vector_store,
        "ingestion_service": ingestion_service,
        "retrieval_service": retrieval_service,
        "feedback_service": feedback_service,
        "provider_registry": provider_registry,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup."""
    components = _build_all(application.state.settings)

    for key, value in components.items():
        setattr(application.state, key, value)

    _logger.info(
        "app_startup",
        version=__version__,
        environment=application.state.settings.app_env,
        embedding=components["provider_registry"]["embedding"],
        vector_store=components["provider_registry"]["vector_store"],
        configured=components["ingestion_service"] is not None,
    )

    yield

    _logger.info("app_shutdown")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Build and configure the FastAPI application."""
    app_settings = app_settings or settings
    application = FastAPI(
        title="coursekb API",
        version=__version__,
        description=(
            "Ingest course material into a searchable knowledge base, retrieve "
            "relevant passages for a query, and log graded completions as "
            "feedback for future retrieval."
        ),
        lifespan=_lifespan,
    )
    application.state.settings = app_settings
    application.state.config = load_config(str(_CONFIG_PATH), settings=app_settings)

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application, allowed_origins=app_settings.cors_allowed_origins)
    configure_validation_errors(application)

    # -- API routes --
    application.include_router(api_router)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "coursekb.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
