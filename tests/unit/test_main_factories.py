"""Unit tests for the provider and service factories in coursekb/main.py.

All external dependencies are mocked so no network calls or API keys are
required.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from fastapi import FastAPI

from coursekb.config.settings import Settings
from coursekb.main import _build_all, _build_embedding_provider, _build_vector_store, create_app
from coursekb.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from coursekb.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from coursekb.services.feedback_service import FeedbackService
from coursekb.services.ingestion import IngestionService
from coursekb.services.retrieval_service import RetrievalService
from coursekb.utils.errors import ConfigurationError
from tests.conftest import HashEmbeddingProvider, InMemoryVectorStore


def _settings(**overrides) -> Settings:
    defaults = {
        "_env_file": None,
        "embedding_provider": "openai",
        "openai_api_key": "",
        "ollama_base_url": "http://localhost:11434",
        "chromadb_host": "",
    }
    defaults.update(overrides)
    return Settings(**defaults)


# ======================================================================
# _build_embedding_provider
# ======================================================================


class TestBuildEmbeddingProvider:
    def test_openai_without_key_is_none(self) -> None:
        assert _build_embedding_provider(_settings()) is None

    def test_openai_with_key(self) -> None:
        provider = _build_embedding_provider(_settings(openai_api_key="sk-test"))
        assert isinstance(provider, OpenAIEmbeddingProvider)

    def test_nomic_when_reachable(self) -> None:
        with patch.object(NomicEmbeddingProvider, "is_available", return_value=True):
            provider = _build_embedding_provider(_settings(embedding_provider="nomic"))
        assert isinstance(provider, NomicEmbeddingProvider)

    def test_nomic_unreachable_is_none(self) -> None:
        with patch.object(NomicEmbeddingProvider, "is_available", return_value=False):
            assert _build_embedding_provider(_settings(embedding_provider="nomic")) is None

    def test_unknown_provider_is_none(self) -> None:
        assert _build_embedding_provider(_settings(embedding_provider="word2vec")) is None


# ======================================================================
# _build_vector_store
# ======================================================================


class TestBuildVectorStore:
    def test_connection_failure_is_none(self) -> None:
        with patch("coursekb.main.ChromaDBProvider", side_effect=RuntimeError("refused")):
            assert _build_vector_store(_settings(), HashEmbeddingProvider()) is None

    def test_dimension_mismatch_propagates(self) -> None:
        with patch("coursekb.main.ChromaDBProvider", side_effect=ConfigurationError("mismatch")):
            with pytest.raises(ConfigurationError):
                _build_vector_store(_settings(), HashEmbeddingProvider())

    def test_passes_settings_through(self) -> None:
        settings = _settings(chromadb_host="chroma", chromadb_port=9000, store_timeout_s=4.0)
        with patch("coursekb.main.ChromaDBProvider") as provider_cls:
            _build_vector_store(settings, HashEmbeddingProvider())
        kwargs = provider_cls.call_args.kwargs
        assert kwargs["host"] == "chroma"
        assert kwargs["port"] == 9000
        assert kwargs["timeout_s"] == 4.0


# ======================================================================
# _build_all
# ======================================================================


class TestBuildAll:
    def test_unconfigured_leaves_services_unset(self) -> None:
        components = _build_all(_settings())
        assert components["ingestion_service"] is None
        assert components["retrieval_service"] is None
        assert components["feedback_service"] is None
        assert components["provider_registry"] == {"embedding": None, "vector_store": None}

    def test_configured_builds_every_service(self) -> None:
        with patch(
            "coursekb.main._build_embedding_provider", return_value=HashEmbeddingProvider()
        ), patch("coursekb.main._build_vector_store", return_value=InMemoryVectorStore()):
            components = _build_all(_settings())

        assert isinstance(components["ingestion_service"], IngestionService)
        assert isinstance(components["retrieval_service"], RetrievalService)
        assert isinstance(components["feedback_service"], FeedbackService)
        assert components["provider_registry"] == {
            "embedding": "hash-embedding",
            "vector_store": "in-memory",
        }

    def test_store_unavailable_leaves_services_unset(self) -> None:
        with patch(
            "coursekb.main._build_embedding_provider", return_value=HashEmbeddingProvider()
        ), patch("coursekb.main._build_vector_store", return_value=None):
            components = _build_all(_settings())
        assert components["ingestion_service"] is None
        assert components["provider_registry"]["embedding"] == "hash-embedding"


def test_create_app() -> None:
    app = create_app(_settings())
    assert isinstance(app, FastAPI)
    assert app.state.config["service"]["name"] == "coursekb"
    paths = {route.path for route in app.routes}
    assert {"/ingest_content", "/search_content", "/log_completion_result", "/health"} <= paths
