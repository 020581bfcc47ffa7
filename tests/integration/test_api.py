"""Integration tests for the FastAPI endpoints using TestClient.

The application is built with ``create_app`` (middleware, validation
handler and routes exactly as in production) and its ``app.state`` is
populated with services backed by the in-memory fakes.  The lifespan is
not run, so no real provider is ever contacted.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from coursekb.config.settings import Settings
from coursekb.main import create_app
from coursekb.utils.errors import ProviderError, StoreError
from tests.conftest import HashEmbeddingProvider, InMemoryVectorStore


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _create_test_app(
    ingestion_service=None,
    retrieval_service=None,
    feedback_service=None,
    **settings_overrides,
) -> FastAPI:
    settings = Settings(_env_file=None, **settings_overrides)
    app = create_app(settings)
    app.state.ingestion_service = ingestion_service
    app.state.retrieval_service = retrieval_service
    app.state.feedback_service = feedback_service
    app.state.provider_registry = {"embedding": "hash-embedding", "vector_store": "in-memory"}
    return app


@pytest.fixture
def client(ingestion_service, retrieval_service, feedback_service) -> TestClient:
    app = _create_test_app(ingestion_service, retrieval_service, feedback_service)
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def unconfigured_client() -> TestClient:
    return TestClient(_create_test_app(), raise_server_exceptions=False)


# ---------------------------------------------------------------------------
# POST /ingest_content
# ---------------------------------------------------------------------------


class TestIngestContent:
    def test_created(self, client: TestClient, vector_store: InMemoryVectorStore) -> None:
        response = client.post(
            "/ingest_content",
            json={
                "course": "biology",
                "type": "resource",
                "raw_text": "Mitochondria are the powerhouse of the cell.",
                "subtopic": "cells",
                "source_name": "handout.txt",
            },
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["chunks_stored"] == 1
        assert list(vector_store.rows) == body["ids"]

    def test_long_book_profile(self, client: TestClient, long_text: str) -> None:
        response = client.post(
            "/ingest_content",
            json={
                "course": "biology",
                "type": "resource",
                "raw_text": long_text,
                "chunk_profile": "long_book",
            },
        )
        assert response.status_code == 201
        assert response.json()["chunks_stored"] == 2

    @pytest.mark.parametrize(
        "payload",
        [
            {"type": "resource", "raw_text": "x"},
            {"course": "biology", "raw_text": "x"},
            {"course": "biology", "type": "resource"},
            {"course": "biology", "type": "lecture", "raw_text": "x"},
            {"course": "", "type": "resource", "raw_text": "x"},
        ],
    )
    def test_missing_or_invalid_fields_are_400(
        self, client: TestClient, embedding_provider: HashEmbeddingProvider, payload: dict
    ) -> None:
        response = client.post("/ingest_content", json=payload)

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "InputValidationError"
        assert embedding_provider.calls == []

    def test_whitespace_text_is_400_empty_content(
        self, client: TestClient, vector_store: InMemoryVectorStore
    ) -> None:
        response = client.post(
            "/ingest_content",
            json={"course": "biology", "type": "resource", "raw_text": "   \n  "},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "EmptyContentError"
        assert vector_store.rows == {}

    def test_provider_failure_is_500_with_safe_detail(
        self, client: TestClient, embedding_provider: HashEmbeddingProvider
    ) -> None:
        embedding_provider.embed = AsyncMock(
            side_effect=ProviderError("secret upstream detail", provider_name="openai_embedding")
        )
        response = client.post(
            "/ingest_content",
            json={"course": "biology", "type": "resource", "raw_text": "abc"},
        )

        assert response.status_code == 500
        body = response.json()
        assert body == {
            "success": False,
            "error": "ProviderError",
            "detail": "Embedding provider request failed",
        }

    def test_store_failure_is_500(
        self, client: TestClient, vector_store: InMemoryVectorStore
    ) -> None:
        vector_store.add_records = AsyncMock(side_effect=StoreError("disk full"))
        response = client.post(
            "/ingest_content",
            json={"course": "biology", "type": "resource", "raw_text": "abc"},
        )
        assert response.status_code == 500
        assert response.json()["error"] == "StoreError"

    def test_unconfigured_is_503(self, unconfigured_client: TestClient) -> None:
        response = unconfigured_client.post(
            "/ingest_content",
            json={"course": "biology", "type": "resource", "raw_text": "abc"},
        )
        assert response.status_code == 503
        body = response.json()
        assert body["error"] == "ConfigurationError"
        assert "not configured" in body["detail"]


# ---------------------------------------------------------------------------
# POST /search_content
# ---------------------------------------------------------------------------


class TestSearchContent:
    def _ingest(self, client: TestClient, text: str, **fields) -> list[str]:
        payload = {"course": "biology", "type": "resource", "raw_text": text, **fields}
        return client.post("/ingest_content", json=payload).json()["ids"]

    def test_finds_ingested_chunk(self, client: TestClient) -> None:
        text = "Photosynthesis converts light into chemical energy."
        ids = self._ingest(client, text, subtopic="plants")

        response = client.post("/search_content", json={"query": text})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["results"][0]["id"] == ids[0]
        assert body["results"][0]["content"] == text
        assert body["results"][0]["subtopic"] == "plants"
        assert body["results"][0]["similarity"] >= 0.7

    def test_query_text_alias(self, client: TestClient) -> None:
        self._ingest(client, "osmosis")
        response = client.post("/search_content", json={"queryText": "osmosis"})
        assert response.status_code == 200
        assert len(response.json()["results"]) == 1

    def test_type_filter(self, client: TestClient) -> None:
        self._ingest(client, "osmosis", type="resource")
        self._ingest(client, "osmosis", type="instruction")

        response = client.post(
            "/search_content", json={"query": "osmosis", "types": ["instruction"]}
        )
        results = response.json()["results"]
        assert [r["type"] for r in results] == ["instruction"]

    def test_defaults_from_settings(self, ingestion_service, retrieval_service) -> None:
        retrieval_service.search = AsyncMock(return_value=[])
        app = _create_test_app(
            ingestion_service,
            retrieval_service,
            search_default_top_k=4,
            search_default_threshold=0.55,
        )
        TestClient(app).post("/search_content", json={"query": "q"})

        query = retrieval_service.search.await_args.args[0]
        assert query.top_k == 4
        assert query.threshold == 0.55

    @pytest.mark.parametrize(
        "payload",
        [{}, {"query": ""}, {"query": "q", "top_k": 0}, {"query": "q", "threshold": 2}],
    )
    def test_invalid_request_is_400(self, client: TestClient, payload: dict) -> None:
        response = client.post("/search_content", json=payload)
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_blank_query_is_400(self, client: TestClient) -> None:
        response = client.post("/search_content", json={"query": "   "})
        assert response.status_code == 400
        assert response.json()["error"] == "InputValidationError"


# ---------------------------------------------------------------------------
# POST /log_completion_result
# ---------------------------------------------------------------------------


class TestLogCompletionResult:
    def test_created(self, client: TestClient, vector_store: InMemoryVectorStore) -> None:
        response = client.post(
            "/log_completion_result",
            json={
                "course": "biology",
                "assignment_type": "essay",
                "model_answer": "Osmosis moves water across a membrane.",
                "outcome": "success",
                "score": 92,
                "original_prompt": "Explain osmosis.",
            },
        )

        assert response.status_code == 201
        record_id = response.json()["id"]
        record, _ = vector_store.rows[record_id]
        assert record.type.value == "completion_good"
        assert "Score: 92\n" in record.content

    @pytest.mark.parametrize("outcome", [True, 1, "Success", "passed", None])
    def test_non_enumerated_outcome_is_400(self, client: TestClient, outcome) -> None:
        response = client.post(
            "/log_completion_result",
            json={
                "course": "biology",
                "assignment_type": "essay",
                "model_answer": "answer",
                "outcome": outcome,
            },
        )
        assert response.status_code == 400

    def test_unconfigured_is_503(self, unconfigured_client: TestClient) -> None:
        response = unconfigured_client.post(
            "/log_completion_result",
            json={
                "course": "biology",
                "assignment_type": "essay",
                "model_answer": "answer",
                "outcome": "failure",
            },
        )
        assert response.status_code == 503


# ---------------------------------------------------------------------------
# Health and manifest
# ---------------------------------------------------------------------------


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["version"] == "0.1.0"
    assert body["providers"] == {"embedding": "hash-embedding", "vector_store": "in-memory"}


def test_manifest_lists_operations(client: TestClient) -> None:
    response = client.get("/.well-known/manifest.json")
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "coursekb"
    operations = {op["name"]: op for op in body["operations"]}
    assert set(operations) == {"ingest_content", "search_content", "log_completion_result"}
    assert operations["ingest_content"]["path"] == "/ingest_content"
    assert "raw_text" in operations["ingest_content"]["input_schema"]["properties"]
    assert "outcome" in operations["log_completion_result"]["input_schema"]["required"]
