"""FastAPI routes for the coursekb knowledge base.

Service dependencies are resolved from ``app.state`` (populated at startup
by ``coursekb.main._build_all``) via ``Depends`` using the ``Annotated``
pattern.  A service left unset because its provider is not configured
makes the route answer 503.

    Endpoint                        Method  Description
    ──────────────────────────────────────────────────────────────────
    /ingest_content                 POST    Chunk, embed and store text
    /search_content                 POST    Filtered similarity search
    /log_completion_result          POST    Store a graded completion
    /health                         GET     Health check + provider status
    /.well-known/manifest.json      GET     Capability manifest
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Request

from coursekb import __version__
from coursekb.api.schemas import (
    ErrorResponse,
    HealthResponse,
    IngestContentRequest,
    IngestContentResponse,
    LogCompletionRequest,
    LogCompletionResponse,
    ManifestOperation,
    ManifestResponse,
    SearchContentRequest,
    SearchContentResponse,
    SearchResultItem,
)
from coursekb.models.records import SearchQuery
from coursekb.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)

router = APIRouter()

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def _require(request: Request, name: str) -> Any:
    service = getattr(request.app.state, name, None)
    if service is None:
        raise ConfigurationError()
    return service


def _get_ingestion_service(request: Request) -> Any:
    return _require(request, "ingestion_service")


def _get_retrieval_service(request: Request) -> Any:
    return _require(request, "retrieval_service")


def _get_feedback_service(request: Request) -> Any:
    return _require(request, "feedback_service")


def _get_settings(request: Request) -> Any:
    return request.app.state.settings


IngestionDep = Annotated[Any, Depends(_get_ingestion_service)]
RetrievalDep = Annotated[Any, Depends(_get_retrieval_service)]
FeedbackDep = Annotated[Any, Depends(_get_feedback_service)]
SettingsDep = Annotated[Any, Depends(_get_settings)]


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


@router.post(
    "/ingest_content",
    status_code=201,
    response_model=IngestContentResponse,
    responses=_ERROR_RESPONSES,
    summary="Chunk, embed and store course text",
)
async def ingest_content(
    body: IngestContentRequest,
    ingestion_service: IngestionDep,
) -> IngestContentResponse:
    result = await ingestion_service.ingest(
        course=body.course,
        type=body.type,
        raw_text=body.raw_text,
        subtopic=body.subtopic,
        assignment_type=body.assignment_type,
        source_name=body.source_name,
        chunk_profile=body.chunk_profile,
    )
    return IngestContentResponse(chunks_stored=result.chunk_count, ids=result.ids)


@router.post(
    "/search_content",
    response_model=SearchContentResponse,
    responses=_ERROR_RESPONSES,
    summary="Search stored content by similarity",
)
async def search_content(
    body: SearchContentRequest,
    retrieval_service: RetrievalDep,
    settings: SettingsDep,
) -> SearchContentResponse:
    query = SearchQuery(
        query_text=body.query,
        course=body.course,
        types=body.types,
        subtopic=body.subtopic,
        assignment_type=body.assignment_type,
        top_k=body.top_k if body.top_k is not None else settings.search_default_top_k,
        threshold=(
            body.threshold
            if body.threshold is not None
            else settings.search_default_threshold
        ),
    )
    results = await retrieval_service.search(query)
    return SearchContentResponse(
        results=[SearchResultItem.from_result(r) for r in results],
    )


@router.post(
    "/log_completion_result",
    status_code=201,
    response_model=LogCompletionResponse,
    responses=_ERROR_RESPONSES,
    summary="Store a graded completion as feedback",
)
async def log_completion_result(
    body: LogCompletionRequest,
    feedback_service: FeedbackDep,
) -> LogCompletionResponse:
    result = await feedback_service.log_completion(
        course=body.course,
        assignment_type=body.assignment_type,
        model_answer=body.model_answer,
        outcome=body.outcome,
        subtopic=body.subtopic,
        original_prompt=body.original_prompt,
        score=body.score,
        teacher_feedback=body.teacher_feedback,
    )
    return LogCompletionResponse(id=result.id)


# ---------------------------------------------------------------------------
# Health and manifest
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability."""
    providers: dict[str, Any] = {}
    if hasattr(request.app.state, "provider_registry"):
        providers = dict(request.app.state.provider_registry)
    return HealthResponse(status="ok", version=__version__, providers=providers)


_OPERATIONS: list[tuple[str, str, str, type, str]] = [
    (
        "ingest_content",
        "POST",
        "/ingest_content",
        IngestContentRequest,
        "Split course text into overlapping chunks, embed them and store them.",
    ),
    (
        "search_content",
        "POST",
        "/search_content",
        SearchContentRequest,
        "Return stored chunks most similar to a query, with optional filters.",
    ),
    (
        "log_completion_result",
        "POST",
        "/log_completion_result",
        LogCompletionRequest,
        "Store a graded completion so later searches can learn from it.",
    ),
]


@router.get(
    "/.well-known/manifest.json",
    response_model=ManifestResponse,
    summary="Capability manifest",
)
async def manifest(request: Request) -> ManifestResponse:
    """Describe the service and the input schema of each operation."""
    service_config = (getattr(request.app.state, "config", None) or {}).get("service", {})
    return ManifestResponse(
        name=service_config.get("name", "coursekb"),
        version=str(service_config.get("version", __version__)),
        description=service_config.get(
            "description", "Course knowledge base: ingest, search and feedback."
        ),
        operations=[
            ManifestOperation(
                name=name,
                method=method,
                path=path,
                description=description,
                input_schema=schema_model.model_json_schema(),
            )
            for name, method, path, schema_model, description in _OPERATIONS
        ],
    )
