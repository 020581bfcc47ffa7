"""Custom exception hierarchy for coursekb.

All application exceptions inherit from :class:`CourseKBError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai_embedding", "chromadb") caused the failure,
and an HTTP ``status_code`` used by the API error middleware.

The hierarchy is organized by failure source:

    CourseKBError  (base -- catch-all for any coursekb error)
    +-- InputValidationError      (bad or missing caller input, 400)
    |   +-- EmptyContentError     (text produced zero chunks, 400)
    +-- ProviderError             (embedding provider failure, 500)
    |   +-- RateLimitError        (provider rate limit, transient)
    |   +-- ProviderUnavailableError (provider unreachable / timed out, transient)
    +-- StoreError                (vector store write or search failure, 500)
    +-- ConfigurationError        (service not configured, 503)

Input errors are raised before any external call is made.  Transient
provider errors are retried by the embedding service; everything else
propagates to the API layer unchanged.
"""

from __future__ import annotations


class CourseKBError(Exception):
    """Base exception for all coursekb errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[openai_embedding] Rate limit exceeded``.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Caller input errors
# ---------------------------------------------------------------------------


class InputValidationError(CourseKBError):
    """Raised when a required field is missing or a value is outside its vocabulary."""

    status_code = 400

    def __init__(
        self,
        message: str = "Invalid request",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmptyContentError(InputValidationError):
    """Raised when text to ingest contains no words and so yields zero chunks."""

    def __init__(
        self,
        message: str = "Content produced no chunks",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Embedding provider errors
# ---------------------------------------------------------------------------


class ProviderError(CourseKBError):
    """Raised when an embedding call fails or returns misaligned vectors."""

    def __init__(
        self,
        message: str = "Embedding provider call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimitError(ProviderError):
    """Raised when the embedding provider's rate limit is exceeded.

    Retried with backoff by :class:`~coursekb.services.embedding_service.EmbeddingService`.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ProviderUnavailableError(ProviderError):
    """Raised when the embedding provider is unreachable or times out."""

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Vector store errors
# ---------------------------------------------------------------------------


class StoreError(CourseKBError):
    """Raised when a vector-store write or similarity search fails.

    ``committed_ids`` lists the records that were durably written before a
    multi-page write failed, so callers are never left guessing about
    partial state.  It is empty for search failures and for writes that
    failed before anything was stored.
    """

    def __init__(
        self,
        message: str = "Vector store operation failed",
        provider_name: str | None = None,
        committed_ids: list[str] | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._committed_ids = list(committed_ids or [])

    @property
    def committed_ids(self) -> list[str]:
        return list(self._committed_ids)


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------


class ConfigurationError(CourseKBError):
    """Raised when required credentials or endpoints are absent or inconsistent."""

    status_code = 503

    def __init__(
        self,
        message: str = "Service not configured. Please check environment variables.",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
