"""Embedding orchestration on top of an :class:`IEmbeddingProvider`.

Adds what every caller needs around a raw provider call: a per-call
timeout, bounded retries for transient failures, and a check that the
provider returned one vector of the right dimension per input text.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from coursekb.utils.errors import ProviderError, ProviderUnavailableError, RateLimitError
from coursekb.utils.retry import call_with_retries

if TYPE_CHECKING:
    from coursekb.interfaces.embedding_provider import IEmbeddingProvider

logger = structlog.get_logger(logger_name=__name__)


class EmbeddingService:
    """Turns texts into vectors through an injected embedding provider.

    Parameters
    ----------
    provider:
        The embedding backend.
    timeout_s:
        Upper bound for each provider call.
    max_retries:
        Extra attempts after a rate limit, an unavailable provider or a
        timeout.  Other provider errors are raised immediately.
    backoff_s:
        Base delay between attempts, doubled after each failure.
    """

    def __init__(
        self,
        provider: IEmbeddingProvider,
        timeout_s: float = 30.0,
        max_retries: int = 2,
        backoff_s: float = 0.5,
    ) -> None:
        self._provider = provider
        self._timeout_s = timeout_s
        self._max_retries = max_retries
        self._backoff_s = backoff_s

    @property
    def provider_name(self) -> str:
        return self._provider.get_provider_name()

    @property
    def dimension(self) -> int:
        return self._provider.get_dimension()

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts* in one logical provider call.

        Returns vectors aligned with *texts*; ``[]`` for ``[]`` without
        touching the provider.

        Raises
        ------
        ProviderError
            If the provider fails, keeps failing transiently, or returns a
            result whose count or dimension does not match.
        """
        if not texts:
            return []

        try:
            vectors = await call_with_retries(
                lambda: self._provider.embed(texts),
                operation_name="embed",
                max_retries=self._max_retries,
                backoff_s=self._backoff_s,
                timeout_s=self._timeout_s,
                retry_on=(RateLimitError, ProviderUnavailableError),
            )
        except asyncio.TimeoutError as exc:
            raise ProviderUnavailableError(
                message=f"Embedding call timed out after {self._timeout_s}s",
                provider_name=self.provider_name,
            ) from exc

        self._check_alignment(texts, vectors)
        logger.debug(
            "texts_embedded",
            provider=self.provider_name,
            count=len(vectors),
        )
        return vectors

    async def embed_single(self, text: str) -> list[float]:
        """Embed one text; same guarantees as :meth:`embed`."""
        vectors = await self.embed([text])
        return vectors[0]

    def _check_alignment(self, texts: list[str], vectors: list[list[float]]) -> None:
        if len(vectors) != len(texts):
            logger.error(
                "embedding_count_mismatch",
                provider=self.provider_name,
                expected=len(texts),
                received=len(vectors),
            )
            raise ProviderError(
                message=(
                    f"Embedding provider returned {len(vectors)} vectors "
                    f"for {len(texts)} texts"
                ),
                provider_name=self.provider_name,
            )

        expected_dim = self.dimension
        for position, vector in enumerate(vectors):
            if len(vector) != expected_dim:
                logger.error(
                    "embedding_dimension_mismatch",
                    provider=self.provider_name,
                    position=position,
                    expected=expected_dim,
                    received=len(vector),
                )
                raise ProviderError(
                    message=(
                        f"Embedding at position {position} has {len(vector)} "
                        f"dimensions; expected {expected_dim}"
                    ),
                    provider_name=self.provider_name,
                )
