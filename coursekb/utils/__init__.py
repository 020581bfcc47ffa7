"""Utility modules for coursekb.

- **errors** -- Domain exception hierarchy rooted at CourseKBError; each
  failure source raises its own subclass and carries the HTTP status the
  API layer should answer with.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **retry** -- bounded retries with exponential backoff and per-attempt
  timeouts for calls to the embedding provider and vector store.
"""

from coursekb.utils.errors import (
    ConfigurationError,
    CourseKBError,
    EmptyContentError,
    InputValidationError,
    ProviderError,
    ProviderUnavailableError,
    RateLimitError,
    StoreError,
)
from coursekb.utils.logging import configure_logging, get_logger
from coursekb.utils.retry import call_with_retries

__all__ = [
    "ConfigurationError",
    "CourseKBError",
    "EmptyContentError",
    "InputValidationError",
    "ProviderError",
    "ProviderUnavailableError",
    "RateLimitError",
    "StoreError",
    "call_with_retries",
    "configure_logging",
    "get_logger",
]
