"""Bounded retry with exponential backoff and a per-attempt timeout.

Used around every call that leaves the process (embedding provider,
remote vector store).  Each attempt is wrapped in ``asyncio.wait_for`` so a
hung connection cannot stall a request indefinitely; only the exception
types named in ``retry_on`` (plus timeouts) trigger another attempt.
Everything else propagates on the first failure.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

import structlog

from coursekb.utils.logging import get_logger

_T = TypeVar("_T")

_logger: structlog.BoundLogger = get_logger(__name__)


async def call_with_retries(
    operation: Callable[[], Awaitable[_T]],
    *,
    operation_name: str,
    max_retries: int = 2,
    backoff_s: float = 0.5,
    timeout_s: float | None = None,
    retry_on: tuple[type[BaseException], ...] = (),
) -> _T:
    """Await ``operation()`` up to ``max_retries + 1`` times.

    Parameters
    ----------
    operation:
        Zero-argument callable returning a fresh awaitable on every call.
    operation_name:
        Event label used in retry log lines.
    max_retries:
        Number of additional attempts after the first one.
    backoff_s:
        Base delay; attempt *n* (1-based) waits ``backoff_s * 2 ** (n - 1)``
        seconds before the next try.
    timeout_s:
        Per-attempt timeout.  ``None`` disables the timeout.
    retry_on:
        Exception types considered transient.

    Raises
    ------
    asyncio.TimeoutError
        If the final attempt timed out.
    Exception
        The last transient error after all attempts, or the first
        non-transient error.
    """
    transient = (asyncio.TimeoutError, *retry_on)
    attempts = max(0, max_retries) + 1

    for attempt in range(1, attempts + 1):
        try:
            if timeout_s is None:
                return await operation()
            return await asyncio.wait_for(operation(), timeout=timeout_s)
        except transient as exc:
            if attempt >= attempts:
                raise
            delay = backoff_s * (2 ** (attempt - 1))
            _logger.warning(
                "transient_failure_retrying",
                operation=operation_name,
                attempt=attempt,
                max_attempts=attempts,
                backoff_s=delay,
                error=str(exc) or type(exc).__name__,
            )
            await asyncio.sleep(delay)

    raise AssertionError("unreachable")  # pragma: no cover
