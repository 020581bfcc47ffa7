"""API middleware: CORS, request logging and error handling.

Starlette middleware is a stack (last added, first executed).  ``create_app``
adds ``ErrorHandlingMiddleware`` first and ``RequestLoggingMiddleware``
second, so a request flows::

    Client → RequestLogging → ErrorHandling → route handler

and the request log always records the final status code, including the
ones produced by the error handler.
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from coursekb.api.schemas import ErrorResponse
from coursekb.utils.errors import CourseKBError, ProviderError, StoreError
from coursekb.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

# Messages returned to clients in place of provider/store internals.
_SAFE_DETAILS: dict[type[CourseKBError], str] = {
    ProviderError: "Embedding provider request failed",
    StoreError: "Vector store request failed",
}


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware; all origins are allowed unless a list is given."""
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# ---------------------------------------------------------------------------
# Request validation
# ---------------------------------------------------------------------------


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location or 'body'}: {error.get('msg', 'invalid')}")
    detail = "; ".join(problems) or "Invalid request"

    _logger.info("request_validation_failed", path=str(request.url.path), detail=detail)
    body = ErrorResponse(error="InputValidationError", detail=detail)
    return JSONResponse(status_code=400, content=body.model_dump())


def configure_validation_errors(app: FastAPI) -> None:
    """Answer malformed request bodies with 400 and the standard error body."""
    app.add_exception_handler(RequestValidationError, _request_validation_handler)


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = response.status_code if response else 500
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=status_code,
                duration_ms=duration_ms,
            )


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Convert ``CourseKBError`` subclasses into structured JSON errors.

    The status code comes from the exception class (400 input, 500
    provider/store, 503 not configured).  Full details are logged
    server-side; provider and store failures reach the client only as a
    generic message.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except CourseKBError as exc:
            log = _logger.warning if exc.status_code < 500 else _logger.error
            log(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                status=exc.status_code,
                path=str(request.url.path),
            )
            body = ErrorResponse(
                error=type(exc).__name__,
                detail=_safe_detail(exc),
            )
            return JSONResponse(
                status_code=exc.status_code,
                content=body.model_dump(),
            )


def _safe_detail(exc: CourseKBError) -> str:
    for error_type, detail in _SAFE_DETAILS.items():
        if isinstance(exc, error_type):
            return detail
    return exc.message
