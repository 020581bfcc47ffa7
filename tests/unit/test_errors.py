"""Unit tests for the coursekb exception hierarchy."""

from __future__ import annotations

import pytest

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


@pytest.mark.parametrize(
    ("error_cls", "status"),
    [
        (CourseKBError, 500),
        (InputValidationError, 400),
        (EmptyContentError, 400),
        (ProviderError, 500),
        (RateLimitError, 500),
        (ProviderUnavailableError, 500),
        (StoreError, 500),
        (ConfigurationError, 503),
    ],
)
def test_status_codes(error_cls: type[CourseKBError], status: int) -> None:
    assert error_cls().status_code == status


def test_str_prefixes_provider_name() -> None:
    error = RateLimitError("Too many requests", provider_name="openai_embedding")
    assert str(error) == "[openai_embedding] Too many requests"
    assert error.message == "Too many requests"


def test_str_without_provider() -> None:
    assert str(InputValidationError("Missing required field: course")) == (
        "Missing required field: course"
    )


def test_transient_errors_are_provider_errors() -> None:
    assert issubclass(RateLimitError, ProviderError)
    assert issubclass(ProviderUnavailableError, ProviderError)


def test_store_error_committed_ids_are_copied() -> None:
    ids = ["a", "b"]
    error = StoreError("page failed", provider_name="chromadb", committed_ids=ids)
    ids.append("c")
    assert error.committed_ids == ["a", "b"]
    assert StoreError().committed_ids == []


def test_configuration_error_default_message() -> None:
    assert ConfigurationError().message == (
        "Service not configured. Please check environment variables."
    )
