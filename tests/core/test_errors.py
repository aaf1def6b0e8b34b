"""Tests for courier.core.errors — taxonomy, context and helpers."""

from __future__ import annotations

import asyncio

import pytest

from courier.core.errors import (
    BreakerOpenError,
    CancellationError,
    CourierError,
    DecodeError,
    ErrorCategory,
    ErrorContext,
    RequestTimeoutError,
    TransportError,
    ValidationError,
    categorize_error,
    is_retryable,
)


class TestCourierError:
    def test_defaults(self):
        err = CourierError("boom")
        assert str(err) == "boom"
        assert err.message == "boom"
        assert err.category == ErrorCategory.INTERNAL
        assert err.retryable is False
        assert err.cause is None

    def test_cause_chains(self):
        root = OSError("socket closed")
        err = TransportError("send failed", cause=root)
        assert err.cause is root
        assert err.__cause__ is root

    def test_with_context_is_fluent(self):
        err = TransportError("send failed").with_context(url="http://x", method="GET")
        assert err.context.url == "http://x"
        assert err.context.method == "GET"

    def test_to_dict(self):
        err = DecodeError("bad json", context=ErrorContext(url="http://x", http_status=200))
        payload = err.to_dict()
        assert payload["error_type"] == "DecodeError"
        assert payload["message"] == "bad json"
        assert payload["category"] == "PARSE"
        assert payload["retryable"] is False
        assert payload["context"]["url"] == "http://x"
        assert payload["context"]["http_status"] == 200


class TestSubclasses:
    @pytest.mark.parametrize(
        ("error", "category", "retryable"),
        [
            (ValidationError("x"), ErrorCategory.VALIDATION, False),
            (TransportError("x"), ErrorCategory.NETWORK, True),
            (RequestTimeoutError("x"), ErrorCategory.NETWORK, True),
            (DecodeError("x"), ErrorCategory.PARSE, False),
            (BreakerOpenError(), ErrorCategory.NETWORK, True),
            (CancellationError(), ErrorCategory.CANCELLED, False),
        ],
    )
    def test_category_and_retryable(self, error, category, retryable):
        assert error.category == category
        assert error.retryable is retryable

    def test_validation_error_fields(self):
        err = ValidationError("request_path cannot be empty", field="request_path", value="  ")
        payload = err.to_dict()
        assert payload["field"] == "request_path"
        assert payload["value"] == "'  '"

    def test_default_messages(self):
        assert str(BreakerOpenError()) == "Circuit breaker is open"
        assert str(CancellationError()) == "Operation cancelled"

    def test_timeout_is_transport_error(self):
        assert isinstance(RequestTimeoutError("slow"), TransportError)


class TestHelpers:
    def test_is_retryable(self):
        assert is_retryable(TransportError("x")) is True
        assert is_retryable(ValidationError("x")) is False
        assert is_retryable(ConnectionError()) is True
        assert is_retryable(ValueError()) is False

    def test_categorize_error(self):
        assert categorize_error(DecodeError("x")) == ErrorCategory.PARSE
        assert categorize_error(asyncio.CancelledError()) == ErrorCategory.CANCELLED
        assert categorize_error(TimeoutError()) == ErrorCategory.NETWORK
        assert categorize_error(ValueError()) == ErrorCategory.VALIDATION
        assert categorize_error(KeyError()) == ErrorCategory.UNKNOWN
