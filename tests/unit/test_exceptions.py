"""Tests for quotefetch.core.exceptions."""

import pytest

from quotefetch.core.exceptions import (
    AuthError,
    ConfigError,
    FetchError,
    InvalidRequestError,
    NetworkError,
    PayloadError,
    QuoteFetchError,
)


class TestExceptionHierarchy:
    """Verify the exception class hierarchy."""

    def test_config_is_subclass(self):
        assert issubclass(ConfigError, QuoteFetchError)

    def test_invalid_request_is_not_fetch_error(self):
        assert issubclass(InvalidRequestError, QuoteFetchError)
        assert not issubclass(InvalidRequestError, FetchError)

    @pytest.mark.parametrize("exc", [AuthError, NetworkError, PayloadError])
    def test_per_symbol_errors_are_fetch_errors(self, exc):
        assert issubclass(exc, FetchError)
        assert issubclass(exc, QuoteFetchError)


class TestExceptionContext:
    def test_default_context_is_empty(self):
        e = QuoteFetchError("boom")
        assert e.context == {}
        assert str(e) == "boom"

    def test_context_is_kept(self):
        e = NetworkError("HTTP 503", context={"url": "https://x", "status_code": 503})
        assert e.context["status_code"] == 503

    def test_catchable_as_base(self):
        with pytest.raises(QuoteFetchError):
            raise AuthError("no crumb")
