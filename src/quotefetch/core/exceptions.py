"""Custom exception hierarchy for quotefetch."""

from typing import Any


class QuoteFetchError(Exception):
    """Base exception for all quotefetch errors.

    All exceptions carry an optional `context` dict for structured error
    metadata that can be logged or serialized without parsing the message.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class ConfigError(QuoteFetchError):
    """Invalid or missing configuration.

    Raised by load_config() during startup. Should be treated as fatal.

    Context keys:
        field: str - the config field that failed validation
        value: Any - the invalid value (redacted for secrets)
    """


class InvalidRequestError(QuoteFetchError):
    """A request that can never succeed against the chosen provider.

    Wrong period for the provider, missing API token, empty symbol list.
    Raised before any network call.

    Policy: raise immediately. Never swallowed by batch fetches.

    Context keys:
        provider: str - the targeted provider
        field: str - the offending request field
        value: Any - the offending value
    """


class FetchError(QuoteFetchError):
    """Fetching quotes for one symbol failed.

    Policy: log and skip the symbol. Do not abort the batch.

    Context keys:
        symbol: str - the symbol being fetched
        provider: str - the provider that failed
    """


class AuthError(FetchError):
    """Session cookie or crumb token could not be obtained.

    Fatal to the single fetch it supports.

    Context keys:
        url: str - the handshake URL that failed
        status_code: int | None - HTTP status if a response arrived
    """


class NetworkError(FetchError):
    """Transport failure: connection refused, timeout, HTTP error status,
    or an FTP error reply.

    Context keys:
        url: str - the URL or host:port being contacted
        status_code: int | None - HTTP status or FTP reply code
    """


class PayloadError(FetchError):
    """The upstream payload could not be parsed.

    Malformed CSV/JSON, unexpected column count, or a field that fails
    to parse while strict parsing is enabled.

    Context keys:
        row: int - zero-based record index, where known
        reason: str - why parsing failed
    """
