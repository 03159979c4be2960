"""Provider protocols and the period capability table.

Architecture
------------
Each upstream source has its own handshake, paging limits, column layout
and time encoding. Adapters hide all of that behind one contract:

    ProviderRequest → QuoteProvider.fetch → FetchResult(BarSeries) → Consumer

- **QuoteProvider** is the consumer-facing protocol for price history.
  Failures surface as ``FetchError`` subclasses (per-symbol) or
  ``InvalidRequestError`` (the request can never succeed).

- **SymbolListProvider** returns symbol directories instead of prices.

- **SymbolDirectoryProvider** is the raw transport behind the ETF list,
  so the hand-rolled FTP exchange can be swapped for another client
  without touching the filtering logic.

Which periods a provider supports is declared once in
``SUPPORTED_PERIODS`` and checked before any request is dispatched.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import ValidationError

from quotefetch.core.exceptions import InvalidRequestError, PayloadError
from quotefetch.core.models import (
    Bar,
    BarSeries,
    FetchResult,
    Period,
    ProviderName,
    ProviderRequest,
)

SUPPORTED_PERIODS: dict[ProviderName, frozenset[Period]] = {
    ProviderName.YAHOO: frozenset({Period.DAILY}),
    ProviderName.TIINGO: frozenset({Period.DAILY}),
    ProviderName.GDAX: frozenset(
        {
            Period.MIN_1,
            Period.MIN_5,
            Period.MIN_15,
            Period.MIN_30,
            Period.MIN_60,
            Period.DAILY,
            Period.WEEKLY,
        }
    ),
    ProviderName.NASDAQ: frozenset(),
}


def check_period(provider: ProviderName, period: Period) -> None:
    """Raise InvalidRequestError if ``provider`` cannot serve ``period``."""
    supported = SUPPORTED_PERIODS.get(provider, frozenset())
    if period not in supported:
        allowed = ", ".join(sorted(p.value for p in supported)) or "none"
        raise InvalidRequestError(
            f"Period {period.value!r} not supported by {provider.value} (supported: {allowed})",
            context={"provider": provider.value, "field": "period", "value": period.value},
        )


def build_series(
    symbol: str,
    rows: list[dict[str, object]],
    volume_decimals: int = 0,
) -> BarSeries:
    """Construct a BarSeries from already-parsed bar dicts.

    Converts model validation failures (e.g. negative volume) into
    ``PayloadError`` so they count as a per-symbol failure.
    """
    try:
        return BarSeries(
            symbol=symbol,
            bars=[Bar(**row) for row in rows],
            volume_decimals=volume_decimals,
        )
    except ValidationError as e:
        raise PayloadError(
            f"Invalid bar for {symbol}: {e.errors()[0]['msg']}",
            context={"symbol": symbol, "reason": "validation"},
        ) from e


@runtime_checkable
class QuoteProvider(Protocol):
    """Fetches one symbol's price history.

    Implementations return bars in strictly ascending timestamp order
    regardless of the upstream feed's native order.
    """

    name: ProviderName

    async def fetch(self, request: ProviderRequest) -> FetchResult: ...


@runtime_checkable
class SymbolListProvider(Protocol):
    """Returns a sorted list of lowercase ticker symbols."""

    async def list_symbols(self) -> list[str]: ...


@runtime_checkable
class SymbolDirectoryProvider(Protocol):
    """Returns the raw text of a symbol directory file."""

    async def fetch_directory(self) -> str: ...
