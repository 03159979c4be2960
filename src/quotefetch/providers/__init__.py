"""Upstream quote providers behind one adapter contract.

Built-in implementations:

- ``YahooFinanceProvider``: cookie/crumb authenticated daily CSV download.
- ``TiingoProvider``: token-authenticated REST JSON, adjusted fields only.
- ``GdaxProvider``: paginated candle API, any intraday period up to weekly.
- ``EtfListProvider`` / ``MarketListProvider``: Nasdaq symbol listings.

Adding a new price source:
1. Write an adapter that turns the raw payload into bars.
2. Write a provider with ``name`` and ``async fetch(request)``.
3. Declare its periods in ``SUPPORTED_PERIODS``.
"""

from quotefetch.core.config import QuoteConfig
from quotefetch.core.exceptions import InvalidRequestError
from quotefetch.core.models import ProviderName
from quotefetch.providers.base import (
    SUPPORTED_PERIODS,
    QuoteProvider,
    SymbolDirectoryProvider,
    SymbolListProvider,
    check_period,
)
from quotefetch.providers.ftp import AnonymousFtpDirectory, parse_pasv_reply
from quotefetch.providers.gdax import GdaxCandleAdapter, GdaxProvider, candle_windows
from quotefetch.providers.nasdaq import (
    MARKET_URLS,
    VALID_MARKETS,
    EtfListProvider,
    MarketListProvider,
    list_market,
)
from quotefetch.providers.session import PortalSession, SessionState
from quotefetch.providers.tiingo import TiingoAdapter, TiingoProvider
from quotefetch.providers.yahoo import YahooFinanceAdapter, YahooFinanceProvider


def create_provider(name: ProviderName, config: QuoteConfig | None = None):
    """Instantiate the quote provider for ``name`` from config."""
    config = config or QuoteConfig()
    if name is ProviderName.YAHOO:
        return YahooFinanceProvider(config.yahoo, config.fetch)
    if name is ProviderName.TIINGO:
        return TiingoProvider(config.tiingo, config.fetch)
    if name is ProviderName.GDAX:
        return GdaxProvider(config.gdax, config.fetch)
    raise InvalidRequestError(
        f"{name.value} does not serve price history",
        context={"provider": name.value, "field": "source", "value": name.value},
    )


__all__ = [
    # Protocols & capabilities
    "QuoteProvider",
    "SymbolListProvider",
    "SymbolDirectoryProvider",
    "SUPPORTED_PERIODS",
    "check_period",
    "create_provider",
    # Yahoo
    "PortalSession",
    "SessionState",
    "YahooFinanceAdapter",
    "YahooFinanceProvider",
    # Tiingo
    "TiingoAdapter",
    "TiingoProvider",
    # GDAX
    "GdaxCandleAdapter",
    "GdaxProvider",
    "candle_windows",
    # Nasdaq
    "AnonymousFtpDirectory",
    "parse_pasv_reply",
    "EtfListProvider",
    "MarketListProvider",
    "MARKET_URLS",
    "VALID_MARKETS",
    "list_market",
]
