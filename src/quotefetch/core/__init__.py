"""quotefetch.core: foundation types, config, and exceptions."""

from quotefetch.core.config import (
    FetchConfig,
    GdaxConfig,
    LoggingConfig,
    NasdaqConfig,
    QuoteConfig,
    TiingoConfig,
    YahooConfig,
    load_config,
)
from quotefetch.core.dates import lookback_range, parse_date_string
from quotefetch.core.exceptions import (
    AuthError,
    ConfigError,
    FetchError,
    InvalidRequestError,
    NetworkError,
    PayloadError,
    QuoteFetchError,
)
from quotefetch.core.fields import FieldParser
from quotefetch.core.logs import configure_logging
from quotefetch.core.models import (
    Bar,
    BarSeries,
    FetchResult,
    FieldDiagnostic,
    Period,
    ProviderName,
    ProviderRequest,
    SeriesCollection,
    Symbol,
    SymbolFailure,
)

__all__ = [
    # Type aliases
    "Symbol",
    # Enums
    "Period",
    "ProviderName",
    # Models
    "Bar",
    "BarSeries",
    "SeriesCollection",
    "ProviderRequest",
    "FieldDiagnostic",
    "FetchResult",
    "SymbolFailure",
    # Parsing & dates
    "FieldParser",
    "parse_date_string",
    "lookback_range",
    # Config
    "QuoteConfig",
    "FetchConfig",
    "YahooConfig",
    "TiingoConfig",
    "GdaxConfig",
    "NasdaqConfig",
    "LoggingConfig",
    "load_config",
    "configure_logging",
    # Exceptions
    "QuoteFetchError",
    "ConfigError",
    "InvalidRequestError",
    "FetchError",
    "AuthError",
    "NetworkError",
    "PayloadError",
]
