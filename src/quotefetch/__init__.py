"""quotefetch: historical OHLCV quotes from heterogeneous providers.

    ProviderRequest → QuoteOrchestrator → QuoteProvider → BarSeries → codecs
"""

from quotefetch.core.models import (
    Bar,
    BarSeries,
    FetchResult,
    Period,
    ProviderName,
    ProviderRequest,
    SeriesCollection,
)
from quotefetch.orchestrator import QuoteOrchestrator

__version__ = "0.1.0"

__all__ = [
    "Bar",
    "BarSeries",
    "FetchResult",
    "Period",
    "ProviderName",
    "ProviderRequest",
    "QuoteOrchestrator",
    "SeriesCollection",
    "__version__",
]
