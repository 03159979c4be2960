"""Shared pytest fixtures for quotefetch."""

import logging
from datetime import datetime

import pytest

from quotefetch.core.config import FetchConfig, GdaxConfig, QuoteConfig, TiingoConfig
from quotefetch.core.models import Bar, BarSeries, SeriesCollection


@pytest.fixture(autouse=True)
def _reset_quotefetch_logger():
    """CLI tests install handlers on the package logger; undo that."""
    logger = logging.getLogger("quotefetch")
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def fetch_config() -> FetchConfig:
    return FetchConfig(request_delay_ms=0, request_timeout=5.0)


@pytest.fixture
def quote_config(fetch_config: FetchConfig) -> QuoteConfig:
    return QuoteConfig(
        fetch=fetch_config,
        tiingo=TiingoConfig(token="test-token"),
        gdax=GdaxConfig(window_delay=0),
    )


@pytest.fixture
def sample_bars() -> list[Bar]:
    return [
        Bar(timestamp=datetime(2024, 1, 2), open=472.16, high=473.67, low=470.49, close=472.65, volume=123623700),
        Bar(timestamp=datetime(2024, 1, 3), open=470.43, high=471.19, low=468.17, close=468.79, volume=103585900),
        Bar(timestamp=datetime(2024, 1, 4), open=468.30, high=470.96, low=467.05, close=467.28, volume=84232200),
    ]


@pytest.fixture
def sample_series(sample_bars: list[Bar]) -> BarSeries:
    return BarSeries(symbol="spy", bars=sample_bars)


@pytest.fixture
def sample_collection(sample_series: BarSeries) -> SeriesCollection:
    aapl = BarSeries(
        symbol="aapl",
        bars=[
            Bar(timestamp=datetime(2024, 1, 2), open=187.15, high=188.44, low=183.89, close=185.64, volume=82488700),
            Bar(timestamp=datetime(2024, 1, 3), open=184.22, high=185.88, low=183.43, close=184.25, volume=58414500),
        ],
    )
    return SeriesCollection(series=[sample_series, aapl])


@pytest.fixture
def yahoo_csv() -> str:
    """Download endpoint body, oldest row first."""
    return (
        "Date,Open,High,Low,Close,Adj Close,Volume\n"
        "2024-01-02,100.00,110.00,90.00,105.00,52.50,1000\n"
        "2024-01-03,106.00,112.00,104.00,110.00,55.00,2000\n"
        "2024-01-04,110.00,114.00,108.00,112.00,56.00,1500\n"
    )
