"""Tests for quotefetch.core.models."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from quotefetch.core.models import (
    Bar,
    BarSeries,
    FetchResult,
    FieldDiagnostic,
    Period,
    ProviderName,
    ProviderRequest,
    SeriesCollection,
)


class TestBar:
    def test_valid_construction(self, sample_bars):
        bar = sample_bars[0]
        assert bar.close == 472.65
        assert bar.timestamp == datetime(2024, 1, 2)

    def test_negative_volume_rejected(self):
        with pytest.raises(ValidationError, match="volume must be >= 0"):
            Bar(timestamp=datetime(2024, 1, 2), open=1, high=1, low=1, close=1, volume=-1)

    def test_fractional_volume_allowed(self):
        bar = Bar(timestamp=datetime(2024, 1, 2), open=1, high=1, low=1, close=1, volume=0.123456)
        assert bar.volume == 0.123456

    def test_frozen(self, sample_bars):
        with pytest.raises(ValidationError):
            sample_bars[0].close = 1.0


class TestBarSeries:
    def test_len_and_properties(self, sample_series):
        assert len(sample_series) == 3
        assert sample_series.closes == [472.65, 468.79, 467.28]
        assert sample_series.last.timestamp == datetime(2024, 1, 4)
        assert sample_series.is_chronological

    def test_empty_series(self):
        s = BarSeries(symbol="spy")
        assert len(s) == 0
        assert s.last is None
        assert s.is_chronological
        assert s.volume_decimals == 0

    def test_not_chronological(self, sample_bars):
        s = BarSeries(symbol="spy", bars=list(reversed(sample_bars)))
        assert not s.is_chronological

    def test_duplicate_timestamp_not_chronological(self, sample_bars):
        s = BarSeries(symbol="spy", bars=[sample_bars[0], sample_bars[0]])
        assert not s.is_chronological


class TestSeriesCollection:
    def test_symbols_in_order(self, sample_collection):
        assert sample_collection.symbols() == ["spy", "aapl"]
        assert len(sample_collection) == 2

    def test_get(self, sample_collection):
        assert sample_collection.get("aapl").last.close == 184.25
        assert sample_collection.get("msft") is None


class TestProviderRequest:
    def test_defaults(self):
        r = ProviderRequest(symbol="spy", start=datetime(2020, 1, 1), end=datetime(2021, 1, 1))
        assert r.period is Period.DAILY
        assert r.adjust_prices is True

    def test_symbol_is_stripped(self):
        r = ProviderRequest(symbol="  spy ", start=datetime(2020, 1, 1), end=datetime(2021, 1, 1))
        assert r.symbol == "spy"

    def test_blank_symbol_rejected(self):
        with pytest.raises(ValidationError, match="symbol must not be blank"):
            ProviderRequest(symbol="  ", start=datetime(2020, 1, 1), end=datetime(2021, 1, 1))

    def test_start_after_end_rejected(self):
        with pytest.raises(ValidationError, match="must not be after end"):
            ProviderRequest(symbol="spy", start=datetime(2021, 1, 2), end=datetime(2021, 1, 1))

    def test_start_equal_end_allowed(self):
        t = datetime(2021, 1, 1)
        assert ProviderRequest(symbol="spy", start=t, end=t).start == t


class TestFetchResult:
    def test_clean(self, sample_series):
        r = FetchResult(series=sample_series, source=ProviderName.YAHOO)
        assert r.clean

    def test_with_diagnostics(self, sample_series):
        d = FieldDiagnostic(row=1, field="open", raw="null", reason="bad")
        r = FetchResult(series=sample_series, diagnostics=[d], source=ProviderName.TIINGO)
        assert not r.clean
        assert r.diagnostics[0].field == "open"
