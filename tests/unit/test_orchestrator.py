"""Tests for quotefetch.orchestrator."""

from __future__ import annotations

from datetime import datetime
from unittest.mock import AsyncMock, patch

import pytest

from quotefetch.core.config import FetchConfig
from quotefetch.core.exceptions import AuthError, InvalidRequestError, NetworkError
from quotefetch.core.models import (
    Bar,
    BarSeries,
    FetchResult,
    FieldDiagnostic,
    Period,
    ProviderName,
    ProviderRequest,
)
from quotefetch.orchestrator import QuoteOrchestrator

START = datetime(2024, 1, 1)
END = datetime(2024, 2, 1)


class FakeProvider:
    """Returns one bar per symbol; symbols in ``failing`` raise."""

    name = ProviderName.YAHOO

    def __init__(self, failing: dict[str, Exception] | None = None, dirty: set[str] | None = None):
        self.failing = failing or {}
        self.dirty = dirty or set()
        self.requests: list[ProviderRequest] = []

    async def fetch(self, request: ProviderRequest) -> FetchResult:
        self.requests.append(request)
        if request.symbol in self.failing:
            raise self.failing[request.symbol]
        bar = Bar(timestamp=request.start, open=1, high=2, low=0.5, close=1.5, volume=100)
        diagnostics = []
        if request.symbol in self.dirty:
            diagnostics = [FieldDiagnostic(row=0, field="open", raw="null", reason="missing value")]
        return FetchResult(
            series=BarSeries(symbol=request.symbol, bars=[bar]),
            diagnostics=diagnostics,
            source=self.name,
        )


@pytest.fixture
def no_delay() -> FetchConfig:
    return FetchConfig(request_delay_ms=0)


class TestFetchMany:
    async def test_failed_symbol_is_skipped(self, no_delay):
        provider = FakeProvider(failing={"bad": NetworkError("HTTP 404")})
        orchestrator = QuoteOrchestrator(provider, no_delay)

        collection = await orchestrator.fetch_many(["spy", "bad", "qqq"], START, END)

        assert collection.symbols() == ["spy", "qqq"]
        assert [r.symbol for r in provider.requests] == ["spy", "bad", "qqq"]
        assert len(orchestrator.failures) == 1
        failure = orchestrator.failures[0]
        assert failure.symbol == "bad"
        assert failure.error_type == "NetworkError"
        assert "404" in failure.message

    async def test_all_fail(self, no_delay):
        provider = FakeProvider(failing={"a": AuthError("no crumb"), "b": AuthError("no crumb")})
        orchestrator = QuoteOrchestrator(provider, no_delay)
        collection = await orchestrator.fetch_many(["a", "b"], START, END)
        assert len(collection) == 0
        assert [f.symbol for f in orchestrator.failures] == ["a", "b"]

    async def test_requests_carry_parameters(self, no_delay):
        provider = FakeProvider()
        orchestrator = QuoteOrchestrator(provider, no_delay)
        await orchestrator.fetch_many(["spy"], START, END, Period.DAILY, adjust_prices=False)
        sent = provider.requests[0]
        assert (sent.start, sent.end, sent.adjust_prices) == (START, END, False)

    async def test_empty_symbol_list(self, no_delay):
        orchestrator = QuoteOrchestrator(FakeProvider(), no_delay)
        with pytest.raises(InvalidRequestError, match="No symbols"):
            await orchestrator.fetch_many([], START, END)

    async def test_unsupported_period_before_any_fetch(self, no_delay):
        provider = FakeProvider()
        orchestrator = QuoteOrchestrator(provider, no_delay)
        with pytest.raises(InvalidRequestError):
            await orchestrator.fetch_many(["spy"], START, END, Period.MIN_5)
        assert provider.requests == []

    async def test_bad_range_before_any_fetch(self, no_delay):
        provider = FakeProvider()
        orchestrator = QuoteOrchestrator(provider, no_delay)
        with pytest.raises(InvalidRequestError):
            await orchestrator.fetch_many(["spy", "qqq"], END, START)
        assert provider.requests == []

    async def test_invalid_request_from_provider_propagates(self, no_delay):
        provider = FakeProvider(failing={"qqq": InvalidRequestError("no token")})
        orchestrator = QuoteOrchestrator(provider, no_delay)
        with pytest.raises(InvalidRequestError):
            await orchestrator.fetch_many(["spy", "qqq", "iwm"], START, END)
        assert [r.symbol for r in provider.requests] == ["spy", "qqq"]

    async def test_diagnostics_collected(self, no_delay):
        provider = FakeProvider(dirty={"qqq"})
        orchestrator = QuoteOrchestrator(provider, no_delay)
        collection = await orchestrator.fetch_many(["spy", "qqq"], START, END)
        assert len(collection) == 2
        assert list(orchestrator.diagnostics) == ["qqq"]

    async def test_state_reset_between_batches(self, no_delay):
        provider = FakeProvider(failing={"bad": NetworkError("down")})
        orchestrator = QuoteOrchestrator(provider, no_delay)
        await orchestrator.fetch_many(["bad"], START, END)
        await orchestrator.fetch_many(["spy"], START, END)
        assert orchestrator.failures == []


class TestRateLimit:
    def test_delay_from_config(self):
        orchestrator = QuoteOrchestrator(FakeProvider(), FetchConfig(request_delay_ms=250))
        assert orchestrator.delay == 0.25

    async def test_sleeps_between_symbols_only(self):
        orchestrator = QuoteOrchestrator(FakeProvider(), FetchConfig(request_delay_ms=60_000))
        with patch("quotefetch.orchestrator.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await orchestrator.fetch_many(["a", "b", "c"], START, END)
        assert sleep.await_count == 2
        for call in sleep.await_args_list:
            assert 59.0 < call.args[0] <= 60.0

    async def test_zero_delay_never_sleeps(self, no_delay):
        orchestrator = QuoteOrchestrator(FakeProvider(), no_delay)
        with patch("quotefetch.orchestrator.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await orchestrator.fetch_many(["a", "b", "c"], START, END)
        sleep.assert_not_awaited()

    async def test_delay_read_each_iteration(self, no_delay):
        provider = FakeProvider()
        orchestrator = QuoteOrchestrator(provider, no_delay)
        original_fetch = provider.fetch

        async def fetch_then_slow_down(request):
            result = await original_fetch(request)
            orchestrator.delay = 30.0
            return result

        provider.fetch = fetch_then_slow_down
        with patch("quotefetch.orchestrator.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await orchestrator.fetch_many(["a", "b"], START, END)
        assert sleep.await_count == 1
        assert sleep.await_args.args[0] > 29.0


class TestFetchOne:
    async def test_returns_result(self, no_delay):
        orchestrator = QuoteOrchestrator(FakeProvider(), no_delay)
        request = ProviderRequest(symbol="spy", start=START, end=END)
        result = await orchestrator.fetch_one(request)
        assert result.series.symbol == "spy"

    async def test_errors_propagate(self, no_delay):
        orchestrator = QuoteOrchestrator(FakeProvider(failing={"spy": NetworkError("x")}), no_delay)
        with pytest.raises(NetworkError):
            await orchestrator.fetch_one(ProviderRequest(symbol="spy", start=START, end=END))
