"""Tests for the CLI module."""

from __future__ import annotations

import json
import os
from datetime import datetime
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from quotefetch.cli import _resolve_range, _resolve_symbols, cli
from quotefetch.core.exceptions import NetworkError
from quotefetch.core.models import Bar, BarSeries, FetchResult, ProviderName, ProviderRequest


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


class FakeProvider:
    name = ProviderName.YAHOO

    def __init__(self, failing: set[str] | None = None) -> None:
        self.failing = failing or set()
        self.requests: list[ProviderRequest] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return None

    async def fetch(self, request: ProviderRequest) -> FetchResult:
        self.requests.append(request)
        if request.symbol in self.failing:
            raise NetworkError(f"HTTP 404 for {request.symbol}")
        bar = Bar(timestamp=datetime(2024, 1, 2), open=1, high=2, low=0.5, close=1.5, volume=10)
        return FetchResult(series=BarSeries(symbol=request.symbol, bars=[bar]), source=self.name)


@pytest.fixture
def runner(tmp_path, monkeypatch):
    for key in list(os.environ):
        if key.startswith("QUOTEFETCH_") or key == "TIINGO_API_TOKEN":
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    return CliRunner()


@pytest.fixture
def fake_provider():
    provider = FakeProvider()
    with patch("quotefetch.providers.create_provider", return_value=provider) as factory:
        provider.factory = factory
        yield provider


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestResolveSymbols:
    def test_from_arguments(self):
        assert _resolve_symbols(None, ("spy", " qqq ")) == ["spy", "qqq"]

    def test_from_file(self, tmp_path):
        f = tmp_path / "symbols.txt"
        f.write_text("SPY\nQQQ\n")
        assert _resolve_symbols(str(f), ("ignored",)) == ["spy", "qqq"]

    def test_none(self):
        import click

        with pytest.raises(click.UsageError):
            _resolve_symbols(None, ())


class TestResolveRange:
    def test_explicit(self):
        assert _resolve_range("2016", "2017-06", 5) == (datetime(2016, 1, 1), datetime(2017, 6, 1))

    def test_years_lookback(self):
        start, end = _resolve_range("", "2020-01-01", 2)
        assert end == datetime(2020, 1, 1)
        assert (end - start).days == 730


# ---------------------------------------------------------------------------
# fetch
# ---------------------------------------------------------------------------


class TestFetchCommand:
    def test_one_file_per_symbol(self, runner, fake_provider, tmp_path):
        result = runner.invoke(cli, ["--log", "discard", "fetch", "spy", "qqq", "--delay", "0"])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "spy.csv").read_text().startswith("date,open,high,low,close,volume\n")
        assert (tmp_path / "qqq.csv").exists()

    def test_all_in_one_json(self, runner, fake_provider, tmp_path):
        result = runner.invoke(
            cli,
            ["--log", "discard", "fetch", "spy", "qqq", "--all", "--format", "json",
             "-o", "both.json", "--delay", "0"],
        )
        assert result.exit_code == 0, result.output
        data = json.loads((tmp_path / "both.json").read_text())
        assert [s["symbol"] for s in data] == ["spy", "qqq"]

    def test_highstock_single(self, runner, fake_provider, tmp_path):
        result = runner.invoke(
            cli, ["--log", "discard", "fetch", "spy", "--format", "highstock", "-o", "spy.js"]
        )
        assert result.exit_code == 0, result.output
        assert (tmp_path / "spy.js").read_text().startswith("[\n[1704153600000,")

    def test_failed_symbol_reported(self, runner, fake_provider, tmp_path):
        fake_provider.failing = {"bad"}
        result = runner.invoke(cli, ["--log", "discard", "fetch", "spy", "bad", "--delay", "0"])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "spy.csv").exists()
        assert not (tmp_path / "bad.csv").exists()

    def test_infile(self, runner, fake_provider, tmp_path):
        (tmp_path / "list.txt").write_text("SPY\n\nIWM\n")
        result = runner.invoke(cli, ["--log", "discard", "fetch", "-i", "list.txt", "--delay", "0"])
        assert result.exit_code == 0, result.output
        assert [r.symbol for r in fake_provider.requests] == ["spy", "iwm"]

    def test_date_options(self, runner, fake_provider):
        result = runner.invoke(
            cli, ["--log", "discard", "fetch", "spy", "-s", "2016", "-e", "2017-03", "--no-adjust"]
        )
        assert result.exit_code == 0, result.output
        sent = fake_provider.requests[0]
        assert (sent.start, sent.end) == (datetime(2016, 1, 1), datetime(2017, 3, 1))
        assert sent.adjust_prices is False

    def test_overrides_reach_provider_config(self, runner, fake_provider):
        result = runner.invoke(
            cli,
            ["--log", "discard", "fetch", "spy", "--source", "tiingo",
             "--token", "tok", "--delay", "0", "--strict"],
        )
        assert result.exit_code == 0, result.output
        name, config = fake_provider.factory.call_args.args
        assert name is ProviderName.TIINGO
        assert config.tiingo.token == "tok"
        assert config.fetch.request_delay_ms == 0
        assert config.fetch.strict_parsing is True

    def test_no_symbols(self, runner, fake_provider):
        result = runner.invoke(cli, ["--log", "discard", "fetch"])
        assert result.exit_code == 2
        assert "no symbols" in result.output

    def test_outfile_with_many_symbols_needs_all(self, runner, fake_provider):
        result = runner.invoke(cli, ["--log", "discard", "fetch", "spy", "qqq", "-o", "x.csv"])
        assert result.exit_code == 2
        assert fake_provider.requests == []

    def test_unsupported_period(self, runner, fake_provider):
        result = runner.invoke(cli, ["--log", "discard", "fetch", "spy", "--period", "5m"])
        assert result.exit_code == 2
        assert "not supported" in result.output
        fake_provider.factory.assert_not_called()

    def test_bad_date(self, runner, fake_provider):
        result = runner.invoke(cli, ["--log", "discard", "fetch", "spy", "-s", "2016-13"])
        assert result.exit_code == 2

    def test_log_to_file(self, runner, fake_provider, tmp_path):
        result = runner.invoke(cli, ["--log", "run.log", "fetch", "spy", "--delay", "0"])
        assert result.exit_code == 0, result.output
        assert "Fetched 1 of 1 symbols" in (tmp_path / "run.log").read_text()


# ---------------------------------------------------------------------------
# etf / market
# ---------------------------------------------------------------------------


class TestEtfCommand:
    def test_writes_default_file(self, runner, tmp_path):
        with patch(
            "quotefetch.providers.nasdaq.EtfListProvider.list_symbols",
            new_callable=AsyncMock,
            return_value=["agg", "spy"],
        ):
            result = runner.invoke(cli, ["--log", "discard", "etf"])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "etf.txt").read_text() == "agg\nspy"

    def test_failure_exit_code(self, runner, tmp_path):
        with patch(
            "quotefetch.providers.nasdaq.EtfListProvider.list_symbols",
            new_callable=AsyncMock,
            side_effect=NetworkError("timed out"),
        ):
            result = runner.invoke(cli, ["--log", "discard", "etf"])
        assert result.exit_code == 1
        assert not (tmp_path / "etf.txt").exists()


class TestMarketCommand:
    def test_single_market(self, runner, tmp_path):
        with patch("quotefetch.providers.nasdaq.list_market", new_callable=AsyncMock, return_value=["aapl"]):
            result = runner.invoke(cli, ["--log", "discard", "market", "nasdaq", "-o", "n.txt"])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "n.txt").read_text() == "aapl"

    def test_invalid_market(self, runner):
        result = runner.invoke(cli, ["--log", "discard", "market", "moon"])
        assert result.exit_code == 2
        assert "invalid market" in result.output

    def test_allmarkets_continues_after_failure(self, runner, tmp_path):
        from quotefetch.providers.nasdaq import VALID_MARKETS

        async def fake_list(market, *args):
            if market == "amex":
                raise NetworkError("HTTP 503")
            return [market[:3]]

        with patch("quotefetch.providers.nasdaq.list_market", side_effect=fake_list):
            result = runner.invoke(cli, ["--log", "discard", "market", "allmarkets"])
        assert result.exit_code == 0, result.output
        written = sorted(p.stem for p in tmp_path.glob("*.txt"))
        assert written == sorted(m for m in VALID_MARKETS if m != "amex")
