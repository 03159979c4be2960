"""GDAX candle provider: paginated public candle API.

The candles endpoint returns at most ``max_candles`` (200) rows per
request, newest first, as ``[time, low, high, open, close, volume]``.
Longer ranges are walked window by window, oldest window first, with a
pause between windows to stay under the public rate limit.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any

import httpx

from quotefetch.core.config import FetchConfig, GdaxConfig
from quotefetch.core.exceptions import NetworkError, PayloadError
from quotefetch.core.fields import FieldParser
from quotefetch.core.models import FetchResult, Period, ProviderName, ProviderRequest
from quotefetch.providers.base import build_series, check_period

logger = logging.getLogger(__name__)

_CANDLES_PATH = "/products/{symbol}/candles"
_DEFAULT_GRANULARITY = 24 * 60 * 60

GRANULARITY_SECONDS: dict[Period, int] = {
    Period.MIN_1: 60,
    Period.MIN_5: 5 * 60,
    Period.MIN_15: 15 * 60,
    Period.MIN_30: 30 * 60,
    Period.MIN_60: 60 * 60,
    Period.DAILY: 24 * 60 * 60,
    Period.WEEKLY: 7 * 24 * 60 * 60,
}


def granularity_for(period: Period) -> int:
    """Candle width in seconds; unknown periods fall back to daily."""
    return GRANULARITY_SECONDS.get(period, _DEFAULT_GRANULARITY)


def candle_windows(
    start: datetime,
    end: datetime,
    granularity: int,
    max_candles: int = 200,
) -> list[tuple[datetime, datetime]]:
    """Split ``[start, end]`` into consecutive request windows.

    Each window spans at most ``max_candles`` candles. The next window
    starts one candle after the previous end so boundary candles are
    never requested twice. Iteration stops once the window start reaches
    ``end``.
    """
    step = timedelta(seconds=granularity)
    windows: list[tuple[datetime, datetime]] = []
    window_start = start
    while window_start < end:
        window_end = min(window_start + max_candles * step, end)
        windows.append((window_start, window_end))
        window_start = window_end + step
    return windows


def _rfc3339(ts: datetime) -> str:
    return ts.strftime("%Y-%m-%dT%H:%M:%SZ")


class GdaxCandleAdapter:
    """Turns one window's newest-first candle rows into oldest-first bar dicts."""

    def adapt(
        self,
        raw_data: Any,
        symbol: str,
        parser: FieldParser | None = None,
        row_offset: int = 0,
    ) -> list[dict[str, object]]:
        parser = parser or FieldParser()
        if not isinstance(raw_data, list):
            raise PayloadError(
                f"Expected a JSON array of candles for {symbol}, got {type(raw_data).__name__}",
                context={"symbol": symbol, "reason": "shape"},
            )

        rows: list[dict[str, object]] = []
        for i, candle in enumerate(raw_data, start=row_offset):
            if not isinstance(candle, list) or len(candle) != 6:
                raise PayloadError(
                    f"Expected a 6-element candle for {symbol} at row {i}",
                    context={"symbol": symbol, "row": i, "reason": "shape"},
                )
            rows.append(
                {
                    "timestamp": parser.epoch(candle[0], "time", i),
                    "low": parser.number(candle[1], "low", i),
                    "high": parser.number(candle[2], "high", i),
                    "open": parser.number(candle[3], "open", i),
                    "close": parser.number(candle[4], "close", i),
                    "volume": parser.number(candle[5], "volume", i),
                }
            )
        rows.reverse()
        return rows


class GdaxProvider:
    """Fetches candles from the GDAX public API.

    Parameters
    ----------
    config : GdaxConfig | None
        Base URL, page size and inter-window delay. Defaults if None.
    fetch_config : FetchConfig | None
        Timeout, user agent and strictness. Defaults if None.
    adapter : GdaxCandleAdapter | None
        Custom adapter instance. Uses default if None.
    """

    name = ProviderName.GDAX

    def __init__(
        self,
        config: GdaxConfig | None = None,
        fetch_config: FetchConfig | None = None,
        adapter: GdaxCandleAdapter | None = None,
    ) -> None:
        self._config = config or GdaxConfig()
        self._fetch_config = fetch_config or FetchConfig()
        self._adapter = adapter or GdaxCandleAdapter()
        self._client = httpx.AsyncClient(
            headers={"User-Agent": self._fetch_config.user_agent},
            timeout=httpx.Timeout(self._fetch_config.request_timeout),
        )

    async def __aenter__(self) -> GdaxProvider:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _fetch_window(
        self,
        symbol: str,
        window_start: datetime,
        window_end: datetime,
        granularity: int,
    ) -> Any:
        url = self._config.base_url + _CANDLES_PATH.format(symbol=symbol)
        params = {
            "start": _rfc3339(window_start),
            "end": _rfc3339(window_end),
            "granularity": str(granularity),
        }
        try:
            resp = await self._client.get(url, params=params)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "GDAX HTTP error for %s: %s %s",
                symbol,
                e.response.status_code,
                e.response.text[:200],
            )
            raise NetworkError(
                f"HTTP {e.response.status_code} from {url}",
                context={"symbol": symbol, "url": url, "status_code": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            logger.error("GDAX request error for %s: %s", symbol, e)
            raise NetworkError(
                f"Request failed for {symbol}: {e}",
                context={"symbol": symbol, "url": url, "status_code": None},
            ) from e
        except ValueError as e:
            raise PayloadError(
                f"Invalid JSON for {symbol}: {e}",
                context={"symbol": symbol, "reason": "json"},
            ) from e

    async def fetch(self, request: ProviderRequest) -> FetchResult:
        """Walk the request range window by window.

        Each window is requested, parsed and appended before the next one
        is issued. Any failing window fails the whole symbol.
        """
        check_period(self.name, request.period)
        granularity = granularity_for(request.period)
        windows = candle_windows(
            request.start, request.end, granularity, self._config.max_candles
        )
        logger.debug(
            "Fetching %s in %d window(s) of %ds candles", request.symbol, len(windows), granularity
        )

        parser = FieldParser(strict=self._fetch_config.strict_parsing)
        bars: list[dict[str, object]] = []
        for i, (window_start, window_end) in enumerate(windows):
            if i > 0:
                await asyncio.sleep(self._config.window_delay)
            raw = await self._fetch_window(request.symbol, window_start, window_end, granularity)
            for row in self._adapter.adapt(raw, request.symbol, parser, row_offset=len(bars)):
                if bars and row["timestamp"] <= bars[-1]["timestamp"]:
                    logger.debug("Dropping out-of-order candle %s for %s", row["timestamp"], request.symbol)
                    continue
                bars.append(row)

        series = build_series(request.symbol, bars, volume_decimals=6)
        return FetchResult(series=series, diagnostics=parser.diagnostics, source=self.name)
