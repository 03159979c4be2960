"""Tiingo REST provider: token-authenticated JSON daily prices."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from quotefetch.core.config import FetchConfig, TiingoConfig
from quotefetch.core.exceptions import InvalidRequestError, NetworkError, PayloadError
from quotefetch.core.fields import FieldParser
from quotefetch.core.models import BarSeries, FetchResult, ProviderName, ProviderRequest
from quotefetch.providers.base import build_series, check_period

logger = logging.getLogger(__name__)

_PRICES_PATH = "/tiingo/daily/{symbol}/prices"
_DATE_FORMATS = ("%Y-%m-%d",)


class TiingoAdapter:
    """Maps Tiingo price objects onto bars, keeping only adjusted fields.

    Tiingo returns rows oldest-first, so order is kept as received.
    """

    def adapt(self, raw_data: Any, symbol: str, parser: FieldParser | None = None) -> BarSeries:
        parser = parser or FieldParser()
        if not isinstance(raw_data, list):
            raise PayloadError(
                f"Expected a JSON array for {symbol}, got {type(raw_data).__name__}",
                context={"symbol": symbol, "reason": "shape"},
            )

        rows: list[dict[str, object]] = []
        for i, item in enumerate(raw_data):
            if not isinstance(item, dict):
                raise PayloadError(
                    f"Expected a JSON object for {symbol} at row {i}",
                    context={"symbol": symbol, "row": i, "reason": "shape"},
                )
            rows.append(
                {
                    "timestamp": parser.timestamp(
                        str(item.get("date", ""))[:10], "date", i, _DATE_FORMATS
                    ),
                    "open": parser.number(item.get("adjOpen"), "adj_open", i),
                    "high": parser.number(item.get("adjHigh"), "adj_high", i),
                    "low": parser.number(item.get("adjLow"), "adj_low", i),
                    "close": parser.number(item.get("adjClose"), "adj_close", i),
                    "volume": parser.number(item.get("adjVolume"), "adj_volume", i),
                }
            )
        return build_series(symbol, rows)


class TiingoProvider:
    """Fetches adjusted daily bars from the Tiingo REST API.

    Parameters
    ----------
    config : TiingoConfig | None
        Base URL and API token. A token is required to fetch.
    fetch_config : FetchConfig | None
        Timeout, user agent and strictness. Defaults if None.
    adapter : TiingoAdapter | None
        Custom adapter instance. Uses default if None.
    """

    name = ProviderName.TIINGO

    def __init__(
        self,
        config: TiingoConfig | None = None,
        fetch_config: FetchConfig | None = None,
        adapter: TiingoAdapter | None = None,
    ) -> None:
        self._config = config or TiingoConfig()
        self._fetch_config = fetch_config or FetchConfig()
        self._adapter = adapter or TiingoAdapter()
        self._client = httpx.AsyncClient(
            headers={"User-Agent": self._fetch_config.user_agent},
            timeout=httpx.Timeout(self._fetch_config.request_timeout),
        )

    async def __aenter__(self) -> TiingoProvider:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch(self, request: ProviderRequest) -> FetchResult:
        """Fetch one symbol.

        Raises
        ------
        InvalidRequestError
            No API token configured, or a non-daily period.
        NetworkError
            Transport failure or non-200 status.
        PayloadError
            Body is not a JSON array of price objects.
        """
        if not self._config.token:
            raise InvalidRequestError(
                "Tiingo requires an API token",
                context={"provider": self.name.value, "field": "token", "value": None},
            )
        check_period(self.name, request.period)

        url = self._config.base_url + _PRICES_PATH.format(symbol=request.symbol)
        params = {
            "startDate": f"{request.start.year}-{request.start.month}-{request.start.day}",
            "endDate": f"{request.end.year}-{request.end.month}-{request.end.day}",
        }
        headers = {"Authorization": f"Token {self._config.token}"}

        try:
            resp = await self._client.get(url, params=params, headers=headers)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Tiingo HTTP error for %s: %s %s",
                request.symbol,
                e.response.status_code,
                e.response.text[:200],
            )
            raise NetworkError(
                f"HTTP {e.response.status_code} from {url}",
                context={"symbol": request.symbol, "url": url, "status_code": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            logger.error("Tiingo request error for %s: %s", request.symbol, e)
            raise NetworkError(
                f"Request failed for {request.symbol}: {e}",
                context={"symbol": request.symbol, "url": url, "status_code": None},
            ) from e
        except ValueError as e:
            logger.error("Tiingo returned invalid JSON for %s: %s", request.symbol, e)
            raise PayloadError(
                f"Invalid JSON for {request.symbol}: {e}",
                context={"symbol": request.symbol, "reason": "json"},
            ) from e

        parser = FieldParser(strict=self._fetch_config.strict_parsing)
        series = self._adapter.adapt(data, request.symbol, parser)
        return FetchResult(series=series, diagnostics=parser.diagnostics, source=self.name)
