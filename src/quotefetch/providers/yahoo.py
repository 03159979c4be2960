"""Yahoo Finance portal provider: cookie/crumb authenticated CSV download.

Uses the ``/v7/finance/download/`` endpoint, which requires the session
handshake in ``providers.session``. Only daily bars are available.
"""

from __future__ import annotations

import csv
import io
import logging
from calendar import timegm

import httpx

from quotefetch.core.config import FetchConfig, YahooConfig
from quotefetch.core.exceptions import InvalidRequestError, NetworkError, PayloadError
from quotefetch.core.fields import FieldParser
from quotefetch.core.models import (
    BarSeries,
    FetchResult,
    Period,
    ProviderName,
    ProviderRequest,
)
from quotefetch.providers.base import build_series
from quotefetch.providers.session import PortalSession

logger = logging.getLogger(__name__)

_DOWNLOAD_PATH = "/v7/finance/download"
_DATE_FORMATS = ("%Y-%m-%d",)
_COLUMNS = 7  # date,open,high,low,close,adjClose,volume


class YahooFinanceAdapter:
    """Transforms the download CSV into a BarSeries.

    Adjustment policy (the source of truth for ``close`` flips with the flag):

    - ``adjust_prices=True``: open/high/low are the raw values, close is
      the published adjusted close.
    - ``adjust_prices=False``: close is the raw close and open/high/low are
      scaled by ``close / adjClose``.
    """

    def adapt(
        self,
        raw_data: str,
        symbol: str,
        adjust_prices: bool = True,
        parser: FieldParser | None = None,
    ) -> BarSeries:
        """Parse the CSV body.

        Parameters
        ----------
        raw_data : str
            Response body including the header row.
        symbol : str
            The ticker symbol.
        adjust_prices : bool
            See class docstring.
        parser : FieldParser | None
            Collects defaulted fields. A lenient parser is used if None.

        Returns
        -------
        BarSeries
            Oldest bar first. A newest-first feed is reversed positionally.
        """
        parser = parser or FieldParser()
        try:
            rows = list(csv.reader(io.StringIO(raw_data)))
        except csv.Error as e:
            raise PayloadError(
                f"Malformed CSV for {symbol}: {e}",
                context={"symbol": symbol, "reason": "csv"},
            ) from e

        parsed: list[dict[str, object]] = []
        for i, row in enumerate(rows[1:], start=1):
            if not row or not any(cell.strip() for cell in row):
                continue
            if len(row) != _COLUMNS:
                raise PayloadError(
                    f"Expected {_COLUMNS} columns for {symbol} at row {i}, got {len(row)}",
                    context={"symbol": symbol, "row": i, "reason": "column_count"},
                )

            ts = parser.timestamp(row[0], "date", i, _DATE_FORMATS)
            o = parser.number(row[1], "open", i)
            h = parser.number(row[2], "high", i)
            lo = parser.number(row[3], "low", i)
            c = parser.number(row[4], "close", i)
            a = parser.number(row[5], "adj_close", i)
            v = parser.number(row[6], "volume", i)

            if adjust_prices:
                close = a
            else:
                ratio = c / a if a else 1.0
                o, h, lo = o * ratio, h * ratio, lo * ratio
                close = c

            parsed.append(
                {"timestamp": ts, "open": o, "high": h, "low": lo, "close": close, "volume": v}
            )

        if len(parsed) > 1 and parsed[0]["timestamp"] > parsed[-1]["timestamp"]:
            parsed.reverse()

        return build_series(symbol, parsed)


class YahooFinanceProvider:
    """Fetches daily history from the Yahoo Finance download endpoint.

    By default every ``fetch`` opens a fresh client and session, so each
    symbol costs three requests. With ``reuse_session`` the first
    authenticated session is kept for the provider's lifetime.

    Parameters
    ----------
    config : YahooConfig | None
        Endpoints and session policy. Defaults if None.
    fetch_config : FetchConfig | None
        Timeout, user agent and strictness. Defaults if None.
    adapter : YahooFinanceAdapter | None
        Custom adapter instance. Uses default if None.
    """

    name = ProviderName.YAHOO

    def __init__(
        self,
        config: YahooConfig | None = None,
        fetch_config: FetchConfig | None = None,
        adapter: YahooFinanceAdapter | None = None,
    ) -> None:
        self._config = config or YahooConfig()
        self._fetch_config = fetch_config or FetchConfig()
        self._adapter = adapter or YahooFinanceAdapter()
        self._shared: tuple[httpx.AsyncClient, PortalSession] | None = None

    async def __aenter__(self) -> YahooFinanceProvider:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the shared session client, if one is held."""
        if self._shared is not None:
            await self._shared[0].aclose()
            self._shared = None

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers={"User-Agent": self._fetch_config.user_agent},
            timeout=httpx.Timeout(self._fetch_config.request_timeout),
            follow_redirects=True,
        )

    def _new_session(self, client: httpx.AsyncClient) -> PortalSession:
        return PortalSession(client, self._config.home_url, self._config.crumb_url)

    async def fetch(self, request: ProviderRequest) -> FetchResult:
        """Authenticate, download and parse one symbol.

        Raises
        ------
        InvalidRequestError
            Period is not daily (before any network call).
        AuthError
            Session handshake failed.
        NetworkError
            Download failed or returned a non-200 status.
        PayloadError
            Body could not be parsed.
        """
        if request.period is not Period.DAILY:
            raise InvalidRequestError(
                "Yahoo intraday, weekly and monthly data are not supported",
                context={"provider": self.name.value, "field": "period", "value": request.period.value},
            )

        if self._config.reuse_session:
            if self._shared is None:
                client = self._new_client()
                self._shared = (client, self._new_session(client))
            client, session = self._shared
            return await self._fetch_with(client, session, request)

        async with self._new_client() as client:
            return await self._fetch_with(client, self._new_session(client), request)

    async def _fetch_with(
        self,
        client: httpx.AsyncClient,
        session: PortalSession,
        request: ProviderRequest,
    ) -> FetchResult:
        crumb = await session.authenticate()

        url = f"{self._config.base_url}{_DOWNLOAD_PATH}/{request.symbol}"
        params = {
            "period1": str(timegm(request.start.timetuple())),
            "period2": str(timegm(request.end.timetuple())),
            "interval": "1d",
            "events": "history",
            "crumb": crumb,
        }

        try:
            resp = await client.get(url, params=params)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Yahoo Finance HTTP error for %s: %s %s",
                request.symbol,
                e.response.status_code,
                e.response.text[:200],
            )
            raise NetworkError(
                f"HTTP {e.response.status_code} from {url}",
                context={"symbol": request.symbol, "url": url, "status_code": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            logger.error("Yahoo Finance request error for %s: %s", request.symbol, e)
            raise NetworkError(
                f"Request failed for {request.symbol}: {e}",
                context={"symbol": request.symbol, "url": url, "status_code": None},
            ) from e

        parser = FieldParser(strict=self._fetch_config.strict_parsing)
        series = self._adapter.adapt(resp.text, request.symbol, request.adjust_prices, parser)
        return FetchResult(series=series, diagnostics=parser.diagnostics, source=self.name)
