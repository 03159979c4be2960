"""Nasdaq symbol listings: ETF directory (FTP) and screener downloads (HTTP)."""

from __future__ import annotations

import csv
import io
import logging
import re

import httpx

from quotefetch.core.config import FetchConfig, NasdaqConfig
from quotefetch.core.exceptions import InvalidRequestError, NetworkError, PayloadError
from quotefetch.providers.base import SymbolDirectoryProvider
from quotefetch.providers.ftp import AnonymousFtpDirectory

logger = logging.getLogger(__name__)

_SCREENER = "http://www.nasdaq.com/screening"
_BY_NAME = _SCREENER + "/companies-by-name.aspx?letter=0&exchange={}&render=download"
_BY_CAP = _SCREENER + "/companies-by-industry.aspx?marketcap={}&render=download"
_BY_INDUSTRY = _SCREENER + "/companies-by-industry.aspx?industry={}&render=download"

MARKET_URLS: dict[str, str] = {
    "nasdaq": _BY_NAME.format("nasdaq"),
    "amex": _BY_NAME.format("amex"),
    "nyse": _BY_NAME.format("nyse"),
    "megacap": _BY_CAP.format("Mega-cap"),
    "largecap": _BY_CAP.format("Large-cap"),
    "midcap": _BY_CAP.format("Mid-cap"),
    "smallcap": _BY_CAP.format("Small-cap"),
    "microcap": _BY_CAP.format("Micro-cap"),
    "nanocap": _BY_CAP.format("Nano-cap"),
    "basicindustries": _BY_INDUSTRY.format("Basic%20Industries"),
    "capitalgoods": _BY_INDUSTRY.format("Capital%20Goods"),
    "consumerdurables": _BY_INDUSTRY.format("Consumer%20Durables"),
    "consumernondurable": _BY_INDUSTRY.format("Consumer%20Non-Durables"),
    "consumerservices": _BY_INDUSTRY.format("Consumer%20Services"),
    "energy": _BY_INDUSTRY.format("Energy"),
    "finance": _BY_INDUSTRY.format("Finance"),
    "healthcare": _BY_INDUSTRY.format("Health-Care"),
    "miscellaneous": _BY_INDUSTRY.format("Miscellaneous"),
    "utilities": _BY_INDUSTRY.format("Utilities"),
    "technology": _BY_INDUSTRY.format("Technology"),
    "transportation": _BY_INDUSTRY.format("Transportation"),
}

VALID_MARKETS: tuple[str, ...] = ("etf", *MARKET_URLS)

# Numeric, hyphenated and dotted tickers (BRK.B, 7203) are dropped.
_TICKER_RE = re.compile(r"^[a-z]+$")


def filter_etf_rows(text: str) -> list[str]:
    """Pick ETF symbols out of the pipe-delimited ``otherlisted.txt``.

    Columns: ACT Symbol|Security Name|Exchange|CQS Symbol|ETF|Round Lot Size|Test Issue|...
    A row is kept when ETF is ``Y`` and Test Issue is ``N``.
    """
    symbols: list[str] = []
    for line in text.splitlines():
        cols = line.split("|")
        if len(cols) > 6 and cols[4] == "Y" and cols[6] == "N":
            symbols.append(cols[0].lower())
    return sorted(symbols)


def filter_market_rows(text: str) -> list[str]:
    """Pick plain alphabetic tickers out of a screener CSV (header skipped)."""
    try:
        rows = list(csv.reader(io.StringIO(text)))
    except csv.Error as e:
        raise PayloadError(f"Malformed screener CSV: {e}", context={"reason": "csv"}) from e
    symbols: list[str] = []
    for row in rows[1:]:
        if not row:
            continue
        sym = row[0].strip().lower()
        if _TICKER_RE.match(sym):
            symbols.append(sym)
    return sorted(symbols)


class EtfListProvider:
    """ETF symbols from a symbol directory file.

    Parameters
    ----------
    directory : SymbolDirectoryProvider | None
        Source of the raw directory text. Defaults to anonymous FTP
        against the configured Nasdaq host.
    config : NasdaqConfig | None
        Used only to build the default directory.
    """

    def __init__(
        self,
        directory: SymbolDirectoryProvider | None = None,
        config: NasdaqConfig | None = None,
    ) -> None:
        if directory is None:
            cfg = config or NasdaqConfig()
            directory = AnonymousFtpDirectory(
                host=cfg.ftp_host,
                port=cfg.ftp_port,
                directory=cfg.ftp_directory,
                filename=cfg.ftp_filename,
                timeout=cfg.ftp_timeout,
            )
        self._directory = directory

    async def list_symbols(self) -> list[str]:
        text = await self._directory.fetch_directory()
        symbols = filter_etf_rows(text)
        logger.info("Found %d ETF symbols", len(symbols))
        return symbols


class MarketListProvider:
    """Symbols for one exchange, market-cap bucket or sector.

    Raises InvalidRequestError at construction for an unknown market.
    """

    def __init__(
        self,
        market: str,
        fetch_config: FetchConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if market not in MARKET_URLS:
            raise InvalidRequestError(
                f"Invalid market: {market!r}",
                context={"provider": "nasdaq", "field": "market", "value": market},
            )
        self.market = market
        fetch_config = fetch_config or FetchConfig()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers={"User-Agent": fetch_config.user_agent},
            timeout=httpx.Timeout(fetch_config.request_timeout),
            follow_redirects=True,
        )

    async def __aenter__(self) -> MarketListProvider:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def list_symbols(self) -> list[str]:
        url = MARKET_URLS[self.market]
        try:
            resp = await self._client.get(url)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NetworkError(
                f"HTTP {e.response.status_code} from {url}",
                context={"url": url, "status_code": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            raise NetworkError(
                f"Market list request failed for {self.market}: {e}",
                context={"url": url, "status_code": None},
            ) from e
        symbols = filter_market_rows(resp.text)
        logger.info("Found %d symbols for market %s", len(symbols), self.market)
        return symbols


async def list_market(
    market: str,
    config: NasdaqConfig | None = None,
    fetch_config: FetchConfig | None = None,
) -> list[str]:
    """Symbols for any of ``VALID_MARKETS``; ``etf`` goes through FTP."""
    if market == "etf":
        return await EtfListProvider(config=config).list_symbols()
    async with MarketListProvider(market, fetch_config) as provider:
        return await provider.list_symbols()
