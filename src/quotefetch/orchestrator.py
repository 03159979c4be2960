"""Sequential, rate-limited acquisition across one or many symbols."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime

from pydantic import ValidationError

from quotefetch.core.config import FetchConfig
from quotefetch.core.exceptions import FetchError, InvalidRequestError
from quotefetch.core.models import (
    BarSeries,
    FetchResult,
    FieldDiagnostic,
    Period,
    ProviderRequest,
    SeriesCollection,
    SymbolFailure,
)
from quotefetch.providers.base import QuoteProvider, check_period

logger = logging.getLogger(__name__)


class QuoteOrchestrator:
    """Drives a provider across a symbol or a batch of symbols.

    Symbols are fetched strictly one after another. A failed symbol is
    logged, recorded in ``failures`` and left out of the result; the batch
    carries on. Only ``InvalidRequestError`` aborts a batch, and it is
    raised before the first request goes out.

    Parameters
    ----------
    provider : QuoteProvider
        The adapter to drive.
    config : FetchConfig | None
        ``request_delay_ms`` seeds ``delay``. Defaults if None.

    Attributes
    ----------
    delay : float
        Minimum seconds between successive symbol fetches. Read on every
        iteration, so changing it mid-batch applies to the next symbol.
    failures : list[SymbolFailure]
        Symbols skipped by the most recent ``fetch_many``.
    diagnostics : dict[str, list[FieldDiagnostic]]
        Fields defaulted to zero, per symbol, for the most recent batch.
    """

    def __init__(self, provider: QuoteProvider, config: FetchConfig | None = None) -> None:
        config = config or FetchConfig()
        self._provider = provider
        self.delay: float = config.request_delay_ms / 1000.0
        self.failures: list[SymbolFailure] = []
        self.diagnostics: dict[str, list[FieldDiagnostic]] = {}
        self._last_request_time: float | None = None

    @property
    def provider(self) -> QuoteProvider:
        return self._provider

    async def _rate_limit(self) -> None:
        """Enforce ``delay`` since the previous fetch started."""
        if self._last_request_time is not None:
            elapsed = time.monotonic() - self._last_request_time
            if elapsed < self.delay:
                await asyncio.sleep(self.delay - elapsed)
        self._last_request_time = time.monotonic()

    async def fetch_one(self, request: ProviderRequest) -> FetchResult:
        """Fetch a single symbol. Errors propagate to the caller."""
        check_period(self._provider.name, request.period)
        await self._rate_limit()
        result = await self._provider.fetch(request)
        if result.diagnostics:
            logger.warning(
                "%s: %d field(s) defaulted to zero", request.symbol, len(result.diagnostics)
            )
        return result

    async def fetch_many(
        self,
        symbols: list[str],
        start: datetime,
        end: datetime,
        period: Period = Period.DAILY,
        adjust_prices: bool = True,
    ) -> SeriesCollection:
        """Fetch each symbol in order; keep only the successes.

        Raises
        ------
        InvalidRequestError
            Empty symbol list, unsupported period, bad date range, or a
            provider-level precondition (e.g. missing token).
        """
        if not symbols:
            raise InvalidRequestError(
                "No symbols specified",
                context={"provider": self._provider.name.value, "field": "symbols", "value": []},
            )
        check_period(self._provider.name, period)
        requests = [self._build_request(s, start, end, period, adjust_prices) for s in symbols]

        self.failures = []
        self.diagnostics = {}
        fetched: list[BarSeries] = []

        for request in requests:
            try:
                result = await self.fetch_one(request)
            except FetchError as e:
                logger.error("Error downloading %s: %s", request.symbol, e)
                self.failures.append(
                    SymbolFailure(
                        symbol=request.symbol,
                        error_type=type(e).__name__,
                        message=str(e),
                    )
                )
                continue

            if result.diagnostics:
                self.diagnostics[request.symbol] = result.diagnostics
            fetched.append(result.series)

        logger.info(
            "Fetched %d of %d symbols from %s",
            len(fetched), len(requests), self._provider.name.value,
        )
        return SeriesCollection(series=fetched)

    def _build_request(
        self,
        symbol: str,
        start: datetime,
        end: datetime,
        period: Period,
        adjust_prices: bool,
    ) -> ProviderRequest:
        try:
            return ProviderRequest(
                symbol=symbol,
                start=start,
                end=end,
                period=period,
                adjust_prices=adjust_prices,
            )
        except ValidationError as e:
            raise InvalidRequestError(
                f"Invalid request for {symbol!r}: {e.errors()[0]['msg']}",
                context={"provider": self._provider.name.value, "field": "request", "value": symbol},
            ) from e
