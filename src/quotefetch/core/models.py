"""Pydantic data models: the canonical quote representation."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

# --- Type Aliases ---

Symbol = str

# --- Enumerations ---


class Period(StrEnum):
    """Bar periods understood by the providers."""

    MIN_1 = "1m"
    MIN_5 = "5m"
    MIN_15 = "15m"
    MIN_30 = "30m"
    MIN_60 = "1h"
    DAILY = "d"
    WEEKLY = "w"
    MONTHLY = "m"


class ProviderName(StrEnum):
    """Upstream data providers."""

    YAHOO = "yahoo"
    TIINGO = "tiingo"
    GDAX = "gdax"
    NASDAQ = "nasdaq"


# --- Bars ---


class Bar(BaseModel):
    """A single OHLCV record.

    ``timestamp`` is a naive datetime holding UTC wall-clock time.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float

    @field_validator("volume")
    @classmethod
    def volume_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"volume must be >= 0, got {v}")
        return v


class BarSeries(BaseModel):
    """One instrument's time-ordered history.

    Adapters always return bars in strictly ascending timestamp order.
    Decoders keep whatever order the file holds, so ``is_chronological``
    is a property rather than a validator.

    ``volume_decimals`` is a formatting hint for the delimited encoder:
    0 for share volume, 6 for instruments traded in fractional units.
    """

    model_config = ConfigDict(frozen=True)

    symbol: Symbol
    bars: list[Bar] = []
    volume_decimals: int = 0

    def __len__(self) -> int:
        return len(self.bars)

    @property
    def timestamps(self) -> list[datetime]:
        return [b.timestamp for b in self.bars]

    @property
    def closes(self) -> list[float]:
        return [b.close for b in self.bars]

    @property
    def last(self) -> Bar | None:
        return self.bars[-1] if self.bars else None

    @property
    def is_chronological(self) -> bool:
        """True when timestamps are strictly ascending."""
        ts = self.timestamps
        return all(a < b for a, b in zip(ts, ts[1:]))


class SeriesCollection(BaseModel):
    """BarSeries in arrival order. Duplicate symbols are kept, not merged."""

    model_config = ConfigDict(frozen=True)

    series: list[BarSeries] = []

    def __len__(self) -> int:
        return len(self.series)

    def symbols(self) -> list[Symbol]:
        return [s.symbol for s in self.series]

    def get(self, symbol: Symbol) -> BarSeries | None:
        """Return the first series for ``symbol``, or None."""
        for s in self.series:
            if s.symbol == symbol:
                return s
        return None


# --- Requests & results ---


class ProviderRequest(BaseModel):
    """Parameters for a single-symbol quote request."""

    model_config = ConfigDict(frozen=True)

    symbol: Symbol
    start: datetime
    end: datetime
    period: Period = Period.DAILY
    adjust_prices: bool = True

    @field_validator("symbol")
    @classmethod
    def symbol_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("symbol must not be blank")
        return v

    @model_validator(mode="after")
    def start_not_after_end(self) -> ProviderRequest:
        if self.start > self.end:
            raise ValueError(
                f"start ({self.start}) must not be after end ({self.end})"
            )
        return self


class FieldDiagnostic(BaseModel):
    """A record field that failed to parse and was defaulted to zero."""

    model_config = ConfigDict(frozen=True)

    row: int
    field: str
    raw: str
    reason: str


class FetchResult(BaseModel):
    """A fetched series plus the fields that had to be defaulted."""

    model_config = ConfigDict(frozen=True)

    series: BarSeries
    diagnostics: list[FieldDiagnostic] = []
    source: ProviderName

    @property
    def clean(self) -> bool:
        return not self.diagnostics


class SymbolFailure(BaseModel):
    """Why one symbol of a batch was skipped."""

    model_config = ConfigDict(frozen=True)

    symbol: Symbol
    error_type: str
    message: str
