"""Delimited text codec for BarSeries.

Line format (``\\n`` terminated, no quoting)::

    [symbol,]YYYY-MM-DD HH:MM,open,high,low,close,volume

Prices are written with 2 decimals, volume with ``volume_decimals``
(0 for shares, 6 for fractional crypto volume).
"""

from __future__ import annotations

import logging
from datetime import datetime

from pydantic import ValidationError

from quotefetch.core.exceptions import PayloadError
from quotefetch.core.fields import FieldParser
from quotefetch.core.models import (
    Bar,
    BarSeries,
    FieldDiagnostic,
    SeriesCollection,
)

logger = logging.getLogger(__name__)

HEADER = "date,open,high,low,close,volume"
SYMBOL_HEADER = "symbol," + HEADER
DATE_FORMATS = ("%Y-%m-%d %H:%M", "%Y-%m-%d")

_HEADER_CELLS = {"date", "datetime", "symbol"}


def format_timestamp(ts: datetime) -> str:
    """Format as ``YYYY-MM-DD HH:MM``, zero-padded even for year 1."""
    return f"{ts.year:04d}-{ts.month:02d}-{ts.day:02d} {ts.hour:02d}:{ts.minute:02d}"


def _format_bar(bar: Bar, volume_decimals: int) -> str:
    return (
        f"{format_timestamp(bar.timestamp)},{bar.open:.2f},{bar.high:.2f},"
        f"{bar.low:.2f},{bar.close:.2f},{bar.volume:.{volume_decimals}f}"
    )


def encode_delimited(
    series: BarSeries,
    include_header: bool = True,
    include_symbol_column: bool = False,
    volume_decimals: int | None = None,
) -> str:
    """Encode one series, one line per bar."""
    decimals = series.volume_decimals if volume_decimals is None else volume_decimals
    lines: list[str] = []
    if include_header:
        lines.append(SYMBOL_HEADER if include_symbol_column else HEADER)
    prefix = f"{series.symbol}," if include_symbol_column else ""
    for bar in series.bars:
        lines.append(prefix + _format_bar(bar, decimals))
    return "".join(line + "\n" for line in lines)


def encode_delimited_collection(
    collection: SeriesCollection,
    include_header: bool = True,
) -> str:
    """Encode several series into one symbol-prefixed text."""
    parts = [SYMBOL_HEADER + "\n"] if include_header else []
    for series in collection.series:
        parts.append(
            encode_delimited(series, include_header=False, include_symbol_column=True)
        )
    return "".join(parts)


def _rows(text: str) -> list[tuple[int, list[str]]]:
    """Split into (line_index, cells), dropping blank lines and a header."""
    rows: list[tuple[int, list[str]]] = []
    for i, line in enumerate(text.split("\n")):
        line = line.rstrip("\r")
        if not line.strip():
            continue
        cells = line.split(",")
        if not rows and cells[0].strip().lower() in _HEADER_CELLS:
            continue
        rows.append((i, cells))
    return rows


def _make_bar(cells: list[str], row: int, parser: FieldParser) -> Bar:
    date_cell, o, h, lo, c, v = cells
    try:
        return Bar(
            timestamp=parser.timestamp(date_cell, "date", row, DATE_FORMATS),
            open=parser.number(o, "open", row),
            high=parser.number(h, "high", row),
            low=parser.number(lo, "low", row),
            close=parser.number(c, "close", row),
            volume=parser.number(v, "volume", row),
        )
    except ValidationError as e:
        raise PayloadError(
            f"Invalid bar at line {row}: {e.errors()[0]['msg']}",
            context={"row": row, "reason": "validation"},
        ) from e


def _volume_decimals(cell: str) -> int:
    """Digits after the decimal point in a volume cell."""
    return len(cell.strip().partition(".")[2])


def decode_delimited(
    text: str,
    symbol: str = "",
    *,
    strict: bool = False,
    diagnostics: list[FieldDiagnostic] | None = None,
) -> BarSeries:
    """Decode text produced by ``encode_delimited``.

    A leading symbol column (7 cells per line) is accepted; its value is
    used as the series symbol when ``symbol`` is empty. Every line must
    carry the same symbol; text mixing symbols belongs to
    ``decode_delimited_multi``. Bar order is kept exactly as given, and
    ``volume_decimals`` is taken from the widest volume cell.

    Raises
    ------
    PayloadError
        On a line with an unexpected number of columns, a change of symbol
        column, or a bad field when ``strict`` is set.
    """
    parser = FieldParser(strict=strict, diagnostics=diagnostics)
    bars: list[Bar] = []
    decimals = 0
    column_symbol: str | None = None
    for line_no, cells in _rows(text):
        if len(cells) == 7:
            if column_symbol is None:
                column_symbol = cells[0].strip()
            elif cells[0].strip() != column_symbol:
                raise PayloadError(
                    f"Symbol changes from {column_symbol!r} to {cells[0].strip()!r} "
                    f"at line {line_no}; use decode_delimited_multi",
                    context={"row": line_no, "reason": "mixed_symbols"},
                )
            if not symbol:
                symbol = cells[0].strip()
            cells = cells[1:]
        if len(cells) != 6:
            raise PayloadError(
                f"Expected 6 or 7 columns at line {line_no}, got {len(cells)}",
                context={"row": line_no, "reason": "column_count"},
            )
        bars.append(_make_bar(cells, line_no, parser))
        decimals = max(decimals, _volume_decimals(cells[5]))
    if parser.diagnostics:
        logger.warning(
            "Defaulted %d malformed field(s) while decoding %s",
            len(parser.diagnostics), symbol or "series",
        )
    return BarSeries(symbol=symbol, bars=bars, volume_decimals=decimals)


def decode_delimited_multi(
    text: str,
    *,
    strict: bool = False,
    diagnostics: list[FieldDiagnostic] | None = None,
) -> SeriesCollection:
    """Decode symbol-prefixed text into one series per distinct symbol.

    Series appear in the order their symbol is first seen; bars within a
    series keep file order. Each series takes ``volume_decimals`` from
    its widest volume cell.
    """
    parser = FieldParser(strict=strict, diagnostics=diagnostics)
    groups: dict[str, list[Bar]] = {}
    decimals: dict[str, int] = {}
    for line_no, cells in _rows(text):
        if len(cells) != 7:
            raise PayloadError(
                f"Expected 7 columns at line {line_no}, got {len(cells)}",
                context={"row": line_no, "reason": "column_count"},
            )
        groups.setdefault(cells[0], []).append(_make_bar(cells[1:], line_no, parser))
        decimals[cells[0]] = max(decimals.get(cells[0], 0), _volume_decimals(cells[6]))
    if parser.diagnostics:
        logger.warning(
            "Defaulted %d malformed field(s) while decoding %d series",
            len(parser.diagnostics), len(groups),
        )
    return SeriesCollection(
        series=[
            BarSeries(symbol=sym, bars=bars, volume_decimals=decimals[sym])
            for sym, bars in groups.items()
        ]
    )
