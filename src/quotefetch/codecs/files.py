"""Flat-file dumps of series and symbol lists."""

from __future__ import annotations

import logging
from enum import StrEnum
from pathlib import Path

from quotefetch.codecs.charting import encode_charting, encode_charting_collection
from quotefetch.codecs.delimited import (
    decode_delimited,
    decode_delimited_multi,
    encode_delimited,
    encode_delimited_collection,
)
from quotefetch.codecs.json_codec import (
    decode_json,
    decode_json_collection,
    encode_json,
    encode_json_collection,
)
from quotefetch.core.models import BarSeries, SeriesCollection

logger = logging.getLogger(__name__)


class OutputFormat(StrEnum):
    """File formats a series can be written in."""

    CSV = "csv"
    JSON = "json"
    HIGHSTOCK = "highstock"

    @property
    def extension(self) -> str:
        return "csv" if self is OutputFormat.CSV else "json"


def write_series(
    series: BarSeries,
    fmt: OutputFormat = OutputFormat.CSV,
    filename: str | None = None,
) -> Path:
    """Write one series; default name is ``<symbol>.<ext>``."""
    path = Path(filename or f"{series.symbol or 'quote'}.{fmt.extension}")
    if fmt is OutputFormat.CSV:
        text = encode_delimited(series)
    elif fmt is OutputFormat.JSON:
        text = encode_json(series)
    else:
        text = encode_charting(series)
    path.write_text(text, encoding="utf-8")
    logger.info("Wrote %d bars for %s to %s", len(series), series.symbol, path)
    return path


def write_collection(
    collection: SeriesCollection,
    fmt: OutputFormat = OutputFormat.CSV,
    filename: str | None = None,
) -> Path:
    """Write all series into one file; default name is ``quotes.<ext>``."""
    path = Path(filename or f"quotes.{fmt.extension}")
    if fmt is OutputFormat.CSV:
        text = encode_delimited_collection(collection)
    elif fmt is OutputFormat.JSON:
        text = encode_json_collection(collection)
    else:
        text = encode_charting_collection(collection)
    path.write_text(text, encoding="utf-8")
    logger.info("Wrote %d series to %s", len(collection), path)
    return path


def read_series_file(filename: str, symbol: str = "") -> BarSeries:
    """Read a series written as ``.csv`` or ``.json``."""
    path = Path(filename)
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return decode_json(text)
    return decode_delimited(text, symbol or path.stem)


def read_collection_file(filename: str) -> SeriesCollection:
    """Read a collection written as ``.csv`` or ``.json``."""
    path = Path(filename)
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return decode_json_collection(text)
    return decode_delimited_multi(text)


def read_symbols(filename: str) -> list[str]:
    """Read a newline-delimited symbol file, lowercased, blanks dropped."""
    text = Path(filename).read_text(encoding="utf-8")
    return [line.strip().lower() for line in text.splitlines() if line.strip()]


def write_symbols(symbols: list[str], filename: str) -> Path:
    path = Path(filename)
    path.write_text("\n".join(symbols), encoding="utf-8")
    logger.info("Wrote %d symbols to %s", len(symbols), path)
    return path
