"""Highstock-style charting JSON.

Charting tools parse this dialect strictly, so it is assembled by hand
rather than through ``json.dumps``: one ``[ms,o,h,l,c,v]`` tuple per line,
a comma after every tuple except the last one of each array. Only the
symbol keys go through ``json.dumps``.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta

from quotefetch.core.models import Bar, BarSeries, SeriesCollection

_EPOCH = datetime(1970, 1, 1)
_MILLISECOND = timedelta(milliseconds=1)


def unix_millis(ts: datetime) -> int:
    """Milliseconds since the Unix epoch for a naive UTC datetime."""
    return (ts - _EPOCH) // _MILLISECOND


def _tuple_lines(bars: list[Bar]) -> str:
    out: list[str] = []
    for i, bar in enumerate(bars):
        comma = "" if i == len(bars) - 1 else ","
        out.append(
            f"[{unix_millis(bar.timestamp)},{bar.open:.2f},{bar.high:.2f},"
            f"{bar.low:.2f},{bar.close:.2f},{bar.volume:.0f}]{comma}\n"
        )
    return "".join(out)


def encode_charting(series: BarSeries) -> str:
    """Encode one series as a bare array of tuples."""
    return "[\n" + _tuple_lines(series.bars) + "]\n"


def encode_charting_collection(collection: SeriesCollection) -> str:
    """Encode several series as an object keyed by symbol."""
    parts = ["{"]
    last = len(collection.series) - 1
    for i, series in enumerate(collection.series):
        parts.append(json.dumps(series.symbol) + ":[\n")
        parts.append(_tuple_lines(series.bars))
        parts.append("],\n" if i < last else "]\n")
    parts.append("}")
    return "".join(parts)
