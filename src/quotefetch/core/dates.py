"""Date-range helpers for quote requests."""

from __future__ import annotations

from datetime import datetime, timedelta

_FULL_FORMAT = "%Y-%m-%d %H:%M"
_PAD = "0000-01-01 00:00"


def parse_date_string(text: str, now: datetime | None = None) -> datetime:
    """Parse a possibly partial ``yyyy[-mm[-dd[ HH:MM]]]`` string.

    Missing trailing parts are filled from ``0000-01-01 00:00``, so
    ``"2016"`` means 2016-01-01 00:00 and ``"2016-03"`` means 2016-03-01.
    An empty string means ``now``.

    Raises
    ------
    ValueError
        If the padded string is not a valid date.
    """
    text = text.strip()
    if not text:
        return now or datetime.now().replace(second=0, microsecond=0)
    if len(text) > len(_PAD):
        raise ValueError(f"date string too long: {text!r}")
    return datetime.strptime(text + _PAD[len(text):], _FULL_FORMAT)


def lookback_range(years: int, end: datetime | None = None) -> tuple[datetime, datetime]:
    """Return ``(start, end)`` spanning ``years`` * 365 days back from ``end``."""
    if years < 0:
        raise ValueError(f"years must be >= 0, got {years}")
    end = end or datetime.now().replace(second=0, microsecond=0)
    return end - timedelta(days=365 * years), end
