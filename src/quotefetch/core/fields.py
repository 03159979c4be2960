"""Lenient field parsing with an explicit diagnostics trail.

Upstream feeds occasionally carry ``null``, empty or otherwise malformed
numbers and dates inside otherwise valid records. Rather than failing the
whole record, a field that does not parse is replaced by its zero value
(``0.0`` or ``datetime.min``) and a ``FieldDiagnostic`` is recorded so
callers can see exactly what was defaulted. With ``strict=True`` the same
condition raises ``PayloadError`` instead.
"""

from __future__ import annotations

from datetime import datetime, timezone

from quotefetch.core.exceptions import PayloadError
from quotefetch.core.models import FieldDiagnostic

ZERO_TIME = datetime.min


class FieldParser:
    """Parses record fields, defaulting to zero on failure.

    Parameters
    ----------
    strict : bool
        Raise ``PayloadError`` instead of defaulting. Default: False.
    diagnostics : list[FieldDiagnostic] | None
        List to append diagnostics to. A fresh list is created if None.
    """

    def __init__(
        self,
        strict: bool = False,
        diagnostics: list[FieldDiagnostic] | None = None,
    ) -> None:
        self.strict = strict
        self.diagnostics: list[FieldDiagnostic] = (
            diagnostics if diagnostics is not None else []
        )

    def _default(self, row: int, field: str, raw: object, reason: str) -> None:
        if self.strict:
            raise PayloadError(
                f"Cannot parse {field} at row {row}: {raw!r} ({reason})",
                context={"row": row, "field": field, "reason": reason},
            )
        self.diagnostics.append(
            FieldDiagnostic(row=row, field=field, raw=str(raw), reason=reason)
        )

    def number(self, raw: object, field: str, row: int) -> float:
        """Parse a float from a string or JSON number."""
        if isinstance(raw, bool):
            self._default(row, field, raw, "boolean is not a number")
            return 0.0
        if isinstance(raw, (int, float)):
            return float(raw)
        if raw is None:
            self._default(row, field, raw, "missing value")
            return 0.0
        try:
            return float(str(raw).strip())
        except ValueError as e:
            self._default(row, field, raw, str(e))
            return 0.0

    def timestamp(
        self,
        raw: object,
        field: str,
        row: int,
        formats: tuple[str, ...],
    ) -> datetime:
        """Parse a naive datetime trying each strptime format in turn."""
        text = "" if raw is None else str(raw).strip()
        for fmt in formats:
            try:
                return datetime.strptime(text, fmt)
            except ValueError:
                continue
        self._default(row, field, raw, f"does not match {', '.join(formats)}")
        return ZERO_TIME

    def epoch(self, raw: object, field: str, row: int) -> datetime:
        """Parse Unix seconds into a naive UTC datetime."""
        seen = len(self.diagnostics)
        seconds = self.number(raw, field, row)
        if len(self.diagnostics) > seen:
            return ZERO_TIME
        try:
            return datetime.fromtimestamp(int(seconds), tz=timezone.utc).replace(tzinfo=None)
        except (OverflowError, ValueError, OSError) as e:
            self._default(row, field, raw, str(e))
            return ZERO_TIME
