"""Structured JSON codec: field-for-field BarSeries encoding via pydantic."""

from __future__ import annotations

import json

from pydantic import TypeAdapter, ValidationError

from quotefetch.core.exceptions import PayloadError
from quotefetch.core.models import BarSeries, SeriesCollection

_SERIES_LIST = TypeAdapter(list[BarSeries])


def encode_json(series: BarSeries, indent: bool = False) -> str:
    """Encode one series. ``indent`` only changes layout."""
    return series.model_dump_json(indent=2 if indent else None)


def decode_json(text: str) -> BarSeries:
    try:
        return BarSeries.model_validate_json(text)
    except ValidationError as e:
        raise PayloadError(
            f"Invalid series JSON: {e.errors()[0]['msg']}",
            context={"reason": "json"},
        ) from e


def encode_json_collection(collection: SeriesCollection, indent: bool = False) -> str:
    """Encode a collection as a JSON array of series."""
    data = _SERIES_LIST.dump_python(collection.series, mode="json")
    if indent:
        return json.dumps(data, indent=2)
    return json.dumps(data, separators=(",", ":"))


def decode_json_collection(text: str) -> SeriesCollection:
    try:
        return SeriesCollection(series=_SERIES_LIST.validate_json(text))
    except ValidationError as e:
        raise PayloadError(
            f"Invalid collection JSON: {e.errors()[0]['msg']}",
            context={"reason": "json"},
        ) from e
