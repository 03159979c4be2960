"""Serialization of BarSeries: delimited text, JSON, and charting JSON."""

from quotefetch.codecs.charting import encode_charting, encode_charting_collection
from quotefetch.codecs.delimited import (
    decode_delimited,
    decode_delimited_multi,
    encode_delimited,
    encode_delimited_collection,
)
from quotefetch.codecs.files import (
    OutputFormat,
    read_collection_file,
    read_series_file,
    read_symbols,
    write_collection,
    write_series,
    write_symbols,
)
from quotefetch.codecs.json_codec import (
    decode_json,
    decode_json_collection,
    encode_json,
    encode_json_collection,
)

__all__ = [
    # Delimited
    "encode_delimited",
    "encode_delimited_collection",
    "decode_delimited",
    "decode_delimited_multi",
    # JSON
    "encode_json",
    "encode_json_collection",
    "decode_json",
    "decode_json_collection",
    # Charting
    "encode_charting",
    "encode_charting_collection",
    # Files
    "OutputFormat",
    "write_series",
    "write_collection",
    "read_series_file",
    "read_collection_file",
    "read_symbols",
    "write_symbols",
]
