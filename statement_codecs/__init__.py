"""
statement_codecs -- MT940, CAMT.053 and CSV codecs plus the conversion layer.

Each codec turns bytes into canonical ``Statement`` values and back.  The
``conversion`` module is the public entry point:

    from statement_codecs import Format, convert

    csv_bytes = convert(mt940_bytes, Format.MT940, Format.CSV)
"""

from statement_codecs.base import Format, StatementCodec
from statement_codecs.conversion import (
    canonicalize_for,
    convert,
    parse_statement,
    parse_statements,
    serialize,
)
from statement_codecs.registry import get_codec

__all__ = [
    "Format",
    "StatementCodec",
    "canonicalize_for",
    "convert",
    "get_codec",
    "parse_statement",
    "parse_statements",
    "serialize",
]
