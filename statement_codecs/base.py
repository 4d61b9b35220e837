"""
Codec protocol, format names and shared decoding helpers.

Contract:
    StatementCodec.parse() turns raw bytes into one or more canonical
    statements, raising a ParseError subclass on the first problem.
    StatementCodec.write() serializes statements back to bytes, raising
    UnsupportedFieldMappingError for data the format cannot carry.
    StatementCodec.recognizes_extension() tells the conversion layer which
    extension keys survive a trip into this format.

Architecture: statement_codecs. Pure transformation, no file I/O.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Protocol, runtime_checkable

from statement_kernel.domain.currency import quantize
from statement_kernel.domain.statement import Statement
from statement_kernel.exceptions import (
    InputTooLargeError,
    InvalidStatementDataError,
    MalformedDateError,
    ModelError,
    UnexpectedTokenError,
    UnsupportedFormatError,
)


class Format(str, Enum):
    """Supported statement formats."""

    MT940 = "mt940"
    CAMT053 = "camt053"
    CSV = "csv"

    @classmethod
    def from_name(cls, name: str | Format) -> Format:
        """Resolve a format name or alias (case-insensitive)."""
        if isinstance(name, Format):
            return name
        key = str(name).strip().lower()
        resolved = _ALIASES.get(key)
        if resolved is None:
            try:
                resolved = cls(key)
            except ValueError:
                raise UnsupportedFormatError(str(name)) from None
        return resolved


_ALIASES: dict[str, Format] = {
    "camt": Format.CAMT053,
    "camt.053": Format.CAMT053,
    "camt_053": Format.CAMT053,
    "xml": Format.CAMT053,
    "swift": Format.MT940,
    "sta": Format.MT940,
}


@runtime_checkable
class StatementCodec(Protocol):
    """Protocol for bidirectional statement codecs."""

    format: Format

    def parse(self, data: bytes) -> list[Statement]:
        """Decode every statement contained in ``data``."""
        ...

    def write(self, statements: Sequence[Statement]) -> bytes:
        """Encode ``statements`` into one document."""
        ...

    def recognizes_extension(self, key: str) -> bool:
        """True if this format can carry extension ``key`` on write."""
        ...


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def check_input_size(data: bytes, limit: int) -> None:
    """Raise InputTooLargeError before any decoding work happens."""
    if len(data) > limit:
        raise InputTooLargeError(len(data), limit)


def decode_text(data: bytes, encoding: str) -> str:
    """
    Decode bytes to text, stripping a UTF-8 BOM when present.

    Raises:
        UnexpectedTokenError: with the 1-based line of the first bad byte.
    """
    if encoding.lower().replace("_", "-") in ("utf-8", "utf8"):
        encoding = "utf-8-sig"
    try:
        return data.decode(encoding)
    except UnicodeDecodeError as e:
        line = data[: e.start].count(b"\n") + 1
        raise UnexpectedTokenError(data[e.start:e.end].hex(), line=line) from e


_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")


def parse_iso_date(text: str, **position) -> date:
    """Parse ``YYYY-MM-DD`` optionally followed by a time part."""
    value = (text or "").strip()
    if not _ISO_DATE.match(value):
        raise MalformedDateError(value, **position)
    try:
        return date.fromisoformat(value[:10])
    except ValueError as e:
        raise MalformedDateError(value, **position) from e


def format_decimal(amount: Decimal, currency: str, separator: str = ".") -> str:
    """Fixed-point text at the currency's minor-unit precision using ``separator``."""
    text = format(quantize(amount, currency), "f")
    if separator != ".":
        text = text.replace(".", separator)
    return text


@contextmanager
def model_errors_at(**position) -> Iterator[None]:
    """Re-raise model invariant violations as InvalidStatementDataError at ``position``."""
    try:
        yield
    except ModelError as e:
        raise InvalidStatementDataError(e, **position) from e
