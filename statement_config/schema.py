"""
Codec configuration schema.

Frozen option records for each codec plus the top-level ``CodecConfig``.
YAML files are parsed into these types by ``statement_config.loader``;
codecs receive them as plain immutable inputs and never read files or
environment variables themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

DEFAULT_MAX_INPUT_BYTES = 10 * 1024 * 1024

CAMT053_NAMESPACE = "urn:iso:std:iso:20022:tech:xsd:camt.053.001.02"

# ---------------------------------------------------------------------------
# CSV vocabulary
# ---------------------------------------------------------------------------

# Canonical fields a CSV column can map to, in the column order writers use.
CSV_FIELDS: tuple[str, ...] = (
    "account_id",
    "booking_date",
    "value_date",
    "amount",
    "debit",
    "credit",
    "indicator",
    "currency",
    "bank_reference",
    "customer_reference",
    "narrative",
    "balance",
)

CSV_EXTENSION_PREFIX = "ext:"

AMOUNT_MODES = ("signed", "split")


# ---------------------------------------------------------------------------
# Per-codec options
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Mt940Options:
    """MT940 reader/writer options."""

    encoding: str = "utf-8"
    century_pivot: int = 51  # YY >= pivot -> 19YY, else 20YY
    envelope: bool = True
    sender_bic: str = "BANKXXXX"
    line_length: int = 65


@dataclass(frozen=True)
class Camt053Options:
    """CAMT.053 reader/writer options."""

    encoding: str = "utf-8"
    namespace: str = CAMT053_NAMESPACE
    indent: bool = True


@dataclass(frozen=True)
class CsvColumn:
    """Maps one CSV header to a canonical field or an ``ext:<key>`` extension."""

    header: str
    field: str

    @property
    def is_extension(self) -> bool:
        return self.field.startswith(CSV_EXTENSION_PREFIX)

    @property
    def extension_key(self) -> str | None:
        if not self.is_extension:
            return None
        return self.field[len(CSV_EXTENSION_PREFIX):]


@dataclass(frozen=True)
class CsvOptions:
    """
    CSV dialect and column mapping.

    ``amount_mode`` is ``"signed"`` (one ``amount`` column, negative for
    debits) or ``"split"`` (separate unsigned ``debit`` and ``credit``
    columns).  ``account_id`` / ``currency`` are used when the file has no
    such column.  ``statement_date`` dates the balances of an export with
    no data rows.
    """

    columns: tuple[CsvColumn, ...] = ()
    delimiter: str = ","
    quotechar: str = '"'
    encoding: str = "utf-8"
    skip_rows: int = 0
    amount_mode: str = "signed"
    decimal_separator: str = "."
    thousands_separator: str = ""
    date_format: str = "%Y-%m-%d"
    account_id: str | None = None
    currency: str | None = None
    statement_id: str = "CSV"
    starting_balance: Decimal = Decimal("0")
    statement_date: date | None = None

    def column_for(self, canonical_field: str) -> CsvColumn | None:
        for col in self.columns:
            if col.field == canonical_field:
                return col
        return None

    @property
    def extension_keys(self) -> frozenset[str]:
        return frozenset(c.extension_key for c in self.columns if c.is_extension)


# ---------------------------------------------------------------------------
# Top level
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CodecConfig:
    """Complete configuration for parsing, writing and converting statements."""

    config_id: str = "default"
    version: int = 1
    max_input_bytes: int = DEFAULT_MAX_INPUT_BYTES
    lenient_balances: bool = False
    mt940: Mt940Options = field(default_factory=Mt940Options)
    camt053: Camt053Options = field(default_factory=Camt053Options)
    csv: CsvOptions = field(default_factory=CsvOptions)
    checksum: str = ""
