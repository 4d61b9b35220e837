"""
Configuration Loader (``statement_config.loader``).

Responsibility
--------------
Loads YAML configuration files and parses them into typed
``statement_config.schema`` dataclass instances.

Architecture position
---------------------
**Config layer**.  Depends on nothing but the schema; codecs and the
CLI consume the resulting ``CodecConfig``.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required keys.
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash so a loaded
  configuration can be identified in logs.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``header``/``field`` in a CSV column entry  -> ``KeyError``.
* Unknown CSV field, amount mode or bad number/date  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from statement_config.schema import (
    AMOUNT_MODES,
    CSV_EXTENSION_PREFIX,
    CSV_FIELDS,
    DEFAULT_MAX_INPUT_BYTES,
    Camt053Options,
    CodecConfig,
    CsvColumn,
    CsvOptions,
    Mt940Options,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def parse_date(value: Any) -> date:
    """Parse a date from YAML (string or date object)."""
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def parse_decimal(value: Any) -> Decimal:
    """Parse a decimal from YAML; floats go through ``str`` to keep their digits."""
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Cannot parse decimal from {value!r}") from e


def parse_mt940_options(data: dict[str, Any]) -> Mt940Options:
    """Parse ``Mt940Options`` from a dict (all keys optional)."""
    defaults = Mt940Options()
    pivot = int(data.get("century_pivot", defaults.century_pivot))
    if not 0 <= pivot <= 99:
        raise ValueError(f"century_pivot must be between 0 and 99, got {pivot}")
    line_length = int(data.get("line_length", defaults.line_length))
    if line_length < 2:
        raise ValueError(f"line_length must be at least 2, got {line_length}")
    return Mt940Options(
        encoding=data.get("encoding", defaults.encoding),
        century_pivot=pivot,
        envelope=bool(data.get("envelope", defaults.envelope)),
        sender_bic=data.get("sender_bic", defaults.sender_bic),
        line_length=line_length,
    )


def parse_camt053_options(data: dict[str, Any]) -> Camt053Options:
    """Parse ``Camt053Options`` from a dict (all keys optional)."""
    defaults = Camt053Options()
    return Camt053Options(
        encoding=data.get("encoding", defaults.encoding),
        namespace=data.get("namespace", defaults.namespace),
        indent=bool(data.get("indent", defaults.indent)),
    )


def parse_csv_column(data: dict[str, Any]) -> CsvColumn:
    """
    Parse one column mapping entry.

    Raises:
        KeyError: if ``header`` or ``field`` is missing.
        ValueError: if ``field`` is neither canonical nor ``ext:<key>``.
    """
    column = CsvColumn(header=str(data["header"]), field=str(data["field"]))
    if column.is_extension:
        if not column.extension_key:
            raise ValueError(f"Empty extension key for column {column.header!r}")
    elif column.field not in CSV_FIELDS:
        raise ValueError(
            f"Unknown CSV field {column.field!r} for column {column.header!r}; "
            f"expected one of {', '.join(CSV_FIELDS)} or {CSV_EXTENSION_PREFIX}<key>"
        )
    return column


def parse_csv_options(data: dict[str, Any]) -> CsvOptions:
    """
    Parse ``CsvOptions`` from a dict.

    Raises:
        KeyError: if a column entry lacks required keys.
        ValueError: for unknown fields, duplicate mappings, bad amount mode,
            or unparseable numbers/dates.
    """
    defaults = CsvOptions()
    columns = tuple(parse_csv_column(c) for c in data.get("columns", ()))

    seen: set[str] = set()
    for col in columns:
        if col.field in seen:
            raise ValueError(f"CSV field {col.field!r} is mapped more than once")
        seen.add(col.field)

    amount_mode = data.get("amount_mode", defaults.amount_mode)
    if amount_mode not in AMOUNT_MODES:
        raise ValueError(f"amount_mode must be one of {AMOUNT_MODES}, got {amount_mode!r}")

    delimiter = data.get("delimiter", defaults.delimiter)
    if len(delimiter) != 1:
        raise ValueError(f"delimiter must be a single character, got {delimiter!r}")

    return CsvOptions(
        columns=columns,
        delimiter=delimiter,
        quotechar=data.get("quotechar", defaults.quotechar),
        encoding=data.get("encoding", defaults.encoding),
        skip_rows=int(data.get("skip_rows", defaults.skip_rows)),
        amount_mode=amount_mode,
        decimal_separator=data.get("decimal_separator", defaults.decimal_separator),
        thousands_separator=data.get("thousands_separator", defaults.thousands_separator) or "",
        date_format=data.get("date_format", defaults.date_format),
        account_id=data.get("account_id"),
        currency=data.get("currency"),
        statement_id=str(data.get("statement_id", defaults.statement_id)),
        starting_balance=parse_decimal(data.get("starting_balance", defaults.starting_balance)),
        statement_date=(
            parse_date(data["statement_date"]) if data.get("statement_date") else None
        ),
    )


def parse_codec_config(data: dict[str, Any]) -> CodecConfig:
    """
    Parse a full ``CodecConfig`` from a dict.

    Postconditions:
        - ``checksum`` is the SHA-256 of the canonical source dict.
    """
    max_input_bytes = int(data.get("max_input_bytes", DEFAULT_MAX_INPUT_BYTES))
    if max_input_bytes <= 0:
        raise ValueError(f"max_input_bytes must be positive, got {max_input_bytes}")

    return CodecConfig(
        config_id=str(data.get("config_id", "default")),
        version=int(data.get("version", 1)),
        max_input_bytes=max_input_bytes,
        lenient_balances=bool(data.get("lenient_balances", False)),
        mt940=parse_mt940_options(data.get("mt940") or {}),
        camt053=parse_camt053_options(data.get("camt053") or {}),
        csv=parse_csv_options(data.get("csv") or {}),
        checksum=compute_checksum(data),
    )


def load_codec_config(path: Path) -> CodecConfig:
    """Load and parse a ``CodecConfig`` from a YAML file."""
    return parse_codec_config(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
