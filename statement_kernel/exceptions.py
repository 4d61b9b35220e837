"""
Typed Exception Hierarchy for the Statement Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from StatementError:

    StatementError (base)
    |
    +-- StatementIOError
    |
    +-- ParseError
    |   +-- MissingMandatoryFieldError
    |   +-- MalformedAmountError
    |   +-- MalformedDateError
    |   +-- UnexpectedTokenError
    |   +-- BalanceMismatchError
    |   +-- InputTooLargeError
    |   +-- InvalidStatementDataError
    |
    +-- ModelError
    |   +-- InvalidCurrencyError
    |   +-- CurrencyMismatchError
    |   +-- SignMismatchError
    |   +-- InvalidPeriodError
    |
    +-- ConversionError
    |   +-- UnsupportedFormatError
    |   +-- UnsupportedFieldMappingError
    |
    +-- CompareError
        +-- StatementCurrencyMismatchError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                         | When Raised
----------------|------------------------------|----------------------------------------
IO              | IO_ERROR                     | Input/output file cannot be read/written
----------------|------------------------------|----------------------------------------
Parse           | MISSING_MANDATORY_FIELD      | Required tag/element/column absent
                | MALFORMED_AMOUNT             | Amount text is not a decimal number
                | MALFORMED_DATE               | Date text does not match its pattern
                | UNEXPECTED_TOKEN             | Tag/element not valid at this point
                | BALANCE_MISMATCH             | opening + sum(tx) != closing
                | INPUT_TOO_LARGE              | Input exceeds configured byte cap
                | INVALID_STATEMENT_DATA       | Decoded values break a model invariant
----------------|------------------------------|----------------------------------------
Model           | INVALID_CURRENCY             | Not a three-letter ISO 4217 code
                | CURRENCY_MISMATCH            | Amount currency differs from account
                | SIGN_MISMATCH                | Indicator disagrees with amount sign
                | INVALID_PERIOD               | Period start after period end
----------------|------------------------------|----------------------------------------
Conversion      | UNSUPPORTED_FORMAT           | Format name not known
                | UNSUPPORTED_FIELD_MAPPING    | Target format cannot carry a field
----------------|------------------------------|----------------------------------------
Compare         | STATEMENT_CURRENCY_MISMATCH  | Statements in different currencies

===============================================================================
HANDLING PATTERNS
===============================================================================

Parse errors carry the position they were detected at (``line`` for
MT940, ``row`` for CSV, ``path`` for CAMT.053) as attributes, so callers
report locations without parsing messages:

    try:
        statement = parse_statement(data, Format.MT940)
    except MissingMandatoryFieldError as e:
        report(code=e.code, field=e.field_name, line=e.line)
    except ParseError as e:
        report(code=e.code, position=e.position)

Errors are never retried. Lenient balance handling is an explicit caller
choice (``CodecConfig.lenient_balances``), not an error fallback.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal


class StatementError(Exception):
    """
    Base exception for all statement kernel errors.

    All subclasses carry a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "STATEMENT_ERROR"


class StatementIOError(StatementError):
    """A source or destination could not be read or written."""

    code: str = "IO_ERROR"

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"I/O error on {path}: {reason}")


# Parse-related exceptions


class ParseError(StatementError):
    """
    Base exception for input that cannot be decoded into a statement.

    At most one of ``line`` (1-based text line), ``row`` (1-based CSV
    row, header included) or ``path`` (XML element path) is normally set.
    """

    code: str = "PARSE_ERROR"

    def __init__(
        self,
        message: str,
        *,
        line: int | None = None,
        row: int | None = None,
        path: str | None = None,
    ):
        self.line = line
        self.row = row
        self.path = path
        location = self.position
        super().__init__(f"{message} ({location})" if location else message)

    @property
    def position(self) -> str | None:
        """Human-readable location of the error, if known."""
        if self.line is not None:
            return f"line {self.line}"
        if self.row is not None:
            return f"row {self.row}"
        if self.path is not None:
            return f"at {self.path}"
        return None


class MissingMandatoryFieldError(ParseError):
    """A required tag, element or column is absent."""

    code: str = "MISSING_MANDATORY_FIELD"

    def __init__(self, field_name: str, **position):
        self.field_name = field_name
        super().__init__(f"Missing mandatory field {field_name}", **position)


class MalformedAmountError(ParseError):
    """Amount text cannot be read as an exact decimal."""

    code: str = "MALFORMED_AMOUNT"

    def __init__(self, value: str, **position):
        self.value = value
        super().__init__(f"Malformed amount {value!r}", **position)


class MalformedDateError(ParseError):
    """Date text does not match the expected pattern or is not a calendar date."""

    code: str = "MALFORMED_DATE"

    def __init__(self, value: str, **position):
        self.value = value
        super().__init__(f"Malformed date {value!r}", **position)


class UnexpectedTokenError(ParseError):
    """A tag or element appears where the format does not allow it."""

    code: str = "UNEXPECTED_TOKEN"

    def __init__(self, token: str, **position):
        self.token = token
        super().__init__(f"Unexpected token {token!r}", **position)


class BalanceMismatchError(ParseError):
    """
    Opening balance plus transaction sum does not equal the closing balance.

    ``expected`` is the closing balance declared by the source, ``actual``
    the value implied by opening + sum of transactions.
    """

    code: str = "BALANCE_MISMATCH"

    def __init__(self, expected: Decimal, actual: Decimal, **position):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Balance mismatch: expected {expected}, computed {actual}",
            **position,
        )


class InputTooLargeError(ParseError):
    """Input exceeds the configured size cap."""

    code: str = "INPUT_TOO_LARGE"

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"Input of {size} bytes exceeds limit of {limit} bytes")


class InvalidStatementDataError(ParseError):
    """
    Decoded values break a canonical model invariant.

    Wraps the ModelError raised while building the statement so callers
    catching ParseError see it with its position. ``reason_code`` is the
    wrapped error's code.
    """

    code: str = "INVALID_STATEMENT_DATA"

    def __init__(self, cause: ModelError, **position):
        self.reason_code = cause.code
        super().__init__(str(cause), **position)


# Model-related exceptions


class ModelError(StatementError):
    """Base exception for values violating canonical model invariants."""

    code: str = "MODEL_ERROR"


class InvalidCurrencyError(ModelError):
    """Currency is not a three-letter ISO 4217 code."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Invalid currency code: {currency!r}")


class CurrencyMismatchError(ModelError):
    """An amount's currency differs from the account currency."""

    code: str = "CURRENCY_MISMATCH"

    def __init__(self, expected: str, actual: str, context: str = ""):
        self.expected = expected
        self.actual = actual
        self.context = context
        suffix = f" in {context}" if context else ""
        super().__init__(f"Currency mismatch{suffix}: expected {expected}, got {actual}")


class SignMismatchError(ModelError):
    """Credit/debit indicator disagrees with the sign of the amount."""

    code: str = "SIGN_MISMATCH"

    def __init__(self, amount: Decimal, indicator: str):
        self.amount = amount
        self.indicator = indicator
        super().__init__(f"Indicator {indicator} disagrees with amount {amount}")


class InvalidPeriodError(ModelError):
    """Statement period starts after it ends."""

    code: str = "INVALID_PERIOD"

    def __init__(self, start: date, end: date):
        self.start = start
        self.end = end
        super().__init__(f"Statement period start {start} is after end {end}")


# Conversion-related exceptions


class ConversionError(StatementError):
    """Base exception for statements that cannot be expressed in a target format."""

    code: str = "CONVERSION_ERROR"


class UnsupportedFormatError(ConversionError):
    """Format name is not one of the registered codecs."""

    code: str = "UNSUPPORTED_FORMAT"

    def __init__(self, format_name: str):
        self.format_name = format_name
        super().__init__(f"Unsupported statement format: {format_name!r}")


class UnsupportedFieldMappingError(ConversionError):
    """
    The target format has no place for a field the statement carries.

    Raised by writers; conversion never silently drops mandatory data.
    """

    code: str = "UNSUPPORTED_FIELD_MAPPING"

    def __init__(self, field_name: str, target: str, detail: str = ""):
        self.field_name = field_name
        self.target = target
        self.detail = detail
        suffix = f": {detail}" if detail else ""
        super().__init__(f"Cannot map {field_name} to {target}{suffix}")


# Compare-related exceptions


class CompareError(StatementError):
    """Base exception for statements that cannot be reconciled."""

    code: str = "COMPARE_ERROR"


class StatementCurrencyMismatchError(CompareError):
    """The two statements are held in different currencies."""

    code: str = "STATEMENT_CURRENCY_MISMATCH"

    def __init__(self, left_currency: str, right_currency: str):
        self.left_currency = left_currency
        self.right_currency = right_currency
        super().__init__(
            f"Cannot compare {left_currency} statement with {right_currency} statement"
        )
