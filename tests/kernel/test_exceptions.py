"""Tests for the typed exception hierarchy: codes, attributes and positions."""

from datetime import date
from decimal import Decimal

import pytest

from statement_kernel.exceptions import (
    BalanceMismatchError,
    CompareError,
    ConversionError,
    CurrencyMismatchError,
    InputTooLargeError,
    InvalidCurrencyError,
    InvalidPeriodError,
    InvalidStatementDataError,
    MalformedAmountError,
    MissingMandatoryFieldError,
    ModelError,
    ParseError,
    StatementCurrencyMismatchError,
    StatementError,
    StatementIOError,
    UnsupportedFieldMappingError,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "exc, parent",
        [
            (MissingMandatoryFieldError(":62F:", line=9), ParseError),
            (InputTooLargeError(10, 5), ParseError),
            (InvalidStatementDataError(InvalidCurrencyError("E1R"), row=2), ParseError),
            (InvalidPeriodError(date(2024, 2, 1), date(2024, 1, 1)), ModelError),
            (UnsupportedFieldMappingError("currency", "csv"), ConversionError),
            (StatementCurrencyMismatchError("EUR", "USD"), CompareError),
            (StatementIOError("x.sta", "No such file"), StatementError),
        ],
    )
    def test_subclassing(self, exc, parent):
        assert isinstance(exc, parent)
        assert isinstance(exc, StatementError)

    def test_model_errors_are_not_parse_errors(self):
        assert not issubclass(ModelError, ParseError)


class TestPositions:
    def test_line_position(self):
        exc = MissingMandatoryFieldError(":62F:", line=12)
        assert exc.field_name == ":62F:"
        assert exc.line == 12
        assert exc.position == "line 12"
        assert "line 12" in str(exc)

    def test_row_position(self):
        exc = MalformedAmountError("12.5O", row=3)
        assert exc.value == "12.5O"
        assert exc.position == "row 3"
        assert exc.code == "MALFORMED_AMOUNT"

    def test_path_position(self):
        exc = BalanceMismatchError(Decimal("10"), Decimal("11"), path="/Document/Stmt[1]")
        assert exc.position == "at /Document/Stmt[1]"
        assert exc.expected == Decimal("10")
        assert exc.actual == Decimal("11")

    def test_no_position(self):
        exc = InputTooLargeError(2048, 1024)
        assert exc.position is None
        assert exc.size == 2048
        assert exc.limit == 1024

    def test_unsupported_mapping_detail(self):
        exc = UnsupportedFieldMappingError("currency", "mt940", "USD on EUR account")
        assert exc.field_name == "currency"
        assert exc.target == "mt940"
        assert str(exc) == "Cannot map currency to mt940: USD on EUR account"

    def test_wrapped_model_error(self):
        cause = CurrencyMismatchError("EUR", "USD", "closing balance")
        exc = InvalidStatementDataError(cause, line=5)
        assert exc.code == "INVALID_STATEMENT_DATA"
        assert exc.reason_code == "CURRENCY_MISMATCH"
        assert exc.position == "line 5"
        assert str(exc) == "Currency mismatch in closing balance: expected EUR, got USD (line 5)"
