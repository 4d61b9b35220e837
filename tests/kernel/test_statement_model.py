"""
Tests for the canonical statement model.

Covers construction-time invariants of Account, Balance, Transaction and
Statement: currency validation, sign/indicator agreement, booking-date
ordering, the balance invariant and its lenient bypass.
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from statement_kernel.domain import (
    FX_ORIGINAL_AMOUNT,
    Account,
    Balance,
    BalanceKind,
    CreditDebit,
    Statement,
    Transaction,
    check_balance,
)
from statement_kernel.exceptions import (
    BalanceMismatchError,
    CurrencyMismatchError,
    InvalidCurrencyError,
    InvalidPeriodError,
    SignMismatchError,
)
from tests.samples import IBAN, make_statement, make_transaction


# =============================================================================
# CreditDebit
# =============================================================================


class TestCreditDebit:
    def test_from_sign(self):
        assert CreditDebit.from_sign(Decimal("1.00")) is CreditDebit.CREDIT
        assert CreditDebit.from_sign(Decimal("-0.01")) is CreditDebit.DEBIT

    def test_zero_agrees_with_either(self):
        assert CreditDebit.CREDIT.agrees_with(Decimal("0"))
        assert CreditDebit.DEBIT.agrees_with(Decimal("0"))

    def test_disagreement(self):
        assert not CreditDebit.CREDIT.agrees_with(Decimal("-5"))
        assert not CreditDebit.DEBIT.agrees_with(Decimal("5"))


# =============================================================================
# Account
# =============================================================================


class TestAccount:
    def test_currency_normalized(self):
        account = Account(identifier=" DE89370400440532013000 ", currency="eur")
        assert account.currency == "EUR"
        assert account.identifier == IBAN

    def test_invalid_currency_rejected(self):
        with pytest.raises(InvalidCurrencyError):
            Account(identifier=IBAN, currency="EURO")

    def test_is_iban(self):
        assert Account(identifier=IBAN, currency="EUR").is_iban
        assert not Account(identifier="0532013000", currency="EUR").is_iban

    def test_frozen(self):
        account = Account(identifier=IBAN, currency="EUR")
        with pytest.raises(AttributeError):
            account.currency = "USD"  # type: ignore[misc]


# =============================================================================
# Balance
# =============================================================================


class TestBalance:
    def test_of_derives_indicator(self):
        bal = Balance.of(Decimal("-10.00"), "EUR", date(2024, 1, 1), BalanceKind.OPENING)
        assert bal.indicator is CreditDebit.DEBIT
        assert bal.kind is BalanceKind.OPENING

    def test_sign_mismatch(self):
        with pytest.raises(SignMismatchError) as exc_info:
            Balance(
                amount=Decimal("-10.00"),
                currency="EUR",
                as_of=date(2024, 1, 1),
                indicator=CreditDebit.CREDIT,
            )
        assert exc_info.value.code == "SIGN_MISMATCH"

    def test_float_amount_rejected(self):
        with pytest.raises(TypeError):
            Balance(amount=10.0, currency="EUR", as_of=date(2024, 1, 1),  # type: ignore[arg-type]
                    indicator=CreditDebit.CREDIT)


# =============================================================================
# Transaction
# =============================================================================


class TestTransaction:
    def test_indicator_defaults_from_sign(self):
        assert make_transaction("-5.00").indicator is CreditDebit.DEBIT
        assert make_transaction("5.00").indicator is CreditDebit.CREDIT

    def test_explicit_indicator_must_agree(self):
        with pytest.raises(SignMismatchError):
            Transaction(
                booking_date=date(2024, 1, 15),
                value_date=date(2024, 1, 15),
                amount=Decimal("5.00"),
                currency="EUR",
                indicator=CreditDebit.DEBIT,
            )

    def test_zero_amount_keeps_explicit_indicator(self):
        txn = Transaction(
            booking_date=date(2024, 1, 15),
            value_date=date(2024, 1, 15),
            amount=Decimal("0"),
            currency="EUR",
            indicator=CreditDebit.DEBIT,
        )
        assert txn.indicator is CreditDebit.DEBIT

    def test_narrative_string_becomes_segment(self):
        txn = Transaction(
            booking_date=date(2024, 1, 15),
            value_date=date(2024, 1, 15),
            amount=Decimal("1"),
            currency="EUR",
            narrative="Invoice 4711",
        )
        assert txn.narrative == ("Invoice 4711",)

    def test_narrative_text_joins_segments(self):
        txn = make_transaction(narrative=("Invoice 4711", "ACME GmbH"))
        assert txn.narrative_text == "Invoice 4711 ACME GmbH"

    def test_extensions_read_only(self):
        txn = make_transaction(extensions={"mt940.transaction_type": "NTRF"})
        with pytest.raises(TypeError):
            txn.extensions["mt940.transaction_type"] = "NMSC"  # type: ignore[index]

    def test_extensions_not_aliased(self):
        source = {"k.a": "1"}
        txn = make_transaction(extensions=source)
        source["k.b"] = "2"
        assert dict(txn.extensions) == {"k.a": "1"}

    def test_with_extensions_returns_copy(self):
        txn = make_transaction(extensions={"k.a": "1"})
        other = txn.with_extensions({})
        assert dict(txn.extensions) == {"k.a": "1"}
        assert dict(other.extensions) == {}

    def test_foreign_currency_flag(self):
        txn = make_transaction(currency="USD", extensions={FX_ORIGINAL_AMOUNT: "110.00"})
        assert txn.is_foreign_currency
        assert not make_transaction().is_foreign_currency


# =============================================================================
# Statement
# =============================================================================


class TestStatement:
    def test_balance_invariant_holds(self):
        stmt = make_statement((make_transaction("1250.00"), make_transaction("-250.50")))
        assert stmt.closing.amount == Decimal("1999.50")
        assert check_balance(stmt).is_ok

    def test_balance_mismatch_rejected(self):
        stmt = make_statement((make_transaction("10.00"),))
        with pytest.raises(BalanceMismatchError) as exc_info:
            replace(stmt, transactions=(make_transaction("11.00"),))
        assert exc_info.value.expected == Decimal("1010.00")
        assert exc_info.value.actual == Decimal("1011.00")

    def test_lenient_statement_skips_balance_invariant(self):
        stmt = make_statement((make_transaction("10.00"),))
        lenient = stmt.with_transactions((make_transaction("11.00"),), strict=False)
        check = check_balance(lenient)
        assert not check.is_ok
        assert check.difference == Decimal("1.00")

    def test_transactions_sorted_by_booking_date_stably(self):
        first = make_transaction("1.00", date(2024, 1, 20), bank_reference="A")
        second = make_transaction("2.00", date(2024, 1, 10), bank_reference="B")
        third = make_transaction("3.00", date(2024, 1, 20), bank_reference="C")
        stmt = make_statement((first, second, third))
        assert [t.bank_reference for t in stmt.transactions] == ["B", "A", "C"]

    def test_balance_currency_must_match_account(self):
        with pytest.raises(CurrencyMismatchError):
            Statement(
                account=Account(identifier=IBAN, currency="EUR"),
                statement_id="S",
                opening=Balance.of(Decimal("0"), "USD", date(2024, 1, 1), BalanceKind.OPENING),
                closing=Balance.of(Decimal("0"), "USD", date(2024, 1, 1)),
            )

    def test_foreign_transaction_needs_original_amount(self):
        with pytest.raises(CurrencyMismatchError) as exc_info:
            make_statement((make_transaction("10.00", currency="USD"),))
        assert exc_info.value.expected == "EUR"
        assert exc_info.value.actual == "USD"

    def test_foreign_transaction_with_original_amount(self):
        txn = make_transaction("92.00", currency="USD", extensions={FX_ORIGINAL_AMOUNT: "100.00"})
        stmt = make_statement((txn,))
        assert stmt.closing.amount == Decimal("1092.00")

    def test_period_must_be_ordered(self):
        stmt = make_statement()
        with pytest.raises(InvalidPeriodError) as exc_info:
            replace(stmt, period_start=date(2024, 2, 1), period_end=date(2024, 1, 1))
        assert exc_info.value.code == "INVALID_PERIOD"

    def test_transaction_total(self):
        stmt = make_statement((make_transaction("1.10"), make_transaction("-0.10")))
        assert stmt.transaction_total == Decimal("1.00")
