"""
CSV parser -- provider exports mapped through a configurable column table.

Responsibility:
    Resolve header names to canonical fields through ``CsvOptions.columns``,
    turn each data row into one Transaction, and group rows into one
    Statement per account identifier in order of first appearance.

Invariants enforced:
    - ``booking_date`` and an amount source are mapped and present in the
      header, otherwise MissingMandatoryFieldError at the header row.
    - Row numbers count physical file rows from 1, header included, after
      the configured ``skip_rows`` preamble.
    - With a running ``balance`` column every row continues the previous
      row's balance; without one the balances are derived and the
      statement balances by construction.

Failure modes:
    - MalformedAmountError / MalformedDateError carrying ``row``.
    - MissingMandatoryFieldError for empty mandatory cells.
    - BalanceMismatchError when a running balance breaks (strict only).
    - InvalidStatementDataError for cells the model rejects (a bad
      currency code, a currency other than the account's).
"""

from __future__ import annotations

import csv
import io
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from statement_codecs.base import model_errors_at
from statement_config.schema import CsvOptions
from statement_kernel.domain.statement import (
    Account,
    Balance,
    BalanceKind,
    CreditDebit,
    Statement,
    Transaction,
)
from statement_kernel.exceptions import (
    BalanceMismatchError,
    CurrencyMismatchError,
    InvalidStatementDataError,
    MalformedAmountError,
    MalformedDateError,
    MissingMandatoryFieldError,
    UnexpectedTokenError,
)
from statement_kernel.logging_config import get_logger

logger = get_logger("codecs.csv")

UNKNOWN_ACCOUNT = "UNKNOWN"

_NUMBER = re.compile(r"^[+-]?\d+(\.\d+)?$")

INDICATOR_VALUES = {
    "C": CreditDebit.CREDIT,
    "CR": CreditDebit.CREDIT,
    "CRDT": CreditDebit.CREDIT,
    "CREDIT": CreditDebit.CREDIT,
    "D": CreditDebit.DEBIT,
    "DR": CreditDebit.DEBIT,
    "DBIT": CreditDebit.DEBIT,
    "DEBIT": CreditDebit.DEBIT,
}


@dataclass
class _Row:
    number: int
    account_id: str
    transaction: Transaction
    balance: Decimal | None


@dataclass
class _Group:
    account_id: str
    currency: str
    rows: list[_Row] = field(default_factory=list)


class CsvParser:
    """Parse CSV text according to one ``CsvOptions`` mapping."""

    def __init__(self, options: CsvOptions, *, lenient_balances: bool = False):
        self.options = options
        self.lenient_balances = lenient_balances

    def parse(self, text: str) -> list[Statement]:
        opts = self.options
        body = "".join(text.splitlines(keepends=True)[opts.skip_rows:])
        reader = csv.reader(io.StringIO(body), delimiter=opts.delimiter, quotechar=opts.quotechar)

        header = next(reader, None)
        header_row = opts.skip_rows + 1
        if header is None:
            raise MissingMandatoryFieldError("header", row=header_row)
        positions = self._resolve_header(header, header_row)

        groups: dict[str, _Group] = {}
        for cells in reader:
            if not any(c.strip() for c in cells):
                continue
            row = self._row(cells, positions, opts.skip_rows + reader.line_num)
            group = groups.get(row.account_id)
            if group is None:
                group = groups[row.account_id] = _Group(row.account_id, row.transaction.currency)
            self._check_currency(row, group.currency)
            group.rows.append(row)

        if not groups:
            return [self._empty_statement()]
        statements = [self._statement(g) for g in groups.values()]
        for statement in statements:
            logger.debug(
                "statement_parsed",
                extra={
                    "format": "csv",
                    "statement_id": statement.statement_id,
                    "transaction_count": len(statement.transactions),
                },
            )
        return statements

    # -- header ------------------------------------------------------------

    def _resolve_header(self, header: list[str], row: int) -> dict[str, int]:
        """Canonical field (or ``ext:`` field) -> column index."""
        index_by_name = {name.strip(): i for i, name in enumerate(header)}
        positions: dict[str, int] = {}
        for column in self.options.columns:
            i = index_by_name.get(column.header.strip())
            if i is not None:
                positions[column.field] = i

        required = ["booking_date"]
        if self.options.amount_mode == "split":
            required += ["debit", "credit"]
        else:
            required.append("amount")
        for name in required:
            if name not in positions:
                raise MissingMandatoryFieldError(name, row=row)
        return positions

    # -- rows --------------------------------------------------------------

    def _row(self, cells: list[str], positions: dict[str, int], number: int) -> _Row:
        opts = self.options

        def cell(name: str) -> str:
            i = positions.get(name)
            if i is None or i >= len(cells):
                return ""
            return cells[i].strip()

        booking_text = cell("booking_date")
        if not booking_text:
            raise MissingMandatoryFieldError("booking_date", row=number)
        booking = self._date(booking_text, number)
        value_text = cell("value_date")
        value = self._date(value_text, number) if value_text else booking

        if opts.amount_mode == "split":
            debit = self._amount(cell("debit"), number) if cell("debit") else Decimal("0")
            credit = self._amount(cell("credit"), number) if cell("credit") else Decimal("0")
            amount = abs(credit) - abs(debit)
            indicator = None
        else:
            amount_text = cell("amount")
            if not amount_text:
                raise MissingMandatoryFieldError("amount", row=number)
            amount = self._amount(amount_text, number)
            indicator = self._indicator(cell("indicator"), number)
            if indicator is not None:
                amount = abs(amount) if indicator is CreditDebit.CREDIT else -abs(amount)

        currency = cell("currency") or opts.currency
        if not currency:
            raise MissingMandatoryFieldError("currency", row=number)

        extensions = {}
        for column in opts.columns:
            if column.is_extension:
                found = cell(column.field)
                if found:
                    extensions[column.extension_key] = found

        narrative_cell = cell("narrative")
        narrative = tuple(s.strip() for s in narrative_cell.split("\n")) if narrative_cell else ()

        with model_errors_at(row=number):
            transaction = Transaction(
                booking_date=booking,
                value_date=value,
                amount=amount,
                currency=currency,
                indicator=indicator,
                bank_reference=cell("bank_reference") or None,
                customer_reference=cell("customer_reference") or None,
                narrative=narrative,
                extensions=extensions,
            )
        balance_text = cell("balance")
        return _Row(
            number=number,
            account_id=cell("account_id") or opts.account_id or UNKNOWN_ACCOUNT,
            transaction=transaction,
            balance=self._amount(balance_text, number) if balance_text else None,
        )

    def _amount(self, text: str, row: int) -> Decimal:
        opts = self.options
        normalized = text.strip()
        if opts.thousands_separator:
            normalized = normalized.replace(opts.thousands_separator, "")
            if opts.thousands_separator == " ":
                normalized = normalized.replace("\u00a0", "")
        if opts.decimal_separator != ".":
            normalized = normalized.replace(opts.decimal_separator, ".")
        if not _NUMBER.match(normalized):
            raise MalformedAmountError(text, row=row)
        return Decimal(normalized)

    def _date(self, text: str, row: int) -> date:
        try:
            return datetime.strptime(text, self.options.date_format).date()
        except ValueError as e:
            raise MalformedDateError(text, row=row) from e

    @staticmethod
    def _check_currency(row: _Row, account_currency: str) -> None:
        """Rows of one account share its currency unless they carry foreign-currency data."""
        txn = row.transaction
        if txn.currency != account_currency and not txn.is_foreign_currency:
            raise InvalidStatementDataError(
                CurrencyMismatchError(account_currency, txn.currency, "transaction"),
                row=row.number,
            )

    @staticmethod
    def _indicator(text: str, row: int) -> CreditDebit | None:
        if not text:
            return None
        found = INDICATOR_VALUES.get(text.upper())
        if found is None:
            raise UnexpectedTokenError(text, row=row)
        return found

    # -- statements --------------------------------------------------------

    def _statement(self, group: _Group) -> Statement:
        opts = self.options
        currency = group.currency
        total = Decimal("0")
        opening: Decimal | None = None
        running: Decimal | None = None

        for row in group.rows:
            amount = row.transaction.amount
            total += amount
            if running is not None:
                running += amount
            if row.balance is None:
                continue
            if running is None:
                opening = row.balance - total
            elif running != row.balance and not self.lenient_balances:
                raise BalanceMismatchError(row.balance, running, row=row.number)
            running = row.balance

        if opening is None:
            opening = opts.starting_balance
            closing = opening + total
        else:
            closing = running

        dates = [row.transaction.booking_date for row in group.rows]
        with model_errors_at(row=group.rows[0].number):
            return Statement(
                account=Account(identifier=group.account_id, currency=currency),
                statement_id=opts.statement_id,
                opening=Balance.of(opening, currency, min(dates), BalanceKind.OPENING),
                closing=Balance.of(closing, currency, max(dates), BalanceKind.CLOSING),
                transactions=tuple(row.transaction for row in group.rows),
                strict=not self.lenient_balances,
            )

    def _empty_statement(self) -> Statement:
        opts = self.options
        if opts.statement_date is None:
            raise MissingMandatoryFieldError("statement_date")
        if not opts.currency:
            raise MissingMandatoryFieldError("currency")
        balance = opts.starting_balance
        with model_errors_at():
            return Statement(
                account=Account(identifier=opts.account_id or UNKNOWN_ACCOUNT, currency=opts.currency),
                statement_id=opts.statement_id,
                opening=Balance.of(balance, opts.currency, opts.statement_date, BalanceKind.OPENING),
                closing=Balance.of(balance, opts.currency, opts.statement_date, BalanceKind.CLOSING),
            )
