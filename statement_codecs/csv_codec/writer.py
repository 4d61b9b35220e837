"""CSV writer: canonical statements to rows under the configured mapping."""

from __future__ import annotations

import csv
import io
from collections.abc import Sequence
from decimal import Decimal

from statement_codecs.base import format_decimal
from statement_config.schema import CSV_FIELDS, CsvColumn, CsvOptions
from statement_kernel.domain.statement import (
    FX_ORIGINAL_AMOUNT,
    CreditDebit,
    Statement,
    Transaction,
)
from statement_kernel.exceptions import UnsupportedFieldMappingError


class CsvWriter:
    """
    Serialize statements as one header row plus one row per transaction.

    Columns appear in canonical field order, extension columns last.
    Rows of several statements follow each other under a single header.
    """

    def __init__(self, options: CsvOptions):
        self.options = options
        self.columns = self._ordered_columns(options.columns)

    @staticmethod
    def _ordered_columns(columns: Sequence[CsvColumn]) -> list[CsvColumn]:
        canonical = sorted(
            (c for c in columns if not c.is_extension),
            key=lambda c: CSV_FIELDS.index(c.field),
        )
        return canonical + [c for c in columns if c.is_extension]

    def write(self, statements: Sequence[Statement]) -> str:
        for statement in statements:
            self._check_mapping(statement)

        buf = io.StringIO()
        buf.write("\n" * self.options.skip_rows)
        writer = csv.writer(
            buf,
            delimiter=self.options.delimiter,
            quotechar=self.options.quotechar,
            lineterminator="\n",
        )
        writer.writerow([c.header for c in self.columns])
        for statement in statements:
            running = statement.opening.amount
            for txn in statement.transactions:
                running += txn.amount
                writer.writerow(self._row(statement, txn, running))
        return buf.getvalue()

    def _check_mapping(self, statement: Statement) -> None:
        opts = self.options
        mapped = {c.field for c in self.columns}
        if "booking_date" not in mapped:
            raise UnsupportedFieldMappingError("booking_date", "csv", "no column mapped")
        if opts.amount_mode == "split":
            if not {"debit", "credit"} <= mapped:
                raise UnsupportedFieldMappingError("amount", "csv", "split mode needs debit and credit")
        elif "amount" not in mapped:
            raise UnsupportedFieldMappingError("amount", "csv", "no column mapped")
        if "currency" not in mapped and opts.currency != statement.currency:
            raise UnsupportedFieldMappingError(
                "currency", "csv", f"no column mapped and default is {opts.currency}"
            )
        for txn in statement.transactions:
            if txn.is_foreign_currency and (
                "currency" not in mapped or FX_ORIGINAL_AMOUNT not in opts.extension_keys
            ):
                raise UnsupportedFieldMappingError(
                    "currency", "csv", f"transaction in {txn.currency} needs currency and "
                    f"ext:{FX_ORIGINAL_AMOUNT} columns"
                )

    def _row(self, statement: Statement, txn: Transaction, running: Decimal) -> list[str]:
        opts = self.options
        has_indicator = any(c.field == "indicator" for c in self.columns)
        values = {
            "account_id": statement.account.identifier,
            "booking_date": txn.booking_date.strftime(opts.date_format),
            "value_date": txn.value_date.strftime(opts.date_format),
            "indicator": txn.indicator.value,
            "currency": txn.currency,
            "bank_reference": txn.bank_reference or "",
            "customer_reference": txn.customer_reference or "",
            "narrative": "\n".join(txn.narrative),
            "balance": self._number(running, statement.currency),
            "debit": "",
            "credit": "",
        }
        if opts.amount_mode == "split":
            side = "credit" if txn.indicator is CreditDebit.CREDIT else "debit"
            values[side] = self._number(abs(txn.amount), statement.currency)
        elif has_indicator:
            values["amount"] = self._number(abs(txn.amount), statement.currency)
        else:
            values["amount"] = self._number(txn.amount, statement.currency)

        row = []
        for column in self.columns:
            if column.is_extension:
                row.append(txn.extensions.get(column.extension_key, ""))
            else:
                row.append(values.get(column.field, ""))
        return row

    def _number(self, amount: Decimal, currency: str) -> str:
        """Locale-formatted amount; thousands grouping only when configured."""
        opts = self.options
        text = format_decimal(abs(amount), currency)
        integer, _, fraction = text.partition(".")
        if opts.thousands_separator:
            integer = f"{int(integer):,}".replace(",", opts.thousands_separator)
        out = integer + (opts.decimal_separator + fraction if fraction else "")
        return f"-{out}" if amount < 0 else out
