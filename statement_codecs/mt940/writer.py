"""MT940 writer: canonical statements to SWIFT tag-line text."""

from __future__ import annotations

from collections.abc import Sequence

from statement_codecs.mt940 import fields
from statement_codecs.mt940.parser import (
    EXT_FORWARD_AVAILABLE,
    EXT_FUNDS_CODE,
    EXT_INFO,
    EXT_RELATED_REFERENCE,
    EXT_REVERSAL,
    EXT_SUPPLEMENTARY,
    EXT_TRANSACTION_TYPE,
)
from statement_config.schema import Mt940Options
from statement_kernel.domain.statement import BalanceKind, CreditDebit, Statement, Transaction
from statement_kernel.exceptions import UnsupportedFieldMappingError


class Mt940Writer:
    """Serialize statements tag by tag in the fixed MT940 order."""

    def __init__(self, options: Mt940Options):
        self.options = options

    def write(self, statements: Sequence[Statement]) -> str:
        blocks = [self._statement(s) for s in statements]
        return "".join(blocks)

    def _statement(self, statement: Statement) -> str:
        lines: list[str] = []
        bic = (statement.account.bic or self.options.sender_bic)[:8].ljust(8, "X")
        if self.options.envelope:
            lines.append(f"{{1:F01{bic}0000000000}}{{2:O940{bic}N}}{{3:}}{{4:")

        lines.append(f":20:{statement.statement_id}")
        related = statement.extensions.get(EXT_RELATED_REFERENCE)
        if related:
            lines.append(f":21:{related}")
        account = statement.account
        lines.append(f":25:{account.bic}/{account.identifier}" if account.bic else f":25:{account.identifier}")
        if statement.sequence_number:
            lines.append(f":28C:{statement.sequence_number}")

        opening_tag = "60M" if statement.opening.kind is BalanceKind.INTERMEDIATE else "60F"
        lines.append(f":{opening_tag}:{fields.format_balance(statement.opening)}")

        for txn in statement.transactions:
            lines.extend(self._transaction(txn, statement))

        closing_tag = "62M" if statement.closing.kind is BalanceKind.INTERMEDIATE else "62F"
        lines.append(f":{closing_tag}:{fields.format_balance(statement.closing)}")
        if statement.available is not None:
            lines.append(f":64:{fields.format_balance(statement.available)}")
        forward = statement.extensions.get(EXT_FORWARD_AVAILABLE)
        if forward:
            lines.extend(f":65:{value}" for value in forward.split(";") if value)
        info = statement.extensions.get(EXT_INFO)
        if info:
            lines.extend(self._narrative_lines(info.split("\n")))

        lines.append("-}{5:}" if self.options.envelope else "-")
        return "\n".join(lines) + "\n"

    def _transaction(self, txn: Transaction, statement: Statement) -> list[str]:
        if txn.currency != statement.currency:
            raise UnsupportedFieldMappingError(
                "currency", "mt940", f"transaction in {txn.currency} on {statement.currency} account"
            )
        ext = txn.extensions
        reversal = ext.get(EXT_REVERSAL) == "true"
        if txn.indicator is CreditDebit.DEBIT:
            mark = "RC" if reversal else "D"
        else:
            mark = "RD" if reversal else "C"

        line = fields.format_statement_line(
            value_date=txn.value_date,
            booking_date=txn.booking_date,
            mark=mark,
            funds_code=ext.get(EXT_FUNDS_CODE),
            amount=txn.amount,
            currency=txn.currency,
            transaction_type=ext.get(EXT_TRANSACTION_TYPE, fields.DEFAULT_TRANSACTION_TYPE),
            customer_reference=txn.customer_reference,
            bank_reference=txn.bank_reference,
        )
        lines = [f":61:{line}"]
        supplementary = ext.get(EXT_SUPPLEMENTARY)
        if supplementary:
            lines.extend(fields.escape_text_line(part) for part in supplementary.splitlines())
        if txn.narrative:
            lines.extend(self._narrative_lines(txn.narrative))
        return lines

    def _narrative_lines(self, segments: Sequence[str]) -> list[str]:
        """One :86: block; each segment starts its own line."""
        out = fields.format_text_lines(segments, self.options.line_length)
        out[0] = f":86:{out[0]}"
        return out
