"""Balance invariant check, usable on any statement independent of parsing."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from statement_kernel.domain.statement import Balance, Statement, Transaction


@dataclass(frozen=True)
class BalanceCheck:
    """Outcome of comparing the declared closing balance with the computed one."""

    expected: Decimal
    actual: Decimal

    @property
    def difference(self) -> Decimal:
        return self.actual - self.expected

    @property
    def is_ok(self) -> bool:
        return self.difference == 0


def compute_closing(opening: Balance, transactions: Iterable[Transaction]) -> Decimal:
    """opening + sum of signed transaction amounts, exact."""
    return opening.amount + sum((t.amount for t in transactions), Decimal("0"))


def check_balance(statement: Statement) -> BalanceCheck:
    """
    Verify opening + sum(transactions) == closing for ``statement``.

    Works on statements built leniently (``strict=False``), which is the
    only way an unbalanced statement can exist.
    """
    return BalanceCheck(
        expected=statement.closing.amount,
        actual=compute_closing(statement.opening, statement.transactions),
    )
