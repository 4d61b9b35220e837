"""
Pure domain layer.

Canonical statement values with NO dependencies on:
- File formats or codecs
- Time/clock
- I/O

All domain objects are immutable and deterministic.
"""

from statement_kernel.domain.balance import BalanceCheck, check_balance, compute_closing
from statement_kernel.domain.currency import minor_units, normalize_currency, quantize
from statement_kernel.domain.statement import (
    FX_ORIGINAL_AMOUNT,
    NARRATIVE_SEPARATOR,
    Account,
    Balance,
    BalanceKind,
    CreditDebit,
    Statement,
    Transaction,
)

__all__ = [
    "Account",
    "Balance",
    "BalanceCheck",
    "BalanceKind",
    "CreditDebit",
    "FX_ORIGINAL_AMOUNT",
    "NARRATIVE_SEPARATOR",
    "Statement",
    "Transaction",
    "check_balance",
    "compute_closing",
    "minor_units",
    "normalize_currency",
    "quantize",
]
