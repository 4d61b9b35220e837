"""
Reconciliation - transaction-level comparison of two statements.
"""

from statement_kernel.logging_config import get_logger

logger = get_logger("engines.reconciliation")

from statement_engines.reconciliation.types import (
    Diff,
    FieldMismatch,
    MatchedPair,
    MatchKey,
    MismatchPolicy,
    Side,
    UnmatchedTransaction,
)

from statement_engines.reconciliation.comparer import (
    compare,
    field_mismatches,
)

__all__ = [
    "Diff",
    "FieldMismatch",
    "MatchKey",
    "MatchedPair",
    "MismatchPolicy",
    "Side",
    "UnmatchedTransaction",
    "compare",
    "field_mismatches",
]
