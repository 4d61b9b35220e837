"""
Statement comparer -- pairs transactions across two statements.

Matching:
    1. Key each transaction by (value date, currency, signed amount).
       Booking dates are ignored; formats disagree on which date they
       export.
    2. Within a key, pair left and right transactions positionally in
       statement order until one side runs out.  The rest of the longer
       side is unmatched.
    3. Keys present on one side only are unmatched entirely.
    4. In verbose mode, matched pairs also report differences in narrative
       text, bank reference and customer reference.

Duplicate same-day same-amount transactions are therefore paired by
position, not by narrative similarity.

Architecture: statement_engines -- pure calculation, zero I/O.
"""

from __future__ import annotations

from collections import defaultdict

from statement_engines.reconciliation.types import (
    Diff,
    FieldMismatch,
    MatchedPair,
    MatchKey,
    Side,
    UnmatchedTransaction,
)
from statement_engines.tracer import traced_engine
from statement_kernel.domain.statement import Statement, Transaction
from statement_kernel.exceptions import StatementCurrencyMismatchError
from statement_kernel.logging_config import get_logger

logger = get_logger("engines.reconciliation.comparer")

_COMPARED_FIELDS = ("narrative", "bank_reference", "customer_reference")


def _field_value(txn: Transaction, name: str) -> str:
    if name == "narrative":
        return txn.narrative_text
    return getattr(txn, name) or ""


def field_mismatches(left: Transaction, right: Transaction) -> tuple[FieldMismatch, ...]:
    """Descriptive fields that differ; a missing value equals an empty one."""
    found = []
    for name in _COMPARED_FIELDS:
        lv, rv = _field_value(left, name), _field_value(right, name)
        if lv != rv:
            found.append(FieldMismatch(field_name=name, left=lv or None, right=rv or None))
    return tuple(found)


def _group(transactions: tuple[Transaction, ...]) -> dict[MatchKey, list[int]]:
    groups: dict[MatchKey, list[int]] = defaultdict(list)
    for index, txn in enumerate(transactions):
        groups[MatchKey.of(txn)].append(index)
    return groups


@traced_engine("reconciliation", "1.0", fingerprint_fields=("left", "right", "verbose"))
def compare(left: Statement, right: Statement, *, verbose: bool = False) -> Diff:
    """
    Reconcile the transactions of ``left`` against ``right``.

    Raises:
        StatementCurrencyMismatchError: The statements' accounts are held
            in different currencies.
    """
    if left.currency != right.currency:
        raise StatementCurrencyMismatchError(left.currency, right.currency)

    left_txns, right_txns = left.transactions, right.transactions
    right_groups = _group(right_txns)

    matched: list[MatchedPair] = []
    matched_right: set[int] = set()
    only_left: list[UnmatchedTransaction] = []

    for key, left_indexes in _group(left_txns).items():
        right_indexes = right_groups.get(key, [])
        for li, ri in zip(left_indexes, right_indexes):
            lt, rt = left_txns[li], right_txns[ri]
            matched.append(MatchedPair(
                left=lt,
                right=rt,
                left_index=li,
                right_index=ri,
                mismatches=field_mismatches(lt, rt) if verbose else (),
            ))
            matched_right.add(ri)
        for li in left_indexes[len(right_indexes):]:
            only_left.append(UnmatchedTransaction(Side.LEFT, li, left_txns[li]))

    only_right = [
        UnmatchedTransaction(Side.RIGHT, ri, txn)
        for ri, txn in enumerate(right_txns)
        if ri not in matched_right
    ]

    diff = Diff(
        matched=tuple(sorted(matched, key=lambda p: p.left_index)),
        only_left=tuple(sorted(only_left, key=lambda u: u.index)),
        only_right=tuple(only_right),
        left_count=len(left_txns),
        right_count=len(right_txns),
    )
    logger.info(
        "reconciliation_completed",
        extra={
            "left_statement": left.statement_id,
            "right_statement": right.statement_id,
            "matched": diff.matched_count,
            "only_left": len(diff.only_left),
            "only_right": len(diff.only_right),
            "mismatched": diff.mismatch_count,
        },
    )
    return diff
