"""
Module: statement_engines
Responsibility:
    Package entrypoint for the pure calculation engines that operate on
    canonical statements.  Currently the reconciliation comparer.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import statement_kernel (and sibling engine modules).
    MUST NOT import statement_codecs or statement_cli.

Invariants enforced:
    - Purity: engines never read the clock, files or environment.
    - Decimal-only arithmetic on amounts.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Every engine invocation is traced via the ``@traced_engine`` decorator
    (see ``statement_engines.tracer``), emitting STATEMENT_ENGINE_TRACE log
    records with engine name, version, input fingerprint and duration.

Usage:
    from statement_engines import compare, MismatchPolicy

    diff = compare(bank_statement, ledger_statement, verbose=True)
    if diff.has_differences(MismatchPolicy.ANY):
        ...
"""

from statement_kernel.logging_config import get_logger

logger = get_logger("engines")

from statement_engines.reconciliation import (
    Diff,
    FieldMismatch,
    MatchedPair,
    MatchKey,
    MismatchPolicy,
    Side,
    UnmatchedTransaction,
    compare,
)
from statement_engines.tracer import traced_engine

__all__ = [
    "Diff",
    "FieldMismatch",
    "MatchKey",
    "MatchedPair",
    "MismatchPolicy",
    "Side",
    "UnmatchedTransaction",
    "compare",
    "traced_engine",
]
