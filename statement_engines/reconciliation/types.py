"""
Reconciliation result types.

Pure frozen dataclasses produced by ``compare``.  Indexes refer to each
statement's ``transactions`` tuple (which is in booking-date order).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from statement_kernel.domain.statement import Transaction


class MismatchPolicy(str, Enum):
    """Which findings count as differences for a pass/fail decision."""

    ANY = "any"  # unmatched transactions or field mismatches
    UNMATCHED = "unmatched"  # unmatched transactions only
    NEVER = "never"  # report only


class Side(str, Enum):
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class MatchKey:
    """Identity used to pair transactions across statements."""

    value_date: date
    currency: str
    amount: Decimal

    @classmethod
    def of(cls, txn: Transaction) -> MatchKey:
        return cls(value_date=txn.value_date, currency=txn.currency, amount=txn.amount)


@dataclass(frozen=True)
class FieldMismatch:
    """A descriptive field that differs between two matched transactions."""

    field_name: str
    left: str | None
    right: str | None


@dataclass(frozen=True)
class MatchedPair:
    left: Transaction
    right: Transaction
    left_index: int
    right_index: int
    mismatches: tuple[FieldMismatch, ...] = ()

    @property
    def is_exact(self) -> bool:
        return not self.mismatches


@dataclass(frozen=True)
class UnmatchedTransaction:
    side: Side
    index: int
    transaction: Transaction


@dataclass(frozen=True)
class Diff:
    """
    Outcome of comparing two statements.

    ``matched`` is ordered by left index; ``only_left`` and ``only_right``
    by their own side's index.
    """

    matched: tuple[MatchedPair, ...] = ()
    only_left: tuple[UnmatchedTransaction, ...] = ()
    only_right: tuple[UnmatchedTransaction, ...] = ()
    left_count: int = 0
    right_count: int = 0

    @property
    def matched_count(self) -> int:
        return len(self.matched)

    @property
    def mismatch_count(self) -> int:
        """Matched pairs that differ in at least one descriptive field."""
        return sum(1 for pair in self.matched if pair.mismatches)

    @property
    def unmatched_count(self) -> int:
        return len(self.only_left) + len(self.only_right)

    @property
    def is_clean(self) -> bool:
        """True if every transaction matched and no field differs."""
        return self.unmatched_count == 0 and self.mismatch_count == 0

    def has_differences(self, policy: MismatchPolicy = MismatchPolicy.UNMATCHED) -> bool:
        policy = MismatchPolicy(policy)
        if policy is MismatchPolicy.NEVER:
            return False
        if policy is MismatchPolicy.UNMATCHED:
            return self.unmatched_count > 0
        return not self.is_clean

    def match_rate(self, side: Side) -> Decimal:
        """Share of ``side``'s transactions that matched, as a percentage."""
        total = self.left_count if Side(side) is Side.LEFT else self.right_count
        if total == 0:
            return Decimal("100")
        return (Decimal(self.matched_count) * 100 / Decimal(total)).quantize(Decimal("0.01"))
