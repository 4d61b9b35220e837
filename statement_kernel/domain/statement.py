"""
Canonical statement model.

Responsibility:
    Format-independent, immutable representation of a bank account
    statement: the account, its opening/closing (and optional available)
    balances, and the booked transactions in between.  Every codec parses
    into these types and writes from them; the reconciliation engine
    compares them.

Architecture position:
    Kernel -- pure domain, zero I/O, no dependency on codecs or engines.

Invariants enforced:
    - All amounts are ``Decimal``; floats never enter the model.
    - Credit/debit indicator agrees with the sign of the amount
      (zero agrees with either indicator).
    - Balance currencies equal the account currency.
    - A transaction in another currency must carry
      ``FX_ORIGINAL_AMOUNT`` in its extension map.
    - Transactions are stably ordered by booking date.
    - opening + sum(transactions) == closing unless built with
      ``strict=False``.

Failure modes:
    - ``SignMismatchError`` for indicator/sign disagreement.
    - ``CurrencyMismatchError`` for currency violations.
    - ``BalanceMismatchError`` when the balance invariant fails in strict mode.
    - ``TypeError`` for non-Decimal amounts.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import InitVar, dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from types import MappingProxyType

from statement_kernel.domain.balance import compute_closing
from statement_kernel.domain.currency import normalize_currency
from statement_kernel.exceptions import (
    BalanceMismatchError,
    CurrencyMismatchError,
    InvalidPeriodError,
    SignMismatchError,
)

NARRATIVE_SEPARATOR = " "

# Extension key holding the amount in the transaction's own currency when
# that currency differs from the account currency.
FX_ORIGINAL_AMOUNT = "fx.original_amount"


def _require_decimal(value: object, name: str) -> None:
    if not isinstance(value, Decimal):
        raise TypeError(f"{name} must be Decimal, got {type(value).__name__}")


def _freeze(mapping: Mapping[str, str] | None) -> MappingProxyType:
    if isinstance(mapping, MappingProxyType):
        return mapping
    return MappingProxyType({str(k): str(v) for k, v in (mapping or {}).items()})


class CreditDebit(str, Enum):
    """Credit/debit indicator from the account holder's perspective."""

    CREDIT = "C"
    DEBIT = "D"

    @classmethod
    def from_sign(cls, amount: Decimal) -> CreditDebit:
        return cls.DEBIT if amount < 0 else cls.CREDIT

    def agrees_with(self, amount: Decimal) -> bool:
        if amount == 0:
            return True
        return (amount > 0) == (self is CreditDebit.CREDIT)


class BalanceKind(str, Enum):
    OPENING = "opening"
    INTERMEDIATE = "intermediate"
    CLOSING = "closing"
    AVAILABLE = "available"


@dataclass(frozen=True)
class Account:
    """
    The account a statement belongs to.

    ``identifier`` is an IBAN or the bank's raw account number.
    """

    identifier: str
    currency: str
    bic: str | None = None
    name: str | None = None
    owner: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "identifier", self.identifier.strip())
        object.__setattr__(self, "currency", normalize_currency(self.currency))

    @property
    def is_iban(self) -> bool:
        ident = self.identifier.replace(" ", "")
        return (
            15 <= len(ident) <= 34
            and ident[:2].isalpha()
            and ident[2:4].isdigit()
            and ident.isalnum()
        )


@dataclass(frozen=True)
class Balance:
    """
    A balance at a point in time.

    Contract:
        ``amount`` is signed (negative means debit balance) and
        ``indicator`` must agree with it.  Use ``Balance.of`` to derive the
        indicator from the sign.
    """

    amount: Decimal
    currency: str
    as_of: date
    indicator: CreditDebit
    kind: BalanceKind = BalanceKind.CLOSING

    def __post_init__(self) -> None:
        _require_decimal(self.amount, "Balance.amount")
        object.__setattr__(self, "currency", normalize_currency(self.currency))
        object.__setattr__(self, "indicator", CreditDebit(self.indicator))
        object.__setattr__(self, "kind", BalanceKind(self.kind))
        if not self.indicator.agrees_with(self.amount):
            raise SignMismatchError(self.amount, self.indicator.value)

    @classmethod
    def of(
        cls,
        amount: Decimal,
        currency: str,
        as_of: date,
        kind: BalanceKind = BalanceKind.CLOSING,
    ) -> Balance:
        return cls(
            amount=amount,
            currency=currency,
            as_of=as_of,
            indicator=CreditDebit.from_sign(amount),
            kind=kind,
        )


@dataclass(frozen=True)
class Transaction:
    """
    One booked movement on the account.

    Contract:
        ``amount`` is signed: positive for credits, negative for debits.
        ``indicator`` defaults to the sign-derived value and must agree
        with the sign when given explicitly.  ``narrative`` holds the
        free-text segments in source order; ``extensions`` holds
        format-specific fields as opaque strings, keyed by a
        ``<format>.<name>`` convention.

    Guarantees:
        - Immutable; ``extensions`` is a read-only mapping.
        - Derived copies are produced with ``with_extensions`` or
          ``dataclasses.replace``, never by mutation.
    """

    booking_date: date
    value_date: date
    amount: Decimal
    currency: str
    indicator: CreditDebit | None = None
    bank_reference: str | None = None
    customer_reference: str | None = None
    narrative: tuple[str, ...] = ()
    extensions: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _require_decimal(self.amount, "Transaction.amount")
        object.__setattr__(self, "currency", normalize_currency(self.currency))
        if self.indicator is None:
            object.__setattr__(self, "indicator", CreditDebit.from_sign(self.amount))
        else:
            object.__setattr__(self, "indicator", CreditDebit(self.indicator))
        if not self.indicator.agrees_with(self.amount):
            raise SignMismatchError(self.amount, self.indicator.value)
        if isinstance(self.narrative, str):
            object.__setattr__(self, "narrative", (self.narrative,) if self.narrative else ())
        else:
            object.__setattr__(self, "narrative", tuple(self.narrative))
        object.__setattr__(self, "extensions", _freeze(self.extensions))

    @property
    def narrative_text(self) -> str:
        return NARRATIVE_SEPARATOR.join(s for s in self.narrative if s)

    @property
    def is_credit(self) -> bool:
        return self.indicator is CreditDebit.CREDIT

    @property
    def is_foreign_currency(self) -> bool:
        return FX_ORIGINAL_AMOUNT in self.extensions

    def with_extensions(self, extensions: Mapping[str, str]) -> Transaction:
        """Copy of this transaction with ``extensions`` replacing the current map."""
        return replace(self, extensions=dict(extensions))


@dataclass(frozen=True)
class Statement:
    """
    A statement for one account over one period.

    ``sequence_number`` and the period bounds are optional because not
    every format carries them (MT940 has no explicit period).

    Construct with ``strict=False`` to skip the balance invariant; the
    other invariants always hold.
    """

    account: Account
    statement_id: str
    opening: Balance
    closing: Balance
    transactions: tuple[Transaction, ...] = ()
    sequence_number: str | None = None
    period_start: date | None = None
    period_end: date | None = None
    available: Balance | None = None
    extensions: Mapping[str, str] = field(default_factory=dict)
    strict: InitVar[bool] = True

    def __post_init__(self, strict: bool) -> None:
        currency = self.account.currency
        for bal in (self.opening, self.closing, self.available):
            if bal is not None and bal.currency != currency:
                raise CurrencyMismatchError(currency, bal.currency, f"{bal.kind.value} balance")

        ordered = tuple(sorted(self.transactions, key=lambda t: t.booking_date))
        for txn in ordered:
            if txn.currency != currency and not txn.is_foreign_currency:
                raise CurrencyMismatchError(
                    currency, txn.currency, f"transaction {txn.bank_reference or ''}".rstrip()
                )
        object.__setattr__(self, "transactions", ordered)
        object.__setattr__(self, "extensions", _freeze(self.extensions))

        if (
            self.period_start is not None
            and self.period_end is not None
            and self.period_start > self.period_end
        ):
            raise InvalidPeriodError(self.period_start, self.period_end)

        if strict:
            computed = compute_closing(self.opening, ordered)
            if computed != self.closing.amount:
                raise BalanceMismatchError(self.closing.amount, computed)

    @property
    def currency(self) -> str:
        return self.account.currency

    @property
    def transaction_total(self) -> Decimal:
        return sum((t.amount for t in self.transactions), Decimal("0"))

    def with_transactions(
        self, transactions: Iterable[Transaction], *, strict: bool = True
    ) -> Statement:
        return replace(self, transactions=tuple(transactions), strict=strict)
