"""
MT940 parser -- explicit state machine over tag records.

Responsibility:
    Turn SWIFT MT940 text into canonical ``Statement`` values.  The input
    is first tokenized into tag records (``:TAG:value`` plus continuation
    lines, envelope blocks skipped), then driven through ``Mt940State``
    transitions looked up in ``_TRANSITIONS``.  Each target state has one
    decoding routine in ``_HANDLERS``.

Invariants enforced:
    - Tag order: :20: [:21:] :25: [:28C:] :60x: {:61: [:86:]}* :62x:
      [:64:] [:65:]* [:86:].  A tag outside that order is reported as
      the first missing mandatory tag when one is missing, otherwise as
      an unexpected token.
    - The balance invariant is checked per statement unless the caller
      asked for lenient balances.
    - Any error aborts the whole call; no partial statements are returned.

Extension keys produced:
    Transaction: ``mt940.transaction_type``, ``mt940.funds_code``,
    ``mt940.reversal``, ``mt940.supplementary_details``.
    Statement: ``mt940.related_reference``, ``mt940.forward_available``,
    ``mt940.info``.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from enum import Enum

from statement_codecs.base import model_errors_at
from statement_codecs.mt940 import fields
from statement_config.schema import Mt940Options
from statement_kernel.domain.balance import compute_closing
from statement_kernel.domain.statement import (
    Account,
    Balance,
    BalanceKind,
    Statement,
    Transaction,
)
from statement_kernel.exceptions import (
    BalanceMismatchError,
    MissingMandatoryFieldError,
    UnexpectedTokenError,
)
from statement_kernel.logging_config import get_logger

logger = get_logger("codecs.mt940")

EXT_TRANSACTION_TYPE = "mt940.transaction_type"
EXT_FUNDS_CODE = "mt940.funds_code"
EXT_REVERSAL = "mt940.reversal"
EXT_SUPPLEMENTARY = "mt940.supplementary_details"
EXT_RELATED_REFERENCE = "mt940.related_reference"
EXT_FORWARD_AVAILABLE = "mt940.forward_available"
EXT_INFO = "mt940.info"

_TAG_LINE = re.compile(r"^:(?P<tag>\d{2}[A-Z]?):(?P<value>.*)$")

END = "END"


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TagRecord:
    """One ``:TAG:`` occurrence with its continuation lines."""

    line: int
    tag: str
    value: str
    continuation: tuple[str, ...] = ()

    @property
    def kind(self) -> str:
        """Tag family used for transitions: ``60F``/``60M`` -> ``60``, ``28C`` -> ``28``."""
        if self.tag == END:
            return END
        return self.tag[:2]


def tokenize(text: str) -> Iterator[TagRecord]:
    """Yield tag records; ``-}`` (or a lone ``-``) yields an END record."""
    current: list | None = None  # [line, tag, value, continuation]

    def flush() -> Iterator[TagRecord]:
        if current is not None:
            yield TagRecord(current[0], current[1], current[2], tuple(current[3]))

    for line_no, raw in enumerate(text.splitlines(), start=1):
        line = raw.rstrip()
        if not line.strip():
            continue

        if line.startswith("{"):
            # Envelope blocks; text after "{4:" on the same line is content.
            _, marker, rest = line.partition("{4:")
            if not marker or not rest.strip():
                continue
            line = rest.strip()

        if line.startswith("-}") or line == "-":
            yield from flush()
            current = None
            yield TagRecord(line_no, END, "")
            continue

        m = _TAG_LINE.match(line)
        if m is not None:
            yield from flush()
            current = [line_no, m["tag"], m["value"], []]
        elif current is not None:
            current[3].append(line)
        else:
            raise UnexpectedTokenError(line.strip()[:20], line=line_no)

    yield from flush()


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


class Mt940State(str, Enum):
    START = "start"
    HEADER = "header"
    RELATED = "related"
    ACCOUNT = "account"
    SEQUENCE = "sequence"
    OPENING = "opening"
    TRANSACTION = "transaction"
    NARRATIVE = "narrative"
    CLOSING = "closing"
    AVAILABLE = "available"
    FORWARD = "forward"
    INFO = "info"


S = Mt940State

_TRANSITIONS: dict[tuple[Mt940State, str], Mt940State] = {
    (S.START, "20"): S.HEADER,
    (S.START, END): S.START,
    (S.HEADER, "21"): S.RELATED,
    (S.HEADER, "25"): S.ACCOUNT,
    (S.RELATED, "25"): S.ACCOUNT,
    (S.ACCOUNT, "28"): S.SEQUENCE,
    (S.ACCOUNT, "60"): S.OPENING,
    (S.SEQUENCE, "60"): S.OPENING,
    (S.OPENING, "61"): S.TRANSACTION,
    (S.OPENING, "62"): S.CLOSING,
    (S.TRANSACTION, "61"): S.TRANSACTION,
    (S.TRANSACTION, "86"): S.NARRATIVE,
    (S.TRANSACTION, "62"): S.CLOSING,
    (S.NARRATIVE, "61"): S.TRANSACTION,
    (S.NARRATIVE, "62"): S.CLOSING,
    (S.CLOSING, "64"): S.AVAILABLE,
    (S.CLOSING, "65"): S.FORWARD,
    (S.CLOSING, "86"): S.INFO,
    (S.AVAILABLE, "65"): S.FORWARD,
    (S.AVAILABLE, "86"): S.INFO,
    (S.FORWARD, "65"): S.FORWARD,
    (S.FORWARD, "86"): S.INFO,
}

# States in which a statement is complete; a new :20: or END closes it.
_COMPLETE_STATES = (S.CLOSING, S.AVAILABLE, S.FORWARD, S.INFO)
for _state in _COMPLETE_STATES:
    _TRANSITIONS[(_state, "20")] = S.HEADER
    _TRANSITIONS[(_state, END)] = S.START

# Mandatory tags in order, with the tag family rank each occupies.
_MANDATORY: tuple[tuple[str, int], ...] = ((":20:", 0), (":25:", 2), (":60F:", 4), (":62F:", 6))

_MANDATORY_SEEN: dict[Mt940State, int] = {
    S.START: 0,
    S.HEADER: 1,
    S.RELATED: 1,
    S.ACCOUNT: 2,
    S.SEQUENCE: 2,
    S.OPENING: 3,
    S.TRANSACTION: 3,
    S.NARRATIVE: 3,
    S.CLOSING: 4,
    S.AVAILABLE: 4,
    S.FORWARD: 4,
    S.INFO: 4,
}

_TAG_RANK: dict[str, int] = {
    "20": 0, "21": 1, "25": 2, "28": 3, "60": 4, "61": 5, "86": 5,
    "62": 6, "64": 7, "65": 8, END: 10,
}


def _transition_error(state: Mt940State, record: TagRecord) -> Exception:
    seen = _MANDATORY_SEEN[state]
    if seen < len(_MANDATORY):
        missing, rank = _MANDATORY[seen]
        if record.kind in ("20", END) and seen > 0:
            return MissingMandatoryFieldError(missing, line=record.line)
        if _TAG_RANK.get(record.kind, -1) > rank:
            return MissingMandatoryFieldError(missing, line=record.line)
    return UnexpectedTokenError(f":{record.tag}:" if record.kind != END else "-}", line=record.line)


# ---------------------------------------------------------------------------
# Statement draft
# ---------------------------------------------------------------------------


@dataclass
class _PendingTransaction:
    line: int
    statement_line: fields.StatementLine
    supplementary: str | None
    narrative: list[str] = field(default_factory=list)


@dataclass
class _Draft:
    reference: str
    line: int
    related_reference: str | None = None
    account: str | None = None
    bic: str | None = None
    sequence: str | None = None
    opening: Balance | None = None
    closing: Balance | None = None
    closing_line: int = 0
    available: Balance | None = None
    forward: list[str] = field(default_factory=list)
    info: list[str] = field(default_factory=list)
    transactions: list[_PendingTransaction] = field(default_factory=list)


class Mt940Parser:
    """Stateful single-use parser; call ``parse`` once per input."""

    def __init__(self, options: Mt940Options, *, lenient_balances: bool = False):
        self.options = options
        self.lenient_balances = lenient_balances
        self._statements: list[Statement] = []
        self._draft: _Draft | None = None

    def parse(self, text: str) -> list[Statement]:
        state = Mt940State.START
        last_line = 0
        for record in tokenize(text):
            last_line = record.line
            target = _TRANSITIONS.get((state, record.kind))
            if target is None:
                raise _transition_error(state, record)
            if record.kind in ("20", END) and self._draft is not None:
                self._finish()
            if target is not Mt940State.START:
                _HANDLERS[target](self, record)
            state = target

        if state is not Mt940State.START:
            seen = _MANDATORY_SEEN[state]
            if seen < len(_MANDATORY):
                raise MissingMandatoryFieldError(_MANDATORY[seen][0], line=last_line)
            self._finish()

        if not self._statements:
            raise MissingMandatoryFieldError(":20:", line=last_line or None)
        return self._statements

    # -- decoding routines, one per target state ---------------------------

    def _on_header(self, record: TagRecord) -> None:
        reference = record.value.strip()
        if not reference:
            raise MissingMandatoryFieldError(":20:", line=record.line)
        self._draft = _Draft(reference=reference, line=record.line)

    def _on_related(self, record: TagRecord) -> None:
        self._draft.related_reference = record.value.strip() or None

    def _on_account(self, record: TagRecord) -> None:
        bic, account = fields.split_account(record.value)
        if not account:
            raise MissingMandatoryFieldError(":25:", line=record.line)
        self._draft.bic = bic
        self._draft.account = account

    def _on_sequence(self, record: TagRecord) -> None:
        self._draft.sequence = record.value.strip() or None

    def _on_opening(self, record: TagRecord) -> None:
        kind = BalanceKind.INTERMEDIATE if record.tag == "60M" else BalanceKind.OPENING
        self._draft.opening = self._balance(record, kind)

    def _on_transaction(self, record: TagRecord) -> None:
        line = fields.parse_statement_line(
            record.value, self.options.century_pivot, record.line
        )
        supplementary = " ".join(
            text for text in map(fields.unescape_text_line, record.continuation) if text
        ) or None
        self._draft.transactions.append(
            _PendingTransaction(line=record.line, statement_line=line, supplementary=supplementary)
        )

    def _on_narrative(self, record: TagRecord) -> None:
        segments = fields.parse_text_lines((record.value, *record.continuation))
        self._draft.transactions[-1].narrative.extend(segments)

    def _on_closing(self, record: TagRecord) -> None:
        kind = BalanceKind.INTERMEDIATE if record.tag == "62M" else BalanceKind.CLOSING
        self._draft.closing = self._balance(record, kind)
        self._draft.closing_line = record.line

    def _on_available(self, record: TagRecord) -> None:
        self._draft.available = self._balance(record, BalanceKind.AVAILABLE)

    def _on_forward(self, record: TagRecord) -> None:
        # Validated but kept verbatim; the model has no forward balances.
        self._balance(record, BalanceKind.AVAILABLE)
        self._draft.forward.append(record.value.strip())

    def _on_info(self, record: TagRecord) -> None:
        self._draft.info.extend(fields.parse_text_lines((record.value, *record.continuation)))

    # -- helpers -----------------------------------------------------------

    def _balance(self, record: TagRecord, kind: BalanceKind) -> Balance:
        return fields.parse_balance(record.value, kind, self.options.century_pivot, record.line)

    def _transaction(self, pending: _PendingTransaction, currency: str) -> Transaction:
        sl = pending.statement_line
        extensions = {EXT_TRANSACTION_TYPE: sl.transaction_type}
        if sl.funds_code:
            extensions[EXT_FUNDS_CODE] = sl.funds_code
        if sl.is_reversal:
            extensions[EXT_REVERSAL] = "true"
        if pending.supplementary:
            extensions[EXT_SUPPLEMENTARY] = pending.supplementary
        return Transaction(
            booking_date=sl.entry_date or sl.value_date,
            value_date=sl.value_date,
            amount=sl.amount,
            currency=currency,
            indicator=sl.indicator,
            bank_reference=sl.bank_reference,
            customer_reference=sl.customer_reference,
            narrative=tuple(pending.narrative),
            extensions=extensions,
        )

    def _finish(self) -> None:
        draft = self._draft
        self._draft = None
        currency = draft.opening.currency
        transactions = []
        for pending in draft.transactions:
            with model_errors_at(line=pending.line):
                transactions.append(self._transaction(pending, currency))

        actual = compute_closing(draft.opening, transactions)
        if actual != draft.closing.amount and not self.lenient_balances:
            raise BalanceMismatchError(draft.closing.amount, actual, line=draft.closing_line)

        extensions: dict[str, str] = {}
        if draft.related_reference:
            extensions[EXT_RELATED_REFERENCE] = draft.related_reference
        if draft.forward:
            extensions[EXT_FORWARD_AVAILABLE] = ";".join(draft.forward)
        if draft.info:
            extensions[EXT_INFO] = "\n".join(draft.info)

        with model_errors_at(line=draft.closing_line):
            statement = Statement(
                account=Account(identifier=draft.account, currency=currency, bic=draft.bic),
                statement_id=draft.reference,
                opening=draft.opening,
                closing=draft.closing,
                transactions=tuple(transactions),
                sequence_number=draft.sequence,
                available=draft.available,
                extensions=extensions,
                strict=not self.lenient_balances,
            )
        logger.debug(
            "statement_parsed",
            extra={
                "format": "mt940",
                "statement_id": statement.statement_id,
                "transaction_count": len(statement.transactions),
                "source_line": draft.line,
            },
        )
        self._statements.append(statement)


_HANDLERS: dict[Mt940State, Callable[[Mt940Parser, TagRecord], None]] = {
    S.HEADER: Mt940Parser._on_header,
    S.RELATED: Mt940Parser._on_related,
    S.ACCOUNT: Mt940Parser._on_account,
    S.SEQUENCE: Mt940Parser._on_sequence,
    S.OPENING: Mt940Parser._on_opening,
    S.TRANSACTION: Mt940Parser._on_transaction,
    S.NARRATIVE: Mt940Parser._on_narrative,
    S.CLOSING: Mt940Parser._on_closing,
    S.AVAILABLE: Mt940Parser._on_available,
    S.FORWARD: Mt940Parser._on_forward,
    S.INFO: Mt940Parser._on_info,
}
