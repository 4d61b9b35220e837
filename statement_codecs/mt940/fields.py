"""
MT940 field grammars.

Decoders and encoders for the sub-fields that appear inside MT940 tag
values: YYMMDD dates, comma-decimal amounts, balance values
(``:60F:``/``:62F:``/``:64:``/``:65:``), the statement line (``:61:``)
and the free-text lines under ``:61:`` and ``:86:``.
Decoders take the 1-based source line so errors carry their position.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from statement_codecs.base import format_decimal, model_errors_at
from statement_kernel.domain.statement import Balance, BalanceKind, CreditDebit
from statement_kernel.exceptions import (
    MalformedAmountError,
    MalformedDateError,
    UnexpectedTokenError,
)

NONREF = "NONREF"
DEFAULT_TRANSACTION_TYPE = "NTRF"

_AMOUNT = re.compile(r"^\d+,\d*$")
_BIC = re.compile(r"^[A-Z]{6}[A-Z0-9]{2}([A-Z0-9]{3})?$")

_STATEMENT_LINE = re.compile(
    r"^(?P<value_date>\d{6})"
    r"(?P<entry_date>\d{4})?"
    r"(?P<mark>RC|RD|C|D)"
    r"(?P<funds>[A-Z])?"
    r"(?P<amount>\d[\d,]*)"
    r"(?P<type>[A-Z][A-Z0-9]{3})"
    r"(?P<reference>.*)$"
)

# Loose shape used only to locate the faulty sub-field of a bad :61: line.
_STATEMENT_LINE_LOOSE = re.compile(
    r"^(?P<value_date>\d{6})(?P<entry_date>\d{4})?(?P<mark>RC|RD|C|D)"
    r"(?P<funds>[A-Z])?(?P<amount>[^A-Z]*)"
)


# ---------------------------------------------------------------------------
# Dates and amounts
# ---------------------------------------------------------------------------


def parse_yymmdd(text: str, century_pivot: int, line: int) -> date:
    """YYMMDD -> date; YY >= ``century_pivot`` is 19YY, otherwise 20YY."""
    if len(text) != 6 or not text.isdigit():
        raise MalformedDateError(text, line=line)
    yy = int(text[:2])
    year = 1900 + yy if yy >= century_pivot else 2000 + yy
    try:
        return date(year, int(text[2:4]), int(text[4:6]))
    except ValueError as e:
        raise MalformedDateError(text, line=line) from e


def format_yymmdd(value: date) -> str:
    return value.strftime("%y%m%d")


def parse_entry_date(text: str, value_date: date, line: int) -> date:
    """MMDD entry date; the year follows the value date across a year boundary."""
    if len(text) != 4 or not text.isdigit():
        raise MalformedDateError(text, line=line)
    month, day = int(text[:2]), int(text[2:])
    year = value_date.year
    if month == 12 and value_date.month == 1:
        year -= 1
    elif month == 1 and value_date.month == 12:
        year += 1
    try:
        return date(year, month, day)
    except ValueError as e:
        raise MalformedDateError(text, line=line) from e


def parse_amount(text: str, line: int) -> Decimal:
    """Unsigned MT940 amount with a mandatory comma decimal separator."""
    if not _AMOUNT.match(text):
        raise MalformedAmountError(text, line=line)
    return Decimal(text.replace(",", "."))


def format_amount(amount: Decimal, currency: str) -> str:
    """Unsigned amount with comma separator, e.g. ``1250,00`` or ``500,``."""
    text = format_decimal(abs(amount), currency, separator=",")
    return text if "," in text else text + ","


# ---------------------------------------------------------------------------
# Balances
# ---------------------------------------------------------------------------


def parse_balance(value: str, kind: BalanceKind, century_pivot: int, line: int) -> Balance:
    """
    Decode ``[C|D]YYMMDDCCYamount``.

    Raises:
        UnexpectedTokenError: bad mark or currency.
        MalformedDateError / MalformedAmountError: bad sub-fields.
    """
    value = value.strip()
    mark = value[:1]
    if mark not in ("C", "D"):
        raise UnexpectedTokenError(mark or value, line=line)
    as_of = parse_yymmdd(value[1:7], century_pivot, line)
    currency = value[7:10]
    if len(currency) != 3 or not currency.isalpha():
        raise UnexpectedTokenError(currency, line=line)
    amount = parse_amount(value[10:], line)
    if mark == "D":
        amount = -amount
    with model_errors_at(line=line):
        return Balance(
            amount=amount,
            currency=currency,
            as_of=as_of,
            indicator=CreditDebit(mark),
            kind=kind,
        )


def format_balance(balance: Balance) -> str:
    return (
        f"{balance.indicator.value}{format_yymmdd(balance.as_of)}"
        f"{balance.currency}{format_amount(balance.amount, balance.currency)}"
    )


# ---------------------------------------------------------------------------
# Statement line (:61:)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StatementLine:
    """Decoded :61: value."""

    value_date: date
    entry_date: date | None
    mark: str
    funds_code: str | None
    amount: Decimal  # signed
    transaction_type: str
    customer_reference: str | None
    bank_reference: str | None

    @property
    def indicator(self) -> CreditDebit:
        return CreditDebit.DEBIT if self.mark in ("D", "RC") else CreditDebit.CREDIT

    @property
    def is_reversal(self) -> bool:
        return self.mark.startswith("R")


def parse_statement_line(value: str, century_pivot: int, line: int) -> StatementLine:
    """
    Decode ``YYMMDD[MMDD](C|D|RC|RD)[funds]amount type reference[//bank ref]``.

    RC (reversal of credit) books as a debit, RD as a credit.
    """
    value = value.strip()
    m = _STATEMENT_LINE.match(value)
    if m is None:
        _raise_statement_line_error(value, century_pivot, line)

    value_date = parse_yymmdd(m["value_date"], century_pivot, line)
    entry_date = parse_entry_date(m["entry_date"], value_date, line) if m["entry_date"] else None
    amount = parse_amount(m["amount"], line)
    mark = m["mark"]
    if mark in ("D", "RC"):
        amount = -amount

    customer_ref, _, bank_ref = m["reference"].partition("//")
    customer_ref = customer_ref.strip()
    bank_ref = bank_ref.strip()
    return StatementLine(
        value_date=value_date,
        entry_date=entry_date,
        mark=mark,
        funds_code=m["funds"],
        amount=amount,
        transaction_type=m["type"],
        customer_reference=None if customer_ref in ("", NONREF) else customer_ref,
        bank_reference=bank_ref or None,
    )


def _raise_statement_line_error(value: str, century_pivot: int, line: int) -> None:
    loose = _STATEMENT_LINE_LOOSE.match(value)
    if loose is None:
        head = value[:6]
        if len(head) < 6 or not head.isdigit():
            raise MalformedDateError(head, line=line)
        raise UnexpectedTokenError(value[6:] or value, line=line)
    value_date = parse_yymmdd(loose["value_date"], century_pivot, line)
    if loose["entry_date"]:
        parse_entry_date(loose["entry_date"], value_date, line)
    parse_amount(loose["amount"], line)
    raise UnexpectedTokenError(value[loose.end():] or value, line=line)


def format_statement_line(
    value_date: date,
    booking_date: date,
    mark: str,
    funds_code: str | None,
    amount: Decimal,
    currency: str,
    transaction_type: str,
    customer_reference: str | None,
    bank_reference: str | None,
) -> str:
    text = (
        f"{format_yymmdd(value_date)}{booking_date.strftime('%m%d')}"
        f"{mark}{funds_code or ''}{format_amount(amount, currency)}"
        f"{transaction_type}{customer_reference or NONREF}"
    )
    if bank_reference:
        text += f"//{bank_reference}"
    return text


# ---------------------------------------------------------------------------
# Account (:25:)
# ---------------------------------------------------------------------------


def split_account(value: str) -> tuple[str | None, str]:
    """``BIC/ACCOUNT`` -> (bic, account); anything else -> (None, value)."""
    value = value.strip()
    left, sep, right = value.partition("/")
    if sep and right and _BIC.match(left):
        return left, right
    return None, value


# ---------------------------------------------------------------------------
# Free text (:86: lines, :61: supplementary details)
# ---------------------------------------------------------------------------

# A line starting with WRAP_MARK continues the previous segment with no
# separator.  ESCAPE_MARK prefixes a line that would otherwise read as a
# tag, an envelope block, the end of a message or one of the two marks.
WRAP_MARK = ">"
ESCAPE_MARK = "\\"
_RESERVED_STARTS = (":", "-", "{", WRAP_MARK, ESCAPE_MARK)


def escape_text_line(text: str) -> str:
    return ESCAPE_MARK + text if text.startswith(_RESERVED_STARTS) else text


def unescape_text_line(text: str) -> str:
    text = text.strip()
    return text[len(ESCAPE_MARK):].strip() if text.startswith(ESCAPE_MARK) else text


def _cut(text: str, width: int) -> list[str]:
    """Chunks of at most ``width`` characters; only the last may end in whitespace."""
    chunks: list[str] = []
    start = 0
    while start < len(text):
        end = start + width
        if end < len(text):
            while end > start and text[end - 1].isspace():
                end -= 1
            if end == start:
                # whitespace run longer than a line: carry on to the next visible character
                end = start + width
                while end < len(text) and text[end - 1].isspace():
                    end += 1
        chunks.append(text[start:end])
        start = end
    return chunks or [""]


def format_text_lines(segments: Iterable[str], line_length: int) -> list[str]:
    """
    Encode narrative segments as lines of at most ``line_length`` characters.

    Every segment starts a new line; a line break inside a segment starts
    another one.  A segment longer than a line continues on WRAP_MARK
    lines, cut so that no line ends in whitespace (the tokenizer strips it).
    """
    width = line_length - len(WRAP_MARK)
    lines: list[str] = []
    for segment in (s for part in segments for s in part.splitlines() or [""]):
        first, *rest = _cut(segment, width)
        lines.append(escape_text_line(first))
        lines.extend(WRAP_MARK + chunk for chunk in rest)
    return lines


def parse_text_lines(lines: Iterable[str]) -> list[str]:
    """
    Decode free-text lines into segments.

    Plain lines are separate segments, as banks write them; WRAP_MARK lines
    are joined onto the segment before them.
    """
    segments: list[str] = []
    for line in lines:
        if line.startswith(WRAP_MARK) and segments:
            segments[-1] += line[len(WRAP_MARK):]
            continue
        text = unescape_text_line(line)
        if text:
            segments.append(text)
    return segments
