"""
CAMT.053 parser -- ISO 20022 bank-to-customer statement XML.

Responsibility:
    Walk ``Document/BkToCstmrStmt/Stmt`` elements and map them onto the
    canonical model.  The namespace is taken from the root element so
    any ``camt.053.001.xx`` version (or an unqualified document) is read
    the same way.

Invariants enforced:
    - One ``Ntry`` with zero or one ``TxDtls`` maps to exactly one
      Transaction.
    - A batched ``Ntry`` (several ``TxDtls``) maps to one Transaction per
      detail.  Detail amounts must sum to the entry amount; the entry's
      shared fields are recorded under ``camt053.batch_*`` so the writer
      can regroup them.
    - Errors carry the XML element path they were detected at.

Extension keys produced:
    Transaction: ``camt053.entry_ref``, ``camt053.status``,
    ``camt053.reversal``, ``camt053.bank_tx_code``, ``camt053.domain_code``,
    ``camt053.tx_id``, ``camt053.debtor_name``, ``camt053.debtor_account``,
    ``camt053.creditor_name``, ``camt053.creditor_account``,
    ``camt053.batch_id``, ``camt053.batch_amount``,
    ``camt053.batch_indicator``, ``camt053.batch_bank_reference``,
    ``fx.original_amount``.
    Statement: ``camt053.msg_id``, ``camt053.creation_datetime``.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from decimal import Decimal

from statement_codecs.base import format_decimal, model_errors_at, parse_iso_date
from statement_kernel.domain.balance import compute_closing
from statement_kernel.domain.statement import (
    FX_ORIGINAL_AMOUNT,
    Account,
    Balance,
    BalanceKind,
    CreditDebit,
    Statement,
    Transaction,
)
from statement_kernel.exceptions import (
    BalanceMismatchError,
    MalformedAmountError,
    MissingMandatoryFieldError,
    UnexpectedTokenError,
)
from statement_kernel.logging_config import get_logger

logger = get_logger("codecs.camt053")

NOT_PROVIDED = "NOTPROVIDED"

EXT_MSG_ID = "camt053.msg_id"
EXT_CREATION_DATETIME = "camt053.creation_datetime"
EXT_ENTRY_REF = "camt053.entry_ref"
EXT_STATUS = "camt053.status"
EXT_REVERSAL = "camt053.reversal"
EXT_BANK_TX_CODE = "camt053.bank_tx_code"
EXT_DOMAIN_CODE = "camt053.domain_code"
EXT_TX_ID = "camt053.tx_id"
EXT_DEBTOR_NAME = "camt053.debtor_name"
EXT_DEBTOR_ACCOUNT = "camt053.debtor_account"
EXT_CREDITOR_NAME = "camt053.creditor_name"
EXT_CREDITOR_ACCOUNT = "camt053.creditor_account"
EXT_BATCH_ID = "camt053.batch_id"
EXT_BATCH_AMOUNT = "camt053.batch_amount"
EXT_BATCH_INDICATOR = "camt053.batch_indicator"
EXT_BATCH_BANK_REFERENCE = "camt053.batch_bank_reference"

INDICATOR_CODES = {"CRDT": CreditDebit.CREDIT, "DBIT": CreditDebit.DEBIT}

# Balance type code -> role on the statement
OPENING_CODES = ("OPBD", "PRCD")
CLOSING_CODES = ("CLBD",)
INTERMEDIATE_CODES = ("ITBD",)
AVAILABLE_CODES = ("CLAV",)

_AMOUNT = re.compile(r"^\d+(\.\d+)?$")


@dataclass(frozen=True)
class _Amount:
    value: Decimal  # signed
    currency: str
    indicator: CreditDebit


class Camt053Parser:
    """Parse one CAMT.053 document; namespace detected per document."""

    def __init__(self, *, lenient_balances: bool = False):
        self.lenient_balances = lenient_balances
        self._ns = ""

    def parse(self, data: bytes) -> list[Statement]:
        try:
            root = ET.fromstring(data)
        except ET.ParseError as e:
            line = e.position[0] if getattr(e, "position", None) else None
            raise UnexpectedTokenError(str(e), line=line) from e

        if root.tag.startswith("{"):
            self._ns = root.tag[1:].split("}", 1)[0]
        local = root.tag.rsplit("}", 1)[-1]
        if local != "Document":
            raise UnexpectedTokenError(local, path="/")

        container = self._find(root, "BkToCstmrStmt")
        if container is None:
            raise MissingMandatoryFieldError("BkToCstmrStmt", path="/Document")
        base = "/Document/BkToCstmrStmt"

        header = {}
        msg_id = self._text(container, "GrpHdr/MsgId")
        if msg_id:
            header[EXT_MSG_ID] = msg_id
        created = self._text(container, "GrpHdr/CreDtTm")
        if created:
            header[EXT_CREATION_DATETIME] = created

        stmts = self._findall(container, "Stmt")
        if not stmts:
            raise MissingMandatoryFieldError("Stmt", path=base)
        return [
            self._statement(el, f"{base}/Stmt[{i}]", header)
            for i, el in enumerate(stmts, start=1)
        ]

    # -- element helpers ---------------------------------------------------

    def _q(self, path: str) -> str:
        if not self._ns:
            return path
        return "/".join(f"{{{self._ns}}}{part}" for part in path.split("/"))

    def _find(self, el: ET.Element, path: str) -> ET.Element | None:
        return el.find(self._q(path))

    def _findall(self, el: ET.Element, path: str) -> list[ET.Element]:
        return el.findall(self._q(path))

    def _text(self, el: ET.Element, path: str) -> str | None:
        found = el.find(self._q(path))
        if found is None or found.text is None:
            return None
        return found.text.strip() or None

    def _required_text(self, el: ET.Element, path: str, where: str) -> str:
        value = self._text(el, path)
        if value is None:
            raise MissingMandatoryFieldError(path, path=f"{where}/{path}")
        return value

    def _date(self, el: ET.Element, path: str, where: str):
        """``<X><Dt>`` or ``<X><DtTm>`` -> date, or None when ``X`` is absent."""
        holder = self._find(el, path)
        if holder is None:
            return None
        text = self._text(holder, "Dt") or self._text(holder, "DtTm")
        if text is None:
            raise MissingMandatoryFieldError(f"{path}/Dt", path=f"{where}/{path}")
        return parse_iso_date(text, path=f"{where}/{path}")

    def _amount(self, el: ET.Element, amount_path: str, where: str,
                indicator: CreditDebit | None = None) -> _Amount:
        amt_el = self._find(el, amount_path)
        if amt_el is None:
            raise MissingMandatoryFieldError(amount_path, path=f"{where}/{amount_path}")
        text = (amt_el.text or "").strip()
        if not _AMOUNT.match(text):
            raise MalformedAmountError(text, path=f"{where}/{amount_path}")
        currency = amt_el.get("Ccy")
        if not currency:
            raise MissingMandatoryFieldError(f"{amount_path}@Ccy", path=f"{where}/{amount_path}")

        code = self._text(el, "CdtDbtInd")
        if code is not None:
            if code not in INDICATOR_CODES:
                raise UnexpectedTokenError(code, path=f"{where}/CdtDbtInd")
            indicator = INDICATOR_CODES[code]
        elif indicator is None:
            raise MissingMandatoryFieldError("CdtDbtInd", path=f"{where}/CdtDbtInd")

        value = Decimal(text)
        if indicator is CreditDebit.DEBIT:
            value = -value
        return _Amount(value=value, currency=currency, indicator=indicator)

    # -- statement ---------------------------------------------------------

    def _statement(self, el: ET.Element, where: str, header: dict[str, str]) -> Statement:
        statement_id = self._required_text(el, "Id", where)
        balances = self._balances(el, where)
        opening, closing, available = self._pick_balances(balances, where)
        account = self._account(el, where, opening.currency)

        period_start = period_end = None
        period = self._find(el, "FrToDt")
        if period is not None:
            start = self._text(period, "FrDtTm")
            end = self._text(period, "ToDtTm")
            period_start = parse_iso_date(start, path=f"{where}/FrToDt/FrDtTm") if start else None
            period_end = parse_iso_date(end, path=f"{where}/FrToDt/ToDtTm") if end else None

        transactions: list[Transaction] = []
        for index, ntry in enumerate(self._findall(el, "Ntry"), start=1):
            transactions.extend(
                self._entry(ntry, f"{where}/Ntry[{index}]", statement_id, index)
            )

        actual = compute_closing(opening, transactions)
        if actual != closing.amount and not self.lenient_balances:
            raise BalanceMismatchError(closing.amount, actual, path=where)

        with model_errors_at(path=where):
            statement = Statement(
                account=account,
                statement_id=statement_id,
                opening=opening,
                closing=closing,
                transactions=tuple(transactions),
                sequence_number=self._text(el, "ElctrncSeqNb"),
                period_start=period_start,
                period_end=period_end,
                available=available,
                extensions=header,
                strict=not self.lenient_balances,
            )
        logger.debug(
            "statement_parsed",
            extra={
                "format": "camt053",
                "statement_id": statement_id,
                "transaction_count": len(statement.transactions),
            },
        )
        return statement

    def _account(self, el: ET.Element, where: str, fallback_currency: str) -> Account:
        acct = self._find(el, "Acct")
        if acct is None:
            raise MissingMandatoryFieldError("Acct", path=f"{where}/Acct")
        identifier = self._text(acct, "Id/IBAN") or self._text(acct, "Id/Othr/Id")
        if identifier is None:
            raise MissingMandatoryFieldError("Acct/Id", path=f"{where}/Acct/Id")
        with model_errors_at(path=f"{where}/Acct"):
            return Account(
                identifier=identifier,
                currency=self._text(acct, "Ccy") or fallback_currency,
                bic=self._text(acct, "Svcr/FinInstnId/BIC") or self._text(acct, "Svcr/FinInstnId/BICFI"),
                name=self._text(acct, "Nm"),
                owner=self._text(acct, "Ownr/Nm"),
            )

    def _balances(self, el: ET.Element, where: str) -> list[tuple[str, Balance]]:
        out: list[tuple[str, Balance]] = []
        for index, bal in enumerate(self._findall(el, "Bal"), start=1):
            path = f"{where}/Bal[{index}]"
            code = self._text(bal, "Tp/CdOrPrtry/Cd") or self._text(bal, "Tp/CdOrPrtry/Prtry")
            if code is None:
                raise MissingMandatoryFieldError("Tp/CdOrPrtry/Cd", path=path)
            if code in OPENING_CODES:
                kind = BalanceKind.OPENING
            elif code in CLOSING_CODES:
                kind = BalanceKind.CLOSING
            elif code in INTERMEDIATE_CODES:
                kind = BalanceKind.INTERMEDIATE
            elif code in AVAILABLE_CODES:
                kind = BalanceKind.AVAILABLE
            else:
                continue
            amount = self._amount(bal, "Amt", path)
            as_of = self._date(bal, "Dt", path)
            if as_of is None:
                raise MissingMandatoryFieldError("Dt", path=f"{path}/Dt")
            with model_errors_at(path=path):
                out.append((code, Balance(
                    amount=amount.value,
                    currency=amount.currency,
                    as_of=as_of,
                    indicator=amount.indicator,
                    kind=kind,
                )))
        return out

    def _pick_balances(
        self, balances: list[tuple[str, Balance]], where: str
    ) -> tuple[Balance, Balance, Balance | None]:
        """Booked balances win; ITBD stands in at either end when they are absent."""
        opening = next((b for c, b in balances if c in OPENING_CODES), None)
        closing = next((b for c, b in reversed(balances) if c in CLOSING_CODES), None)
        intermediate = [b for c, b in balances if c in INTERMEDIATE_CODES]
        if opening is None and intermediate:
            opening = intermediate.pop(0)
        if closing is None and intermediate:
            closing = intermediate[-1]
        if opening is None:
            raise MissingMandatoryFieldError("Bal[OPBD]", path=f"{where}/Bal")
        if closing is None:
            raise MissingMandatoryFieldError("Bal[CLBD]", path=f"{where}/Bal")
        available = next((b for c, b in balances if c in AVAILABLE_CODES), None)
        return opening, closing, available

    # -- entries -----------------------------------------------------------

    def _entry(
        self,
        ntry: ET.Element,
        where: str,
        statement_id: str,
        index: int,
    ) -> list[Transaction]:
        amount = self._amount(ntry, "Amt", where)
        booking = self._date(ntry, "BookgDt", where)
        value = self._date(ntry, "ValDt", where)
        if booking is None and value is None:
            raise MissingMandatoryFieldError("BookgDt", path=f"{where}/BookgDt")
        booking = booking or value
        value = value or booking

        shared: dict[str, str] = {}
        entry_ref = self._text(ntry, "NtryRef")
        if entry_ref:
            shared[EXT_ENTRY_REF] = entry_ref
        status = self._text(ntry, "Sts") or self._text(ntry, "Sts/Cd")
        if status:
            shared[EXT_STATUS] = status
        if (self._text(ntry, "RvslInd") or "").lower() == "true":
            shared[EXT_REVERSAL] = "true"
        tx_code = self._text(ntry, "BkTxCd/Prtry/Cd")
        if tx_code:
            shared[EXT_BANK_TX_CODE] = tx_code
        domain = self._domain_code(ntry)
        if domain:
            shared[EXT_DOMAIN_CODE] = domain

        bank_reference = self._text(ntry, "AcctSvcrRef")
        entry_info = self._text(ntry, "AddtlNtryInf")
        details = self._findall(ntry, "NtryDtls/TxDtls")

        if len(details) <= 1:
            detail = details[0] if details else None
            return [self._transaction(
                detail, f"{where}/NtryDtls/TxDtls[1]", amount, booking, value,
                bank_reference, entry_info, shared,
            )]

        # Batch: one transaction per detail, parent recorded for regrouping.
        batch = dict(shared)
        batch[EXT_BATCH_ID] = f"{statement_id}/{index}"
        batch[EXT_BATCH_AMOUNT] = format_decimal(abs(amount.value), amount.currency)
        batch[EXT_BATCH_INDICATOR] = "CRDT" if amount.indicator is CreditDebit.CREDIT else "DBIT"
        if bank_reference:
            batch[EXT_BATCH_BANK_REFERENCE] = bank_reference

        transactions = []
        for n, detail in enumerate(details, start=1):
            path = f"{where}/NtryDtls/TxDtls[{n}]"
            detail_amount = self._detail_amount(detail, path, amount)
            transactions.append(self._transaction(
                detail, path, detail_amount, booking, value,
                self._text(detail, "Refs/AcctSvcrRef"), None, batch,
            ))

        total = sum((t.amount for t in transactions), Decimal("0"))
        if total != amount.value and not self.lenient_balances:
            raise BalanceMismatchError(amount.value, total, path=f"{where}/NtryDtls")
        return transactions

    def _detail_amount(self, detail: ET.Element, where: str, parent: _Amount) -> _Amount:
        if self._find(detail, "Amt") is not None:
            return self._amount(detail, "Amt", where, parent.indicator)
        if self._find(detail, "AmtDtls/TxAmt/Amt") is not None:
            return self._amount(detail, "AmtDtls/TxAmt/Amt", where, parent.indicator)
        raise MissingMandatoryFieldError("AmtDtls/TxAmt/Amt", path=f"{where}/AmtDtls")

    def _domain_code(self, ntry: ET.Element) -> str | None:
        parts = [
            self._text(ntry, "BkTxCd/Domn/Cd"),
            self._text(ntry, "BkTxCd/Domn/Fmly/Cd"),
            self._text(ntry, "BkTxCd/Domn/Fmly/SubFmlyCd"),
        ]
        if not any(parts):
            return None
        return "/".join(p or "" for p in parts)

    def _transaction(
        self,
        detail: ET.Element | None,
        where: str,
        amount: _Amount,
        booking,
        value,
        bank_reference: str | None,
        fallback_info: str | None,
        shared: dict[str, str],
    ) -> Transaction:
        extensions = dict(shared)
        customer_reference = None
        narrative: tuple[str, ...] = ()
        currency = amount.currency

        if detail is not None:
            end_to_end = self._text(detail, "Refs/EndToEndId")
            if end_to_end and end_to_end != NOT_PROVIDED:
                customer_reference = end_to_end
            tx_id = self._text(detail, "Refs/TxId")
            if tx_id:
                extensions[EXT_TX_ID] = tx_id
            if bank_reference is None:
                bank_reference = self._text(detail, "Refs/AcctSvcrRef")

            for key, path in (
                (EXT_DEBTOR_NAME, "RltdPties/Dbtr/Nm"),
                (EXT_DEBTOR_ACCOUNT, "RltdPties/DbtrAcct/Id/IBAN"),
                (EXT_CREDITOR_NAME, "RltdPties/Cdtr/Nm"),
                (EXT_CREDITOR_ACCOUNT, "RltdPties/CdtrAcct/Id/IBAN"),
            ):
                found = self._text(detail, path)
                if found:
                    extensions[key] = found

            narrative = tuple(
                (u.text or "").strip()
                for u in self._findall(detail, "RmtInf/Ustrd")
                if (u.text or "").strip()
            )
            if not narrative:
                info = self._text(detail, "AddtlTxInf")
                narrative = (info,) if info else ()

            instructed = self._find(detail, "AmtDtls/InstdAmt/Amt")
            if instructed is not None and instructed.get("Ccy") not in (None, amount.currency):
                original = self._amount(detail, "AmtDtls/InstdAmt/Amt", where, amount.indicator)
                currency = original.currency
                extensions[FX_ORIGINAL_AMOUNT] = format_decimal(original.value, original.currency)

        if not narrative and fallback_info:
            narrative = (fallback_info,)

        with model_errors_at(path=where):
            return Transaction(
                booking_date=booking,
                value_date=value,
                amount=amount.value,
                currency=currency,
                indicator=amount.indicator,
                bank_reference=bank_reference,
                customer_reference=customer_reference,
                narrative=narrative,
                extensions=extensions,
            )
