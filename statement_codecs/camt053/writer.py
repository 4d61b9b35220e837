"""
CAMT.053 writer.

Builds a ``camt.053.001.02``-shaped document with ElementTree.  Nothing
here reads the clock: ``GrpHdr/CreDtTm`` comes from the statement's
extension map or the closing balance date.  Transactions sharing a
``camt053.batch_id`` are regrouped into one ``Ntry`` with a ``TxDtls``
per transaction.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Sequence
from decimal import Decimal

from statement_codecs.base import format_decimal
from statement_codecs.camt053.parser import (
    EXT_BANK_TX_CODE,
    EXT_BATCH_BANK_REFERENCE,
    EXT_BATCH_ID,
    EXT_BATCH_INDICATOR,
    EXT_CREATION_DATETIME,
    EXT_CREDITOR_ACCOUNT,
    EXT_CREDITOR_NAME,
    EXT_DEBTOR_ACCOUNT,
    EXT_DEBTOR_NAME,
    EXT_DOMAIN_CODE,
    EXT_ENTRY_REF,
    EXT_MSG_ID,
    EXT_REVERSAL,
    EXT_STATUS,
    EXT_TX_ID,
    NOT_PROVIDED,
)
from statement_config.schema import Camt053Options
from statement_kernel.domain.statement import (
    FX_ORIGINAL_AMOUNT,
    Balance,
    BalanceKind,
    CreditDebit,
    Statement,
    Transaction,
)


def _sub(parent: ET.Element, tag: str, text: str | None = None, **attrib: str) -> ET.Element:
    el = ET.SubElement(parent, tag, attrib)
    if text is not None:
        el.text = text
    return el


def _indicator_code(indicator: CreditDebit) -> str:
    return "CRDT" if indicator is CreditDebit.CREDIT else "DBIT"


def _amount(parent: ET.Element, tag: str, amount: Decimal, currency: str) -> ET.Element:
    return _sub(parent, tag, format_decimal(abs(amount), currency), Ccy=currency)


def _group(transactions: Sequence[Transaction]) -> list[list[Transaction]]:
    """Regroup batch details by batch id, keeping first-appearance order."""
    groups: list[list[Transaction]] = []
    by_batch: dict[str, list[Transaction]] = {}
    for txn in transactions:
        batch_id = txn.extensions.get(EXT_BATCH_ID)
        if batch_id is None:
            groups.append([txn])
        elif batch_id in by_batch:
            by_batch[batch_id].append(txn)
        else:
            by_batch[batch_id] = [txn]
            groups.append(by_batch[batch_id])
    return groups


class Camt053Writer:
    def __init__(self, options: Camt053Options):
        self.options = options

    def write(self, statements: Sequence[Statement]) -> bytes:
        root = ET.Element("Document", xmlns=self.options.namespace)
        container = _sub(root, "BkToCstmrStmt")

        first = statements[0] if statements else None
        grp = _sub(container, "GrpHdr")
        _sub(grp, "MsgId", self._msg_id(first))
        _sub(grp, "CreDtTm", self._created(first))

        for statement in statements:
            self._statement(container, statement)

        if self.options.indent:
            ET.indent(root)
        return ET.tostring(root, encoding=self.options.encoding, xml_declaration=True)

    @staticmethod
    def _msg_id(statement: Statement | None) -> str:
        if statement is None:
            return "EMPTY"
        return statement.extensions.get(EXT_MSG_ID) or f"MSG-{statement.statement_id}"

    @staticmethod
    def _created(statement: Statement | None) -> str:
        if statement is None:
            return "1970-01-01T00:00:00"
        return (
            statement.extensions.get(EXT_CREATION_DATETIME)
            or f"{statement.closing.as_of.isoformat()}T00:00:00"
        )

    def _statement(self, container: ET.Element, statement: Statement) -> None:
        stmt = _sub(container, "Stmt")
        _sub(stmt, "Id", statement.statement_id)
        if statement.sequence_number:
            _sub(stmt, "ElctrncSeqNb", statement.sequence_number)
        _sub(stmt, "CreDtTm", self._created(statement))
        if statement.period_start or statement.period_end:
            period = _sub(stmt, "FrToDt")
            start = statement.period_start or statement.period_end
            end = statement.period_end or statement.period_start
            _sub(period, "FrDtTm", f"{start.isoformat()}T00:00:00")
            _sub(period, "ToDtTm", f"{end.isoformat()}T23:59:59")

        account = statement.account
        acct = _sub(stmt, "Acct")
        acct_id = _sub(acct, "Id")
        if account.is_iban:
            _sub(acct_id, "IBAN", account.identifier)
        else:
            _sub(_sub(acct_id, "Othr"), "Id", account.identifier)
        _sub(acct, "Ccy", account.currency)
        if account.name:
            _sub(acct, "Nm", account.name)
        if account.owner:
            _sub(_sub(acct, "Ownr"), "Nm", account.owner)
        if account.bic:
            _sub(_sub(_sub(acct, "Svcr"), "FinInstnId"), "BIC", account.bic)

        opening_code = "ITBD" if statement.opening.kind is BalanceKind.INTERMEDIATE else "OPBD"
        closing_code = "ITBD" if statement.closing.kind is BalanceKind.INTERMEDIATE else "CLBD"
        self._balance(stmt, statement.opening, opening_code)
        self._balance(stmt, statement.closing, closing_code)
        if statement.available is not None:
            self._balance(stmt, statement.available, "CLAV")

        for group in _group(statement.transactions):
            if len(group) == 1 and EXT_BATCH_ID not in group[0].extensions:
                self._single_entry(stmt, group[0], statement.currency)
            else:
                self._batch_entry(stmt, group, statement.currency)

    def _balance(self, stmt: ET.Element, balance: Balance, code: str) -> None:
        bal = _sub(stmt, "Bal")
        _sub(_sub(_sub(bal, "Tp"), "CdOrPrtry"), "Cd", code)
        _amount(bal, "Amt", balance.amount, balance.currency)
        _sub(bal, "CdtDbtInd", _indicator_code(balance.indicator))
        _sub(_sub(bal, "Dt"), "Dt", balance.as_of.isoformat())

    # -- entries -----------------------------------------------------------

    def _entry_header(
        self,
        stmt: ET.Element,
        head: Transaction,
        amount: Decimal,
        indicator: CreditDebit,
        currency: str,
        bank_reference: str | None,
    ) -> ET.Element:
        ext = head.extensions
        ntry = _sub(stmt, "Ntry")
        if ext.get(EXT_ENTRY_REF):
            _sub(ntry, "NtryRef", ext[EXT_ENTRY_REF])
        _amount(ntry, "Amt", amount, currency)
        _sub(ntry, "CdtDbtInd", _indicator_code(indicator))
        if ext.get(EXT_REVERSAL) == "true":
            _sub(ntry, "RvslInd", "true")
        _sub(ntry, "Sts", ext.get(EXT_STATUS, "BOOK"))
        _sub(_sub(ntry, "BookgDt"), "Dt", head.booking_date.isoformat())
        _sub(_sub(ntry, "ValDt"), "Dt", head.value_date.isoformat())
        if bank_reference:
            _sub(ntry, "AcctSvcrRef", bank_reference)
        self._bank_tx_code(ntry, ext)
        return ntry

    @staticmethod
    def _bank_tx_code(ntry: ET.Element, ext) -> None:
        domain = ext.get(EXT_DOMAIN_CODE)
        proprietary = ext.get(EXT_BANK_TX_CODE)
        if not domain and not proprietary:
            return
        code = _sub(ntry, "BkTxCd")
        if domain:
            domn_cd, fmly_cd, sub_cd = (domain.split("/") + ["", "", ""])[:3]
            domn = _sub(code, "Domn")
            _sub(domn, "Cd", domn_cd)
            fmly = _sub(domn, "Fmly")
            _sub(fmly, "Cd", fmly_cd)
            _sub(fmly, "SubFmlyCd", sub_cd)
        if proprietary:
            _sub(_sub(code, "Prtry"), "Cd", proprietary)

    def _single_entry(self, stmt: ET.Element, txn: Transaction, account_currency: str) -> None:
        ntry = self._entry_header(
            stmt, txn, txn.amount, txn.indicator, account_currency, txn.bank_reference
        )
        if self._has_details(txn):
            self._details(_sub(ntry, "NtryDtls"), txn, account_currency, in_batch=False)

    def _batch_entry(
        self, stmt: ET.Element, group: list[Transaction], account_currency: str
    ) -> None:
        head = group[0]
        ext = head.extensions
        total = sum((t.amount for t in group), Decimal("0"))
        if total == 0 and ext.get(EXT_BATCH_INDICATOR) == "DBIT":
            indicator = CreditDebit.DEBIT
        else:
            indicator = CreditDebit.from_sign(total)
        ntry = self._entry_header(
            stmt, head, total, indicator, account_currency, ext.get(EXT_BATCH_BANK_REFERENCE)
        )
        dtls = _sub(ntry, "NtryDtls")
        _sub(_sub(dtls, "Btch"), "NbOfTxs", str(len(group)))
        for txn in group:
            self._details(dtls, txn, account_currency, in_batch=True, parent_indicator=indicator)

    @staticmethod
    def _has_details(txn: Transaction) -> bool:
        ext = txn.extensions
        return bool(
            txn.customer_reference
            or txn.narrative
            or txn.is_foreign_currency
            or any(
                k in ext
                for k in (EXT_TX_ID, EXT_DEBTOR_NAME, EXT_DEBTOR_ACCOUNT,
                          EXT_CREDITOR_NAME, EXT_CREDITOR_ACCOUNT)
            )
        )

    def _details(
        self,
        dtls: ET.Element,
        txn: Transaction,
        account_currency: str,
        *,
        in_batch: bool,
        parent_indicator: CreditDebit | None = None,
    ) -> None:
        ext = txn.extensions
        tx = _sub(dtls, "TxDtls")
        refs = _sub(tx, "Refs")
        if in_batch and txn.bank_reference:
            _sub(refs, "AcctSvcrRef", txn.bank_reference)
        _sub(refs, "EndToEndId", txn.customer_reference or NOT_PROVIDED)
        if ext.get(EXT_TX_ID):
            _sub(refs, "TxId", ext[EXT_TX_ID])

        if in_batch or txn.is_foreign_currency:
            amt_dtls = _sub(tx, "AmtDtls")
            if txn.is_foreign_currency:
                _amount(_sub(amt_dtls, "InstdAmt"), "Amt",
                        Decimal(ext[FX_ORIGINAL_AMOUNT]), txn.currency)
            if in_batch:
                _amount(_sub(amt_dtls, "TxAmt"), "Amt", txn.amount, account_currency)
        if in_batch and parent_indicator is not None and txn.indicator is not parent_indicator:
            _sub(tx, "CdtDbtInd", _indicator_code(txn.indicator))

        parties = [
            ("Dbtr", EXT_DEBTOR_NAME, "DbtrAcct", EXT_DEBTOR_ACCOUNT),
            ("Cdtr", EXT_CREDITOR_NAME, "CdtrAcct", EXT_CREDITOR_ACCOUNT),
        ]
        if any(ext.get(name_key) or ext.get(acct_key) for _, name_key, _, acct_key in parties):
            rltd = _sub(tx, "RltdPties")
            for party_tag, name_key, acct_tag, acct_key in parties:
                if ext.get(name_key):
                    _sub(_sub(rltd, party_tag), "Nm", ext[name_key])
                if ext.get(acct_key):
                    _sub(_sub(_sub(rltd, acct_tag), "Id"), "IBAN", ext[acct_key])

        if txn.narrative:
            rmt = _sub(tx, "RmtInf")
            for segment in txn.narrative:
                _sub(rmt, "Ustrd", segment)
