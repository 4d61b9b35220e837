"""
Sample documents and canonical builders shared by the test suite.

The three samples describe the same account movements:

    opening   C 1000.00 EUR  2024-01-14
    credit      1250.00      2024-01-15  INV-4711 / BREF-1
    debit       -250.50      2024-01-16  (batch of 200.00 + 50.50 in CAMT)
    closing   C 1999.50 EUR  2024-01-16
"""

from datetime import date
from decimal import Decimal

from statement_kernel.domain import (
    Account,
    Balance,
    BalanceKind,
    Statement,
    Transaction,
)

IBAN = "DE89370400440532013000"


SAMPLE_MT940 = """\
{1:F01BANKDEFF0000000000}{2:O940BANKDEFFN}{3:}{4:
:20:STMT-2024-001
:25:BANKDEFF/DE89370400440532013000
:28C:1/1
:60F:C240114EUR1000,00
:61:2401150115C1250,00NTRFINV-4711//BREF-1
:86:Invoice 4711
ACME GmbH
:61:2401160116D250,50NMSCNONREF//BREF-2
:86:Card payment
:62F:C240116EUR1999,50
:64:C240116EUR1999,50
-}{5:}
"""


SAMPLE_CAMT053 = """\
<?xml version="1.0" encoding="UTF-8"?>
<Document xmlns="urn:iso:std:iso:20022:tech:xsd:camt.053.001.02">
  <BkToCstmrStmt>
    <GrpHdr>
      <MsgId>MSG-0001</MsgId>
      <CreDtTm>2024-01-16T18:00:00</CreDtTm>
    </GrpHdr>
    <Stmt>
      <Id>STMT-2024-001</Id>
      <ElctrncSeqNb>1</ElctrncSeqNb>
      <Acct>
        <Id><IBAN>DE89370400440532013000</IBAN></Id>
        <Ccy>EUR</Ccy>
      </Acct>
      <Bal>
        <Tp><CdOrPrtry><Cd>OPBD</Cd></CdOrPrtry></Tp>
        <Amt Ccy="EUR">1000.00</Amt>
        <CdtDbtInd>CRDT</CdtDbtInd>
        <Dt><Dt>2024-01-14</Dt></Dt>
      </Bal>
      <Bal>
        <Tp><CdOrPrtry><Cd>CLBD</Cd></CdOrPrtry></Tp>
        <Amt Ccy="EUR">1999.50</Amt>
        <CdtDbtInd>CRDT</CdtDbtInd>
        <Dt><Dt>2024-01-16</Dt></Dt>
      </Bal>
      <Ntry>
        <Amt Ccy="EUR">1250.00</Amt>
        <CdtDbtInd>CRDT</CdtDbtInd>
        <Sts>BOOK</Sts>
        <BookgDt><Dt>2024-01-15</Dt></BookgDt>
        <ValDt><Dt>2024-01-15</Dt></ValDt>
        <AcctSvcrRef>BREF-1</AcctSvcrRef>
        <NtryDtls>
          <TxDtls>
            <Refs><EndToEndId>INV-4711</EndToEndId></Refs>
            <RltdPties><Dbtr><Nm>ACME GmbH</Nm></Dbtr></RltdPties>
            <RmtInf><Ustrd>Invoice 4711</Ustrd></RmtInf>
          </TxDtls>
        </NtryDtls>
      </Ntry>
      <Ntry>
        <Amt Ccy="EUR">250.50</Amt>
        <CdtDbtInd>DBIT</CdtDbtInd>
        <Sts>BOOK</Sts>
        <BookgDt><Dt>2024-01-16</Dt></BookgDt>
        <ValDt><Dt>2024-01-16</Dt></ValDt>
        <AcctSvcrRef>BATCH-9</AcctSvcrRef>
        <NtryDtls>
          <Btch><NbOfTxs>2</NbOfTxs></Btch>
          <TxDtls>
            <Refs><AcctSvcrRef>BREF-2</AcctSvcrRef><EndToEndId>NOTPROVIDED</EndToEndId></Refs>
            <AmtDtls><TxAmt><Amt Ccy="EUR">200.00</Amt></TxAmt></AmtDtls>
            <RmtInf><Ustrd>Salary A</Ustrd></RmtInf>
          </TxDtls>
          <TxDtls>
            <Refs><AcctSvcrRef>BREF-3</AcctSvcrRef><EndToEndId>E2E-3</EndToEndId></Refs>
            <AmtDtls><TxAmt><Amt Ccy="EUR">50.50</Amt></TxAmt></AmtDtls>
            <RmtInf><Ustrd>Salary B</Ustrd></RmtInf>
          </TxDtls>
        </NtryDtls>
      </Ntry>
    </Stmt>
  </BkToCstmrStmt>
</Document>
"""


SAMPLE_CSV = """\
Account,Booking Date,Value Date,Amount,Currency,Bank Reference,Customer Reference,Description,Balance
DE89370400440532013000,2024-01-15,2024-01-15,1250.00,EUR,BREF-1,INV-4711,Invoice 4711,2250.00
DE89370400440532013000,2024-01-16,2024-01-16,-250.50,EUR,BREF-2,,Card payment,1999.50
"""




# =============================================================================
# Canonical builders
# =============================================================================


def make_transaction(
    amount: str = "100.00",
    day: date = date(2024, 1, 15),
    *,
    currency: str = "EUR",
    bank_reference: str | None = None,
    customer_reference: str | None = None,
    narrative: tuple[str, ...] = (),
    extensions: dict | None = None,
) -> Transaction:
    return Transaction(
        booking_date=day,
        value_date=day,
        amount=Decimal(amount),
        currency=currency,
        bank_reference=bank_reference,
        customer_reference=customer_reference,
        narrative=narrative,
        extensions=extensions or {},
    )


def make_statement(
    transactions: tuple[Transaction, ...] = (),
    *,
    opening: str = "1000.00",
    currency: str = "EUR",
    statement_id: str = "STMT-1",
    identifier: str = IBAN,
    bic: str | None = None,
    opening_date: date = date(2024, 1, 14),
    closing_date: date = date(2024, 1, 31),
    extensions: dict | None = None,
) -> Statement:
    opening_amount = Decimal(opening)
    closing_amount = opening_amount + sum((t.amount for t in transactions), Decimal("0"))
    return Statement(
        account=Account(identifier=identifier, currency=currency, bic=bic),
        statement_id=statement_id,
        opening=Balance.of(opening_amount, currency, opening_date, BalanceKind.OPENING),
        closing=Balance.of(closing_amount, currency, closing_date, BalanceKind.CLOSING),
        transactions=transactions,
        extensions=extensions or {},
    )
