"""
Canonical value types shared by the parser, the matching stages and the API.

Every type here is a frozen dataclass: stages derive new values with
``dataclasses.replace`` and never mutate what they were given.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple


class StatementFormat(str, Enum):
    NATIONAL_TXT = 'NATIONAL_TXT'  # 1CClientBankExchange text export
    DELIMITED = 'DELIMITED'        # CSV / TSV / XLS(X) export


class PaymentType(str, Enum):
    PREPAYMENT = 'Prepayment'
    FULL = 'Full Payment'
    POSTPAYMENT = 'Postpayment'
    RETAINER = 'Monthly Retainer'
    REFUND = 'Refund'


class MatchStatus(str, Enum):
    MATCHED = 'matched'
    UNMATCHED = 'unmatched'
    DUPLICATE = 'duplicate'


class MatchSource(str, Enum):
    BIN = 'bin'
    ALIAS = 'alias'
    NAME = 'name'
    NONE = 'none'


class ReconciliationType(str, Enum):
    VERIFIED = 'verified'
    DISCREPANCY = 'discrepancy'
    NEW = 'new'


class LedgerStatus(str, Enum):
    """Reconciliation state of an entry already stored in the ledger."""
    MANUAL = 'manual'
    VERIFIED = 'verified'
    DISCREPANCY = 'discrepancy'
    BANK_IMPORT = 'bank_import'


@dataclass(frozen=True)
class Client:
    id: str
    name: str = ''
    company: str = ''
    bin: str = ''
    legal_name: str = ''

    @property
    def name_targets(self) -> Tuple[str, ...]:
        return tuple(t for t in (self.company, self.name, self.legal_name) if t)


@dataclass(frozen=True)
class CompanyInfo:
    """The organization's own identity, used to tell "self" from counterparty."""
    bin: str = ''
    iban: str = ''


@dataclass(frozen=True)
class BankCounterpartyAlias:
    bank_name: str
    bank_bin: str
    client_id: str


@dataclass(frozen=True)
class ExistingTransaction:
    """A ledger entry already recorded by a manager or a previous import."""
    id: str
    client_id: str
    amount: Decimal
    date: date
    is_income: bool = True
    description: str = ''
    reconciliation_status: Optional[LedgerStatus] = None
    bank_document_number: str = ''
    bank_client_name: str = ''
    bank_date: Optional[date] = None

    @property
    def is_unconfirmed(self) -> bool:
        return self.reconciliation_status not in (LedgerStatus.VERIFIED, LedgerStatus.BANK_IMPORT)


@dataclass(frozen=True)
class Reconciliation:
    type: ReconciliationType
    amount_differs: bool = False
    existing_transaction: Optional[ExistingTransaction] = None


@dataclass(frozen=True)
class RawStatementRecord:
    """
    Intermediate field set produced by a line grammar.

    ``is_income`` is None when the format does not encode direction; the
    normalizer then decides it from the payer/payee identifiers.
    ``amount`` is the unsigned amount in ``currency``.
    """
    line_number: int
    date: date
    amount: Decimal
    is_income: Optional[bool] = None
    currency: str = ''
    exchange_rate: Optional[Decimal] = None
    counterparty_name: str = ''
    counterparty_bin: str = ''
    payer_name: str = ''
    payer_bin: str = ''
    payer_account: str = ''
    payee_name: str = ''
    payee_bin: str = ''
    payee_account: str = ''
    description: str = ''
    document_number: str = ''
    knp_code: str = ''


@dataclass(frozen=True)
class RecordParseWarning:
    line_number: int
    reason: str


@dataclass(frozen=True)
class ParsedTransaction:
    """Canonical bank transaction produced by one import run."""
    date: date
    is_income: bool
    amount: Decimal
    currency: str
    client_name_raw: str
    client_name: str
    name_key: str
    client_bin: str = ''
    amount_original: Optional[Decimal] = None
    exchange_rate: Optional[Decimal] = None
    document_number: str = ''
    description: str = ''
    knp_code: str = ''
    payment_type: PaymentType = PaymentType.FULL
    match_status: MatchStatus = MatchStatus.UNMATCHED
    match_source: MatchSource = MatchSource.NONE
    matched_client_id: Optional[str] = None
    duplicate_of: Optional[str] = None
    reconciliation: Optional[Reconciliation] = None
    line_number: int = 0

    @property
    def is_foreign(self) -> bool:
        return self.amount_original is not None


@dataclass(frozen=True)
class ImportSummary:
    total: int = 0
    matched: int = 0
    unmatched: int = 0
    duplicates: int = 0
    verified: int = 0
    discrepancies: int = 0
    new: int = 0
    parse_warnings: int = 0
    unconverted_foreign: int = 0
    income_total: Decimal = Decimal('0')
    expense_total: Decimal = Decimal('0')


@dataclass(frozen=True)
class ImportResult:
    file_name: str
    format: StatementFormat
    transactions: Tuple[ParsedTransaction, ...]
    summary: ImportSummary
    warnings: Tuple[RecordParseWarning, ...] = field(default_factory=tuple)
