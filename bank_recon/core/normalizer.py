"""
Transaction Normalizer

Turns the intermediate records of a line grammar into canonical
ParsedTransaction values: direction, counterparty side, display name and
matching key, payment type and the settlement amount in base currency.
"""
import re
from decimal import Decimal, ROUND_HALF_EVEN
from typing import Dict, Iterable, List, Optional, Tuple

from bank_recon.common.logging_config import get_logger
from bank_recon.common.models import (
    CompanyInfo,
    ParsedTransaction,
    PaymentType,
    RawStatementRecord,
    RecordParseWarning,
)
from bank_recon.common.settings import ImportSettings
from .names import (
    bank_name_to_title_case,
    extract_bin,
    normalize_for_comparison,
)

logger = get_logger(__name__)

CENT = Decimal('0.01')

# Ordered: the first group with a hit decides
PAYMENT_KEYWORDS = (
    (PaymentType.REFUND, ('возврат', 'refund', 'return')),
    (PaymentType.PREPAYMENT, ('предоплат', 'аванс', 'advance', 'prepay')),
    (PaymentType.POSTPAYMENT, ('постоплат', 'окончательн', 'final', 'closing')),
    (PaymentType.RETAINER, ('абон', 'ретейнер', 'ежемес', 'retainer', 'subscription', 'monthly')),
)


def to_base_amount(amount: Decimal, rate: Decimal) -> Decimal:
    """amount x rate rounded half-to-even to the smallest currency unit."""
    return (amount * rate).quantize(CENT, rounding=ROUND_HALF_EVEN)


def classify_payment_type(knp_code: str, description: str,
                          knp_table: Optional[Dict[str, PaymentType]] = None) -> PaymentType:
    """
    KNP code table first, then ordered keyword heuristics over the
    purpose text. Full payment when nothing matches.
    """
    code = (knp_code or '').strip()
    if code and knp_table and code in knp_table:
        return knp_table[code]

    text = (description or '').lower()
    for payment_type, keywords in PAYMENT_KEYWORDS:
        if any(k in text for k in keywords):
            return payment_type
    return PaymentType.FULL


def _account(value: str) -> str:
    return re.sub(r"\s", '', value or '').upper()


def _digits(value: str) -> str:
    return re.sub(r"\D", '', value or '')


class TransactionNormalizer:
    """
    Stateless per record; ``own_account`` comes from the statement header
    and stands in for the company identity when none is configured.
    """

    def __init__(self, settings: Optional[ImportSettings] = None,
                 company: Optional[CompanyInfo] = None, own_account: str = ''):
        self.settings = settings or ImportSettings()
        self.base_currency = self.settings.base_currency.upper()

        self.own_bins = set()
        self.own_accounts = set()
        if company and (company.bin or company.iban):
            if _digits(company.bin):
                self.own_bins.add(_digits(company.bin))
            if company.iban:
                self.own_accounts.add(_account(company.iban))
        elif own_account:
            self.own_accounts.add(_account(own_account))

    @property
    def knows_self(self) -> bool:
        return bool(self.own_bins or self.own_accounts)

    def _is_self(self, bin_value: str, account: str) -> bool:
        return (bool(bin_value) and bin_value in self.own_bins) or \
               (bool(account) and _account(account) in self.own_accounts)

    def _resolve_side(self, record: RawStatementRecord) -> Optional[Tuple[bool, str, str]]:
        """(is_income, counterparty name, counterparty BIN), or None when undecidable."""
        has_parties = any((record.payer_name, record.payer_bin, record.payer_account,
                           record.payee_name, record.payee_bin, record.payee_account))
        if not has_parties:
            if record.is_income is None:
                return None
            return record.is_income, record.counterparty_name, record.counterparty_bin

        payer = (record.payer_name, record.payer_bin)
        payee = (record.payee_name, record.payee_bin)

        if record.is_income is not None:
            name, bin_value = payer if record.is_income else payee
            return record.is_income, name, bin_value

        if not self.knows_self:
            # No identity to compare against: read the line as incoming
            return True, record.payer_name, record.payer_bin
        if self._is_self(record.payer_bin, record.payer_account):
            return False, record.payee_name, record.payee_bin
        if self._is_self(record.payee_bin, record.payee_account):
            return True, record.payer_name, record.payer_bin
        return None

    def normalize(self, record: RawStatementRecord) -> ParsedTransaction:
        """
        Raises:
            ValueError: when the direction cannot be determined
        """
        side = self._resolve_side(record)
        if side is None:
            raise ValueError("direction undetermined: statement owner is neither payer nor payee")
        is_income, raw_name, raw_bin = side

        raw_name = raw_name or ''
        client_bin = _digits(raw_bin) or extract_bin(raw_name)

        currency = (record.currency or self.base_currency).upper()
        amount_original = None
        exchange_rate = None
        amount = record.amount.quantize(CENT, rounding=ROUND_HALF_EVEN)
        if currency != self.base_currency:
            amount_original = record.amount
            if record.exchange_rate:
                exchange_rate = record.exchange_rate
                amount = to_base_amount(record.amount, record.exchange_rate)

        return ParsedTransaction(
            date=record.date,
            is_income=is_income,
            amount=amount,
            currency=currency,
            client_name_raw=raw_name,
            client_name=bank_name_to_title_case(raw_name) if raw_name.strip() else '',
            name_key=normalize_for_comparison(raw_name),
            client_bin=client_bin,
            amount_original=amount_original,
            exchange_rate=exchange_rate,
            document_number=record.document_number.strip(),
            description=' '.join(record.description.split()),
            knp_code=record.knp_code.strip(),
            payment_type=classify_payment_type(record.knp_code, record.description,
                                               self.settings.knp_payment_types),
            line_number=record.line_number,
        )

    def normalize_all(self, records: Iterable[RawStatementRecord]
                      ) -> Tuple[List[ParsedTransaction], List[RecordParseWarning]]:
        transactions, warnings = [], []
        for record in records:
            try:
                transactions.append(self.normalize(record))
            except ValueError as e:
                warnings.append(RecordParseWarning(line_number=record.line_number, reason=str(e)))
                logger.warning(f"Record skipped: {e}", line=record.line_number)
        return transactions, warnings
