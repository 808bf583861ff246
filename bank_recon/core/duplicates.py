"""
Duplicate Detector

Flags bank rows that were already committed by an earlier import of the
same (or an overlapping) statement.
"""
import re
from dataclasses import replace
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from bank_recon.common.logging_config import get_logger
from bank_recon.common.models import (
    ExistingTransaction,
    LedgerStatus,
    MatchSource,
    MatchStatus,
    ParsedTransaction,
)
from .names import normalize_for_comparison

logger = get_logger(__name__)

DOC_TAG = re.compile(r"\[DOC:([^\]]*)\]")
# Any of the markers an import commit appends to a description
BANK_TAG = re.compile(r"\[(?:DOC:[^\]]*|KNP:[^\]]*|IN|OUT)\]")

BANK_STATUSES = (LedgerStatus.BANK_IMPORT, LedgerStatus.VERIFIED, LedgerStatus.DISCREPANCY)


def document_numbers(entry: ExistingTransaction) -> set:
    """Every document number an existing entry is known under."""
    numbers = {m.strip() for m in DOC_TAG.findall(entry.description or '') if m.strip()}
    if entry.bank_document_number and entry.bank_document_number.strip():
        numbers.add(entry.bank_document_number.strip())
    return numbers


def is_bank_sourced(entry: ExistingTransaction) -> bool:
    return entry.reconciliation_status in BANK_STATUSES or bool(BANK_TAG.search(entry.description or ''))


class DuplicateDetector:
    def __init__(self, existing: Sequence[ExistingTransaction]):
        self.existing = sorted(existing, key=lambda e: e.id)
        self._by_doc = {}
        for entry in self.existing:
            for number in document_numbers(entry):
                self._by_doc.setdefault(number, entry)
        self._bank_rows = [e for e in self.existing if is_bank_sourced(e)]

    def find(self, txn: ParsedTransaction) -> Optional[ExistingTransaction]:
        """Existing entry ``txn`` repeats, or None."""
        doc = txn.document_number.strip()
        if doc:
            return self._by_doc.get(doc)

        for entry in self._bank_rows:
            # Reconciled entries keep the manager's date; the bank's is stored beside it
            if (entry.bank_date or entry.date) != txn.date or entry.is_income != txn.is_income:
                continue
            if abs(Decimal(entry.amount) - txn.amount) >= Decimal('0.01'):
                continue
            if entry.bank_client_name:
                if normalize_for_comparison(entry.bank_client_name) == txn.name_key:
                    return entry
            elif txn.matched_client_id and entry.client_id == txn.matched_client_id:
                return entry
        return None

    def flag(self, txn: ParsedTransaction) -> ParsedTransaction:
        original = self.find(txn)
        if original is None:
            return txn
        logger.info(
            "Duplicate bank row.",
            line=txn.line_number,
            document_number=txn.document_number or None,
            duplicate_of=original.id,
        )
        return replace(
            txn,
            match_status=MatchStatus.DUPLICATE,
            match_source=MatchSource.NONE,
            matched_client_id=None,
            duplicate_of=original.id,
            reconciliation=None,
        )

    def flag_all(self, transactions: Iterable[ParsedTransaction]) -> List[ParsedTransaction]:
        return [self.flag(t) for t in transactions]
