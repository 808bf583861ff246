"""
Reconciliation Engine

Pairs matched bank rows with unconfirmed ledger entries of the same client
and classifies each pair as verified, discrepancy or new.
"""
from dataclasses import replace
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Set

from bank_recon.common.logging_config import get_logger
from bank_recon.common.models import (
    ExistingTransaction,
    MatchStatus,
    ParsedTransaction,
    Reconciliation,
    ReconciliationType,
)
from bank_recon.common.settings import ImportSettings

logger = get_logger(__name__)

EXACT = Decimal('0.01')


class Reconciler:
    def __init__(self, existing: Sequence[ExistingTransaction], settings: Optional[ImportSettings] = None):
        self.settings = settings or ImportSettings()
        self.candidates = [e for e in existing if e.is_unconfirmed]

    def _in_window(self, bank_date, ledger_date) -> bool:
        if abs((bank_date - ledger_date).days) <= self.settings.date_tolerance_days:
            return True
        return self.settings.same_month_window and \
            (bank_date.year, bank_date.month) == (ledger_date.year, ledger_date.month)

    def _within_tolerance(self, bank_amount: Decimal, ledger_amount: Decimal) -> bool:
        top = max(bank_amount, ledger_amount)
        if top <= 0:
            return bank_amount == ledger_amount
        return abs(bank_amount - ledger_amount) / top <= self.settings.amount_tolerance

    def find_candidate(self, txn: ParsedTransaction,
                       claimed: Optional[Set[str]] = None) -> Optional[ExistingTransaction]:
        """
        Closest qualifying ledger entry: smallest amount difference, then
        closest date, then smallest id.
        """
        claimed = claimed or set()
        qualifying = [
            e for e in self.candidates
            if e.id not in claimed
            and e.client_id == txn.matched_client_id
            and e.is_income == txn.is_income
            and self._in_window(txn.date, e.date)
            and self._within_tolerance(txn.amount, Decimal(e.amount))
        ]
        if not qualifying:
            return None
        return min(
            qualifying,
            key=lambda e: (abs(txn.amount - Decimal(e.amount)), abs((txn.date - e.date).days), e.id),
        )

    def reconcile(self, txn: ParsedTransaction, claimed: Optional[Set[str]] = None) -> ParsedTransaction:
        if txn.match_status != MatchStatus.MATCHED:
            return replace(txn, reconciliation=None)

        entry = self.find_candidate(txn, claimed)
        if entry is None:
            return replace(txn, reconciliation=Reconciliation(type=ReconciliationType.NEW))

        if claimed is not None:
            claimed.add(entry.id)
        differs = abs(txn.amount - Decimal(entry.amount)) >= EXACT
        if differs:
            logger.info(
                "Amount discrepancy.",
                line=txn.line_number,
                client_id=txn.matched_client_id,
                bank_amount=txn.amount,
                ledger_amount=entry.amount,
                existing_id=entry.id,
            )
        return replace(txn, reconciliation=Reconciliation(
            type=ReconciliationType.DISCREPANCY if differs else ReconciliationType.VERIFIED,
            amount_differs=differs,
            existing_transaction=entry,
        ))

    def reconcile_all(self, transactions: Iterable[ParsedTransaction]) -> List[ParsedTransaction]:
        """File order; a ledger entry is claimed by at most one bank row."""
        claimed: Set[str] = set()
        return [self.reconcile(t, claimed) for t in transactions]
