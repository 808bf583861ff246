"""
Unit Tests for the Duplicate Detector.
"""
from datetime import date
from decimal import Decimal

from bank_recon.common.models import (
    ExistingTransaction,
    LedgerStatus,
    MatchSource,
    MatchStatus,
    ParsedTransaction,
    Reconciliation,
    ReconciliationType,
)
from bank_recon.core.duplicates import DuplicateDetector, document_numbers, is_bank_sourced


def matched_row(**overrides):
    fields = dict(
        date=date(2026, 2, 5),
        is_income=True,
        amount=Decimal("150000.00"),
        currency="KZT",
        client_name_raw='ТОО "Ромашка"',
        client_name='ТОО "Ромашка"',
        name_key="ромашка",
        client_bin="123456789012",
        match_status=MatchStatus.MATCHED,
        match_source=MatchSource.BIN,
        matched_client_id="c1",
        reconciliation=Reconciliation(type=ReconciliationType.NEW),
    )
    fields.update(overrides)
    return ParsedTransaction(**fields)


def ledger_entry(**overrides):
    fields = dict(id="e1", client_id="c1", amount=Decimal("150000"), date=date(2026, 2, 5),
                  is_income=True)
    fields.update(overrides)
    return ExistingTransaction(**fields)


# ============================================================================
# TEST: DOCUMENT NUMBERS
# ============================================================================

class TestDocumentNumber:

    def test_tag_in_description(self):
        existing = [ledger_entry(description="Оплата [KNP:710] [DOC:101] [IN]")]
        txn = DuplicateDetector(existing).flag(matched_row(document_number="101"))

        assert txn.match_status == MatchStatus.DUPLICATE
        assert txn.duplicate_of == "e1"
        assert txn.matched_client_id is None
        assert txn.match_source == MatchSource.NONE
        assert txn.reconciliation is None

    def test_stored_document_field(self):
        existing = [ledger_entry(bank_document_number="101")]
        assert DuplicateDetector(existing).find(matched_row(document_number="101")).id == "e1"

    def test_different_number_is_not_a_duplicate(self):
        # A document number never falls back to the amount comparison
        existing = [ledger_entry(description="[DOC:100] [IN]")]
        txn = DuplicateDetector(existing).flag(matched_row(document_number="101"))
        assert txn.match_status == MatchStatus.MATCHED

    def test_first_entry_by_id_wins(self):
        existing = [ledger_entry(id="e9", description="[DOC:7]"), ledger_entry(id="e2", description="[DOC:7]")]
        assert DuplicateDetector(existing).find(matched_row(document_number="7")).id == "e2"

    def test_document_numbers(self):
        entry = ledger_entry(description="[DOC:1] text [DOC: 2 ]", bank_document_number="3")
        assert document_numbers(entry) == {"1", "2", "3"}


# ============================================================================
# TEST: NO DOCUMENT NUMBER
# ============================================================================

class TestComposite:

    def test_bank_name_date_amount(self):
        existing = [ledger_entry(reconciliation_status=LedgerStatus.BANK_IMPORT,
                                 bank_client_name="ТОО РОМАШКА")]
        txn = DuplicateDetector(existing).flag(matched_row())
        assert txn.duplicate_of == "e1"

    def test_client_id_when_no_bank_name(self):
        existing = [ledger_entry(description="Оплата [IN]")]
        assert DuplicateDetector(existing).find(matched_row()) is not None

    def test_manual_entries_are_never_duplicates(self):
        existing = [ledger_entry(reconciliation_status=LedgerStatus.MANUAL, description="Оплата")]
        assert DuplicateDetector(existing).find(matched_row()) is None

    def test_amount_direction_and_date_must_agree(self):
        existing = [ledger_entry(reconciliation_status=LedgerStatus.BANK_IMPORT)]
        detector = DuplicateDetector(existing)

        assert detector.find(matched_row(amount=Decimal("150000.01"))) is None
        assert detector.find(matched_row(is_income=False)) is None
        assert detector.find(matched_row(date=date(2026, 2, 6))) is None

    def test_reconciled_entry_compares_bank_date(self):
        existing = [ledger_entry(date=date(2026, 2, 4), bank_date=date(2026, 2, 5),
                                 reconciliation_status=LedgerStatus.VERIFIED, bank_client_name='ТОО "Ромашка"')]
        detector = DuplicateDetector(existing)

        assert detector.find(matched_row()).id == "e1"
        assert detector.find(matched_row(date=date(2026, 2, 4))) is None

    def test_unmatched_row_without_bank_name(self):
        existing = [ledger_entry(reconciliation_status=LedgerStatus.BANK_IMPORT)]
        row = matched_row(match_status=MatchStatus.UNMATCHED, matched_client_id=None)
        assert DuplicateDetector(existing).find(row) is None

    def test_is_bank_sourced(self):
        assert is_bank_sourced(ledger_entry(reconciliation_status=LedgerStatus.VERIFIED))
        assert is_bank_sourced(ledger_entry(description="x [OUT]"))
        assert not is_bank_sourced(ledger_entry(description="Аванс"))
