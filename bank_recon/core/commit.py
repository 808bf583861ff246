"""
Commit planning

Turns a reviewed ImportResult (row selection plus per-row client
overrides) into the writes the caller applies to its stores: new ledger
entries, updates of reconciled entries, learned aliases and BIN backfills.
Nothing here writes anything except ``apply_alias_writes``.
"""
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from bank_recon.common.logging_config import get_logger
from bank_recon.common.models import (
    BankCounterpartyAlias,
    Client,
    ImportResult,
    LedgerStatus,
    MatchSource,
    MatchStatus,
    ParsedTransaction,
    PaymentType,
    ReconciliationType,
)
from .aliases import AliasStore, alias_key

logger = get_logger(__name__)


@dataclass(frozen=True)
class LedgerEntry:
    client_id: str
    amount: Decimal
    date: date
    is_income: bool
    payment_type: PaymentType
    description: str
    bank_document_number: str = ''
    bank_amount: Decimal = Decimal('0')
    bank_client_name: str = ''
    bank_bin: str = ''
    reconciliation_status: LedgerStatus = LedgerStatus.BANK_IMPORT


@dataclass(frozen=True)
class ReconciliationUpdate:
    """Applied to an existing entry: the bank amount is displayed, the manager's kept."""
    existing_id: str
    amount: Decimal
    original_amount: Decimal
    reconciliation_status: LedgerStatus
    amount_discrepancy: bool
    bank_document_number: str = ''
    bank_client_name: str = ''
    bank_date: Optional[date] = None
    description: str = ''


@dataclass(frozen=True)
class AliasWrite:
    bank_name: str
    bank_bin: str
    client_id: str


@dataclass
class CommitPlan:
    entries: List[LedgerEntry] = field(default_factory=list)
    reconciliation_updates: List[ReconciliationUpdate] = field(default_factory=list)
    alias_writes: List[AliasWrite] = field(default_factory=list)
    bin_backfills: List[Tuple[str, str]] = field(default_factory=list)
    skipped: int = 0


def _fmt(value: Decimal) -> str:
    return format(value.normalize(), 'f')


def bank_tags(txn: ParsedTransaction) -> List[str]:
    """The tags later imports rely on: ``[100 USD x 450.5] [KNP:119] [DOC:42] [IN]``."""
    parts = []
    if txn.is_foreign and txn.exchange_rate:
        parts.append(f"[{_fmt(txn.amount_original)} {txn.currency} x {_fmt(txn.exchange_rate)}]")
    if txn.knp_code:
        parts.append(f"[KNP:{txn.knp_code}]")
    if txn.document_number:
        parts.append(f"[DOC:{txn.document_number}]")
    parts.append('[IN]' if txn.is_income else '[OUT]')
    return parts


def commit_description(txn: ParsedTransaction) -> str:
    """Purpose text followed by the bank tags."""
    return ' '.join(p for p in [txn.description, *bank_tags(txn)] if p).strip()


def tagged_description(existing: str, txn: ParsedTransaction) -> str:
    """A manager's description with the bank tags it does not carry yet appended."""
    existing = existing or ''
    missing = [tag for tag in bank_tags(txn) if tag not in existing]
    return ' '.join(p for p in [existing.strip(), *missing] if p)


def default_selection(result: ImportResult) -> Set[int]:
    """Every row except flagged duplicates."""
    return {i for i, t in enumerate(result.transactions) if t.match_status != MatchStatus.DUPLICATE}


def plan_commit(result: ImportResult,
                selected: Optional[Iterable[int]] = None,
                overrides: Optional[Mapping[int, str]] = None,
                clients: Sequence[Client] = (),
                include_duplicates: bool = False) -> CommitPlan:
    """
    Build the writes for the selected rows.

    Args:
        result: The reviewed import
        selected: Row indexes to commit; ``default_selection`` when None
        overrides: Row index -> client id chosen by the reviewer
        clients: Known clients (for BIN backfills)
        include_duplicates: Commit selected duplicates too

    Returns:
        CommitPlan
    """
    selected = default_selection(result) if selected is None else set(selected)
    overrides = dict(overrides or {})
    by_id: Dict[str, Client] = {c.id: c for c in clients}

    plan = CommitPlan()
    alias_keys = set()
    backfilled = set()

    for i, txn in enumerate(result.transactions):
        if i not in selected:
            plan.skipped += 1
            continue
        if txn.match_status == MatchStatus.DUPLICATE and not include_duplicates:
            plan.skipped += 1
            continue

        override = overrides.get(i)
        client_id = override or txn.matched_client_id
        if not client_id:
            plan.skipped += 1
            continue

        rec = txn.reconciliation
        linked = (
            rec is not None
            and rec.type in (ReconciliationType.VERIFIED, ReconciliationType.DISCREPANCY)
            and rec.existing_transaction is not None
            and client_id == txn.matched_client_id
        )
        if linked:
            existing = rec.existing_transaction
            plan.reconciliation_updates.append(ReconciliationUpdate(
                existing_id=existing.id,
                amount=txn.amount,
                original_amount=Decimal(existing.amount),
                reconciliation_status=(LedgerStatus.DISCREPANCY if rec.amount_differs
                                       else LedgerStatus.VERIFIED),
                amount_discrepancy=rec.amount_differs,
                bank_document_number=txn.document_number,
                bank_client_name=txn.client_name_raw,
                bank_date=txn.date,
                description=tagged_description(existing.description, txn),
            ))
        else:
            plan.entries.append(LedgerEntry(
                client_id=client_id,
                amount=txn.amount,
                date=txn.date,
                is_income=txn.is_income,
                payment_type=txn.payment_type,
                description=commit_description(txn),
                bank_document_number=txn.document_number,
                bank_amount=txn.amount,
                bank_client_name=txn.client_name_raw,
                bank_bin=txn.client_bin,
            ))

        learned = override or txn.match_source in (MatchSource.NAME, MatchSource.ALIAS)
        if learned and (txn.client_name_raw.strip() or txn.client_bin):
            key = alias_key(txn.client_name_raw, txn.client_bin)
            if key not in alias_keys:
                alias_keys.add(key)
                plan.alias_writes.append(AliasWrite(txn.client_name_raw, txn.client_bin, client_id))

        client = by_id.get(client_id)
        if client is not None and not client.bin and txn.client_bin and client_id not in backfilled:
            backfilled.add(client_id)
            plan.bin_backfills.append((client_id, txn.client_bin))

    logger.info(
        "Commit planned.",
        file_name=result.file_name,
        entries=len(plan.entries),
        reconciliation_updates=len(plan.reconciliation_updates),
        alias_writes=len(plan.alias_writes),
        bin_backfills=len(plan.bin_backfills),
        skipped=plan.skipped,
    )
    return plan


def apply_alias_writes(store: AliasStore, writes: Sequence[AliasWrite],
                       max_workers: int = 4) -> List[BankCounterpartyAlias]:
    """Upsert aliases with bounded parallelism; failures propagate."""
    if not writes:
        return []
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(store.put, w.bank_name, w.bank_bin, w.client_id) for w in writes]
        return [f.result() for f in futures]
