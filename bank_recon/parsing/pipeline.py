"""
Import Pipeline

Orchestrates one statement import: format detection, line parsing,
normalization, counterparty matching, duplicate detection and
reconciliation. The run is a pure transform of its inputs; nothing is
written anywhere.
"""
from decimal import Decimal
from typing import Iterable, Optional, Sequence, Union

from bank_recon.common.logging_config import get_logger
from bank_recon.common.models import (
    BankCounterpartyAlias,
    Client,
    CompanyInfo,
    ExistingTransaction,
    ImportResult,
    ImportSummary,
    MatchStatus,
    ReconciliationType,
)
from bank_recon.common.settings import ImportSettings
from bank_recon.core.aliases import AliasStore
from bank_recon.core.duplicates import DuplicateDetector
from bank_recon.core.matcher import CounterpartyMatcher
from bank_recon.core.normalizer import TransactionNormalizer
from bank_recon.core.reconciler import Reconciler
from .config.registry import LayoutRegistry
from .detector import detect_format
from .exceptions import UnsupportedFormatError
from .formats import PARSERS

logger = get_logger(__name__)


def summarize(transactions, warnings) -> ImportSummary:
    """Counts per classification plus income / expense totals in base currency."""
    def count(predicate):
        return sum(1 for t in transactions if predicate(t))

    def rec_count(kind):
        return count(lambda t: t.reconciliation is not None and t.reconciliation.type == kind)

    return ImportSummary(
        total=len(transactions),
        matched=count(lambda t: t.match_status == MatchStatus.MATCHED),
        unmatched=count(lambda t: t.match_status == MatchStatus.UNMATCHED),
        duplicates=count(lambda t: t.match_status == MatchStatus.DUPLICATE),
        verified=rec_count(ReconciliationType.VERIFIED),
        discrepancies=rec_count(ReconciliationType.DISCREPANCY),
        new=rec_count(ReconciliationType.NEW),
        parse_warnings=len(warnings),
        unconverted_foreign=count(lambda t: t.is_foreign and t.exchange_rate is None),
        income_total=sum((t.amount for t in transactions if t.is_income), Decimal('0')),
        expense_total=sum((t.amount for t in transactions if not t.is_income), Decimal('0')),
    )


class ImportPipeline:
    """
    Main orchestrator for statement imports.

    Handles:
    - Format detection from file name and content
    - Parsing with the grammar registered for the format
    - Normalization, matching, duplicate flagging, reconciliation
    - Summary counts
    """

    def __init__(self, registry: Optional[LayoutRegistry] = None,
                 settings: Optional[ImportSettings] = None):
        """
        Args:
            registry: LayoutRegistry with the statement layouts
            settings: Tolerances and tables; defaults when omitted
        """
        self.settings = settings or ImportSettings()
        self.registry = registry or LayoutRegistry(self.settings.layouts_dir)

    def process(self,
                file_name: str,
                content: Union[bytes, str],
                clients: Sequence[Client] = (),
                existing: Sequence[ExistingTransaction] = (),
                aliases: Union[AliasStore, Iterable[BankCounterpartyAlias], None] = None,
                company: Optional[CompanyInfo] = None) -> ImportResult:
        """
        Import one statement file.

        Args:
            file_name: Original file name
            content: Raw bytes (or decoded text)
            clients: Known clients
            existing: Ledger entries already recorded
            aliases: Alias store, or a plain list of learned aliases
            company: The organization's own BIN / IBAN

        Returns:
            ImportResult

        Raises:
            UnsupportedFormatError: the file matches no grammar, or the
                grammar could not read a single record from it
        """
        statement_format, layout = detect_format(file_name, content, self.registry)

        parser = PARSERS[statement_format](layout)
        outcome = parser.parse(content, file_name)
        if not outcome.records:
            logger.warning("No records recognized.", file_name=file_name, warnings=len(outcome.warnings))
            raise UnsupportedFormatError("No transactions recognized in the statement", filename=file_name)

        normalizer = TransactionNormalizer(self.settings, company=company, own_account=outcome.own_account)
        transactions, dropped = normalizer.normalize_all(outcome.records)
        warnings = list(outcome.warnings) + dropped

        matcher = CounterpartyMatcher(clients, aliases, fuzzy_names=self.settings.fuzzy_names)
        transactions = matcher.match_all(transactions)
        transactions = DuplicateDetector(existing).flag_all(transactions)
        transactions = Reconciler(existing, self.settings).reconcile_all(transactions)

        warnings.sort(key=lambda w: w.line_number)
        summary = summarize(transactions, warnings)
        logger.info(
            "Statement imported.",
            file_name=file_name,
            format=statement_format.value,
            total=summary.total,
            matched=summary.matched,
            duplicates=summary.duplicates,
            verified=summary.verified,
            discrepancies=summary.discrepancies,
            parse_warnings=summary.parse_warnings,
        )
        return ImportResult(
            file_name=file_name,
            format=statement_format,
            transactions=tuple(transactions),
            summary=summary,
            warnings=tuple(warnings),
        )
