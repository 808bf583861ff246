"""
Counterparty Matcher

Resolves a normalized transaction to a known client. Tiers are tried in
order and the first hit wins: BIN, learned alias, name.
"""
import re
from dataclasses import replace
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from bank_recon.common.logging_config import get_logger
from bank_recon.common.models import (
    BankCounterpartyAlias,
    Client,
    MatchSource,
    MatchStatus,
    ParsedTransaction,
)
from .aliases import AliasStore, InMemoryAliasStore
from .names import normalize_for_comparison

logger = get_logger(__name__)


def _digits(value: str) -> str:
    return re.sub(r"\D", '', value or '')


def _partial_name_hit(key: str, target: str) -> bool:
    """Shared whole word (3+ chars), or containment at a length ratio of 0.6 or more."""
    shorter, longer = (target, key) if len(target) <= len(key) else (key, target)
    if len(shorter) < 5:
        return False
    ratio = len(shorter) / len(longer)
    if ratio < 0.4:
        return False
    key_words = key.split()
    target_words = target.split()
    if any(len(w) >= 3 and w in key_words for w in target_words):
        return True
    return ratio >= 0.6 and shorter in longer


class CounterpartyMatcher:
    """
    Matches each transaction independently against the full client list;
    results do not depend on the order of the input.
    """

    def __init__(self, clients: Sequence[Client],
                 aliases: Union[AliasStore, Iterable[BankCounterpartyAlias], None] = None,
                 fuzzy_names: bool = False):
        # Sorted by id so ties always resolve to the smallest id
        self.clients = sorted(clients, key=lambda c: c.id)
        self.client_ids = {c.id for c in self.clients}
        if isinstance(aliases, AliasStore):
            self.aliases = aliases
        else:
            self.aliases = InMemoryAliasStore(aliases or ())
        self.fuzzy_names = fuzzy_names

        self._name_keys: List[Tuple[Client, Tuple[str, ...]]] = [
            (c, tuple(k for k in (normalize_for_comparison(t) for t in c.name_targets) if k))
            for c in self.clients
        ]

    def by_bin(self, bin_value: str) -> Optional[Client]:
        digits = _digits(bin_value)
        if not digits:
            return None
        return next((c for c in self.clients if _digits(c.bin) == digits), None)

    def by_alias(self, bank_name: str, bin_value: str) -> Optional[str]:
        client_id = self.aliases.get(bank_name, bin_value)
        if client_id and client_id not in self.client_ids:
            logger.debug("Alias points to an unknown client.", client_id=client_id)
            return None
        return client_id

    def _prefer_consistent(self, candidates: List[Client], bin_value: str) -> Optional[Client]:
        if not candidates:
            return None
        digits = _digits(bin_value)
        if digits:
            consistent = [c for c in candidates if not _digits(c.bin) or _digits(c.bin) == digits]
            if consistent:
                return consistent[0]
        return candidates[0]

    def by_name(self, name_key: str, bin_value: str = '') -> Optional[Client]:
        if not name_key:
            return None
        exact = [c for c, keys in self._name_keys if name_key in keys]
        if len(exact) > 1:
            logger.debug("Ambiguous name match.", name_key=name_key, candidates=[c.id for c in exact])
        hit = self._prefer_consistent(exact, bin_value)
        if hit or not self.fuzzy_names:
            return hit

        partial = [c for c, keys in self._name_keys if any(_partial_name_hit(name_key, k) for k in keys)]
        return self._prefer_consistent(partial, bin_value)

    def match(self, txn: ParsedTransaction) -> ParsedTransaction:
        client = self.by_bin(txn.client_bin)
        if client:
            return self._matched(txn, client.id, MatchSource.BIN)

        client_id = self.by_alias(txn.client_name_raw, txn.client_bin)
        if client_id:
            return self._matched(txn, client_id, MatchSource.ALIAS)

        client = self.by_name(txn.name_key, txn.client_bin)
        if client:
            return self._matched(txn, client.id, MatchSource.NAME)

        return replace(txn, match_status=MatchStatus.UNMATCHED, match_source=MatchSource.NONE,
                       matched_client_id=None)

    def match_all(self, transactions: Iterable[ParsedTransaction]) -> List[ParsedTransaction]:
        return [self.match(t) for t in transactions]

    @staticmethod
    def _matched(txn: ParsedTransaction, client_id: str, source: MatchSource) -> ParsedTransaction:
        return replace(txn, match_status=MatchStatus.MATCHED, match_source=source,
                       matched_client_id=client_id)
