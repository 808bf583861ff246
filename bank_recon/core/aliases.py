"""
Alias Learning Store

Confirmed bank counterparty -> client associations. An alias is keyed by
its bank BIN when it has one, otherwise by the normalized bank name;
``put`` is an upsert, so writing the same alias twice changes nothing.
"""
import json
import os
import threading
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from bank_recon.common.logging_config import get_logger
from bank_recon.common.models import BankCounterpartyAlias
from .names import normalize_for_comparison, sanitize_counterparty_name

logger = get_logger(__name__)


def alias_key(bank_name: str, bank_bin: str) -> str:
    digits = ''.join(ch for ch in (bank_bin or '') if ch.isdigit())
    if digits:
        return f"bin:{digits}"
    return f"name:{normalize_for_comparison(bank_name)}"


class AliasStore(ABC):
    """Interface the matcher reads from and the commit step writes to."""

    @abstractmethod
    def get(self, bank_name: str, bank_bin: str = '') -> Optional[str]:
        """Client id for a bank counterparty: BIN first, then normalized name."""

    @abstractmethod
    def put(self, bank_name: str, bank_bin: str, client_id: str) -> BankCounterpartyAlias:
        """Insert or replace the alias; last confirmation wins."""

    @abstractmethod
    def all(self) -> List[BankCounterpartyAlias]:
        """Every stored alias."""


class InMemoryAliasStore(AliasStore):
    """Dict-backed store; safe to share between request threads."""

    def __init__(self, aliases: Optional[Iterable[BankCounterpartyAlias]] = None):
        self._lock = threading.Lock()
        self._aliases: Dict[str, BankCounterpartyAlias] = {}
        for alias in aliases or ():
            self._store(alias)

    def _store(self, alias: BankCounterpartyAlias) -> BankCounterpartyAlias:
        key = alias_key(alias.bank_name, alias.bank_bin)
        if key == 'name:':
            raise ValueError("alias needs a bank name or a bank BIN")
        self._aliases[key] = alias
        return alias

    def get(self, bank_name: str, bank_bin: str = '') -> Optional[str]:
        with self._lock:
            digits = ''.join(ch for ch in (bank_bin or '') if ch.isdigit())
            if digits:
                hit = self._aliases.get(f"bin:{digits}")
                if hit:
                    return hit.client_id
            name_key = normalize_for_comparison(bank_name)
            if name_key:
                hit = self._aliases.get(f"name:{name_key}")
                if hit:
                    return hit.client_id
                # BIN-keyed aliases still answer a lookup by name
                for alias in self._aliases.values():
                    if normalize_for_comparison(alias.bank_name) == name_key:
                        return alias.client_id
        return None

    def put(self, bank_name: str, bank_bin: str, client_id: str) -> BankCounterpartyAlias:
        alias = BankCounterpartyAlias(
            bank_name=sanitize_counterparty_name(bank_name),
            bank_bin=''.join(ch for ch in (bank_bin or '') if ch.isdigit()),
            client_id=client_id,
        )
        with self._lock:
            stored = self._store(alias)
        logger.debug("Alias stored.", bank_name=alias.bank_name, bank_bin=alias.bank_bin, client_id=client_id)
        return stored

    def all(self) -> List[BankCounterpartyAlias]:
        with self._lock:
            return list(self._aliases.values())


class JsonFileAliasStore(InMemoryAliasStore):
    """
    Same semantics as the in-memory store, persisted to a JSON file after
    every write.
    """

    def __init__(self, path: str):
        self.path = path
        super().__init__(self._load())

    def _load(self) -> List[BankCounterpartyAlias]:
        if not os.path.exists(self.path):
            return []
        with open(self.path, 'r', encoding='utf-8') as f:
            rows = json.load(f)
        logger.info(f"Loaded {len(rows)} aliases", path=self.path)
        return [BankCounterpartyAlias(**row) for row in rows]

    def _save(self) -> None:
        rows = [
            {"bank_name": a.bank_name, "bank_bin": a.bank_bin, "client_id": a.client_id}
            for a in self._aliases.values()
        ]
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = self.path + '.tmp'
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(rows, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self.path)

    def put(self, bank_name: str, bank_bin: str, client_id: str) -> BankCounterpartyAlias:
        alias = super().put(bank_name, bank_bin, client_id)
        with self._lock:
            self._save()
        return alias
