import json

import pytest

from bank_recon.common.models import BankCounterpartyAlias
from bank_recon.core.aliases import InMemoryAliasStore, JsonFileAliasStore, alias_key


class TestAliasKey:

    def test_bin_wins_over_name(self):
        assert alias_key("ТОО Альфа", "1234 5678 9012") == "bin:123456789012"

    def test_name_key_without_bin(self):
        assert alias_key('ТОО "Альфа"', "") == "name:альфа"


class TestInMemoryStore:

    def test_lookup_by_name_variants(self):
        store = InMemoryAliasStore()
        store.put("ИП ИВАНОВ И.И.", "", "c2")

        assert store.get("ип иванов и.и.") == "c2"
        assert store.get("ИП  Иванов И. И.") == "c2"
        assert store.get("ИП Петров") is None

    def test_lookup_by_bin(self):
        store = InMemoryAliasStore()
        store.put("ТОО Альфа", "111111111111", "c1")

        assert store.get("Совсем другое имя", "111111111111") == "c1"
        # BIN-keyed aliases still answer by name
        assert store.get("тоо альфа") == "c1"

    def test_upsert_is_idempotent(self):
        store = InMemoryAliasStore()
        store.put("ТОО Альфа", "", "c1")
        store.put("ТОО Альфа", "", "c1")
        assert len(store.all()) == 1

    def test_last_write_wins(self):
        store = InMemoryAliasStore()
        store.put("ТОО Альфа", "", "c1")
        store.put('ТОО "АЛЬФА"', "", "c9")
        assert store.get("ТОО Альфа") == "c9"
        assert len(store.all()) == 1

    def test_name_and_bin_required(self):
        with pytest.raises(ValueError):
            InMemoryAliasStore().put("", "", "c1")

    def test_seeded(self, aliases):
        store = InMemoryAliasStore(aliases)
        assert store.get("ИП Иванов И.И.") == "c2"


class TestJsonFileStore:

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "aliases" / "store.json"

        JsonFileAliasStore(str(path)).put("ТОО\r\nАльфа", "111 111 111 111", "c1")

        reopened = JsonFileAliasStore(str(path))
        assert reopened.all() == [BankCounterpartyAlias(bank_name="ТОО Альфа",
                                                        bank_bin="111111111111", client_id="c1")]
        assert reopened.get("", "111111111111") == "c1"

    def test_file_is_plain_json(self, tmp_path):
        path = tmp_path / "store.json"
        JsonFileAliasStore(str(path)).put("ИП Петров", "", "c2")

        rows = json.loads(path.read_text(encoding='utf-8'))
        assert rows == [{"bank_name": "ИП Петров", "bank_bin": "", "client_id": "c2"}]
        assert not (tmp_path / "store.json.tmp").exists()

    def test_missing_file_is_empty(self, tmp_path):
        assert JsonFileAliasStore(str(tmp_path / "absent.json")).all() == []
