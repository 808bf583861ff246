"""
Tests for the HTTP surface.
"""
import io
import json

import pytest
from fastapi.testclient import TestClient
from openpyxl import load_workbook

from bank_recon.api.main import create_app
from bank_recon.common import activity_log
from bank_recon.common.settings import ImportSettings
from tests.statements import OWN_ACCOUNT, OWN_BIN

SESSION = {"X-Session-ID": "test-session"}


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def client(tmp_path):
    settings = ImportSettings(
        activity_log_dir=str(tmp_path / "activities"),
        alias_store_path=str(tmp_path / "aliases.json"),
    )
    with TestClient(create_app(settings)) as test_client:
        yield test_client
    activity_log._activity_logger = None


@pytest.fixture
def loaded(client):
    """Session with clients, one manual ledger entry and the company identity."""
    client.put("/api/reference/clients", headers=SESSION, json=[
        {"id": "c1", "name": "Ромашка", "company": 'ТОО "Ромашка"', "bin": "123456789012"},
        {"id": "c2", "name": "Иванов Иван", "company": 'ИП "Иванов"'},
        {"id": "c3", "company": "Sunrise LLP", "bin": "555555555555"},
    ])
    client.put("/api/reference/transactions", headers=SESSION, json=[
        {"id": "t1", "client_id": "c1", "amount": "150000", "date": "2026-02-04",
         "is_income": True, "reconciliation_status": "manual"},
    ])
    client.put("/api/reference/company", headers=SESSION, json={"bin": OWN_BIN, "iban": OWN_ACCOUNT})
    return client


def upload(client, text, file_name='statement.txt', encoding='cp1251'):
    return client.post("/api/import", headers=SESSION,
                       files={"file": (file_name, text.encode(encoding), "text/plain")})


# ============================================================================
# TEST: SERVICE
# ============================================================================

class TestService:

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_request_and_session_ids_are_echoed(self, client):
        response = client.get("/api/health", headers={"X-Request-ID": "r-42", **SESSION})
        assert response.headers["X-Request-ID"] == "r-42"
        assert response.headers["X-Session-ID"] == "test-session"

    def test_ids_are_generated(self, client):
        response = client.get("/api/health")
        assert response.headers["X-Request-ID"]
        assert response.headers["X-Session-ID"]


# ============================================================================
# TEST: REFERENCE DATA
# ============================================================================

class TestReference:

    def test_counts(self, client):
        response = client.put("/api/reference/clients", headers=SESSION, json=[{"id": "c1"}, {"id": "c2"}])
        assert response.json() == {"count": 2}

    def test_negative_ledger_amount_is_rejected(self, client):
        response = client.put("/api/reference/transactions", headers=SESSION, json=[
            {"id": "t1", "client_id": "c1", "amount": "-5", "date": "2026-02-04"},
        ])
        assert response.status_code == 422

    def test_alias_needs_name_or_bin(self, client):
        response = client.put("/api/aliases", headers=SESSION, json=[{"client_id": "c1"}])
        assert response.status_code == 422


# ============================================================================
# TEST: IMPORT AND COMMIT
# ============================================================================

class TestImport:

    def test_national_statement(self, loaded, onec_text):
        response = upload(loaded, onec_text)

        assert response.status_code == 200
        body = response.json()
        assert body["format"] == "NATIONAL_TXT"
        assert body["summary"]["total"] == 3
        first = body["transactions"][0]
        assert first["matched_client_id"] == "c1"
        assert first["match_source"] == "bin"
        assert first["reconciliation"]["type"] == "verified"

    def test_unrecognized_file(self, loaded):
        response = upload(loaded, "Dear customer,\nnothing here.\n", file_name="letter.txt", encoding='utf-8')
        assert response.status_code == 422
        assert response.json() == {"detail": "No transactions recognized", "file_name": "letter.txt"}

    def test_empty_file(self, loaded):
        response = loaded.post("/api/import", headers=SESSION, files={"file": ("empty.txt", b"", "text/plain")})
        assert response.status_code == 400

    def test_sessions_are_isolated(self, loaded, onec_text):
        response = loaded.post("/api/import", headers={"X-Session-ID": "other"},
                               files={"file": ("statement.txt", onec_text.encode('cp1251'), "text/plain")})
        assert response.json()["summary"]["matched"] == 0

    def test_commit_without_import(self, client):
        assert client.post("/api/import/commit", headers=SESSION, json={}).status_code == 404

    def test_commit_index_out_of_range(self, loaded, onec_text):
        upload(loaded, onec_text)
        response = loaded.post("/api/import/commit", headers=SESSION, json={"selected": [0, 7]})
        assert response.status_code == 422

    def test_commit_learns_aliases(self, loaded, onec_text, tmp_path):
        upload(loaded, onec_text)

        response = loaded.post("/api/import/commit", headers=SESSION,
                               json={"overrides": {"1": "c2", "2": "c3"}})

        assert response.status_code == 200
        body = response.json()
        assert len(body["plan"]["reconciliation_updates"]) == 1
        assert len(body["plan"]["entries"]) == 2
        assert body["aliases_stored"] == 2

        aliases = loaded.get("/api/aliases").json()
        assert {a["client_id"] for a in aliases} == {"c2", "c3"}
        stored = json.loads((tmp_path / "aliases.json").read_text(encoding='utf-8'))
        assert len(stored) == 2

        # The learned alias now matches on the next upload
        again = upload(loaded, onec_text).json()
        assert again["transactions"][1]["match_source"] == "alias"

    def test_activity_journal(self, loaded, onec_text, tmp_path):
        upload(loaded, onec_text)
        loaded.post("/api/import/commit", headers=SESSION, json={"overrides": {"1": "c2", "2": "c3"}})

        journal = next((tmp_path / "activities").glob("activity_*.jsonl"))
        records = [json.loads(line) for line in journal.read_text(encoding='utf-8').splitlines()]
        assert [r["category"] for r in records] == ["import", "alias", "alias", "commit"]
        assert {r["details"]["client_id"] for r in records[1:3]} == {"c2", "c3"}


# ============================================================================
# TEST: EXPORT
# ============================================================================

class TestExport:

    def test_no_import(self, client):
        assert client.get("/api/export/xlsx", headers=SESSION).status_code == 404

    def test_workbook(self, loaded, onec_text):
        upload(loaded, onec_text)
        response = loaded.get("/api/export/xlsx", headers=SESSION)

        assert response.status_code == 200
        assert "attachment" in response.headers["content-disposition"]
        workbook = load_workbook(io.BytesIO(response.content))
        assert workbook.sheetnames == ['Transactions', 'Summary']
