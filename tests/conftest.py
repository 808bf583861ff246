"""
Shared fixtures: reference data and small statement files in both formats.
"""
from datetime import date
from decimal import Decimal

import pytest

from bank_recon.common.models import (
    BankCounterpartyAlias,
    Client,
    CompanyInfo,
    ExistingTransaction,
    LedgerStatus,
)
from bank_recon.common.settings import ImportSettings

from tests.statements import OWN_ACCOUNT, OWN_BIN, onec_document, onec_statement


@pytest.fixture
def settings():
    return ImportSettings()


@pytest.fixture
def clients():
    return [
        Client(id="c1", name="Ромашка", company='ТОО "Ромашка"', bin="123456789012"),
        Client(id="c2", name="Иванов Иван", company='ИП "Иванов"', bin=""),
        Client(id="c3", name="Sunrise", company="Sunrise LLP", bin="555555555555",
               legal_name="Sunrise Trading LLP"),
    ]


@pytest.fixture
def company():
    return CompanyInfo(bin=OWN_BIN, iban=OWN_ACCOUNT)


@pytest.fixture
def aliases():
    return [BankCounterpartyAlias(bank_name="ИП ИВАНОВ И.И.", bank_bin="", client_id="c2")]


@pytest.fixture
def onec_text():
    """Two incoming payments, one outgoing, all in KZT."""
    return onec_statement(
        onec_document(101, "05.02.2026", "150000.00", 'ТОО "Ромашка"', "123456789012", "KZ111",
                      'ТОО "Наша компания"', OWN_BIN, OWN_ACCOUNT, "Предоплата по договору 5", knp="710"),
        onec_document(102, "06.02.2026", "25 000,00", "ИП ИВАНОВ И.И.", "", "KZ222",
                      'ТОО "Наша компания"', OWN_BIN, OWN_ACCOUNT, "Ежемесячное обслуживание"),
        onec_document(103, "07.02.2026", "5000.00", 'ТОО "Наша компания"', OWN_BIN, OWN_ACCOUNT,
                      'ТОО "Поставщик"', "777777777777", "KZ333", "Оплата аренды"),
    )


@pytest.fixture
def csv_text():
    return "\n".join([
        "Дата;Номер документа;Контрагент;БИН/ИИН;Дебет;Кредит;Назначение платежа",
        "05.02.2026;201;ТОО Ромашка;123456789012;;150 000,00;Оплата по счету 5",
        "06.02.2026;202;ТОО Поставщик;777777777777;12 500,50;;Аренда офиса",
        "",
        "Итого;;;;12 500,50;150 000,00;",
    ])


@pytest.fixture
def ledger():
    """Manager-entered entries awaiting bank confirmation."""
    return [
        ExistingTransaction(id="t1", client_id="c1", amount=Decimal("10000"), date=date(2026, 2, 4),
                            is_income=True, description="Аванс",
                            reconciliation_status=LedgerStatus.MANUAL),
    ]
