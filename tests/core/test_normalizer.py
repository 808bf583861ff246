"""
Unit Tests for the Transaction Normalizer.
"""
from datetime import date
from decimal import Decimal

import pytest

from bank_recon.common.models import CompanyInfo, PaymentType, RawStatementRecord
from bank_recon.common.settings import ImportSettings
from bank_recon.core.normalizer import TransactionNormalizer, classify_payment_type, to_base_amount
from tests.statements import OWN_ACCOUNT, OWN_BIN


# ============================================================================
# FIXTURES
# ============================================================================

def national_record(**overrides):
    fields = dict(
        line_number=1,
        date=date(2026, 2, 5),
        amount=Decimal("1000"),
        payer_name='ТОО "Альфа"',
        payer_bin="111111111111",
        payer_account="KZ111",
        payee_name='ТОО "Наша компания"',
        payee_bin=OWN_BIN,
        payee_account=OWN_ACCOUNT,
        description="Оплата",
    )
    fields.update(overrides)
    return RawStatementRecord(**fields)


@pytest.fixture
def normalizer(company):
    return TransactionNormalizer(ImportSettings(), company=company)


# ============================================================================
# TEST: DIRECTION
# ============================================================================

class TestDirection:

    def test_self_is_payee_means_income(self, normalizer):
        txn = normalizer.normalize(national_record())
        assert txn.is_income is True
        assert txn.client_name_raw == 'ТОО "Альфа"'
        assert txn.client_bin == "111111111111"

    def test_self_is_payer_means_expense(self, normalizer):
        record = national_record(
            payer_name='ТОО "Наша компания"', payer_bin=OWN_BIN, payer_account=OWN_ACCOUNT,
            payee_name='ТОО "Поставщик"', payee_bin="222222222222", payee_account="KZ222",
        )
        txn = normalizer.normalize(record)
        assert txn.is_income is False
        assert txn.client_bin == "222222222222"

    def test_match_by_account_only(self):
        normalizer = TransactionNormalizer(company=CompanyInfo(iban="kz00 0000 0000 0000 0001"))
        txn = normalizer.normalize(national_record(payee_bin=""))
        assert txn.is_income is True

    def test_header_account_stands_in_for_company(self):
        normalizer = TransactionNormalizer(own_account=OWN_ACCOUNT)
        record = national_record(payer_account=OWN_ACCOUNT, payee_account="KZ999", payee_bin="")
        assert normalizer.normalize(record).is_income is False

    def test_explicit_marker_wins(self, normalizer):
        txn = normalizer.normalize(national_record(is_income=False))
        assert txn.is_income is False
        assert txn.client_name_raw == 'ТОО "Наша компания"'

    def test_no_identity_reads_as_income(self):
        txn = TransactionNormalizer().normalize(national_record(payee_bin="", payee_account=""))
        assert txn.is_income is True

    def test_owner_on_neither_side(self, normalizer):
        record = national_record(payee_bin="333333333333", payee_account="KZ333")
        with pytest.raises(ValueError):
            normalizer.normalize(record)

    def test_normalize_all_collects_warnings(self, normalizer):
        records = [national_record(), national_record(line_number=9, payee_bin="3", payee_account="KZ3")]
        transactions, warnings = normalizer.normalize_all(records)
        assert len(transactions) == 1
        assert [w.line_number for w in warnings] == [9]

    def test_delimited_record(self, normalizer):
        record = RawStatementRecord(line_number=2, date=date(2026, 2, 5), amount=Decimal("10"),
                                    is_income=False, counterparty_name="ИП ИВАНОВ",
                                    counterparty_bin="")
        txn = normalizer.normalize(record)
        assert txn.is_income is False
        assert txn.client_name == "ИП Иванов"
        assert txn.name_key == "иванов"


# ============================================================================
# TEST: NAMES AND BIN
# ============================================================================

class TestNames:

    def test_bin_taken_from_name(self, normalizer):
        txn = normalizer.normalize(national_record(payer_name="ТОО Альфа 444444444444", payer_bin=""))
        assert txn.client_bin == "444444444444"

    def test_display_name_and_key(self, normalizer):
        txn = normalizer.normalize(national_record(payer_name='ТОО "АЛЬФА ТРЕЙД"'))
        assert txn.client_name == 'ТОО "Альфа Трейд"'
        assert txn.name_key == "альфа трейд"


# ============================================================================
# TEST: CURRENCY
# ============================================================================

class TestCurrency:

    def test_conversion_is_exact(self, normalizer):
        txn = normalizer.normalize(national_record(
            amount=Decimal("100"), currency="USD", exchange_rate=Decimal("450.5")))
        assert txn.amount == Decimal("45050.00")
        assert txn.amount_original == Decimal("100")
        assert txn.exchange_rate == Decimal("450.5")
        assert txn.currency == "USD"

    def test_half_even_rounding(self):
        assert to_base_amount(Decimal("0.125"), Decimal("1")) == Decimal("0.12")
        assert to_base_amount(Decimal("0.135"), Decimal("1")) == Decimal("0.14")

    def test_base_currency_has_no_original(self, normalizer):
        txn = normalizer.normalize(national_record(currency="kzt"))
        assert txn.amount_original is None
        assert txn.is_foreign is False

    def test_missing_rate_keeps_original_amount(self, normalizer):
        txn = normalizer.normalize(national_record(amount=Decimal("100"), currency="EUR"))
        assert txn.amount == Decimal("100.00")
        assert txn.amount_original == Decimal("100")
        assert txn.exchange_rate is None


# ============================================================================
# TEST: PAYMENT TYPE
# ============================================================================

class TestPaymentType:

    @pytest.mark.parametrize("description,expected", [
        ("Предоплата по договору", PaymentType.PREPAYMENT),
        ("Аванс за март", PaymentType.PREPAYMENT),
        ("Окончательный расчет", PaymentType.POSTPAYMENT),
        ("Абонентская плата", PaymentType.RETAINER),
        ("Monthly retainer", PaymentType.RETAINER),
        ("Возврат аванса", PaymentType.REFUND),
        ("Полная оплата", PaymentType.FULL),
        ("Оплата по счету 15", PaymentType.FULL),
        ("", PaymentType.FULL),
    ])
    def test_keywords(self, description, expected):
        assert classify_payment_type('', description) == expected

    def test_knp_table_first(self):
        table = {"710": PaymentType.RETAINER}
        assert classify_payment_type("710", "Предоплата", table) == PaymentType.RETAINER
        assert classify_payment_type("711", "Предоплата", table) == PaymentType.PREPAYMENT
