from decimal import Decimal

from bank_recon.common.models import PaymentType
from bank_recon.common.settings import ImportSettings


class TestImportSettings:

    def test_defaults(self, monkeypatch):
        for name in ("BASE_CURRENCY", "DATE_TOLERANCE_DAYS", "AMOUNT_TOLERANCE", "KNP_TABLE", "FUZZY_NAMES"):
            monkeypatch.delenv(f"BANK_RECON_{name}", raising=False)

        settings = ImportSettings.from_env()

        assert settings.base_currency == "KZT"
        assert settings.date_tolerance_days == 3
        assert settings.amount_tolerance == Decimal("0.05")
        assert settings.same_month_window is False
        assert settings.knp_payment_types == {}

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("BANK_RECON_BASE_CURRENCY", "usd")
        monkeypatch.setenv("BANK_RECON_DATE_TOLERANCE_DAYS", "5")
        monkeypatch.setenv("BANK_RECON_SAME_MONTH_WINDOW", "yes")
        monkeypatch.setenv("BANK_RECON_FUZZY_NAMES", "1")
        monkeypatch.setenv("BANK_RECON_KNP_TABLE", '{"710": "Monthly Retainer", "119": "Refund"}')

        settings = ImportSettings.from_env()

        assert settings.base_currency == "USD"
        assert settings.date_tolerance_days == 5
        assert settings.same_month_window is True
        assert settings.fuzzy_names is True
        assert settings.knp_payment_types == {"710": PaymentType.RETAINER, "119": PaymentType.REFUND}
