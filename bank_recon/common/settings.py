"""
Import settings.

Tolerances and tables used by the matching stages. Values come from
``BANK_RECON_*`` environment variables; anything unset keeps its default.
"""
import os
import json
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Optional

from .models import PaymentType

ENV_PREFIX = "BANK_RECON_"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(ENV_PREFIX + name, default)


def _env_bool(name: str, default: bool) -> bool:
    raw = _env(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class ImportSettings:
    base_currency: str = "KZT"
    date_tolerance_days: int = 3
    same_month_window: bool = False
    # Relative difference, inclusive: |bank - ledger| / max(bank, ledger)
    amount_tolerance: Decimal = Decimal("0.05")
    fuzzy_names: bool = False
    knp_payment_types: Dict[str, PaymentType] = field(default_factory=dict)
    alias_store_path: Optional[str] = None
    layouts_dir: Optional[str] = None
    log_level: str = "INFO"
    log_file: Optional[str] = None
    activity_log_dir: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ImportSettings":
        knp_raw = _env("KNP_TABLE")
        knp_table = {}
        if knp_raw:
            knp_table = {str(code): PaymentType(value) for code, value in json.loads(knp_raw).items()}

        return cls(
            base_currency=_env("BASE_CURRENCY", "KZT").upper(),
            date_tolerance_days=int(_env("DATE_TOLERANCE_DAYS", "3")),
            same_month_window=_env_bool("SAME_MONTH_WINDOW", False),
            amount_tolerance=Decimal(_env("AMOUNT_TOLERANCE", "0.05")),
            fuzzy_names=_env_bool("FUZZY_NAMES", False),
            knp_payment_types=knp_table,
            alias_store_path=_env("ALIAS_STORE_PATH"),
            layouts_dir=_env("LAYOUTS_DIR"),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            log_file=_env("LOG_FILE"),
            activity_log_dir=_env("ACTIVITY_LOG_DIR"),
        )
