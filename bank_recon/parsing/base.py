"""
Base Classes for Parsing Module

Every line grammar turns file content into RawStatementRecord values and
collects a RecordParseWarning for each record it has to drop.
"""
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Union

from bank_recon.common.logging_config import get_logger
from bank_recon.common.models import RawStatementRecord, RecordParseWarning
from .config.layout import StatementLayout

logger = get_logger(__name__)

DATE_FORMATS = ('%d.%m.%Y', '%d.%m.%y', '%d/%m/%Y', '%d/%m/%y', '%Y-%m-%d', '%d-%m-%Y', '%Y.%m.%d')

# Thousands separators seen in KZ/RU exports: space, NBSP, narrow NBSP, apostrophe
_GROUPING = re.compile(r"[\s\u00a0\u202f']")
_NON_NUMERIC = re.compile(r"[^\d,.\-+]")


def decode_content(raw: Union[bytes, str]) -> str:
    """
    Decode file bytes: UTF-8 (BOM-aware) first, Windows-1251 otherwise.
    A leading BOM is dropped from text input as well.
    """
    if isinstance(raw, str):
        return raw.lstrip('\ufeff')
    try:
        return raw.decode('utf-8-sig')
    except UnicodeDecodeError:
        return raw.decode('cp1251', errors='replace')


@dataclass
class ParseOutcome:
    """What a grammar read from one file."""
    records: List[RawStatementRecord] = field(default_factory=list)
    warnings: List[RecordParseWarning] = field(default_factory=list)
    own_account: str = ''


class BaseStatementParser(ABC):
    """
    Abstract base class for statement grammars.

    Subclasses implement ``parse``; the helpers below hold the number and
    date conventions shared by all bank exports.
    """

    def __init__(self, layout: StatementLayout):
        self.layout = layout

    @abstractmethod
    def parse(self, content: Union[bytes, str], file_name: str = '') -> ParseOutcome:
        """Read every record of the file. Must not raise for a bad record."""
        raise NotImplementedError

    def _warn(self, outcome: ParseOutcome, line_number: int, reason: str) -> None:
        outcome.warnings.append(RecordParseWarning(line_number=line_number, reason=reason))
        logger.warning(f"Record skipped: {reason}", parser=self.__class__.__name__, line=line_number)

    def _parse_amount(self, value) -> Optional[Decimal]:
        """
        Parses a bank amount to a signed Decimal.

        Examples:
            "1 000,50" -> Decimal("1000.50")
            "1,234.56" -> Decimal("1234.56")
            "-250"     -> Decimal("-250")
        Returns None when nothing numeric is left.
        """
        if value is None:
            return None
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float, Decimal)):
            if isinstance(value, float) and value != value:  # NaN from spreadsheets
                return None
            return Decimal(str(value))

        text = str(value).strip()
        if not text:
            return None
        negative = text.startswith('(') and text.endswith(')')
        text = _NON_NUMERIC.sub('', _GROUPING.sub('', text))
        if text.endswith('-'):
            negative = True
            text = text[:-1]
        if text.startswith('-'):
            negative = not negative if text.count('-') == 1 else negative
            text = text.lstrip('-')
        text = text.lstrip('+')
        if not text or not any(ch.isdigit() for ch in text):
            return None

        if ',' in text and '.' in text:
            decimal_sep = ',' if text.rfind(',') > text.rfind('.') else '.'
            thousands_sep = '.' if decimal_sep == ',' else ','
            text = text.replace(thousands_sep, '').replace(decimal_sep, '.')
        elif text.count(',') > 1:
            text = text.replace(',', '')
        elif ',' in text:
            text = text.replace(',', '.')
        elif text.count('.') > 1:
            text = text.replace('.', '')

        try:
            amount = Decimal(text)
        except InvalidOperation:
            return None
        return -amount if negative else amount

    def _parse_date(self, value) -> Optional[date]:
        """Accepts date/datetime objects and the textual formats in DATE_FORMATS."""
        if value is None:
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value

        text = str(value).strip()
        if not text:
            return None
        # "05.02.2026 10:15:00" and "2026-02-05T00:00:00"
        text = re.split(r"[\sT]", text, maxsplit=1)[0]
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue
        return None

    @staticmethod
    def _clean_bin(value) -> str:
        """Digits only; BIN/IIN columns often carry spaces or a label."""
        if value is None:
            return ''
        return re.sub(r"\D", "", str(value))

    _RATE_IN_TEXT = re.compile(r"курс\w*\s+(?:сделки\s+)?(\d+(?:[.,]\d+)?)", re.IGNORECASE)

    def _rate_from_text(self, text: str) -> Optional[Decimal]:
        """Exchange rate quoted in a purpose text: "... курс сделки 450,5"."""
        match = self._RATE_IN_TEXT.search(text or '')
        if not match:
            return None
        rate = self._parse_amount(match.group(1))
        return rate if rate and rate > 0 else None
