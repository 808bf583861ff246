"""
Delimited statement parser (CSV / TSV / XLS / XLSX exports).

The header row fixes the column roles by matching known header fragments;
each following row becomes one record.
"""
import io
import zipfile
from datetime import date, datetime
from typing import Dict, List, Optional, Union

import pandas as pd

from bank_recon.common.logging_config import get_logger
from bank_recon.common.models import RawStatementRecord
from ..base import BaseStatementParser, ParseOutcome, decode_content
from ..config.registry import (
    LayoutRegistry,
    SPREADSHEET_EXTENSIONS,
    detect_delimiter,
    file_extension,
    header_matches,
    split_header_candidate,
)
from ..exceptions import UnsupportedFormatError

logger = get_logger(__name__)

# Footer and balance rows that carry no payment
IGNORED_ROW_KEYWORDS = ("итого", "всего", "остаток", "сальдо", "оборот", "total", "balance", "saldo")


class DelimitedStatementParser(BaseStatementParser):
    """
    Grammar for spreadsheet-like exports.

    Text files: the delimiter (comma, semicolon or tab) is taken from the
    header row and rows are split with quoted-field awareness by pandas.
    Spreadsheets are read with ``pandas.read_excel``.
    """

    def parse(self, content: Union[bytes, str], file_name: str = '') -> ParseOutcome:
        outcome = ParseOutcome()

        if file_extension(file_name) in SPREADSHEET_EXTENSIONS:
            rows = self._read_spreadsheet(content, file_name)
            broken = set()
            header_idx = next(
                (i for i, row in enumerate(rows[:self.layout.header_search_rows])
                 if header_matches(self.layout, [self._text(v) for v in row])),
                None,
            )
        else:
            rows, header_idx, broken = self._read_text(decode_content(content))

        if header_idx is None:
            logger.warning("No header row found in delimited file.", file_name=file_name)
            return outcome

        header = [self._text(v).lower() for v in rows[header_idx]]
        columns = self._map_columns(header)
        logger.debug("Delimited columns mapped.", file_name=file_name, columns=columns)

        if 'date' not in columns or not any(r in columns for r in ('amount', 'credit', 'debit')):
            logger.warning("Header lacks date or amount columns.", file_name=file_name, header=header)
            return outcome

        for offset, row in enumerate(rows[header_idx + 1:], start=header_idx + 2):
            if offset in broken:
                self._warn(outcome, offset, "unbalanced quote")
                continue
            texts = [self._text(v) for v in row]
            if not any(texts):
                continue
            if all(set(t) <= set('-=_*. ') for t in texts):
                continue
            record = self._read_row(row, texts, columns, offset, outcome)
            if record is not None:
                outcome.records.append(record)

        logger.info(
            "Delimited statement parsed.",
            file_name=file_name,
            records=len(outcome.records),
            warnings=len(outcome.warnings),
        )
        return outcome

    def _read_text(self, text: str):
        """
        Split text rows; returns (rows, header index, broken line numbers).

        Rows go through pandas. A line with an unbalanced quote would swallow
        the lines after it, so such a file is split line by line instead and
        the offending lines are reported back as broken.
        """
        lines = text.splitlines()
        header_idx = LayoutRegistry.find_header(self.layout, lines)
        if header_idx is None:
            return [], None, set()

        delimiter = detect_delimiter(lines[header_idx])
        broken = {i + 1 for i, line in enumerate(lines) if i > header_idx and line.count('"') % 2}
        if not broken:
            try:
                return self._frame_rows(lines, header_idx, delimiter), header_idx, broken
            except pd.errors.ParserError as exc:
                logger.warning("Delimited rows rejected by pandas, splitting line by line.", error=str(exc))

        rows = [
            [] if i + 1 in broken or not line.strip() else split_header_candidate(line, delimiter)
            for i, line in enumerate(lines)
        ]
        return rows, header_idx, broken

    @staticmethod
    def _frame_rows(lines: List[str], header_idx: int, delimiter: str) -> List[list]:
        width = max(len(split_header_candidate(l, delimiter)) for l in lines[header_idx:] if l.strip())
        frame = pd.read_csv(
            io.StringIO("\n".join(lines[header_idx:])),
            sep=delimiter,
            header=None,
            names=list(range(width)),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=False,
            quotechar='"',
            engine='python',
        )
        # Keep row positions aligned with the physical lines before the header
        return [[] for _ in range(header_idx)] + frame.fillna('').values.tolist()

    def _read_spreadsheet(self, content: Union[bytes, str], file_name: str = '') -> List[list]:
        raw = content.encode('utf-8') if isinstance(content, str) else content
        try:
            frame = pd.read_excel(io.BytesIO(raw), header=None, dtype=object)
        except (ValueError, KeyError, OSError, zipfile.BadZipFile) as exc:
            logger.warning("Spreadsheet could not be opened.", file_name=file_name, error=str(exc))
            raise UnsupportedFormatError(
                "No transactions recognized: unreadable spreadsheet", filename=file_name) from exc
        return frame.values.tolist()

    def _map_columns(self, header: List[str]) -> Dict[str, int]:
        """Assign each role the first unclaimed header cell containing one of its synonyms."""
        columns: Dict[str, int] = {}
        claimed = set()
        for role, synonyms in self.layout.fields.items():
            for synonym in synonyms:
                idx = next(
                    (i for i, h in enumerate(header) if i not in claimed and synonym.lower() in h),
                    None,
                )
                if idx is not None:
                    columns[role] = idx
                    claimed.add(idx)
                    break
        return columns

    def _read_row(self, row: list, texts: List[str], columns: Dict[str, int],
                  line_number: int, outcome: ParseOutcome) -> Optional[RawStatementRecord]:
        def raw(role: str):
            idx = columns.get(role)
            if idx is None or idx >= len(row):
                return None
            value = row[idx]
            return None if self._is_missing(value) else value

        def text(role: str) -> str:
            idx = columns.get(role)
            return texts[idx] if idx is not None and idx < len(texts) else ''

        row_date = self._parse_date(raw('date'))
        if row_date is None:
            joined = ' '.join(texts).lower()
            if not any(k in joined for k in IGNORED_ROW_KEYWORDS):
                self._warn(outcome, line_number, "missing or invalid date")
            return None

        is_income = None
        amount = None
        credit = self._parse_amount(raw('credit'))
        debit = self._parse_amount(raw('debit'))
        if credit:
            is_income, amount = True, abs(credit)
        elif debit:
            is_income, amount = False, abs(debit)
        else:
            signed = self._parse_amount(raw('amount'))
            if signed:
                is_income = self._direction_word(text('type'))
                if is_income is None:
                    is_income = signed > 0
                amount = abs(signed)

        if amount is None:
            self._warn(outcome, line_number, "missing or zero amount")
            return None

        description = text('description')
        rate = self._parse_amount(raw('exchange_rate'))
        if rate is None or rate <= 0:
            rate = self._rate_from_text(description)

        return RawStatementRecord(
            line_number=line_number,
            date=row_date,
            amount=amount,
            is_income=is_income,
            currency=text('currency').upper(),
            exchange_rate=rate,
            counterparty_name=text('name'),
            counterparty_bin=self._clean_bin(text('bin')),
            description=description,
            document_number=text('document_number'),
            knp_code=text('knp_code'),
        )

    def _direction_word(self, value: str) -> Optional[bool]:
        word = value.strip().lower()
        if not word:
            return None
        if word in self.layout.income_words:
            return True
        if word in self.layout.expense_words:
            return False
        for candidate in self.layout.income_words:
            if len(candidate) >= 4 and candidate in word:
                return True
        for candidate in self.layout.expense_words:
            if len(candidate) >= 4 and candidate in word:
                return False
        return None

    @staticmethod
    def _is_missing(value) -> bool:
        if value is None:
            return True
        if isinstance(value, str):
            return not value.strip()
        try:
            return bool(pd.isna(value))
        except (TypeError, ValueError):
            return False

    @classmethod
    def _text(cls, value) -> str:
        """Cell value as display text; integral floats lose their ".0"."""
        if cls._is_missing(value):
            return ''
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        if isinstance(value, datetime):
            return value.strftime('%d.%m.%Y')
        if isinstance(value, date):
            return value.strftime('%d.%m.%Y')
        return str(value).strip()
