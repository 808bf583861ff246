"""
National fixed-format statement parser (1CClientBankExchange).

The export is a sequence of ``Label=Value`` lines. Each payment sits in a
block opened by ``СекцияДокумент`` and closed by ``КонецДокумента``; the
file header (and the ``СекцияРасчСчет`` section) names the statement's
own account.
"""
from typing import Dict, List, Optional, Tuple, Union

from bank_recon.common.logging_config import get_logger
from bank_recon.common.models import RawStatementRecord
from ..base import BaseStatementParser, ParseOutcome, decode_content

logger = get_logger(__name__)

# ISO 4217 numeric codes that appear in "КодВалюты"
NUMERIC_CURRENCIES = {
    '398': 'KZT',
    '840': 'USD',
    '978': 'EUR',
    '643': 'RUB',
    '156': 'CNY',
    '826': 'GBP',
}


class OneCStatementParser(BaseStatementParser):
    """
    Block-oriented grammar: accumulate labeled lines until the block
    terminator, then pull values by label. Labels are compared without
    surrounding whitespace and case.
    """

    def parse(self, content: Union[bytes, str], file_name: str = '') -> ParseOutcome:
        outcome = ParseOutcome()
        text = decode_content(content)

        block_start = (self.layout.block_start or '').casefold()
        block_end = (self.layout.block_end or '').casefold()
        own_labels = {l.casefold() for l in self.layout.labels('own_account')}
        section_start = (self.layout.header_section_start or '').casefold()
        section_end = (self.layout.header_section_end or '').casefold()
        # The account section wins over a bare header line
        section_account, header_account = '', ''
        in_section = False

        block: Optional[List[Tuple[str, str]]] = None
        block_line = 0

        for line_number, line in enumerate(text.splitlines(), start=1):
            stripped = line.strip()
            if not stripped:
                continue

            key, sep, value = stripped.partition('=')
            key_norm = key.strip().casefold()
            value = value.strip()

            if section_start and key_norm == section_start:
                in_section = True
                continue

            if section_end and key_norm == section_end:
                in_section = False
                continue

            if key_norm == block_start:
                if block is not None:
                    self._warn(outcome, block_line, "document block not terminated")
                block, block_line = [], line_number
                continue

            if key_norm == block_end:
                if block is not None:
                    record = self._read_block(block, block_line, outcome)
                    if record is not None:
                        outcome.records.append(record)
                block = None
                continue

            if block is None:
                if sep and key_norm in own_labels and value:
                    if in_section and not section_account:
                        section_account = value
                    elif not in_section and not header_account:
                        header_account = value
                continue

            if sep:
                block.append((key_norm, value))
            elif block:
                # Wrapped purpose text continues the previous value
                last_key, last_value = block[-1]
                block[-1] = (last_key, f"{last_value} {stripped}".strip())

        if block is not None:
            self._warn(outcome, block_line, "document block not terminated")
        outcome.own_account = section_account or header_account

        logger.info(
            "National statement parsed.",
            file_name=file_name,
            records=len(outcome.records),
            warnings=len(outcome.warnings),
            own_account=outcome.own_account or None,
        )
        return outcome

    def _read_block(self, block: List[Tuple[str, str]], line_number: int,
                    outcome: ParseOutcome) -> Optional[RawStatementRecord]:
        values: Dict[str, str] = {}
        for key, value in block:
            values.setdefault(key, value)

        def get(role: str) -> str:
            for label in self.layout.labels(role):
                found = values.get(label.casefold())
                if found:
                    return found
            return ''

        doc_date = self._parse_date(get('date'))
        if doc_date is None:
            self._warn(outcome, line_number, "missing or invalid document date")
            return None

        amount = self._parse_amount(get('amount'))
        if amount is None or amount == 0:
            self._warn(outcome, line_number, "missing or zero amount")
            return None

        debited = bool(get('debit_date'))
        credited = bool(get('credit_date'))
        is_income = None
        if debited != credited:
            is_income = credited

        description = get('description')
        currency = get('currency').upper()
        currency = NUMERIC_CURRENCIES.get(currency, currency)
        rate = self._parse_amount(get('exchange_rate'))
        if rate is None or rate <= 0:
            rate = self._rate_from_text(description)

        return RawStatementRecord(
            line_number=line_number,
            date=doc_date,
            amount=abs(amount),
            is_income=is_income,
            currency=currency,
            exchange_rate=rate,
            payer_name=get('payer_name'),
            payer_bin=self._clean_bin(get('payer_bin')),
            payer_account=get('payer_account').replace(' ', '').upper(),
            payee_name=get('payee_name'),
            payee_bin=self._clean_bin(get('payee_bin')),
            payee_account=get('payee_account').replace(' ', '').upper(),
            description=description,
            document_number=get('document_number'),
            knp_code=get('knp_code'),
        )
