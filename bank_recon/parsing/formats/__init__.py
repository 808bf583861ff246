from bank_recon.common.models import StatementFormat
from .onec import OneCStatementParser
from .delimited import DelimitedStatementParser

PARSERS = {
    StatementFormat.NATIONAL_TXT: OneCStatementParser,
    StatementFormat.DELIMITED: DelimitedStatementParser,
}

__all__ = [
    'OneCStatementParser',
    'DelimitedStatementParser',
    'PARSERS',
]
