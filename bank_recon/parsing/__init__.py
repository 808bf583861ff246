"""
Statement parsing: layouts, format detection, line grammars and the
import pipeline.
"""

# Base classes
from .base import BaseStatementParser, ParseOutcome, decode_content

# Configuration
from .config.layout import StatementLayout
from .config.registry import LayoutRegistry

# Grammars
from .formats import PARSERS, OneCStatementParser, DelimitedStatementParser

# Detection & Pipeline
from .detector import detect_format
from .exceptions import StatementImportError, UnsupportedFormatError
from .pipeline import ImportPipeline

__all__ = [
    # Base
    'BaseStatementParser',
    'ParseOutcome',
    'decode_content',
    # Config
    'StatementLayout',
    'LayoutRegistry',
    # Grammars
    'PARSERS',
    'OneCStatementParser',
    'DelimitedStatementParser',
    # Pipeline
    'detect_format',
    'ImportPipeline',
    'StatementImportError',
    'UnsupportedFormatError',
]
