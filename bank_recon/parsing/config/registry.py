"""
Layout Registry

Loads statement layouts from JSON configuration files and implements
format detection over them.
"""
import os
import json
from typing import List, Optional

from bank_recon.common.logging_config import get_logger
from bank_recon.common.models import StatementFormat
from .layout import StatementLayout

logger = get_logger(__name__)

DEFAULT_LAYOUTS_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), 'layouts')

SPREADSHEET_EXTENSIONS = ('.xls', '.xlsx')
DELIMITERS = (';', '\t', ',')


def file_extension(file_name: str) -> str:
    return os.path.splitext(file_name or '')[1].lower()


def split_header_candidate(line: str, delimiter: str) -> List[str]:
    """Split one line on ``delimiter`` ignoring delimiters inside double quotes."""
    cells, current, quoted = [], [], False
    for ch in line:
        if ch == '"':
            quoted = not quoted
        elif ch == delimiter and not quoted:
            cells.append(''.join(current))
            current = []
            continue
        current.append(ch)
    cells.append(''.join(current))
    return [c.strip().strip('"').strip() for c in cells]


def detect_delimiter(line: str) -> Optional[str]:
    """Pick the delimiter that splits ``line`` into the most fields (at least 3)."""
    best, best_count = None, 2
    for delimiter in DELIMITERS:
        count = len(split_header_candidate(line, delimiter))
        if count > best_count:
            best, best_count = delimiter, count
    return best


def header_matches(layout: StatementLayout, cells: List[str]) -> bool:
    """True when a row has 3+ non-empty cells and one of them names a date or amount column."""
    cells = [str(c).strip().lower() for c in cells if c is not None and str(c).strip()]
    if len(cells) < 3:
        return False
    labels = [s.lower() for role in ('date', 'amount', 'credit', 'debit') for s in layout.labels(role)]
    return any(p in c for c in cells for p in labels)


class LayoutRegistry:
    """
    Registry of statement layouts.

    Loads layout configurations from JSON files and selects the grammar
    for a file from its name and content signature.
    """

    def __init__(self, layouts_dir: Optional[str] = None):
        """
        Args:
            layouts_dir: Directory with .json layout files. Defaults to the
                layouts shipped with the package.
        """
        self.layouts_dir = layouts_dir or DEFAULT_LAYOUTS_DIR
        self.layouts: List[StatementLayout] = []
        self._load_layouts()

    def _load_layouts(self) -> None:
        """Scans the directory and loads all .json layouts."""
        if not os.path.exists(self.layouts_dir):
            logger.warning(f"Layouts directory not found: {self.layouts_dir}")
            return

        for fname in sorted(os.listdir(self.layouts_dir)):
            if not fname.endswith(".json"):
                continue
            fpath = os.path.join(self.layouts_dir, fname)
            try:
                with open(fpath, 'r', encoding='utf-8') as f:
                    self.layouts.append(self._parse_layout(json.load(f)))
                logger.debug(f"Loaded layout: {fname}")
            except (OSError, ValueError, TypeError) as e:
                logger.error(f"Error loading layout {fname}: {e}")

    def _parse_layout(self, data: dict) -> StatementLayout:
        """Converts dict to StatementLayout object."""
        layout_data = data.copy()
        layout_data['format'] = StatementFormat(layout_data['format'])
        return StatementLayout(**layout_data)

    def by_format(self, statement_format: StatementFormat) -> List[StatementLayout]:
        return [l for l in self.layouts if l.format == statement_format]

    def get_by_name(self, name: str) -> Optional[StatementLayout]:
        for layout in self.layouts:
            if layout.name == name:
                return layout
        return None

    def list_layouts(self) -> List[str]:
        return [l.name for l in self.layouts]

    def detect(self, file_name: str, text: Optional[str]) -> Optional[StatementLayout]:
        """
        Select the layout for a file.

        Spreadsheets are always delimited. Otherwise national block markers
        win; then a ``.csv`` extension; then any text whose leading lines
        hold a delimiter-separated header with a recognizable column name.

        Args:
            file_name: Original file name
            text: Decoded content, or None for binary spreadsheets

        Returns:
            Matching StatementLayout, or None if no grammar applies
        """
        ext = file_extension(file_name)
        delimited = self.by_format(StatementFormat.DELIMITED)

        if ext in SPREADSHEET_EXTENSIONS:
            return next((l for l in delimited if ext in l.extensions), None)

        text = text or ''
        for layout in self.by_format(StatementFormat.NATIONAL_TXT):
            if any(marker in text for marker in layout.markers):
                logger.debug(f"Detected layout: {layout.name}")
                return layout

        for layout in delimited:
            if ext in layout.extensions:
                return layout
            if self.find_header(layout, text.splitlines()) is not None:
                logger.debug(f"Detected layout: {layout.name}", by="header")
                return layout

        return None

    @staticmethod
    def find_header(layout: StatementLayout, lines: List[str]) -> Optional[int]:
        """
        Index of the first line (among the leading non-blank ones) that
        splits into 3+ fields and names a date or amount column.
        """
        seen = 0
        for idx, line in enumerate(lines):
            if not line.strip():
                continue
            seen += 1
            if seen > layout.header_search_rows:
                break
            delimiter = detect_delimiter(line)
            if delimiter and header_matches(layout, split_header_candidate(line, delimiter)):
                return idx
        return None
