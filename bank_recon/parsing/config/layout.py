"""
Statement Layout Configuration

Defines the vocabulary a line grammar needs to read one family of bank exports.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from bank_recon.common.models import StatementFormat


@dataclass
class StatementLayout:
    """
    Configuration for a statement export family.

    Attributes:
        name: Human-readable layout name (e.g. "1C Client-Bank exchange")
        format: Which grammar reads it
        extensions: File extensions this layout accepts (lowercase, with dot)
        markers: Strings that identify the layout in the file content;
            any one of them is enough
        fields: Role -> label synonyms. For the national format these are
            the ``Label=`` keys of a document block; for delimited exports
            they are header fragments matched case-insensitively.
        block_start / block_end: Document block delimiters (national only)
        header_section_start / header_section_end: Own-account section
        income_words / expense_words: Values of a "type" column that fix direction
    """
    name: str
    format: StatementFormat
    extensions: List[str] = field(default_factory=list)
    markers: List[str] = field(default_factory=list)
    fields: Dict[str, List[str]] = field(default_factory=dict)

    block_start: Optional[str] = None
    block_end: Optional[str] = None
    header_section_start: Optional[str] = None
    header_section_end: Optional[str] = None

    income_words: List[str] = field(default_factory=list)
    expense_words: List[str] = field(default_factory=list)

    # Rows scanned when looking for a delimited header
    header_search_rows: int = 10

    def labels(self, role: str) -> List[str]:
        return self.fields.get(role, [])
