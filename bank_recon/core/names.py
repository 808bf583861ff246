"""
Counterparty name handling.

Bank exports wrap long legal names across lines, quote them in several
styles and prefix them with the legal form. These helpers produce the
display name and the comparison key used by the matching stages.
"""
import re

LEGAL_PREFIXES = (
    'ТОО', 'ИП', 'АО', 'ЖШС', 'ОАО', 'ЗАО', 'ПАО', 'НАО', 'КТ', 'КХ',
    'ПК', 'РГП', 'ГКП', 'КГП', 'ГУ', 'РГУ', 'LLP', 'LLC',
)

# Legal-form words that line wrapping splits in two
_WRAPPED_WORDS = (
    (re.compile(r"Товарище\s+ство", re.IGNORECASE), 'Товарищество'),
    (re.compile(r"Обще\s+ство", re.IGNORECASE), 'Общество'),
    (re.compile(r"Предприя\s+тие", re.IGNORECASE), 'Предприятие'),
    (re.compile(r"Учрежде\s+ние", re.IGNORECASE), 'Учреждение'),
    (re.compile(r"Акционер\s+ное", re.IGNORECASE), 'Акционерное'),
    (re.compile(r"ответствен\s+ностью", re.IGNORECASE), 'ответственностью'),
    (re.compile(r"ограничен\s+ной", re.IGNORECASE), 'ограниченной'),
)

_BIN_TOKEN = re.compile(r"(?<!\d)(\d{12})(?!\d)")
_QUOTES = re.compile(r"[«»\"'“”„‟]")
_PUNCTUATION = re.compile(r"[^0-9a-zа-яәғқңөұүһі\s]")
_LATIN_ACRONYM = re.compile(r"^[A-Za-z]{1,5}$")
_LEGAL_TOKENS = frozenset(p.lower() for p in LEGAL_PREFIXES)


def sanitize_counterparty_name(raw: str) -> str:
    """Collapse line breaks, slashes and repeated spaces; re-join wrapped legal-form words."""
    if not raw:
        return ''
    result = re.sub(r"[\r\n/]+", ' ', raw)
    result = re.sub(r"\s{2,}", ' ', result).strip()
    for pattern, replacement in _WRAPPED_WORDS:
        result = pattern.sub(replacement, result)
    return result


def extract_bin(text: str) -> str:
    """First standalone 12-digit token in ``text``, or ''."""
    match = _BIN_TOKEN.search(text or '')
    return match.group(1) if match else ''


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:].lower()


def bank_name_to_title_case(raw: str) -> str:
    """
    Display form of a bank counterparty label.

    >>> bank_name_to_title_case('ТОО "РОМАШКА ПЛЮС"')
    'ТОО "Ромашка Плюс"'
    """
    if not raw or not raw.strip():
        return raw
    sanitized = sanitize_counterparty_name(raw)
    words = sanitized.split()

    first = words[0].lstrip('"«').upper()
    if first in LEGAL_PREFIXES and len(words) > 1:
        prefix = words[0].upper()
        rest = words[1:]
    else:
        prefix = None
        rest = words

    formatted = []
    for word in rest:
        core = word.strip('"«»')
        if _LATIN_ACRONYM.match(core):
            formatted.append(word.upper())
        elif word[:1].isdigit():
            formatted.append(word)
        elif word[:1] in '"«' and len(word) > 1:
            formatted.append(word[0] + _capitalize(word[1:]))
        else:
            formatted.append(_capitalize(word))

    body = ' '.join(formatted)
    return f"{prefix} {body}" if prefix else body


def normalize_for_comparison(value: str) -> str:
    """
    Comparison key: lower-case, no quotes, ё folded to е, legal-form
    tokens and punctuation removed, whitespace collapsed.
    """
    if not value:
        return ''
    text = _QUOTES.sub(' ', sanitize_counterparty_name(value).lower())
    text = text.replace('ё', 'е')
    text = _PUNCTUATION.sub(' ', text)
    return ' '.join(w for w in text.split() if w not in _LEGAL_TOKENS)
