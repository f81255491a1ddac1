"""
Data Normalizers Module.

This module converts French-formatted strings into typed values:
    - Amounts ("1 234,56 €", "1.234,56", "1234.56")
    - Percentages ("20 %", "5,5%")
    - Dates ("05/03/24", "5-3-2024")

Every function is total: unparsable input gives None, never an exception.

Author: ML Engineering Team
"""

import re
from datetime import date
from typing import Optional, Union

from field_extraction.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)

Raw = Union[str, int, float, None]

# Currency markers removed before parsing
CURRENCY_PATTERN = re.compile(r'€|EUR\b|euros?\b', re.IGNORECASE)

# Regular, non-breaking, narrow non-breaking and thin spaces
SPACE_PATTERN = re.compile(r'[\s\u00a0\u202f\u2009]+')

# "." used as thousands separator: exactly three digits then a non-digit or end
DOT_THOUSANDS = re.compile(r'\.(?=\d{3}(?!\d))')

# "," used as thousands separator, same shape
COMMA_THOUSANDS = re.compile(r',(?=\d{3}(?!\d))')

# Trailing decimal comma
DECIMAL_COMMA = re.compile(r',(\d{1,2})$')

PLAIN_NUMBER = re.compile(r'^[+-]?\d+(?:\.\d+)?$')

DATE_PATTERN = re.compile(r'(?<!\d)(\d{1,2})[/-](\d{1,2})[/-](\d{2}|\d{4})(?!\d)')


def normalize_number(raw: Raw) -> Optional[float]:
    """
    Normalize a French-formatted amount to a float.

    Args:
        raw: Amount string, or a number read from a spreadsheet cell.

    Returns:
        The amount as float, or None if it cannot be parsed.

    Example:
        >>> normalize_number("1 234,56 €")
        1234.56
        >>> normalize_number("1234.56")
        1234.56
        >>> normalize_number("abc") is None
        True
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw)

    text = CURRENCY_PATTERN.sub('', str(raw))
    text = SPACE_PATTERN.sub('', text)
    if not text:
        return None

    text = DOT_THOUSANDS.sub('', text)
    text = DECIMAL_COMMA.sub(r'.\1', text)
    text = COMMA_THOUSANDS.sub('', text)

    if not PLAIN_NUMBER.match(text):
        logger.debug(f"Could not parse number: {raw!r}")
        return None
    return float(text)


def normalize_percentage(raw: Raw) -> Optional[float]:
    """
    Normalize a percentage string ("20 %", "5,5%") to a float.

    The [0, 100] bound is the caller's business.
    """
    if isinstance(raw, str):
        raw = raw.replace('%', '')
    return normalize_number(raw)


def normalize_date(raw: Optional[str]) -> Optional[str]:
    """
    Normalize a D/M/Y or D-M-Y date to ISO format.

    Two-digit years are read as 20YY. No other date grammar is accepted.

    Args:
        raw: String containing a date.

    Returns:
        "YYYY-MM-DD" string, or None.

    Example:
        >>> normalize_date("05/03/24")
        '2024-03-05'
        >>> normalize_date("31/02/2024") is None
        True
    """
    if not raw or not isinstance(raw, str):
        return None

    match = DATE_PATTERN.search(raw)
    if not match:
        return None

    day, month, year = (int(part) for part in match.groups())
    if len(match.group(3)) == 2:
        year += 2000

    try:
        return date(year, month, day).isoformat()
    except ValueError:
        logger.debug(f"Invalid calendar date: {raw!r}")
        return None
