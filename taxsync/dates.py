"""Date normalization for platform exports.

Platform CSVs disagree on date formats (ISO timestamps, US slashes,
"Jan 15, 2026", European day-first). ``normalize_date`` turns any of them
into an ISO ``YYYY-MM-DD`` string, trying formats in a fixed priority order.
"""

import logging
import re
from datetime import date, datetime
from typing import Optional

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

MONTHS = {
    'jan': 1, 'feb': 2, 'mar': 3, 'apr': 4, 'may': 5, 'jun': 6,
    'jul': 7, 'aug': 8, 'sep': 9, 'oct': 10, 'nov': 11, 'dec': 12,
}

_ISO = re.compile(r'^(\d{4})-(\d{2})-(\d{2})')
_MDY = re.compile(r'^(\d{1,2})/(\d{1,2})/(\d{4})')
_MONTH_FIRST = re.compile(r'^([A-Za-z]{3,})\.?\s+(\d{1,2}),?\s+(\d{4})')
_DAY_FIRST = re.compile(r'^(\d{1,2})\s+([A-Za-z]{3,})\.?,?\s+(\d{4})')
_DMY = re.compile(r'^(\d{1,2})[/.-](\d{1,2})[/.-](\d{4})')
_YEAR = re.compile(r'\d{4}')

# Fills fields dateutil cannot find so the fallback never depends on today.
_FALLBACK_DEFAULT = datetime(2000, 1, 1)


def build_date(year: int, month: int, day: int) -> Optional[str]:
    """ISO string for a real calendar date, None otherwise."""
    try:
        return date(year, month, day).isoformat()
    except (ValueError, TypeError):
        return None


def month_number(name: str) -> Optional[int]:
    return MONTHS.get(name[:3].lower()) if name else None


def normalize_date(value) -> Optional[str]:
    """
    Normalize a date string to ``YYYY-MM-DD``.

    Args:
        value: Raw date or datetime text from an export

    Returns:
        ISO date string, or None when the value is not a recognizable date
    """
    if not value or not isinstance(value, str):
        return None
    s = value.strip()
    if not s:
        return None

    match = _ISO.match(s)
    if match:
        return build_date(*(int(g) for g in match.groups()))

    match = _MDY.match(s)
    if match:
        month, day, year = (int(g) for g in match.groups())
        result = build_date(year, month, day)
        if result:
            return result

    match = _MONTH_FIRST.match(s)
    if match:
        month = month_number(match.group(1))
        if month:
            result = build_date(int(match.group(3)), month, int(match.group(2)))
            if result:
                return result

    match = _DAY_FIRST.match(s)
    if match:
        month = month_number(match.group(2))
        if month:
            result = build_date(int(match.group(3)), month, int(match.group(1)))
            if result:
                return result

    match = _DMY.match(s)
    if match:
        first, second, year = (int(g) for g in match.groups())
        result = build_date(year, second, first) or build_date(year, first, second)
        if result:
            return result

    return _fallback_parse(s)


def _fallback_parse(s: str) -> Optional[str]:
    # Without a four digit year dateutil happily reads "10:30" as a date.
    if not _YEAR.search(s):
        return None
    try:
        parsed = date_parser.parse(s, default=_FALLBACK_DEFAULT)
    except (ValueError, OverflowError) as e:
        logger.debug(f"Unrecognized date '{s}': {e}")
        return None
    return parsed.date().isoformat()


def parse_local_date(value) -> Optional[date]:
    """
    Read an ISO ``YYYY-MM-DD`` prefix as a calendar date.

    The year, month and day are taken from the string itself so a date is
    never shifted across midnight by a timezone conversion.
    """
    if not value:
        return None
    parts = str(value).strip()[:10].split('-')
    if len(parts) < 2:
        return None
    try:
        year = int(parts[0])
        month = int(parts[1])
        day = int(parts[2]) if len(parts) > 2 and parts[2] else 1
        return date(year, month, day)
    except (ValueError, TypeError):
        return None
