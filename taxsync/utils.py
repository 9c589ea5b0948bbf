"""Small helpers for ids, clocks, money and distance arithmetic."""

import re
import secrets
import string
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Callable, Optional, Union

from .errors import ParseError, ValidationError

Clock = Callable[[], datetime]
IdFactory = Callable[[str], str]
Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
TENTH = Decimal("0.1")
KM_PER_MILE = Decimal("1.60934")

_NUMBER_NOISE = re.compile(r"[$,\s]")
_ID_ALPHABET = string.ascii_lowercase + string.digits


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_id(prefix: str = "item", clock: Optional[Clock] = None) -> str:
    """Build an id like ``trip-1767225600000-k3j9x0q2a``."""
    now = (clock or utc_now)()
    millis = int(now.timestamp() * 1000)
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{prefix}-{millis}-{suffix}"


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def parse_number(value: Optional[str], field: Optional[str] = None) -> Decimal:
    """
    Parse a money or distance field exported by a platform.

    ``$``, thousands separators and whitespace are ignored. Empty values read
    as zero.

    Raises:
        ParseError: the value is not a finite number
    """
    if value is None:
        return Decimal("0")
    cleaned = _NUMBER_NOISE.sub("", str(value))
    if not cleaned:
        return Decimal("0")
    try:
        number = Decimal(cleaned)
    except InvalidOperation:
        raise ParseError(f"not a number: {value!r}", field=field, value=str(value))
    if not number.is_finite():
        raise ParseError(f"not a finite number: {value!r}", field=field, value=str(value))
    return number


def quantize_money(value: Number) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def round_to(value: Number, places: int = 1) -> float:
    """Half-up rounding done in Decimal so 2.675 does not become 2.67."""
    step = Decimal(1).scaleb(-places)
    return float(to_decimal(value).quantize(step, rounding=ROUND_HALF_UP))


def round_km(value: Number) -> float:
    return round_to(value, 1)


def miles_to_km(miles: Number) -> float:
    return round_km(to_decimal(miles) * KM_PER_MILE)


def truncate(text: Optional[str], max_len: int) -> str:
    if not text:
        return ""
    return text if len(text) <= max_len else text[:max_len - 1] + "…"


def retention_date(expense_date: str, years: int) -> str:
    """Last day a receipt must be kept: Dec 31 of its tax year plus ``years``."""
    try:
        year = int(str(expense_date)[:4])
    except ValueError:
        raise ValidationError(f"cannot compute retention for date {expense_date!r}", field="date")
    return date(year + years, 12, 31).isoformat()
