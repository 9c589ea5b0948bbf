"""Field-level checks for receipts and trips entered or edited by the user."""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, List, Mapping, Optional

from .config import TaxConfig, get_default_config
from .dates import parse_local_date

logger = logging.getLogger(__name__)


@dataclass
class ValidationOutcome:
    is_valid: bool
    errors: List[str] = field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: List[str]) -> "ValidationOutcome":
        return cls(is_valid=not errors, errors=errors)


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _number(value: Any) -> Optional[Decimal]:
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return number if number.is_finite() else None


def validate_receipt(receipt: Mapping[str, Any],
                     today: Optional[date] = None,
                     config: Optional[TaxConfig] = None) -> ValidationOutcome:
    """
    Check a receipt form before it is saved.

    Args:
        receipt: Mapping with amount, date, category and vendor
        today: Reference date for the "not in the future" rule
        config: Supplies the category registry

    Returns:
        ValidationOutcome listing every problem found
    """
    config = config or get_default_config()
    today = today or date.today()
    errors = []

    amount = receipt.get('amount')
    if amount is None or amount == '':
        errors.append('Amount is required')
    else:
        number = _number(amount)
        if number is None or number <= 0:
            errors.append('Amount must be a positive number')

    receipt_date = receipt.get('date')
    if not receipt_date:
        errors.append('Date is required')
    else:
        parsed = parse_local_date(receipt_date)
        if parsed is None:
            errors.append('Invalid date')
        elif parsed > today:
            errors.append('Date cannot be in the future')

    category = receipt.get('category')
    if category and category not in config.categories:
        errors.append('Invalid category')

    vendor = receipt.get('vendor')
    if vendor is not None and vendor != '':
        if not isinstance(vendor, str) or not vendor.strip():
            errors.append('Vendor must be a non-empty string')

    if errors:
        logger.debug(f"Receipt failed validation: {errors}")
    return ValidationOutcome.from_errors(errors)


def validate_trip(trip: Mapping[str, Any]) -> ValidationOutcome:
    """Check a trip form: required text fields and consistent odometer readings."""
    errors = []

    if not trip.get('date'):
        errors.append('Date is required')
    if _blank(trip.get('destination')):
        errors.append('Destination is required')
    if _blank(trip.get('purpose')):
        errors.append('Purpose is required')

    start = _number(trip.get('start_odometer'))
    end = _number(trip.get('end_odometer'))

    if start is None or start < 0:
        errors.append('Start odometer must be a non-negative number')
    if end is None or end < 0:
        errors.append('End odometer must be a non-negative number')
    if start is not None and end is not None and end <= start:
        errors.append('End odometer must be greater than start odometer')

    if errors:
        logger.debug(f"Trip failed validation: {errors}")
    return ValidationOutcome.from_errors(errors)
