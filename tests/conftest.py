"""Shared fixtures: a fixed clock, predictable ids and record builders."""

from datetime import datetime, timezone
from itertools import count

import pytest

from taxsync.config import get_default_config
from taxsync.models import CanonicalExpenseReceipt, CanonicalTrip, ExpenseDetails, ReceiptMetadata, TripType

FIXED_NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def fixed_clock():
    return FIXED_NOW


class SequentialIds:
    """id_factory producing trip-1, receipt-2, ..."""

    def __init__(self):
        self._counter = count(1)

    def __call__(self, prefix: str) -> str:
        return f"{prefix}-{next(self._counter)}"


@pytest.fixture
def clock():
    return fixed_clock


@pytest.fixture
def id_factory():
    return SequentialIds()


@pytest.fixture
def config():
    return get_default_config()


def build_receipt(receipt_id, date, amount, category="other", vendor=""):
    return CanonicalExpenseReceipt(
        id=receipt_id,
        timestamp=FIXED_NOW.isoformat(),
        expense=ExpenseDetails(date=date, amount=amount, vendor=vendor, category=category),
        metadata=ReceiptMetadata(uploaded_at=FIXED_NOW.isoformat(), retain_until="2032-12-31"),
    )


def build_trip(trip_id, date, distance_km, business=True, start=0.0, end=0.0):
    return CanonicalTrip(
        id=trip_id,
        date=date,
        destination="Downtown",
        purpose="Rideshare",
        distance_km=distance_km,
        trip_type=TripType.BUSINESS if business else TripType.PERSONAL,
        start_odometer=start,
        end_odometer=end,
    )


@pytest.fixture
def make_receipt():
    return build_receipt


@pytest.fixture
def make_trip():
    return build_trip
