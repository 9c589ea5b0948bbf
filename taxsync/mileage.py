"""Mileage log helpers: business share, trip summary, CRA threshold checks."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .config import MileageRates
from .dates import parse_local_date
from .models import CanonicalTrip, TripType
from .tax_summary import calculate_mileage_deduction
from .utils import round_km, round_to, to_decimal

logger = logging.getLogger(__name__)

CRA_BUSINESS_THRESHOLD = 90


@dataclass
class TripSummary:
    total_km: float
    business_km: float
    personal_km: float
    business_percent: float
    total_trips: int
    business_trip_count: int
    personal_trip_count: int
    estimated_deduction: Decimal


@dataclass
class ThresholdCheck:
    exceeds_threshold: bool
    business_percent: float
    threshold: float


def _km(trips: Iterable[CanonicalTrip]) -> Decimal:
    return sum((to_decimal(t.distance_km) for t in trips), Decimal(0))


def calculate_business_percentage(trips: List[CanonicalTrip]) -> float:
    """Share of kilometres driven for business, to 2 decimals."""
    total = _km(trips)
    if total == 0:
        return 0.0
    business = _km(t for t in trips if t.is_business_trip)
    return round_to(business / total * 100, 2)


def get_trip_summary(trips: List[CanonicalTrip], rates: Optional[MileageRates] = None) -> TripSummary:
    business = [t for t in trips if t.is_business_trip]
    personal = [t for t in trips if not t.is_business_trip]
    business_km = _km(business)
    personal_km = _km(personal)

    return TripSummary(
        total_km=round_km(business_km + personal_km),
        business_km=round_km(business_km),
        personal_km=round_km(personal_km),
        business_percent=calculate_business_percentage(trips),
        total_trips=len(trips),
        business_trip_count=len(business),
        personal_trip_count=len(personal),
        estimated_deduction=calculate_mileage_deduction(business_km, rates),
    )


def get_last_odometer_reading(trips: List[CanonicalTrip]) -> float:
    """End odometer of the most recent trip, 0 for an empty log."""
    dated = [t for t in trips if parse_local_date(t.date) is not None]
    if not dated:
        return 0.0
    latest = max(dated, key=lambda t: parse_local_date(t.date))
    return latest.end_odometer


def check_cra_threshold(business_percent: float, threshold: float = CRA_BUSINESS_THRESHOLD) -> ThresholdCheck:
    """Flag logs claiming more business use than the CRA usually accepts without scrutiny."""
    return ThresholdCheck(
        exceeds_threshold=business_percent > threshold,
        business_percent=business_percent,
        threshold=threshold,
    )


def _legacy_flags(record: Dict[str, Any]) -> Tuple[Optional[str], Optional[bool]]:
    is_business = record.get('is_business_trip', record.get('isBusinessTrip'))
    return record.get('type'), None if is_business is None else bool(is_business)


def reconcile_trip_records(records: Iterable[Dict[str, Any]]) -> Tuple[List[CanonicalTrip], List[str]]:
    """
    Load stored trip dicts into CanonicalTrip, unifying the two business flags.

    Older records carry both ``is_business_trip`` and ``type``. The ``type``
    tag wins when valid; every record whose flags disagree is reported.

    Returns:
        (trips, ids of records whose flags disagreed)
    """
    trips = []
    divergent = []
    for record in records:
        type_tag, is_business = _legacy_flags(record)
        if type_tag in (TripType.BUSINESS.value, TripType.PERSONAL.value) and is_business is not None:
            if (type_tag == TripType.BUSINESS.value) != is_business:
                divergent.append(record.get('id', ''))
                logger.warning(f"Trip {record.get('id')} has type='{type_tag}' "
                               f"but is_business_trip={is_business}; using type")

        data = dict(record)
        if 'is_business_trip' not in data and is_business is not None:
            data['is_business_trip'] = is_business
        trips.append(CanonicalTrip.from_dict(data))

    if divergent:
        logger.warning(f"{len(divergent)} of {len(trips)} trips had conflicting business flags")
    return trips, divergent
