"""Tests for mileage log helpers."""

import logging
from decimal import Decimal

import pytest

from taxsync.mileage import (
    calculate_business_percentage,
    check_cra_threshold,
    get_last_odometer_reading,
    get_trip_summary,
    reconcile_trip_records,
)
from taxsync.models import TripType


class TestBusinessPercentage:
    """Test suite for calculate_business_percentage."""

    def test_mixed_log(self, make_trip):
        """Test the share is computed from kilometres, not trip counts."""
        trips = [make_trip("t1", "2026-01-01", 200.0),
                 make_trip("t2", "2026-01-02", 100.0, business=False)]
        assert calculate_business_percentage(trips) == 66.67

    def test_empty_log(self):
        """Test no trips gives 0."""
        assert calculate_business_percentage([]) == 0.0

    def test_bounds(self, make_trip):
        """Test all-business and all-personal logs."""
        assert calculate_business_percentage([make_trip("t1", "2026-01-01", 5.0)]) == 100.0
        assert calculate_business_percentage([make_trip("t1", "2026-01-01", 5.0, business=False)]) == 0.0


class TestTripSummary:
    """Test suite for get_trip_summary."""

    def test_summary(self, make_trip):
        """Test totals, counts and the deduction."""
        trips = [
            make_trip("t1", "2026-01-01", 12.3),
            make_trip("t2", "2026-01-02", 7.7),
            make_trip("t3", "2026-01-03", 5.0, business=False),
        ]
        summary = get_trip_summary(trips)

        assert summary.total_km == 25.0
        assert summary.business_km == 20.0
        assert summary.personal_km == 5.0
        assert summary.business_percent == 80.0
        assert summary.total_trips == 3
        assert summary.business_trip_count == 2
        assert summary.personal_trip_count == 1
        assert summary.estimated_deduction == Decimal("14.00")

    def test_empty(self):
        """Test an empty log."""
        summary = get_trip_summary([])
        assert summary.total_km == 0.0
        assert summary.estimated_deduction == Decimal("0.00")


class TestOdometer:
    """Test suite for get_last_odometer_reading."""

    def test_latest_trip_by_date(self, make_trip):
        """Test the most recent trip wins, regardless of list order."""
        trips = [
            make_trip("t1", "2026-02-01", 10.0, start=1000, end=1010),
            make_trip("t2", "2026-03-01", 10.0, start=1010, end=1020),
            make_trip("t3", "2026-01-01", 10.0, start=990, end=1000),
        ]
        assert get_last_odometer_reading(trips) == 1020

    def test_empty_log(self):
        """Test no trips gives 0."""
        assert get_last_odometer_reading([]) == 0.0


class TestCraThreshold:
    """Test suite for check_cra_threshold."""

    @pytest.mark.parametrize("percent,exceeds", [
        (50.0, False),
        (90.0, False),
        (90.1, True),
        (100.0, True),
    ])
    def test_default_threshold(self, percent, exceeds):
        """Test only shares strictly above 90% are flagged."""
        check = check_cra_threshold(percent)
        assert check.exceeds_threshold is exceeds
        assert check.threshold == 90

    def test_custom_threshold(self):
        """Test a caller-supplied threshold."""
        assert check_cra_threshold(80.0, threshold=75).exceeds_threshold


class TestReconcileTripRecords:
    """Test suite for reconcile_trip_records."""

    def test_type_wins(self, caplog):
        """Test the type tag decides and the disagreement is reported."""
        records = [{'id': 't1', 'date': '2026-01-01', 'distance_km': 10,
                    'type': 'personal', 'is_business_trip': True}]
        with caplog.at_level(logging.WARNING):
            trips, divergent = reconcile_trip_records(records)

        assert trips[0].trip_type is TripType.PERSONAL
        assert divergent == ['t1']
        assert "conflicting business flags" in caplog.text

    def test_boolean_only(self):
        """Test records with only the legacy boolean."""
        trips, divergent = reconcile_trip_records([
            {'id': 't1', 'distance_km': 3, 'is_business_trip': False},
            {'id': 't2', 'distance_km': 3, 'isBusinessTrip': True},
        ])
        assert [t.trip_type for t in trips] == [TripType.PERSONAL, TripType.BUSINESS]
        assert divergent == []

    def test_agreeing_flags(self):
        """Test consistent records are not reported."""
        trips, divergent = reconcile_trip_records([
            {'id': 't1', 'distance_km': 3, 'type': 'business', 'is_business_trip': True},
        ])
        assert trips[0].is_business_trip
        assert divergent == []

    def test_no_flags_default_business(self):
        """Test records without any flag count as business."""
        trips, _ = reconcile_trip_records([{'id': 't1', 'distance': 4.25}])
        assert trips[0].trip_type is TripType.BUSINESS
        assert trips[0].distance_km == 4.3
