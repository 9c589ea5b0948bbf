"""Tests for flexible date normalization."""

from datetime import date

import pytest

from taxsync.dates import build_date, normalize_date, parse_local_date


class TestNormalizeDate:
    """Test suite for normalize_date."""

    @pytest.mark.parametrize("value,expected", [
        ("2026-01-15", "2026-01-15"),
        ("2026-01-15T08:30:00Z", "2026-01-15"),
        ("2026-01-15 23:59:59", "2026-01-15"),
        ("1/5/2026", "2026-01-05"),
        ("12/31/2026 10:15 PM", "2026-12-31"),
        ("Jan 15, 2026", "2026-01-15"),
        ("january 15 2026", "2026-01-15"),
        ("Sept. 3, 2026", "2026-09-03"),
        ("15 March 2026", "2026-03-15"),
        ("25/12/2026", "2026-12-25"),
        ("25.12.2026", "2026-12-25"),
        ("25-12-2026", "2026-12-25"),
    ])
    def test_known_formats(self, value, expected):
        """Test each supported format."""
        assert normalize_date(value) == expected

    def test_month_day_preferred_for_slashes(self):
        """Test an ambiguous slash date is read month-first."""
        assert normalize_date("03/04/2026") == "2026-03-04"

    def test_day_first_with_dots(self):
        """Test dotted dates are read day-first."""
        assert normalize_date("03.04.2026") == "2026-04-03"

    def test_generic_fallback(self):
        """Test formats outside the fixed list still parse when they carry a year."""
        assert normalize_date("Sun, 15 Mar 2026 10:00:00") == "2026-03-15"
        assert normalize_date("2026 March 15") == "2026-03-15"

    @pytest.mark.parametrize("value", [
        None, "", "   ", 20260115, "not a date", "10:30", "2026-02-30", "13/13/2026",
    ])
    def test_invalid_input(self, value):
        """Test unusable values return None instead of raising."""
        assert normalize_date(value) is None

    def test_leap_day(self):
        """Test Feb 29 is only accepted in leap years."""
        assert normalize_date("2028-02-29") == "2028-02-29"
        assert normalize_date("2026-02-29") is None


class TestDateHelpers:
    """Test suite for build_date and parse_local_date."""

    def test_build_date(self):
        """Test real and impossible dates."""
        assert build_date(2026, 2, 28) == "2026-02-28"
        assert build_date(2026, 2, 31) is None

    def test_parse_local_date_ignores_timezone(self):
        """Test the calendar date is read from the string, not shifted to UTC."""
        assert parse_local_date("2026-12-31T23:30:00-05:00") == date(2026, 12, 31)

    def test_parse_local_date_invalid(self):
        """Test invalid values give None."""
        assert parse_local_date("") is None
        assert parse_local_date("garbage") is None
        assert parse_local_date(None) is None
