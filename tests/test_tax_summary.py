"""Tests for the annual T2125 tax summary."""

import logging
from decimal import Decimal

import pytest

from taxsync.config import MileageRates
from taxsync.tax_summary import (
    calculate_mileage_deduction,
    generate_tax_summary,
    get_hst_rate,
    get_monthly_expenses,
    get_monthly_mileage,
    get_year_comparison,
    in_year,
    summarize,
)


class TestMileageDeduction:
    """Test suite for the CRA simplified-method deduction."""

    @pytest.mark.parametrize("km,expected", [
        (0, "0.00"),
        (-10, "0.00"),
        (100, "70.00"),
        (5000, "3500.00"),
        (8000, "5420.00"),
        (1234.5, "864.15"),
    ])
    def test_tiers(self, km, expected):
        """Test both rate tiers."""
        assert calculate_mileage_deduction(km) == Decimal(expected)

    def test_monotonic(self):
        """Test more kilometres never lower the deduction."""
        values = [calculate_mileage_deduction(km) for km in range(0, 12000, 250)]
        assert values == sorted(values)

    def test_territory_bonus(self):
        """Test the per-km northern bonus."""
        assert calculate_mileage_deduction(1000, include_territory_bonus=True) == Decimal("740.00")

    def test_custom_rates(self):
        """Test rates come from the supplied table."""
        rates = MileageRates(first_tier_rate=Decimal("1"), second_tier_rate=Decimal("0.5"),
                             tier_threshold_km=Decimal("10"))
        assert calculate_mileage_deduction(20, rates) == Decimal("15.00")


class TestHstRate:
    """Test suite for get_hst_rate."""

    @pytest.mark.parametrize("province,rate", [
        ("ON", "0.13"),
        ("on", "0.13"),
        ("NS", "0.15"),
        ("QC", "0"),
        ("AB", "0"),
    ])
    def test_rates(self, province, rate):
        """Test HST and non-HST provinces."""
        assert get_hst_rate(province) == Decimal(rate)

    def test_unknown_province(self, caplog):
        """Test an unknown code gives 0 and a warning."""
        with caplog.at_level(logging.WARNING):
            assert get_hst_rate("ZZ") == Decimal("0")
        assert "Unknown province code" in caplog.text


class TestInYear:
    """Test suite for in_year."""

    def test_calendar_date(self):
        """Test dates on the year boundary stay in their local year."""
        assert in_year("2026-01-01", 2026)
        assert in_year("2026-12-31", 2026)
        assert not in_year("2025-12-31", 2026)

    def test_invalid(self):
        """Test missing and malformed dates are never in a year."""
        assert not in_year(None, 2026)
        assert not in_year("not a date", 2026)


class TestGenerateTaxSummary:
    """Test suite for generate_tax_summary."""

    @pytest.fixture(autouse=True)
    def _records(self, clock, make_receipt, make_trip):
        self.clock = clock
        self.receipts = [
            make_receipt("r1", "2026-01-10", "600.00", "fuel"),
            make_receipt("r2", "2026-02-11", "300.00", "fuel"),
            make_receipt("r3", "2026-03-12", "100.00", "telephone"),
            make_receipt("r4", "2025-12-31", "999.00", "fuel"),
        ]
        self.trips = [
            make_trip("t1", "2026-01-10", 300.0),
            make_trip("t2", "2026-01-11", 100.0, business=False),
            make_trip("t3", "2025-06-01", 5000.0),
        ]

    def run(self, province="QC", **kwargs):
        return generate_tax_summary(self.receipts, self.trips, province, 2026, clock=self.clock, **kwargs)

    def test_expense_totals(self):
        """Test category totals and the grand total for the year."""
        summary = self.run()

        assert summary.expenses.total_expenses == Decimal("1000.00")
        assert summary.expenses.receipt_count == 3
        assert summary.expenses.categories["fuel"].total == Decimal("900.00")
        assert summary.expenses.categories["fuel"].count == 2
        assert summary.expenses.categories["telephone"].count == 1

    def test_category_totals_add_up(self):
        """Test the categories sum to the total."""
        summary = self.run()
        total = sum(c.total for c in summary.expenses.categories.values())
        assert total == summary.expenses.total_expenses

    def test_all_categories_present(self, config):
        """Test every registered category appears, even when empty."""
        summary = self.run()
        assert list(summary.expenses.categories)[:len(config.categories)] == config.categories.keys()
        assert summary.expenses.categories["insurance"].total == Decimal("0.00")

    def test_unregistered_category_kept(self, make_receipt):
        """Test a receipt with a foreign category is still counted."""
        self.receipts.append(make_receipt("r5", "2026-04-01", "50.00", "parking"))
        summary = self.run()

        assert summary.expenses.categories["parking"].total == Decimal("50.00")
        assert summary.expenses.categories["parking"].label == "parking"
        assert summary.expenses.total_expenses == Decimal("1050.00")

    def test_quebec_taxes(self):
        """Test GST and QST estimates for Quebec."""
        tax = self.run("QC").tax

        assert tax.gst_paid == Decimal("50.00")
        assert tax.qst_paid == Decimal("99.75")
        assert tax.hst_paid == Decimal("0.00")
        assert tax.total_tax_paid == Decimal("149.75")

    def test_ontario_taxes(self):
        """Test HST is estimated alongside GST in Ontario."""
        tax = self.run("ON").tax

        assert tax.gst_paid == Decimal("50.00")
        assert tax.qst_paid == Decimal("0.00")
        assert tax.hst_paid == Decimal("130.00")

    def test_unknown_province(self, caplog):
        """Test an unknown province only gets GST."""
        with caplog.at_level(logging.WARNING):
            summary = self.run("XX")
        assert summary.tax.hst_paid == Decimal("0.00")
        assert summary.tax.qst_paid == Decimal("0.00")
        assert "Unknown province code" in caplog.text

    def test_mileage(self):
        """Test the year's trips feed the mileage summary."""
        mileage = self.run().mileage

        assert mileage.total_km == 400.0
        assert mileage.total_business_km == 300.0
        assert mileage.total_personal_km == 100.0
        assert mileage.business_percent == 75.0
        assert mileage.trip_count == 2
        assert mileage.business_trip_count == 1
        assert mileage.personal_trip_count == 1
        assert mileage.deduction == Decimal("210.00")

    def test_territory_bonus(self):
        """Test the bonus flag reaches the deduction."""
        assert self.run("NT", include_territory_bonus=True).mileage.deduction == Decimal("222.00")

    def test_totals(self):
        """Test deductions and credits."""
        summary = self.run()

        assert summary.totals.total_deductions == Decimal("1210.00")
        assert summary.totals.total_tax_credits == Decimal("149.75")

    def test_metadata(self):
        """Test year, normalized province and timestamp."""
        summary = self.run(" qc ")

        assert summary.year == 2026
        assert summary.province == "QC"
        assert summary.generated_at == "2026-03-01T12:00:00+00:00"

    def test_empty_year(self):
        """Test a year without records."""
        summary = generate_tax_summary([], [], "AB", 2026, clock=self.clock)

        assert summary.expenses.total_expenses == Decimal("0.00")
        assert summary.mileage.business_percent == 0.0
        assert summary.mileage.deduction == Decimal("0.00")
        assert summary.tax.total_tax_paid == Decimal("0.00")

    def test_to_dict(self):
        """Test the summary serializes money as strings."""
        data = self.run().to_dict()

        assert data["tax"]["qst_paid"] == "99.75"
        assert data["expenses"]["categories"]["fuel"]["total"] == "900.00"
        assert data["mileage"]["deduction"] == "210.00"

    def test_summarize_alias(self):
        """Test the short name."""
        assert summarize is generate_tax_summary


class TestMonthlyTotals:
    """Test suite for the per-month and per-year aggregations."""

    @pytest.fixture(autouse=True)
    def _records(self, make_receipt, make_trip):
        self.receipts = [
            make_receipt("r1", "2026-01-31", "10.10"),
            make_receipt("r2", "2026-01-01", "0.20"),
            make_receipt("r3", "2026-12-15", "5.00"),
            make_receipt("r4", "2025-12-31", "99.00"),
            make_receipt("r5", "", "7.00"),
        ]
        self.trips = [
            make_trip("t1", "2026-03-01", 12.3),
            make_trip("t2", "2026-03-31", 0.1, business=False),
            make_trip("t3", "2025-03-10", 50.0),
        ]

    def test_monthly_expenses(self):
        """Test twelve cent-rounded totals, only for the requested year."""
        monthly = get_monthly_expenses(self.receipts, 2026)

        assert len(monthly) == 12
        assert monthly[0] == Decimal("10.30")
        assert monthly[11] == Decimal("5.00")
        assert sum(monthly) == Decimal("15.30")

    def test_first_of_month_not_shifted(self, make_receipt):
        """Test a first-of-month date stays in its own month."""
        monthly = get_monthly_expenses([make_receipt("r1", "2026-02-01", "1.00")], 2026)
        assert monthly[1] == Decimal("1.00")
        assert monthly[0] == Decimal("0.00")

    def test_monthly_mileage(self):
        """Test business and personal km are both counted, to one decimal."""
        monthly = get_monthly_mileage(self.trips, 2026)

        assert len(monthly) == 12
        assert monthly[2] == 12.4
        assert monthly.count(0.0) == 11

    def test_empty_year(self):
        """Test a year without records gives zeros."""
        assert get_monthly_expenses(self.receipts, 2030) == [Decimal("0.00")] * 12
        assert get_monthly_mileage([], 2026) == [0.0] * 12

    def test_year_comparison(self):
        """Test years are listed most recent first with totals and counts."""
        years = get_year_comparison(self.receipts)

        assert [y.year for y in years] == [2026, 2025]
        assert years[0].total == Decimal("15.30")
        assert years[0].count == 3
        assert (years[1].total, years[1].count) == (Decimal("99.00"), 1)
