"""Annual tax summary aligned with CRA form T2125.

Aggregates receipts and mileage trips for one tax year into expense totals
per category, the CRA simplified mileage deduction and the sales taxes
estimated from total expenses.
"""

import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from .config import MileageRates, TaxConfig, get_default_config
from .dates import parse_local_date
from .models import (
    CanonicalExpenseReceipt,
    CanonicalTrip,
    CategoryTotal,
    ExpenseSummary,
    MileageSummary,
    SalesTaxSummary,
    SummaryTotals,
    TaxSummary,
    TripType,
    YearTotal,
)
from .utils import Clock, Number, quantize_money, round_km, round_to, to_decimal, utc_now

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def in_year(iso_date: Optional[str], year: int) -> bool:
    """Whether an ISO date falls in ``year``, read as a local calendar date."""
    parsed = parse_local_date(iso_date)
    return parsed is not None and parsed.year == year


def get_monthly_expenses(receipts: Iterable[CanonicalExpenseReceipt], year: int) -> List[Decimal]:
    """Expense totals for January..December of ``year``, in cents."""
    monthly = [ZERO] * 12
    for receipt in receipts:
        parsed = parse_local_date(receipt.expense.date)
        if parsed is not None and parsed.year == year:
            monthly[parsed.month - 1] += to_decimal(receipt.expense.amount)
    return [quantize_money(total) for total in monthly]


def get_monthly_mileage(trips: Iterable[CanonicalTrip], year: int) -> List[float]:
    """Kilometres driven per month of ``year``, business and personal together."""
    monthly = [Decimal(0)] * 12
    for trip in trips:
        parsed = parse_local_date(trip.date)
        if parsed is not None and parsed.year == year:
            monthly[parsed.month - 1] += to_decimal(trip.distance_km)
    return [round_km(km) for km in monthly]


def get_year_comparison(receipts: Iterable[CanonicalExpenseReceipt]) -> List[YearTotal]:
    """
    Expense total and receipt count per year, most recent year first.

    Receipts whose date cannot be read are left out.
    """
    years: Dict[int, YearTotal] = {}
    for receipt in receipts:
        parsed = parse_local_date(receipt.expense.date)
        if parsed is None:
            logger.debug(f"Receipt {receipt.id} has no readable date, left out of the year comparison")
            continue
        entry = years.setdefault(parsed.year, YearTotal(year=parsed.year))
        entry.total = quantize_money(entry.total + to_decimal(receipt.expense.amount))
        entry.count += 1
    return sorted(years.values(), key=lambda entry: entry.year, reverse=True)


def calculate_mileage_deduction(business_km: Number,
                                rates: Optional[MileageRates] = None,
                                include_territory_bonus: bool = False) -> Decimal:
    """
    CRA simplified-method vehicle deduction.

    Args:
        business_km: Business kilometres driven in the year
        rates: Tier rates (defaults to the packaged ones)
        include_territory_bonus: Add the per-km bonus for the territories

    Returns:
        Deduction in dollars, rounded to cents
    """
    rates = rates or get_default_config().mileage
    km = to_decimal(business_km or 0)
    if km <= 0:
        return ZERO

    first_tier = min(km, rates.tier_threshold_km)
    second_tier = max(Decimal(0), km - rates.tier_threshold_km)
    deduction = first_tier * rates.first_tier_rate + second_tier * rates.second_tier_rate

    if include_territory_bonus:
        deduction += km * rates.territory_bonus_rate

    return quantize_money(deduction)


def get_hst_rate(province: Optional[str], config: Optional[TaxConfig] = None) -> Decimal:
    """HST rate for a province, 0 where HST does not apply."""
    return (config or get_default_config()).hst_rate(province)


def summarize_expenses(receipts: Iterable[CanonicalExpenseReceipt], config: TaxConfig) -> ExpenseSummary:
    categories: Dict[str, CategoryTotal] = {
        category.key: CategoryTotal(label=category.label, label_fr=category.label_fr)
        for category in config.categories
    }

    total = ZERO
    count = 0
    for receipt in receipts:
        key = receipt.expense.category or 'other'
        if key not in categories:
            logger.debug(f"Receipt {receipt.id} has unregistered category '{key}'")
            categories[key] = CategoryTotal(label=key, label_fr=key)
        amount = quantize_money(receipt.expense.amount)
        categories[key].total += amount
        categories[key].count += 1
        total += amount
        count += 1

    return ExpenseSummary(categories=categories, total_expenses=quantize_money(total), receipt_count=count)


def summarize_mileage(trips: List[CanonicalTrip],
                      rates: MileageRates,
                      include_territory_bonus: bool = False) -> MileageSummary:
    business = [t for t in trips if t.trip_type is TripType.BUSINESS]
    personal = [t for t in trips if t.trip_type is TripType.PERSONAL]

    business_km = round_km(sum(to_decimal(t.distance_km) for t in business))
    personal_km = round_km(sum(to_decimal(t.distance_km) for t in personal))
    total_km = round_km(to_decimal(business_km) + to_decimal(personal_km))

    business_percent = 0.0
    if total_km > 0:
        business_percent = round_to(to_decimal(business_km) / to_decimal(total_km) * 100, 1)

    return MileageSummary(
        total_km=total_km,
        total_business_km=business_km,
        total_personal_km=personal_km,
        business_percent=business_percent,
        trip_count=len(trips),
        business_trip_count=len(business),
        personal_trip_count=len(personal),
        deduction=calculate_mileage_deduction(business_km, rates, include_territory_bonus),
    )


def estimate_sales_tax(total_expenses: Decimal, province: str, config: TaxConfig) -> SalesTaxSummary:
    """GST always; QST in Quebec; HST where the province charges it."""
    gst = quantize_money(total_expenses * config.gst_rate)
    qst = quantize_money(total_expenses * config.qst_rate_for(province))
    hst = quantize_money(total_expenses * config.hst_rate(province))
    return SalesTaxSummary(
        gst_paid=gst,
        qst_paid=qst,
        hst_paid=hst,
        total_tax_paid=quantize_money(gst + qst + hst),
    )


def generate_tax_summary(receipts: Iterable[CanonicalExpenseReceipt],
                         trips: Iterable[CanonicalTrip],
                         province: str,
                         year: int,
                         *,
                         config: Optional[TaxConfig] = None,
                         clock: Optional[Clock] = None,
                         include_territory_bonus: bool = False) -> TaxSummary:
    """
    Build the T2125 summary for one year.

    Args:
        receipts: All receipts; those outside ``year`` are ignored
        trips: All trips; those outside ``year`` are ignored
        province: Province or territory code, e.g. 'QC'
        year: Tax year
        config: Tax configuration (defaults to the packaged one)
        clock: Source of the ``generated_at`` timestamp
        include_territory_bonus: Apply the northern territory per-km bonus

    Returns:
        TaxSummary
    """
    config = config or get_default_config()
    clock = clock or utc_now
    province = config.normalize_province(province)

    year_receipts = [r for r in receipts if in_year(r.expense.date, year)]
    year_trips = [t for t in trips if in_year(t.date, year)]

    expenses = summarize_expenses(year_receipts, config)
    mileage = summarize_mileage(year_trips, config.mileage, include_territory_bonus)
    tax = estimate_sales_tax(expenses.total_expenses, province, config)

    summary = TaxSummary(
        year=year,
        province=province,
        expenses=expenses,
        mileage=mileage,
        tax=tax,
        totals=SummaryTotals(
            total_deductions=quantize_money(expenses.total_expenses + mileage.deduction),
            total_tax_credits=tax.total_tax_paid,
        ),
        generated_at=clock().isoformat(),
    )

    logger.info(f"Tax summary {year} {province}: {expenses.receipt_count} receipts, "
                f"{mileage.trip_count} trips, deductions ${summary.totals.total_deductions}")
    return summary


summarize = generate_tax_summary
