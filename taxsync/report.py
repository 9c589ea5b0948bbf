"""Plain-text rendering of a TaxSummary, in English or French."""

from decimal import Decimal
from typing import Optional

from .config import TaxConfig, get_default_config
from .models import TaxSummary

SEPARATOR = '─' * 44

LABELS = {
    'en': {
        'title': 'TAX SUMMARY REPORT {year}',
        'generated': 'Generated',
        'expenses': '═══ EXPENSES BY CATEGORY (T2125) ═══',
        'receipts': 'receipts',
        'total_expenses': 'TOTAL EXPENSES',
        'receipt_count': 'Receipt count',
        'mileage': '═══ MILEAGE ═══',
        'business_km': 'Business km',
        'personal_km': 'Personal km',
        'total_km': 'Total km',
        'business_percent': 'Business %',
        'deduction': 'Deduction (CRA simplified)',
        'taxes': '═══ TAXES PAID ═══',
        'gst': 'GST ({rate}%)',
        'qst': 'QST ({rate}%)',
        'total_tax': 'Total tax paid',
        'summary': '═══ SUMMARY ═══',
        'total_deductions': 'Total deductions',
        'tax_credits': 'Tax credits (ITC)',
        'footer': 'TaxSync for Drivers - T2125 Report',
    },
    'fr': {
        'title': 'RAPPORT FISCAL {year}',
        'generated': 'Généré le',
        'expenses': '═══ DÉPENSES PAR CATÉGORIE (T2125) ═══',
        'receipts': 'reçus',
        'total_expenses': 'TOTAL DES DÉPENSES',
        'receipt_count': 'Nombre de reçus',
        'mileage': '═══ KILOMÉTRAGE ═══',
        'business_km': 'Km affaires',
        'personal_km': 'Km personnel',
        'total_km': 'Km total',
        'business_percent': '% affaires',
        'deduction': 'Déduction (méthode simplifiée ARC)',
        'taxes': '═══ TAXES PAYÉES ═══',
        'gst': 'TPS ({rate}%)',
        'qst': 'TVQ ({rate}%)',
        'total_tax': 'Total taxes payées',
        'summary': '═══ RÉSUMÉ ═══',
        'total_deductions': 'Total des déductions',
        'tax_credits': 'Crédits de taxe (CTI)',
        'footer': 'TaxSync for Drivers - Rapport T2125',
    },
}


def currency(value: Decimal) -> str:
    return f"${value:.2f}"


def percent(rate: Decimal, language: str = 'en') -> str:
    """0.09975 -> '9.975', or '9,975' in French."""
    text = f"{(rate * 100).normalize():f}"
    return text.replace('.', ',') if language == 'fr' else text


def format_tax_report(summary: TaxSummary, language: str = 'en',
                      config: Optional[TaxConfig] = None) -> str:
    """
    Render a summary as a plain-text report.

    In HST provinces only the HST line is shown; the GST and QST values stay
    in the summary itself. The GST and QST labels show the rates of
    ``config`` (the packaged one by default).
    """
    config = config or get_default_config()
    fr = language == 'fr'
    t = LABELS['fr' if fr else 'en']

    lines = [
        t['title'].format(year=summary.year),
        f"Province: {summary.province}",
        f"{t['generated']}: {summary.generated_at[:10]}",
        SEPARATOR,
        '',
        t['expenses'],
        '',
    ]

    for category in summary.expenses.categories.values():
        if category.count > 0:
            label = category.label_fr if fr else category.label
            lines.append(f"  {label}: {currency(category.total)} ({category.count} {t['receipts']})")

    lines += [
        '',
        f"  {t['total_expenses']}: {currency(summary.expenses.total_expenses)}",
        f"  {t['receipt_count']}: {summary.expenses.receipt_count}",
        '',
        SEPARATOR,
        '',
        t['mileage'],
        '',
        f"  {t['business_km']}: {summary.mileage.total_business_km} km",
        f"  {t['personal_km']}: {summary.mileage.total_personal_km} km",
        f"  {t['total_km']}: {summary.mileage.total_km} km",
        f"  {t['business_percent']}: {summary.mileage.business_percent}%",
        f"  {t['deduction']}: {currency(summary.mileage.deduction)}",
        '',
        SEPARATOR,
        '',
        t['taxes'],
        '',
    ]

    if summary.tax.hst_paid > 0:
        lines.append(f"  HST: {currency(summary.tax.hst_paid)}")
    else:
        gst_label = t['gst'].format(rate=percent(config.gst_rate, language))
        lines.append(f"  {gst_label}: {currency(summary.tax.gst_paid)}")
        if summary.tax.qst_paid > 0:
            qst_label = t['qst'].format(rate=percent(config.qst_rate, language))
            lines.append(f"  {qst_label}: {currency(summary.tax.qst_paid)}")

    lines += [
        f"  {t['total_tax']}: {currency(summary.tax.total_tax_paid)}",
        '',
        SEPARATOR,
        '',
        t['summary'],
        '',
        f"  {t['total_deductions']}: {currency(summary.totals.total_deductions)}",
        f"  {t['tax_credits']}: {currency(summary.totals.total_tax_credits)}",
        '',
        SEPARATOR,
        t['footer'],
    ]
    return '\n'.join(lines)
