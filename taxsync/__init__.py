"""TaxSync: driver CSV imports, receipt text extraction and CRA T2125 summaries."""

from .config import TaxConfig, get_default_config
from .csv_import import Platform, detect_platform, import_csv, parse_csv
from .dates import normalize_date
from .models import CanonicalExpenseReceipt, CanonicalTrip, ExtractionResult, TaxSummary, TripType
from .receipt_parser import ReceiptTextParser, parse_receipt_text
from .tax_summary import calculate_mileage_deduction, generate_tax_summary

__version__ = "1.0.0"

__all__ = [
    'TaxConfig',
    'get_default_config',
    'Platform',
    'detect_platform',
    'import_csv',
    'parse_csv',
    'normalize_date',
    'CanonicalExpenseReceipt',
    'CanonicalTrip',
    'ExtractionResult',
    'TaxSummary',
    'TripType',
    'ReceiptTextParser',
    'parse_receipt_text',
    'calculate_mileage_deduction',
    'generate_tax_summary',
]
