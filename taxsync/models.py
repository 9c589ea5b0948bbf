"""Canonical trip, receipt, extraction and summary records."""

import logging
from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional

from .config import FALLBACK_CATEGORY, LEGACY_CATEGORY_MAP
from .errors import ValidationError
from .utils import quantize_money, round_km, to_decimal

logger = logging.getLogger(__name__)


def _record_id(data: Any) -> str:
    return repr(data.get('id')) if isinstance(data, dict) else f"of type {type(data).__name__}"


class TripType(str, Enum):
    BUSINESS = "business"
    PERSONAL = "personal"

    @classmethod
    def from_flags(cls, type_tag: Optional[str], is_business: Optional[bool]) -> "TripType":
        """
        Resolve a trip's classification from legacy records.

        ``type`` is used when it holds a known value, the boolean otherwise.
        Records carrying neither default to business.
        """
        if type_tag in (cls.BUSINESS.value, cls.PERSONAL.value):
            return cls(type_tag)
        if is_business is not None:
            return cls.BUSINESS if is_business else cls.PERSONAL
        return cls.BUSINESS


def _money_str(value: Optional[Decimal]) -> Optional[str]:
    return None if value is None else str(value)


@dataclass
class CanonicalTrip:
    """A single trip in the mileage log."""
    id: str
    date: str
    destination: str
    purpose: str
    distance_km: float
    trip_type: TripType = TripType.BUSINESS
    start_odometer: float = 0.0
    end_odometer: float = 0.0
    client_name: str = ""
    notes: str = ""
    source: str = "manual"
    created_at: str = ""

    def __post_init__(self):
        if self.distance_km is None or self.distance_km < 0:
            raise ValueError(f"distance_km must be non-negative, got {self.distance_km}")
        self.distance_km = round_km(self.distance_km)
        self.trip_type = TripType(self.trip_type)

    @property
    def is_business_trip(self) -> bool:
        return self.trip_type is TripType.BUSINESS

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'date': self.date,
            'destination': self.destination,
            'purpose': self.purpose,
            'start_odometer': self.start_odometer,
            'end_odometer': self.end_odometer,
            'distance_km': self.distance_km,
            'is_business_trip': self.is_business_trip,
            'type': self.trip_type.value,
            'client_name': self.client_name,
            'notes': self.notes,
            'source': self.source,
            'created_at': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CanonicalTrip":
        """
        Rebuild a trip from its stored form.

        Raises:
            ValidationError: the record is missing its id or holds a non-numeric distance
        """
        try:
            distance = data.get('distance_km', data.get('distance', 0)) or 0
            return cls(
                id=data['id'],
                date=data.get('date', ''),
                destination=data.get('destination', ''),
                purpose=data.get('purpose', ''),
                distance_km=float(distance),
                trip_type=TripType.from_flags(data.get('type'), data.get('is_business_trip')),
                start_odometer=float(data.get('start_odometer') or 0),
                end_odometer=float(data.get('end_odometer') or 0),
                client_name=data.get('client_name', ''),
                notes=data.get('notes', ''),
                source=data.get('source', 'manual'),
                created_at=data.get('created_at', ''),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Invalid trip record {_record_id(data)}: {e}", field='trips') from e


@dataclass
class ExpenseDetails:
    date: str
    amount: Decimal
    vendor: str = ""
    category: str = "other"
    description: str = ""

    def __post_init__(self):
        self.amount = quantize_money(self.amount)
        if self.amount < 0:
            raise ValueError(f"amount must be non-negative, got {self.amount}")


@dataclass
class ReceiptMetadata:
    uploaded_at: str
    retain_until: str
    audit_status: str = "active"
    source: str = "manual"


@dataclass
class CanonicalExpenseReceipt:
    """An expense receipt as handed to the persistence layer."""
    id: str
    timestamp: str
    expense: ExpenseDetails
    metadata: ReceiptMetadata

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'timestamp': self.timestamp,
            'expense': {
                'date': self.expense.date,
                'amount': str(self.expense.amount),
                'vendor': self.expense.vendor,
                'category': self.expense.category,
                'description': self.expense.description,
            },
            'metadata': {
                'uploaded_at': self.metadata.uploaded_at,
                'retain_until': self.metadata.retain_until,
                'audit_status': self.metadata.audit_status,
                'source': self.metadata.source,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CanonicalExpenseReceipt":
        """
        Rebuild a receipt from its stored form.

        Categories saved by older versions ('Gas', 'Parking', ...) are mapped
        to the current keys.

        Raises:
            ValidationError: the record is missing its id or holds an invalid amount
        """
        try:
            expense = data.get('expense') or {}
            metadata = data.get('metadata') or {}
            category = expense.get('category') or FALLBACK_CATEGORY
            return cls(
                id=data['id'],
                timestamp=data.get('timestamp', ''),
                expense=ExpenseDetails(
                    date=expense.get('date', ''),
                    amount=to_decimal(expense.get('amount') or 0),
                    vendor=expense.get('vendor', ''),
                    category=LEGACY_CATEGORY_MAP.get(category, category),
                    description=expense.get('description', ''),
                ),
                metadata=ReceiptMetadata(
                    uploaded_at=metadata.get('uploaded_at', ''),
                    retain_until=metadata.get('retain_until', ''),
                    audit_status=metadata.get('audit_status', 'active'),
                    source=metadata.get('source', 'manual'),
                ),
            )
        except (AttributeError, KeyError, TypeError, ValueError, InvalidOperation) as e:
            raise ValidationError(f"Invalid receipt record {_record_id(data)}: {e}", field='receipts') from e


@dataclass
class TaxBreakdown:
    """Sales taxes printed on a receipt."""
    gst: Optional[Decimal] = None
    qst: Optional[Decimal] = None
    hst: Optional[Decimal] = None
    total_tax: Optional[Decimal] = None

    @property
    def found(self) -> bool:
        return self.total_tax is not None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            'gst': _money_str(self.gst),
            'qst': _money_str(self.qst),
            'hst': _money_str(self.hst),
            'total_tax': _money_str(self.total_tax),
        }


@dataclass
class ExtractionResult:
    """Fields read from receipt text, before the user confirms them."""
    date: str
    amount: Optional[Decimal] = None
    vendor: Optional[str] = None
    category: str = "other"
    tax: TaxBreakdown = field(default_factory=TaxBreakdown)
    confidence: int = 0
    raw_text: str = ""
    date_found: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'amount': _money_str(self.amount),
            'date': self.date,
            'date_found': self.date_found,
            'vendor': self.vendor,
            'category': self.category,
            'tax': self.tax.to_dict(),
            'confidence': self.confidence,
            'raw_text': self.raw_text,
        }


@dataclass
class ImportSummary:
    platform: str
    total_trips: int = 0
    total_receipts: int = 0
    total_earnings: Decimal = Decimal("0.00")
    total_distance_km: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'platform': self.platform,
            'total_trips': self.total_trips,
            'total_receipts': self.total_receipts,
            'total_earnings': str(self.total_earnings),
            'total_distance_km': self.total_distance_km,
        }


@dataclass
class SkippedRow:
    row_number: int
    reason: str


@dataclass
class ImportReport:
    """What happened to every data row of one import."""
    total_rows: int = 0
    imported: int = 0
    skipped_rows: List[SkippedRow] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def skipped(self) -> int:
        return len(self.skipped_rows)

    @property
    def reasons(self) -> Counter:
        return Counter(row.reason for row in self.skipped_rows)

    @property
    def degraded(self) -> bool:
        return self.error is not None or self.imported < self.total_rows

    def record_skip(self, row_number: int, reason: str):
        self.skipped_rows.append(SkippedRow(row_number=row_number, reason=reason))
        logger.debug(f"Skipped row {row_number}: {reason}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_rows': self.total_rows,
            'imported': self.imported,
            'skipped': self.skipped,
            'reasons': dict(self.reasons),
            'error': self.error,
        }


@dataclass
class ImportResult:
    trips: List[CanonicalTrip]
    receipts: List[CanonicalExpenseReceipt]
    summary: ImportSummary
    report: ImportReport = field(default_factory=ImportReport)

    @classmethod
    def empty(cls, platform: str = "Unknown", error: Optional[str] = None) -> "ImportResult":
        return cls(trips=[], receipts=[], summary=ImportSummary(platform=platform),
                   report=ImportReport(error=error))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'trips': [trip.to_dict() for trip in self.trips],
            'receipts': [receipt.to_dict() for receipt in self.receipts],
            'summary': self.summary.to_dict(),
            'report': self.report.to_dict(),
        }


@dataclass
class CategoryTotal:
    label: str
    label_fr: str
    total: Decimal = Decimal("0.00")
    count: int = 0


@dataclass
class YearTotal:
    year: int
    total: Decimal = Decimal("0.00")
    count: int = 0


@dataclass
class ExpenseSummary:
    categories: Dict[str, CategoryTotal]
    total_expenses: Decimal
    receipt_count: int


@dataclass
class MileageSummary:
    total_km: float
    total_business_km: float
    total_personal_km: float
    business_percent: float
    trip_count: int
    business_trip_count: int
    personal_trip_count: int
    deduction: Decimal


@dataclass
class SalesTaxSummary:
    gst_paid: Decimal
    qst_paid: Decimal
    hst_paid: Decimal
    total_tax_paid: Decimal


@dataclass
class SummaryTotals:
    total_deductions: Decimal
    total_tax_credits: Decimal


@dataclass
class TaxSummary:
    """Annual T2125-aligned summary for one province."""
    year: int
    province: str
    expenses: ExpenseSummary
    mileage: MileageSummary
    tax: SalesTaxSummary
    totals: SummaryTotals
    generated_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'year': self.year,
            'province': self.province,
            'expenses': {
                'categories': {
                    key: {
                        'label': cat.label,
                        'label_fr': cat.label_fr,
                        'total': str(cat.total),
                        'count': cat.count,
                    }
                    for key, cat in self.expenses.categories.items()
                },
                'total_expenses': str(self.expenses.total_expenses),
                'receipt_count': self.expenses.receipt_count,
            },
            'mileage': {
                'total_km': self.mileage.total_km,
                'total_business_km': self.mileage.total_business_km,
                'total_personal_km': self.mileage.total_personal_km,
                'business_percent': self.mileage.business_percent,
                'trip_count': self.mileage.trip_count,
                'business_trip_count': self.mileage.business_trip_count,
                'personal_trip_count': self.mileage.personal_trip_count,
                'deduction': str(self.mileage.deduction),
            },
            'tax': {
                'gst_paid': str(self.tax.gst_paid),
                'qst_paid': str(self.tax.qst_paid),
                'hst_paid': str(self.tax.hst_paid),
                'total_tax_paid': str(self.tax.total_tax_paid),
            },
            'totals': {
                'total_deductions': str(self.totals.total_deductions),
                'total_tax_credits': str(self.totals.total_tax_credits),
            },
            'generated_at': self.generated_at,
        }
