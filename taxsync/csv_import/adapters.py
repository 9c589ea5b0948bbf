"""Adapters that turn platform CSV rows into canonical trips and receipts."""

import logging
import re
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from rapidfuzz import fuzz, process

from ..config import TaxConfig, get_default_config
from ..dates import normalize_date
from ..errors import ParseError, ValidationError
from ..models import (
    CanonicalExpenseReceipt,
    CanonicalTrip,
    ExpenseDetails,
    ImportReport,
    ImportResult,
    ImportSummary,
    ReceiptMetadata,
    TripType,
)
from ..utils import (
    Clock,
    IdFactory,
    generate_id,
    miles_to_km,
    parse_number,
    quantize_money,
    retention_date,
    round_km,
    truncate,
    utc_now,
)
from .detector import Platform, normalize_header
from .tokenizer import RawRow

logger = logging.getLogger(__name__)

_MILES_HEADER = re.compile(r'(?<![a-z])(mi|mile|miles)(?![a-z])')
_TOKEN_SPLIT = re.compile(r'[^a-z0-9]+')
SHORT_CANDIDATE = 2

# field name -> header names actually present, in priority order
ColumnMap = Dict[str, List[str]]


class BaseAdapter:
    """
    Shared row-to-record algorithm for every platform.

    Subclasses declare which header names carry each field and the defaults
    used when a field is empty.
    """

    platform: Platform = Platform.GENERIC
    label: str = "CSV"
    source: str = "generic-csv"
    client_name: str = ""
    distance_in_miles: bool = True
    columns: Dict[str, Tuple[str, ...]] = {}
    defaults: Dict[str, str] = {}

    def __init__(self,
                 config: Optional[TaxConfig] = None,
                 clock: Optional[Clock] = None,
                 id_factory: Optional[IdFactory] = None):
        self.config = config or get_default_config()
        self.clock = clock or utc_now
        self.id_factory = id_factory or (lambda prefix: generate_id(prefix, self.clock))
        self.logger = logging.getLogger(self.__class__.__name__)

    def adapt(self, rows: List[RawRow], headers: Optional[Iterable[str]] = None) -> ImportResult:
        """
        Convert parsed CSV rows into trips and receipts.

        Args:
            rows: Rows from the tokenizer
            headers: Header names; taken from the first row when omitted

        Returns:
            ImportResult with a per-row report of skipped lines
        """
        if headers is None:
            headers = list(rows[0].keys()) if rows else []
        columns = self.resolve_columns(list(headers))
        now = self.clock().isoformat()

        trips: List[CanonicalTrip] = []
        receipts: List[CanonicalExpenseReceipt] = []
        report = ImportReport(total_rows=len(rows))

        for row_number, row in enumerate(rows, start=1):
            try:
                trip, receipt = self._adapt_row(row, columns, now)
            except ParseError as e:
                report.record_skip(row_number, f"unparseable {e.field}" if e.field else str(e))
                continue
            except ValidationError as e:
                report.record_skip(row_number, str(e))
                continue

            if trip is None and receipt is None:
                report.record_skip(row_number, "no distance or earnings")
                continue

            report.imported += 1
            if trip:
                trips.append(trip)
            if receipt:
                receipts.append(receipt)

        summary = ImportSummary(
            platform=self.label,
            total_trips=len(trips),
            total_receipts=len(receipts),
            total_earnings=quantize_money(sum((r.expense.amount for r in receipts), Decimal("0"))),
            total_distance_km=round_km(sum(Decimal(str(t.distance_km)) for t in trips)),
        )

        if report.skipped:
            self.logger.warning(f"{self.label} import skipped {report.skipped} of {report.total_rows} rows: "
                                f"{dict(report.reasons)}")
        self.logger.info(f"{self.label} import: {summary.total_trips} trips, "
                         f"{summary.total_receipts} receipts, ${summary.total_earnings} earnings")

        return ImportResult(trips=trips, receipts=receipts, summary=summary, report=report)

    def resolve_columns(self, headers: List[str]) -> ColumnMap:
        """Map each field to the matching headers, in candidate order."""
        by_name = {normalize_header(h): h for h in headers}
        return {
            field: [by_name[c] for c in candidates if c in by_name]
            for field, candidates in self.columns.items()
        }

    def _adapt_row(self, row: RawRow, columns: ColumnMap,
                   now: str) -> Tuple[Optional[CanonicalTrip], Optional[CanonicalExpenseReceipt]]:
        raw_date, _ = self._first_value(row, columns.get('date', []))
        date = normalize_date(raw_date)
        if not date:
            raise ParseError("unparseable date", field="date", value=raw_date)

        raw_distance, distance_header = self._first_value(row, columns.get('distance', []))
        distance = parse_number(raw_distance, field="distance")
        if distance < 0:
            raise ValidationError("negative distance", field="distance")
        distance_km = self._to_km(distance, distance_header)

        raw_amount, _ = self._first_value(row, columns.get('amount', []))
        earnings = parse_number(raw_amount, field="amount")
        if earnings < 0:
            raise ValidationError("negative amount", field="amount")
        earnings = quantize_money(earnings)

        destination = self._text(row, columns, 'destination')
        purpose = self._text(row, columns, 'purpose')
        vendor = self._text(row, columns, 'vendor') or self.client_name

        trip = None
        if distance_km > 0:
            trip = CanonicalTrip(
                id=self.id_factory('trip'),
                date=date,
                destination=truncate(destination, 60),
                purpose=truncate(purpose, 40),
                distance_km=distance_km,
                trip_type=TripType.BUSINESS,
                start_odometer=0.0,
                end_odometer=distance_km,
                client_name=vendor,
                notes=self._notes(),
                source=self.source,
                created_at=now,
            )

        receipt = None
        if earnings > 0:
            receipt = CanonicalExpenseReceipt(
                id=self.id_factory('receipt'),
                timestamp=now,
                expense=ExpenseDetails(
                    date=date,
                    amount=earnings,
                    vendor=vendor,
                    category='other',
                    description=self._description(purpose),
                ),
                metadata=ReceiptMetadata(
                    uploaded_at=now,
                    retain_until=retention_date(date, self.config.retention_years),
                    audit_status='active',
                    source=self.source,
                ),
            )

        return trip, receipt

    def _to_km(self, distance: Decimal, header: Optional[str]) -> float:
        if self.distance_in_miles:
            return miles_to_km(distance)
        return round_km(distance)

    def _notes(self) -> str:
        return f"Imported from {self.label} CSV"

    def _description(self, purpose: str) -> str:
        return f"{self.label} earnings - {purpose}"

    def _text(self, row: RawRow, columns: ColumnMap, field: str) -> str:
        value, _ = self._first_value(row, columns.get(field, []))
        return value or self.defaults.get(field, '')

    @staticmethod
    def _first_value(row: RawRow, headers: Sequence[str]) -> Tuple[str, Optional[str]]:
        """First non-empty value among ``headers`` and the header it came from."""
        for header in headers:
            value = row.get(header, '')
            if value:
                return value, header
        return '', None


class UberAdapter(BaseAdapter):
    """Uber driver trip/earnings exports (distances in miles)."""

    platform = Platform.UBER
    label = "Uber"
    source = "uber-csv"
    client_name = "Uber"
    columns = {
        'date': ('begin trip time', 'date/time', 'date'),
        'distance': ('trip distance', 'distance (miles)', 'trip or order distance'),
        'amount': ('driver payment', 'gross fare', 'your earnings', 'total'),
        'destination': ('dropoff address', 'dropoff', 'city'),
        'purpose': ('trip type', 'uber service'),
    }
    defaults = {'destination': 'Uber Trip', 'purpose': 'Rideshare'}


class LyftAdapter(BaseAdapter):
    """Lyft ride history exports (distances in miles)."""

    platform = Platform.LYFT
    label = "Lyft"
    source = "lyft-csv"
    client_name = "Lyft"
    columns = {
        'date': ('date', 'ride date', 'pickup time'),
        'distance': ('ride distance (mi)', 'ride distance', 'distance (mi)'),
        'amount': ('ride earnings', 'driver earnings', 'total earnings', 'earnings'),
        'destination': ('dropoff location', 'dropoff address', 'dropoff'),
        'purpose': ('ride type',),
    }
    defaults = {'destination': 'Lyft Trip', 'purpose': 'Lyft Ride'}


class GenericAdapter(BaseAdapter):
    """
    Best-effort import of any other CSV.

    Each field is bound to a single column: exact header match first, then
    substring match, then a fuzzy match for misspelt headers. Distances are
    kilometres unless the chosen header mentions miles.
    """

    label = "CSV"
    source = "generic-csv"
    client_name = "CSV Import"
    distance_in_miles = False
    fuzzy_threshold = 90
    columns = {
        'date': ('date', 'trip date', 'datetime', 'time', 'start time'),
        'distance': ('distance', 'km', 'miles', 'trip distance', 'ride distance'),
        'amount': ('amount', 'total', 'earnings', 'fare', 'payment', 'cost'),
        'vendor': ('vendor', 'merchant', 'source', 'platform', 'company'),
        'destination': ('destination', 'dropoff', 'address', 'location', 'to'),
        'purpose': ('purpose', 'type', 'ride type', 'trip type', 'category'),
    }
    defaults = {'destination': 'Imported Trip'}

    def resolve_columns(self, headers: List[str]) -> ColumnMap:
        resolved = {}
        for field, candidates in self.columns.items():
            header = find_column(headers, candidates, self.fuzzy_threshold)
            resolved[field] = [header] if header else []
            self.logger.debug(f"Column for {field}: {header}")
        return resolved

    def _to_km(self, distance: Decimal, header: Optional[str]) -> float:
        if header and _MILES_HEADER.search(normalize_header(header)):
            return miles_to_km(distance)
        return round_km(distance)

    def _notes(self) -> str:
        return "Imported from CSV"

    def _description(self, purpose: str) -> str:
        return purpose or "Imported from CSV"


def _contains(name: str, candidate: str) -> bool:
    """Substring test; candidates of two letters must be a whole token ('to' is not in 'total')."""
    if len(candidate) > SHORT_CANDIDATE:
        return candidate in name
    return candidate in _TOKEN_SPLIT.split(name)


def find_column(headers: List[str], candidates: Sequence[str],
                fuzzy_threshold: Optional[int] = 90) -> Optional[str]:
    """
    Find the header best matching any candidate name.

    Args:
        headers: Header names as they appear in the file
        candidates: Lowercase candidate names in preference order
        fuzzy_threshold: Minimum rapidfuzz ratio for the last-resort pass;
            None disables fuzzy matching

    Returns:
        The original header name, or None
    """
    normalized = [normalize_header(h) for h in headers]

    for candidate in candidates:
        if candidate in normalized:
            return headers[normalized.index(candidate)]

    for candidate in candidates:
        for idx, name in enumerate(normalized):
            if _contains(name, candidate):
                return headers[idx]

    if fuzzy_threshold is None or not normalized:
        return None
    for candidate in candidates:
        match = process.extractOne(candidate, normalized, scorer=fuzz.ratio, score_cutoff=fuzzy_threshold)
        if match:
            return headers[match[2]]
    return None


ADAPTERS = {
    Platform.UBER: UberAdapter,
    Platform.LYFT: LyftAdapter,
    Platform.GENERIC: GenericAdapter,
}


def get_adapter(platform: Platform, **kwargs) -> BaseAdapter:
    return ADAPTERS[platform](**kwargs)
