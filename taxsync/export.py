"""Excel, CSV and JSON backup export for receipts and the mileage log."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.utils.dataframe import dataframe_to_rows

from .config import TaxConfig, get_default_config
from .errors import TaxSyncError, ValidationError
from .mileage import reconcile_trip_records
from .models import CanonicalExpenseReceipt, CanonicalTrip, TaxSummary
from .utils import Clock, utc_now

logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0.0"

RECEIPT_COLUMNS = ['Date', 'Amount', 'Vendor', 'Category', 'Description', 'Retain Until']
MILEAGE_COLUMNS = ['Date', 'Destination', 'Purpose', 'Start Odo', 'End Odo', 'Distance (km)', 'Type', 'Client']

HEADER_FILL = PatternFill(start_color="E6E6E6", end_color="E6E6E6", fill_type="solid")


def category_label(key: str, config: TaxConfig, language: str = "en") -> str:
    category = config.categories.get(key)
    return category.display_label(language) if category else (key or 'Other')


def receipts_dataframe(receipts: List[CanonicalExpenseReceipt], config: Optional[TaxConfig] = None) -> pd.DataFrame:
    config = config or get_default_config()
    rows = [
        {
            'Date': r.expense.date,
            'Amount': f"{r.expense.amount:.2f}",
            'Vendor': r.expense.vendor,
            'Category': category_label(r.expense.category, config),
            'Description': r.expense.description,
            'Retain Until': r.metadata.retain_until,
        }
        for r in receipts
    ]
    return pd.DataFrame(rows, columns=RECEIPT_COLUMNS)


def mileage_dataframe(trips: List[CanonicalTrip]) -> pd.DataFrame:
    rows = [
        {
            'Date': t.date,
            'Destination': t.destination,
            'Purpose': t.purpose,
            'Start Odo': t.start_odometer,
            'End Odo': t.end_odometer,
            'Distance (km)': t.distance_km,
            'Type': 'Business' if t.is_business_trip else 'Personal',
            'Client': t.client_name,
        }
        for t in trips
    ]
    return pd.DataFrame(rows, columns=MILEAGE_COLUMNS)


def export_receipts_csv(receipts: List[CanonicalExpenseReceipt], path: Path,
                        config: Optional[TaxConfig] = None) -> int:
    """Write receipts to ``path`` as CSV and return how many were written."""
    if not receipts:
        raise TaxSyncError("No receipts to export.")
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    receipts_dataframe(receipts, config).to_csv(path, index=False)
    logger.info(f"Exported {len(receipts)} receipts to {path}")
    return len(receipts)


def export_mileage_csv(trips: List[CanonicalTrip], path: Path) -> int:
    """Write the mileage log to ``path`` as CSV and return how many trips were written."""
    if not trips:
        raise TaxSyncError("No trips to export.")
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    mileage_dataframe(trips).to_csv(path, index=False)
    logger.info(f"Exported {len(trips)} trips to {path}")
    return len(trips)


class ExcelExporter:
    """Export receipts, trips and the tax summary to one Excel workbook."""

    def __init__(self, output_path: Path, config: Optional[TaxConfig] = None):
        """
        Initialize Excel exporter.

        Args:
            output_path: Path for the output Excel file
            config: Supplies category labels
        """
        self.output_path = Path(output_path)
        self.config = config or get_default_config()
        self.workbook = Workbook()

    def export(self,
               receipts: List[CanonicalExpenseReceipt],
               trips: List[CanonicalTrip],
               summary: Optional[TaxSummary] = None):
        """
        Write one sheet per record type, plus the summary when given.

        Args:
            receipts: Receipts for the Receipts sheet
            trips: Trips for the Mileage sheet
            summary: Tax summary for the Tax Summary sheet
        """
        if "Sheet" in self.workbook.sheetnames:
            self.workbook.remove(self.workbook["Sheet"])

        receipts_df = receipts_dataframe(receipts, self.config)
        receipts_df['Amount'] = [float(r.expense.amount) for r in receipts]
        self._add_table_sheet("Receipts", receipts_df, [12, 12, 25, 16, 40, 14])
        self._add_table_sheet("Mileage", mileage_dataframe(trips), [12, 30, 25, 12, 12, 14, 10, 20])
        if summary is not None:
            self._add_summary_sheet(summary)

        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self.workbook.save(str(self.output_path))
        logger.info(f"Excel file exported to: {self.output_path}")

    def _add_table_sheet(self, title: str, df: pd.DataFrame, column_widths: List[int]):
        ws = self.workbook.create_sheet(title)

        for row in dataframe_to_rows(df, index=False, header=True):
            ws.append(row)

        for cell in ws[1]:
            cell.font = Font(bold=True)
            cell.fill = HEADER_FILL
            cell.alignment = Alignment(horizontal="center")

        for i, width in enumerate(column_widths, 1):
            ws.column_dimensions[get_column_letter(i)].width = width

        logger.debug(f"Created sheet {title} with {len(df)} rows")

    def _add_summary_sheet(self, summary: TaxSummary):
        ws = self.workbook.create_sheet("Tax Summary")
        ws.cell(row=1, column=1, value=f"TAX SUMMARY {summary.year} ({summary.province})").font = Font(bold=True, size=14)

        row = 3
        ws.cell(row=row, column=1, value="Category").font = Font(bold=True)
        ws.cell(row=row, column=2, value="Receipts").font = Font(bold=True)
        ws.cell(row=row, column=3, value="Total").font = Font(bold=True)
        row += 1
        for category in summary.expenses.categories.values():
            if category.count == 0:
                continue
            ws.cell(row=row, column=1, value=category.label)
            ws.cell(row=row, column=2, value=category.count)
            ws.cell(row=row, column=3, value=float(category.total))
            row += 1

        row += 1
        figures: List[Tuple[str, Any]] = [
            ("Total expenses", float(summary.expenses.total_expenses)),
            ("Business km", summary.mileage.total_business_km),
            ("Business %", summary.mileage.business_percent),
            ("Mileage deduction", float(summary.mileage.deduction)),
            ("GST paid", float(summary.tax.gst_paid)),
            ("QST paid", float(summary.tax.qst_paid)),
            ("HST paid", float(summary.tax.hst_paid)),
            ("Total deductions", float(summary.totals.total_deductions)),
            ("Tax credits (ITC)", float(summary.totals.total_tax_credits)),
        ]
        for label, value in figures:
            ws.cell(row=row, column=1, value=label).font = Font(bold=True)
            ws.cell(row=row, column=3, value=value)
            row += 1

        ws.column_dimensions['A'].width = 22
        ws.column_dimensions['C'].width = 14


def build_backup(receipts: List[CanonicalExpenseReceipt],
                 trips: List[CanonicalTrip],
                 clock: Optional[Clock] = None) -> Dict[str, Any]:
    """JSON-ready backup document of every receipt and trip."""
    return {
        'version': BACKUP_VERSION,
        'exported_at': (clock or utc_now)().isoformat(),
        'receipts': [r.to_dict() for r in receipts],
        'trips': [t.to_dict() for t in trips],
    }


@dataclass
class BackupCheck:
    valid: bool
    error: Optional[str] = None
    receipts: int = 0
    trips: int = 0


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    try:
        float(value)
    except (TypeError, ValueError):
        return False
    return True


def _receipt_ok(record: Any) -> bool:
    if not isinstance(record, dict) or not record.get('id'):
        return False
    expense = record.get('expense')
    return isinstance(expense, dict) and _is_number(expense.get('amount'))


def _trip_ok(record: Any) -> bool:
    if not isinstance(record, dict) or not record.get('id'):
        return False
    return _is_number(record.get('distance_km', record.get('distance')))


def validate_backup(data: Any) -> BackupCheck:
    """
    Check that a parsed backup document has the expected shape.

    Every receipt and trip is checked; the error names the first bad
    record by its 1-based position.
    """
    if not isinstance(data, dict):
        return BackupCheck(False, 'Invalid file: not a JSON object.')
    if not data.get('version') or not isinstance(data['version'], str):
        return BackupCheck(False, 'Invalid backup: missing version.')
    if not isinstance(data.get('receipts'), list):
        return BackupCheck(False, 'Invalid backup: receipts must be an array.')
    if not isinstance(data.get('trips'), list):
        return BackupCheck(False, 'Invalid backup: trips must be an array.')

    for kind, is_ok in (('receipts', _receipt_ok), ('trips', _trip_ok)):
        for position, record in enumerate(data[kind], 1):
            if not is_ok(record):
                return BackupCheck(False, f'Invalid backup: {kind} have unexpected format (record {position}).')

    return BackupCheck(True, receipts=len(data['receipts']), trips=len(data['trips']))


def load_backup(data: Any) -> Tuple[List[CanonicalExpenseReceipt], List[CanonicalTrip]]:
    """
    Restore records from a backup document.

    Raises:
        ValidationError: the document does not look like a backup
    """
    check = validate_backup(data)
    if not check.valid:
        raise ValidationError(check.error)

    receipts = [CanonicalExpenseReceipt.from_dict(r) for r in data['receipts']]
    trips, divergent = reconcile_trip_records(data['trips'])
    logger.info(f"Loaded backup {data['version']}: {len(receipts)} receipts, {len(trips)} trips"
                + (f", {len(divergent)} with conflicting business flags" if divergent else ""))
    return receipts, trips
