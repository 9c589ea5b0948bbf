"""Tests for Excel, CSV and backup export."""

import pandas as pd
import pytest
from openpyxl import load_workbook

from taxsync.errors import TaxSyncError, ValidationError
from taxsync.export import (
    BACKUP_VERSION,
    ExcelExporter,
    build_backup,
    export_mileage_csv,
    export_receipts_csv,
    load_backup,
    mileage_dataframe,
    receipts_dataframe,
    validate_backup,
)
from taxsync.models import TripType
from taxsync.tax_summary import generate_tax_summary


@pytest.fixture
def receipts(make_receipt):
    return [
        make_receipt("r1", "2026-01-10", "80.64", "fuel", "Shell"),
        make_receipt("r2", "2026-01-11", "68.25", "telephone", "Bell"),
    ]


@pytest.fixture
def trips(make_trip):
    return [
        make_trip("t1", "2026-01-10", 25.0, start=1000, end=1025),
        make_trip("t2", "2026-01-11", 10.0, business=False, start=1025, end=1035),
    ]


class TestDataFrames:
    """Test suite for the tabular views of records."""

    def test_receipts_dataframe(self, receipts):
        """Test columns, formatted amounts and category labels."""
        df = receipts_dataframe(receipts)

        assert list(df.columns) == ['Date', 'Amount', 'Vendor', 'Category', 'Description', 'Retain Until']
        assert df['Amount'].tolist() == ['80.64', '68.25']
        assert df['Category'].tolist() == ['Fuel', 'Telephone']

    def test_mileage_dataframe(self, trips):
        """Test the trip type is spelled out."""
        df = mileage_dataframe(trips)

        assert df['Type'].tolist() == ['Business', 'Personal']
        assert df['Distance (km)'].tolist() == [25.0, 10.0]

    def test_empty(self):
        """Test empty lists keep their headers."""
        assert list(mileage_dataframe([]).columns)[0] == 'Date'
        assert len(receipts_dataframe([])) == 0


class TestCsvExport:
    """Test suite for CSV export."""

    def test_receipts_csv(self, receipts, tmp_path):
        """Test the receipt file content."""
        path = tmp_path / "out" / "receipts.csv"
        assert export_receipts_csv(receipts, path) == 2

        df = pd.read_csv(path, dtype=str)
        assert df['Vendor'].tolist() == ['Shell', 'Bell']
        assert df['Amount'].tolist() == ['80.64', '68.25']

    def test_mileage_csv(self, trips, tmp_path):
        """Test the mileage file content."""
        path = tmp_path / "mileage.csv"
        assert export_mileage_csv(trips, path) == 2

        df = pd.read_csv(path)
        assert df['End Odo'].tolist() == [1025, 1035]

    def test_nothing_to_export(self, tmp_path):
        """Test empty exports raise instead of writing an empty file."""
        with pytest.raises(TaxSyncError):
            export_receipts_csv([], tmp_path / "r.csv")
        with pytest.raises(TaxSyncError):
            export_mileage_csv([], tmp_path / "m.csv")
        assert not (tmp_path / "r.csv").exists()


class TestExcelExporter:
    """Test suite for ExcelExporter."""

    def test_workbook(self, receipts, trips, clock, tmp_path):
        """Test sheets, headers and numeric amounts."""
        summary = generate_tax_summary(receipts, trips, "QC", 2026, clock=clock)
        path = tmp_path / "taxsync.xlsx"
        ExcelExporter(path).export(receipts, trips, summary)

        wb = load_workbook(path)
        assert wb.sheetnames == ["Receipts", "Mileage", "Tax Summary"]

        ws = wb["Receipts"]
        assert [c.value for c in ws[1]] == ['Date', 'Amount', 'Vendor', 'Category', 'Description', 'Retain Until']
        assert ws["B2"].value == 80.64
        assert ws["A1"].font.bold

        assert wb["Mileage"]["G3"].value == "Personal"
        assert wb["Tax Summary"]["A1"].value == "TAX SUMMARY 2026 (QC)"

    def test_without_summary(self, receipts, trips, tmp_path):
        """Test the summary sheet is optional."""
        path = tmp_path / "taxsync.xlsx"
        ExcelExporter(path).export(receipts, trips)

        assert load_workbook(path).sheetnames == ["Receipts", "Mileage"]


class TestBackup:
    """Test suite for JSON backups."""

    def test_build(self, receipts, trips, clock):
        """Test the backup document."""
        backup = build_backup(receipts, trips, clock)

        assert backup['version'] == BACKUP_VERSION
        assert backup['exported_at'] == "2026-03-01T12:00:00+00:00"
        assert backup['receipts'][0]['expense']['amount'] == "80.64"
        assert backup['trips'][1]['type'] == "personal"

    def test_restore(self, receipts, trips, clock):
        """Test a backup restores the same records."""
        restored_receipts, restored_trips = load_backup(build_backup(receipts, trips, clock))

        assert restored_receipts == receipts
        assert restored_trips == trips

    def test_validate(self, receipts, trips, clock):
        """Test a good backup reports its record counts."""
        check = validate_backup(build_backup(receipts, trips, clock))

        assert check.valid
        assert (check.receipts, check.trips) == (2, 2)

    @pytest.mark.parametrize("data,error", [
        ([], 'Invalid file: not a JSON object.'),
        ({'receipts': [], 'trips': []}, 'Invalid backup: missing version.'),
        ({'version': '1.0.0', 'receipts': {}, 'trips': []}, 'Invalid backup: receipts must be an array.'),
        ({'version': '1.0.0', 'receipts': [], 'trips': None}, 'Invalid backup: trips must be an array.'),
        ({'version': '1.0.0', 'receipts': [{'id': 'r1', 'expense': {'amount': 'abc'}}], 'trips': []},
         'Invalid backup: receipts have unexpected format (record 1).'),
        ({'version': '1.0.0', 'receipts': [], 'trips': [{'distance_km': 3}]},
         'Invalid backup: trips have unexpected format (record 1).'),
    ])
    def test_invalid(self, data, error):
        """Test each malformed document."""
        check = validate_backup(data)
        assert not check.valid
        assert check.error == error

    def test_legacy_trip_fields(self):
        """Test old backups with 'distance' and only the boolean flag."""
        data = {'version': '0.9', 'receipts': [],
                'trips': [{'id': 't1', 'distance': '12.5', 'is_business_trip': False}]}
        _, trips = load_backup(data)

        assert trips[0].distance_km == 12.5
        assert trips[0].trip_type is TripType.PERSONAL

    def test_load_invalid(self):
        """Test loading a malformed document raises."""
        with pytest.raises(ValidationError):
            load_backup({'version': '1.0.0'})

    def test_every_record_checked(self, receipts, trips, clock):
        """Test a bad record after a good one is still caught."""
        data = build_backup(receipts, trips, clock)
        data['receipts'][1]['expense']['amount'] = 'abc'

        check = validate_backup(data)
        assert not check.valid
        assert check.error == 'Invalid backup: receipts have unexpected format (record 2).'
        with pytest.raises(ValidationError):
            load_backup(data)

    def test_later_trip_without_id(self, receipts, trips, clock):
        """Test the position of the bad trip is reported."""
        data = build_backup(receipts, trips, clock)
        del data['trips'][1]['id']

        assert validate_backup(data).error == 'Invalid backup: trips have unexpected format (record 2).'

    def test_negative_amount_raises_validation_error(self, receipts, trips, clock):
        """Test a numeric but negative amount fails as a ValidationError."""
        data = build_backup(receipts, trips, clock)
        data['receipts'][1]['expense']['amount'] = '-5.00'

        with pytest.raises(ValidationError):
            load_backup(data)

    def test_legacy_categories(self):
        """Test category names from older backups are mapped to current keys."""
        data = {'version': '0.9', 'trips': [], 'receipts': [
            {'id': 'r1', 'expense': {'amount': '40.00', 'category': 'Gas'}},
            {'id': 'r2', 'expense': {'amount': '12.00', 'category': 'Parking'}},
        ]}
        restored, _ = load_backup(data)

        assert [r.expense.category for r in restored] == ['fuel', 'other']
