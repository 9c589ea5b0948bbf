"""Command-line interface for importing, extracting and summarizing driver records."""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
from tqdm import tqdm

from .csv_import import import_csv
from .errors import TaxSyncError
from .export import ExcelExporter, build_backup, export_mileage_csv, export_receipts_csv, load_backup
from .receipt_parser import ReceiptTextParser
from .report import format_tax_report
from .review import ReviewQueue
from .tax_summary import generate_tax_summary

logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False):
    # Log to stderr so JSON written to stdout stays parseable
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    if debug:
        logging.getLogger().setLevel(logging.DEBUG)


def write_json(data: Any, out: Optional[Path]):
    text = json.dumps(data, indent=2, ensure_ascii=False)
    if out is None:
        click.echo(text)
        return
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(text + "\n", encoding="utf-8")
    logger.info(f"Wrote {out}")


def read_records(path: Path):
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    return load_backup(data)


def find_text_files(path: Path) -> List[Path]:
    """A single file, or every .txt OCR dump under a directory."""
    if path.is_file():
        return [path]
    files = sorted(set(path.glob('*.txt')) | set(path.glob('**/*.txt')))
    logger.info(f"Found {len(files)} text files in {path}")
    return files


def fail(e: Exception):
    logger.error(f"Command failed: {e}")
    click.echo(f"Error: {e}", err=True)
    sys.exit(1)


@click.group()
@click.option('--debug', is_flag=True, help='Enable debug output')
def cli(debug: bool):
    """TaxSync - import driver CSV exports, read receipts and build T2125 summaries."""
    setup_logging(debug)


@cli.command('import-csv')
@click.argument('csv_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--out', 'out', type=click.Path(dir_okay=False, path_type=Path),
              help='Write trips and receipts to this JSON file')
def import_csv_command(csv_file: Path, out: Optional[Path]):
    """
    Import an Uber, Lyft or generic CSV export.

    Example:
        taxsync import-csv uber_trips.csv --out records.json
    """
    try:
        text = csv_file.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        fail(e)

    result = import_csv(text)
    report = result.report

    if report.error:
        click.echo(f"Error: {report.error}", err=True)
        sys.exit(1)

    if out is not None:
        # A backup document, so the file can be fed to summary and export
        backup = build_backup(result.receipts, result.trips)
        backup.update(summary=result.summary.to_dict(), report=report.to_dict())
        write_json(backup, out)

    summary = result.summary
    click.echo(f"Platform: {summary.platform}")
    click.echo(f"Rows: {report.total_rows}, imported: {report.imported}, skipped: {report.skipped}")
    click.echo(f"Trips: {summary.total_trips} ({summary.total_distance_km} km)")
    click.echo(f"Receipts: {summary.total_receipts} (${summary.total_earnings})")
    for reason, count in report.reasons.most_common():
        click.echo(f"  skipped {count}: {reason}")


@cli.command()
@click.argument('path', type=click.Path(exists=True, path_type=Path))
@click.option('--out', 'out', type=click.Path(dir_okay=False, path_type=Path),
              help='Write extraction results to this JSON file')
def extract(path: Path, out: Optional[Path]):
    """
    Extract receipt fields from OCR text files.

    PATH is a text file or a directory of .txt files.
    """
    parser = ReceiptTextParser()
    review_queue = ReviewQueue(parser.config.receipts)
    results: List[Dict[str, Any]] = []

    files = find_text_files(path)
    for text_file in tqdm(files, desc="Extracting", unit="receipt", disable=len(files) < 2):
        try:
            text = text_file.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Cannot read {text_file}: {e}")
            continue

        result = parser.parse_receipt(text)
        review_queue.add_from_extraction(text_file.name, result)
        results.append({'source': text_file.name, **result.to_dict()})

    duplicates = review_queue.detect_duplicates(results)

    if out is not None:
        write_json({
            'results': results,
            'review': [
                {'source': item.source, 'reason': item.reason}
                for item in review_queue.items + duplicates
            ],
        }, out)

    click.echo(f"Receipts read: {len(results)}")
    click.echo(f"Items needing review: {len(review_queue.items)}")
    if duplicates:
        click.echo(f"Possible duplicates: {len(duplicates)}")
    if out is None:
        for entry in results:
            click.echo(f"  {entry['source']}: {entry['date']} ${entry['amount']} "
                       f"{entry['vendor'] or '?'} [{entry['category']}] {entry['confidence']}%")


@cli.command()
@click.argument('records', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--province', required=True, help='Province or territory code, e.g. QC')
@click.option('--year', required=True, type=int, help='Tax year')
@click.option('--language', default='en', type=click.Choice(['en', 'fr']), help='Report language')
@click.option('--territory', is_flag=True, help='Apply the northern territory mileage bonus')
@click.option('--json', 'as_json', is_flag=True, help='Print the summary as JSON')
def summary(records: Path, province: str, year: int, language: str, territory: bool, as_json: bool):
    """Build the annual tax summary from a JSON backup of receipts and trips."""
    try:
        receipts, trips = read_records(records)
    except (TaxSyncError, OSError, ValueError) as e:
        fail(e)

    tax_summary = generate_tax_summary(receipts, trips, province, year,
                                       include_territory_bonus=territory)
    if as_json:
        write_json(tax_summary.to_dict(), None)
    else:
        click.echo(format_tax_report(tax_summary, language))


@cli.command()
@click.argument('records', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--out', 'output_dir', required=True, type=click.Path(file_okay=False, path_type=Path),
              help='Output directory')
@click.option('--format', 'fmt', default='xlsx', type=click.Choice(['xlsx', 'csv']), help='Output format')
@click.option('--province', help='Include a tax summary sheet for this province (xlsx only)')
@click.option('--year', type=int, help='Tax year for the summary sheet')
def export(records: Path, output_dir: Path, fmt: str, province: Optional[str], year: Optional[int]):
    """Export receipts and trips from a JSON backup to Excel or CSV."""
    try:
        receipts, trips = read_records(records)
        output_dir.mkdir(parents=True, exist_ok=True)

        if fmt == 'xlsx':
            tax_summary = None
            if province and year:
                tax_summary = generate_tax_summary(receipts, trips, province, year)
            excel_path = output_dir / 'taxsync_export.xlsx'
            ExcelExporter(excel_path).export(receipts, trips, tax_summary)
            click.echo(f"Excel: {excel_path}")
        else:
            if receipts:
                export_receipts_csv(receipts, output_dir / 'taxsync_receipts.csv')
                click.echo(f"Receipts CSV: {output_dir / 'taxsync_receipts.csv'}")
            if trips:
                export_mileage_csv(trips, output_dir / 'taxsync_mileage.csv')
                click.echo(f"Mileage CSV: {output_dir / 'taxsync_mileage.csv'}")
            if not receipts and not trips:
                click.echo("Nothing to export.")
    except (TaxSyncError, OSError, ValueError) as e:
        fail(e)


if __name__ == '__main__':
    cli()
