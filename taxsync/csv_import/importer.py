"""One-call CSV import: tokenize, detect the platform, adapt the rows."""

import logging
from typing import Optional

from ..config import TaxConfig
from ..errors import ImportDataError
from ..models import ImportResult
from ..utils import Clock, IdFactory
from .adapters import get_adapter
from .detector import detect_platform
from .tokenizer import CSVTable, parse_csv

logger = logging.getLogger(__name__)


def read_table(csv_text) -> CSVTable:
    """
    Tokenize CSV text that must contain at least one data row.

    Raises:
        ImportDataError: the input is not text, is blank, or has no data rows
    """
    if csv_text is None or not isinstance(csv_text, str):
        raise ImportDataError(f"expected CSV text, got {type(csv_text).__name__}")
    table = parse_csv(csv_text)
    if not table.rows:
        raise ImportDataError("no data rows found")
    return table


def import_csv(csv_text,
               config: Optional[TaxConfig] = None,
               clock: Optional[Clock] = None,
               id_factory: Optional[IdFactory] = None) -> ImportResult:
    """
    Import an Uber, Lyft or generic CSV export.

    Args:
        csv_text: Raw CSV content
        config: Tax configuration (retention period)
        clock: Source of "now" for created/uploaded timestamps
        id_factory: Builds record ids from a prefix

    Returns:
        ImportResult. Unreadable input gives an empty result whose
        ``report.error`` explains why; callers should compare
        ``report.imported`` with ``report.total_rows`` to spot partial imports.
    """
    try:
        table = read_table(csv_text)
    except ImportDataError as e:
        logger.warning(f"CSV import produced no data: {e}")
        return ImportResult.empty(error=str(e))

    platform = detect_platform(table.headers)
    adapter = get_adapter(platform, config=config, clock=clock, id_factory=id_factory)
    return adapter.adapt(table.rows, table.headers)
