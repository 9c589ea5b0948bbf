"""CSV tokenizer for platform exports."""

import csv
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r'\r\n|\r|\n')

RawRow = Dict[str, str]


@dataclass
class CSVTable:
    headers: List[str] = field(default_factory=list)
    rows: List[RawRow] = field(default_factory=list)


def parse_csv_line(line: str) -> List[str]:
    """
    Split one CSV line, honouring double-quoted fields and ``""`` escapes.

    Malformed quoting never raises: the reader runs in non-strict mode and
    anything it still rejects is split on plain commas.
    """
    try:
        return next(csv.reader([line], skipinitialspace=True, strict=False), [])
    except csv.Error as e:
        logger.debug(f"Falling back to naive split for line {line[:40]!r}: {e}")
        return [value.strip('"') for value in line.split(',')]


def parse_csv(text) -> CSVTable:
    """
    Parse CSV text into headers and one dict per non-blank data line.

    Args:
        text: Raw CSV content (any line ending style)

    Returns:
        CSVTable; empty when the input is missing, blank or has no data rows
    """
    if not text or not isinstance(text, str):
        return CSVTable()

    lines = [line for line in _LINE_BREAK.split(text.lstrip('\ufeff')) if line.strip()]
    if len(lines) < 2:
        return CSVTable()

    headers = [h.strip() for h in parse_csv_line(lines[0])]
    rows = []
    for line in lines[1:]:
        values = parse_csv_line(line.strip())
        row = {}
        for idx, header in enumerate(headers):
            row[header] = values[idx].strip() if idx < len(values) else ''
        rows.append(row)

    logger.debug(f"Parsed CSV with {len(headers)} columns and {len(rows)} rows")
    return CSVTable(headers=headers, rows=rows)
