"""Platform CSV import: tokenizer, platform detection and adapters."""

from .tokenizer import CSVTable, parse_csv
from .detector import Platform, detect_platform
from .adapters import BaseAdapter, UberAdapter, LyftAdapter, GenericAdapter, find_column, get_adapter
from .importer import import_csv

__all__ = [
    'CSVTable',
    'parse_csv',
    'Platform',
    'detect_platform',
    'BaseAdapter',
    'UberAdapter',
    'LyftAdapter',
    'GenericAdapter',
    'find_column',
    'get_adapter',
    'import_csv',
]
