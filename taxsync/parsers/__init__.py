"""Receipt parsing components - modular, maintainable parsers."""

from .base import BaseParser, ParseResult, PatternRule, ReceiptContext
from .amount_parser import AmountParser
from .date_parser import ReceiptDateParser
from .vendor_parser import VendorParser
from .tax_parser import TaxParser
from .category_parser import CategorySuggester

__all__ = [
    'BaseParser',
    'ParseResult',
    'PatternRule',
    'ReceiptContext',
    'AmountParser',
    'ReceiptDateParser',
    'VendorParser',
    'TaxParser',
    'CategorySuggester',
]
