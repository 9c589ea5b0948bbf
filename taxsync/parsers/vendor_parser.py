"""Vendor/merchant name extraction from receipts."""

import re
import logging
from typing import Iterable, List, Optional, Tuple

from ..config import VendorRule
from .base import BaseParser, ParseResult, PatternRule, ReceiptContext

logger = logging.getLogger(__name__)

MAX_FALLBACK_LENGTH = 50


def vendor_rule_patterns(vendor_rules: Iterable[VendorRule]) -> List[PatternRule]:
    """
    Turn the merchant keyword table into pattern rules, keeping its order.

    Patterns are plain substrings so names glued to store numbers
    ('ESSO1234') still match.
    """
    rules = []
    for vendor in vendor_rules:
        pattern = re.compile(re.escape(vendor.pattern), re.I)
        rules.append(PatternRule(
            name=vendor.pattern,
            pattern=pattern,
            handler=lambda match, vendor=vendor: (vendor.name, vendor.category),
            confidence=0.95,
        ))
    return rules


class VendorParser(BaseParser):
    """Specialized parser for extracting vendor/store names from receipts."""

    def __init__(self, vendor_rules: Iterable[VendorRule] = (),
                 rules: Optional[List[PatternRule]] = None):
        self.vendor_rules = tuple(vendor_rules)
        super().__init__(rules)

    def default_rules(self) -> List[PatternRule]:
        return vendor_rule_patterns(self.vendor_rules)

    def parse(self, context: ReceiptContext) -> Optional[ParseResult]:
        """
        Extract vendor name from receipt text.

        Known merchants are found anywhere in the text and carry their
        category in ``metadata['category']``. Otherwise the first meaningful
        line is used, without a category.

        Args:
            context: Receipt context with full text and lines

        Returns:
            ParseResult with vendor name and confidence
        """
        if not context.full_text:
            return None

        known = self._first_match(context.full_text)
        if known:
            name, category = known.value
            result = ParseResult(
                value=name,
                confidence=known.confidence,
                source_text=known.source_text,
                metadata={'type': 'known_vendor', 'category': category},
            )
        else:
            result = self._find_fallback_vendor(context)

        self._log_result(result)
        return result

    def _find_fallback_vendor(self, context: ReceiptContext) -> Optional[ParseResult]:
        """First non-trivial line, if it looks like a name rather than a number."""
        for line in context.lines:
            line = line.strip()
            if len(line) <= 2:
                continue
            if line[0].isdigit() or len(line) >= MAX_FALLBACK_LENGTH:
                return None
            return ParseResult(
                value=line,
                confidence=0.5,
                source_text=line,
                metadata={'type': 'first_line', 'category': None},
            )
        return None


def split_vendor(result: Optional[ParseResult]) -> Tuple[Optional[str], Optional[str]]:
    """(vendor, category) from a vendor parse result."""
    if result is None:
        return None, None
    return result.value, result.metadata.get('category')
