"""Total amount extraction from receipt text."""

import re
import logging
from decimal import Decimal, InvalidOperation
from typing import List, Match, Optional

from ..config import ReceiptRules
from ..utils import quantize_money
from .base import BaseParser, ParseResult, PatternRule, ReceiptContext

logger = logging.getLogger(__name__)

# 1,234.56 | 1234.56 | 12,50 (decimal comma)
AMOUNT = r'(\d{1,3}(?:,\d{3})+\.\d{2}|\d{1,6}[.,]\d{2})(?!\d)'

_DOLLAR_AMOUNT = re.compile(r'\$\s*' + AMOUNT)


def parse_amount_text(raw: str) -> Optional[Decimal]:
    """'1,234.56' -> 1234.56, '12,50' -> 12.50."""
    if ',' in raw and '.' in raw:
        raw = raw.replace(',', '')
    else:
        raw = raw.replace(',', '.')
    try:
        return Decimal(raw)
    except InvalidOperation:
        return None


class AmountParser(BaseParser):
    """
    Find the receipt total.

    Labeled totals win over generic amount labels, which win over bare
    ``CAD`` amounts. With no label at all the largest dollar amount is used,
    since the total is normally the biggest figure on a receipt.
    """

    def __init__(self, rules: Optional[List[PatternRule]] = None,
                 receipt_rules: Optional[ReceiptRules] = None):
        self.receipt_rules = receipt_rules or ReceiptRules()
        super().__init__(rules)

    def default_rules(self) -> List[PatternRule]:
        return [
            PatternRule('labeled_total',
                        re.compile(r'(?:grand total|balance due|amount due)\s*[:=]?\s*\$?\s*' + AMOUNT, re.I),
                        self._to_amount, 0.95),
            PatternRule('total_caps',
                        re.compile(r'^TOTAL\s*[:=]?\s*\$?\s*' + AMOUNT, re.M),
                        self._to_amount, 0.9),
            PatternRule('total',
                        re.compile(r'(?:^|\n)\s*total\s*[:=]?\s*\$?\s*' + AMOUNT, re.I | re.M),
                        self._to_amount, 0.85),
            PatternRule('amount_label',
                        re.compile(r'(?:amount|montant|prix)\s*[:=]?\s*\$?\s*' + AMOUNT, re.I),
                        self._to_amount, 0.75),
            PatternRule('currency_suffix',
                        re.compile(AMOUNT + r'\s*(?:CAD|CDN)', re.I),
                        self._to_amount, 0.6),
        ]

    def parse(self, context: ReceiptContext) -> Optional[ParseResult]:
        """
        Extract the total amount.

        Args:
            context: Receipt context with full text

        Returns:
            ParseResult with a Decimal amount, or None
        """
        if not context.full_text:
            return None

        result = self._first_match(context.full_text)
        if result is None:
            result = self._largest_dollar_amount(context.full_text)

        self._log_result(result)
        return result

    def _to_amount(self, match: Match) -> Optional[Decimal]:
        value = parse_amount_text(match.group(1))
        if value is None or not (0 < value < self.receipt_rules.max_amount):
            return None
        return quantize_money(value)

    def _largest_dollar_amount(self, text: str) -> Optional[ParseResult]:
        amounts = []
        for match in _DOLLAR_AMOUNT.finditer(text):
            value = self._to_amount(match)
            if value is not None:
                amounts.append(value)

        if not amounts:
            return None

        return ParseResult(
            value=max(amounts),
            confidence=0.5,
            source_text="largest_dollar_amount",
            metadata={'pattern': 'largest_dollar_amount', 'candidates': len(amounts)},
        )
