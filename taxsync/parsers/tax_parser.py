"""Sales tax lines (GST/TPS, QST/TVQ, HST/TVH) from receipt text."""

import re
import logging
from typing import Dict, Match, Optional

from ..models import TaxBreakdown
from ..utils import quantize_money
from .amount_parser import AMOUNT, parse_amount_text
from .base import BaseParser, ParseResult, PatternRule, ReceiptContext

logger = logging.getLogger(__name__)

# "GST (5%): $3.51", "TPS 3,51", "HST = 13.00"
_RATE = r'\s*(?:\([^)]*\))?\s*[:=]?\s*\$?\s*'


def tax_pattern(*labels: str):
    return re.compile(r'(?:' + '|'.join(labels) + r')' + _RATE + AMOUNT, re.I)


class TaxParser(BaseParser):
    """
    Read each sales tax independently.

    Unlike the other parsers every rule is evaluated, since a Quebec receipt
    prints both GST and QST. Rule names are the TaxBreakdown field they fill.
    """

    def default_rules(self):
        return [
            PatternRule('gst', tax_pattern('GST', 'TPS'), self._to_tax, 0.9),
            PatternRule('hst', tax_pattern('HST', 'TVH'), self._to_tax, 0.9),
            PatternRule('qst', tax_pattern('QST', 'TVQ'), self._to_tax, 0.9),
        ]

    def parse(self, context: ReceiptContext) -> Optional[ParseResult]:
        """
        Extract every tax line present.

        Returns:
            ParseResult holding a TaxBreakdown, or None when no tax line is found
        """
        if not context.full_text:
            return None

        found: Dict[str, object] = {}
        for rule in self.rules:
            match = rule.pattern.search(context.full_text)
            if match:
                value = rule.handler(match)
                if value is not None:
                    found[rule.name] = value

        if not found:
            self._log_result(None)
            return None

        breakdown = TaxBreakdown(
            gst=found.get('gst'),
            qst=found.get('qst'),
            hst=found.get('hst'),
            total_tax=quantize_money(sum(found.values())),
        )
        result = ParseResult(
            value=breakdown,
            confidence=0.9,
            source_text=", ".join(sorted(found)),
            metadata={'taxes': sorted(found)},
        )
        self._log_result(result)
        return result

    def _to_tax(self, match: Match):
        value = parse_amount_text(match.group(1))
        return None if value is None else quantize_money(value)
