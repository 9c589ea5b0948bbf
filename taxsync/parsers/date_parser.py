"""Date extraction from receipt text."""

import re
import logging
from typing import List, Match, Optional

from ..config import ReceiptRules
from ..dates import build_date, month_number
from .base import BaseParser, ParseResult, PatternRule, ReceiptContext

logger = logging.getLogger(__name__)

MONTH = r'(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)\w*\.?'


class ReceiptDateParser(BaseParser):
    """Specialized parser for extracting the purchase date from receipts."""

    def __init__(self, rules: Optional[List[PatternRule]] = None,
                 receipt_rules: Optional[ReceiptRules] = None):
        self.receipt_rules = receipt_rules or ReceiptRules()
        super().__init__(rules)

    def default_rules(self) -> List[PatternRule]:
        # Unambiguous formats first; day/month order is only guessed last.
        return [
            PatternRule('year_first', re.compile(r'(\d{4})[/-](\d{1,2})[/-](\d{1,2})'),
                        self._year_first, 0.95),
            PatternRule('month_name_first', re.compile(MONTH + r'\s+(\d{1,2}),?\s+(\d{4})', re.I),
                        self._month_name_first, 0.9),
            PatternRule('day_month_name', re.compile(r'(\d{1,2})\s+' + MONTH + r'\s+(\d{4})', re.I),
                        self._day_month_name, 0.9),
            PatternRule('numeric_ambiguous', re.compile(r'(\d{1,2})[/-](\d{1,2})[/-](\d{4})'),
                        self._numeric_ambiguous, 0.7),
        ]

    def parse(self, context: ReceiptContext) -> Optional[ParseResult]:
        """
        Extract and normalize the receipt date.

        Args:
            context: Receipt context with full text

        Returns:
            ParseResult with an ISO date string, or None
        """
        if not context.full_text:
            return None
        result = self._first_match(context.full_text)
        self._log_result(result)
        return result

    def _valid(self, year: int, month: int, day: int) -> Optional[str]:
        """ISO date if it exists and falls inside the accepted year window."""
        if not (self.receipt_rules.min_year <= year <= self.receipt_rules.max_year):
            return None
        return build_date(year, month, day)

    def _year_first(self, match: Match) -> Optional[str]:
        year, month, day = (int(g) for g in match.groups())
        return self._valid(year, month, day)

    def _month_name_first(self, match: Match) -> Optional[str]:
        month = month_number(match.group(1))
        return self._valid(int(match.group(3)), month, int(match.group(2))) if month else None

    def _day_month_name(self, match: Match) -> Optional[str]:
        month = month_number(match.group(2))
        return self._valid(int(match.group(3)), month, int(match.group(1))) if month else None

    def _numeric_ambiguous(self, match: Match) -> Optional[str]:
        first, second, year = (int(g) for g in match.groups())
        # Canadian receipts are usually day-first
        return self._valid(year, second, first) or self._valid(year, first, second)
