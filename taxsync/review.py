"""Review queue for uncertain receipt extractions."""

import logging
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from .config import ReceiptRules
from .models import ExtractionResult

logger = logging.getLogger(__name__)

DUPLICATE_TOLERANCE = Decimal("0.03")
SNIPPET_LENGTH = 200


@dataclass
class ReviewItem:
    """An extraction that needs a person to look at it."""
    source: str
    reason: str
    suggested_date: Optional[str] = None
    suggested_amount: Optional[Decimal] = None
    suggested_category: Optional[str] = None
    suggested_vendor: Optional[str] = None
    raw_snippet: str = ""
    confidence: int = 0


def make_snippet(raw_text: str) -> str:
    """First characters of the OCR text on one line, without control characters."""
    snippet = raw_text.replace('\n', ' ')[:SNIPPET_LENGTH]
    snippet = ''.join(char for char in snippet if ord(char) >= 32 or char == '\t')
    if len(raw_text) > SNIPPET_LENGTH:
        snippet += "..."
    return snippet


class ReviewQueue:
    """Collects extraction results that need manual confirmation."""

    def __init__(self, rules: Optional[ReceiptRules] = None):
        """
        Initialize review queue.

        Args:
            rules: Confidence and detailed-receipt thresholds
        """
        self.rules = rules or ReceiptRules()
        self.items: List[ReviewItem] = []

    def review_reasons(self, result: ExtractionResult) -> List[str]:
        """Every reason ``result`` should be checked by hand, empty when it looks fine."""
        reasons = []

        if result.amount is None:
            reasons.append("missing amount")
        if not result.date_found:
            reasons.append("missing date")
        if result.confidence < self.rules.review_confidence:
            reasons.append("low confidence")
        if result.category == "other":
            reasons.append("unknown category")
        # The CRA expects GST/HST details on receipts of $75 or more
        if (result.amount is not None
                and result.amount >= self.rules.detailed_receipt_threshold
                and not result.tax.found):
            reasons.append("no tax breakdown")

        return reasons

    def add_from_extraction(self, source: str, result: ExtractionResult) -> Optional[ReviewItem]:
        """
        Queue ``result`` if anything about it is uncertain.

        Args:
            source: Where the text came from (file name, receipt id)
            result: Extraction to check

        Returns:
            The queued ReviewItem, or None when no review is needed
        """
        reasons = self.review_reasons(result)
        if not reasons:
            return None

        item = ReviewItem(
            source=source,
            reason="; ".join(reasons),
            suggested_date=result.date,
            suggested_amount=result.amount,
            suggested_category=result.category,
            suggested_vendor=result.vendor,
            raw_snippet=make_snippet(result.raw_text),
            confidence=result.confidence,
        )
        self.items.append(item)
        logger.info(f"Sending {source} to review: {item.reason}")
        return item

    def detect_duplicates(self, extractions: Sequence[Dict[str, Any]]) -> List[ReviewItem]:
        """
        Find probable duplicate receipts.

        Receipts with the same vendor and date whose amounts are within 3% of
        each other are reported together.

        Args:
            extractions: Dicts with source, vendor, date, amount and category

        Returns:
            Review items for every receipt in a duplicate group
        """
        groups: Dict[tuple, List[Dict[str, Any]]] = defaultdict(list)
        for extraction in extractions:
            vendor = (extraction.get('vendor') or '').strip().lower()
            groups[(vendor, extraction.get('date', ''))].append(extraction)

        duplicates = []
        for (vendor, date), group in groups.items():
            if not vendor or len(group) < 2:
                continue
            amounts = [Decimal(str(item['amount'])) for item in group if item.get('amount')]
            if len(amounts) < 2:
                continue

            highest, lowest = max(amounts), min(amounts)
            if highest > 0 and (highest - lowest) / highest <= DUPLICATE_TOLERANCE:
                logger.warning(f"{len(group)} possible duplicates: {vendor} on {date}")
                for item in group:
                    duplicates.append(ReviewItem(
                        source=item.get('source', ''),
                        reason="possible duplicate",
                        suggested_date=date,
                        suggested_amount=item.get('amount'),
                        suggested_category=item.get('category'),
                        suggested_vendor=item.get('vendor'),
                        raw_snippet=f"Similar to {len(group) - 1} other receipts: {item.get('vendor')} on {date}",
                    ))

        return duplicates

    def get_summary(self) -> Dict[str, Any]:
        """Get summary statistics for the review queue."""
        if not self.items:
            return {"total": 0}

        reason_counts: Dict[str, int] = {}
        missing_data = 0
        for item in self.items:
            for reason in item.reason.split(';'):
                reason = reason.strip()
                reason_counts[reason] = reason_counts.get(reason, 0) + 1
            if 'missing' in item.reason:
                missing_data += 1

        return {
            "total": len(self.items),
            "missing_data": missing_data,
            "reason_breakdown": reason_counts,
        }

    def clear(self):
        """Clear all items from the review queue."""
        self.items.clear()
        logger.info("Review queue cleared")
