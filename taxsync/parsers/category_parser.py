"""Category suggestion from receipt keywords."""

import logging
from typing import Dict, Optional, Sequence, Tuple

from ..config import FALLBACK_CATEGORY
from .base import BaseParser, ParseResult, ReceiptContext

logger = logging.getLogger(__name__)


class CategorySuggester(BaseParser):
    """Suggest a receipt category by counting keyword hits in the text."""

    def __init__(self, keywords: Dict[str, Sequence[str]] = None):
        """
        Initialize suggester with a keyword table.

        Args:
            keywords: category key -> keywords, in tie-breaking order
        """
        super().__init__(rules=[])
        self.keywords: Dict[str, Tuple[str, ...]] = {
            key: tuple(word.lower() for word in words)
            for key, words in (keywords or {}).items()
        }

    def score(self, text: str) -> Dict[str, int]:
        """Number of distinct keywords of each category found in ``text``."""
        lower = text.lower()
        return {
            key: sum(1 for word in words if word in lower)
            for key, words in self.keywords.items()
        }

    def parse(self, context: ReceiptContext) -> Optional[ParseResult]:
        if not context.full_text:
            return None

        best_category = FALLBACK_CATEGORY
        best_score = 0
        for category, hits in self.score(context.lower_text).items():
            # Strictly greater: earlier categories win ties
            if hits > best_score:
                best_category, best_score = category, hits

        if best_score == 0:
            logger.debug("No category keywords found, defaulting to 'other'")
            return None

        result = ParseResult(
            value=best_category,
            confidence=min(best_score / 3.0, 1.0),
            source_text=best_category,
            metadata={'hits': best_score},
        )
        self._log_result(result)
        return result
