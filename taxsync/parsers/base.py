"""Base classes for receipt text parsers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Match, Optional, Pattern
import logging

logger = logging.getLogger(__name__)


@dataclass
class ParseResult:
    """Result of a parsing operation with confidence and metadata."""
    value: Any
    confidence: float
    source_text: str = ""
    metadata: Dict[str, Any] = None

    def __post_init__(self):
        if self.metadata is None:
            self.metadata = {}


@dataclass
class ReceiptContext:
    """Receipt text prepared once and shared by every parser."""
    full_text: str
    lines: List[str] = None
    lower_text: str = None

    def __post_init__(self):
        if self.lines is None:
            self.lines = self.full_text.split('\n') if self.full_text else []
        if self.lower_text is None:
            self.lower_text = self.full_text.lower() if self.full_text else ""


@dataclass(frozen=True)
class PatternRule:
    """
    One entry of an ordered extraction list.

    ``handler`` turns the first match of ``pattern`` into a value, or returns
    None to let the next rule try.
    """
    name: str
    pattern: Pattern
    handler: Callable[[Match], Any]
    confidence: float = 0.5


class BaseParser(ABC):
    """Base class for all receipt parsers."""

    def __init__(self, rules: Optional[Iterable[PatternRule]] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.rules: List[PatternRule] = list(rules) if rules is not None else self.default_rules()

    def default_rules(self) -> List[PatternRule]:
        return []

    @abstractmethod
    def parse(self, context: ReceiptContext) -> Optional[ParseResult]:
        """
        Parse the specific field from receipt context.

        Args:
            context: Receipt context with text and lines

        Returns:
            ParseResult with value and confidence, or None if parsing failed
        """

    def _first_match(self, text: str) -> Optional[ParseResult]:
        """Evaluate rules in order; the first one whose handler yields a value wins."""
        for rule in self.rules:
            match = rule.pattern.search(text)
            if not match:
                continue
            value = rule.handler(match)
            if value is not None:
                return ParseResult(
                    value=value,
                    confidence=rule.confidence,
                    source_text=match.group(0).strip()[:50],
                    metadata={'pattern': rule.name},
                )
            self.logger.debug(f"Rule {rule.name} matched '{match.group(0)}' but was rejected")
        return None

    def _log_result(self, result: Optional[ParseResult]):
        """Log parsing result for debugging."""
        if result:
            self.logger.debug(f"Parsed: {result.value} (confidence: {result.confidence:.2f})")
        else:
            self.logger.debug("Parsing failed - no result")
