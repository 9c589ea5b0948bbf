"""Receipt text extraction using the modular field parsers."""

import logging
from decimal import Decimal
from typing import Optional

from .config import TaxConfig, get_default_config
from .errors import ValidationError
from .models import (
    CanonicalExpenseReceipt,
    ExpenseDetails,
    ExtractionResult,
    ReceiptMetadata,
    TaxBreakdown,
)
from .parsers import (
    AmountParser,
    CategorySuggester,
    ReceiptContext,
    ReceiptDateParser,
    TaxParser,
    VendorParser,
)
from .parsers.vendor_parser import split_vendor
from .utils import Clock, IdFactory, generate_id, retention_date, utc_now

logger = logging.getLogger(__name__)

# Points each found field contributes to the overall confidence (sums to 100)
CONFIDENCE_WEIGHTS = {
    'amount': 35,
    'date': 25,
    'vendor': 20,
    'category': 10,
    'tax': 10,
}


class ReceiptTextParser:
    """
    Turn OCR text into an ExtractionResult.

    Each field has its own parser; the parsers are built once and never
    mutated, so a single instance can be shared.
    """

    def __init__(self,
                 config: Optional[TaxConfig] = None,
                 clock: Optional[Clock] = None,
                 id_factory: Optional[IdFactory] = None,
                 amount_parser: Optional[AmountParser] = None,
                 date_parser: Optional[ReceiptDateParser] = None,
                 vendor_parser: Optional[VendorParser] = None,
                 tax_parser: Optional[TaxParser] = None,
                 category_suggester: Optional[CategorySuggester] = None):
        self.config = config or get_default_config()
        self.clock = clock or utc_now
        self.id_factory = id_factory or (lambda prefix: generate_id(prefix, self.clock))

        self.amount_parser = amount_parser or AmountParser(receipt_rules=self.config.receipts)
        self.date_parser = date_parser or ReceiptDateParser(receipt_rules=self.config.receipts)
        self.vendor_parser = vendor_parser or VendorParser(self.config.vendor_rules)
        self.tax_parser = tax_parser or TaxParser()
        self.category_suggester = category_suggester or CategorySuggester(self.config.category_keywords)

        logger.debug(f"Initialized receipt parser with {len(self.config.vendor_rules)} vendor rules")

    def today(self) -> str:
        return self.clock().date().isoformat()

    def parse_receipt(self, text) -> ExtractionResult:
        """
        Extract amount, date, vendor, taxes and category from receipt text.

        Args:
            text: Raw OCR text from receipt

        Returns:
            ExtractionResult; the date is today when none was found
        """
        if not text or not isinstance(text, str):
            logger.debug("Empty receipt text, nothing to extract")
            return ExtractionResult(date=self.today(), raw_text=text if isinstance(text, str) else "")

        context = ReceiptContext(full_text=text)

        amount_result = self.amount_parser.parse(context)
        date_result = self.date_parser.parse(context)
        vendor, vendor_category = split_vendor(self.vendor_parser.parse(context))
        tax_result = self.tax_parser.parse(context)

        # A known merchant says more about the expense than loose keywords
        if vendor_category:
            category = self.config.categories.resolve(vendor_category)
        else:
            category_result = self.category_suggester.parse(context)
            category = self.config.categories.resolve(category_result.value if category_result else None)

        result = ExtractionResult(
            date=date_result.value if date_result else self.today(),
            date_found=date_result is not None,
            amount=amount_result.value if amount_result else None,
            vendor=vendor,
            category=category,
            tax=tax_result.value if tax_result else TaxBreakdown(),
            raw_text=text,
        )
        result.confidence = self.score(result)

        logger.info(f"Parsed receipt: date={result.date}, amount=${result.amount}, "
                    f"vendor={result.vendor}, category={result.category}, "
                    f"confidence={result.confidence}")
        return result

    def score(self, result: ExtractionResult) -> int:
        """Overall confidence: the weights of every field that was found."""
        found = {
            'amount': result.amount is not None,
            'date': result.date_found,
            'vendor': bool(result.vendor),
            'category': result.category != 'other',
            'tax': result.tax.found,
        }
        return min(100, sum(CONFIDENCE_WEIGHTS[name] for name, present in found.items() if present))

    def to_receipt(self, result: ExtractionResult, description: Optional[str] = None) -> CanonicalExpenseReceipt:
        """
        Build an expense receipt from a confirmed extraction.

        Raises:
            ValidationError: no amount was extracted
        """
        if result.amount is None:
            raise ValidationError("cannot create a receipt without an amount", field="amount")

        now = self.clock().isoformat()
        return CanonicalExpenseReceipt(
            id=self.id_factory("receipt"),
            timestamp=now,
            expense=ExpenseDetails(
                date=result.date,
                amount=result.amount,
                vendor=result.vendor or "",
                category=result.category,
                description=description if description is not None else ocr_description(result.tax),
            ),
            metadata=ReceiptMetadata(
                uploaded_at=now,
                retain_until=retention_date(result.date, self.config.retention_years),
                source="ocr",
            ),
        )


def ocr_description(tax: TaxBreakdown) -> str:
    if not tax.found:
        return "[OCR] Auto-scanned receipt"
    if tax.hst is not None:
        return f"[OCR] Tax: HST ${tax.hst}"
    return f"[OCR] Tax: GST ${tax.gst or Decimal('0.00')}, QST ${tax.qst or Decimal('0.00')}"


_default_parser: Optional[ReceiptTextParser] = None


def _parser() -> ReceiptTextParser:
    global _default_parser
    if _default_parser is None:
        _default_parser = ReceiptTextParser()
    return _default_parser


def parse_receipt_text(text, clock: Optional[Clock] = None) -> ExtractionResult:
    """Parse receipt text with the packaged configuration."""
    if clock is not None:
        return ReceiptTextParser(clock=clock).parse_receipt(text)
    return _parser().parse_receipt(text)


def _context(text) -> Optional[ReceiptContext]:
    if not text or not isinstance(text, str):
        return None
    return ReceiptContext(full_text=text)


def extract_amount(text) -> Optional[Decimal]:
    context = _context(text)
    result = _parser().amount_parser.parse(context) if context else None
    return result.value if result else None


def extract_date(text) -> Optional[str]:
    context = _context(text)
    result = _parser().date_parser.parse(context) if context else None
    return result.value if result else None


def extract_vendor(text) -> Optional[str]:
    context = _context(text)
    vendor, _ = split_vendor(_parser().vendor_parser.parse(context) if context else None)
    return vendor


def extract_tax(text) -> TaxBreakdown:
    context = _context(text)
    result = _parser().tax_parser.parse(context) if context else None
    return result.value if result else TaxBreakdown()


def suggest_category(text) -> str:
    context = _context(text)
    result = _parser().category_suggester.parse(context) if context else None
    return _parser().config.categories.resolve(result.value if result else None)
