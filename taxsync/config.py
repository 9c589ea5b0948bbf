"""Tax-year configuration: category registry, sales tax and mileage rates.

Everything that changes from one tax year to the next lives in the YAML
files under ``taxsync/rules`` and is loaded into a ``TaxConfig``. Callers
that need different rates build their own config and pass it down instead
of touching the code.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterator, List, Optional, Tuple

import yaml

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

RULES_DIR = Path(__file__).parent / "rules"
CATEGORIES_FILE = RULES_DIR / "categories.yml"
TAX_RATES_FILE = RULES_DIR / "tax_rates.yml"
RECEIPT_KEYWORDS_FILE = RULES_DIR / "receipt_keywords.yml"

FALLBACK_CATEGORY = "other"

# Category names written by earlier releases -> registry keys
LEGACY_CATEGORY_MAP = {
    "Gas": "fuel",
    "Food": "other",
    "Parking": "other",
    "Maintenance": "maintenance",
    "Supplies": "supplies",
    "Other": "other",
}


@dataclass(frozen=True)
class Category:
    """A receipt category with its English and French labels."""
    key: str
    label: str
    label_fr: str

    def display_label(self, language: str = "en") -> str:
        return self.label_fr if language == "fr" else self.label


class CategoryRegistry:
    """Ordered registry of receipt categories with a guaranteed ``other`` entry."""

    def __init__(self, categories: List[Category]):
        self._categories: Dict[str, Category] = {}
        for category in categories:
            self._categories[category.key] = category
        if FALLBACK_CATEGORY not in self._categories:
            self._categories[FALLBACK_CATEGORY] = Category(FALLBACK_CATEGORY, "Other", "Autre")

    @classmethod
    def from_mapping(cls, mapping: Dict[str, Any]) -> "CategoryRegistry":
        if not isinstance(mapping, dict):
            raise ConfigurationError("Category registry must be a mapping of key -> labels")
        categories = []
        for key, labels in mapping.items():
            labels = labels or {}
            label = labels.get("label", key)
            categories.append(Category(key=str(key), label=label, label_fr=labels.get("label_fr", label)))
        return cls(categories)

    def __contains__(self, key: object) -> bool:
        return key in self._categories

    def __iter__(self) -> Iterator[Category]:
        return iter(self._categories.values())

    def __len__(self) -> int:
        return len(self._categories)

    def keys(self) -> List[str]:
        return list(self._categories)

    def get(self, key: str) -> Optional[Category]:
        return self._categories.get(key)

    def resolve(self, key: Optional[str]) -> str:
        """Return ``key`` when registered, otherwise the fallback key."""
        return key if key in self._categories else FALLBACK_CATEGORY


@dataclass(frozen=True)
class MileageRates:
    """CRA simplified-method rates per business kilometre."""
    first_tier_rate: Decimal = Decimal("0.70")
    second_tier_rate: Decimal = Decimal("0.64")
    territory_bonus_rate: Decimal = Decimal("0.04")
    tier_threshold_km: Decimal = Decimal("5000")


@dataclass(frozen=True)
class ReceiptRules:
    """Bounds used while reading receipt text and reviewing the result."""
    min_year: int = 2020
    max_year: int = 2030
    max_amount: Decimal = Decimal("100000")
    detailed_receipt_threshold: Decimal = Decimal("75")
    review_confidence: int = 60


@dataclass(frozen=True)
class VendorRule:
    """A merchant substring, its display name and implied category."""
    pattern: str
    name: str
    category: str


@dataclass
class TaxConfig:
    """All tax-year dependent settings in one place."""
    categories: CategoryRegistry
    gst_rate: Decimal = Decimal("0.05")
    qst_rate: Decimal = Decimal("0.09975")
    qst_provinces: FrozenSet[str] = frozenset({"QC"})
    hst_rates: Dict[str, Decimal] = field(default_factory=dict)
    provinces: FrozenSet[str] = frozenset()
    mileage: MileageRates = field(default_factory=MileageRates)
    retention_years: int = 6
    receipts: ReceiptRules = field(default_factory=ReceiptRules)
    vendor_rules: Tuple[VendorRule, ...] = ()
    category_keywords: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    tax_year: Optional[int] = None

    @classmethod
    def load(cls,
             categories_path: Optional[Path] = None,
             rates_path: Optional[Path] = None,
             keywords_path: Optional[Path] = None) -> "TaxConfig":
        """
        Load configuration from YAML files.

        Args:
            categories_path: Category registry file (defaults to the packaged one)
            rates_path: Tax and mileage rates file
            keywords_path: Merchant and category keyword tables

        Returns:
            A fully populated TaxConfig
        """
        return cls.from_dicts(
            load_yaml(categories_path or CATEGORIES_FILE),
            load_yaml(rates_path or TAX_RATES_FILE),
            load_yaml(keywords_path or RECEIPT_KEYWORDS_FILE),
        )

    @classmethod
    def from_dicts(cls,
                   categories: Dict[str, Any],
                   rates: Dict[str, Any],
                   keywords: Optional[Dict[str, Any]] = None) -> "TaxConfig":
        registry = CategoryRegistry.from_mapping(categories)
        rates = rates or {}
        keywords = keywords or {}

        mileage = rates.get("mileage") or {}
        receipt_rules = rates.get("receipts") or {}
        defaults = ReceiptRules()

        return cls(
            categories=registry,
            gst_rate=_decimal(rates.get("gst_rate", "0.05"), "gst_rate"),
            qst_rate=_decimal(rates.get("qst_rate", "0.09975"), "qst_rate"),
            qst_provinces=frozenset(str(p).upper() for p in rates.get("qst_provinces", ["QC"])),
            hst_rates={
                str(province).upper(): _decimal(rate, f"hst_rates.{province}")
                for province, rate in (rates.get("hst_rates") or {}).items()
            },
            provinces=frozenset(str(p).upper() for p in rates.get("provinces", [])),
            mileage=MileageRates(
                first_tier_rate=_decimal(mileage.get("first_tier_rate", "0.70"), "first_tier_rate"),
                second_tier_rate=_decimal(mileage.get("second_tier_rate", "0.64"), "second_tier_rate"),
                territory_bonus_rate=_decimal(mileage.get("territory_bonus_rate", "0.04"), "territory_bonus_rate"),
                tier_threshold_km=_decimal(mileage.get("tier_threshold_km", 5000), "tier_threshold_km"),
            ),
            retention_years=int(rates.get("retention_years", 6)),
            receipts=ReceiptRules(
                min_year=int(receipt_rules.get("min_year", defaults.min_year)),
                max_year=int(receipt_rules.get("max_year", defaults.max_year)),
                max_amount=_decimal(receipt_rules.get("max_amount", defaults.max_amount), "max_amount"),
                detailed_receipt_threshold=_decimal(
                    receipt_rules.get("detailed_receipt_threshold", defaults.detailed_receipt_threshold),
                    "detailed_receipt_threshold",
                ),
                review_confidence=int(receipt_rules.get("review_confidence", defaults.review_confidence)),
            ),
            vendor_rules=_vendor_rules(keywords.get("vendors") or []),
            category_keywords={
                str(key): tuple(str(word).lower() for word in words or [])
                for key, words in (keywords.get("categories") or {}).items()
            },
            tax_year=rates.get("tax_year"),
        )

    def normalize_province(self, province: Optional[str]) -> str:
        return (province or "").strip().upper()

    def is_known_province(self, province: Optional[str]) -> bool:
        return self.normalize_province(province) in self.provinces

    def hst_rate(self, province: Optional[str]) -> Decimal:
        """HST rate for a province, 0 for GST/PST provinces and unknown codes."""
        code = self.normalize_province(province)
        if self.provinces and code not in self.provinces:
            logger.warning(f"Unknown province code '{province}', using 0% provincial tax")
        return self.hst_rates.get(code, Decimal("0"))

    def qst_rate_for(self, province: Optional[str]) -> Decimal:
        return self.qst_rate if self.normalize_province(province) in self.qst_provinces else Decimal("0")


def load_yaml(path: Path) -> Dict[str, Any]:
    """Read a YAML mapping, raising ConfigurationError on any failure."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load configuration {path}: {e}")
        raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping")
    logger.debug(f"Loaded {len(data)} entries from {path}")
    return data


@lru_cache(maxsize=1)
def get_default_config() -> TaxConfig:
    """The packaged configuration, loaded once per process."""
    config = TaxConfig.load()
    logger.info(f"Loaded tax configuration for {config.tax_year} "
                f"({len(config.categories)} categories, {len(config.vendor_rules)} vendor rules)")
    return config


def _decimal(value: Any, name: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ConfigurationError(f"Invalid numeric value for {name}: {value!r}") from e


def _vendor_rules(groups: List[Dict[str, Any]]) -> Tuple[VendorRule, ...]:
    rules = []
    for group in groups:
        category = group.get("category")
        if not category:
            raise ConfigurationError(f"Vendor group without category: {group!r}")
        for pattern in group.get("patterns") or []:
            pattern = str(pattern).lower()
            rules.append(VendorRule(pattern=pattern, name=_display_name(pattern), category=category))
    return tuple(rules)


def _display_name(pattern: str) -> str:
    """'petro canada' -> 'Petro Canada'."""
    return " ".join(word[:1].upper() + word[1:] for word in pattern.split(" "))
