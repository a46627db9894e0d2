from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping


class Availability(str, Enum):
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "Availability":
        """Map provider availability values (strings or in-stock booleans)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            return cls.IN_STOCK if value else cls.OUT_OF_STOCK
        if not isinstance(value, str):
            return cls.UNKNOWN
        key = value.strip().lower().replace(" ", "_").replace("-", "_")
        return _AVAILABILITY_ALIASES.get(key, cls.UNKNOWN)


_AVAILABILITY_ALIASES: dict[str, Availability] = {
    "in_stock": Availability.IN_STOCK,
    "instock": Availability.IN_STOCK,
    "available": Availability.IN_STOCK,
    "low_stock": Availability.LOW_STOCK,
    "limited_stock": Availability.LOW_STOCK,
    "out_of_stock": Availability.OUT_OF_STOCK,
    "outofstock": Availability.OUT_OF_STOCK,
    "unavailable": Availability.OUT_OF_STOCK,
}


class ConfidenceTier(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"

    @classmethod
    def from_score(cls, score: float) -> "ConfidenceTier":
        for tier in (cls.EXCELLENT, cls.GOOD, cls.FAIR):
            if score >= TIER_THRESHOLDS[tier]:
                return tier
        return cls.POOR

    @property
    def rank(self) -> int:
        # POOR=0 .. EXCELLENT=3, for ordered comparisons
        return _TIER_ORDER.index(self)

    @property
    def label(self) -> str:
        return f"{self.value.capitalize()} Match"


TIER_THRESHOLDS: dict[ConfidenceTier, float] = {
    ConfidenceTier.EXCELLENT: 0.8,
    ConfidenceTier.GOOD: 0.6,
    ConfidenceTier.FAIR: 0.4,
    ConfidenceTier.POOR: 0.0,
}

_TIER_ORDER = [
    ConfidenceTier.POOR,
    ConfidenceTier.FAIR,
    ConfidenceTier.GOOD,
    ConfidenceTier.EXCELLENT,
]


class ValidationFlag(str, Enum):
    LOW_CONFIDENCE = "low_confidence"
    HIGH_CONFIDENCE = "high_confidence"
    MISSING_PRICE = "missing_price"
    MISSING_BRAND = "missing_brand"
    MISSING_CATEGORY = "missing_category"
    VALIDATION_FAILED = "validation_failed"


class Action(str, Enum):
    READY_FOR_CHECKOUT = "ready_for_checkout"
    MANUAL_REVIEW_RECOMMENDED = "manual_review_recommended"
    MANUAL_REVIEW_REQUIRED = "manual_review_required"
    CONSIDER_ALTERNATIVES = "consider_alternatives"
    ALTERNATIVES_AVAILABLE = "alternatives_available"


_PRICE_RE = re.compile(r"-?\d+(?:\.\d+)?")


def parse_price(value: Any) -> Decimal | None:
    """Parse 3.99, "3.99" or "$3.99" into a Decimal; None when absent or invalid."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    m = _PRICE_RE.search(str(value).replace(",", ""))
    if not m:
        return None
    try:
        return Decimal(m.group(0))
    except InvalidOperation:
        return None


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _opt_quantity(value: Any) -> float | None:
    # JSON lists carry quantities as numbers or as strings like "2" or "1 1/2"
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        from .normalize import parse_quantity_token

        return parse_quantity_token(value)
    return None


@dataclass(frozen=True)
class CartItem:
    """One grocery-list entry as supplied by the caller."""

    id: str
    raw_name: str
    brand: str | None = None
    category: str | None = None
    size: str | None = None
    quantity: float | None = None

    @staticmethod
    def from_dict(row: Mapping[str, Any], *, default_id: str = "") -> "CartItem":
        # Accept the field names shopping-list payloads tend to use
        name = row.get("raw_name") or row.get("rawName") or row.get("name") or row.get("productName") or row.get("item") or ""
        qty = _opt_quantity(row.get("quantity"))
        return CartItem(
            id=str(row.get("id") or default_id),
            raw_name=str(name),
            brand=_opt_str(row.get("brand")),
            category=_opt_str(row.get("category")),
            size=_opt_str(row.get("size")),
            quantity=qty,
        )


@dataclass(frozen=True)
class CandidateProduct:
    """A single catalog product returned by the search provider."""

    id: str
    name: str
    brand: str | None = None
    category: str | None = None
    size: str | None = None
    price: Decimal | None = None
    availability: Availability = Availability.UNKNOWN

    @staticmethod
    def from_dict(row: Mapping[str, Any]) -> "CandidateProduct":
        _id = row.get("id") or row.get("product_id") or row.get("sku")
        name = row.get("name") or row.get("title")
        if not _id or not name:
            raise ValueError(f"candidate row missing id or name: {dict(row)!r:.200}")

        price = row.get("price")
        if price is None and isinstance(row.get("pricing"), Mapping):
            price = row["pricing"].get("price")

        availability = row.get("availability")
        if availability is None and "in_stock" in row:
            availability = row.get("in_stock")

        return CandidateProduct(
            id=str(_id),
            name=str(name),
            brand=_opt_str(row.get("brand") or row.get("manufacturer")),
            category=_opt_str(row.get("category")),
            size=_opt_str(row.get("size") or row.get("package_size")),
            price=parse_price(price),
            availability=Availability.parse(availability),
        )


@dataclass(frozen=True)
class ScoreBreakdown:
    name: float
    brand: float
    category: float
    size: float
    availability: float


@dataclass(frozen=True)
class Alternative:
    """A runner-up candidate offered alongside the best match."""

    product: CandidateProduct
    confidence: float
    tier: ConfidenceTier
    reasons: tuple[str, ...] = ()


@dataclass(frozen=True)
class RetailerQuote:
    retailer_id: str
    retailer_name: str
    price: Decimal
    availability: Availability = Availability.UNKNOWN
    delivery_fee: Decimal | None = None
    service_fee: Decimal | None = None
    estimated_delivery: str | None = None
    savings_vs_highest: Decimal = Decimal("0")
    savings_vs_average: Decimal = Decimal("0")
    is_lowest_price: bool = False


@dataclass(frozen=True)
class PricingInfo:
    quotes: tuple[RetailerQuote, ...]
    lowest_price: Decimal
    highest_price: Decimal
    average_price: Decimal
    price_range: Decimal

    @property
    def cheapest(self) -> RetailerQuote | None:
        for q in self.quotes:
            if q.is_lowest_price:
                return q
        return None


@dataclass(frozen=True)
class MatchResult:
    original_item: CartItem
    best_match: CandidateProduct | None
    confidence: float
    tier: ConfidenceTier
    alternatives: tuple[Alternative, ...] = ()
    flags: frozenset[ValidationFlag] = frozenset()
    recommended_actions: frozenset[Action] = frozenset()

    # Sub-scores behind ``confidence`` when there is a best match.
    breakdown: ScoreBreakdown | None = None

    pricing: PricingInfo | None = None
    error: str | None = None

    @property
    def failed(self) -> bool:
        return ValidationFlag.VALIDATION_FAILED in self.flags

    @property
    def needs_review(self) -> bool:
        return self.failed or self.tier is ConfidenceTier.POOR


@dataclass(frozen=True)
class BatchSummary:
    total: int
    tier_counts: dict[ConfidenceTier, int] = field(default_factory=dict)
    average_confidence: float = 0.0
    items_needing_review: int = 0
    ready_for_checkout: int = 0
    failed: int = 0
    percentage_excellent: int = 0
    percentage_good_or_better: int = 0


@dataclass(frozen=True)
class BatchResult:
    items: tuple[MatchResult, ...]
    summary: BatchSummary
    timestamp: str
