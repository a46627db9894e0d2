from __future__ import annotations

import re

from .models import Availability, CandidateProduct, CartItem, ConfidenceTier, ScoreBreakdown
from .normalize import match_name, normalize
from .similarity import name_similarity

WEIGHTS: dict[str, float] = {
    "name": 0.40,
    "brand": 0.25,
    "category": 0.20,
    "size": 0.10,
    "availability": 0.05,
}

_SIZE_CLEAN_RE = re.compile(r"[^\w.]")
_NUMBER_RE = re.compile(r"\d+\.?\d*")

_AVAILABILITY_SCORES: dict[Availability, float] = {
    Availability.IN_STOCK: 1.0,
    Availability.LOW_STOCK: 0.5,
}


def _same_text(a: str | None, b: str | None) -> float:
    if not a or not b or not a.strip() or not b.strip():
        return 0.0
    return 1.0 if a.strip().lower() == b.strip().lower() else 0.0


def brand_match(a: str | None, b: str | None) -> float:
    return _same_text(a, b)


def category_match(a: str | None, b: str | None) -> float:
    return _same_text(a, b)


def first_number(text: str) -> float | None:
    m = _NUMBER_RE.search(text)
    return float(m.group(0)) if m else None


def size_match(a: str | None, b: str | None) -> float:
    """Compare two size strings.

    Numeric sizes compare by relative difference of their first number; the
    unit is ignored, so "16 oz" vs "1 lb" scores low. Sizes without numbers
    fall back to name similarity.
    """
    if not a or not b:
        return 0.0

    clean_a = _SIZE_CLEAN_RE.sub("", a.lower())
    clean_b = _SIZE_CLEAN_RE.sub("", b.lower())
    if clean_a == clean_b:
        return 1.0

    n1 = first_number(clean_a)
    n2 = first_number(clean_b)
    if n1 is not None and n2 is not None:
        largest = max(n1, n2)
        if largest == 0:
            return 1.0
        return max(0.0, 1.0 - abs(n1 - n2) / largest)

    return name_similarity(normalize(a), normalize(b))


def availability_score(candidate: CandidateProduct) -> float:
    return _AVAILABILITY_SCORES.get(candidate.availability, 0.0)


def score_breakdown(item: CartItem, candidate: CandidateProduct) -> ScoreBreakdown:
    return ScoreBreakdown(
        name=name_similarity(match_name(item.raw_name), normalize(candidate.name)),
        brand=brand_match(item.brand, candidate.brand),
        category=category_match(item.category, candidate.category),
        size=size_match(item.size, candidate.size),
        availability=availability_score(candidate),
    )


def aggregate(breakdown: ScoreBreakdown) -> float:
    # Missing metadata scores 0 but keeps its weight, lowering confidence.
    total = (
        breakdown.name * WEIGHTS["name"]
        + breakdown.brand * WEIGHTS["brand"]
        + breakdown.category * WEIGHTS["category"]
        + breakdown.size * WEIGHTS["size"]
        + breakdown.availability * WEIGHTS["availability"]
    )
    return min(1.0, max(0.0, total))


def confidence(item: CartItem, candidate: CandidateProduct) -> float:
    return aggregate(score_breakdown(item, candidate))


def classify(score: float) -> ConfidenceTier:
    return ConfidenceTier.from_score(score)
