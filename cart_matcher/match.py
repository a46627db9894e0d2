from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .models import (
    Action,
    Alternative,
    CandidateProduct,
    CartItem,
    ConfidenceTier,
    MatchResult,
    ScoreBreakdown,
    ValidationFlag,
)
from .scoring import aggregate, classify, score_breakdown

MAX_REASONS = 3

# A comparator at or above this sub-score is worth mentioning as a reason.
_STRONG = 0.8


@dataclass(frozen=True)
class ScoredCandidate:
    candidate: CandidateProduct
    breakdown: ScoreBreakdown
    confidence: float


def score_all(item: CartItem, candidates: Sequence[CandidateProduct]) -> list[ScoredCandidate]:
    """Score every candidate, best first; ties keep provider order."""
    scored = []
    for c in candidates:
        b = score_breakdown(item, c)
        scored.append(ScoredCandidate(candidate=c, breakdown=b, confidence=aggregate(b)))
    # sorted() is stable
    return sorted(scored, key=lambda s: -s.confidence)


def match_reasons(scored: ScoredCandidate) -> tuple[str, ...]:
    c, b = scored.candidate, scored.breakdown
    reasons = []
    if b.name >= _STRONG:
        reasons.append("Excellent name match")
    if b.brand >= 1.0:
        reasons.append(f"Same brand: {c.brand}")
    if b.category >= 1.0:
        reasons.append(f"Category: {c.category}")
    if b.size >= _STRONG:
        reasons.append(f"Similar size: {c.size}")
    if b.availability >= 1.0:
        reasons.append("In stock")
    return tuple(reasons[:MAX_REASONS])


def validation_flags(
    item: CartItem,
    best: CandidateProduct | None,
    tier: ConfidenceTier,
) -> frozenset[ValidationFlag]:
    flags = set()
    if tier.rank <= ConfidenceTier.FAIR.rank:
        flags.add(ValidationFlag.LOW_CONFIDENCE)
    if tier is ConfidenceTier.EXCELLENT:
        flags.add(ValidationFlag.HIGH_CONFIDENCE)
    if best is None or not best.price:
        flags.add(ValidationFlag.MISSING_PRICE)
    if not item.brand:
        flags.add(ValidationFlag.MISSING_BRAND)
    if not item.category:
        flags.add(ValidationFlag.MISSING_CATEGORY)
    return frozenset(flags)


def recommended_actions(tier: ConfidenceTier, alternatives: Sequence[Alternative]) -> frozenset[Action]:
    actions = set()
    if tier.rank >= ConfidenceTier.GOOD.rank:
        actions.add(Action.READY_FOR_CHECKOUT)
    if tier.rank < ConfidenceTier.FAIR.rank:
        actions.add(Action.MANUAL_REVIEW_RECOMMENDED)
        if alternatives:
            actions.add(Action.CONSIDER_ALTERNATIVES)
    if alternatives:
        actions.add(Action.ALTERNATIVES_AVAILABLE)
    return frozenset(actions)


def rank(
    item: CartItem,
    candidates: Sequence[CandidateProduct],
    *,
    max_alternatives: int = 3,
    min_confidence: float = 0.0,
    include_alternatives: bool = True,
) -> MatchResult:
    scored = score_all(item, candidates)

    top = scored[0] if scored else None
    if top is None or top.confidence < min_confidence:
        tier = ConfidenceTier.POOR
        return MatchResult(
            original_item=item,
            best_match=None,
            confidence=0.0,
            tier=tier,
            flags=validation_flags(item, None, tier),
            recommended_actions=recommended_actions(tier, ()),
        )

    alternatives: list[Alternative] = []
    if include_alternatives:
        for s in scored[1:]:
            if len(alternatives) >= max_alternatives:
                break
            if s.candidate.id == top.candidate.id or s.confidence < min_confidence:
                continue
            alternatives.append(
                Alternative(
                    product=s.candidate,
                    confidence=s.confidence,
                    tier=classify(s.confidence),
                    reasons=match_reasons(s),
                )
            )

    tier = classify(top.confidence)
    return MatchResult(
        original_item=item,
        best_match=top.candidate,
        confidence=top.confidence,
        tier=tier,
        alternatives=tuple(alternatives),
        flags=validation_flags(item, top.candidate, tier),
        recommended_actions=recommended_actions(tier, alternatives),
        breakdown=top.breakdown,
    )


def failed_result(item: CartItem, error: str) -> MatchResult:
    return MatchResult(
        original_item=item,
        best_match=None,
        confidence=0.0,
        tier=ConfidenceTier.POOR,
        flags=frozenset({ValidationFlag.VALIDATION_FAILED}),
        recommended_actions=frozenset({Action.MANUAL_REVIEW_REQUIRED}),
        error=error,
    )
