from decimal import Decimal

from cart_matcher.match import failed_result, match_reasons, rank, score_all
from cart_matcher.models import (
    Action,
    Availability,
    CandidateProduct,
    CartItem,
    ConfidenceTier,
    ValidationFlag,
)


def _item(name="Milk", brand=None, category=None, size=None):
    return CartItem(id="i1", raw_name=name, brand=brand, category=category, size=size)


def _cand(pid, name="Milk", brand=None, category=None, size=None, price="3.49", availability=Availability.UNKNOWN):
    return CandidateProduct(
        id=pid,
        name=name,
        brand=brand,
        category=category,
        size=size,
        price=Decimal(price) if price is not None else None,
        availability=availability,
    )


def test_empty_candidates():
    result = rank(_item("Xyzzy Nonexistent Item"), [])
    assert result.best_match is None
    assert result.confidence == 0.0
    assert result.tier is ConfidenceTier.POOR
    assert result.alternatives == ()
    assert ValidationFlag.VALIDATION_FAILED not in result.flags
    assert Action.MANUAL_REVIEW_RECOMMENDED in result.recommended_actions


def test_tie_keeps_provider_order_and_limits_alternatives():
    candidates = [_cand("a", brand="A"), _cand("b", brand="B")]
    result = rank(_item("Milk"), candidates, max_alternatives=1)
    assert result.best_match.id == "a"
    assert len(result.alternatives) == 1
    assert result.alternatives[0].product.id == "b"
    assert result.alternatives[0].confidence <= result.confidence


def test_best_match_is_highest_confidence():
    item = _item("Organic Whole Milk", brand="Horizon", category="dairy")
    candidates = [
        _cand("1", name="Whole Milk", brand="Great Value", category="dairy"),
        _cand("2", name="Organic Whole Milk", brand="Horizon", category="dairy", availability=Availability.IN_STOCK),
        _cand("3", name="Chocolate Milk", brand="Horizon", category="dairy"),
    ]
    result = rank(item, candidates)
    assert result.best_match.id == "2"
    assert result.tier is ConfidenceTier.EXCELLENT
    assert ValidationFlag.HIGH_CONFIDENCE in result.flags
    assert Action.READY_FOR_CHECKOUT in result.recommended_actions
    assert Action.ALTERNATIVES_AVAILABLE in result.recommended_actions
    assert result.breakdown is not None and result.breakdown.brand == 1.0


def test_alternatives_sorted_and_exclude_best():
    item = _item("chicken breast")
    candidates = [
        _cand("1", name="Turkey Breast"),
        _cand("2", name="Chicken Breast"),
        _cand("3", name="Chicken Breasts"),
        _cand("4", name="Chicken Thighs"),
        _cand("5", name="Dish Soap"),
        _cand("2", name="Chicken Breast"),
    ]
    result = rank(item, candidates, max_alternatives=3)
    ids = [a.product.id for a in result.alternatives]
    confs = [a.confidence for a in result.alternatives]
    assert result.best_match.id == "2"
    assert "2" not in ids
    assert len(ids) <= 3
    assert confs == sorted(confs, reverse=True)


def test_min_confidence_filters_alternatives():
    item = _item("chicken breast")
    candidates = [_cand("1", name="Chicken Breast"), _cand("2", name="Dish Soap")]
    result = rank(item, candidates, min_confidence=0.3)
    assert result.best_match.id == "1"
    assert result.alternatives == ()


def test_best_below_floor_is_no_match():
    result = rank(_item("chicken breast"), [_cand("1", name="Dish Soap")], min_confidence=0.5)
    assert result.best_match is None
    assert result.confidence == 0.0
    assert result.tier is ConfidenceTier.POOR


def test_alternatives_can_be_disabled():
    candidates = [_cand("a"), _cand("b")]
    result = rank(_item("Milk"), candidates, include_alternatives=False)
    assert result.best_match.id == "a"
    assert result.alternatives == ()


def test_zero_alternatives():
    result = rank(_item("Milk"), [_cand("a"), _cand("b")], max_alternatives=0)
    assert result.alternatives == ()


def test_flags_for_incomplete_data():
    result = rank(_item("Milk"), [_cand("a", price=None)])
    assert ValidationFlag.MISSING_PRICE in result.flags
    assert ValidationFlag.MISSING_BRAND in result.flags
    assert ValidationFlag.MISSING_CATEGORY in result.flags
    # name-only match is Fair, which still counts as low confidence
    assert result.tier is ConfidenceTier.FAIR
    assert ValidationFlag.LOW_CONFIDENCE in result.flags


def test_poor_match_with_alternatives_suggests_them():
    item = _item("chicken breast")
    candidates = [_cand("1", name="Chicken Thighs"), _cand("2", name="Turkey Breast")]
    result = rank(item, candidates)
    assert result.tier is ConfidenceTier.POOR
    assert Action.MANUAL_REVIEW_RECOMMENDED in result.recommended_actions
    assert Action.CONSIDER_ALTERNATIVES in result.recommended_actions


def test_match_reasons():
    item = _item("Organic Whole Milk", brand="Horizon", category="dairy", size="64 oz")
    cand = _cand("1", name="Organic Whole Milk", brand="Horizon", category="dairy", size="64 oz",
                 availability=Availability.IN_STOCK)
    reasons = match_reasons(score_all(item, [cand])[0])
    assert reasons == ("Excellent name match", "Same brand: Horizon", "Category: dairy")


def test_match_reasons_in_stock():
    item = _item("Milk")
    cand = _cand("1", name="Cheddar", availability=Availability.IN_STOCK)
    assert match_reasons(score_all(item, [cand])[0]) == ("In stock",)


def test_rank_is_deterministic():
    item = _item("Milk", brand="A")
    candidates = [_cand("a", brand="A"), _cand("b", brand="B"), _cand("c", name="Oat Milk")]
    assert rank(item, candidates) == rank(item, candidates)


def test_failed_result():
    result = failed_result(_item(""), "cart item has a blank name")
    assert result.best_match is None
    assert result.confidence == 0.0
    assert result.tier is ConfidenceTier.POOR
    assert result.flags == frozenset({ValidationFlag.VALIDATION_FAILED})
    assert Action.MANUAL_REVIEW_REQUIRED in result.recommended_actions
    assert result.failed and result.needs_review
