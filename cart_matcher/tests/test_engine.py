from decimal import Decimal

import pytest

from cart_matcher.cache import SearchCache
from cart_matcher.config import ValidationOptions
from cart_matcher.engine import MatchEngine
from cart_matcher.errors import InvalidInput, InvalidOptions
from cart_matcher.models import Availability, CandidateProduct, CartItem, ConfidenceTier, ValidationFlag
from cart_matcher.search import SearchResponse

CATALOG = {
    "whole milk": [
        CandidateProduct(id="m1", name="Organic Whole Milk", brand="Horizon", category="dairy",
                         size="64 oz", price=Decimal("5.49"), availability=Availability.IN_STOCK),
        CandidateProduct(id="m2", name="Whole Milk", brand="Great Value", category="dairy",
                         size="1 gal", price=Decimal("3.47"), availability=Availability.IN_STOCK),
        CandidateProduct(id="m3", name="Organic Whole Milk", brand="Organic Valley", category="dairy",
                         size="64 oz", price=Decimal("5.99"), availability=Availability.LOW_STOCK),
    ],
    "milk": [
        CandidateProduct(id="a", name="Milk", brand="A"),
        CandidateProduct(id="b", name="Milk", brand="B"),
    ],
}


class CatalogSearch:
    def __init__(self):
        self.queries = []

    def __call__(self, query, options):
        self.queries.append(query)
        products = tuple(CATALOG.get(query, ()))
        return SearchResponse(products=products, total_found=len(products))


def _engine(**kw):
    kw.setdefault("options", ValidationOptions(pacing_delay_ms=0))
    return MatchEngine(CatalogSearch(), **kw)


def test_validate_single_item_excellent():
    item = CartItem(id="1", raw_name="Organic Whole Milk", brand="Horizon", category="dairy", size="64 oz")
    result = _engine().validate_single_item(item)
    assert result.best_match.id == "m1"
    assert result.tier is ConfidenceTier.EXCELLENT
    assert result.confidence >= 0.8
    assert [a.product.id for a in result.alternatives] == ["m3", "m2"]


def test_validate_single_item_accepts_mapping():
    result = _engine().validate_single_item({"id": "1", "name": "Milk"}, {"maxAlternatives": 1})
    assert result.best_match.id == "a"
    assert len(result.alternatives) == 1


def test_validate_single_item_no_results():
    result = _engine().validate_single_item(CartItem(id="x", raw_name="Xyzzy Nonexistent Item"))
    assert result.best_match is None
    assert result.confidence == 0.0
    assert result.tier is ConfidenceTier.POOR
    assert ValidationFlag.VALIDATION_FAILED not in result.flags


def test_validate_cart_items_summary():
    items = [
        CartItem(id="1", raw_name="Organic Whole Milk", brand="Horizon", category="dairy"),
        CartItem(id="2", raw_name="Milk"),
        CartItem(id="3", raw_name=""),
    ]
    batch = _engine().validate_cart_items(items)
    assert [r.original_item.id for r in batch.items] == ["1", "2", "3"]
    s = batch.summary
    assert s.total == 3
    assert s.tier_counts[ConfidenceTier.EXCELLENT] == 1
    assert s.tier_counts[ConfidenceTier.FAIR] == 1
    assert s.tier_counts[ConfidenceTier.POOR] == 1
    assert s.failed == 1
    assert s.ready_for_checkout == 1
    assert s.percentage_excellent == 33


def test_engine_cache_is_shared_between_calls():
    engine = _engine()
    item = CartItem(id="1", raw_name="Milk")
    first = engine.validate_single_item(item)
    second = engine.validate_cart_items([item]).items[0]
    assert first == second
    assert engine.search.queries == ["milk"]


def test_per_call_ttl_applies_to_engine_cache():
    engine = _engine()
    engine.validate_single_item(CartItem(id="1", raw_name="Milk"), ValidationOptions(cache_ttl_ms=1000))
    assert engine.cache.ttl_s == 1.0


def test_options_from_camel_case():
    opts = ValidationOptions.from_dict(
        {"includeAlternatives": False, "minConfidence": 0.5, "pacingDelayMs": 0, "windowSize": 5, "unknown": 1}
    )
    assert opts.include_alternatives is False
    assert opts.min_confidence == 0.5
    assert opts.pacing_delay_ms == 0
    assert opts.window_size == 5


def test_option_defaults():
    opts = ValidationOptions()
    assert opts.include_alternatives is True
    assert opts.min_confidence == 0.0
    assert opts.max_alternatives == 3
    assert opts.window_size == 3
    assert opts.pacing_delay_ms == 500
    assert opts.cache_ttl_ms == 15 * 60 * 1000


@pytest.mark.parametrize(
    "kw",
    [{"min_confidence": 1.5}, {"window_size": 0}, {"max_alternatives": -1}, {"pacing_delay_ms": -1}],
)
def test_invalid_options(kw):
    with pytest.raises(InvalidOptions):
        ValidationOptions(**kw)


def test_caller_cache_keeps_its_ttl():
    now = [0.0]
    cache = SearchCache(ttl_s=1.0, clock=lambda: now[0])
    engine = _engine(cache=cache)

    engine.validate_single_item(CartItem(id="1", raw_name="Milk"))
    now[0] = 5.0
    engine.validate_single_item(CartItem(id="1", raw_name="Milk"))

    assert cache.ttl_s == 1.0
    assert engine.search.queries == ["milk", "milk"]


def test_caller_cache_ignores_per_call_ttl():
    cache = SearchCache(ttl_s=1.0)
    engine = _engine(cache=cache)
    engine.validate_single_item(CartItem(id="1", raw_name="Milk"), ValidationOptions(cache_ttl_ms=60_000))
    assert cache.ttl_s == 1.0


def test_mapping_options_without_ttl_leave_engine_cache_alone():
    engine = _engine(options=ValidationOptions(pacing_delay_ms=0, cache_ttl_ms=2000))
    engine.validate_single_item(CartItem(id="1", raw_name="Milk"), {"maxAlternatives": 1})
    assert engine.cache.ttl_s == 2.0

    engine.validate_single_item(CartItem(id="1", raw_name="Milk"), {"cacheTtlMs": 4000})
    assert engine.cache.ttl_s == 4.0


def test_invalid_options_are_value_errors_not_item_errors():
    with pytest.raises(ValueError):
        ValidationOptions(window_size=0)
    assert not issubclass(InvalidOptions, InvalidInput)
