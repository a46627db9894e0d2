from __future__ import annotations

import logging
import time
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Iterator

from .cache import SearchCache, make_key
from .config import ValidationOptions
from .errors import InvalidBatchInput, InvalidInput, SearchUnavailable
from .match import failed_result, rank
from .models import BatchResult, BatchSummary, CandidateProduct, CartItem, ConfidenceTier, MatchResult
from .normalize import normalize, parse_line, search_query
from .pricing import PriceLookup, fetch_pricing
from .search import SearchFn, SearchOptions, SearchResponse

logger = logging.getLogger(__name__)


def coerce_items(items: Any) -> list[CartItem]:
    """Validate the batch container and turn mapping rows into CartItems."""
    if isinstance(items, (str, bytes, Mapping)) or not isinstance(items, Sequence):
        raise InvalidBatchInput(f"items must be a sequence of cart items, got {type(items).__name__}")

    out: list[CartItem] = []
    for idx, it in enumerate(items):
        if isinstance(it, CartItem):
            out.append(it)
        elif isinstance(it, Mapping):
            out.append(CartItem.from_dict(it, default_id=str(idx)))
        else:
            raise InvalidBatchInput(f"item {idx} is {type(it).__name__}, expected CartItem or mapping")
    return out


def summarize(results: Sequence[MatchResult]) -> BatchSummary:
    total = len(results)
    counts = {tier: 0 for tier in ConfidenceTier}
    for r in results:
        counts[r.tier] += 1

    if total == 0:
        return BatchSummary(total=0, tier_counts=counts)

    excellent = counts[ConfidenceTier.EXCELLENT]
    good_or_better = excellent + counts[ConfidenceTier.GOOD]
    return BatchSummary(
        total=total,
        tier_counts=counts,
        average_confidence=sum(r.confidence for r in results) / total,
        items_needing_review=sum(1 for r in results if r.needs_review),
        ready_for_checkout=good_or_better,
        failed=sum(1 for r in results if r.failed),
        percentage_excellent=round(excellent / total * 100),
        percentage_good_or_better=round(good_or_better / total * 100),
    )


class BatchResolver:
    """Resolve cart items against a search provider in paced, concurrent windows.

    Items are processed ``window_size`` at a time; the searches of one window
    run concurrently and the next window starts ``pacing_delay_ms`` after the
    previous one finished. A failing item becomes a ``validation_failed``
    result and never affects its siblings. Results keep input order.
    """

    def __init__(
        self,
        search: SearchFn,
        *,
        cache: SearchCache | None = None,
        price_lookup: PriceLookup | None = None,
        options: ValidationOptions | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.search = search
        self.options = options or ValidationOptions()
        self.cache = cache if cache is not None else SearchCache(ttl_s=self.options.cache_ttl_s)
        self.price_lookup = price_lookup
        self._sleep = sleep

    def _check_item(self, item: CartItem) -> str:
        name = parse_line(item.raw_name).name if item.raw_name else ""
        if not normalize(name):
            raise InvalidInput(f"cart item {item.id!r} has a blank name")
        return name

    def _candidates(self, item: CartItem, query: str) -> tuple[CandidateProduct, ...]:
        opts = self.options
        key = make_key(
            query,
            retailer=opts.retailer_id,
            category=item.category,
            brand=item.brand,
            max_results=opts.max_results,
        )
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("cache hit for %r", query)
            return cached

        try:
            response = self.search(
                query,
                SearchOptions(
                    category=item.category,
                    brand=item.brand,
                    max_results=opts.max_results,
                    min_confidence=opts.min_confidence,
                    retailer_id=opts.retailer_id,
                ),
            )
        except SearchUnavailable:
            raise
        except Exception as exc:
            raise SearchUnavailable(f"search failed for {query!r}: {exc}") from exc

        if not isinstance(response, SearchResponse):
            raise SearchUnavailable(f"search for {query!r} returned {type(response).__name__}")

        products = tuple(response.products)
        self.cache.put(key, products)
        return products

    def resolve_item(self, item: CartItem) -> MatchResult:
        try:
            name = self._check_item(item)
            candidates = self._candidates(item, search_query(name))
        except (InvalidInput, SearchUnavailable) as exc:
            logger.warning("Could not resolve %r: %s", item.raw_name, exc)
            return failed_result(item, str(exc))

        opts = self.options
        result = rank(
            item,
            candidates,
            max_alternatives=opts.max_alternatives,
            min_confidence=opts.min_confidence,
            include_alternatives=opts.include_alternatives,
        )

        if opts.include_pricing and self.price_lookup is not None:
            pricing = fetch_pricing(self.price_lookup, item, result.best_match)
            if pricing is not None:
                result = replace(result, pricing=pricing)
        return result

    def _resolve_isolated(self, item: CartItem) -> MatchResult:
        try:
            return self.resolve_item(item)
        except Exception as exc:
            logger.exception("Unexpected error resolving %r", item.raw_name)
            return failed_result(item, f"unexpected error: {exc}")

    def iter_windows(self, items: Sequence[CartItem | Mapping[str, Any]]) -> Iterator[list[MatchResult]]:
        """Yield the results of each window in order.

        Closing the iterator abandons the batch at a window boundary; a window
        that has started always runs to completion.
        """
        return self._windows(coerce_items(items))

    def _windows(self, batch: list[CartItem]) -> Iterator[list[MatchResult]]:
        size = self.options.window_size
        delay = self.options.pacing_delay_s
        with ThreadPoolExecutor(max_workers=size) as pool:
            for start in range(0, len(batch), size):
                if start > 0 and delay > 0:
                    self._sleep(delay)
                window = batch[start:start + size]
                futures = [pool.submit(self._resolve_isolated, it) for it in window]
                yield [f.result() for f in futures]

    def resolve_batch(self, items: Sequence[CartItem | Mapping[str, Any]]) -> BatchResult:
        batch = coerce_items(items)
        logger.info("Resolving %d cart items (window=%d)", len(batch), self.options.window_size)
        self.cache.sweep()

        results: list[MatchResult] = []
        for window in self._windows(batch):
            results.extend(window)

        summary = summarize(results)
        logger.info(
            "Resolved %d items: %d ready, %d need review, %d failed",
            summary.total,
            summary.ready_for_checkout,
            summary.items_needing_review,
            summary.failed,
        )
        return BatchResult(
            items=tuple(results),
            summary=summary,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )


def resolve_batch(
    items: Sequence[CartItem | Mapping[str, Any]],
    search: SearchFn,
    *,
    cache: SearchCache | None = None,
    price_lookup: PriceLookup | None = None,
    options: ValidationOptions | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> BatchResult:
    resolver = BatchResolver(search, cache=cache, price_lookup=price_lookup, options=options, sleep=sleep)
    return resolver.resolve_batch(items)
