from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from typing import Any, Callable

from .cache import SearchCache
from .config import ValidationOptions
from .models import BatchResult, CartItem, MatchResult
from .pricing import PriceLookup
from .resolver import BatchResolver
from .search import SearchFn


class MatchEngine:
    """Entry point for validating cart items against the product catalog.

    The engine keeps one search cache shared by every call; per-call options
    control ranking, windowing and pricing. A cache passed in by the caller
    keeps its own TTL. Only the engine's own cache follows a per-call
    ``cache_ttl_ms``.
    """

    def __init__(
        self,
        search: SearchFn,
        *,
        price_lookup: PriceLookup | None = None,
        cache: SearchCache | None = None,
        options: ValidationOptions | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.search = search
        self.price_lookup = price_lookup
        self.options = options or ValidationOptions()
        self._owns_cache = cache is None
        self.cache = cache if cache is not None else SearchCache(ttl_s=self.options.cache_ttl_s)
        self._sleep = sleep

    def _options(self, options: ValidationOptions | Mapping[str, Any] | None) -> ValidationOptions:
        if options is None:
            return self.options
        if isinstance(options, ValidationOptions):
            return options
        return ValidationOptions.from_dict(options)

    def _apply_ttl(self, requested: ValidationOptions | Mapping[str, Any] | None, options: ValidationOptions) -> None:
        # A per-call TTL sticks to the engine's own cache from now on; a
        # mapping only sets it when it names cache_ttl_ms / cacheTtlMs.
        if not self._owns_cache or requested is None:
            return
        if isinstance(requested, Mapping) and not ({"cache_ttl_ms", "cacheTtlMs"} & set(requested)):
            return
        ttl_s = options.cache_ttl_s
        if ttl_s != self.cache.ttl_s:
            self.cache.set_ttl(ttl_s)

    def _resolver(self, options: ValidationOptions | Mapping[str, Any] | None) -> BatchResolver:
        opts = self._options(options)
        self._apply_ttl(options, opts)
        return BatchResolver(
            self.search,
            cache=self.cache,
            price_lookup=self.price_lookup,
            options=opts,
            sleep=self._sleep,
        )

    def validate_cart_items(
        self,
        items: Sequence[CartItem | Mapping[str, Any]],
        options: ValidationOptions | Mapping[str, Any] | None = None,
    ) -> BatchResult:
        return self._resolver(options).resolve_batch(items)

    def validate_single_item(
        self,
        item: CartItem | Mapping[str, Any],
        options: ValidationOptions | Mapping[str, Any] | None = None,
    ) -> MatchResult:
        if isinstance(item, Mapping):
            item = CartItem.from_dict(item)
        return self._resolver(options).resolve_item(item)
