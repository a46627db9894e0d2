from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Sequence

from .errors import CacheCorruption
from .models import CandidateProduct
from .normalize import normalize

logger = logging.getLogger(__name__)

DEFAULT_TTL_S = 15 * 60


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: tuple[CandidateProduct, ...]
    created_at: float


def make_key(
    query: str,
    *,
    retailer: str | None = None,
    category: str | None = None,
    brand: str | None = None,
    max_results: int | None = None,
) -> str:
    parts = [
        normalize(query),
        (retailer or "*").strip().lower(),
        normalize(category) or "*",
        normalize(brand) or "*",
        str(max_results) if max_results is not None else "*",
    ]
    return "|".join(parts)


def _check_entry(entry: object) -> CacheEntry:
    if not isinstance(entry, CacheEntry) or not isinstance(entry.value, tuple):
        raise CacheCorruption(f"unexpected cache entry type {type(entry).__name__}")
    for product in entry.value:
        if not isinstance(product, CandidateProduct):
            raise CacheCorruption(f"unexpected cached value {type(product).__name__}")
    return entry


class SearchCache:
    """Time-boxed memo of search results keyed by ``make_key``.

    Entries older than ``ttl_s`` are dropped when read. Dropping everything
    with ``clear()`` only costs extra searches.
    """

    def __init__(self, *, ttl_s: float = DEFAULT_TTL_S, clock: Callable[[], float] = time.monotonic):
        if ttl_s < 0:
            raise ValueError(f"ttl_s must be >= 0, got {ttl_s}")
        self.ttl_s = ttl_s
        self._clock = clock
        self._entries: dict[str, object] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def set_ttl(self, ttl_s: float) -> None:
        if ttl_s < 0:
            raise ValueError(f"ttl_s must be >= 0, got {ttl_s}")
        with self._lock:
            self.ttl_s = ttl_s

    def _expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.created_at > self.ttl_s

    def get(self, key: str) -> tuple[CandidateProduct, ...] | None:
        now = self._clock()
        with self._lock:
            raw = self._entries.get(key)
            if raw is None:
                self.misses += 1
                return None
            try:
                entry = _check_entry(raw)
            except CacheCorruption as exc:
                logger.warning("Discarding cache entry %r: %s", key, exc)
                del self._entries[key]
                self.misses += 1
                return None
            if self._expired(entry, now):
                del self._entries[key]
                self.misses += 1
                return None
            self.hits += 1
            return entry.value

    def put(self, key: str, value: Sequence[CandidateProduct]) -> None:
        entry = CacheEntry(key=key, value=tuple(value), created_at=self._clock())
        with self._lock:
            self._entries[key] = entry

    def sweep(self) -> int:
        """Drop expired and malformed entries; returns how many were removed."""
        now = self._clock()
        with self._lock:
            stale = []
            for key, raw in self._entries.items():
                if not isinstance(raw, CacheEntry) or self._expired(raw, now):
                    stale.append(key)
            for key in stale:
                del self._entries[key]
        if stale:
            logger.debug("Swept %d stale cache entries", len(stale))
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {"size": len(self._entries), "hits": self.hits, "misses": self.misses}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
