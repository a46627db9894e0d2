from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

import requests

from .errors import SearchUnavailable
from .http import HttpClient
from .models import CandidateProduct

logger = logging.getLogger(__name__)

SEARCH_PATH = "/products/search"


@dataclass(frozen=True)
class SearchOptions:
    category: str | None = None
    brand: str | None = None
    max_results: int = 10
    min_confidence: float = 0.0
    retailer_id: str | None = None


@dataclass(frozen=True)
class SearchResponse:
    products: tuple[CandidateProduct, ...]
    total_found: int


# Anything with this shape can act as the search provider.
SearchFn = Callable[[str, SearchOptions], SearchResponse]


def parse_search_payload(data: Any) -> SearchResponse:
    if not isinstance(data, dict):
        raise SearchUnavailable(f"search payload is {type(data).__name__}, expected an object")
    if data.get("success") is False:
        raise SearchUnavailable(str(data.get("error") or "search provider reported failure"))

    rows = data.get("products")
    if rows is None:
        rows = data.get("items")
    if rows is None:
        rows = data.get("data")
    if rows is None:
        rows = []
    if not isinstance(rows, list):
        raise SearchUnavailable(f"search products is {type(rows).__name__}, expected a list")

    products: list[CandidateProduct] = []
    for row in rows:
        if not isinstance(row, dict):
            raise SearchUnavailable(f"search product row is {type(row).__name__}, expected an object")
        try:
            products.append(CandidateProduct.from_dict(row))
        except ValueError as e:
            raise SearchUnavailable(f"malformed product row: {e}")

    total = data.get("total", data.get("count", data.get("totalFound")))
    if not isinstance(total, int) or isinstance(total, bool):
        total = len(products)
    return SearchResponse(products=tuple(products), total_found=total)


class HttpSearchProvider:
    """Product search against a catalog HTTP endpoint."""

    def __init__(self, *, search_url: str, api_token: str, timeout_s: float = 30.0, path: str = SEARCH_PATH):
        self.http = HttpClient(base_url=search_url, token=api_token, timeout_s=timeout_s)
        self.path = path

    def search(self, query: str, options: SearchOptions | None = None) -> SearchResponse:
        options = options or SearchOptions()
        params: dict[str, Any] = {"q": query, "limit": options.max_results}
        if options.category:
            params["category"] = options.category
        if options.brand:
            params["brand"] = options.brand
        if options.retailer_id:
            params["retailer_id"] = options.retailer_id

        try:
            resp = self.http.get(self.path, params=params)
        except requests.RequestException as e:
            raise SearchUnavailable(f"search request failed for {query!r}: {e}")

        if resp.status_code >= 400:
            raise SearchUnavailable(f"Search API error {resp.status_code} for {query!r}: {resp.text[:500]}")
        try:
            data = resp.json()
        except ValueError as e:
            raise SearchUnavailable(f"Failed to decode JSON from search API for {query!r}: {e}")

        result = parse_search_payload(data)
        logger.debug("search %r -> %d products (%d total)", query, len(result.products), result.total_found)
        return result

    __call__ = search
