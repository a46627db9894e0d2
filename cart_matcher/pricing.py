from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal
from typing import Any, Callable, Sequence

import requests

from .errors import PricingUnavailable
from .http import HttpClient
from .models import Availability, CandidateProduct, CartItem, PricingInfo, RetailerQuote, parse_price
from .normalize import parse_line

logger = logging.getLogger(__name__)

PRICING_PATH = "/multi-store-pricing"
_CENTS = Decimal("0.01")

PriceLookup = Callable[[CartItem, CandidateProduct | None], PricingInfo | None]


def build_pricing(quotes: Sequence[RetailerQuote]) -> PricingInfo | None:
    """Attach comparison metrics to per-retailer quotes.

    Quotes without a positive price are dropped; returns None if none remain.
    """
    priced = [q for q in quotes if q.price is not None and q.price > 0]
    if not priced:
        return None

    prices = [q.price for q in priced]
    lowest = min(prices)
    highest = max(prices)
    average = (sum(prices, Decimal("0")) / len(prices)).quantize(_CENTS)

    enriched = tuple(
        replace(
            q,
            savings_vs_highest=highest - q.price,
            savings_vs_average=(average - q.price).quantize(_CENTS),
            is_lowest_price=q.price == lowest,
        )
        for q in priced
    )
    return PricingInfo(
        quotes=enriched,
        lowest_price=lowest,
        highest_price=highest,
        average_price=average,
        price_range=highest - lowest,
    )


def _quote_from_row(retailer_id: str, row: dict[str, Any]) -> RetailerQuote | None:
    price = parse_price(row.get("price"))
    if price is None:
        return None
    return RetailerQuote(
        retailer_id=retailer_id,
        retailer_name=str(row.get("retailerName") or row.get("retailer_name") or retailer_id),
        price=price,
        availability=Availability.parse(row.get("availability")),
        delivery_fee=parse_price(row.get("deliveryFee")),
        service_fee=parse_price(row.get("serviceFee")),
        estimated_delivery=row.get("estimatedDelivery"),
    )


class HttpPriceAggregator:
    """Multi-store price lookup against the pricing endpoint."""

    def __init__(self, *, pricing_url: str, api_token: str, zip_code: str = "95670", timeout_s: float = 30.0):
        self.http = HttpClient(base_url=pricing_url, token=api_token, timeout_s=timeout_s)
        self.zip_code = zip_code

    def __call__(self, item: CartItem, best_match: CandidateProduct | None) -> PricingInfo | None:
        body = {
            "productName": best_match.name if best_match else parse_line(item.raw_name).name,
            "productId": best_match.id if best_match else None,
            "category": item.category,
            "zipCode": self.zip_code,
        }
        try:
            resp = self.http.post(PRICING_PATH, json=body)
        except requests.RequestException as e:
            raise PricingUnavailable(f"pricing request failed: {e}")

        if resp.status_code >= 400:
            raise PricingUnavailable(f"Pricing API error {resp.status_code}: {resp.text[:500]}")
        try:
            data = resp.json()
        except ValueError as e:
            raise PricingUnavailable(f"Failed to decode JSON from pricing API: {e}")

        if not isinstance(data, dict) or data.get("success") is False:
            raise PricingUnavailable("pricing API reported failure")

        pricing = data.get("pricing") or {}
        if not isinstance(pricing, dict):
            raise PricingUnavailable(f"pricing is {type(pricing).__name__}, expected an object")

        quotes = []
        for retailer_id, row in pricing.items():
            if isinstance(row, dict):
                q = _quote_from_row(str(retailer_id), row)
                if q is not None:
                    quotes.append(q)
        return build_pricing(quotes)


def fetch_pricing(lookup: PriceLookup, item: CartItem, best_match: CandidateProduct | None) -> PricingInfo | None:
    """Run a price lookup; any failure degrades to None."""
    try:
        return lookup(item, best_match)
    except Exception as exc:
        logger.warning("Multi-store pricing unavailable for %r: %s", item.raw_name, exc)
        return None
