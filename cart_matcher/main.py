from __future__ import annotations

import argparse
import json
from pathlib import Path

from .config import OPTIONAL_KEYS, REQUIRED_KEYS, Config, ValidationOptions
from .engine import MatchEngine
from .log import configure_logging
from .models import CartItem
from .normalize import item_from_line
from .pricing import HttpPriceAggregator
from .report import result_line, summary_text, write_json
from .search import HttpSearchProvider, SearchOptions

__version__ = "0.1.0"


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="cart-matcher")
    p.add_argument("--version", action="store_true", help="Print version and exit")
    p.add_argument("--log-level", default=None, help="Logging level (default: $CART_MATCHER_LOG_LEVEL or INFO)")

    sub = p.add_subparsers(dest="cmd", required=False)

    p_config = sub.add_parser("config", help="Config commands")
    sub_config = p_config.add_subparsers(dest="config_cmd", required=True)
    sub_config.add_parser("keys", help="List environment variables read by cart-matcher")
    sub_config.add_parser("check", help="Validate the required environment variables are set")

    p_search = sub.add_parser("search", help="Query the search provider directly")
    p_search.add_argument("query", help="Search query (e.g. 'whole milk')")
    p_search.add_argument("--limit", type=int, default=5, help="Max results")
    p_search.add_argument("--category", default=None)
    p_search.add_argument("--brand", default=None)

    p_match = sub.add_parser("match", help="Resolve one free-text grocery line")
    p_match.add_argument("line", help="Grocery line (e.g. '2 lbs organic chicken breast')")
    p_match.add_argument("--brand", default=None)
    p_match.add_argument("--category", default=None)
    p_match.add_argument("--size", default=None)
    p_match.add_argument("--alternatives", type=int, default=3, help="Max alternatives")
    p_match.add_argument("--no-pricing", action="store_true", help="Skip multi-store pricing")

    p_batch = sub.add_parser("batch", help="Resolve a list of items from a JSON or text file")
    p_batch.add_argument("file", help="JSON list of items, or a text file with one item per line")
    p_batch.add_argument("--window", type=int, default=3, help="Concurrent searches per window")
    p_batch.add_argument("--delay-ms", type=int, default=500, help="Pause between windows")
    p_batch.add_argument("--min-confidence", type=float, default=0.0)
    p_batch.add_argument("--alternatives", type=int, default=3, help="Max alternatives")
    p_batch.add_argument("--no-pricing", action="store_true", help="Skip multi-store pricing")
    p_batch.add_argument("--out", default="artifacts/match_report.json", help="JSON report path")

    return p


def load_items(path: str) -> list[CartItem]:
    text = Path(path).read_text()
    if path.endswith(".json"):
        rows = json.loads(text)
        if not isinstance(rows, list):
            raise ValueError(f"{path}: expected a JSON list of items")
        items = []
        for idx, row in enumerate(rows):
            if isinstance(row, str):
                items.append(item_from_line(row, item_id=str(idx)))
            else:
                items.append(CartItem.from_dict(row, default_id=str(idx)))
        return items

    lines = [ln.strip() for ln in text.splitlines()]
    return [item_from_line(ln, item_id=str(idx)) for idx, ln in enumerate(lines) if ln and not ln.startswith("#")]


def _build_engine(cfg: Config, options: ValidationOptions) -> MatchEngine:
    provider = HttpSearchProvider(search_url=cfg.search_url, api_token=cfg.api_token, timeout_s=cfg.timeout_s)
    pricing = None
    if cfg.pricing_url:
        pricing = HttpPriceAggregator(
            pricing_url=cfg.pricing_url,
            api_token=cfg.api_token,
            zip_code=cfg.zip_code,
            timeout_s=cfg.timeout_s,
        )
    return MatchEngine(provider, price_lookup=pricing, options=options)


def main(argv: list[str] | None = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)

    if args.version:
        print(__version__)
        return 0

    if args.cmd is None:
        p.print_help()
        return 0

    configure_logging(args.log_level)

    if args.cmd == "config":
        if args.config_cmd == "keys":
            for k in REQUIRED_KEYS:
                print(k)
            for k in OPTIONAL_KEYS:
                print(f"{k} (optional)")
            return 0

        if args.config_cmd == "check":
            # Intentionally do not print secret values
            cfg = Config.load_from_env()
            print(f"OK: search={cfg.search_url} pricing={cfg.pricing_url or 'disabled'}")
            return 0

    if args.cmd == "search":
        cfg = Config.load_from_env()
        provider = HttpSearchProvider(search_url=cfg.search_url, api_token=cfg.api_token, timeout_s=cfg.timeout_s)
        resp = provider.search(
            args.query,
            SearchOptions(category=args.category, brand=args.brand, max_results=args.limit),
        )
        if not resp.products:
            print("No results found.")
            return 1
        for i, c in enumerate(resp.products, 1):
            print(f"{i}. {c.name}")
            print(f"   Brand: {c.brand or 'N/A'}  Price: {c.price or 'N/A'}  Size: {c.size or 'N/A'}  {c.availability.value}")
        print(f"\n{resp.total_found} total")
        return 0

    if args.cmd == "match":
        cfg = Config.load_from_env()
        options = ValidationOptions(max_alternatives=args.alternatives, include_pricing=not args.no_pricing)
        engine = _build_engine(cfg, options)

        base = item_from_line(args.line, item_id="cli")
        item = CartItem(
            id=base.id,
            raw_name=base.raw_name,
            brand=args.brand,
            category=args.category,
            size=args.size or base.size,
            quantity=base.quantity,
        )
        result = engine.validate_single_item(item)
        print(result_line(result))
        for alt in result.alternatives:
            print(f"   alt {alt.confidence:.2f}: {alt.product.name}  {', '.join(alt.reasons)}")
        if result.pricing is not None:
            for q in result.pricing.quotes:
                tag = " (lowest)" if q.is_lowest_price else ""
                print(f"   {q.retailer_name}: ${q.price}{tag}")
        print(f"   flags: {', '.join(sorted(f.value for f in result.flags)) or '-'}")
        print(f"   actions: {', '.join(sorted(a.value for a in result.recommended_actions)) or '-'}")
        return 0 if result.best_match is not None else 1

    if args.cmd == "batch":
        cfg = Config.load_from_env()
        options = ValidationOptions(
            window_size=args.window,
            pacing_delay_ms=args.delay_ms,
            min_confidence=args.min_confidence,
            max_alternatives=args.alternatives,
            include_pricing=not args.no_pricing,
        )
        engine = _build_engine(cfg, options)

        items = load_items(args.file)
        print(f"Loaded {len(items)} items from {args.file}.")
        batch = engine.validate_cart_items(items)
        print("\n" + summary_text(batch))
        path = write_json(batch, args.out)
        print(f"\nReport written to {path}")
        return 0

    raise RuntimeError("unreachable")


if __name__ == "__main__":
    raise SystemExit(main())
