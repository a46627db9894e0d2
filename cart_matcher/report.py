from __future__ import annotations

import json
from dataclasses import asdict
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any

from .models import BatchResult, ConfidenceTier, MatchResult


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {_jsonable(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (frozenset, set)):
        return sorted(_jsonable(v) for v in value)
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def result_to_dict(result: MatchResult) -> dict[str, Any]:
    return _jsonable(asdict(result))


def batch_to_dict(batch: BatchResult) -> dict[str, Any]:
    return _jsonable(asdict(batch))


def result_line(result: MatchResult) -> str:
    best = result.best_match
    if best is None:
        target = "—"
    else:
        price = f"${best.price}" if best.price is not None else ""
        target = f"{best.name}  {price}".rstrip()
    return f"[{result.tier.value} {result.confidence:.2f}] {result.original_item.raw_name} → {target}"


def summary_text(batch: BatchResult) -> str:
    s = batch.summary
    tiers = "  ".join(
        f"{tier.value.capitalize()}: {s.tier_counts.get(tier, 0)}" for tier in ConfidenceTier
    )
    lines = [
        f"Run: {batch.timestamp}",
        f"Total: {s.total}  Ready: {s.ready_for_checkout}  Review: {s.items_needing_review}  "
        f"Failed: {s.failed}  Avg confidence: {s.average_confidence:.2f}",
        tiers,
        "",
    ]
    for i, r in enumerate(batch.items, 1):
        lines.append(f"  {i}. {result_line(r)}")
        if r.error:
            lines.append(f"     error: {r.error}")
        for alt in r.alternatives:
            reasons = f" ({', '.join(alt.reasons)})" if alt.reasons else ""
            lines.append(f"     alt {alt.confidence:.2f}: {alt.product.name}{reasons}")
    return "\n".join(lines)


def write_json(batch: BatchResult, path: str = "artifacts/match_report.json") -> str:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(batch_to_dict(batch), indent=2))
    return str(out)
