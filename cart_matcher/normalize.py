from __future__ import annotations

import re
from dataclasses import dataclass

from .models import CartItem


_WS_RE = re.compile(r"\s+")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9 ]")
_FRACTION_RE = re.compile(r"^(?:(\d+)\s+)?(\d+)\/(\d+)$")
_ATTACHED_UNIT_RE = re.compile(r"^(\d+(?:\.\d+)?)([a-z]+)$", re.IGNORECASE)

# Words the search provider tends to over-weight; dropped from queries only.
SEARCH_STOP_WORDS = frozenset({"fresh", "organic", "natural", "free", "range", "local"})


def normalize(text: str | None) -> str:
    """Lower-case, keep only [a-z0-9 ], collapse whitespace, trim."""
    if not text:
        return ""
    s = _WS_RE.sub(" ", text.lower())
    s = _NON_ALNUM_RE.sub("", s)
    return _WS_RE.sub(" ", s).strip()


def tokens(text: str | None) -> list[str]:
    return normalize(text).split()


def parse_quantity_token(tok: str) -> float | None:
    """Parse tokens like '1', '1.5', '1/2' and the common unicode fractions."""
    tok = tok.strip()
    if not tok:
        return None

    # simple int/float
    try:
        return float(tok)
    except ValueError:
        pass

    m = _FRACTION_RE.match(tok)
    if m:
        whole, num, den = m.groups()
        if int(den) == 0:
            return None
        val = (int(num) / int(den))
        if whole:
            val += int(whole)
        return float(val)

    unicode_map = {
        "½": 0.5,
        "¼": 0.25,
        "¾": 0.75,
        "⅓": 1 / 3,
        "⅔": 2 / 3,
    }
    if tok in unicode_map:
        return float(unicode_map[tok])

    return None


_UNIT_ALIASES: dict[str, str] = {
    "cups": "cup",
    "cup": "cup",
    "tbsp": "tbsp",
    "tablespoon": "tbsp",
    "tablespoons": "tbsp",
    "tsp": "tsp",
    "teaspoon": "tsp",
    "teaspoons": "tsp",
    "oz": "oz",
    "ounce": "oz",
    "ounces": "oz",
    "lb": "lb",
    "lbs": "lb",
    "pound": "lb",
    "pounds": "lb",
    "g": "g",
    "gram": "g",
    "grams": "g",
    "kg": "kg",
    "ml": "ml",
    "l": "l",
    "liter": "l",
    "liters": "l",
    "gal": "gal",
    "gallon": "gal",
    "gallons": "gal",
    "ct": "ct",
    "count": "ct",
    "dozen": "dozen",
    "bunch": "bunch",
    "bag": "bag",
    "box": "box",
    "bottle": "bottle",
    "can": "can",
    "cans": "can",
    "jar": "jar",
    "pack": "package",
    "package": "package",
}


@dataclass(frozen=True)
class ParsedLine:
    raw: str

    # Product-name portion with any leading quantity + unit removed.
    name: str

    # Parsed quantity and canonical unit **as written** when detected.
    quantity: float | None = None
    unit: str | None = None

    @property
    def size(self) -> str | None:
        if self.quantity is None or self.unit is None:
            return None
        return f"{self.quantity:g} {self.unit}"


def _split_attached(tokens_: list[str]) -> list[str]:
    # "2lbs chicken" -> ["2", "lbs", "chicken"]
    if tokens_:
        m = _ATTACHED_UNIT_RE.match(tokens_[0])
        if m and m.group(2).lower() in _UNIT_ALIASES:
            return [m.group(1), m.group(2)] + tokens_[1:]
    return tokens_


def _parse_leading_qty_unit(tokens_: list[str]) -> tuple[float | None, str | None, int]:
    """Return (quantity, unit, number of tokens consumed)."""
    # Handle "2 1/2 cup"
    if len(tokens_) >= 3:
        q1 = parse_quantity_token(tokens_[0])
        q2 = parse_quantity_token(tokens_[1])
        u = _UNIT_ALIASES.get(tokens_[2].lower().rstrip("."))
        if q1 is not None and q2 is not None and u:
            return float(q1 + q2), u, 3

    # Handle "1/3 cup"
    if len(tokens_) >= 2:
        q = parse_quantity_token(tokens_[0])
        u = _UNIT_ALIASES.get(tokens_[1].lower().rstrip("."))
        if q is not None and u:
            return float(q), u, 2

    return None, None, 0


def parse_line(raw: str) -> ParsedLine:
    toks = _split_attached(raw.strip().split())
    qty, unit, used = _parse_leading_qty_unit(toks)

    name = " ".join(toks[used:]).strip(" ,;:-")
    if not name:
        # nothing but a quantity; keep the line as the name
        name = raw.strip()
        qty, unit = None, None

    return ParsedLine(raw=raw, name=name, quantity=qty, unit=unit)


def match_name(raw: str) -> str:
    """Normalized product-name portion of a free-text line."""
    return normalize(parse_line(raw).name)


def search_query(name: str) -> str:
    words = [w for w in tokens(name) if len(w) > 2 and w not in SEARCH_STOP_WORDS]
    return " ".join(words) or normalize(name)


def item_from_line(raw: str, *, item_id: str) -> CartItem:
    parsed = parse_line(raw)
    return CartItem(
        id=item_id,
        raw_name=raw.strip(),
        size=parsed.size,
        quantity=parsed.quantity,
    )
