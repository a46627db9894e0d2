from __future__ import annotations

EXACT_TOKEN_POINTS = 1.0
SUBSTRING_POINTS = 0.5
NEAR_MISS_POINTS = 0.3

# Partial credit only applies to tokens at least this long.
MIN_PARTIAL_LEN = 3
MAX_NEAR_MISS_DISTANCE = 2


def levenshtein(a: str, b: str) -> int:
    rows, cols = len(a) + 1, len(b) + 1
    matrix = [[0] * cols for _ in range(rows)]
    for i in range(rows):
        matrix[i][0] = i
    for j in range(cols):
        matrix[0][j] = j

    for i in range(1, rows):
        for j in range(1, cols):
            if a[i - 1] == b[j - 1]:
                matrix[i][j] = matrix[i - 1][j - 1]
            else:
                matrix[i][j] = 1 + min(
                    matrix[i - 1][j - 1],
                    matrix[i][j - 1],
                    matrix[i - 1][j],
                )
    return matrix[-1][-1]


def _pair_kind(t1: str, t2: str) -> str | None:
    if t1 == t2:
        return "exact"
    if len(t1) < MIN_PARTIAL_LEN or len(t2) < MIN_PARTIAL_LEN:
        return None
    if t1 in t2 or t2 in t1:
        return "substring"
    if levenshtein(t1, t2) <= MAX_NEAR_MISS_DISTANCE:
        return "near"
    return None


def name_similarity(a: str, b: str) -> float:
    """Token-overlap similarity of two normalized names, in [0, 1].

    Every token pair is compared: equal tokens score 1.0, containment 0.5 and
    an edit distance of at most 2 scores 0.3. The total is divided by the
    longer token count and capped at 1.0.
    """
    if a == b:
        return 1.0

    tokens_a = a.split()
    tokens_b = b.split()
    longest = max(len(tokens_a), len(tokens_b))
    if longest == 0:
        return 0.0

    # Tally by kind so the float total does not depend on argument order.
    counts = {"exact": 0, "substring": 0, "near": 0}
    for t1 in tokens_a:
        for t2 in tokens_b:
            kind = _pair_kind(t1, t2)
            if kind:
                counts[kind] += 1

    points = (
        counts["exact"] * EXACT_TOKEN_POINTS
        + counts["substring"] * SUBSTRING_POINTS
        + counts["near"] * NEAR_MISS_POINTS
    )
    return min(1.0, points / longest)
