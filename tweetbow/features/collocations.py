"""
Collocation detection over token sequences.

Candidates are contiguous n-grams (length 2 to 3 by default) counted over
the whole collection. Windows never span a stopword pad, so two words that
were separated by a removed stopword are not considered adjacent.

Each candidate is scored with a signed log-likelihood ratio (G2). For an
n-gram w1..wn we cross "window starts with w1..w(n-1)" against "window ends
with wn" over all windows of length n:

    o11 = count(w1..wn)
    o12 = count(w1..w(n-1) *) - o11
    o21 = count(* wn) - o11
    o22 = N - o11 - o12 - o21

G2 = 2 * sum(o * ln(o / e)) over the four cells, with expected counts from
the margins under independence. The sign is negative when o11 falls below
its expectation. PMI (log2 o11 / e11) is reported alongside.

Ranking: G2 descending, then count descending, then the tokens
lexicographically.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from tweetbow.features.preprocessing import PAD


@dataclass(frozen=True)
class Collocation:
    tokens: Tuple[str, ...]
    count: int
    score: float       # signed G2
    pmi: float

    @property
    def length(self) -> int:
        return len(self.tokens)

    @property
    def collocation(self) -> str:
        return " ".join(self.tokens)


def iter_ngrams(sequence: Sequence[str], n: int) -> Iterable[Tuple[str, ...]]:
    """Yield contiguous n-grams of ``sequence`` that contain no pad."""
    run: List[str] = []
    for token in sequence:
        if token == PAD:
            run = []
            continue
        run.append(token)
        if len(run) >= n:
            yield tuple(run[-n:])


def count_ngrams(
    sequences: Iterable[Sequence[str]],
    n: int,
) -> Counter:
    """Count n-grams of length ``n`` across all sequences."""
    counts: Counter = Counter()
    for seq in sequences:
        counts.update(iter_ngrams(seq, n))
    return counts


def _xlogx_ratio(o: float, e: float) -> float:
    if o <= 0 or e <= 0:
        return 0.0
    return o * math.log(o / e)


def log_likelihood(o11: int, o12: int, o21: int, o22: int) -> Tuple[float, float]:
    """
    Signed G2 and PMI for a 2x2 contingency table.

    Returns
    -------
    Tuple[float, float]
        (g2, pmi). Both are 0.0 for an empty table.
    """
    n = o11 + o12 + o21 + o22
    if n == 0:
        return 0.0, 0.0

    r1, r2 = o11 + o12, o21 + o22
    c1, c2 = o11 + o21, o12 + o22
    e11 = r1 * c1 / n
    e12 = r1 * c2 / n
    e21 = r2 * c1 / n
    e22 = r2 * c2 / n

    g2 = 2.0 * (
        _xlogx_ratio(o11, e11)
        + _xlogx_ratio(o12, e12)
        + _xlogx_ratio(o21, e21)
        + _xlogx_ratio(o22, e22)
    )
    # Rounding can leave tiny negatives for perfectly independent tables.
    g2 = max(g2, 0.0)
    if o11 < e11:
        g2 = -g2

    pmi = math.log2(o11 / e11) if o11 > 0 and e11 > 0 else 0.0
    return g2, pmi


def _score_length(counts: Counter, min_count: int) -> List[Collocation]:
    total = sum(counts.values())
    prefix_counts: Dict[Tuple[str, ...], int] = Counter()
    last_counts: Dict[str, int] = Counter()
    for gram, c in counts.items():
        prefix_counts[gram[:-1]] += c
        last_counts[gram[-1]] += c

    scored: List[Collocation] = []
    for gram, o11 in counts.items():
        if o11 < min_count:
            continue
        o12 = prefix_counts[gram[:-1]] - o11
        o21 = last_counts[gram[-1]] - o11
        o22 = total - o11 - o12 - o21
        g2, pmi = log_likelihood(o11, o12, o21, o22)
        scored.append(Collocation(tokens=gram, count=o11, score=g2, pmi=pmi))
    return scored


def find_collocations(
    sequences: Iterable[Sequence[str]],
    min_n: int = 2,
    max_n: int = 3,
    min_count: int = 2,
) -> List[Collocation]:
    """
    Find and rank collocation candidates.

    Parameters
    ----------
    sequences : Iterable[Sequence[str]]
        Token sequences, possibly containing pads. Not modified.
    min_n, max_n : int
        Inclusive range of n-gram lengths.
    min_count : int
        Candidates occurring fewer times across the collection are dropped.

    Returns
    -------
    List[Collocation]
        Candidates sorted by score, count and tokens.
    """
    if min_n < 2 or max_n < min_n:
        raise ValueError(f"Invalid n-gram range: min_n={min_n}, max_n={max_n}")
    if min_count < 1:
        raise ValueError(f"min_count must be at least 1, got {min_count}")

    sequences = [list(seq) for seq in sequences]

    candidates: List[Collocation] = []
    for n in range(min_n, max_n + 1):
        candidates.extend(_score_length(count_ngrams(sequences, n), min_count))

    candidates.sort(key=lambda c: (-c.score, -c.count, c.tokens))
    return candidates


def select_collocations(
    candidates: Sequence[Collocation],
    min_score: Optional[float] = None,
    top_n: Optional[int] = None,
) -> List[Collocation]:
    """
    Pick the candidates to compound.

    ``min_score`` keeps candidates whose G2 is at least that value;
    ``top_n`` then keeps the first ``top_n`` in ranking order.
    """
    selected = list(candidates)
    if min_score is not None:
        selected = [c for c in selected if c.score >= min_score]
    if top_n is not None:
        selected = selected[: max(int(top_n), 0)]
    return selected


def collocations_to_frame(candidates: Sequence[Collocation]) -> pd.DataFrame:
    """Tabulate candidates as collocation, count, length, g2 and pmi columns."""
    return pd.DataFrame(
        {
            "collocation": [c.collocation for c in candidates],
            "count": [c.count for c in candidates],
            "length": [c.length for c in candidates],
            "g2": [c.score for c in candidates],
            "pmi": [c.pmi for c in candidates],
        },
        columns=["collocation", "count", "length", "g2", "pmi"],
    )
