from __future__ import annotations

from typing import Optional, Sequence

from rapidfuzz.distance import Levenshtein

from survey_insight.data.text import collapse_whitespace


def _prepare(s: str) -> str:
    return collapse_whitespace(str(s)).casefold()


def similarity(a: str, b: str) -> float:
    """1 - levenshtein(a, b) / max(len(a), len(b)) on case/whitespace-normalized input."""
    x, y = _prepare(a), _prepare(b)
    if not x and not y:
        return 1.0
    return float(Levenshtein.normalized_similarity(x, y))


def nearest_label(value: str, labels: Sequence[str]) -> Optional[str]:
    # Earliest label wins ties.
    best: Optional[str] = None
    best_score = -1.0
    for label in labels:
        score = similarity(value, label)
        if score > best_score:
            best, best_score = label, score
    return best
