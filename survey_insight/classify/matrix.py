# survey_insight/classify/matrix.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Sequence, Set, Tuple

from survey_insight.app.config import DEFAULT_CONFIG, ClassifierConfig
from survey_insight.app.logging import get_logger
from survey_insight.data.models import UNTITLED_GROUP


logger = get_logger(__name__)


@dataclass(frozen=True)
class MatrixGroup:
    group_id: int
    indices: Tuple[int, ...]
    common_prefix: str

    def remainders(self, questions: Sequence[Optional[str]]) -> List[str]:
        # Sub-question labels: member text after the shared stem.
        cut = len(self.common_prefix)
        return [(questions[i] or "")[cut:].strip() for i in self.indices]


def longest_common_prefix(texts: Sequence[str]) -> str:
    """Character-wise, case-sensitive longest common prefix."""
    if not texts:
        return ""
    shortest = min(texts, key=len)
    for pos, ch in enumerate(shortest):
        for t in texts:
            if t[pos] != ch:
                return shortest[:pos]
    return shortest


def _prefix_len(a: str, b: str) -> int:
    n = min(len(a), len(b))
    i = 0
    while i < n and a[i] == b[i]:
        i += 1
    return i


def option_overlap(a: Set[Any], b: Set[Any]) -> float:
    # Shared share of the larger option set; two empty sets count as identical.
    if not a and not b:
        return 1.0
    return len(a & b) / max(len(a), len(b))


def distinct_values(rows: Sequence[Sequence[Any]], column_index: int) -> List[str]:
    # Non-empty values of one column in first-occurrence order.
    seen: Dict[str, None] = {}
    for row in rows:
        if column_index >= len(row):
            continue
        v = row[column_index]
        if v is None or v == "":
            continue
        seen.setdefault(v, None)
    return list(seen)


class MatrixGroupDetector:
    """
    Finds runs of adjacent columns that form one grid question.

    A window of columns qualifies when:
      - its longest common prefix is at least `min_prefix_length` characters,
      - every member keeps a non-empty remainder after the prefix and the
        remainders are pairwise distinct,
      - (rows given) each member's option set overlaps the first member's by
        at least `min_option_overlap`.

    Windows are visited from the largest size down and, per size, left to
    right; a window that touches an already accepted group is skipped, so the
    result never contains overlapping groups.
    """

    def __init__(self, config: Optional[ClassifierConfig] = None):
        self.config = config or DEFAULT_CONFIG

    def detect(
        self,
        questions: Sequence[Optional[str]],
        rows: Optional[Sequence[Sequence[Any]]] = None,
    ) -> Dict[int, MatrixGroup]:
        texts = [q if isinstance(q, str) else ("" if q is None else str(q)) for q in questions]
        n = len(texts)
        groups: Dict[int, MatrixGroup] = {}
        if n < self.config.min_group_size:
            return groups

        # Wide exports are scanned block by block to keep the search bounded.
        block = max(self.config.max_matrix_columns, self.config.min_group_size)
        for lo in range(0, n, block):
            hi = min(lo + block, n)
            for indices, prefix in self._scan_block(texts, rows, lo, hi):
                gid = len(groups)
                groups[gid] = MatrixGroup(group_id=gid, indices=indices, common_prefix=prefix)

        if groups:
            logger.info(
                "Matrix groups detected",
                extra={"groups": len(groups), "columns": sum(len(g.indices) for g in groups.values())},
            )
        return groups

    def _scan_block(
        self,
        texts: List[str],
        rows: Optional[Sequence[Sequence[Any]]],
        lo: int,
        hi: int,
    ) -> List[Tuple[Tuple[int, ...], str]]:
        cfg = self.config
        # The LCP of a window equals the minimum LCP of its adjacent pairs.
        adjacent = [_prefix_len(texts[i], texts[i + 1]) for i in range(lo, hi - 1)]
        option_cache: Dict[int, FrozenSet[str]] = {}
        taken: Set[int] = set()
        accepted: List[Tuple[Tuple[int, ...], str]] = []

        max_size = min(hi - lo, cfg.max_matrix_group_size)
        for size in range(max_size, cfg.min_group_size - 1, -1):
            for start in range(lo, hi - size + 1):
                indices = tuple(range(start, start + size))
                if any(i in taken for i in indices):
                    continue

                prefix_len = min(adjacent[start - lo : start - lo + size - 1])
                if prefix_len < cfg.min_prefix_length:
                    continue

                remainders = [texts[i][prefix_len:].strip() for i in indices]
                if not all(remainders) or len(set(remainders)) != size:
                    continue

                if rows is not None and not self._similar_options(indices, rows, option_cache):
                    continue

                taken.update(indices)
                accepted.append((indices, texts[start][:prefix_len]))
        return accepted

    def _similar_options(
        self,
        indices: Tuple[int, ...],
        rows: Sequence[Sequence[Any]],
        cache: Dict[int, FrozenSet[str]],
    ) -> bool:
        def options_of(col: int) -> FrozenSet[str]:
            if col not in cache:
                cache[col] = frozenset(distinct_values(rows, col))
            return cache[col]

        first = set(options_of(indices[0]))
        for col in indices[1:]:
            if option_overlap(first, set(options_of(col))) < self.config.min_option_overlap:
                return False
        return True


def find_matrix_groups(
    questions: Sequence[Optional[str]],
    rows: Optional[Sequence[Sequence[Any]]] = None,
    config: Optional[ClassifierConfig] = None,
) -> Dict[int, MatrixGroup]:
    return MatrixGroupDetector(config).detect(questions, rows)


# -------------------------
# Group titles
# -------------------------

TitleStrategy = Callable[[Sequence[str], str], Optional[str]]


def _title_from_stored_prefix(texts: Sequence[str], common_prefix: str) -> Optional[str]:
    title = common_prefix.strip()
    return title or None


def _title_from_first_lines(texts: Sequence[str], common_prefix: str) -> Optional[str]:
    first_lines = [(t.strip().splitlines() or [""])[0].strip() for t in texts]
    if first_lines and first_lines[0] and all(line == first_lines[0] for line in first_lines):
        return first_lines[0]
    return None


def _title_from_char_prefix(texts: Sequence[str], common_prefix: str) -> Optional[str]:
    title = longest_common_prefix(list(texts)).strip()
    return title if len(title) > 10 else None


# Tried in order; the first non-empty answer is the title.
TITLE_STRATEGIES: Tuple[TitleStrategy, ...] = (
    _title_from_stored_prefix,
    _title_from_first_lines,
    _title_from_char_prefix,
)


def resolve_group_title(
    texts: Sequence[Optional[str]],
    common_prefix: str = "",
    strategies: Sequence[TitleStrategy] = TITLE_STRATEGIES,
) -> str:
    clean = [t or "" for t in texts]
    for strategy in strategies:
        title = strategy(clean, common_prefix or "")
        if title:
            return title
    return UNTITLED_GROUP
