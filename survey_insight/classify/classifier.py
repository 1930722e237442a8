# survey_insight/classify/classifier.py
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from survey_insight.app.config import DEFAULT_CONFIG, ClassifierConfig
from survey_insight.app.logging import get_logger
from survey_insight.classify.likert_scales import LIKERT_SCALES, LikertScale, match_scale
from survey_insight.classify.matrix import MatrixGroup
from survey_insight.classify.score_map import scale_score_map
from survey_insight.data.models import (
    MULTI_SELECT_DELIMITER,
    OTHER_MARKER_INFIX,
    OTHER_MARKER_PREFIX,
    QuestionType,
)


logger = get_logger(__name__)


def is_other_marker(part: str) -> bool:
    return OTHER_MARKER_INFIX in part or part.startswith(OTHER_MARKER_PREFIX)


def split_multi_select(value: str) -> List[str]:
    return [p.strip() for p in value.split(MULTI_SELECT_DELIMITER)]


def column_values(rows: Sequence[Sequence[Any]], column_index: int) -> List[str]:
    # Non-empty values of one column, row order, duplicates kept.
    out: List[str] = []
    for row in rows:
        if column_index < len(row):
            v = row[column_index]
            if v is not None and v != "":
                out.append(v)
    return out


def multi_select_options(values: Sequence[str]) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    """Split every cell on the delimiter; returns (options, other_responses)."""
    options: Dict[str, None] = {}
    others: Dict[str, None] = {}
    for v in values:
        for part in split_multi_select(v):
            if not part:
                continue
            if is_other_marker(part):
                others.setdefault(part, None)
            else:
                options.setdefault(part, None)
    return tuple(options), tuple(others)


class QuestionTypeClassifier:
    """
    Assigns exactly one question type to every column.

    Pass order is fixed:
      1. multi-select, detected from the share of cells holding the delimiter;
      2. matrix membership, from the detected groups;
      3. everything else: open (many distinct answers) -> likert (catalog
         match) -> multiple (2..6 distinct answers) -> open.
    A column claimed by an earlier pass is never revisited.
    """

    def __init__(
        self,
        config: Optional[ClassifierConfig] = None,
        scales: Sequence[LikertScale] = LIKERT_SCALES,
    ):
        self.config = config or DEFAULT_CONFIG
        self.scales = scales

    def classify(
        self,
        rows: Sequence[Sequence[Any]],
        matrix_groups: Optional[Mapping[int, MatrixGroup]] = None,
        column_count: Optional[int] = None,
    ) -> List[QuestionType]:
        if column_count is None:
            column_count = max((len(r) for r in rows), default=0)

        values_by_col = [column_values(rows, c) for c in range(column_count)]
        classified: Dict[int, QuestionType] = {}

        # 1. Multi-select
        for col in range(column_count):
            qt = self._classify_multi_select(col, values_by_col[col])
            if qt is not None:
                classified[col] = qt

        # 2. Matrix members
        for gid, group in (matrix_groups or {}).items():
            for col in group.indices:
                if col in classified or col >= column_count:
                    continue
                classified[col] = self._classify_matrix_member(col, values_by_col[col], gid, group.common_prefix)

        # 3. Remaining columns
        for col in range(column_count):
            if col in classified:
                continue
            classified[col] = self.classify_column(col, values_by_col[col])

        result = [classified[c] for c in range(column_count)]
        logger.info("Question types classified", extra={"counts": _count_types(result)})
        return result

    def _classify_multi_select(self, col: int, values: Sequence[str]) -> Optional[QuestionType]:
        if not values:
            return None
        with_delimiter = sum(1 for v in values if MULTI_SELECT_DELIMITER in v)
        if with_delimiter / len(values) < self.config.multi_select_ratio:
            return None
        options, others = multi_select_options(values)
        return QuestionType(
            column_index=col,
            type="multiple_select",
            options=options,
            other_responses=others,
        )

    def _classify_matrix_member(self, col: int, values: Sequence[str], group_id: int, prefix: str) -> QuestionType:
        distinct = list(dict.fromkeys(values))
        scale = match_scale(distinct, self.scales, self.config.likert_match_ratio)
        if scale is None:
            return QuestionType(
                column_index=col,
                type="matrix",
                options=tuple(distinct),
                matrix_group_id=group_id,
                common_prefix=prefix,
            )
        return QuestionType(
            column_index=col,
            type="matrix",
            options=scale.responses,
            other_responses=tuple(v for v in distinct if v not in scale.responses or is_other_marker(v)),
            score_map=scale_score_map(scale, distinct),
            matrix_group_id=group_id,
            common_prefix=prefix,
            scale=scale.id,
        )

    def classify_column(self, col: int, values: Sequence[str]) -> QuestionType:
        """Per-column rules for a column that is neither multi-select nor a matrix member."""
        distinct = list(dict.fromkeys(values))
        n = len(distinct)

        if n >= self.config.open_min_distinct:
            return QuestionType(column_index=col, type="open")

        scale = match_scale(distinct, self.scales, self.config.likert_match_ratio)
        if scale is not None:
            return QuestionType(
                column_index=col,
                type="likert",
                options=scale.responses,
                other_responses=tuple(v for v in distinct if v not in scale.responses),
                score_map=scale_score_map(scale, distinct),
                scale=scale.id,
            )

        if self.config.multiple_min_distinct <= n <= self.config.multiple_max_distinct:
            return QuestionType(column_index=col, type="multiple", options=tuple(distinct))

        return QuestionType(column_index=col, type="open")


def _count_types(types: Sequence[QuestionType]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for qt in types:
        counts[qt.type] = counts.get(qt.type, 0) + 1
    return counts


def analyze_question_types(
    rows: Sequence[Sequence[Any]],
    matrix_groups: Optional[Mapping[int, MatrixGroup]] = None,
    column_count: Optional[int] = None,
    config: Optional[ClassifierConfig] = None,
) -> List[QuestionType]:
    return QuestionTypeClassifier(config).classify(rows, matrix_groups, column_count)
