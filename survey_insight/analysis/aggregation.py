# survey_insight/analysis/aggregation.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from survey_insight.app.config import DEFAULT_CONFIG, ClassifierConfig
from survey_insight.app.logging import get_logger
from survey_insight.classify.classifier import column_values, is_other_marker, split_multi_select
from survey_insight.classify.score_map import effective_score_map, is_scored
from survey_insight.data.models import (
    MULTI_SELECT_DELIMITER,
    OTHER_LABEL,
    SAME_TEXT_LABEL,
    QuestionKind,
    QuestionType,
    Row,
    ScoreValue,
)
from survey_insight.data.text import normalize_label
from survey_insight.workflows.state import SurveyData


logger = get_logger(__name__)

# (population, k) -> k items drawn without replacement
Sampler = Callable[[Sequence[str], int], List[str]]


def numpy_sampler(rng: Optional[np.random.Generator] = None) -> Sampler:
    """Unweighted sampling without replacement; unseeded unless a Generator is passed."""
    generator = rng if rng is not None else np.random.default_rng()

    def _sample(values: Sequence[str], k: int) -> List[str]:
        if k >= len(values):
            return list(values)
        picked = np.sort(generator.choice(len(values), size=k, replace=False))
        return [values[int(i)] for i in picked]

    return _sample


@dataclass(frozen=True)
class ChartEntry:
    label: str
    count: int
    percentage: float
    is_other: bool = False
    # Matrix charts: the member's average score.
    value: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "count": self.count,
            "percentage": round(self.percentage, 1),
            "is_other": self.is_other,
            "value": self.value,
        }


@dataclass(frozen=True)
class ChartData:
    question_type: QuestionKind
    title: str
    entries: Tuple[ChartEntry, ...]
    respondent_count: int
    column_index: Optional[int] = None
    matrix_group_id: Optional[int] = None
    average_score: Optional[float] = None
    # Open questions: the (possibly sampled) responses handed to text analysis.
    responses: Tuple[str, ...] = ()

    @property
    def other_bucket(self) -> Tuple[ChartEntry, ...]:
        return tuple(e for e in self.entries if e.is_other)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question_type": self.question_type,
            "title": self.title,
            "column_index": self.column_index,
            "matrix_group_id": self.matrix_group_id,
            "respondent_count": self.respondent_count,
            "average_score": self.average_score,
            "entries": [e.to_dict() for e in self.entries],
            "responses": list(self.responses),
        }

    def to_frame(self) -> pd.DataFrame:
        columns = ["label", "count", "percentage", "is_other", "value"]
        return pd.DataFrame([e.to_dict() for e in self.entries], columns=columns)


# -------------------------
# Row preprocessing
# -------------------------

def processed_rows(survey: SurveyData) -> List[Row]:
    """Copy of the rows with multi-select "other" parts collapsed to the canonical label."""
    cols = [qt.column_index for qt in survey.question_types if qt.type == "multiple_select"]
    out: List[Row] = []
    for row in survey.rows:
        r = list(row)
        for col in cols:
            cell = r[col] if col < len(r) else None
            if isinstance(cell, str):
                parts = [OTHER_LABEL if is_other_marker(p) else p for p in split_multi_select(cell)]
                r[col] = MULTI_SELECT_DELIMITER.join(parts)
        out.append(tuple(r))
    return out


# -------------------------
# Per-type builders
# -------------------------

def _percent(count: int, total: int) -> float:
    return count / total * 100 if total else 0.0


def _score_totals(
    counts: Mapping[str, int],
    score_map: Optional[Mapping[str, ScoreValue]],
) -> Tuple[int, int]:
    total_score = 0
    total_count = 0
    for label, count in counts.items():
        score = (score_map or {}).get(normalize_label(label))
        if not is_scored(score) or count <= 0:
            continue
        total_score += score * count
        total_count += count
    return total_score, total_count


def weighted_average(
    counts: Mapping[str, int],
    score_map: Optional[Mapping[str, ScoreValue]],
) -> float:
    """Σ score·count / Σ count over scored labels only; 0 when nothing is scored."""
    total_score, total_count = _score_totals(counts, score_map)
    return round(total_score / total_count, 2) if total_count else 0.0


def _count_against_options(values: Sequence[str], options: Sequence[str]) -> Tuple[Dict[str, int], Dict[str, int]]:
    # Returns (per-option counts in option order, unmatched value counts in first-seen order).
    by_key = {normalize_label(o): o for o in options}
    counts: Dict[str, int] = {o: 0 for o in options}
    unmatched: Dict[str, int] = {}
    for v in values:
        opt = by_key.get(normalize_label(v))
        if opt is not None:
            counts[opt] += 1
        else:
            unmatched[v] = unmatched.get(v, 0) + 1
    return counts, unmatched


def likert_chart(qt: QuestionType, values: Sequence[str], title: str = "") -> ChartData:
    counts, unmatched = _count_against_options(values, qt.options)
    total = len(values)
    entries = [ChartEntry(label=o, count=c, percentage=_percent(c, total)) for o, c in counts.items()]
    entries += [
        ChartEntry(label=f"{OTHER_LABEL}({v})", count=c, percentage=_percent(c, total), is_other=True)
        for v, c in unmatched.items()
    ]
    return ChartData(
        question_type=qt.type,
        title=title,
        entries=tuple(entries),
        respondent_count=total,
        column_index=qt.column_index,
        average_score=weighted_average(counts, effective_score_map(qt.options, qt.score_map)),
    )


def multiple_chart(qt: QuestionType, values: Sequence[str], title: str = "") -> ChartData:
    counts, unmatched = _count_against_options(values, qt.options)
    total = len(values)
    entries = [ChartEntry(label=o, count=c, percentage=_percent(c, total)) for o, c in counts.items()]
    other_count = sum(unmatched.values())
    if other_count:
        entries.append(ChartEntry(label=OTHER_LABEL, count=other_count, percentage=_percent(other_count, total), is_other=True))
    return ChartData(
        question_type=qt.type,
        title=title,
        entries=tuple(entries),
        respondent_count=total,
        column_index=qt.column_index,
    )


def multi_select_chart(qt: QuestionType, values: Sequence[str], title: str = "") -> ChartData:
    counts: Dict[str, int] = {}
    for v in values:
        for part in split_multi_select(v):
            if not part:
                continue
            label = OTHER_LABEL if is_other_marker(part) else part
            counts[label] = counts.get(label, 0) + 1

    total_parts = sum(counts.values())
    entries = [
        ChartEntry(label=label, count=c, percentage=_percent(c, total_parts), is_other=(label == OTHER_LABEL))
        for label, c in counts.items()
    ]
    # sorted() is stable: equal shares keep first-seen order.
    entries = sorted(entries, key=lambda e: e.percentage, reverse=True)
    return ChartData(
        question_type=qt.type,
        title=title,
        entries=tuple(entries),
        respondent_count=len(values),
        column_index=qt.column_index,
    )


def open_chart(
    qt: QuestionType,
    values: Sequence[str],
    title: str = "",
    sampler: Optional[Sampler] = None,
    sample_cap: int = DEFAULT_CONFIG.open_sample_cap,
) -> ChartData:
    responses = list(values)
    if len(responses) > sample_cap:
        responses = list((sampler or numpy_sampler())(responses, sample_cap))
        logger.info(
            "Open responses sampled",
            extra={"column_index": qt.column_index, "total": len(values), "sampled": len(responses)},
        )

    counts: Dict[str, int] = {}
    for v in responses:
        counts[v] = counts.get(v, 0) + 1
    n = len(responses)
    entries = sorted(
        (ChartEntry(label=v, count=c, percentage=_percent(c, n)) for v, c in counts.items()),
        key=lambda e: e.count,
        reverse=True,
    )
    return ChartData(
        question_type=qt.type,
        title=title,
        entries=tuple(entries),
        respondent_count=len(values),
        column_index=qt.column_index,
        responses=tuple(responses),
    )


def matrix_chart(survey: SurveyData, group_id: int, rows: Optional[Sequence[Row]] = None) -> ChartData:
    group = survey.group(group_id)
    data = rows if rows is not None else survey.rows
    cut = len(group.common_prefix)

    per_member = [(col, column_values(data, col)) for col in group.member_indices]
    first_count = len(per_member[0][1]) if per_member else 0

    entries: List[ChartEntry] = []
    pooled_score = 0
    pooled_count = 0
    for col, values in per_member:
        qt = survey.question_type(col)
        score_map = effective_score_map(qt.options, qt.score_map)
        counts, _ = _count_against_options(values, qt.options)
        label = (survey.questions[col] or "")[cut:].strip() or SAME_TEXT_LABEL
        entries.append(
            ChartEntry(
                label=label,
                count=len(values),
                percentage=_percent(len(values), first_count),
                value=weighted_average(counts, score_map),
            )
        )
        member_score, member_count = _score_totals(counts, score_map)
        pooled_score += member_score
        pooled_count += member_count

    return ChartData(
        question_type="matrix",
        title=group.title,
        entries=tuple(entries),
        respondent_count=first_count,
        matrix_group_id=group_id,
        average_score=round(pooled_score / pooled_count, 2) if pooled_count else 0.0,
    )


# -------------------------
# Entry point
# -------------------------

_BUILDERS: Dict[str, Callable[..., ChartData]] = {
    "likert": likert_chart,
    "multiple": multiple_chart,
    "multiple_select": multi_select_chart,
}


def build_chart_data(
    survey: SurveyData,
    column_index: Optional[int] = None,
    matrix_group_id: Optional[int] = None,
    sampler: Optional[Sampler] = None,
    config: Optional[ClassifierConfig] = None,
) -> ChartData:
    """
    Chart-ready summary for one column or one matrix group.

    Exactly one of `column_index` / `matrix_group_id` must be given; a matrix
    member's column index resolves to its group's chart.
    """
    if (column_index is None) == (matrix_group_id is None):
        raise ValueError("Pass exactly one of column_index or matrix_group_id")

    cfg = config or DEFAULT_CONFIG
    rows = processed_rows(survey)

    if matrix_group_id is None:
        qt = survey.question_type(column_index)
        if qt.type == "matrix" and qt.matrix_group_id is not None:
            matrix_group_id = qt.matrix_group_id
        else:
            values = column_values(rows, column_index)
            title = survey.questions[column_index]
            if qt.type == "open" or qt.type not in _BUILDERS:
                return open_chart(qt, values, title, sampler=sampler, sample_cap=cfg.open_sample_cap)
            return _BUILDERS[qt.type](qt, values, title)

    return matrix_chart(survey, matrix_group_id, rows)
