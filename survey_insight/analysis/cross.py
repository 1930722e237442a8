# survey_insight/analysis/cross.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from survey_insight.analysis.aggregation import processed_rows
from survey_insight.classify.classifier import split_multi_select
from survey_insight.classify.score_map import effective_score_map, is_scored
from survey_insight.data.models import QuestionKind
from survey_insight.data.text import normalize_label
from survey_insight.workflows.state import SurveyData


@dataclass(frozen=True)
class CrossCell:
    # One x option against one y column.
    x_option: str
    row_count: int
    average: Optional[float] = None
    counts: Tuple[int, ...] = ()


@dataclass(frozen=True)
class CrossSeries:
    column_index: int
    question_type: QuestionKind
    options: Tuple[str, ...]
    cells: Tuple[CrossCell, ...]


@dataclass(frozen=True)
class CrossAnalysis:
    x_column: int
    x_options: Tuple[str, ...]
    series: Tuple[CrossSeries, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "x_column": self.x_column,
            "x_options": list(self.x_options),
            "series": [
                {
                    "column_index": s.column_index,
                    "question_type": s.question_type,
                    "options": list(s.options),
                    "cells": [
                        {"x_option": c.x_option, "row_count": c.row_count, "average": c.average, "counts": list(c.counts)}
                        for c in s.cells
                    ],
                }
                for s in self.series
            ],
        }


def cross_analysis(survey: SurveyData, x_column: int, y_columns: Sequence[int]) -> CrossAnalysis:
    """
    Break y columns down by the answer given to x_column.

    Likert/matrix y columns report the average over scored answers (answers
    mapped to "other" or missing are left out); other types report per-option
    counts. `row_count` is the number of rows that chose the x option.
    """
    x_qt = survey.question_type(x_column)
    rows = processed_rows(survey)
    x_options = x_qt.options

    by_option: Dict[str, List[Tuple[Any, ...]]] = {o: [] for o in x_options}
    for row in rows:
        cell = row[x_column]
        if cell in by_option:
            by_option[cell].append(row)

    series: List[CrossSeries] = []
    for y in y_columns:
        y_qt = survey.question_type(y)
        cells: List[CrossCell] = []
        for opt in x_options:
            subset = by_option[opt]
            if y_qt.type in ("likert", "matrix"):
                score_map = effective_score_map(y_qt.options, y_qt.score_map) or {}
                scores = [
                    score_map[normalize_label(row[y])]
                    for row in subset
                    if row[y] and is_scored(score_map.get(normalize_label(row[y])))
                ]
                average = round(sum(scores) / len(scores), 2) if scores else 0.0
                cells.append(CrossCell(x_option=opt, row_count=len(subset), average=average))
            elif y_qt.type == "multiple_select":
                parts = [set(split_multi_select(row[y])) if row[y] else set() for row in subset]
                counts = tuple(sum(1 for p in parts if o in p) for o in y_qt.options)
                cells.append(CrossCell(x_option=opt, row_count=len(subset), counts=counts))
            else:
                counts = tuple(sum(1 for row in subset if row[y] == o) for o in y_qt.options)
                cells.append(CrossCell(x_option=opt, row_count=len(subset), counts=counts))
        series.append(CrossSeries(column_index=y, question_type=y_qt.type, options=y_qt.options, cells=tuple(cells)))

    return CrossAnalysis(x_column=x_column, x_options=x_options, series=tuple(series))
