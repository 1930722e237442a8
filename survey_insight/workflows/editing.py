# survey_insight/workflows/editing.py
from __future__ import annotations

from dataclasses import replace
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from survey_insight.app.config import ClassifierConfig
from survey_insight.app.errors import InvalidTypeChangeError, UnknownColumnError
from survey_insight.app.logging import get_logger
from survey_insight.classify.classifier import multi_select_options
from survey_insight.classify.score_map import apply_score_overrides, is_scored, promote_to_likert
from survey_insight.data.models import QUESTION_KINDS, Cell, QuestionType, Row
from survey_insight.data.text import normalize_label
from survey_insight.workflows.state import SurveyData, consolidate


logger = get_logger(__name__)


def _check_kind(new_type: str) -> None:
    if new_type not in QUESTION_KINDS:
        raise InvalidTypeChangeError(f"Unknown question type: {new_type!r}")


def _with_type(types: Sequence[QuestionType], qt: QuestionType) -> Tuple[QuestionType, ...]:
    return tuple(qt if t.column_index == qt.column_index else t for t in types)


def _with_column(rows: Sequence[Row], column_index: int, cells: Sequence[Cell]) -> Tuple[Row, ...]:
    out: List[Row] = []
    for row, cell in zip(rows, cells):
        r = list(row)
        r[column_index] = cell
        out.append(tuple(r))
    return tuple(out)


def _retype(
    survey: SurveyData,
    column_index: int,
    new_type: str,
    options_hint: Optional[Sequence[str]] = None,
) -> SurveyData:
    # Sets one column to `new_type` as an ordinary (non-member) column.
    qt = survey.question_type(column_index)
    values = survey.column_values(column_index)

    if new_type == "likert":
        options = tuple(options_hint) if options_hint is not None else qt.options
        promo = promote_to_likert(options, survey.column_cells(column_index))
        rows = _with_column(survey.rows, column_index, promo.values)
        remapped = [v for v in promo.values if v]
        new_qt = QuestionType(
            column_index=column_index,
            type="likert",
            options=promo.options,
            other_responses=tuple(v for v in dict.fromkeys(remapped) if normalize_label(v) not in promo.score_map),
            score_map=promo.score_map,
        )
        return survey.patch(rows=rows, question_types=_with_type(survey.question_types, new_qt))

    if new_type == "multiple_select":
        options, others = multi_select_options(values)
        new_qt = QuestionType(column_index=column_index, type="multiple_select", options=options, other_responses=others)
    elif new_type == "multiple":
        # Split parts of a multi-select never match whole cells.
        if qt.options and qt.type != "multiple_select":
            options = qt.options
        else:
            options = tuple(dict.fromkeys(values))
        new_qt = QuestionType(column_index=column_index, type="multiple", options=options)
    else:
        new_qt = QuestionType(column_index=column_index, type="open")
    return survey.patch(question_types=_with_type(survey.question_types, new_qt))


def change_column_type(
    survey: SurveyData,
    column_index: int,
    new_type: str,
    config: Optional[ClassifierConfig] = None,
) -> SurveyData:
    """
    Reclassify one column.

    A matrix member is detached from its group (see change_matrix_member_type).
    `matrix` is only valid for columns that already belong to a group.
    Switching to `likert` rewrites the column's answers onto the new mapping.
    """
    _check_kind(new_type)
    qt = survey.question_type(column_index)

    if qt.type == "matrix" and qt.matrix_group_id is not None:
        return change_matrix_member_type(survey, qt.matrix_group_id, column_index, new_type, config)
    if new_type == "matrix":
        raise InvalidTypeChangeError(f"Column {column_index} is not part of a matrix group")
    if qt.type == new_type:
        return survey

    updated = consolidate(_retype(survey, column_index, new_type), config)
    logger.info(
        "Column type changed",
        extra={"column_index": column_index, "old_type": qt.type, "new_type": new_type},
    )
    return updated


def change_matrix_member_type(
    survey: SurveyData,
    group_id: int,
    column_index: int,
    new_type: str,
    config: Optional[ClassifierConfig] = None,
) -> SurveyData:
    _check_kind(new_type)
    group = survey.group(group_id)
    if column_index not in group.member_indices:
        raise UnknownColumnError(f"Column {column_index} is not a member of matrix group {group_id}")
    if new_type == "matrix":
        return survey

    updated = consolidate(_retype(survey, column_index, new_type), config)
    logger.info(
        "Matrix member detached",
        extra={"group_id": group_id, "column_index": column_index, "new_type": new_type},
    )
    return updated


def change_matrix_group_type(
    survey: SurveyData,
    group_id: int,
    new_type: str,
    config: Optional[ClassifierConfig] = None,
) -> SurveyData:
    """Dissolve a group, giving every member the same new type."""
    _check_kind(new_type)
    group = survey.group(group_id)
    if new_type == "matrix":
        return survey

    hint = None
    if new_type == "likert":
        first = survey.question_type(group.member_indices[0])
        hint = group.options if group.options is not None else first.options

    updated = survey
    for col in group.member_indices:
        updated = _retype(updated, col, new_type, options_hint=hint)
    updated = consolidate(updated, config)
    logger.info(
        "Matrix group type changed",
        extra={"group_id": group_id, "members": list(group.member_indices), "new_type": new_type},
    )
    return updated


def save_score_map(
    survey: SurveyData,
    column_index: int,
    overrides: Mapping[str, Any],
    config: Optional[ClassifierConfig] = None,
) -> SurveyData:
    qt = survey.question_type(column_index)
    if qt.type == "matrix":
        raise InvalidTypeChangeError(
            f"Column {column_index} belongs to matrix group {qt.matrix_group_id}; save the group mapping instead"
        )
    if qt.type != "likert":
        raise InvalidTypeChangeError(f"Score maps apply to likert columns only (column {column_index} is {qt.type})")

    options, score_map = apply_score_overrides(qt.options, qt.score_map, overrides)
    values = survey.column_values(column_index)
    new_qt = replace(
        qt,
        options=options,
        score_map=score_map,
        other_responses=tuple(
            v for v in dict.fromkeys(values)
            if not is_scored(score_map.get(normalize_label(v)))
        ),
    )
    logger.info("Score map saved", extra={"column_index": column_index, "options": len(options)})
    return consolidate(survey.patch(question_types=_with_type(survey.question_types, new_qt)), config)


def save_matrix_group_score_map(
    survey: SurveyData,
    group_id: int,
    overrides: Mapping[str, Any],
    config: Optional[ClassifierConfig] = None,
) -> SurveyData:
    """Store one mapping for the whole group; consolidation copies it onto the members."""
    group = survey.group(group_id)
    if group.options is not None:
        base_options, base_map = group.options, group.score_map
    else:
        first = survey.question_type(group.member_indices[0])
        base_options, base_map = first.options, first.score_map

    options, score_map = apply_score_overrides(base_options, base_map, overrides)
    groups = tuple(
        replace(g, options=options, score_map=score_map) if g.group_id == group_id else g
        for g in survey.matrix_groups
    )
    logger.info("Matrix group score map saved", extra={"group_id": group_id, "options": len(options)})
    return consolidate(survey.patch(matrix_groups=groups), config)
