# survey_insight/workflows/state.py
from __future__ import annotations

import json
from dataclasses import asdict, dataclass, is_dataclass, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from survey_insight.app.config import DEFAULT_CONFIG, ClassifierConfig
from survey_insight.app.errors import UnknownColumnError, UnknownMatrixGroupError
from survey_insight.app.logging import get_logger
from survey_insight.classify.classifier import QuestionTypeClassifier, column_values
from survey_insight.classify.matrix import MatrixGroupDetector, resolve_group_title
from survey_insight.classify.score_map import is_scored
from survey_insight.data.models import Cell, MatrixGroupRecord, Question, QuestionType, Row
from survey_insight.data.text import normalize_label


logger = get_logger(__name__)

DEFAULT_TITLE = "설문조사"
DEFAULT_DESCRIPTION = "설문조사 결과"


# -------------------------
# Core State (single object passed between edits and aggregation)
# -------------------------

@dataclass(frozen=True)
class SurveyData:
    headers: Tuple[str, ...]
    questions: Tuple[str, ...]
    rows: Tuple[Row, ...]
    question_types: Tuple[QuestionType, ...]
    question_row_index: int = 1
    matrix_groups: Tuple[MatrixGroupRecord, ...] = ()
    title: str = DEFAULT_TITLE
    description: str = DEFAULT_DESCRIPTION

    # -------------------------
    # Views
    # -------------------------

    @property
    def column_count(self) -> int:
        return len(self.question_types)

    @property
    def total_responses(self) -> int:
        return len(self.rows)

    def question_type(self, column_index: int) -> QuestionType:
        if not 0 <= column_index < len(self.question_types):
            raise UnknownColumnError(f"Unknown column index: {column_index}")
        return self.question_types[column_index]

    def group(self, group_id: int) -> MatrixGroupRecord:
        for g in self.matrix_groups:
            if g.group_id == group_id:
                return g
        raise UnknownMatrixGroupError(f"Unknown matrix group: {group_id}")

    def column_values(self, column_index: int) -> List[str]:
        self.question_type(column_index)
        return column_values(self.rows, column_index)

    def column_cells(self, column_index: int) -> List[Cell]:
        # One entry per row, empties included.
        self.question_type(column_index)
        return [row[column_index] if column_index < len(row) else None for row in self.rows]

    def question(self, column_index: int) -> Question:
        qt = self.question_type(column_index)
        matrix_title = None
        if qt.matrix_group_id is not None:
            matrix_title = self.group(qt.matrix_group_id).title
        return Question(
            id=f"q{column_index}",
            column_index=column_index,
            text=self.questions[column_index],
            header=self.headers[column_index],
            type=qt.type,
            options=qt.options,
            score_map=dict(qt.score_map) if qt.score_map is not None else None,
            matrix_group_id=qt.matrix_group_id,
            matrix_title=matrix_title,
            scale=qt.scale,
            other_responses=qt.other_responses,
        )

    def questions_view(self) -> List[Question]:
        return [self.question(i) for i in range(self.column_count)]

    def patch(self, **updates: Any) -> "SurveyData":
        allowed = {f for f in self.__dataclass_fields__}
        return replace(self, **{k: v for k, v in updates.items() if k in allowed})

    # -------------------------
    # JSON serialization
    # -------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "question_row_index": self.question_row_index,
            "headers": list(self.headers),
            "questions": list(self.questions),
            "rows": [list(r) for r in self.rows],
            "question_types": [qt.to_dict() for qt in self.question_types],
            "matrix_groups": [g.to_dict() for g in self.matrix_groups],
        }

    def to_json(self, ensure_ascii: bool = False, indent: Optional[int] = None) -> str:
        return json.dumps(_json_sanitize(self.to_dict()), ensure_ascii=ensure_ascii, indent=indent)

    @staticmethod
    def from_dict(d: Dict[str, Any], config: Optional[ClassifierConfig] = None) -> "SurveyData":
        survey = SurveyData(
            headers=tuple(d.get("headers") or ()),
            questions=tuple(d.get("questions") or ()),
            rows=tuple(tuple(r) for r in d.get("rows") or ()),
            question_types=tuple(QuestionType.from_dict(x) for x in d.get("question_types") or ()),
            question_row_index=int(d.get("question_row_index", 1)),
            matrix_groups=tuple(MatrixGroupRecord.from_dict(x) for x in d.get("matrix_groups") or ()),
            title=d.get("title") or DEFAULT_TITLE,
            description=d.get("description") or DEFAULT_DESCRIPTION,
        )
        return consolidate(survey, config)

    @staticmethod
    def from_json(s: str, config: Optional[ClassifierConfig] = None) -> "SurveyData":
        return SurveyData.from_dict(json.loads(s), config)


def _json_sanitize(obj: Any) -> Any:
    if obj is None: return None
    if isinstance(obj, (str, int, float, bool)): return obj
    if is_dataclass(obj): return _json_sanitize(asdict(obj))
    if isinstance(obj, dict): return {str(k): _json_sanitize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)): return [_json_sanitize(v) for v in obj]
    return str(obj)


# -------------------------
# Construction / consistency
# -------------------------

def _pad(values: Sequence[Any], width: int, fill: Any) -> Tuple[Any, ...]:
    out = tuple(values[:width])
    return out + (fill,) * (width - len(out))


def build_survey(
    headers: Sequence[Optional[str]],
    questions: Sequence[Optional[str]],
    rows: Sequence[Sequence[Cell]],
    question_row_index: int = 1,
    config: Optional[ClassifierConfig] = None,
    title: str = DEFAULT_TITLE,
    description: str = DEFAULT_DESCRIPTION,
) -> SurveyData:
    """Detect matrix groups, classify every column and return a consistent aggregate."""
    cfg = config or DEFAULT_CONFIG
    width = max([len(headers), len(questions)] + [len(r) for r in rows])

    texts = _pad([q or "" for q in questions], width, "")
    grid = tuple(_pad(list(r), width, None) for r in rows)

    groups = MatrixGroupDetector(cfg).detect(texts, grid)
    types = QuestionTypeClassifier(cfg).classify(grid, groups, column_count=width)

    survey = SurveyData(
        headers=_pad([h or "" for h in headers], width, ""),
        questions=texts,
        rows=grid,
        question_types=tuple(types),
        question_row_index=question_row_index,
        title=title,
        description=description,
    )
    return consolidate(survey, cfg)


def _other_responses(values: Sequence[str], options: Sequence[str], score_map: Optional[Dict[str, Any]]) -> Tuple[str, ...]:
    known = {normalize_label(o) for o in options}
    flagged = {k for k, v in (score_map or {}).items() if not is_scored(v)}
    return tuple(
        v for v in dict.fromkeys(values)
        if normalize_label(v) not in known or normalize_label(v) in flagged
    )


def _as_ordinary_column(qt: QuestionType, values: Sequence[str], classifier: QuestionTypeClassifier) -> QuestionType:
    # A column leaving its group keeps a usable Likert mapping; anything else is reclassified.
    if qt.score_map and any(is_scored(v) for v in qt.score_map.values()):
        return QuestionType(
            column_index=qt.column_index,
            type="likert",
            options=qt.options,
            other_responses=qt.other_responses,
            score_map=dict(qt.score_map),
            scale=qt.scale,
        )
    return classifier.classify_column(qt.column_index, values)


def consolidate(survey: SurveyData, config: Optional[ClassifierConfig] = None) -> SurveyData:
    """
    Re-derive matrix groups from the member types and make every record agree.

    - groups are rebuilt from the columns typed `matrix` with a group id;
    - a group left with fewer than `min_group_size` members is dissolved and
      its survivors become ordinary columns;
    - a group-level options/score_map, once saved, is copied onto every member;
    - a non-matrix column never carries a group id.
    """
    cfg = config or DEFAULT_CONFIG
    classifier = QuestionTypeClassifier(cfg)
    types = list(survey.question_types)
    existing = {g.group_id: g for g in survey.matrix_groups}

    members: Dict[int, List[int]] = {}
    for i, qt in enumerate(types):
        if qt.type == "matrix" and qt.matrix_group_id is not None:
            members.setdefault(qt.matrix_group_id, []).append(i)
        elif qt.type == "matrix":
            types[i] = _as_ordinary_column(qt, survey.column_values(i), classifier)
        elif qt.matrix_group_id is not None or qt.common_prefix is not None:
            types[i] = replace(qt, matrix_group_id=None, common_prefix=None)

    records: List[MatrixGroupRecord] = []
    for gid in sorted(members):
        cols = sorted(members[gid])
        prior = existing.get(gid)

        if len(cols) < cfg.min_group_size:
            for col in cols:
                types[col] = _as_ordinary_column(types[col], survey.column_values(col), classifier)
            logger.info("Matrix group dissolved", extra={"group_id": gid, "remaining": cols})
            continue

        if prior is not None and prior.common_prefix:
            prefix = prior.common_prefix
        else:
            prefix = types[cols[0]].common_prefix or ""

        options = prior.options if prior is not None else None
        score_map = prior.score_map if prior is not None else None
        for col in cols:
            qt = replace(types[col], common_prefix=prefix)
            if options is not None:
                qt = replace(
                    qt,
                    options=tuple(options),
                    score_map=dict(score_map) if score_map is not None else None,
                    other_responses=_other_responses(survey.column_values(col), options, score_map),
                )
            types[col] = qt

        records.append(
            MatrixGroupRecord(
                group_id=gid,
                title=resolve_group_title([survey.questions[c] for c in cols], prefix),
                member_indices=tuple(cols),
                common_prefix=prefix,
                options=tuple(options) if options is not None else None,
                score_map=dict(score_map) if score_map is not None else None,
            )
        )

    return survey.patch(question_types=tuple(types), matrix_groups=tuple(records))
