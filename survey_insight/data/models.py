# models.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional, Tuple, Union


QuestionKind = Literal["multiple", "multiple_select", "open", "likert", "matrix"]
QUESTION_KINDS: Tuple[str, ...] = ("multiple", "multiple_select", "open", "likert", "matrix")

# Score-map value for options excluded from averaging.
OTHER = "기타"
ScoreValue = Union[int, str]
ScoreMap = Dict[str, ScoreValue]

# Raw-cell conventions of the survey export.
MULTI_SELECT_DELIMITER = "@@"
OTHER_MARKER_INFIX = "_Others"
OTHER_MARKER_PREFIX = "Others_"

OTHER_LABEL = "기타"
UNTITLED_GROUP = "제목 없음"
SAME_TEXT_LABEL = "(동일)"

Cell = Optional[str]
Row = Tuple[Cell, ...]


@dataclass(frozen=True)
class QuestionType:
    column_index: int
    type: QuestionKind
    options: Tuple[str, ...] = ()
    other_responses: Tuple[str, ...] = ()
    score_map: Optional[ScoreMap] = None
    matrix_group_id: Optional[int] = None
    common_prefix: Optional[str] = None
    scale: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "column_index": self.column_index,
            "type": self.type,
            "options": list(self.options),
            "other_responses": list(self.other_responses),
            "score_map": dict(self.score_map) if self.score_map is not None else None,
            "matrix_group_id": self.matrix_group_id,
            "common_prefix": self.common_prefix,
            "scale": self.scale,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "QuestionType":
        return QuestionType(
            column_index=int(d["column_index"]),
            type=d["type"],
            options=tuple(d.get("options") or ()),
            other_responses=tuple(d.get("other_responses") or ()),
            score_map=dict(d["score_map"]) if d.get("score_map") is not None else None,
            matrix_group_id=d.get("matrix_group_id"),
            common_prefix=d.get("common_prefix"),
            scale=d.get("scale"),
        )


@dataclass(frozen=True)
class MatrixGroupRecord:
    # Shared options/score_map are set once a group-level mapping is saved;
    # until then each member keeps the mapping detected for its own column.
    group_id: int
    title: str
    member_indices: Tuple[int, ...]
    common_prefix: str = ""
    options: Optional[Tuple[str, ...]] = None
    score_map: Optional[ScoreMap] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "group_id": self.group_id,
            "title": self.title,
            "member_indices": list(self.member_indices),
            "common_prefix": self.common_prefix,
            "options": list(self.options) if self.options is not None else None,
            "score_map": dict(self.score_map) if self.score_map is not None else None,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "MatrixGroupRecord":
        return MatrixGroupRecord(
            group_id=int(d["group_id"]),
            title=d.get("title") or "",
            member_indices=tuple(int(i) for i in d.get("member_indices") or ()),
            common_prefix=d.get("common_prefix") or "",
            options=tuple(d["options"]) if d.get("options") is not None else None,
            score_map=dict(d["score_map"]) if d.get("score_map") is not None else None,
        )


@dataclass(frozen=True)
class Question:
    # User-facing view of one column.
    id: str
    column_index: int
    text: str
    header: str
    type: QuestionKind
    options: Tuple[str, ...] = ()
    score_map: Optional[ScoreMap] = None
    matrix_group_id: Optional[int] = None
    matrix_title: Optional[str] = None
    scale: Optional[str] = None
    other_responses: Tuple[str, ...] = field(default_factory=tuple)
