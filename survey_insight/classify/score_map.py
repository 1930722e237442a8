from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import jsonschema

from survey_insight.app.errors import ScoreMapError
from survey_insight.classify.likert_scales import REFERENCE_LABELS, LikertScale
from survey_insight.classify.similarity import nearest_label
from survey_insight.data.models import OTHER, Cell, ScoreMap, ScoreValue
from survey_insight.data.text import normalize_label


NUMERIC_OPTIONS: Tuple[str, ...] = ("5", "4", "3", "2", "1")

# Accepted aliases for the "excluded from averaging" flag in override payloads.
_OTHER_ALIASES = {OTHER, "other"}

OVERRIDES_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "additionalProperties": {
        "oneOf": [
            {"type": "integer", "minimum": 1, "maximum": 5},
            {"type": "string", "enum": sorted(_OTHER_ALIASES)},
        ]
    },
}


@dataclass(frozen=True)
class LikertPromotion:
    options: Tuple[str, ...]
    score_map: ScoreMap
    values: List[Cell]


def is_scored(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def synthesize_score_map(options: Sequence[str]) -> Optional[ScoreMap]:
    # Positional heuristic: exactly five options in display order score 5..1.
    if len(options) != 5:
        return None
    return {normalize_label(opt): 5 - idx for idx, opt in enumerate(options)}


def effective_score_map(options: Sequence[str], score_map: Optional[Mapping[str, ScoreValue]]) -> Optional[ScoreMap]:
    if score_map:
        return dict(score_map)
    return synthesize_score_map(options)


def scale_score_map(scale: LikertScale, distinct_values: Iterable[str]) -> ScoreMap:
    score_map: ScoreMap = {normalize_label(r): s for r, s in zip(scale.responses, scale.scores)}
    for v in distinct_values:
        score_map.setdefault(normalize_label(v), OTHER)
    return score_map


def _numeric_key(value: str) -> Optional[str]:
    try:
        f = float(str(value).strip())
    except ValueError:
        return None
    if f != f or not f.is_integer():
        return None
    return str(int(f))


def numeric_score_map(values: Iterable[Cell]) -> Optional[Tuple[Tuple[str, ...], ScoreMap]]:
    """1..5 numeric answers: options "5".."1" scored by their own value."""
    keys = {_numeric_key(v) for v in values if v}
    if not set(NUMERIC_OPTIONS) <= keys:
        return None
    return NUMERIC_OPTIONS, {opt: int(opt) for opt in NUMERIC_OPTIONS}


def promote_to_likert(
    options: Sequence[str],
    values: Sequence[Cell],
    reference_labels: Sequence[str] = REFERENCE_LABELS,
) -> LikertPromotion:
    """
    Build the Likert mapping for a column the user reclassified as Likert and
    rewrite its raw answers onto that mapping.

    Vocabulary precedence: the column's own five options, then 1..5 numeric
    answers, then the fixed reference labels. With a text vocabulary every
    answer that is not already a key is replaced by its most similar label.
    """
    snap = True
    if len(options) == 5:
        vocabulary = tuple(options)
        score_map = synthesize_score_map(vocabulary) or {}
    else:
        numeric = numeric_score_map(values)
        if numeric is not None:
            vocabulary, score_map = numeric
            snap = False
        else:
            vocabulary = tuple(reference_labels)
            score_map = synthesize_score_map(vocabulary) or {}

    remapped: List[Cell] = []
    for v in values:
        if v is None or v == "":
            remapped.append(v)
        elif normalize_label(v) in score_map:
            remapped.append(v)
        elif not snap:
            key = _numeric_key(v)
            remapped.append(key if key in score_map else v)
        else:
            remapped.append(nearest_label(v, vocabulary))

    return LikertPromotion(options=vocabulary, score_map=score_map, values=remapped)


def validate_overrides(overrides: Mapping[str, Any]) -> None:
    try:
        jsonschema.validate(instance=dict(overrides), schema=OVERRIDES_SCHEMA)
    except jsonschema.ValidationError as e:
        raise ScoreMapError(f"Invalid score override: {e.message}") from e


def apply_score_overrides(
    options: Sequence[str],
    score_map: Optional[Mapping[str, ScoreValue]],
    overrides: Mapping[str, Any],
) -> Tuple[Tuple[str, ...], ScoreMap]:
    """
    Apply per-option scores (1..5) or the "other" flag and return the new
    (options, score_map) pair.

    Options without an override keep their current score (3 when they have
    none). Scored options are ordered by descending score, options flagged
    "other" follow in their previous relative order.
    """
    validate_overrides(overrides)

    known = {normalize_label(o) for o in options}
    by_key: Dict[str, ScoreValue] = {}
    for label, value in overrides.items():
        key = normalize_label(label)
        if key not in known:
            raise ScoreMapError(f"Unknown option in score override: {label!r}")
        by_key[key] = OTHER if value in _OTHER_ALIASES else int(value)

    current = effective_score_map(options, score_map) or {}
    scored: List[Tuple[str, int]] = []
    others: List[str] = []
    for opt in options:
        key = normalize_label(opt)
        value = by_key.get(key, current.get(key, 3))
        if value == OTHER or not is_scored(value):
            others.append(opt)
        else:
            scored.append((opt, int(value)))

    scored.sort(key=lambda pair: pair[1], reverse=True)
    new_options = tuple([opt for opt, _ in scored] + others)
    new_map: ScoreMap = {normalize_label(opt): s for opt, s in scored}
    for opt in others:
        new_map[normalize_label(opt)] = OTHER
    return new_options, new_map
