from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple


@dataclass(frozen=True)
class LikertScale:
    id: str
    name: str
    responses: Tuple[str, ...]
    scores: Tuple[int, ...]
    # Descriptive metadata; matching only looks at `responses`.
    positive_keywords: Tuple[str, ...] = ()
    negative_keywords: Tuple[str, ...] = ()
    intensifiers: Tuple[str, ...] = ()
    neutral_keywords: Tuple[str, ...] = ()

    def score_of(self, response: str) -> Optional[int]:
        try:
            return self.scores[self.responses.index(response)]
        except ValueError:
            return None


# Registration order is the matching precedence: the first scale that clears
# the threshold wins, even when a later one would match more options.
LIKERT_SCALES: Tuple[LikertScale, ...] = (
    LikertScale(
        id="satisfaction_5",
        name="5점 만족도 (매우 만족 ~ 매우 불만족)",
        responses=("매우 만족", "만족", "보통", "불만족", "매우 불만족"),
        scores=(5, 4, 3, 2, 1),
        positive_keywords=("만족",),
        negative_keywords=("불만족",),
        intensifiers=("매우", "다소", "약간", "전혀", "별로"),
    ),
    LikertScale(
        id="agreement_5",
        name="5점 동의도 (매우 그렇다 ~ 전혀 아니다)",
        responses=("매우 그렇다", "그렇다", "보통이다", "아니다", "전혀 아니다"),
        scores=(5, 4, 3, 2, 1),
        positive_keywords=("그렇다", "동의한다", "동의"),
        negative_keywords=("아니다", "동의하지 않는다"),
        intensifiers=("매우", "다소", "약간", "전혀", "별로"),
    ),
    LikertScale(
        id="agreement_5_v2",
        name="5점 동의도 (매우 그렇다 ~ 전혀 그렇지 않다)",
        responses=("매우 그렇다", "그렇다", "보통", "그렇지 않다", "전혀 그렇지 않다"),
        scores=(5, 4, 3, 2, 1),
        positive_keywords=("그렇다", "동의한다", "동의"),
        negative_keywords=("그렇지 않다", "동의하지 않는다"),
        intensifiers=("매우", "다소", "약간", "전혀", "별로"),
    ),
    LikertScale(
        id="agreement_5_v3",
        name="5점 동의도 (매우 동의함 ~ 전혀 동의하지 않음)",
        responses=("매우 동의함", "다소 동의함", "보통", "다소 동의하지 않음", "전혀 동의하지 않음"),
        scores=(5, 4, 3, 2, 1),
        positive_keywords=("동의함", "동의한다"),
        negative_keywords=("동의하지 않음", "동의하지 않는다"),
        intensifiers=("매우", "다소", "전혀"),
    ),
    LikertScale(
        id="improvement_5",
        name="5점 변화 (눈에 띄게 더 좋아짐 ~ 눈에 띄게 더 나빠짐)",
        responses=("눈에 띄게 더 좋아짐", "미미하게 더 좋아짐", "거의 변함 없음", "미미하게 더 나빠짐", "눈에 띄게 더 나빠짐"),
        scores=(5, 4, 3, 2, 1),
        positive_keywords=("좋아짐", "좋아졌다"),
        negative_keywords=("나빠짐", "나빠졌다"),
        intensifiers=("눈에 띄게", "미미하게", "다소", "거의"),
        neutral_keywords=("변함 없음", "변하지 않음"),
    ),
    LikertScale(
        id="agreement_numeric_desc",
        name="5점 동의도 (1점 전혀 그렇지 않다 ~ 5점 매우 그렇다)",
        responses=("5 (매우 그렇다)", "4 (그렇다)", "3 (보통)", "2 (그렇지 않다)", "1 (전혀 그렇지 않다)"),
        scores=(5, 4, 3, 2, 1),
        positive_keywords=("그렇다", "동의"),
        negative_keywords=("그렇지 않다",),
        intensifiers=("매우", "전혀"),
    ),
    LikertScale(
        id="satisfaction_numeric_desc",
        name="5점 만족도 (1점 매우 불만족 ~ 5점 매우 만족)",
        responses=("5 (매우 만족)", "4 (만족)", "3 (보통)", "2 (불만족)", "1 (매우 불만족)"),
        scores=(5, 4, 3, 2, 1),
        positive_keywords=("만족",),
        negative_keywords=("불만족",),
        intensifiers=("매우",),
    ),
    LikertScale(
        id="fun_5_v2",
        name="5점 재미 (매우 재미있음 ~ 매우 재미없음)",
        responses=("매우 재미있음", "다소 재미있음", "보통", "다소 재미없음", "매우 재미없음"),
        scores=(5, 4, 3, 2, 1),
        positive_keywords=("재미있음",),
        negative_keywords=("재미없음",),
        intensifiers=("매우", "다소", "별로"),
    ),
)

_BY_ID = {s.id: s for s in LIKERT_SCALES}

# Fixed vocabulary free-text answers are snapped onto when a column is
# promoted to Likert without a usable 5-option list of its own.
REFERENCE_LABELS: Tuple[str, ...] = _BY_ID["agreement_5"].responses


def get_scale(scale_id: Optional[str]) -> Optional[LikertScale]:
    if scale_id is None:
        return None
    return _BY_ID.get(scale_id)


def match_scale(
    options: Iterable[str],
    scales: Sequence[LikertScale] = LIKERT_SCALES,
    threshold: float = 0.6,
) -> Optional[LikertScale]:
    """
    Return the first catalog scale covered by `options` at `threshold` or more.

    Coverage is |options ∩ scale.responses| / |scale.responses|, so extra
    options ("모름", free text) do not disqualify a scale.
    """
    present = set(options)
    if not present:
        return None
    for scale in scales:
        matched = sum(1 for r in scale.responses if r in present)
        if matched / len(scale.responses) >= threshold:
            return scale
    return None
