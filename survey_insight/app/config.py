from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


def _env_str(key: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(key)
    if v is None:
        return default
    v = v.strip()
    return v if v else default


def _env_int(key: str, default: int) -> int:
    v = _env_str(key)
    if v is None:
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_float(key: str, default: float) -> float:
    v = _env_str(key)
    if v is None:
        return default
    try:
        return float(v)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    v = _env_str(key)
    if v is None:
        return default
    return v.lower() in {"1", "true", "yes", "y", "on"}


@dataclass(frozen=True)
class ClassifierConfig:
    # Matrix detection
    min_prefix_length: int = 15
    min_group_size: int = 2
    min_option_overlap: float = 0.7
    max_matrix_group_size: int = 60
    max_matrix_columns: int = 400

    # Per-column classification
    multi_select_ratio: float = 0.3
    likert_match_ratio: float = 0.6
    open_min_distinct: int = 10
    multiple_min_distinct: int = 2
    multiple_max_distinct: int = 6

    # Aggregation
    open_sample_cap: int = 5000


DEFAULT_CONFIG = ClassifierConfig()


@dataclass(frozen=True)
class Settings:
    # Logging
    log_level: str
    log_json: bool

    # Ingestion
    question_row_index: int

    # Classification thresholds
    min_prefix_length: int
    min_option_overlap: float
    max_matrix_group_size: int
    max_matrix_columns: int
    multi_select_ratio: float
    likert_match_ratio: float
    open_min_distinct: int

    # Aggregation
    open_sample_cap: int

    @staticmethod
    def from_env() -> "Settings":
        # Read configuration from environment variables (.env is honoured).
        load_dotenv()

        return Settings(
            log_level=_env_str("SURVEY_LOG_LEVEL", "INFO") or "INFO",
            log_json=_env_bool("SURVEY_LOG_JSON", True),

            question_row_index=_env_int("SURVEY_QUESTION_ROW_INDEX", 1),

            min_prefix_length=_env_int("SURVEY_MIN_PREFIX_LENGTH", DEFAULT_CONFIG.min_prefix_length),
            min_option_overlap=_env_float("SURVEY_MIN_OPTION_OVERLAP", DEFAULT_CONFIG.min_option_overlap),
            max_matrix_group_size=_env_int("SURVEY_MAX_MATRIX_GROUP_SIZE", DEFAULT_CONFIG.max_matrix_group_size),
            max_matrix_columns=_env_int("SURVEY_MAX_MATRIX_COLUMNS", DEFAULT_CONFIG.max_matrix_columns),
            multi_select_ratio=_env_float("SURVEY_MULTI_SELECT_RATIO", DEFAULT_CONFIG.multi_select_ratio),
            likert_match_ratio=_env_float("SURVEY_LIKERT_MATCH_RATIO", DEFAULT_CONFIG.likert_match_ratio),
            open_min_distinct=_env_int("SURVEY_OPEN_MIN_DISTINCT", DEFAULT_CONFIG.open_min_distinct),

            open_sample_cap=_env_int("SURVEY_OPEN_SAMPLE_CAP", DEFAULT_CONFIG.open_sample_cap),
        )

    def classifier_config(self) -> ClassifierConfig:
        return ClassifierConfig(
            min_prefix_length=self.min_prefix_length,
            min_option_overlap=self.min_option_overlap,
            max_matrix_group_size=self.max_matrix_group_size,
            max_matrix_columns=self.max_matrix_columns,
            multi_select_ratio=self.multi_select_ratio,
            likert_match_ratio=self.likert_match_ratio,
            open_min_distinct=self.open_min_distinct,
            open_sample_cap=self.open_sample_cap,
        )
