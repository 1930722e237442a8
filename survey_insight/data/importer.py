# survey_insight/data/importer.py
from __future__ import annotations

from typing import Any, List, Optional, Sequence, Union
from uuid import UUID, uuid4, uuid5

import pandas as pd

from survey_insight.app.config import DEFAULT_CONFIG, ClassifierConfig
from survey_insight.app.errors import ImporterError, InsufficientDataError
from survey_insight.app.logging import get_logger, set_survey_id
from survey_insight.data.models import Cell
from survey_insight.data.text import to_cell
from survey_insight.workflows.state import SurveyData, build_survey


logger = get_logger(__name__)

_UUID_NAMESPACE = UUID("6ba7b811-9dad-11d1-80b4-00c04fd430c8")  # stable namespace

INSUFFICIENT_DATA_MESSAGE = "데이터가 충분하지 않습니다."

Table = Union[pd.DataFrame, Sequence[Sequence[Any]]]


class SurveyImporter:
    """
    Turns a decoded sheet into a classified SurveyData.

    Row 0 holds the column headers, row `question_row_index` the question
    texts; every row after it is one response.
    """

    def __init__(self, config: Optional[ClassifierConfig] = None, question_row_index: int = 1):
        self.config = config or DEFAULT_CONFIG
        self.question_row_index = question_row_index

    def import_csv(
        self,
        file_path: str,
        question_row_index: Optional[int] = None,
        encoding: Optional[str] = None,
    ) -> SurveyData:
        try:
            df = pd.read_csv(file_path, header=None, dtype=object, encoding=encoding, keep_default_na=True)
        except Exception as e:
            raise ImporterError(f"Failed to read CSV: {e}") from e

        return self.import_table(df, question_row_index=question_row_index, source_hint=str(file_path))

    def import_excel(
        self,
        file_path: str,
        question_row_index: Optional[int] = None,
        sheet_name: Union[str, int, None] = 0,
    ) -> SurveyData:
        try:
            df = pd.read_excel(file_path, sheet_name=sheet_name, header=None, dtype=object)
        except Exception as e:
            raise ImporterError(f"Failed to read Excel: {e}") from e

        return self.import_table(
            df,
            question_row_index=question_row_index,
            source_hint=f"{file_path}#{sheet_name if sheet_name is not None else 'default'}",
        )

    def import_table(
        self,
        table: Table,
        question_row_index: Optional[int] = None,
        source_hint: Optional[str] = None,
    ) -> SurveyData:
        qri = self.question_row_index if question_row_index is None else question_row_index
        if qri < 0:
            raise ImporterError(f"question_row_index must not be negative, got {qri}")

        grid = self._to_grid(table)
        # Headers, question row and at least one response. With qri == 0 the
        # header row doubles as the question row.
        if len(grid) < qri + 2:
            raise InsufficientDataError(INSUFFICIENT_DATA_MESSAGE)

        survey_id = str(uuid5(_UUID_NAMESPACE, source_hint)) if source_hint else str(uuid4())
        set_survey_id(survey_id)

        headers = [c or "" for c in grid[0]]
        questions = [c or "" for c in grid[qri]]
        rows = grid[qri + 1:]

        survey = build_survey(headers, questions, rows, question_row_index=qri, config=self.config)
        logger.info(
            "Survey imported",
            extra={"columns": survey.column_count, "responses": survey.total_responses, "groups": len(survey.matrix_groups)},
        )
        return survey

    def _to_grid(self, table: Table) -> List[List[Cell]]:
        if isinstance(table, pd.DataFrame):
            records = table.astype(object).where(pd.notnull(table), None).values.tolist()
        else:
            records = [list(r) for r in table]
        return [[to_cell(v) for v in r] for r in records]
