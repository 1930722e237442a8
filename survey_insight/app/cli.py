"""Classify a survey export and print its question types and chart summaries as JSON."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from survey_insight.analysis.aggregation import build_chart_data
from survey_insight.app.config import Settings
from survey_insight.app.errors import AppError
from survey_insight.app.logging import setup_logging
from survey_insight.data.importer import SurveyImporter
from survey_insight.workflows.state import SurveyData


_EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}


def summarize(survey: SurveyData) -> Dict[str, Any]:
    charts: List[Dict[str, Any]] = []
    for group in survey.matrix_groups:
        charts.append(build_chart_data(survey, matrix_group_id=group.group_id).to_dict())
    for qt in survey.question_types:
        if qt.type != "matrix":
            charts.append(build_chart_data(survey, column_index=qt.column_index).to_dict())

    return {
        "title": survey.title,
        "total_responses": survey.total_responses,
        "question_types": [qt.to_dict() for qt in survey.question_types],
        "matrix_groups": [g.to_dict() for g in survey.matrix_groups],
        "charts": charts,
    }


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--input", required=True, help="Path to a CSV or Excel survey export")
    parser.add_argument("--question-row", type=int, help="0-based row holding the question texts")
    parser.add_argument("--output", help="Output JSON file path")
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    setup_logging(settings.log_level, settings.log_json)

    input_path = Path(args.input)
    if not input_path.exists():
        print(json.dumps({"ok": False, "error": f"Missing file: {input_path}"}, ensure_ascii=False), file=sys.stderr)
        return 2

    importer = SurveyImporter(settings.classifier_config(), question_row_index=settings.question_row_index)
    try:
        if input_path.suffix.lower() in _EXCEL_SUFFIXES:
            survey = importer.import_excel(str(input_path), question_row_index=args.question_row)
        else:
            survey = importer.import_csv(str(input_path), question_row_index=args.question_row)
    except AppError as e:
        print(json.dumps({"ok": False, "error": str(e)}, ensure_ascii=False), file=sys.stderr)
        return 1

    payload = summarize(survey)

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")

    print(json.dumps({"ok": True, "data": payload}, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
