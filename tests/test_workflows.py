import unittest

from survey_insight.app.errors import (
    InvalidTypeChangeError,
    ScoreMapError,
    UnknownColumnError,
    UnknownMatrixGroupError,
)
from survey_insight.classify.likert_scales import REFERENCE_LABELS
from survey_insight.data.models import OTHER
from survey_insight.workflows.editing import (
    change_column_type,
    change_matrix_group_type,
    change_matrix_member_type,
    save_matrix_group_score_map,
    save_score_map,
)
from survey_insight.workflows.state import SurveyData, consolidate
from survey_samples import (
    HEADERS,
    LIKERT_COL,
    MATRIX_COLS,
    MATRIX_STEM,
    MULTIPLE_COL,
    MULTI_SELECT_COL,
    sample_survey,
)


class SurveyDataTest(unittest.TestCase):
    def setUp(self):
        self.survey = sample_survey()

    def test_build_survey(self):
        s = self.survey
        self.assertEqual(s.column_count, 6)
        self.assertEqual(s.total_responses, 6)
        self.assertEqual(s.headers, tuple(HEADERS))
        self.assertEqual(
            [qt.type for qt in s.question_types],
            ["likert", "matrix", "matrix", "matrix", "multiple_select", "multiple"],
        )
        [group] = s.matrix_groups
        self.assertEqual(group.group_id, 0)
        self.assertEqual(group.member_indices, MATRIX_COLS)
        self.assertEqual(group.common_prefix, MATRIX_STEM)
        self.assertEqual(group.title, "서비스에 대해 평가해주세요 -")
        self.assertIsNone(group.options)

    def test_question_view(self):
        q = self.survey.question(2)
        self.assertEqual(q.id, "q2")
        self.assertEqual(q.text, MATRIX_STEM + "신속성")
        self.assertEqual(q.header, "Q2_2")
        self.assertEqual(q.matrix_group_id, 0)
        self.assertEqual(q.matrix_title, "서비스에 대해 평가해주세요 -")
        self.assertEqual(len(self.survey.questions_view()), 6)
        self.assertIsNone(self.survey.question(LIKERT_COL).matrix_title)

    def test_unknown_lookups_raise(self):
        with self.assertRaises(UnknownColumnError):
            self.survey.question_type(99)
        with self.assertRaises(UnknownMatrixGroupError):
            self.survey.group(7)

    def test_consolidate_is_idempotent(self):
        self.assertEqual(consolidate(self.survey), self.survey)

    def test_json_round_trip(self):
        restored = SurveyData.from_json(self.survey.to_json())
        self.assertEqual(restored, self.survey)

        edited = save_matrix_group_score_map(self.survey, 0, {"보통": OTHER})
        self.assertEqual(SurveyData.from_json(edited.to_json()), edited)


class TypeChangeTest(unittest.TestCase):
    def setUp(self):
        self.survey = sample_survey()

    def test_same_type_is_a_no_op(self):
        self.assertIs(change_column_type(self.survey, MULTIPLE_COL, "multiple"), self.survey)

    def test_matrix_target_requires_membership(self):
        with self.assertRaises(InvalidTypeChangeError):
            change_column_type(self.survey, LIKERT_COL, "matrix")

    def test_unknown_type_rejected(self):
        with self.assertRaises(InvalidTypeChangeError):
            change_column_type(self.survey, LIKERT_COL, "ranking")

    def test_detach_member_keeps_group_of_two(self):
        s = change_column_type(self.survey, 2, "multiple")
        self.assertEqual(s.question_type(2).type, "multiple")
        self.assertIsNone(s.question_type(2).matrix_group_id)
        self.assertEqual(s.group(0).member_indices, (1, 3))
        # Input survey is left untouched.
        self.assertEqual(self.survey.group(0).member_indices, MATRIX_COLS)

    def test_group_dissolves_below_two_members(self):
        s = change_matrix_member_type(self.survey, 0, 2, "open")
        s = change_matrix_member_type(s, 0, 1, "open")
        self.assertEqual(s.matrix_groups, ())
        survivor = s.question_type(3)
        self.assertEqual(survivor.type, "likert")
        self.assertIsNone(survivor.matrix_group_id)
        self.assertIsNone(survivor.common_prefix)
        for qt in s.question_types:
            self.assertNotEqual(qt.type, "matrix")

    def test_member_of_other_group_rejected(self):
        with self.assertRaises(UnknownColumnError):
            change_matrix_member_type(self.survey, 0, LIKERT_COL, "open")

    def test_group_type_change_dissolves_group(self):
        s = change_matrix_group_type(self.survey, 0, "likert")
        self.assertEqual(s.matrix_groups, ())
        for col in MATRIX_COLS:
            qt = s.question_type(col)
            self.assertEqual(qt.type, "likert")
            self.assertEqual(qt.options, self.survey.question_type(1).options)
            self.assertEqual(qt.score_map["매우 만족"], 5)
        self.assertEqual(s.rows, self.survey.rows)

    def test_promotion_rewrites_rows(self):
        s = change_column_type(self.survey, MULTIPLE_COL, "likert")
        qt = s.question_type(MULTIPLE_COL)
        self.assertEqual(qt.type, "likert")
        self.assertEqual(qt.options, REFERENCE_LABELS)
        for value in s.column_values(MULTIPLE_COL):
            self.assertIn(value, REFERENCE_LABELS)
        self.assertIn("남", self.survey.column_values(MULTIPLE_COL))

    def test_multi_select_to_multiple_uses_whole_cells(self):
        s = change_column_type(self.survey, MULTI_SELECT_COL, "multiple")
        self.assertEqual(s.question_type(MULTI_SELECT_COL).options[0], "A@@B")


class ScoreMapEditTest(unittest.TestCase):
    def setUp(self):
        self.survey = sample_survey()

    def test_save_score_map_reorders_options(self):
        s = save_score_map(self.survey, LIKERT_COL, {"보통": "other"})
        qt = s.question_type(LIKERT_COL)
        self.assertEqual(qt.options, ("매우 만족", "만족", "불만족", "매우 불만족", "보통"))
        self.assertEqual(qt.score_map["보통"], OTHER)
        self.assertIn("보통", qt.other_responses)

    def test_save_score_map_only_for_likert(self):
        with self.assertRaises(InvalidTypeChangeError):
            save_score_map(self.survey, MULTIPLE_COL, {"남": 5})
        with self.assertRaises(InvalidTypeChangeError):
            save_score_map(self.survey, 1, {"보통": 3})

    def test_bad_override_rejected(self):
        with self.assertRaises(ScoreMapError):
            save_score_map(self.survey, LIKERT_COL, {"보통": 9})

    def test_group_score_map_is_shared(self):
        s = save_matrix_group_score_map(self.survey, 0, {"보통": 1})
        group = s.group(0)
        expected = ("매우 만족", "만족", "불만족", "보통", "매우 불만족")
        self.assertEqual(group.options, expected)
        self.assertEqual(group.score_map["보통"], 1)
        for col in MATRIX_COLS:
            qt = s.question_type(col)
            self.assertEqual(qt.options, expected)
            self.assertEqual(qt.score_map, group.score_map)

    def test_group_score_map_builds_on_saved_mapping(self):
        s = save_matrix_group_score_map(self.survey, 0, {"보통": 1})
        s = save_matrix_group_score_map(s, 0, {"만족": OTHER})
        group = s.group(0)
        self.assertEqual(group.score_map["보통"], 1)
        self.assertEqual(group.score_map["만족"], OTHER)
        self.assertEqual(group.options[-1], "만족")

    def test_unknown_group_rejected(self):
        with self.assertRaises(UnknownMatrixGroupError):
            save_matrix_group_score_map(self.survey, 5, {"보통": 1})


if __name__ == "__main__":
    unittest.main()
