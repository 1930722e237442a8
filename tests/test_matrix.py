import unittest

from survey_insight.app.config import ClassifierConfig
from survey_insight.classify.matrix import (
    MatrixGroupDetector,
    find_matrix_groups,
    longest_common_prefix,
    option_overlap,
    resolve_group_title,
)
from survey_insight.data.models import UNTITLED_GROUP
from survey_samples import MATRIX_STEM, QUESTIONS, ROWS


def _members(groups):
    return sorted(g.indices for g in groups.values())


class MatrixDetectionTest(unittest.TestCase):
    def test_service_matrix_detected(self):
        groups = find_matrix_groups(QUESTIONS, ROWS)
        self.assertEqual(len(groups), 1)
        group = groups[0]
        self.assertEqual(group.indices, (1, 2, 3))
        self.assertEqual(group.common_prefix, MATRIX_STEM)
        self.assertEqual(group.remainders(QUESTIONS), ["친절함", "신속성", "정확성"])

    def test_detection_without_rows_uses_text_only(self):
        groups = find_matrix_groups(QUESTIONS)
        self.assertEqual(_members(groups), [(1, 2, 3)])

    def test_short_stem_is_not_a_group(self):
        self.assertEqual(find_matrix_groups(["A 질문 - 하나", "A 질문 - 둘"]), {})

    def test_identical_texts_are_not_a_group(self):
        text = MATRIX_STEM + "친절함"
        self.assertEqual(find_matrix_groups([text, text]), {})

    def test_single_column_is_not_a_group(self):
        self.assertEqual(find_matrix_groups([MATRIX_STEM + "친절함"]), {})
        self.assertEqual(find_matrix_groups([]), {})

    def test_disjoint_answer_sets_block_grouping(self):
        questions = [MATRIX_STEM + "친절함", MATRIX_STEM + "신속성"]
        rows = [["a", "x"], ["b", "y"], ["c", "z"]]
        self.assertEqual(find_matrix_groups(questions, rows), {})
        self.assertEqual(_members(find_matrix_groups(questions)), [(0, 1)])

    def test_largest_window_wins(self):
        questions = [MATRIX_STEM + s for s in ("가", "나", "다", "라")]
        self.assertEqual(_members(find_matrix_groups(questions)), [(0, 1, 2, 3)])

    def test_groups_never_overlap(self):
        other_stem = "다음 항목의 중요도를 선택해주세요: "
        questions = (
            [MATRIX_STEM + s for s in ("가", "나", "다")]
            + ["성별"]
            + [other_stem + s for s in ("가격", "품질")]
        )
        groups = find_matrix_groups(questions)
        self.assertEqual(_members(groups), [(0, 1, 2), (4, 5)])
        seen = set()
        for group in groups.values():
            self.assertFalse(seen & set(group.indices))
            seen |= set(group.indices)
        self.assertEqual(sorted(groups), [0, 1])

    def test_wide_surveys_are_scanned_in_blocks(self):
        config = ClassifierConfig(max_matrix_columns=3)
        questions = [MATRIX_STEM + s for s in ("가", "나", "다", "라", "마", "바")]
        groups = MatrixGroupDetector(config).detect(questions)
        self.assertEqual(_members(groups), [(0, 1, 2), (3, 4, 5)])


class MatrixHelpersTest(unittest.TestCase):
    def test_longest_common_prefix(self):
        self.assertEqual(longest_common_prefix(["abc", "abd"]), "ab")
        self.assertEqual(longest_common_prefix(["abc"]), "abc")
        self.assertEqual(longest_common_prefix([]), "")

    def test_option_overlap(self):
        self.assertEqual(option_overlap({"a", "b"}, {"a", "b"}), 1.0)
        self.assertAlmostEqual(option_overlap({"a", "b"}, {"a", "b", "c"}), 2 / 3)
        self.assertEqual(option_overlap(set(), set()), 1.0)
        self.assertEqual(option_overlap({"a"}, set()), 0.0)


class GroupTitleTest(unittest.TestCase):
    def test_stored_prefix_first(self):
        texts = [MATRIX_STEM + "친절함", MATRIX_STEM + "신속성"]
        self.assertEqual(resolve_group_title(texts, MATRIX_STEM), "서비스에 대해 평가해주세요 -")

    def test_identical_first_lines(self):
        texts = ["만족도 조사\n친절함", "만족도 조사\n신속성"]
        self.assertEqual(resolve_group_title(texts), "만족도 조사")

    def test_character_prefix(self):
        texts = ["고객 서비스 전반에 대한 A", "고객 서비스 전반에 대한 B"]
        self.assertEqual(resolve_group_title(texts), "고객 서비스 전반에 대한")

    def test_placeholder_when_nothing_fits(self):
        self.assertEqual(resolve_group_title(["a", "b"]), UNTITLED_GROUP)
        self.assertEqual(resolve_group_title([None, None]), UNTITLED_GROUP)


if __name__ == "__main__":
    unittest.main()
