import unittest

from survey_insight.classify.likert_scales import LIKERT_SCALES, REFERENCE_LABELS, get_scale, match_scale
from survey_insight.classify.similarity import nearest_label, similarity


class LikertCatalogTest(unittest.TestCase):
    def test_catalog_entries_are_five_point_descending(self):
        self.assertEqual(len(LIKERT_SCALES), 8)
        for scale in LIKERT_SCALES:
            self.assertEqual(len(scale.responses), 5)
            self.assertEqual(scale.scores, (5, 4, 3, 2, 1))

    def test_match_satisfaction_scale(self):
        scale = match_scale(["매우 만족", "만족", "보통", "불만족"])
        self.assertIsNotNone(scale)
        self.assertEqual(scale.id, "satisfaction_5")
        self.assertEqual(scale.score_of("불만족"), 2)
        self.assertIsNone(scale.score_of("모름"))

    def test_extra_options_do_not_disqualify(self):
        scale = match_scale(["매우 만족", "만족", "보통", "모름", "해당 없음"])
        self.assertEqual(scale.id, "satisfaction_5")

    def test_below_threshold_is_no_match(self):
        self.assertIsNone(match_scale(["매우 만족", "만족"]))
        self.assertIsNone(match_scale([]))

    def test_catalog_order_breaks_ties(self):
        # Both agreement_5 and agreement_5_v2 reach 3/5; the earlier entry wins.
        scale = match_scale(["매우 그렇다", "그렇다", "보통이다", "보통"])
        self.assertEqual(scale.id, "agreement_5")

        scale = match_scale(["매우 그렇다", "그렇다", "보통"])
        self.assertEqual(scale.id, "agreement_5_v2")

    def test_get_scale(self):
        self.assertEqual(get_scale("fun_5_v2").responses[0], "매우 재미있음")
        self.assertIsNone(get_scale(None))
        self.assertIsNone(get_scale("missing"))


class SimilarityTest(unittest.TestCase):
    def test_similarity_bounds(self):
        self.assertEqual(similarity("abc", "abc"), 1.0)
        self.assertEqual(similarity("", ""), 1.0)
        self.assertEqual(similarity("abc", ""), 0.0)
        self.assertAlmostEqual(similarity("kitten", "sitting"), 1 - 3 / 7)

    def test_similarity_is_case_and_whitespace_insensitive(self):
        self.assertEqual(similarity("  ABC ", "abc"), 1.0)
        self.assertEqual(similarity("매우   그렇다", "매우 그렇다"), 1.0)

    def test_nearest_label(self):
        self.assertEqual(nearest_label("그렇다요", REFERENCE_LABELS), "그렇다")
        self.assertEqual(nearest_label("매우그렇다", REFERENCE_LABELS), "매우 그렇다")

    def test_nearest_label_earliest_wins_ties(self):
        self.assertEqual(nearest_label("x", ["a", "b"]), "a")
        self.assertIsNone(nearest_label("x", []))


if __name__ == "__main__":
    unittest.main()
