import unittest

from scout.errors import ConfigError
from scout.models import Engagement, RawItem
from scout.scoring import RelevanceScorer, RuleTable

HN_RULES = {
    "default_score": 20,
    "categories": [
        {
            "category": "high_intent",
            "weight": 92,
            "keyword_bonus": 2,
            "max_keyword_bonus": 8,
            "keywords": ["ai sdr", "apollo alternative", "looking for sdr"],
        },
        {
            "category": "problem_aware",
            "weight": 75,
            "keyword_bonus": 5,
            "max_keyword_bonus": 15,
            "keywords": ["founder-led sales", "scaling outbound", "lead generation", "b2b leads"],
        },
        {
            "category": "pain_point",
            "weight": 55,
            "keyword_bonus": 5,
            "max_keyword_bonus": 15,
            "keywords": ["sdr turnover", "cac too high", "not enough leads"],
        },
    ],
}


def _item(title, body="", likes=0, comments=0, tags=()):
    return RawItem(
        source_id="unit",
        external_id=None,
        title=title,
        body=body,
        url="https://example.com/post",
        engagement=Engagement(likes=likes, comments=comments),
        tags=tuple(tags),
    )


class RelevanceScorerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.scorer = RelevanceScorer(RuleTable.from_dict(HN_RULES))

    def test_first_matching_category_wins(self):
        scored = self.scorer.score(_item("Our SDR turnover is brutal, thinking about an AI SDR"))
        self.assertEqual(scored.category, "high_intent")
        self.assertEqual(scored.matched_keywords, ("ai sdr",))
        self.assertEqual(scored.score, 92)

    def test_unmatched_item_gets_default(self):
        scored = self.scorer.score(_item("Show HN: a tiny text editor"))
        self.assertEqual(scored.category, "general")
        self.assertEqual(scored.score, 20)
        self.assertEqual(scored.matched_keywords, ())

    def test_keyword_bonus_is_capped(self):
        scored = self.scorer.score(
            _item("Founder-led sales vs scaling outbound", "lead generation and b2b leads are hard")
        )
        self.assertEqual(scored.category, "problem_aware")
        self.assertEqual(scored.score, 90)
        self.assertEqual(len(scored.matched_keywords), 4)

    def test_adding_keywords_never_lowers_score(self):
        keywords = ["cac too high", "not enough leads", "b2b leads", "scaling outbound", "looking for sdr", "ai sdr"]
        text = "Weekly thread"
        previous = self.scorer.score(_item(text)).score
        for keyword in keywords:
            text = f"{text} {keyword}"
            current = self.scorer.score(_item(text)).score
            self.assertGreaterEqual(current, previous, f"score dropped after adding {keyword!r}")
            previous = current

    def test_higher_priority_match_never_scores_lower(self):
        lower = self.scorer.score(_item("not enough leads, cac too high, sdr turnover"))
        higher = self.scorer.score(_item("looking for sdr help"))
        self.assertEqual(lower.category, "pain_point")
        self.assertGreaterEqual(higher.score, lower.score)

    def test_score_is_clamped(self):
        scorer = RelevanceScorer(
            RuleTable.from_dict(
                {
                    "categories": [{"category": "competitor", "weight": 100, "keywords": ["apollo"]}],
                    "bonuses": [{"type": "keyword", "terms": ["pricing"], "points": 30}],
                }
            )
        )
        self.assertEqual(scorer.score(_item("Apollo pricing changes")).score, 100)


class BonusRuleTests(unittest.TestCase):
    def test_engagement_and_tag_bonuses(self):
        rules = RuleTable.from_dict(
            {
                "default_score": 0,
                "default_category": "general_tech",
                "categories": [{"category": "high_relevance", "weight": 100, "patterns": ["lead.*(generation|scoring)"]}],
                "bonuses": [
                    {"type": "engagement", "metric": "likes", "threshold": 50, "points": 10},
                    {"type": "engagement", "metric": "likes", "threshold": 200, "points": 20},
                    {"type": "engagement", "metric": "comments", "threshold": 10, "points": 10},
                    {"type": "tag", "tags": ["ai", "saas"], "points": 15},
                ],
            }
        )
        scorer = RelevanceScorer(rules)

        scored = scorer.score(_item("Notes on writing", likes=120, comments=10, tags=["AI", "writing"]))
        self.assertEqual(scored.category, "general_tech")
        # likes > 50 (+10), comments not strictly above 10, tag match (+15)
        self.assertEqual(scored.score, 25)

    def test_pattern_bonus_labels_are_recorded(self):
        rules = RuleTable.from_dict(
            {
                "default_score": 30,
                "bonuses": [
                    {"type": "pattern", "label": "funding", "points": 20, "patterns": ["raised|series [a-d]"]},
                    {"type": "pattern", "label": "launch", "points": 10, "patterns": ["launch"]},
                ],
            }
        )
        scored = RelevanceScorer(rules).score(_item("Startup raised Series B to launch agents"))
        self.assertEqual(scored.score, 60)
        self.assertEqual(scored.matched_keywords, ("funding", "launch"))

    def test_per_match_bonus(self):
        rules = RuleTable.from_dict(
            {
                "default_score": 0,
                "bonuses": [
                    {"type": "pattern", "label": "quality", "points": 5, "per_match": True, "patterns": ["insight", "strategy"]}
                ],
            }
        )
        self.assertEqual(RelevanceScorer(rules).score(_item("An insight into strategy")).score, 10)

    def test_high_value_patterns(self):
        rules = RuleTable.from_dict(
            {
                "default_score": 0,
                "high_value_bonus": 40,
                "categories": [{"category": "competitor", "weight": 60, "keywords": ["lemlist"]}],
                "high_value_patterns": ["alternatives? (to|for)"],
            }
        )
        scorer = RelevanceScorer(rules)
        plain = scorer.score(_item("Lemlist ships a new editor"))
        valuable = scorer.score(_item("Looking for an alternative to Lemlist"))
        self.assertFalse(plain.is_high_value)
        self.assertEqual(plain.score, 60)
        self.assertTrue(valuable.is_high_value)
        self.assertEqual(valuable.score, 100)


class NoiseFilterTests(unittest.TestCase):
    def setUp(self) -> None:
        self.scorer = RelevanceScorer(
            RuleTable.from_dict(
                {
                    "min_length": 50,
                    "exclude_patterns": ["just (earned|received).*(certification|badge)", "coursera|udemy"],
                }
            )
        )

    def test_short_posts_are_noise(self):
        self.assertTrue(self.scorer.is_noise(_item("t", "Great post!")))

    def test_excluded_patterns_are_noise(self):
        body = "I just earned my certification in cloud architecture and could not be happier about it"
        self.assertTrue(self.scorer.is_noise(_item("Post", body)))

    def test_regular_post_is_not_noise(self):
        body = "We rebuilt our outbound process from scratch this quarter and here is what we learned"
        self.assertFalse(self.scorer.is_noise(_item("Post", body)))


class RuleTableValidationTests(unittest.TestCase):
    def test_rejects_higher_category_that_can_score_below_lower(self):
        with self.assertRaises(ConfigError):
            RuleTable.from_dict(
                {
                    "categories": [
                        {"category": "high_intent", "weight": 80, "keywords": ["a"]},
                        {"category": "problem_aware", "weight": 70, "keyword_bonus": 5, "max_keyword_bonus": 20, "keywords": ["b"]},
                    ]
                }
            )

    def test_rejects_default_above_lowest_weight(self):
        with self.assertRaises(ConfigError):
            RuleTable.from_dict({"default_score": 50, "categories": [{"category": "x", "weight": 40, "keywords": ["a"]}]})

    def test_rejects_negative_bonus(self):
        with self.assertRaises(ConfigError):
            RuleTable.from_dict({"bonuses": [{"type": "keyword", "terms": ["a"], "points": -5}]})

    def test_rejects_invalid_regex(self):
        with self.assertRaises(ConfigError):
            RuleTable.from_dict({"high_value_patterns": ["(unclosed"]})

    def test_rejects_unknown_metric(self):
        with self.assertRaises(ConfigError):
            RuleTable.from_dict({"bonuses": [{"type": "engagement", "metric": "views", "points": 5}]})


if __name__ == "__main__":
    unittest.main()
