"""Tests for pairwise summary statistics."""

from rule_similarity.models import PairwiseSimilarity
from rule_similarity.stats import HISTOGRAM_BUCKETS, summarize


def pair(score, tier="low"):
    return PairwiseSimilarity(rule_id_a="a", rule_id_b="b", score=score, consolidation_tier=tier)


class TestSummarize:
    def test_empty(self):
        stats = summarize([])
        assert stats.total_pairs == 0
        assert stats.mean_score == 0.0
        assert stats.score_histogram == {b: 0 for b in HISTOGRAM_BUCKETS}
        assert stats.tier_counts == {"high": 0, "medium": 0, "low": 0}

    def test_values(self):
        stats = summarize([pair(0.1), pair(0.5), pair(0.9, "high")])
        assert stats.total_pairs == 3
        assert stats.mean_score == 0.5
        assert stats.median_score == 0.5
        assert stats.min_score == 0.1
        assert stats.max_score == 0.9
        assert stats.tier_counts == {"high": 1, "medium": 0, "low": 2}

    def test_histogram_upper_bounds_inclusive(self):
        stats = summarize([pair(0.2), pair(0.4), pair(0.6), pair(0.8), pair(1.0), pair(0.0)])
        assert stats.score_histogram == {
            "0.0-0.2": 2,
            "0.2-0.4": 1,
            "0.4-0.6": 1,
            "0.6-0.8": 1,
            "0.8-1.0": 1,
        }
