"""Tests for pairwise matrix construction."""

import pytest

from rule_similarity import Rule, SimilarityScorer, ValidationError, build_matrix


@pytest.fixture
def rules():
    return [
        Rule(id="A", name="A", mitre_techniques=("T1486",), threat_actors=("LockBit",)),
        Rule(id="B", name="B", mitre_techniques=("T1486",), threat_actors=("LockBit",)),
        Rule(id="C", name="C", mitre_techniques=("T1590",), data_sources=("Firewall",)),
        Rule(id="D", name="D"),
    ]


class TestBuildMatrix:
    def test_shape_and_ids(self, rules):
        sm = build_matrix(rules)
        assert sm.rule_ids == ["A", "B", "C", "D"]
        assert len(sm.matrix) == 4
        assert all(len(row) == 4 for row in sm.matrix)

    def test_diagonal_is_one(self, rules):
        sm = build_matrix(rules)
        for i in range(len(rules)):
            assert sm.matrix[i][i] == 1.0

    def test_symmetric(self, rules):
        sm = build_matrix(rules)
        for i in range(len(rules)):
            for j in range(len(rules)):
                assert sm.matrix[i][j] == sm.matrix[j][i]

    def test_bounds(self, rules):
        sm = build_matrix(rules)
        assert all(0.0 <= v <= 1.0 for row in sm.matrix for v in row)

    def test_one_pair_per_unordered_pair(self, rules):
        sm = build_matrix(rules)
        assert [(p.rule_id_a, p.rule_id_b) for p in sm.pairwise] == [
            ("A", "B"), ("A", "C"), ("A", "D"),
            ("B", "C"), ("B", "D"),
            ("C", "D"),
        ]

    def test_matrix_matches_pairwise(self, rules):
        sm = build_matrix(rules)
        for pair in sm.pairwise:
            assert sm.get(pair.rule_id_a, pair.rule_id_b) == pair.score

    def test_custom_scorer(self, rules):
        scorer = SimilarityScorer()
        scorer.register_dimension("flat", lambda a, b: 0.0, weight=1000.0)
        sm = build_matrix(rules, scorer)
        assert sm.matrix[0][1] < 0.01

    def test_deterministic(self, rules):
        assert build_matrix(rules) == build_matrix(rules)

    def test_empty(self):
        sm = build_matrix([])
        assert sm.rule_ids == []
        assert sm.matrix == []
        assert sm.pairwise == []

    def test_single_rule(self):
        sm = build_matrix([Rule(id="A", name="A")])
        assert sm.matrix == [[1.0]]
        assert sm.pairwise == []


class TestValidation:
    @pytest.mark.parametrize("rules", [None, "A,B", {"id": "A"}, 7])
    def test_non_list_rejected(self, rules):
        with pytest.raises(ValidationError, match="must be a list"):
            build_matrix(rules)

    def test_raw_record_rejected(self):
        with pytest.raises(ValidationError, match="not a Rule"):
            build_matrix([Rule(id="A", name="A"), {"id": "B"}])

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValidationError, match="Duplicate rule id"):
            build_matrix([Rule(id="A", name="A"), Rule(id="A", name="Again")])
