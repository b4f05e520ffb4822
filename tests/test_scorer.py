"""Tests for the SimilarityScorer class."""

import itertools
import logging
from pathlib import Path

import pytest

from rule_similarity import PairwiseSimilarity, Rule, SimilarityScorer
from rule_similarity.config import PluginConfig, SimilarityProfile
from rule_similarity.scorer import jaccard_overlap

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def scorer():
    return SimilarityScorer()


@pytest.fixture
def lockbit_rule():
    return Rule(
        id="R1",
        name="Ransomware Encryption",
        mitre_techniques=("T1486", "T1489"),
        threat_actors=("LockBit",),
    )


@pytest.fixture
def lockbit_twin():
    return Rule(
        id="R2",
        name="Service Stop Before Encryption",
        mitre_techniques=("T1486", "T1489"),
        threat_actors=("LockBit",),
    )


@pytest.fixture
def recon_rule():
    return Rule(id="R3", name="Victim Network Recon", mitre_techniques=("T1590",))


@pytest.fixture
def payment_rule():
    return Rule(
        id="P1",
        name="Payment Card Data Theft",
        mitre_techniques=("T1056", "T1071"),
        threat_actors=("FIN7", "Lazarus Group"),
        compliance_requirements=("PCI DSS", "SOX"),
        query_fields=("Image", "CommandLine"),
        data_sources=("Windows Event Logs", "Sysmon"),
    )


class TestJaccardOverlap:
    def test_both_empty_is_neutral(self):
        assert jaccard_overlap((), ()) == 0.5

    def test_one_empty_is_low(self):
        assert jaccard_overlap(("T1486",), ()) == 0.1
        assert jaccard_overlap((), ("T1486",)) == 0.1

    def test_ratio(self):
        assert jaccard_overlap(("a", "b", "c"), ("b", "c", "d")) == pytest.approx(0.5)

    def test_disjoint(self):
        assert jaccard_overlap(("a",), ("b",)) == 0.0

    def test_custom_edge_scores(self):
        assert jaccard_overlap((), (), empty_both=0.3, empty_one=0.0) == 0.3
        assert jaccard_overlap(("a",), (), empty_both=0.3, empty_one=0.0) == 0.0


class TestSimilarityScorer:
    def test_returns_pairwise_similarity(self, scorer, lockbit_rule, lockbit_twin):
        result = scorer.score(lockbit_rule, lockbit_twin)
        assert isinstance(result, PairwiseSimilarity)
        assert result.rule_id_a == "R1"
        assert result.rule_id_b == "R2"

    def test_shared_techniques_and_actors(self, scorer, lockbit_rule, lockbit_twin):
        result = scorer.score(lockbit_rule, lockbit_twin)
        # 0.30*1 + 0.25*1 + 0.20*0.5 + 0.15*0.5 + 0.10*0.5
        assert result.score == pytest.approx(0.775)
        assert result.overlap_areas == ("MITRE Techniques", "Threat Actors")
        assert result.common_techniques == ("T1486", "T1489")
        assert result.common_threat_actors == ("LockBit",)
        assert result.common_compliance == ()
        assert result.consolidation_tier == "medium"

    def test_dimension_scores_recorded(self, scorer, lockbit_rule, recon_rule):
        result = scorer.score(lockbit_rule, recon_rule)
        assert result.dimension_scores == {
            "mitre_techniques": 0.0,
            "threat_actors": 0.1,
            "compliance_requirements": 0.5,
            "query_fields": 0.5,
            "data_sources": 0.5,
        }
        assert result.score == pytest.approx(0.25)
        assert result.overlap_areas == ()
        assert result.consolidation_tier == "low"

    def test_identical_rules_score_one(self, scorer, payment_rule):
        twin = Rule(
            id="P2",
            name="Card Skimming",
            mitre_techniques=payment_rule.mitre_techniques,
            threat_actors=payment_rule.threat_actors,
            compliance_requirements=payment_rule.compliance_requirements,
            query_fields=payment_rule.query_fields,
            data_sources=payment_rule.data_sources,
        )
        result = scorer.score(payment_rule, twin)
        assert result.score == pytest.approx(1.0)
        assert len(result.overlap_areas) == 4
        assert result.consolidation_tier == "high"

    def test_high_tier_without_query_overlap(self, scorer, payment_rule):
        twin = Rule(
            id="P2",
            name="Card Skimming",
            mitre_techniques=payment_rule.mitre_techniques,
            threat_actors=payment_rule.threat_actors,
            compliance_requirements=payment_rule.compliance_requirements,
            query_fields=("DestinationPort",),
            data_sources=payment_rule.data_sources,
        )
        result = scorer.score(payment_rule, twin)
        assert result.dimension_scores["query_fields"] == 0.0
        assert result.score >= 0.8
        assert result.overlap_areas == (
            "MITRE Techniques",
            "Threat Actors",
            "Compliance Requirements",
            "Data Sources",
        )
        assert result.consolidation_tier == "high"

    def test_query_fields_never_an_overlap_area(self, scorer):
        a = Rule(id="a", name="A", query_fields=("Image",))
        b = Rule(id="b", name="B", query_fields=("Image",))
        assert scorer.score(a, b).overlap_areas == ()

    def test_recommendation_names_both_rules(self, scorer, lockbit_rule, lockbit_twin):
        result = scorer.score(lockbit_rule, lockbit_twin)
        assert "Ransomware Encryption" in result.recommendation
        assert "Service Stop Before Encryption" in result.recommendation
        assert result.recommendation.startswith("Medium similarity")

    def test_symmetry_and_bounds(self, scorer, lockbit_rule, lockbit_twin, recon_rule, payment_rule):
        rules = [lockbit_rule, lockbit_twin, recon_rule, payment_rule, Rule(id="E", name="Empty")]
        for a, b in itertools.combinations(rules, 2):
            forward = scorer.score(a, b).score
            backward = scorer.score(b, a).score
            assert forward == backward
            assert 0.0 <= forward <= 1.0

    def test_empty_rules_are_neutral(self, scorer):
        result = scorer.score(Rule(id="a", name="A"), Rule(id="b", name="B"))
        assert result.score == pytest.approx(0.5)
        assert result.consolidation_tier == "low"


class TestScorerPlugins:
    def test_register_dimension(self, scorer, lockbit_rule, lockbit_twin):
        scorer.register_dimension("always_same", lambda a, b: 1.0, weight=1.0)
        result = scorer.score(lockbit_rule, lockbit_twin)
        assert result.dimension_scores["always_same"] == 1.0
        assert result.score == pytest.approx((0.775 + 1.0) / 2)
        assert "always_same" in scorer.dimension_ids

    def test_plugin_returning_none_is_skipped(self, scorer, lockbit_rule, lockbit_twin):
        scorer.register_dimension("noop", lambda a, b: None, weight=5.0)
        result = scorer.score(lockbit_rule, lockbit_twin)
        assert "noop" not in result.dimension_scores
        assert result.score == pytest.approx(0.775)

    def test_plugin_exception_logged_and_skipped(self, scorer, lockbit_rule, lockbit_twin, caplog):
        def broken(a, b):
            raise RuntimeError("broken")

        scorer.register_dimension("broken", broken, weight=1.0)
        with caplog.at_level(logging.WARNING, logger="rule_similarity.scorer"):
            result = scorer.score(lockbit_rule, lockbit_twin)
        assert result.score == pytest.approx(0.775)
        assert "broken" not in result.dimension_scores
        assert "Similarity plugin 'broken' failed" in caplog.text

    def test_plugin_value_clamped(self, scorer, lockbit_rule, lockbit_twin):
        scorer.register_dimension("too_big", lambda a, b: 7.0, weight=1.0)
        result = scorer.score(lockbit_rule, lockbit_twin)
        assert result.dimension_scores["too_big"] == 1.0
        assert result.score <= 1.0

    def test_non_numeric_plugin_value_skipped(self, scorer, lockbit_rule, lockbit_twin, caplog):
        scorer.register_dimension("label", lambda a, b: "n/a", weight=1.0)
        with caplog.at_level(logging.WARNING, logger="rule_similarity.scorer"):
            result = scorer.score(lockbit_rule, lockbit_twin)
        assert result.score == pytest.approx(0.775)
        assert "label" not in result.dimension_scores
        assert "Similarity plugin 'label' failed" in caplog.text

    def test_register_rejects_bad_weight(self, scorer):
        with pytest.raises(ValueError, match="positive weight"):
            scorer.register_dimension("x", lambda a, b: 1.0, weight=0)

    def test_register_rejects_profile_id(self, scorer):
        with pytest.raises(ValueError, match="already used"):
            scorer.register_dimension("mitre_techniques", lambda a, b: 1.0, weight=1.0)


class TestCustomProfile:
    def test_from_config(self):
        scorer = SimilarityScorer.from_config(FIXTURES_DIR / "test_profile.yaml")
        a = Rule(id="r1", name="Encrypted Files Burst", mitre_techniques=("T1486", "T1489"))
        b = Rule(id="r2", name="Service Stop Before Encryption", mitre_techniques=("T1486", "T1489"))
        result = scorer.score(a, b)
        # techniques 0.6*1, sources both empty 0.2*0.4, title words 0.2*0
        assert result.score == pytest.approx(0.68)
        assert result.dimension_scores["name_similarity"] == 0.0
        assert result.overlap_areas == ("MITRE Techniques",)
        assert result.consolidation_tier == "medium"

    @pytest.mark.parametrize("path", [
        "nonexistent_module.mod:fn",
        "rule_similarity.plugin:no_such_function",
        "rule_similarity.plugin:NAME_STOPWORDS",
        "nodots",
    ])
    def test_unloadable_plugin_rejected(self, path):
        profile = SimilarityProfile(
            plugins=[PluginConfig(id="extra", name="Extra", weight=0.1, callable=path)]
        )
        with pytest.raises(ValueError, match="Cannot load plugin 'extra'"):
            SimilarityScorer(profile)
