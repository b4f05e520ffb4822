"""End-to-end similarity and consolidation analysis."""

import dataclasses
import hashlib
import json
import logging
from collections.abc import Sequence
from typing import Any

from .cache import ResultCache
from .clustering import build_clusters
from .config import SimilarityProfile
from .consolidation import count_tiers, generate_recommendations
from .ingest import normalize_rules
from .matrix import build_matrix, validate_rules
from .models import AnalysisResult, Rule
from .scorer import SimilarityScorer

logger = logging.getLogger(__name__)


class SimilarityAnalyzer:
    """Runs scoring, clustering and consolidation estimates over a rule set."""

    def __init__(
        self,
        profile: SimilarityProfile | None = None,
        scorer: SimilarityScorer | None = None,
        cache: ResultCache | None = None,
    ) -> None:
        if scorer is None:
            scorer = SimilarityScorer(profile)
        elif profile is not None and profile is not scorer.profile:
            raise ValueError("Pass either a profile or a scorer built from it, not both")
        self._scorer = scorer
        self._cache = cache

    @property
    def profile(self) -> SimilarityProfile:
        return self._scorer.profile

    @property
    def scorer(self) -> SimilarityScorer:
        return self._scorer

    def analyze(self, rules: Sequence[Rule]) -> AnalysisResult:
        """Analyze a list of normalized rules."""
        validate_rules(rules)

        key = None
        if self._cache is not None:
            key = self.cache_key(rules)
            if self._cache.is_valid(key):
                logger.debug("Serving analysis of %d rules from cache", len(rules))
                return self._cache.get(key)

        result = self._run(rules)
        if self._cache is not None:
            self._cache.set(key, result)
        return result

    def analyze_records(self, records: Any) -> AnalysisResult:
        """Normalize raw rule records, then analyze them."""
        return self.analyze(normalize_rules(records))

    def cache_key(self, rules: Sequence[Rule]) -> str:
        """Fingerprint of the rule set and the profile it is scored with."""
        payload = {
            "rules": [dataclasses.asdict(r) for r in rules],
            "profile": dataclasses.asdict(self.profile),
            "dimensions": self._scorer.dimension_ids,
        }
        encoded = json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
        return "analysis:" + hashlib.sha256(encoded).hexdigest()

    def _run(self, rules: Sequence[Rule]) -> AnalysisResult:
        logger.info("Analyzing similarity for %d rules", len(rules))
        profile = self.profile

        matrix = build_matrix(rules, self._scorer)
        clusters = build_clusters(rules, matrix.pairwise, profile)
        counts = count_tiers(matrix.pairwise)

        result = AnalysisResult(
            rule_ids=matrix.rule_ids,
            similarity_matrix=matrix.matrix,
            clusters=clusters,
            consolidation_counts=counts,
            estimated_total_savings=sum(c.estimated_savings for c in clusters),
            recommendations=generate_recommendations(clusters, matrix.pairwise, profile),
            pairwise=matrix.pairwise,
        )
        logger.info(
            "Analysis complete: %d clusters, %d high / %d medium / %d low pairs",
            len(clusters), counts.high, counts.medium, counts.low,
        )
        return result


def analyze(rules: Sequence[Rule], profile: SimilarityProfile | None = None) -> AnalysisResult:
    """Analyze rules with a one-off analyzer."""
    return SimilarityAnalyzer(profile=profile).analyze(rules)
