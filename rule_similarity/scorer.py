"""Pairwise similarity scoring."""

import logging
from collections.abc import Collection
from pathlib import Path
from typing import Self

from .config import SimilarityProfile, load_default_profile, load_profile
from .consolidation import classify_tier, recommendation_text
from .models import PairwiseSimilarity, Rule
from .plugin import DimensionFunc, load_plugin

logger = logging.getLogger(__name__)


def jaccard_overlap(
    a: Collection[str],
    b: Collection[str],
    empty_both: float = 0.5,
    empty_one: float = 0.1,
) -> float:
    """Intersection over union of two collections, with fixed scores for empty input."""
    set_a, set_b = set(a), set(b)
    if not set_a and not set_b:
        return empty_both
    if not set_a or not set_b:
        return empty_one
    return len(set_a & set_b) / len(set_a | set_b)


def _common(a: tuple[str, ...], b: tuple[str, ...]) -> tuple[str, ...]:
    """Elements of ``a`` also in ``b``, in ``a``'s order."""
    set_b = set(b)
    return tuple(x for x in a if x in set_b)


class SimilarityScorer:
    """Scores rule pairs against a weighted profile of dimensions and plugins."""

    def __init__(self, profile: SimilarityProfile | None = None) -> None:
        self._profile = profile or load_default_profile()
        self._plugins: dict[str, tuple[DimensionFunc, float]] = {}
        self._load_configured_plugins()

    @classmethod
    def from_config(cls, path: str | Path) -> Self:
        """Create a scorer from a YAML profile."""
        profile = load_profile(path)
        return cls(profile=profile)

    @property
    def profile(self) -> SimilarityProfile:
        return self._profile

    @property
    def dimension_ids(self) -> list[str]:
        """Ids of every dimension contributing to the composite score."""
        return [d.id for d in self._profile.dimensions] + list(self._plugins)

    def register_dimension(self, dimension_id: str, func: DimensionFunc, weight: float) -> None:
        """Register an extra dimension callable programmatically."""
        if weight <= 0:
            raise ValueError(f"Dimension {dimension_id!r} must have a positive weight, got {weight}")
        if any(d.id == dimension_id for d in self._profile.dimensions):
            raise ValueError(f"Dimension id {dimension_id!r} is already used by the profile")
        self._plugins[dimension_id] = (func, weight)

    def score(self, rule_a: Rule, rule_b: Rule) -> PairwiseSimilarity:
        """Score a single rule pair."""
        edge = self._profile.edge_cases
        total = 0.0
        total_weight = 0.0
        dimension_scores: dict[str, float] = {}
        overlap_areas: list[str] = []

        for dim in self._profile.dimensions:
            values_a = rule_a.attribute(dim.attribute)
            values_b = rule_b.attribute(dim.attribute)
            sub_score = jaccard_overlap(values_a, values_b, edge.empty_both, edge.empty_one)
            dimension_scores[dim.id] = sub_score
            total += sub_score * dim.weight
            total_weight += dim.weight
            if dim.overlap_area and not set(values_a).isdisjoint(values_b):
                overlap_areas.append(dim.name)

        for plugin_id, (func, weight) in self._plugins.items():
            try:
                sub_score = func(rule_a, rule_b)
                if sub_score is None:
                    continue
                sub_score = self._clamp(float(sub_score))
            except Exception:
                logger.warning(
                    "Similarity plugin %r failed on %s/%s; skipping",
                    plugin_id, rule_a.id, rule_b.id, exc_info=True,
                )
                continue
            dimension_scores[plugin_id] = sub_score
            total += sub_score * weight
            total_weight += weight

        score = self._clamp(total / total_weight) if total_weight > 0 else 0.0
        tier = classify_tier(score, len(overlap_areas), self._profile.tiers)

        return PairwiseSimilarity(
            rule_id_a=rule_a.id,
            rule_id_b=rule_b.id,
            score=score,
            overlap_areas=tuple(overlap_areas),
            common_techniques=_common(rule_a.mitre_techniques, rule_b.mitre_techniques),
            common_threat_actors=_common(rule_a.threat_actors, rule_b.threat_actors),
            common_compliance=_common(rule_a.compliance_requirements, rule_b.compliance_requirements),
            consolidation_tier=tier,
            recommendation=recommendation_text(tier, rule_a, rule_b),
            dimension_scores=dimension_scores,
        )

    def _load_configured_plugins(self) -> None:
        """Load plugin dimensions declared in the profile."""
        for plugin_cfg in self._profile.plugins:
            try:
                func = load_plugin(plugin_cfg.callable)
            except (ImportError, AttributeError, TypeError, ValueError) as exc:
                raise ValueError(
                    f"Cannot load plugin {plugin_cfg.id!r} from {plugin_cfg.callable!r}: {exc}"
                ) from exc
            self._plugins[plugin_cfg.id] = (func, plugin_cfg.weight)

    @staticmethod
    def _clamp(value: float) -> float:
        """Clamp a score to [0, 1]."""
        return min(1.0, max(0.0, value))
