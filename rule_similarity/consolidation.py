"""Consolidation tiers, savings estimates and recommendations."""

from collections.abc import Sequence

from .config import SavingsConfig, SimilarityProfile, TierConfig
from .models import (
    TIER_HIGH,
    TIER_LOW,
    TIER_MEDIUM,
    Cluster,
    ConsolidationCounts,
    PairwiseSimilarity,
    Rule,
)

RECOMMENDATION_TEMPLATES = {
    TIER_HIGH: (
        "High similarity detected. Consider consolidating {a} and {b} "
        "into a single rule with combined logic."
    ),
    TIER_MEDIUM: (
        "Medium similarity detected. Review {a} and {b} "
        "for potential optimization opportunities."
    ),
    TIER_LOW: "Low similarity. Rules {a} and {b} appear to serve different purposes.",
}


def classify_tier(score: float, overlap_count: int, tiers: dict[str, TierConfig]) -> str:
    """Classify a pair by composite score and number of overlap areas."""
    high = tiers[TIER_HIGH]
    if score >= high.min_score and overlap_count >= high.min_overlap_areas:
        return TIER_HIGH
    medium = tiers[TIER_MEDIUM]
    if score >= medium.min_score and overlap_count >= medium.min_overlap_areas:
        return TIER_MEDIUM
    return TIER_LOW


def recommendation_text(tier: str, rule_a: Rule, rule_b: Rule) -> str:
    """Describe what to do with a pair of rules in the given tier."""
    return RECOMMENDATION_TEMPLATES[tier].format(a=rule_a.name, b=rule_b.name)


def estimate_savings(member_count: int, savings: SavingsConfig) -> float:
    """Estimated savings of merging ``member_count`` rules into one.

    Each rule beyond the first saves ``per_consolidated_rule`` and every member
    saves ``maintenance_per_rule``. A single rule consolidates nothing.
    """
    if member_count < 2:
        return 0
    return (
        savings.per_consolidated_rule * (member_count - 1)
        + savings.maintenance_per_rule * member_count
    )


def estimate_cluster_savings(cluster: Cluster, savings: SavingsConfig) -> float:
    if cluster.standalone:
        return 0
    return estimate_savings(cluster.size, savings)


def count_tiers(pairwise: Sequence[PairwiseSimilarity]) -> ConsolidationCounts:
    """Count pairs per consolidation tier."""
    counts = {TIER_HIGH: 0, TIER_MEDIUM: 0, TIER_LOW: 0}
    for pair in pairwise:
        counts[pair.consolidation_tier] += 1
    return ConsolidationCounts(**counts)


def mean_score(pairwise: Sequence[PairwiseSimilarity]) -> float:
    if not pairwise:
        return 0.0
    return sum(p.score for p in pairwise) / len(pairwise)


def format_currency(amount: float) -> str:
    return f"${amount:,.0f}"


def generate_recommendations(
    clusters: Sequence[Cluster],
    pairwise: Sequence[PairwiseSimilarity],
    profile: SimilarityProfile,
) -> list[str]:
    """Build the recommendation list for an analysis."""
    recommendations = []

    high_pairs = sum(1 for p in pairwise if p.consolidation_tier == TIER_HIGH)
    if high_pairs:
        recommendations.append(
            f"Prioritize consolidation of {high_pairs} high-similarity rule pairs"
        )

    for cluster in clusters:
        if cluster.size > 1:
            recommendations.append(
                f"Consider consolidating {cluster.name} ({cluster.size} rules) "
                f"for estimated {format_currency(cluster.estimated_savings)} savings"
            )

    if pairwise and mean_score(pairwise) > profile.recommendations.high_average_similarity:
        recommendations.append(
            "Overall rule similarity is high - consider comprehensive rule consolidation review"
        )

    return recommendations
