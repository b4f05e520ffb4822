"""Summary statistics for pairwise similarity scores."""

import statistics

from .consolidation import count_tiers
from .models import PairwiseSimilarity, SimilarityStats

HISTOGRAM_BUCKETS = ["0.0-0.2", "0.2-0.4", "0.4-0.6", "0.6-0.8", "0.8-1.0"]


def summarize(pairwise: list[PairwiseSimilarity]) -> SimilarityStats:
    """Compute aggregate statistics over a list of scored pairs."""
    if not pairwise:
        return SimilarityStats(
            total_pairs=0,
            mean_score=0.0,
            median_score=0.0,
            min_score=0.0,
            max_score=0.0,
            score_histogram={b: 0 for b in HISTOGRAM_BUCKETS},
            tier_counts=count_tiers([]).to_dict(),
        )

    scores = [p.score for p in pairwise]

    return SimilarityStats(
        total_pairs=len(pairwise),
        mean_score=round(statistics.mean(scores), 3),
        median_score=round(statistics.median(scores), 3),
        min_score=min(scores),
        max_score=max(scores),
        score_histogram=_build_histogram(scores),
        tier_counts=count_tiers(pairwise).to_dict(),
    )


def _build_histogram(values: list[float]) -> dict[str, int]:
    """Bucket scores into a histogram; each bucket includes its upper bound."""
    buckets = {b: 0 for b in HISTOGRAM_BUCKETS}
    for v in values:
        if v <= 0.2:
            buckets["0.0-0.2"] += 1
        elif v <= 0.4:
            buckets["0.2-0.4"] += 1
        elif v <= 0.6:
            buckets["0.4-0.6"] += 1
        elif v <= 0.8:
            buckets["0.6-0.8"] += 1
        else:
            buckets["0.8-1.0"] += 1
    return buckets
