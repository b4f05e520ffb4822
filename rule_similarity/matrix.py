"""Pairwise similarity matrix construction."""

import logging
from collections.abc import Sequence

from .models import PairwiseSimilarity, Rule, SimilarityMatrix, ValidationError
from .scorer import SimilarityScorer

logger = logging.getLogger(__name__)


def validate_rules(rules: Sequence[Rule]) -> None:
    """Reject anything that is not a list of Rule objects with unique ids."""
    if not isinstance(rules, (list, tuple)):
        raise ValidationError(f"Rules must be a list, got {type(rules).__name__}")
    seen = set()
    for index, rule in enumerate(rules):
        if not isinstance(rule, Rule):
            raise ValidationError(
                f"Item {index} is not a Rule (got {type(rule).__name__}); normalize records first"
            )
        if rule.id in seen:
            raise ValidationError(f"Duplicate rule id: {rule.id!r}")
        seen.add(rule.id)


def build_matrix(rules: Sequence[Rule], scorer: SimilarityScorer | None = None) -> SimilarityMatrix:
    """Score every ordered pair of rules.

    The diagonal is fixed at 1.0. One PairwiseSimilarity is kept per unordered
    pair (i < j), in row-major generation order.
    """
    validate_rules(rules)
    scorer = scorer or SimilarityScorer()

    size = len(rules)
    matrix = [[0.0] * size for _ in range(size)]
    pairwise: list[PairwiseSimilarity] = []

    for i in range(size):
        matrix[i][i] = 1.0
        for j in range(size):
            if i == j:
                continue
            result = scorer.score(rules[i], rules[j])
            matrix[i][j] = result.score
            if i < j:
                pairwise.append(result)

    logger.debug("Scored %d rule pairs for %d rules", len(pairwise), size)
    return SimilarityMatrix(
        rule_ids=[r.id for r in rules],
        matrix=matrix,
        pairwise=pairwise,
    )
