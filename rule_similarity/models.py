"""Data models for rule-similarity."""

from dataclasses import dataclass, field

TIER_HIGH = "high"
TIER_MEDIUM = "medium"
TIER_LOW = "low"
TIERS = (TIER_HIGH, TIER_MEDIUM, TIER_LOW)

# Attribute collections carried by every Rule, in scoring order.
RULE_ATTRIBUTES = (
    "mitre_techniques",
    "threat_actors",
    "compliance_requirements",
    "query_fields",
    "data_sources",
)


class ValidationError(ValueError):
    """Raised when a rule collection or record is malformed."""


@dataclass(frozen=True)
class Rule:
    """A normalized detection rule.

    Attribute collections are de-duplicated tuples in first-seen order;
    comparisons treat them as sets.
    """

    id: str
    name: str
    mitre_techniques: tuple[str, ...] = ()
    threat_actors: tuple[str, ...] = ()
    compliance_requirements: tuple[str, ...] = ()
    query_fields: tuple[str, ...] = ()
    data_sources: tuple[str, ...] = ()
    platform: str | None = None

    def attribute(self, name: str) -> tuple[str, ...]:
        """Return one of the attribute collections by name."""
        if name not in RULE_ATTRIBUTES:
            raise KeyError(f"Unknown rule attribute: {name!r}")
        return getattr(self, name)


@dataclass(frozen=True)
class PairwiseSimilarity:
    """Similarity of one unordered rule pair."""

    rule_id_a: str
    rule_id_b: str
    score: float
    overlap_areas: tuple[str, ...] = ()
    common_techniques: tuple[str, ...] = ()
    common_threat_actors: tuple[str, ...] = ()
    common_compliance: tuple[str, ...] = ()
    consolidation_tier: str = TIER_LOW
    recommendation: str = ""
    dimension_scores: dict[str, float] = field(default_factory=dict)

    def involves(self, rule_id: str) -> bool:
        return rule_id in (self.rule_id_a, self.rule_id_b)

    def to_dict(self) -> dict:
        return {
            "ruleId1": self.rule_id_a,
            "ruleId2": self.rule_id_b,
            "similarityScore": self.score,
            "overlapAreas": list(self.overlap_areas),
            "commonTechniques": list(self.common_techniques),
            "commonThreatActors": list(self.common_threat_actors),
            "commonCompliance": list(self.common_compliance),
            "consolidationPotential": self.consolidation_tier,
            "consolidationRecommendation": self.recommendation,
        }


@dataclass
class Cluster:
    """A group of rules proposed for consolidation."""

    id: str
    name: str
    member_rule_ids: list[str]
    average_similarity: float
    common_techniques: list[str] = field(default_factory=list)
    common_threat_actors: list[str] = field(default_factory=list)
    consolidation_opportunities: list[str] = field(default_factory=list)
    estimated_savings: float = 0
    standalone: bool = False

    @property
    def size(self) -> int:
        return len(self.member_rule_ids)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "rules": list(self.member_rule_ids),
            "similarity": self.average_similarity,
            "commonTechniques": list(self.common_techniques),
            "commonThreatActors": list(self.common_threat_actors),
            "consolidationOpportunities": list(self.consolidation_opportunities),
            "estimatedSavings": self.estimated_savings,
        }


@dataclass(frozen=True)
class ConsolidationCounts:
    """Number of rule pairs per consolidation tier."""

    high: int = 0
    medium: int = 0
    low: int = 0

    @property
    def total(self) -> int:
        return self.high + self.medium + self.low

    def to_dict(self) -> dict[str, int]:
        return {TIER_HIGH: self.high, TIER_MEDIUM: self.medium, TIER_LOW: self.low}


@dataclass
class SimilarityMatrix:
    """Full pairwise similarity grid for an ordered rule list."""

    rule_ids: list[str]
    matrix: list[list[float]]
    pairwise: list[PairwiseSimilarity] = field(default_factory=list)

    def get(self, rule_id_a: str, rule_id_b: str) -> float:
        """Look up the score of two rules by id."""
        return self.matrix[self.rule_ids.index(rule_id_a)][self.rule_ids.index(rule_id_b)]


@dataclass
class AnalysisResult:
    """Complete similarity and consolidation analysis of a rule set."""

    rule_ids: list[str]
    similarity_matrix: list[list[float]]
    clusters: list[Cluster]
    consolidation_counts: ConsolidationCounts
    estimated_total_savings: float
    recommendations: list[str] = field(default_factory=list)
    pairwise: list[PairwiseSimilarity] = field(default_factory=list)

    def cluster_for(self, rule_id: str) -> Cluster | None:
        """Return the cluster containing a rule, if any."""
        for cluster in self.clusters:
            if rule_id in cluster.member_rule_ids:
                return cluster
        return None

    def to_dict(self, include_pairs: bool = False) -> dict:
        """Render the JSON-serializable output contract."""
        data = {
            "ruleIds": list(self.rule_ids),
            "similarityMatrix": [list(row) for row in self.similarity_matrix],
            "clusters": [c.to_dict() for c in self.clusters],
            "consolidationOpportunityCounts": self.consolidation_counts.to_dict(),
            "estimatedCostSavings": self.estimated_total_savings,
            "recommendations": list(self.recommendations),
        }
        if include_pairs:
            data["pairwiseSimilarities"] = [p.to_dict() for p in self.pairwise]
        return data


@dataclass
class SimilarityStats:
    """Aggregate statistics over a collection of pairwise scores."""

    total_pairs: int
    mean_score: float
    median_score: float
    min_score: float
    max_score: float
    score_histogram: dict[str, int] = field(default_factory=dict)
    tier_counts: dict[str, int] = field(default_factory=dict)
