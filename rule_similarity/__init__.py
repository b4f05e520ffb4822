"""rule-similarity: Find overlapping detection rules and estimate consolidation savings."""

from .analysis import SimilarityAnalyzer, analyze
from .cache import TTLCache
from .clustering import build_clusters
from .config import SimilarityProfile, load_default_profile, load_profile
from .ingest import normalize_rule, normalize_rules
from .matrix import build_matrix
from .models import (
    AnalysisResult,
    Cluster,
    ConsolidationCounts,
    PairwiseSimilarity,
    Rule,
    SimilarityMatrix,
    ValidationError,
)
from .scorer import SimilarityScorer
from .stats import summarize

__all__ = [
    "SimilarityAnalyzer",
    "SimilarityScorer",
    "SimilarityProfile",
    "AnalysisResult",
    "Cluster",
    "ConsolidationCounts",
    "PairwiseSimilarity",
    "Rule",
    "SimilarityMatrix",
    "TTLCache",
    "ValidationError",
    "analyze",
    "build_clusters",
    "build_matrix",
    "load_default_profile",
    "load_profile",
    "normalize_rule",
    "normalize_rules",
    "summarize",
]
