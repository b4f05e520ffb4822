"""YAML similarity profile loading and validation."""

import importlib.resources
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .models import RULE_ATTRIBUTES

logger = logging.getLogger(__name__)


@dataclass
class EdgeCaseConfig:
    """Sub-scores used when one or both attribute collections are empty."""

    empty_both: float = 0.5
    empty_one: float = 0.1


@dataclass
class DimensionConfig:
    """A weighted similarity dimension over one rule attribute."""

    id: str
    name: str
    attribute: str
    weight: float
    overlap_area: bool = False  # report shared elements as an overlap area


@dataclass
class PluginConfig:
    """An extra similarity dimension computed by a plugin callable."""

    id: str
    name: str
    weight: float
    callable: str  # dotted Python path


@dataclass
class TierConfig:
    """Minimum score and overlap-area count for a consolidation tier."""

    min_score: float
    min_overlap_areas: int


@dataclass
class ClusteringConfig:
    threshold: float = 0.7
    majority_fraction: float = 0.5


@dataclass
class SavingsConfig:
    """Cost model for merging a cluster into one rule."""

    per_consolidated_rule: float = 5000
    maintenance_per_rule: float = 2000


@dataclass
class RecommendationConfig:
    high_average_similarity: float = 0.6


def _default_dimensions() -> list[DimensionConfig]:
    return [
        DimensionConfig("mitre_techniques", "MITRE Techniques", "mitre_techniques", 0.30, True),
        DimensionConfig("threat_actors", "Threat Actors", "threat_actors", 0.25, True),
        DimensionConfig(
            "compliance_requirements", "Compliance Requirements", "compliance_requirements", 0.20, True
        ),
        DimensionConfig("query_fields", "Query Selection Fields", "query_fields", 0.15, False),
        DimensionConfig("data_sources", "Data Sources", "data_sources", 0.10, True),
    ]


def _default_tiers() -> dict[str, TierConfig]:
    return {
        "high": TierConfig(min_score=0.8, min_overlap_areas=3),
        "medium": TierConfig(min_score=0.6, min_overlap_areas=2),
    }


@dataclass
class SimilarityProfile:
    """Complete similarity profile loaded from YAML."""

    edge_cases: EdgeCaseConfig = field(default_factory=EdgeCaseConfig)
    dimensions: list[DimensionConfig] = field(default_factory=_default_dimensions)
    plugins: list[PluginConfig] = field(default_factory=list)
    tiers: dict[str, TierConfig] = field(default_factory=_default_tiers)
    clustering: ClusteringConfig = field(default_factory=ClusteringConfig)
    savings: SavingsConfig = field(default_factory=SavingsConfig)
    recommendations: RecommendationConfig = field(default_factory=RecommendationConfig)

    @property
    def total_weight(self) -> float:
        return sum(d.weight for d in self.dimensions) + sum(p.weight for p in self.plugins)


VALID_TIERS = {"high", "medium"}


def load_profile(path: str | Path) -> SimilarityProfile:
    """Load a similarity profile from a YAML file."""
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ValueError(f"Malformed YAML in {path}: {exc}") from exc
    logger.debug("Loaded similarity profile from %s", path)
    return _build_profile(data or {})


def load_default_profile() -> SimilarityProfile:
    """Load the bundled default similarity profile."""
    pkg = importlib.resources.files("rule_similarity") / "similarity_profiles" / "default.yaml"
    text = pkg.read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    return _build_profile(data or {})


def _mapping(value: Any, label: str) -> dict:
    """Return a profile section as a dict; empty sections become {}."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{label} must be a mapping, got {type(value).__name__}")
    return value


def _entries(value: Any, label: str) -> list[dict]:
    """Return a list section whose entries must all be mappings."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{label} must be a list, got {type(value).__name__}")
    for entry in value:
        if not isinstance(entry, dict):
            raise ValueError(f"Each entry in {label} must be a mapping, got {entry!r}")
    return value


def _number(section: dict, key: str, label: str, default: Any = None) -> float:
    value = section.get(key, default)
    if value is None:
        raise ValueError(f"{label}.{key} is required")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{label}.{key} must be a number, got {value!r}") from None


def _build_profile(data: dict) -> SimilarityProfile:
    """Build a SimilarityProfile from parsed YAML data."""
    if not isinstance(data, dict):
        raise ValueError(f"Similarity profile must be a mapping, got {type(data).__name__}")

    profile = SimilarityProfile()

    edge = _mapping(data.get("similarity"), "similarity")
    profile.edge_cases = EdgeCaseConfig(
        empty_both=_number(edge, "empty_both", "similarity", 0.5),
        empty_one=_number(edge, "empty_one", "similarity", 0.1),
    )

    if "dimensions" in data:
        profile.dimensions = [_parse_dimension(d) for d in _entries(data["dimensions"], "dimensions")]

    plugins = []
    for p in _entries(data.get("plugins"), "plugins"):
        missing = {"id", "weight", "callable"} - set(p.keys())
        if missing:
            raise ValueError(f"Plugin missing required fields: {missing}")
        plugins.append(PluginConfig(
            id=p["id"],
            name=p.get("name", p["id"]),
            weight=_number(p, "weight", f"plugins.{p['id']}"),
            callable=str(p["callable"]),
        ))
    profile.plugins = plugins

    for tier_name, tier_data in _mapping(data.get("tiers"), "tiers").items():
        if tier_name not in VALID_TIERS:
            raise ValueError(f"Unknown tier {tier_name!r}. Must be one of: {VALID_TIERS}")
        label = f"tiers.{tier_name}"
        tier_data = _mapping(tier_data, label)
        profile.tiers[tier_name] = TierConfig(
            min_score=_number(tier_data, "min_score", label),
            min_overlap_areas=int(_number(tier_data, "min_overlap_areas", label, 0)),
        )

    clustering = _mapping(data.get("clustering"), "clustering")
    profile.clustering = ClusteringConfig(
        threshold=_number(clustering, "threshold", "clustering", 0.7),
        majority_fraction=_number(clustering, "majority_fraction", "clustering", 0.5),
    )

    savings = _mapping(data.get("savings"), "savings")
    profile.savings = SavingsConfig(
        per_consolidated_rule=_number(savings, "per_consolidated_rule", "savings", 5000),
        maintenance_per_rule=_number(savings, "maintenance_per_rule", "savings", 2000),
    )

    recommendations = _mapping(data.get("recommendations"), "recommendations")
    profile.recommendations = RecommendationConfig(
        high_average_similarity=_number(
            recommendations, "high_average_similarity", "recommendations", 0.6
        ),
    )

    _validate_profile(profile)
    return profile


def _parse_dimension(data: dict) -> DimensionConfig:
    """Parse a single dimension from YAML data."""
    if not isinstance(data, dict):
        raise ValueError(f"Dimension must be a mapping, got {data!r}")
    required = {"id", "weight"}
    missing = required - set(data.keys())
    if missing:
        raise ValueError(f"Dimension missing required fields: {missing}")

    return DimensionConfig(
        id=data["id"],
        name=data.get("name", data["id"]),
        attribute=data.get("attribute", data["id"]),
        weight=_number(data, "weight", f"dimensions.{data['id']}"),
        overlap_area=bool(data.get("overlap_area", False)),
    )


def _check_unit_interval(value: float, label: str) -> None:
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{label} must be within [0, 1], got {value}")


def _validate_profile(profile: SimilarityProfile) -> None:
    """Validate a similarity profile for correctness."""
    _check_unit_interval(profile.edge_cases.empty_both, "similarity.empty_both")
    _check_unit_interval(profile.edge_cases.empty_one, "similarity.empty_one")

    seen_ids = set()
    for d in profile.dimensions:
        if d.id in seen_ids:
            raise ValueError(f"Duplicate dimension id: {d.id!r}")
        seen_ids.add(d.id)

        if d.attribute not in RULE_ATTRIBUTES:
            raise ValueError(
                f"Dimension {d.id!r} has invalid attribute {d.attribute!r}. "
                f"Must be one of: {RULE_ATTRIBUTES}"
            )
        if d.weight <= 0:
            raise ValueError(f"Dimension {d.id!r} must have a positive weight, got {d.weight}")

    for p in profile.plugins:
        if p.id in seen_ids:
            raise ValueError(f"Duplicate plugin id: {p.id!r}")
        seen_ids.add(p.id)
        if p.weight <= 0:
            raise ValueError(f"Plugin {p.id!r} must have a positive weight, got {p.weight}")

    if not seen_ids:
        raise ValueError("Similarity profile defines no dimensions")

    for name, tier in profile.tiers.items():
        _check_unit_interval(tier.min_score, f"tiers.{name}.min_score")
        if tier.min_overlap_areas < 0:
            raise ValueError(f"tiers.{name}.min_overlap_areas must not be negative")

    high, medium = profile.tiers["high"], profile.tiers["medium"]
    if medium.min_score > high.min_score or medium.min_overlap_areas > high.min_overlap_areas:
        raise ValueError("The 'medium' tier must not be stricter than the 'high' tier")

    _check_unit_interval(profile.clustering.threshold, "clustering.threshold")
    _check_unit_interval(profile.clustering.majority_fraction, "clustering.majority_fraction")
    _check_unit_interval(
        profile.recommendations.high_average_similarity,
        "recommendations.high_average_similarity",
    )

    if profile.savings.per_consolidated_rule < 0 or profile.savings.maintenance_per_rule < 0:
        raise ValueError("Savings constants must not be negative")
