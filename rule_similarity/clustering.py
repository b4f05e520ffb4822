"""Greedy grouping of similar rules into consolidation clusters."""

import logging
import math
from collections import Counter
from collections.abc import Sequence

from .config import SimilarityProfile, load_default_profile
from .consolidation import estimate_savings
from .models import Cluster, PairwiseSimilarity, Rule

logger = logging.getLogger(__name__)

GROUP_OPPORTUNITIES = (
    "Consolidate {count} rules into a single comprehensive rule",
    "Share common MITRE technique coverage",
    "Unified threat actor detection",
)


def majority_elements(collections: Sequence[Sequence[str]], fraction: float = 0.5) -> list[str]:
    """Elements present in at least ``ceil(len(collections) * fraction)`` collections.

    Order follows first appearance across the collections.
    """
    if not collections:
        return []
    needed = math.ceil(len(collections) * fraction)
    counts: Counter[str] = Counter()
    for values in collections:
        counts.update(set(values))
    ordered = dict.fromkeys(v for values in collections for v in values)
    return [v for v in ordered if counts[v] >= needed]


def find_similarity_groups(
    pairwise: Sequence[PairwiseSimilarity], threshold: float
) -> list[tuple[list[str], list[PairwiseSimilarity]]]:
    """Group rule ids linked by pairs scoring at least ``threshold``.

    Pairs are visited in generation order. A pair whose rules are both still
    unassigned seeds a group, and a single pass over the qualifying pairs
    absorbs every pair touching the group as it grows. Rules already placed in
    an earlier group stay there. Groups are not merged afterwards, so the
    result depends on pair order.
    """
    selected = [p for p in pairwise if p.score >= threshold]
    assigned: set[str] = set()
    groups = []

    for seed in selected:
        if seed.rule_id_a in assigned or seed.rule_id_b in assigned:
            continue

        members = [seed.rule_id_a, seed.rule_id_b]
        member_set = set(members)
        links = [seed]
        for other in selected:
            if other is seed:
                continue
            if other.rule_id_a not in member_set and other.rule_id_b not in member_set:
                continue
            new_ids = [rid for rid in (other.rule_id_a, other.rule_id_b) if rid not in member_set]
            if any(rid in assigned for rid in new_ids):
                continue
            members.extend(new_ids)
            member_set.update(new_ids)
            links.append(other)

        assigned.update(members)
        groups.append((members, links))
        logger.debug("Grouped %s from %d pairs", members, len(links))

    return groups


def cluster_name(rules: Sequence[Rule], fraction: float = 0.5) -> str:
    """Display name derived from the group's most shared attribute."""
    techniques = majority_elements([r.mitre_techniques for r in rules], fraction)
    if techniques:
        return f"{techniques[0]} Detection Cluster"
    actors = majority_elements([r.threat_actors for r in rules], fraction)
    if actors:
        return f"{actors[0]} Threat Cluster"
    return f"Detection Rule Cluster ({len(rules)} rules)"


def build_clusters(
    rules: Sequence[Rule],
    pairwise: Sequence[PairwiseSimilarity],
    profile: SimilarityProfile | None = None,
) -> list[Cluster]:
    """Partition rules into consolidation clusters.

    Every rule lands in exactly one cluster; rules without a qualifying
    partner become standalone singleton clusters after the grouped ones.
    """
    profile = profile or load_default_profile()
    fraction = profile.clustering.majority_fraction
    by_id = {r.id: r for r in rules}
    clusters: list[Cluster] = []
    clustered: set[str] = set()

    for members, links in find_similarity_groups(pairwise, profile.clustering.threshold):
        member_rules = [by_id[rid] for rid in members if rid in by_id]
        if len(member_rules) < 2:
            continue
        clusters.append(Cluster(
            id=f"cluster-{len(clusters) + 1}",
            name=cluster_name(member_rules, fraction),
            member_rule_ids=[r.id for r in member_rules],
            average_similarity=sum(p.score for p in links) / len(links) if links else 0.0,
            common_techniques=majority_elements([r.mitre_techniques for r in member_rules], fraction),
            common_threat_actors=majority_elements([r.threat_actors for r in member_rules], fraction),
            consolidation_opportunities=[
                text.format(count=len(member_rules)) for text in GROUP_OPPORTUNITIES
            ],
            estimated_savings=estimate_savings(len(member_rules), profile.savings),
        ))
        clustered.update(r.id for r in member_rules)

    grouped = len(clusters)
    for rule in rules:
        if rule.id in clustered:
            continue
        clusters.append(Cluster(
            id=f"cluster-{len(clusters) + 1}",
            name=f"{rule.name} (Standalone)",
            member_rule_ids=[rule.id],
            average_similarity=1.0,
            common_techniques=list(rule.mitre_techniques),
            common_threat_actors=list(rule.threat_actors),
            standalone=True,
        ))
        clustered.add(rule.id)

    logger.info(
        "Built %d clusters (%d grouped, %d standalone) for %d rules",
        len(clusters), grouped, len(clusters) - grouped, len(rules),
    )
    return clusters
