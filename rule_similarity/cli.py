"""CLI entry point for rule-similarity."""

import argparse
import csv
import dataclasses
import io
import json
import logging
import sys
from pathlib import Path

from .analysis import SimilarityAnalyzer
from .config import load_default_profile, load_profile
from .ingest import load_rules_file
from .models import AnalysisResult, ValidationError
from .stats import summarize


def main(argv: list[str] | None = None) -> None:
    """Rule Similarity: find redundant detection rules and estimate consolidation savings."""
    parser = argparse.ArgumentParser(
        prog="rule-similarity",
        description="Score detection-rule similarity and propose consolidation clusters.",
    )
    parser.add_argument("rules_file", nargs="?", default=None, help="Path to a .json, .yaml or .rules file.")
    parser.add_argument("--config", dest="config_path", default=None, help="Path to custom YAML similarity profile.")
    parser.add_argument("--format", dest="output_format", choices=["json", "csv"], default="json", help="Output format (default: json).")
    parser.add_argument("--output", dest="output_path", default=None, help="Write results to file instead of stdout.")
    parser.add_argument("--threshold", type=float, default=None, help="Override the clustering similarity threshold.")
    parser.add_argument("--include-pairs", action="store_true", default=False, help="Include pairwise details in JSON output.")
    parser.add_argument("--stats", dest="show_stats", action="store_true", default=False, help="Print summary statistics to stderr.")
    parser.add_argument("--debug", action="store_true", default=False, help="Enable debug logging.")

    args = parser.parse_args(argv)

    if args.rules_file is None:
        parser.print_help()
        sys.exit(1)

    setup_logging(args.debug)
    _cmd_analyze(args)


def setup_logging(debug: bool = False) -> None:
    """Configure root logging for command-line use."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def _fail(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(2)


def _cmd_analyze(args: argparse.Namespace) -> None:
    """Execute the analysis."""
    if args.config_path and not Path(args.config_path).is_file():
        _fail(f"Config file not found: {args.config_path}")
    if not Path(args.rules_file).is_file():
        _fail(f"File not found: {args.rules_file}")

    try:
        profile = load_profile(args.config_path) if args.config_path else load_default_profile()
        if args.threshold is not None:
            if not 0.0 <= args.threshold <= 1.0:
                raise ValueError(f"--threshold must be within [0, 1], got {args.threshold}")
            profile.clustering = dataclasses.replace(profile.clustering, threshold=args.threshold)
        analyzer = SimilarityAnalyzer(profile=profile)
    except ValueError as exc:
        _fail(f"Invalid profile: {exc}")

    try:
        rules = load_rules_file(args.rules_file)
        result = analyzer.analyze(rules)
    except ValidationError as exc:
        _fail(f"Invalid rules: {exc}")

    if args.output_format == "json":
        output_text = json.dumps(result.to_dict(include_pairs=args.include_pairs), indent=2)
    else:
        output_text = _format_csv(result)

    if args.output_path:
        with open(args.output_path, "w", encoding="utf-8") as f:
            f.write(output_text)
    else:
        print(output_text)

    if args.show_stats:
        _print_stats(result)


def _format_csv(result: AnalysisResult) -> str:
    """Format pairwise results as CSV."""
    buf = io.StringIO()
    fieldnames = ["rule_a", "rule_b", "score", "tier", "overlap_areas"]
    writer = csv.DictWriter(buf, fieldnames=fieldnames)
    writer.writeheader()
    for p in result.pairwise:
        writer.writerow({
            "rule_a": p.rule_id_a,
            "rule_b": p.rule_id_b,
            "score": round(p.score, 4),
            "tier": p.consolidation_tier,
            "overlap_areas": ";".join(p.overlap_areas),
        })
    return buf.getvalue()


def _print_stats(result: AnalysisResult) -> None:
    """Print summary statistics to stderr."""
    stats = summarize(result.pairwise)
    print("\n=== Similarity Summary ===", file=sys.stderr)
    print(f"Rules analysed: {len(result.rule_ids):,}", file=sys.stderr)
    print(f"Pairs scored:   {stats.total_pairs:,}", file=sys.stderr)
    print(f"Clusters:       {len(result.clusters):,}", file=sys.stderr)
    print("", file=sys.stderr)
    print("Score:", file=sys.stderr)
    print(
        f"  Mean: {stats.mean_score}  |  Median: {stats.median_score}  "
        f"|  Min: {stats.min_score:.3f}  |  Max: {stats.max_score:.3f}",
        file=sys.stderr,
    )
    hist = stats.score_histogram
    print(
        "  Distribution:  " + "  |  ".join(f"{bucket}: {count}" for bucket, count in hist.items()),
        file=sys.stderr,
    )
    tiers = stats.tier_counts
    print(
        f"  Tiers:  high: {tiers['high']}  |  medium: {tiers['medium']}  |  low: {tiers['low']}",
        file=sys.stderr,
    )
    print(f"Estimated savings: ${result.estimated_total_savings:,.0f}", file=sys.stderr)
