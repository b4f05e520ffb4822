"""Plugin system for extra similarity dimensions."""

import importlib
import re
from typing import Callable

from .models import Rule

DimensionFunc = Callable[[Rule, Rule], float | None]

_TOKEN_RE = re.compile(r"[a-z0-9]+")

# Words too common in rule titles to say anything about similarity.
NAME_STOPWORDS = frozenset({
    "a", "an", "and", "by", "detection", "detect", "for", "from", "in", "of",
    "on", "or", "rule", "suspicious", "the", "to", "via", "with",
})


def load_plugin(dotted_path: str) -> DimensionFunc:
    """Load a dimension callable from a dotted path.

    Supports two formats:
    - "module.path:function_name" (colon separator)
    - "module.path.function_name" (dot separator, last segment is the function)
    """
    if ":" in dotted_path:
        module_path, func_name = dotted_path.rsplit(":", 1)
    else:
        module_path, func_name = dotted_path.rsplit(".", 1)

    module = importlib.import_module(module_path)
    func = getattr(module, func_name)

    if not callable(func):
        raise TypeError(f"Plugin {dotted_path!r} is not callable")

    return func


def name_tokens(name: str) -> set[str]:
    """Lower-cased word tokens of a rule name, minus stopwords."""
    return {t for t in _TOKEN_RE.findall(name.lower()) if t not in NAME_STOPWORDS}


def builtin_name_similarity(rule_a: Rule, rule_b: Rule) -> float | None:
    """Jaccard overlap of the rules' title words.

    Returns None when either title has no meaningful words, which leaves the
    dimension out of the composite score.
    """
    tokens_a = name_tokens(rule_a.name)
    tokens_b = name_tokens(rule_b.name)
    if not tokens_a or not tokens_b:
        return None
    return len(tokens_a & tokens_b) / len(tokens_a | tokens_b)


def builtin_same_platform(rule_a: Rule, rule_b: Rule) -> float | None:
    """1.0 when both rules run on the same platform, 0.0 otherwise.

    Unknown platforms are not scored.
    """
    if rule_a.platform is None or rule_b.platform is None:
        return None
    return 1.0 if rule_a.platform.lower() == rule_b.platform.lower() else 0.0
