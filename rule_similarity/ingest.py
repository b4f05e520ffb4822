"""Normalization of raw rule records into canonical Rule objects.

Rule suppliers hand over loosely shaped records (JSON/YAML mappings, Sigma
rules, parsed Suricata rules). Everything downstream of this module works on
``Rule`` instances only, so defaults for missing attributes are applied here
and nowhere else.
"""

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import yaml

from .models import Rule, ValidationError
from .suricata import load_suricata_rules

logger = logging.getLogger(__name__)

# Record keys accepted for each attribute collection.
ATTRIBUTE_KEYS = {
    "mitre_techniques": "mitre_techniques",
    "threat_actors": "threat_actors",
    "compliance_requirements": "compliance_requirements",
    "data_sources": "data_sources",
}

RULE_FILE_SUFFIXES = {".json", ".yaml", ".yml", ".rules"}


def normalize_rule(record: Mapping[str, Any] | Rule) -> Rule:
    """Build a Rule from a raw record.

    Missing or ``None`` attribute collections become empty. Query-selection
    fields come from an explicit ``query_fields`` list or, failing that, from
    the keys of a Sigma ``detection.selection`` block.
    """
    if isinstance(record, Rule):
        return record
    if not isinstance(record, Mapping):
        raise ValidationError(f"Rule record must be a mapping, got {type(record).__name__}")

    rule_id = record.get("id")
    if isinstance(rule_id, int) and not isinstance(rule_id, bool):
        rule_id = str(rule_id)
    if not isinstance(rule_id, str) or not rule_id.strip():
        raise ValidationError(f"Rule record has a missing or empty 'id': {record!r}")

    name = record.get("name") or rule_id
    if not isinstance(name, str):
        raise ValidationError(f"Rule {rule_id!r}: 'name' must be a string")

    attributes = {
        attr: _as_collection(record.get(key), rule_id, key)
        for attr, key in ATTRIBUTE_KEYS.items()
    }

    if record.get("query_fields") is not None:
        query_fields = _as_collection(record["query_fields"], rule_id, "query_fields")
    else:
        query_fields = extract_query_fields(record.get("sigma_rule"))

    platform = record.get("platform")
    return Rule(
        id=rule_id,
        name=name,
        query_fields=query_fields,
        platform=str(platform) if platform is not None else None,
        **attributes,
    )


def normalize_rules(records: Any) -> list[Rule]:
    """Normalize a list of raw records; the collection itself must be a list or tuple."""
    if not isinstance(records, (list, tuple)):
        raise ValidationError(
            f"Rule collection must be a list, got {type(records).__name__}"
        )
    return [normalize_rule(r) for r in records]


def extract_query_fields(sigma_rule: Any) -> tuple[str, ...]:
    """Return the field names referenced by a Sigma rule's selection.

    Value modifiers are dropped, so ``CommandLine|contains`` yields
    ``CommandLine``. A selection may be a mapping or a list of mappings.
    """
    if not isinstance(sigma_rule, Mapping):
        return ()
    detection = sigma_rule.get("detection")
    if not isinstance(detection, Mapping):
        return ()
    selection = detection.get("selection")
    if isinstance(selection, Mapping):
        blocks = [selection]
    elif isinstance(selection, list):
        blocks = [b for b in selection if isinstance(b, Mapping)]
    else:
        return ()

    fields = []
    for block in blocks:
        for key in block:
            fields.append(str(key).split("|", 1)[0])
    return _dedupe(fields)


def _as_collection(value: Any, rule_id: str, key: str) -> tuple[str, ...]:
    """Coerce an attribute value to a de-duplicated tuple of strings."""
    if value is None:
        return ()
    if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Iterable):
        raise ValidationError(
            f"Rule {rule_id!r}: {key!r} must be a list of strings, got {type(value).__name__}"
        )
    return _dedupe(str(v) for v in value if v is not None and str(v) != "")


def _dedupe(values: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(values))


def load_rules_file(path: str | Path) -> list[Rule]:
    """Load and normalize rules from a JSON, YAML or Suricata ``.rules`` file."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in RULE_FILE_SUFFIXES:
        raise ValidationError(
            f"Unsupported rule file type {suffix!r}. Must be one of: {sorted(RULE_FILE_SUFFIXES)}"
        )

    if suffix == ".rules":
        return load_suricata_rules(path)

    with open(path, encoding="utf-8") as f:
        try:
            if suffix == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise ValidationError(f"Malformed rule file {path}: {exc}") from exc

    if isinstance(data, Mapping) and "rules" in data:
        data = data["rules"]
    rules = normalize_rules(data)
    logger.info("Loaded %d rules from %s", len(rules), path)
    return rules
