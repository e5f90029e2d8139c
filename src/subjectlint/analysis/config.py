# subjectlint:domain=analysis
"""Analysis configuration: RuleConfig defaults and the YAML config loader."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

import yaml

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

HIGH_CARDINALITY_LEFT = "high-cardinality-left"
INCONSISTENT_ORDERING = "inconsistent-ordering"
OVER_SEGMENTATION = "over-segmentation"
UNDER_SEGMENTATION = "under-segmentation"
AMBIGUOUS_NAMING = "ambiguous-naming"
VERSION_MISPLACEMENT = "version-misplacement"
CASING_SEPARATOR_DRIFT = "casing-separator-drift"
UNPLANNED_WILDCARD_RISK = "unplanned-wildcard-risk"
PARSE_ERROR = "parse-error"

RULE_IDS: tuple[str, ...] = (
    HIGH_CARDINALITY_LEFT,
    INCONSISTENT_ORDERING,
    OVER_SEGMENTATION,
    UNDER_SEGMENTATION,
    AMBIGUOUS_NAMING,
    VERSION_MISPLACEMENT,
    CASING_SEPARATOR_DRIFT,
    UNPLANNED_WILDCARD_RISK,
)

SUPPORTED_SCHEMA_VERSIONS: frozenset[int] = frozenset({1})

DEFAULT_AMBIGUOUS_TERMS: frozenset[str] = frozenset(
    {"process", "handle", "data", "event", "thing"}
)
DEFAULT_ACTION_VOCABULARY: frozenset[str] = frozenset(
    {
        "created",
        "updated",
        "deleted",
        "shipped",
        "cancelled",
        "completed",
        "failed",
        "requested",
        "started",
        "stopped",
    }
)
DEFAULT_RESERVED_PREFIXES: frozenset[str] = frozenset({"_INBOX", "_admin"})

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RuleConfig:
    """Thresholds, vocabularies and rule toggles for one analysis run."""

    max_segment_depth: int = 6
    min_segment_depth: int = 2
    high_cardinality_threshold: float = 0.3
    ordering_tolerance: float = 0.0
    volume_tolerance: float = 0.1
    min_version_position: int = 2
    max_examples: int = 5
    ambiguous_terms: frozenset[str] = DEFAULT_AMBIGUOUS_TERMS
    action_vocabulary: frozenset[str] = DEFAULT_ACTION_VOCABULARY
    reserved_prefixes: frozenset[str] = DEFAULT_RESERVED_PREFIXES
    isolation_groups: tuple[frozenset[str], ...] = ()
    enabled_rules: frozenset[str] = field(default_factory=lambda: frozenset(RULE_IDS))

    def is_enabled(self, rule_id: str) -> bool:
        return rule_id in self.enabled_rules

    def with_rules(self, *rule_ids: str) -> RuleConfig:
        """Return a copy with only *rule_ids* enabled."""
        unknown = sorted(set(rule_ids) - set(RULE_IDS))
        if unknown:
            msg = f"Unknown rule id(s) {unknown}, must be among {list(RULE_IDS)}"
            raise ValueError(msg)
        return replace(self, enabled_rules=frozenset(rule_ids))


# ---------------------------------------------------------------------------
# YAML parsing
# ---------------------------------------------------------------------------


def _parse_int(section: dict[str, Any], key: str, default: int, *, minimum: int) -> int:
    raw = section.get(key, default)
    if isinstance(raw, bool) or not isinstance(raw, int):
        msg = f"config: analysis.{key} must be an integer"
        raise ValueError(msg)
    if raw < minimum:
        msg = f"config: analysis.{key} must be >= {minimum}"
        raise ValueError(msg)
    return raw


def _parse_fraction(section: dict[str, Any], key: str, default: float) -> float:
    raw = section.get(key, default)
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        msg = f"config: analysis.{key} must be a number"
        raise ValueError(msg)
    value = float(raw)
    if not (0.0 <= value <= 1.0):
        msg = f"config: analysis.{key} must be between 0.0 and 1.0"
        raise ValueError(msg)
    return value


def _parse_terms(section: dict[str, Any], key: str, default: frozenset[str]) -> frozenset[str]:
    raw = section.get(key)
    if raw is None:
        return default
    if not isinstance(raw, list):
        msg = f"config: analysis.{key} must be a list of strings"
        raise ValueError(msg)
    return frozenset(str(item) for item in raw)


def _parse_rule_toggles(section: dict[str, Any]) -> frozenset[str]:
    """Parse ``rules: {rule-id: true|false}``; unlisted rules stay enabled."""
    raw = section.get("rules")
    if raw is None:
        return frozenset(RULE_IDS)
    if not isinstance(raw, dict):
        msg = "config: analysis.rules must be a mapping of rule id to true/false"
        raise ValueError(msg)

    enabled = set(RULE_IDS)
    for rule_id, flag in raw.items():
        if rule_id not in RULE_IDS:
            msg = f"config: unknown rule id '{rule_id}', must be one of {list(RULE_IDS)}"
            raise ValueError(msg)
        if not isinstance(flag, bool):
            msg = f"config: analysis.rules.{rule_id} must be true or false"
            raise ValueError(msg)
        if not flag:
            enabled.discard(rule_id)
    return frozenset(enabled)


def _parse_isolation_groups(section: dict[str, Any]) -> tuple[frozenset[str], ...]:
    raw = section.get("isolation_groups", [])
    if not isinstance(raw, list):
        msg = "config: authorization.isolation_groups must be a list"
        raise ValueError(msg)

    groups: list[frozenset[str]] = []
    for idx, group in enumerate(raw):
        if not isinstance(group, list) or len(group) < 2:
            msg = (
                f"config: isolation group at index {idx} must be a list "
                f"of at least 2 principal ids"
            )
            raise ValueError(msg)
        groups.append(frozenset(str(p) for p in group))
    return tuple(groups)


def parse_config(data: object) -> RuleConfig:
    """Build a RuleConfig from an already-loaded YAML document."""
    if not isinstance(data, dict):
        msg = "config must be a YAML mapping"
        raise ValueError(msg)

    version = data.get("version")
    if version is None:
        msg = "config: missing required 'version' field"
        raise ValueError(msg)
    if version not in SUPPORTED_SCHEMA_VERSIONS:
        expected = sorted(SUPPORTED_SCHEMA_VERSIONS)
        msg = f"config: unsupported version {version}, expected one of {expected}"
        raise ValueError(msg)

    analysis = data.get("analysis", {}) or {}
    if not isinstance(analysis, dict):
        msg = "config: 'analysis' must be a mapping"
        raise ValueError(msg)
    authorization = data.get("authorization", {}) or {}
    if not isinstance(authorization, dict):
        msg = "config: 'authorization' must be a mapping"
        raise ValueError(msg)

    defaults = RuleConfig()
    return RuleConfig(
        max_segment_depth=_parse_int(
            analysis, "max_segment_depth", defaults.max_segment_depth, minimum=1
        ),
        min_segment_depth=_parse_int(
            analysis, "min_segment_depth", defaults.min_segment_depth, minimum=1
        ),
        high_cardinality_threshold=_parse_fraction(
            analysis, "high_cardinality_threshold", defaults.high_cardinality_threshold
        ),
        ordering_tolerance=_parse_fraction(
            analysis, "ordering_tolerance", defaults.ordering_tolerance
        ),
        volume_tolerance=_parse_fraction(analysis, "volume_tolerance", defaults.volume_tolerance),
        min_version_position=_parse_int(
            analysis, "min_version_position", defaults.min_version_position, minimum=0
        ),
        max_examples=_parse_int(analysis, "max_examples", defaults.max_examples, minimum=1),
        ambiguous_terms=_parse_terms(analysis, "ambiguous_terms", defaults.ambiguous_terms),
        action_vocabulary=_parse_terms(analysis, "action_vocabulary", defaults.action_vocabulary),
        reserved_prefixes=_parse_terms(analysis, "reserved_prefixes", defaults.reserved_prefixes),
        isolation_groups=_parse_isolation_groups(authorization),
        enabled_rules=_parse_rule_toggles(analysis),
    )


def load_config(config_path: Path) -> RuleConfig:
    """Load a RuleConfig from a YAML file.

    Falls back to defaults (with a warning) when the file does not exist.
    Raises ``ValueError`` on schema errors.
    """
    if not config_path.is_file():
        logger.warning("Config file %s not found, using default analysis settings", config_path)
        return RuleConfig()

    with config_path.open("r", encoding="utf-8") as fh:
        try:
            data = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            msg = f"config: {config_path} is not valid YAML: {exc}"
            raise ValueError(msg) from exc

    config = parse_config(data)
    logger.debug(
        "Loaded config from %s (%d rule(s) enabled)", config_path, len(config.enabled_rules)
    )
    return config
