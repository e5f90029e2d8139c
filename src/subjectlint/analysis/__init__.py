"""Analysis domain: corpus, cardinality profiling, rule engine, config, and linter."""

from subjectlint.analysis.cardinality import (
    CardinalityProfile,
    analyze_cardinality,
    detect_left_heavy_cardinality,
    profile_corpus,
)
from subjectlint.analysis.config import (
    PARSE_ERROR,
    RULE_IDS,
    RuleConfig,
    load_config,
    parse_config,
)
from subjectlint.analysis.corpus import Corpus
from subjectlint.analysis.diagnostics import (
    CRITICAL,
    INFO,
    WARNING,
    Diagnostic,
    format_json,
    format_porcelain,
    has_critical,
    sort_diagnostics,
)
from subjectlint.analysis.linter import LintError, LintResult, format_result_json, lint
from subjectlint.analysis.rule_engine import RULE_CHECKS, RuleContext, analyze

__all__ = [
    "CRITICAL",
    "INFO",
    "PARSE_ERROR",
    "RULE_CHECKS",
    "RULE_IDS",
    "WARNING",
    "CardinalityProfile",
    "Corpus",
    "Diagnostic",
    "LintError",
    "LintResult",
    "RuleConfig",
    "RuleContext",
    "analyze",
    "analyze_cardinality",
    "detect_left_heavy_cardinality",
    "format_json",
    "format_porcelain",
    "format_result_json",
    "has_critical",
    "lint",
    "load_config",
    "parse_config",
    "profile_corpus",
    "sort_diagnostics",
]
