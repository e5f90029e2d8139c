# subjectlint:domain=analysis
"""Lint orchestrator: load config, build the corpus, run the rule engine, summarize."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from subjectlint.analysis.config import RuleConfig, load_config
from subjectlint.analysis.corpus import Corpus
from subjectlint.analysis.diagnostics import Diagnostic, count_by_severity, has_critical
from subjectlint.analysis.rule_engine import analyze

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class LintError(Exception):
    """Raised when lint encounters a configuration error."""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class LintResult:
    """Result of a lint run."""

    diagnostics: list[Diagnostic] = field(default_factory=list)
    rules_evaluated: int = 0
    subjects_scanned: int = 0
    patterns_scanned: int = 0
    parse_failures: int = 0
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        """True when there are no Critical diagnostics."""
        return not has_critical(self.diagnostics)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def lint(
    subjects: Iterable[str],
    patterns: Iterable[str] = (),
    *,
    config: RuleConfig | None = None,
    config_path: Path | None = None,
    max_workers: int | None = None,
) -> LintResult:
    """Run the full analysis over caller-supplied subject and pattern strings.

    Parameters
    ----------
    subjects:
        Published subject strings, one per logical record.
    patterns:
        Declared subscriber patterns.
    config:
        Explicit configuration.  Takes precedence over *config_path*.
    config_path:
        Optional YAML config file, read with :func:`load_config`.
    max_workers:
        Run rule checks in a thread pool of this size.

    Raises
    ------
    LintError
        When the config file is present but invalid.
    """
    start = time.monotonic()

    if config is None and config_path is not None:
        try:
            config = load_config(config_path)
        except ValueError as exc:
            msg = f"Invalid analysis configuration: {exc}"
            raise LintError(msg) from exc
    if config is None:
        config = RuleConfig()

    corpus = Corpus.build(subjects, patterns, reserved_prefixes=config.reserved_prefixes)
    diagnostics = analyze(corpus, config, max_workers=max_workers)

    elapsed = (time.monotonic() - start) * 1000
    result = LintResult(
        diagnostics=diagnostics,
        rules_evaluated=len(config.enabled_rules),
        subjects_scanned=len(corpus.all_subjects()),
        patterns_scanned=len(corpus.all_patterns()),
        parse_failures=len({err.raw for err in corpus.errors}),
        elapsed_ms=elapsed,
    )
    logger.info(
        "Linted %d subject(s), %d pattern(s): %d diagnostic(s) in %.1fms",
        result.subjects_scanned,
        result.patterns_scanned,
        len(diagnostics),
        elapsed,
    )
    return result


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


def format_result_json(result: LintResult) -> str:
    """Format a LintResult as structured JSON with ``diagnostics`` and ``summary``."""
    output: dict[str, object] = {
        "diagnostics": [d.to_dict() for d in result.diagnostics],
        "summary": {
            "ok": result.ok,
            "rules_evaluated": result.rules_evaluated,
            "subjects_scanned": result.subjects_scanned,
            "patterns_scanned": result.patterns_scanned,
            "parse_failures": result.parse_failures,
            "elapsed_ms": result.elapsed_ms,
            **count_by_severity(result.diagnostics),
        },
    }
    return json.dumps(output, indent=2)
