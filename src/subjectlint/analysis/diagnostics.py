# subjectlint:domain=analysis
"""Diagnostic value object and its stable serialized forms."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

CRITICAL = "critical"
WARNING = "warning"
INFO = "info"

VALID_SEVERITIES: frozenset[str] = frozenset({CRITICAL, WARNING, INFO})

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Diagnostic:
    """A single finding produced by a rule check or the authorization projector."""

    rule_id: str
    severity: str  # "critical" | "warning" | "info"
    subjects: tuple[str, ...]  # offending subject(s) or pattern(s)
    evidence: str  # human-readable explanation
    suggested_rewrite: str | None = None

    def __post_init__(self) -> None:
        if self.severity not in VALID_SEVERITIES:
            msg = (
                f"Diagnostic '{self.rule_id}': invalid severity '{self.severity}', "
                f"must be one of {sorted(VALID_SEVERITIES)}"
            )
            raise ValueError(msg)

    @property
    def is_critical(self) -> bool:
        return self.severity == CRITICAL

    def sort_key(self) -> tuple[str, tuple[str, ...], str]:
        return (self.rule_id, self.subjects, self.evidence)

    def to_dict(self) -> dict[str, object]:
        return {
            "rule_id": self.rule_id,
            "severity": self.severity,
            "subjects": list(self.subjects),
            "evidence": self.evidence,
            "suggested_rewrite": self.suggested_rewrite,
        }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def sort_diagnostics(diagnostics: Iterable[Diagnostic]) -> list[Diagnostic]:
    """Return diagnostics in deterministic (rule_id, subjects, evidence) order."""
    return sorted(diagnostics, key=Diagnostic.sort_key)


def has_critical(diagnostics: Iterable[Diagnostic]) -> bool:
    """Return True if any diagnostic is Critical (a wrapping CI step should fail)."""
    return any(d.is_critical for d in diagnostics)


def count_by_severity(diagnostics: Iterable[Diagnostic]) -> dict[str, int]:
    counts = {CRITICAL: 0, WARNING: 0, INFO: 0}
    for d in diagnostics:
        counts[d.severity] += 1
    return counts


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


def format_json(diagnostics: Iterable[Diagnostic]) -> str:
    """Serialize diagnostics as JSON with a ``diagnostics`` array and ``summary`` object."""
    items = list(diagnostics)
    output: dict[str, object] = {
        "diagnostics": [d.to_dict() for d in items],
        "summary": {
            "total": len(items),
            **count_by_severity(items),
        },
    }
    return json.dumps(output, indent=2)


def format_porcelain(diagnostics: Iterable[Diagnostic]) -> str:
    """Format one line per diagnostic: ``rule_id:severity:subject,subject``.

    Returns an empty string when there are no diagnostics.
    """
    return "\n".join(f"{d.rule_id}:{d.severity}:{','.join(d.subjects)}" for d in diagnostics)
