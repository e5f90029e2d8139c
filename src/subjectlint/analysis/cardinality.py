# subjectlint:domain=analysis
"""Cardinality analyzer: per-position distinct-value profiles and left-heavy detection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from subjectlint.analysis.config import HIGH_CARDINALITY_LEFT
from subjectlint.analysis.diagnostics import CRITICAL, Diagnostic

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from subjectlint.analysis.corpus import Corpus
    from subjectlint.subjects.model import Subject

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CardinalityProfile:
    """Distinct-value count at one segment position of one domain."""

    domain: str
    position: int
    distinct: int
    total: int  # subjects at least position + 1 segments deep
    values: frozenset[str]

    @property
    def ratio(self) -> float:
        return self.distinct / self.total if self.total else 0.0


Profiles = dict[str, tuple[CardinalityProfile, ...]]

# ---------------------------------------------------------------------------
# Profiling
# ---------------------------------------------------------------------------


def profile_subjects(domain: str, subjects: Iterable[Subject]) -> tuple[CardinalityProfile, ...]:
    """Profile every position of *subjects*; shorter subjects skip deeper positions."""
    values: list[set[str]] = []
    totals: list[int] = []
    for subject in subjects:
        for position, token in enumerate(subject.tokens):
            if position == len(values):
                values.append(set())
                totals.append(0)
            values[position].add(token)
            totals[position] += 1

    return tuple(
        CardinalityProfile(
            domain=domain,
            position=position,
            distinct=len(seen),
            total=totals[position],
            values=frozenset(seen),
        )
        for position, seen in enumerate(values)
    )


def analyze_cardinality(corpus: Corpus) -> Profiles:
    """Return the cardinality profile of every domain, indexed by position."""
    return {
        domain: profile_subjects(domain, subjects) for domain, subjects in corpus.subjects.items()
    }


def profile_corpus(corpus: Corpus) -> tuple[CardinalityProfile, ...]:
    """Corpus-wide profile ignoring domains (used for wildcard-rooted patterns)."""
    return profile_subjects("*", corpus.all_subjects())


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


def _rewrite(subject: Subject, left: int, right: int) -> str:
    """Move the token at *left* to just after the token at *right*."""
    tokens = list(subject.tokens)
    moved = tokens.pop(left)
    tokens.insert(right, moved)
    return ".".join(tokens)


def detect_left_heavy_cardinality(
    profiles: Mapping[str, tuple[CardinalityProfile, ...]],
    threshold: float,
    *,
    corpus: Corpus | None = None,
    max_examples: int = 5,
) -> list[Diagnostic]:
    """Flag positions whose cardinality is high and exceeds a position to their right.

    A position ``i`` is flagged when ``distinct(i) / total(i) > threshold``
    and some ``j > i`` has ``distinct(j) < distinct(i)``.  When *corpus* is
    given, the diagnostic lists example subjects and a suggested rewrite
    moving the identifier after the lowest-cardinality position to its right.
    """
    diagnostics: list[Diagnostic] = []
    for domain, positions in profiles.items():
        for profile in positions:
            if profile.ratio <= threshold:
                continue
            lower = [p for p in positions[profile.position + 1 :] if p.distinct < profile.distinct]
            if not lower:
                continue
            # Lowest cardinality to the right; leftmost on ties.
            pivot = min(lower, key=lambda p: (p.distinct, p.position))

            examples: tuple[str, ...] = ()
            rewrite: str | None = None
            if corpus is not None:
                deep = [s for s in corpus.subjects.get(domain, ()) if len(s) > pivot.position]
                examples = tuple(str(s) for s in deep[:max_examples])
                if deep:
                    rewrite = _rewrite(deep[0], profile.position, pivot.position)
            if not examples:
                examples = (f"{domain}.<position {profile.position}>",)

            diagnostics.append(
                Diagnostic(
                    rule_id=HIGH_CARDINALITY_LEFT,
                    severity=CRITICAL,
                    subjects=examples,
                    evidence=(
                        f"Domain '{domain}' position {profile.position} has "
                        f"{profile.distinct} distinct value(s) across {profile.total} "
                        f"subject(s) (ratio {profile.ratio:.2f} > {threshold:.2f}) but "
                        f"position {pivot.position} to its right has only "
                        f"{pivot.distinct}; high-cardinality tokens should sit "
                        f"further right"
                    ),
                    suggested_rewrite=rewrite,
                )
            )
    return diagnostics
