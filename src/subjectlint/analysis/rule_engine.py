# subjectlint:domain=analysis
"""Anti-pattern rule engine: run the subject-design checks over a corpus."""

from __future__ import annotations

import logging
import re
from collections import Counter
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING

from subjectlint.analysis.cardinality import (
    CardinalityProfile,
    analyze_cardinality,
    detect_left_heavy_cardinality,
    profile_corpus,
)
from subjectlint.analysis.config import (
    AMBIGUOUS_NAMING,
    CASING_SEPARATOR_DRIFT,
    HIGH_CARDINALITY_LEFT,
    INCONSISTENT_ORDERING,
    OVER_SEGMENTATION,
    PARSE_ERROR,
    RULE_IDS,
    UNDER_SEGMENTATION,
    UNPLANNED_WILDCARD_RISK,
    VERSION_MISPLACEMENT,
    RuleConfig,
)
from subjectlint.analysis.diagnostics import (
    CRITICAL,
    INFO,
    WARNING,
    Diagnostic,
    sort_diagnostics,
)
from subjectlint.subjects.tokenizer import (
    SINGLE_WILDCARD,
    InvalidCharacterError,
    normalize_literal,
)

if TYPE_CHECKING:
    from subjectlint.analysis.corpus import Corpus
    from subjectlint.subjects.model import Subject

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"v[0-9]+")

# ---------------------------------------------------------------------------
# Shared context
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RuleContext:
    """Read-only inputs shared by every check in one run."""

    corpus: Corpus
    config: RuleConfig
    profiles: dict[str, tuple[CardinalityProfile, ...]]
    root_profile: tuple[CardinalityProfile, ...]

    @classmethod
    def build(cls, corpus: Corpus, config: RuleConfig) -> RuleContext:
        return cls(
            corpus=corpus,
            config=config,
            profiles=analyze_cardinality(corpus),
            root_profile=profile_corpus(corpus),
        )


Check = Callable[[RuleContext], list[Diagnostic]]

# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------


def check_parse_errors(ctx: RuleContext) -> list[Diagnostic]:
    """Surface every per-item parse failure as its own Critical diagnostic."""
    return [
        Diagnostic(
            rule_id=PARSE_ERROR,
            severity=CRITICAL,
            subjects=(err.raw,),
            evidence=err.message,
        )
        for err in ctx.corpus.errors
    ]


def check_high_cardinality_left(ctx: RuleContext) -> list[Diagnostic]:
    return detect_left_heavy_cardinality(
        ctx.profiles,
        ctx.config.high_cardinality_threshold,
        corpus=ctx.corpus,
        max_examples=ctx.config.max_examples,
    )


def _action_positions(subject: Subject, vocabulary: frozenset[str]) -> tuple[int, ...]:
    return tuple(i for i, token in enumerate(subject.tokens) if i > 0 and token in vocabulary)


def _move_token(subject: Subject, src: int, dst: int) -> str:
    tokens = list(subject.tokens)
    tokens.insert(dst, tokens.pop(src))
    return ".".join(tokens)


def check_inconsistent_ordering(ctx: RuleContext) -> list[Diagnostic]:
    """Flag subjects whose action token sits at a different position than its peers'.

    Peers are subjects of the same domain and depth.  Nothing is reported
    while the dissenting fraction stays within ``ordering_tolerance``.
    """
    vocabulary = ctx.config.action_vocabulary
    diagnostics: list[Diagnostic] = []

    for domain, subjects in ctx.corpus.subjects.items():
        by_depth: dict[int, list[tuple[Subject, int]]] = {}
        for subject in subjects:
            positions = _action_positions(subject, vocabulary)
            if positions:
                by_depth.setdefault(len(subject), []).append((subject, positions[0]))

        for depth, group in sorted(by_depth.items()):
            counts = Counter(pos for _subject, pos in group)
            # Mode; ties resolve to the leftmost position.
            dominant = max(counts, key=lambda pos: (counts[pos], -pos))
            dissenters = [(s, pos) for s, pos in group if pos != dominant]
            fraction = len(dissenters) / len(group)
            if not dissenters or fraction <= ctx.config.ordering_tolerance:
                continue
            for subject, pos in dissenters:
                diagnostics.append(
                    Diagnostic(
                        rule_id=INCONSISTENT_ORDERING,
                        severity=WARNING,
                        subjects=(str(subject),),
                        evidence=(
                            f"Domain '{domain}' depth-{depth} subjects place the action at "
                            f"position {dominant} ({counts[dominant]} of {len(group)}), "
                            f"but '{subject}' has action '{subject.tokens[pos]}' at "
                            f"position {pos} ({fraction:.0%} disagree, tolerance "
                            f"{ctx.config.ordering_tolerance:.0%})"
                        ),
                        suggested_rewrite=_move_token(subject, pos, dominant),
                    )
                )
    return diagnostics


def check_over_segmentation(ctx: RuleContext) -> list[Diagnostic]:
    limit = ctx.config.max_segment_depth
    return [
        Diagnostic(
            rule_id=OVER_SEGMENTATION,
            severity=WARNING,
            subjects=(str(subject),),
            evidence=f"'{subject}' has {len(subject)} segments (max {limit})",
        )
        for subject in ctx.corpus.all_subjects()
        if len(subject) > limit
    ]


def check_under_segmentation(ctx: RuleContext) -> list[Diagnostic]:
    """Flag shallow domains that deeper siblings of similar volume outgrow.

    A domain shallower than ``min_segment_depth`` is reported when a
    sibling with publish volume within ``volume_tolerance`` is deeper, or
    when none of its subjects carries an action token after the root (so a
    subscriber could only filter by action with ``domain.>``).
    """
    corpus = ctx.corpus
    config = ctx.config
    diagnostics: list[Diagnostic] = []

    for domain, subjects in corpus.subjects.items():
        depth = corpus.max_depth(domain)
        if depth >= config.min_segment_depth:
            continue
        volume = corpus.volumes.get(domain, 0)

        reasons: list[str] = []
        for sibling in corpus.domains:
            if sibling == domain:
                continue
            sibling_volume = corpus.volumes.get(sibling, 0)
            sibling_depth = corpus.max_depth(sibling)
            close = abs(sibling_volume - volume) <= config.volume_tolerance * max(
                volume, sibling_volume
            )
            if close and sibling_depth > depth:
                reasons.append(
                    f"sibling domain '{sibling}' has similar volume ({sibling_volume} vs "
                    f"{volume}) with depth {sibling_depth}"
                )
                break
        if not any(_action_positions(s, config.action_vocabulary) for s in subjects):
            reasons.append(
                f"no subject carries an action token, so subscribers can only filter "
                f"with '{domain}.>'"
            )
        if not reasons:
            continue

        diagnostics.append(
            Diagnostic(
                rule_id=UNDER_SEGMENTATION,
                severity=INFO,
                subjects=tuple(str(s) for s in subjects[: config.max_examples]),
                evidence=(
                    f"Domain '{domain}' has depth {depth} (min {config.min_segment_depth}): "
                    + "; ".join(reasons)
                ),
            )
        )
    return diagnostics


def check_ambiguous_naming(ctx: RuleContext) -> list[Diagnostic]:
    terms = ctx.config.ambiguous_terms
    diagnostics: list[Diagnostic] = []
    items = [*ctx.corpus.all_subjects(), *ctx.corpus.all_patterns()]
    for item in items:
        for position, seg in enumerate(item.segments):
            if seg.is_literal and seg.value in terms:
                diagnostics.append(
                    Diagnostic(
                        rule_id=AMBIGUOUS_NAMING,
                        severity=WARNING,
                        subjects=(str(item),),
                        evidence=(
                            f"'{item}' segment {position} '{seg.value}' is a vague term; "
                            f"name the entity or action explicitly"
                        ),
                    )
                )
    return diagnostics


def check_version_misplacement(ctx: RuleContext) -> list[Diagnostic]:
    """Flag version tokens that precede the domain's scope/action segments."""
    min_position = ctx.config.min_version_position
    diagnostics: list[Diagnostic] = []
    for subject in ctx.corpus.all_subjects():
        for position, token in enumerate(subject.tokens):
            if position >= min_position or not _VERSION_RE.fullmatch(token):
                continue
            rest = [t for i, t in enumerate(subject.tokens) if i != position]
            rest.insert(min(min_position, len(rest)), token)
            diagnostics.append(
                Diagnostic(
                    rule_id=VERSION_MISPLACEMENT,
                    severity=WARNING,
                    subjects=(str(subject),),
                    evidence=(
                        f"'{subject}' has version '{token}' at position {position}; "
                        f"versions belong at position {min_position} or later, after "
                        f"domain and scope"
                    ),
                    suggested_rewrite=".".join(rest),
                )
            )
    return diagnostics


def check_casing_separator_drift(ctx: RuleContext) -> list[Diagnostic]:
    """Aggregate invalid-character parse failures per input string."""
    by_raw: dict[str, list[InvalidCharacterError]] = {}
    for err in ctx.corpus.errors:
        if isinstance(err, InvalidCharacterError) and err.reason != "wildcard":
            by_raw.setdefault(err.raw, []).append(err)
    if not by_raw:
        return []

    failed = {err.raw for err in ctx.corpus.errors}
    total = len(ctx.corpus.all_subjects()) + len(ctx.corpus.all_patterns()) + len(failed)
    diagnostics: list[Diagnostic] = []
    for raw, errors in by_raw.items():
        reasons = sorted({err.reason for err in errors})
        bad = {err.position for err in errors}
        rewrite = ".".join(
            normalize_literal(token) if i in bad else token
            for i, token in enumerate(raw.split("."))
        )
        diagnostics.append(
            Diagnostic(
                rule_id=CASING_SEPARATOR_DRIFT,
                severity=CRITICAL,
                subjects=(raw,),
                evidence=(
                    f"'{raw}' drifts from lowercase-hyphen convention "
                    f"({', '.join(reasons)}) at segment(s) "
                    f"{sorted(p for p in bad if p is not None)}; "
                    f"{len(by_raw)} of {total} corpus item(s) affected"
                ),
                suggested_rewrite=rewrite,
            )
        )
    return diagnostics


def check_unplanned_wildcard_risk(ctx: RuleContext) -> list[Diagnostic]:
    """Flag ``*`` placed where the corpus shows high cardinality."""
    threshold = ctx.config.high_cardinality_threshold
    diagnostics: list[Diagnostic] = []
    for pattern in ctx.corpus.all_patterns():
        domain = pattern.domain
        profile = ctx.profiles.get(domain, ()) if domain is not None else ctx.root_profile
        for position, seg in enumerate(pattern.segments):
            if seg.kind != SINGLE_WILDCARD or position >= len(profile):
                continue
            stats = profile[position]
            if stats.ratio <= threshold:
                continue
            diagnostics.append(
                Diagnostic(
                    rule_id=UNPLANNED_WILDCARD_RISK,
                    severity=WARNING,
                    subjects=(str(pattern),),
                    evidence=(
                        f"'{pattern}' uses '*' at position {position}, where "
                        f"{stats.distinct} distinct value(s) appear across {stats.total} "
                        f"subject(s) (ratio {stats.ratio:.2f} > {threshold:.2f}); the "
                        f"match set grows with every new identifier"
                    ),
                )
            )
    return diagnostics


RULE_CHECKS: dict[str, Check] = {
    HIGH_CARDINALITY_LEFT: check_high_cardinality_left,
    INCONSISTENT_ORDERING: check_inconsistent_ordering,
    OVER_SEGMENTATION: check_over_segmentation,
    UNDER_SEGMENTATION: check_under_segmentation,
    AMBIGUOUS_NAMING: check_ambiguous_naming,
    VERSION_MISPLACEMENT: check_version_misplacement,
    CASING_SEPARATOR_DRIFT: check_casing_separator_drift,
    UNPLANNED_WILDCARD_RISK: check_unplanned_wildcard_risk,
}

# ---------------------------------------------------------------------------
# Combined evaluation
# ---------------------------------------------------------------------------


def analyze(
    corpus: Corpus,
    config: RuleConfig | None = None,
    *,
    max_workers: int | None = None,
) -> list[Diagnostic]:
    """Run the enabled checks over *corpus* and return sorted diagnostics.

    Parse failures are always reported.  With *max_workers* > 1 the checks
    run in a thread pool; they share only read-only inputs, so the result
    is the same either way.
    """
    if config is None:
        config = RuleConfig()
    ctx = RuleContext.build(corpus, config)

    checks: list[tuple[str, Check]] = [(PARSE_ERROR, check_parse_errors)]
    checks.extend(
        (rule_id, RULE_CHECKS[rule_id]) for rule_id in RULE_IDS if config.is_enabled(rule_id)
    )

    if max_workers is not None and max_workers > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            results = list(pool.map(lambda item: item[1](ctx), checks))
    else:
        results = [check(ctx) for _rule_id, check in checks]

    diagnostics: list[Diagnostic] = []
    for (rule_id, _check), found in zip(checks, results):
        logger.debug("Rule %s produced %d diagnostic(s)", rule_id, len(found))
        diagnostics.extend(found)

    return sort_diagnostics(diagnostics)
