# subjectlint:domain=auth
"""Authorization projector: compile per-principal allow/deny sets and prove tenant isolation."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from subjectlint.analysis.diagnostics import CRITICAL, INFO, WARNING, Diagnostic
from subjectlint.subjects.matcher import PatternIndex, covers, intersect, match, overlaps
from subjectlint.subjects.model import Pattern, Subject
from subjectlint.subjects.tokenizer import LITERAL, tokenize

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

    from subjectlint.analysis.config import RuleConfig

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

ISOLATION_VIOLATION = "isolation-violation"
REDUNDANT_ALLOW = "redundant-allow"
SHADOWED_ALLOW = "shadowed-allow"
UNUSED_DENY = "unused-deny"

# Upper bound on synthesized witness candidates per overlap.
_MAX_CANDIDATES = 256
# Upper bound on deny-escape candidates searched per overlap.
_MAX_REPRESENTATIVES = 4096

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class AuthorizationError(ValueError):
    """Raised when a permission set is structurally invalid (e.g. duplicate principals)."""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PrincipalPermission:
    """Allow/deny pattern sets held by one principal."""

    principal_id: str
    allow: frozenset[Pattern] = frozenset()
    deny: frozenset[Pattern] = frozenset()

    @classmethod
    def from_strings(
        cls,
        principal_id: str,
        allow: Iterable[str] = (),
        deny: Iterable[str] = (),
        *,
        reserved: Iterable[str] = (),
    ) -> PrincipalPermission:
        """Parse pattern strings; raises ParseError on the first invalid one."""
        roots = tuple(reserved)
        return cls(
            principal_id=principal_id,
            allow=frozenset(Pattern.parse(raw, reserved=roots) for raw in allow),
            deny=frozenset(Pattern.parse(raw, reserved=roots) for raw in deny),
        )


@dataclass(frozen=True)
class _CompiledPrincipal:
    allow: PatternIndex
    deny: PatternIndex


class CompiledPermissionSet:
    """Matcher indexes for every principal; read-only once built."""

    def __init__(self, permissions: Iterable[PrincipalPermission]) -> None:
        compiled: dict[str, _CompiledPrincipal] = {}
        for perm in permissions:
            if perm.principal_id in compiled:
                msg = f"Duplicate principal '{perm.principal_id}' in permission set"
                raise AuthorizationError(msg)
            compiled[perm.principal_id] = _CompiledPrincipal(
                allow=PatternIndex(perm.allow), deny=PatternIndex(perm.deny)
            )
        self._principals: Mapping[str, _CompiledPrincipal] = compiled

    @property
    def principals(self) -> tuple[str, ...]:
        return tuple(sorted(self._principals))

    def is_allowed(self, principal_id: str, subject: Subject) -> bool:
        """Allowed iff some allow pattern matches and no deny pattern does.

        Unknown principals are denied.
        """
        entry = self._principals.get(principal_id)
        if entry is None:
            return False
        if entry.deny.matches(subject):
            return False
        return entry.allow.matches(subject)

    def to_dict(self) -> dict[str, dict[str, list[str]]]:
        """Serialize as sorted allow/deny pattern lists per principal."""
        return {
            principal: {
                "allow": sorted(str(p) for p in entry.allow.patterns),
                "deny": sorted(str(p) for p in entry.deny.patterns),
            }
            for principal, entry in sorted(self._principals.items())
        }


def compile_permissions(permissions: Iterable[PrincipalPermission]) -> CompiledPermissionSet:
    """Compile *permissions* into a :class:`CompiledPermissionSet`.

    Raises :class:`AuthorizationError` on duplicate principal ids.
    """
    return CompiledPermissionSet(permissions)


# ---------------------------------------------------------------------------
# Isolation
# ---------------------------------------------------------------------------


def _observed_literals(samples: list[Subject]) -> dict[int, list[str]]:
    seen: dict[int, set[str]] = {}
    for sample in samples:
        for position, token in enumerate(sample.tokens):
            seen.setdefault(position, set()).add(token)
    return {position: sorted(tokens) for position, tokens in seen.items()}


def _witness_candidates(
    overlap: Pattern, samples: list[Subject], placeholder: str, roots: frozenset[str]
) -> list[Subject]:
    """Concrete subjects in *overlap*: matching samples first, then synthesized ones."""
    matching = sorted(
        (s for s in samples if match(s, overlap)), key=lambda s: (len(s), str(s))
    )

    observed = _observed_literals(samples)
    choices: list[list[str]] = []
    for position, seg in enumerate(overlap.segments):
        if seg.kind == LITERAL:
            choices.append([seg.value])
        else:
            # '>' binds a single segment here.
            options = [t for t in observed.get(position, []) if t != placeholder]
            choices.append([*options, placeholder])

    synthesized: list[Subject] = []
    for tokens in itertools.islice(itertools.product(*choices), _MAX_CANDIDATES):
        candidate = Subject.from_tokens(tokens, reserved=roots)
        if candidate not in matching:
            synthesized.append(candidate)
    return [*matching, *synthesized]


def _pinned_literals(position: int, denies: frozenset[Pattern]) -> set[str]:
    return {
        d.segments[position].value
        for d in denies
        if position < len(d) and d.segments[position].kind == LITERAL
    }


def _fresh_literal(position: int, denies: frozenset[Pattern], placeholder: str) -> str:
    """Return *placeholder*, suffixed until no deny pins it at *position*."""
    taken = _pinned_literals(position, denies)
    candidate = placeholder
    suffix = 0
    while candidate in taken:
        suffix += 1
        candidate = f"{placeholder}-{suffix}"
    return candidate


def _representatives(
    overlap: Pattern, denies: frozenset[Pattern], placeholder: str, roots: frozenset[str]
) -> Iterator[Subject]:
    """Yield one subject of *overlap* per class of subjects the denies treat alike.

    At a wildcard position every literal no deny pins behaves the same, so
    one fresh literal stands in for all of them next to the pinned ones.
    Subjects longer than every deny also behave the same, which bounds how
    far ``>`` is expanded.  If none of these escapes the denies, no subject
    of *overlap* does.
    """
    multi = overlap.has_multi_wildcard
    head = overlap.segments[:-1] if multi else overlap.segments
    if multi:
        longest = max((len(d) for d in denies), default=0)
        lengths = range(len(overlap), max(len(overlap), longest + 1) + 1)
    else:
        lengths = range(len(overlap), len(overlap) + 1)

    for length in lengths:
        choices: list[list[str]] = []
        for position in range(length):
            if position < len(head) and head[position].kind == LITERAL:
                choices.append([head[position].value])
                continue
            pinned = sorted(_pinned_literals(position, denies))
            choices.append([_fresh_literal(position, denies, placeholder), *pinned])
        for tokens in itertools.product(*choices):
            yield Subject.from_tokens(tokens, reserved=roots)


def _escape_witness(
    overlap: Pattern, denies: PatternIndex, placeholder: str, roots: frozenset[str]
) -> tuple[Subject | None, bool]:
    """Search the representatives of *overlap* for a subject no deny matches.

    Returns the witness (or None) and whether the search was exhaustive.
    """
    candidates = _representatives(overlap, denies.patterns, placeholder, roots)
    for count, candidate in enumerate(candidates):
        if count >= _MAX_REPRESENTATIVES:
            return None, False
        if not denies.matches(candidate):
            return candidate, True
    return None, True


def _find_leaks(
    first: PrincipalPermission,
    second: PrincipalPermission,
    samples: list[Subject],
    placeholder: str,
) -> list[Diagnostic]:
    denies = PatternIndex(first.deny | second.deny)
    known_roots = frozenset().union(
        *(p.reserved for p in denies.patterns), *(s.reserved for s in samples)
    )
    leaks: list[Diagnostic] = []
    seen: set[Pattern] = set()

    for allow_a in sorted(first.allow):
        for allow_b in sorted(second.allow):
            overlap = intersect(allow_a, allow_b)
            if overlap is None or overlap in seen:
                continue
            seen.add(overlap)
            if any(covers(d, overlap) for d in denies.patterns):
                continue
            roots = known_roots | overlap.reserved
            witness = next(
                (
                    c
                    for c in _witness_candidates(overlap, samples, placeholder, roots)
                    if not denies.matches(c)
                ),
                None,
            )
            if witness is None:
                witness, exhaustive = _escape_witness(overlap, denies, placeholder, roots)
                if witness is None and exhaustive:
                    logger.debug("Overlap %s is fully denied by the combined deny set", overlap)
                    continue

            access = (
                f"Isolated principals '{first.principal_id}' (allow '{allow_a}') and "
                f"'{second.principal_id}' (allow '{allow_b}') can both access '{overlap}'"
            )
            if witness is None:
                subjects = (str(overlap),)
                evidence = (
                    f"{access}; no example subject escaping the deny set was found "
                    f"within {_MAX_REPRESENTATIVES} candidates"
                )
            else:
                subjects = (str(witness),)
                evidence = f"{access}, e.g. '{witness}'"
            leaks.append(
                Diagnostic(
                    rule_id=ISOLATION_VIOLATION,
                    severity=CRITICAL,
                    subjects=subjects,
                    evidence=evidence,
                )
            )
    return leaks


def verify_isolation(
    permissions: Iterable[PrincipalPermission],
    isolation_groups: Iterable[Iterable[str]],
    *,
    samples: Iterable[Subject] = (),
    placeholder: str = "x",
) -> list[Diagnostic]:
    """Report every subject-space overlap between principals that must stay isolated.

    For each pair of principals in the same isolation group, any subject
    matched by both allow sets and denied by neither is a leak, reported as
    a Critical diagnostic with an example subject.  Example subjects come
    from *samples* when one fits, otherwise wildcard positions are filled
    with literals observed in *samples*, then *placeholder*.  When every
    such candidate is denied, the overlap is searched for any subject the
    combined deny set misses; it is dropped only if none exists.

    Violations are reported, never raised.  Raises ``ValueError`` when
    *placeholder* is not a single literal segment.
    """
    placeholder_segments = tokenize(placeholder)
    if len(placeholder_segments) != 1 or not placeholder_segments[0].is_literal:
        msg = f"Witness placeholder '{placeholder}' must be a single literal segment"
        raise ValueError(msg)

    by_id = {perm.principal_id: perm for perm in permissions}
    sample_list = list(samples)
    diagnostics: list[Diagnostic] = []

    for group in isolation_groups:
        members = sorted(set(group))
        unknown = [m for m in members if m not in by_id]
        if unknown:
            logger.warning("Isolation group references unknown principal(s): %s", unknown)
        known = [m for m in members if m in by_id]
        for first_id, second_id in itertools.combinations(known, 2):
            diagnostics.extend(
                _find_leaks(by_id[first_id], by_id[second_id], sample_list, placeholder)
            )

    if diagnostics:
        logger.info("Isolation check found %d cross-principal overlap(s)", len(diagnostics))
    return diagnostics


def verify_configured_isolation(
    permissions: Iterable[PrincipalPermission],
    config: RuleConfig,
    *,
    samples: Iterable[Subject] = (),
    placeholder: str = "x",
) -> list[Diagnostic]:
    """Run :func:`verify_isolation` over the isolation groups declared in *config*."""
    if not config.isolation_groups:
        logger.debug("No isolation groups configured; nothing to verify")
    return verify_isolation(
        permissions, config.isolation_groups, samples=samples, placeholder=placeholder
    )


# ---------------------------------------------------------------------------
# Least privilege
# ---------------------------------------------------------------------------


def audit_least_privilege(permissions: Iterable[PrincipalPermission]) -> list[Diagnostic]:
    """Flag redundant allows, allows fully shadowed by a deny, and denies that block nothing."""
    diagnostics: list[Diagnostic] = []
    for perm in permissions:
        allows = sorted(perm.allow)
        denies = sorted(perm.deny)
        for allow in allows:
            wider = next((o for o in allows if o != allow and covers(o, allow)), None)
            if wider is not None:
                diagnostics.append(
                    Diagnostic(
                        rule_id=REDUNDANT_ALLOW,
                        severity=INFO,
                        subjects=(str(allow),),
                        evidence=(
                            f"Principal '{perm.principal_id}': allow '{allow}' is already "
                            f"granted by '{wider}'"
                        ),
                    )
                )
            shadow = next((d for d in denies if covers(d, allow)), None)
            if shadow is not None:
                diagnostics.append(
                    Diagnostic(
                        rule_id=SHADOWED_ALLOW,
                        severity=WARNING,
                        subjects=(str(allow),),
                        evidence=(
                            f"Principal '{perm.principal_id}': allow '{allow}' is entirely "
                            f"denied by '{shadow}'"
                        ),
                    )
                )
        for deny in denies:
            if not any(overlaps(deny, allow) for allow in allows):
                diagnostics.append(
                    Diagnostic(
                        rule_id=UNUSED_DENY,
                        severity=INFO,
                        subjects=(str(deny),),
                        evidence=(
                            f"Principal '{perm.principal_id}': deny '{deny}' overlaps no "
                            f"allow pattern"
                        ),
                    )
                )
    return diagnostics
