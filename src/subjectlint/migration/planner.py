# subjectlint:domain=migration
"""Migration planner: phased, forward-only subject schema migrations.

A plan walks through five phases::

    draft -> dual-publish -> subscriber-cutover -> decommission -> complete

Each phase records the old->new subject mapping in force, the subjects
publishers emit, and the subscriber patterns that must be updated before
the plan may advance.  Transitions only move one phase forward; skipping,
rewinding, or leaving ``complete`` raises :class:`InvalidTransitionError`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from subjectlint.subjects.matcher import overlaps
from subjectlint.subjects.model import Pattern
from subjectlint.subjects.tokenizer import ParseError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from subjectlint.analysis.diagnostics import Diagnostic

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DRAFT = "draft"
DUAL_PUBLISH = "dual-publish"
SUBSCRIBER_CUTOVER = "subscriber-cutover"
DECOMMISSION = "decommission"
COMPLETE = "complete"

PHASE_ORDER: tuple[str, ...] = (DRAFT, DUAL_PUBLISH, SUBSCRIBER_CUTOVER, DECOMMISSION, COMPLETE)

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class InvalidTransitionError(ValueError):
    """Raised when asked to skip, rewind, or leave the terminal phase."""


class SchemaError(ValueError):
    """Raised when a subject schema is malformed."""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SubjectSchema:
    """Logical message names mapped to their subject templates."""

    name: str
    entries: Mapping[str, Pattern]

    def __post_init__(self) -> None:
        if not self.name.strip():
            msg = "Subject schema must have a non-empty name"
            raise SchemaError(msg)

    @classmethod
    def from_strings(
        cls, name: str, entries: Mapping[str, str], *, reserved: Iterable[str] = ()
    ) -> SubjectSchema:
        """Parse template strings; a bad template raises SchemaError naming its entry."""
        roots = tuple(reserved)
        parsed: dict[str, Pattern] = {}
        for logical_name, raw in entries.items():
            try:
                parsed[logical_name] = Pattern.parse(raw, reserved=roots)
            except ParseError as exc:
                msg = f"Schema '{name}': entry '{logical_name}' is invalid: {exc}"
                raise SchemaError(msg) from exc
        return cls(name=name, entries=parsed)


@dataclass(frozen=True)
class Phase:
    """One step of a migration."""

    name: str
    active_mapping: tuple[tuple[str, str], ...]  # (old, new) templates in force
    publish: tuple[str, ...]  # templates publishers emit during this phase
    required_cutovers: tuple[str, ...]  # subscriber patterns to update before advancing
    description: str


@dataclass(frozen=True)
class MigrationPlan:
    """Phased migration between two subject schemas."""

    source: str
    target: str
    phases: tuple[Phase, ...]
    added: tuple[str, ...] = ()
    retired: tuple[str, ...] = ()
    current: str = DRAFT

    @property
    def current_phase(self) -> Phase:
        return self.phase(self.current)

    @property
    def next_phase(self) -> str | None:
        idx = PHASE_ORDER.index(self.current)
        return PHASE_ORDER[idx + 1] if idx + 1 < len(PHASE_ORDER) else None

    @property
    def is_complete(self) -> bool:
        return self.current == COMPLETE

    def phase(self, name: str) -> Phase:
        for candidate in self.phases:
            if candidate.name == name:
                return candidate
        msg = f"Unknown migration phase '{name}', must be one of {list(PHASE_ORDER)}"
        raise KeyError(msg)


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


def plan(
    old: SubjectSchema,
    new: SubjectSchema,
    *,
    subscribers: Iterable[Pattern] = (),
) -> MigrationPlan:
    """Build a migration plan from *old* to *new*.

    Entries present in both schemas with different templates form the
    old->new mapping; entries only in *new* are added, entries only in
    *old* are retired.  Subscriber patterns that overlap a remapped or
    retired template must be cut over; without *subscribers*, the old
    templates themselves are listed.
    """
    mapping: list[tuple[str, str]] = []
    for logical_name in sorted(set(old.entries) & set(new.entries)):
        before = old.entries[logical_name]
        after = new.entries[logical_name]
        if before != after:
            mapping.append((str(before), str(after)))
    added = tuple(sorted(str(new.entries[n]) for n in set(new.entries) - set(old.entries)))
    retired = tuple(sorted(str(old.entries[n]) for n in set(old.entries) - set(new.entries)))

    moving = [
        old.entries[n]
        for n in sorted(old.entries)
        if n not in new.entries or old.entries[n] != new.entries[n]
    ]
    subscriber_list = sorted(set(subscribers))
    if subscriber_list:
        cutovers = tuple(
            str(sub) for sub in subscriber_list if any(overlaps(sub, m) for m in moving)
        )
    else:
        cutovers = tuple(str(m) for m in moving)

    old_publish = tuple(sorted(str(p) for p in old.entries.values()))
    new_publish = tuple(sorted(str(p) for p in new.entries.values()))
    both_publish = tuple(sorted(set(old_publish) | set(new_publish)))
    mapping_t = tuple(mapping)

    phases = (
        Phase(
            name=DRAFT,
            active_mapping=(),
            publish=old_publish,
            required_cutovers=(),
            description=f"Plan drafted; publishers still emit only '{old.name}' subjects",
        ),
        Phase(
            name=DUAL_PUBLISH,
            active_mapping=mapping_t,
            publish=both_publish,
            required_cutovers=(),
            description="Publishers emit both old and new subjects",
        ),
        Phase(
            name=SUBSCRIBER_CUTOVER,
            active_mapping=mapping_t,
            publish=both_publish,
            required_cutovers=cutovers,
            description="Subscribers move to the new subjects",
        ),
        Phase(
            name=DECOMMISSION,
            active_mapping=mapping_t,
            publish=new_publish,
            required_cutovers=(),
            description="Publishers stop emitting old subjects",
        ),
        Phase(
            name=COMPLETE,
            active_mapping=mapping_t,
            publish=new_publish,
            required_cutovers=(),
            description=f"Migration to '{new.name}' complete",
        ),
    )
    logger.debug(
        "Planned %s -> %s: %d remapped, %d added, %d retired, %d cutover(s)",
        old.name,
        new.name,
        len(mapping),
        len(added),
        len(retired),
        len(cutovers),
    )
    return MigrationPlan(
        source=old.name,
        target=new.name,
        phases=phases,
        added=added,
        retired=retired,
    )


def advance(migration: MigrationPlan, phase: str) -> MigrationPlan:
    """Return *migration* moved to *phase*, which must be the immediate next phase."""
    if phase not in PHASE_ORDER:
        msg = f"Unknown migration phase '{phase}', must be one of {list(PHASE_ORDER)}"
        raise InvalidTransitionError(msg)
    if migration.is_complete:
        msg = f"Migration {migration.source} -> {migration.target} is already complete"
        raise InvalidTransitionError(msg)
    expected = migration.next_phase
    if phase != expected:
        msg = (
            f"Cannot move from '{migration.current}' to '{phase}'; "
            f"the next phase is '{expected}'"
        )
        raise InvalidTransitionError(msg)
    return replace(migration, current=phase)


# ---------------------------------------------------------------------------
# Rule engine bridge
# ---------------------------------------------------------------------------


def schemas_from_rewrites(
    diagnostics: Iterable[Diagnostic],
    *,
    source: str = "current",
    target: str = "proposed",
) -> tuple[SubjectSchema, SubjectSchema]:
    """Turn diagnostics carrying a suggested rewrite into an (old, new) schema pair.

    Each rewritten subject becomes one logical entry keyed by its current
    text.  The first rewrite per subject wins; items whose current text
    does not parse (e.g. casing drift) are skipped.
    """
    old_entries: dict[str, Pattern] = {}
    new_entries: dict[str, Pattern] = {}
    for diagnostic in diagnostics:
        if diagnostic.suggested_rewrite is None or not diagnostic.subjects:
            continue
        current = diagnostic.subjects[0]
        if current in old_entries:
            logger.debug("Ignoring extra rewrite for %s from %s", current, diagnostic.rule_id)
            continue
        try:
            before = Pattern.parse(current)
            after = Pattern.parse(diagnostic.suggested_rewrite)
        except ParseError as exc:
            logger.debug("Skipping rewrite of %r: %s", current, exc)
            continue
        old_entries[current] = before
        new_entries[current] = after

    return (
        SubjectSchema(name=source, entries=old_entries),
        SubjectSchema(name=target, entries=new_entries),
    )
