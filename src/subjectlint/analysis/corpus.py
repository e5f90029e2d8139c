# subjectlint:domain=analysis
"""Corpus: the parsed, per-domain view of the subjects and patterns under analysis."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from subjectlint.subjects.model import Pattern, Subject
from subjectlint.subjects.tokenizer import ParseError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

logger = logging.getLogger(__name__)

# Domain key for patterns whose root segment is a wildcard.
WILDCARD_ROOT = "*"


@dataclass(frozen=True)
class Corpus:
    """Subjects and declared subscriber patterns grouped by domain.

    Built once per analysis run and read-only afterwards.  Items that fail
    to parse are kept in ``errors`` rather than aborting the build.
    """

    subjects: Mapping[str, tuple[Subject, ...]] = field(default_factory=dict)
    patterns: Mapping[str, tuple[Pattern, ...]] = field(default_factory=dict)
    volumes: Mapping[str, int] = field(default_factory=dict)
    errors: tuple[ParseError, ...] = ()
    reserved: tuple[Subject | Pattern, ...] = ()

    @classmethod
    def build(
        cls,
        subjects: Iterable[str],
        patterns: Iterable[str] = (),
        *,
        reserved_prefixes: Iterable[str] = (),
    ) -> Corpus:
        """Parse caller-supplied strings into a Corpus.

        Duplicate subjects collapse in the per-domain set but still count
        towards that domain's publish volume.  Items rooted at a reserved
        prefix are parsed and set aside in ``reserved``.
        """
        reserved_roots = frozenset(reserved_prefixes)
        by_domain: dict[str, set[Subject]] = {}
        patterns_by_domain: dict[str, set[Pattern]] = {}
        volumes: Counter[str] = Counter()
        errors: list[ParseError] = []
        reserved_items: list[Subject | Pattern] = []

        for raw in subjects:
            try:
                subject = Subject.parse(raw, reserved=reserved_roots)
            except ParseError as exc:
                logger.debug("Skipping unparseable subject %r: %s", raw, exc)
                errors.extend(exc.errors)
                continue
            if subject.domain in reserved_roots:
                reserved_items.append(subject)
                continue
            by_domain.setdefault(subject.domain, set()).add(subject)
            volumes[subject.domain] += 1

        for raw in patterns:
            try:
                pattern = Pattern.parse(raw, reserved=reserved_roots)
            except ParseError as exc:
                logger.debug("Skipping unparseable pattern %r: %s", raw, exc)
                errors.extend(exc.errors)
                continue
            domain = pattern.domain
            if domain in reserved_roots:
                reserved_items.append(pattern)
                continue
            patterns_by_domain.setdefault(domain or WILDCARD_ROOT, set()).add(pattern)

        return cls(
            subjects={d: tuple(sorted(s)) for d, s in sorted(by_domain.items())},
            patterns={d: tuple(sorted(p)) for d, p in sorted(patterns_by_domain.items())},
            volumes=dict(sorted(volumes.items())),
            errors=tuple(errors),
            reserved=tuple(reserved_items),
        )

    @property
    def domains(self) -> tuple[str, ...]:
        return tuple(self.subjects)

    def all_subjects(self) -> list[Subject]:
        return [s for items in self.subjects.values() for s in items]

    def all_patterns(self) -> list[Pattern]:
        return [p for items in self.patterns.values() for p in items]

    def max_depth(self, domain: str) -> int:
        return max((len(s) for s in self.subjects.get(domain, ())), default=0)
