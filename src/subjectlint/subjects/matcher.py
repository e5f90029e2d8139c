# subjectlint:domain=subjects
"""Pattern matcher: NATS-style ``*``/``>`` matching, a compiled trie index, and pattern algebra."""

from __future__ import annotations

from typing import TYPE_CHECKING

from subjectlint.subjects.model import Pattern
from subjectlint.subjects.tokenizer import (
    LITERAL,
    MULTI_WILDCARD,
    SINGLE_WILDCARD,
    Segment,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from subjectlint.subjects.model import Subject

# ---------------------------------------------------------------------------
# Single match
# ---------------------------------------------------------------------------


def match(subject: Subject, pattern: Pattern) -> bool:
    """Return True if *subject* satisfies *pattern*.

    ``*`` matches exactly one segment.  A trailing ``>`` matches one or
    more remaining segments, so ``orders.created`` does not match
    ``orders.created.>``.
    """
    tokens = subject.tokens
    segments = pattern.segments
    n = len(tokens)
    m = len(segments)

    if segments[-1].kind == MULTI_WILDCARD:
        if n < m:
            return False
        compared = segments[:-1]
    else:
        if n != m:
            return False
        compared = segments

    for token, seg in zip(tokens, compared):
        if seg.kind == LITERAL and seg.value != token:
            return False
    return True


# ---------------------------------------------------------------------------
# Compiled index
# ---------------------------------------------------------------------------


class _TrieNode:
    """One level of the pattern trie."""

    __slots__ = ("literals", "multi", "single", "terminal")

    def __init__(self) -> None:
        self.literals: dict[str, _TrieNode] = {}
        self.single: _TrieNode | None = None
        self.terminal: Pattern | None = None  # pattern ending exactly here
        self.multi: Pattern | None = None  # pattern ending with '>' below here


class PatternIndex:
    """Immutable prefix trie over a set of patterns.

    Safe for concurrent read-only lookups.  There are no mutators: when the
    pattern set changes, build a new index with :meth:`rebuild` and swap
    the reference.
    """

    def __init__(self, patterns: Iterable[Pattern] = ()) -> None:
        self._root = _TrieNode()
        self._patterns: frozenset[Pattern] = frozenset(patterns)
        for pattern in self._patterns:
            self._insert(pattern)

    def _insert(self, pattern: Pattern) -> None:
        node = self._root
        for seg in pattern.segments:
            if seg.kind == MULTI_WILDCARD:
                node.multi = pattern
                return
            if seg.kind == SINGLE_WILDCARD:
                if node.single is None:
                    node.single = _TrieNode()
                node = node.single
            else:
                child = node.literals.get(seg.value)
                if child is None:
                    child = _TrieNode()
                    node.literals[seg.value] = child
                node = child
        node.terminal = pattern

    @property
    def patterns(self) -> frozenset[Pattern]:
        return self._patterns

    def matching_patterns(self, subject: Subject) -> frozenset[Pattern]:
        """Return every indexed pattern that *subject* satisfies."""
        found: set[Pattern] = set()
        beam: list[_TrieNode] = [self._root]
        for token in subject.tokens:
            next_beam: list[_TrieNode] = []
            for node in beam:
                # At least one token remains, so a '>' here binds.
                if node.multi is not None:
                    found.add(node.multi)
                child = node.literals.get(token)
                if child is not None:
                    next_beam.append(child)
                if node.single is not None:
                    next_beam.append(node.single)
            beam = next_beam
            if not beam:
                break
        else:
            for node in beam:
                if node.terminal is not None:
                    found.add(node.terminal)
        return frozenset(found)

    def matches(self, subject: Subject) -> bool:
        """Return True if any indexed pattern matches *subject*."""
        return bool(self.matching_patterns(subject))

    def rebuild(self, patterns: Iterable[Pattern]) -> PatternIndex:
        """Return a fresh index over *patterns*; this index is left untouched."""
        return PatternIndex(patterns)

    def __len__(self) -> int:
        return len(self._patterns)

    def __contains__(self, pattern: object) -> bool:
        return pattern in self._patterns

    def __iter__(self) -> Iterator[Pattern]:
        return iter(sorted(self._patterns))


def compile_index(patterns: Iterable[Pattern]) -> PatternIndex:
    """Compile *patterns* into a :class:`PatternIndex` (duplicates collapse)."""
    return PatternIndex(patterns)


# ---------------------------------------------------------------------------
# Pattern algebra
# ---------------------------------------------------------------------------


def _meet(a: Segment, b: Segment) -> Segment | None:
    """Intersect two single-position segments (neither is '>')."""
    if a.kind == LITERAL and b.kind == LITERAL:
        return a if a.value == b.value else None
    if a.kind == LITERAL:
        return a
    return b


def intersect(a: Pattern, b: Pattern) -> Pattern | None:
    """Return the pattern matching exactly the subjects matched by both *a* and *b*.

    Returns None when no subject can satisfy both.
    """
    left = a.segments
    right = b.segments
    roots = a.reserved | b.reserved
    result: list[Segment] = []
    i = 0
    while True:
        left_done = i >= len(left)
        right_done = i >= len(right)
        if left_done and right_done:
            return Pattern(tuple(result), roots)
        if left_done or right_done:
            return None
        seg_a = left[i]
        seg_b = right[i]
        if seg_a.kind == MULTI_WILDCARD:
            # '>' absorbs the rest of the other side, which has >= 1 segment here.
            return Pattern((*result, *right[i:]), roots)
        if seg_b.kind == MULTI_WILDCARD:
            return Pattern((*result, *left[i:]), roots)
        met = _meet(seg_a, seg_b)
        if met is None:
            return None
        result.append(met)
        i += 1


def overlaps(a: Pattern, b: Pattern) -> bool:
    """Return True if some subject matches both patterns."""
    return intersect(a, b) is not None


def covers(general: Pattern, specific: Pattern) -> bool:
    """Return True if every subject matched by *specific* is matched by *general*."""
    outer = general.segments
    inner = specific.segments
    for i, seg in enumerate(outer):
        if seg.kind == MULTI_WILDCARD:
            return len(inner) > i
        if i >= len(inner):
            return False
        other = inner[i]
        if other.kind == MULTI_WILDCARD:
            return False
        if seg.kind == LITERAL and (other.kind != LITERAL or other.value != seg.value):
            return False
    return len(inner) == len(outer)
