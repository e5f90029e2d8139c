# subjectlint:domain=subjects
"""Subject and Pattern value objects built on top of the tokenizer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from subjectlint.subjects.tokenizer import (
    LITERAL,
    MULTI_WILDCARD,
    SEPARATOR,
    InvalidCharacterError,
    Segment,
    tokenize,
)

if TYPE_CHECKING:
    from collections.abc import Iterable


def _join(segments: tuple[Segment, ...]) -> str:
    return SEPARATOR.join(seg.value for seg in segments)


def _revalidate(segments: tuple[Segment, ...], reserved: frozenset[str]) -> None:
    """Run hand-built *segments* back through the tokenizer.

    Raises the tokenizer's ParseError for any lexical violation, and
    ``ValueError`` when a segment's kind disagrees with its text.
    """
    raw = _join(segments)
    if tokenize(raw, reserved=reserved) != segments:
        msg = f"'{raw}': segment kinds do not match their text"
        raise ValueError(msg)


@dataclass(frozen=True)
class Subject:
    """A concrete, wildcard-free message address.

    ``reserved`` lists root tokens (e.g. ``_INBOX``) accepted verbatim; it
    takes no part in equality or hashing.
    """

    segments: tuple[Segment, ...]
    reserved: frozenset[str] = field(default=frozenset(), compare=False, repr=False)

    def __post_init__(self) -> None:
        if not self.segments:
            msg = "Subject must contain at least one segment"
            raise ValueError(msg)
        for position, seg in enumerate(self.segments):
            if seg.kind != LITERAL:
                raw = _join(self.segments)
                raise InvalidCharacterError(
                    raw,
                    f"'{raw}': subjects may not contain wildcards "
                    f"(found '{seg.value}' at segment {position})",
                    position=position,
                    segment=seg.value,
                    reason="wildcard",
                )
        _revalidate(self.segments, self.reserved)

    @classmethod
    def parse(cls, raw: str, *, reserved: Iterable[str] = ()) -> Subject:
        """Tokenize *raw* into a Subject, raising ParseError on any violation."""
        roots = frozenset(reserved)
        return cls(tokenize(raw, reserved=roots), roots)

    @classmethod
    def from_tokens(cls, tokens: Iterable[str], *, reserved: Iterable[str] = ()) -> Subject:
        """Build a Subject from literal tokens, validating each one."""
        return cls(tuple(Segment(LITERAL, token) for token in tokens), frozenset(reserved))

    @property
    def tokens(self) -> tuple[str, ...]:
        return tuple(seg.value for seg in self.segments)

    @property
    def domain(self) -> str:
        return self.segments[0].value

    def __len__(self) -> int:
        return len(self.segments)

    def __str__(self) -> str:
        return _join(self.segments)

    def __lt__(self, other: Subject) -> bool:
        return str(self) < str(other)


@dataclass(frozen=True)
class Pattern:
    """A subject template that may contain ``*`` and a trailing ``>``.

    ``reserved`` works as on :class:`Subject`.
    """

    segments: tuple[Segment, ...]
    reserved: frozenset[str] = field(default=frozenset(), compare=False, repr=False)

    def __post_init__(self) -> None:
        if not self.segments:
            msg = "Pattern must contain at least one segment"
            raise ValueError(msg)
        _revalidate(self.segments, self.reserved)

    @classmethod
    def parse(cls, raw: str, *, reserved: Iterable[str] = ()) -> Pattern:
        """Tokenize *raw* into a Pattern, raising ParseError on any violation."""
        roots = frozenset(reserved)
        return cls(tokenize(raw, reserved=roots), roots)

    @classmethod
    def from_subject(cls, subject: Subject) -> Pattern:
        return cls(subject.segments, subject.reserved)

    @property
    def tokens(self) -> tuple[str, ...]:
        return tuple(seg.value for seg in self.segments)

    @property
    def domain(self) -> str | None:
        """Root literal, or None when the pattern starts with a wildcard."""
        root = self.segments[0]
        return root.value if root.kind == LITERAL else None

    @property
    def is_literal(self) -> bool:
        return all(seg.kind == LITERAL for seg in self.segments)

    @property
    def has_multi_wildcard(self) -> bool:
        return self.segments[-1].kind == MULTI_WILDCARD

    def __len__(self) -> int:
        return len(self.segments)

    def __str__(self) -> str:
        return _join(self.segments)

    def __lt__(self, other: Pattern) -> bool:
        return str(self) < str(other)
