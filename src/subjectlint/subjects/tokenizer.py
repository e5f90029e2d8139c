# subjectlint:domain=subjects
"""Segment tokenizer: split subject and pattern strings into validated segments."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

LITERAL = "literal"
SINGLE_WILDCARD = "single"
MULTI_WILDCARD = "multi"

VALID_SEGMENT_KINDS: frozenset[str] = frozenset({LITERAL, SINGLE_WILDCARD, MULTI_WILDCARD})

SEPARATOR = "."
SINGLE_WILDCARD_TOKEN = "*"
MULTI_WILDCARD_TOKEN = ">"

_LITERAL_RE = re.compile(r"[a-z0-9-]+")
_UPPERCASE_RE = re.compile(r"[A-Z]")
_WHITESPACE_RE = re.compile(r"\s")
_OTHER_RE = re.compile(r"[^a-zA-Z0-9\-_\s]")

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ParseError(ValueError):
    """Raised when a subject or pattern string violates the lexical rules.

    ``errors`` holds every problem found in the same string (this error
    included), so callers can surface all violations together.
    """

    def __init__(
        self,
        raw: str,
        message: str,
        *,
        position: int | None = None,
        segment: str | None = None,
        reason: str = "",
    ) -> None:
        super().__init__(message)
        self.raw = raw
        self.message = message
        self.position = position
        self.segment = segment
        self.reason = reason
        self.errors: tuple[ParseError, ...] = (self,)


class EmptySegmentError(ParseError):
    """A segment is the empty string (double, leading or trailing dot)."""


class InvalidCharacterError(ParseError):
    """A literal segment contains characters outside ``[a-z0-9-]``."""


class MisplacedMultiWildcardError(ParseError):
    """``>`` appears somewhere other than the final segment."""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, order=True)
class Segment:
    """A single dot-delimited token."""

    kind: str  # "literal" | "single" | "multi"
    value: str

    @property
    def is_literal(self) -> bool:
        return self.kind == LITERAL

    @property
    def is_wildcard(self) -> bool:
        return self.kind != LITERAL

    def __str__(self) -> str:
        return self.value


# ---------------------------------------------------------------------------
# Tokenizing
# ---------------------------------------------------------------------------


def _literal_errors(raw: str, position: int, token: str) -> list[ParseError]:
    """Return one InvalidCharacterError per distinct violation class in *token*."""
    errors: list[ParseError] = []
    if _UPPERCASE_RE.search(token):
        errors.append(
            InvalidCharacterError(
                raw,
                f"'{raw}': segment {position} '{token}' contains uppercase letters",
                position=position,
                segment=token,
                reason="uppercase",
            )
        )
    if "_" in token:
        errors.append(
            InvalidCharacterError(
                raw,
                f"'{raw}': segment {position} '{token}' contains '_' (use '-')",
                position=position,
                segment=token,
                reason="underscore",
            )
        )
    if _WHITESPACE_RE.search(token):
        errors.append(
            InvalidCharacterError(
                raw,
                f"'{raw}': segment {position} '{token}' contains whitespace",
                position=position,
                segment=token,
                reason="whitespace",
            )
        )
    others = sorted(set(_OTHER_RE.findall(token)))
    if others:
        errors.append(
            InvalidCharacterError(
                raw,
                f"'{raw}': segment {position} '{token}' contains invalid "
                f"character(s) {''.join(others)!r}",
                position=position,
                segment=token,
                reason="character",
            )
        )
    return errors


def _scan(
    raw: str, reserved: Iterable[str]
) -> tuple[list[Segment], list[ParseError]]:
    reserved_roots = frozenset(reserved)
    tokens = raw.split(SEPARATOR)
    last = len(tokens) - 1
    segments: list[Segment] = []
    errors: list[ParseError] = []

    for position, token in enumerate(tokens):
        if token == "":
            errors.append(
                EmptySegmentError(
                    raw,
                    f"'{raw}': segment {position} is empty",
                    position=position,
                    segment=token,
                    reason="empty",
                )
            )
            continue
        if token == SINGLE_WILDCARD_TOKEN:
            segments.append(Segment(SINGLE_WILDCARD, token))
            continue
        if token == MULTI_WILDCARD_TOKEN:
            if position != last:
                errors.append(
                    MisplacedMultiWildcardError(
                        raw,
                        f"'{raw}': '>' may only appear as the last segment "
                        f"(found at segment {position})",
                        position=position,
                        segment=token,
                        reason="misplaced-multi",
                    )
                )
                continue
            segments.append(Segment(MULTI_WILDCARD, token))
            continue
        if position == 0 and token in reserved_roots:
            segments.append(Segment(LITERAL, token))
            continue
        if _LITERAL_RE.fullmatch(token):
            segments.append(Segment(LITERAL, token))
            continue
        errors.extend(_literal_errors(raw, position, token))

    return segments, errors


def diagnose(raw: str, *, reserved: Iterable[str] = ()) -> list[ParseError]:
    """Return every lexical problem in *raw*, in segment order (empty if valid)."""
    _segments, errors = _scan(raw, reserved)
    return errors


def tokenize(raw: str, *, reserved: Iterable[str] = ()) -> tuple[Segment, ...]:
    """Split *raw* on ``.`` and validate each segment.

    A root segment listed in *reserved* (e.g. ``_INBOX``) is accepted
    verbatim as a literal.  Raises the first :class:`ParseError` found;
    its ``errors`` attribute carries all of them.
    """
    segments, errors = _scan(raw, reserved)
    if errors:
        first = errors[0]
        first.errors = tuple(errors)
        raise first
    return tuple(segments)


def normalize_literal(token: str) -> str:
    """Best-effort rewrite of an invalid literal into ``[a-z0-9-]`` form.

    ``Order_ID`` becomes ``order-id``; runs of separators collapse to one hyphen.
    """
    lowered = token.strip().lower()
    hyphenated = re.sub(r"[_\s]+", "-", lowered)
    cleaned = re.sub(r"[^a-z0-9-]", "", hyphenated)
    return re.sub(r"-{2,}", "-", cleaned).strip("-")
