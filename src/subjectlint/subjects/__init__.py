"""Subjects domain: tokenizer, Subject/Pattern value objects, matcher and index."""

from subjectlint.subjects.matcher import (
    PatternIndex,
    compile_index,
    covers,
    intersect,
    match,
    overlaps,
)
from subjectlint.subjects.model import Pattern, Subject
from subjectlint.subjects.tokenizer import (
    LITERAL,
    MULTI_WILDCARD,
    SINGLE_WILDCARD,
    EmptySegmentError,
    InvalidCharacterError,
    MisplacedMultiWildcardError,
    ParseError,
    Segment,
    diagnose,
    normalize_literal,
    tokenize,
)

__all__ = [
    "LITERAL",
    "MULTI_WILDCARD",
    "SINGLE_WILDCARD",
    "EmptySegmentError",
    "InvalidCharacterError",
    "MisplacedMultiWildcardError",
    "ParseError",
    "Pattern",
    "PatternIndex",
    "Segment",
    "Subject",
    "compile_index",
    "covers",
    "diagnose",
    "intersect",
    "match",
    "normalize_literal",
    "overlaps",
    "tokenize",
]
