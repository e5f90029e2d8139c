"""Subjectlint: validation, matching and analysis of dot-segmented subject hierarchies."""

__version__ = "0.4.0"
