"""Shared test fixtures for subjectlint."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from subjectlint.analysis.config import RuleConfig
from subjectlint.analysis.corpus import Corpus

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture()
def config() -> RuleConfig:
    """Default analysis configuration."""
    return RuleConfig()


@pytest.fixture()
def left_heavy_corpus() -> Corpus:
    """Identifiers at position 1, a single action at position 2."""
    return Corpus.build(
        ["orders.order-1.created", "orders.order-2.created", "orders.order-3.created"]
    )


@pytest.fixture()
def messy_corpus() -> Corpus:
    """A corpus that trips every rule at least once."""
    return Corpus.build(
        [
            "orders.order-1.created",
            "orders.order-2.created",
            "orders.order-3.created",
            "orders.shipped.order-4",
            "billing.v1.invoice.paid",
            "inventory.data.updated",
            "Shipping.label_printed",
            "a.b.c.d.e.f.g.h",
            "heartbeat",
            "orders..broken",
            "_INBOX.reply-1",
        ],
        ["orders.*.created", "*.created", "billing.>", "orders.>.created"],
        reserved_prefixes=RuleConfig().reserved_prefixes,
    )


@pytest.fixture()
def config_file(tmp_path: Path) -> Path:
    """Write a complete, valid YAML config and return its path."""
    path = tmp_path / "subjectlint.yml"
    path.write_text(
        "version: 1\n"
        "analysis:\n"
        "  max_segment_depth: 5\n"
        "  min_segment_depth: 3\n"
        "  high_cardinality_threshold: 0.5\n"
        "  ordering_tolerance: 0.2\n"
        "  ambiguous_terms: [stuff, misc]\n"
        "  action_vocabulary: [created, paid]\n"
        "  reserved_prefixes: [_SYS]\n"
        "  rules:\n"
        "    ambiguous-naming: false\n"
        "authorization:\n"
        "  isolation_groups:\n"
        "    - [tenant-a, tenant-b]\n"
    )
    return path
