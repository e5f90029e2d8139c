"""Tests for subjectlint.analysis.rule_engine — the anti-pattern checks and analyze()."""

from __future__ import annotations

from dataclasses import replace

import pytest

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
from subjectlint.analysis.corpus import Corpus
from subjectlint.analysis.diagnostics import CRITICAL, INFO, WARNING, Diagnostic
from subjectlint.analysis.rule_engine import RULE_CHECKS, analyze


def _only(
    rule_id: str, subjects: list[str], patterns: list[str] | None = None, **overrides: object
) -> list[Diagnostic]:
    """Run a single rule against a synthetic corpus and drop parse-error diagnostics."""
    config = replace(RuleConfig(), **overrides).with_rules(rule_id)  # type: ignore[arg-type]
    corpus = Corpus.build(subjects, patterns or [], reserved_prefixes=config.reserved_prefixes)
    return [d for d in analyze(corpus, config) if d.rule_id == rule_id]


# ---------------------------------------------------------------------------
# Individual rules
# ---------------------------------------------------------------------------


class TestHighCardinalityLeft:
    def test_flagged(self) -> None:
        found = _only(
            HIGH_CARDINALITY_LEFT,
            ["orders.order-1.created", "orders.order-2.created", "orders.order-3.created"],
        )
        assert len(found) == 1
        assert found[0].severity == CRITICAL

    def test_threshold_override(self) -> None:
        found = _only(
            HIGH_CARDINALITY_LEFT,
            ["orders.order-1.created", "orders.order-2.created", "orders.order-3.created"],
            high_cardinality_threshold=1.0,
        )
        assert found == []


class TestInconsistentOrdering:
    SUBJECTS = ["orders.created.order-1", "orders.created.order-2", "orders.order-3.shipped"]

    def test_dissenter_flagged_with_rewrite(self) -> None:
        found = _only(INCONSISTENT_ORDERING, self.SUBJECTS)
        assert len(found) == 1
        assert found[0].severity == WARNING
        assert found[0].subjects == ("orders.order-3.shipped",)
        assert found[0].suggested_rewrite == "orders.shipped.order-3"

    def test_within_tolerance(self) -> None:
        assert _only(INCONSISTENT_ORDERING, self.SUBJECTS, ordering_tolerance=0.5) == []

    def test_different_depths_not_compared(self) -> None:
        found = _only(INCONSISTENT_ORDERING, ["orders.created", "orders.eu.created"])
        assert found == []

    def test_subjects_without_actions_ignored(self) -> None:
        found = _only(INCONSISTENT_ORDERING, ["orders.eu.order-1", "orders.created.order-2"])
        assert found == []


class TestOverSegmentation:
    def test_over_limit(self) -> None:
        found = _only(OVER_SEGMENTATION, ["a.b.c.d.e.f.g", "a.b.c.d.e.f"])
        assert [d.subjects for d in found] == [("a.b.c.d.e.f.g",)]
        assert "7 segments" in found[0].evidence

    def test_custom_limit(self) -> None:
        assert len(_only(OVER_SEGMENTATION, ["a.b.c"], max_segment_depth=2)) == 1


class TestUnderSegmentation:
    def test_deeper_sibling_with_same_volume(self) -> None:
        found = _only(UNDER_SEGMENTATION, ["heartbeat", "orders.created"])
        assert len(found) == 1
        assert found[0].severity == INFO
        assert found[0].subjects == ("heartbeat",)
        assert "sibling domain 'orders'" in found[0].evidence

    def test_no_action_filter_possible(self) -> None:
        found = _only(UNDER_SEGMENTATION, ["heartbeat"])
        assert len(found) == 1
        assert "'heartbeat.>'" in found[0].evidence

    def test_configured_min_depth(self) -> None:
        found = _only(
            UNDER_SEGMENTATION, ["orders.created", "billing.eu.paid"], min_segment_depth=3
        )
        # orders carries an action, but billing is deeper with equal volume.
        assert [d.subjects for d in found] == [("orders.created",)]

    def test_deep_enough(self) -> None:
        assert _only(UNDER_SEGMENTATION, ["orders.created", "billing.paid"]) == []


class TestAmbiguousNaming:
    def test_subject_and_pattern(self) -> None:
        found = _only(AMBIGUOUS_NAMING, ["orders.data.created"], ["orders.process.>"])
        assert {d.subjects for d in found} == {("orders.data.created",), ("orders.process.>",)}

    def test_custom_terms(self) -> None:
        found = _only(AMBIGUOUS_NAMING, ["orders.misc.created"], ambiguous_terms={"misc"})
        assert len(found) == 1


class TestVersionMisplacement:
    @pytest.mark.parametrize(
        ("subject", "rewrite"),
        [("v1.orders.created", "orders.created.v1"), ("orders.v2.created", "orders.created.v2")],
    )
    def test_early_version(self, subject: str, rewrite: str) -> None:
        found = _only(VERSION_MISPLACEMENT, [subject])
        assert len(found) == 1
        assert found[0].suggested_rewrite == rewrite

    def test_late_version_ok(self) -> None:
        assert _only(VERSION_MISPLACEMENT, ["orders.created.v3"]) == []

    def test_version_like_words_ignored(self) -> None:
        assert _only(VERSION_MISPLACEMENT, ["orders.vip.created"]) == []


class TestCasingSeparatorDrift:
    def test_one_diagnostic_per_string(self) -> None:
        found = _only(CASING_SEPARATOR_DRIFT, ["Orders.created", "orders.Order_ID.created"])
        by_subject = {d.subjects[0]: d for d in found}
        assert set(by_subject) == {"Orders.created", "orders.Order_ID.created"}
        assert by_subject["Orders.created"].suggested_rewrite == "orders.created"
        assert by_subject["orders.Order_ID.created"].suggested_rewrite == "orders.order-id.created"
        assert "underscore" in by_subject["orders.Order_ID.created"].evidence
        assert all(d.severity == CRITICAL for d in found)

    def test_structural_errors_not_drift(self) -> None:
        assert _only(CASING_SEPARATOR_DRIFT, ["orders..created", "orders.>.x"]) == []


class TestUnplannedWildcardRisk:
    SUBJECTS = [f"orders.created.order-{i}" for i in range(10)]

    def test_wildcard_over_identifiers(self) -> None:
        found = _only(UNPLANNED_WILDCARD_RISK, self.SUBJECTS, ["orders.created.*"])
        assert [d.subjects for d in found] == [("orders.created.*",)]

    def test_wildcard_over_low_cardinality(self) -> None:
        assert _only(UNPLANNED_WILDCARD_RISK, self.SUBJECTS, ["orders.*.order-1"]) == []

    def test_multi_wildcard_not_flagged(self) -> None:
        assert _only(UNPLANNED_WILDCARD_RISK, self.SUBJECTS, ["orders.created.>"]) == []

    def test_wildcard_root_uses_corpus_profile(self) -> None:
        assert _only(UNPLANNED_WILDCARD_RISK, self.SUBJECTS, ["*.created.order-1"]) == []


# ---------------------------------------------------------------------------
# analyze()
# ---------------------------------------------------------------------------


class TestAnalyze:
    """Tests for the combined evaluation."""

    def test_every_rule_registered(self) -> None:
        assert set(RULE_CHECKS) == set(RULE_IDS)

    def test_parse_errors_always_reported(self) -> None:
        corpus = Corpus.build(["orders..created", "orders.created"], ["orders.>.x"])
        diagnostics = analyze(corpus, RuleConfig().with_rules())
        assert [d.rule_id for d in diagnostics] == [PARSE_ERROR, PARSE_ERROR]
        assert {d.subjects[0] for d in diagnostics} == {"orders..created", "orders.>.x"}
        assert all(d.severity == CRITICAL for d in diagnostics)

    def test_reserved_prefixes_skipped(self) -> None:
        corpus = Corpus.build(["_INBOX.data"], reserved_prefixes={"_INBOX"})
        assert analyze(corpus) == []
        assert len(corpus.reserved) == 1

    def test_every_rule_fires_on_messy_corpus(self, messy_corpus: Corpus) -> None:
        fired = {d.rule_id for d in analyze(messy_corpus)}
        assert fired >= {
            PARSE_ERROR,
            HIGH_CARDINALITY_LEFT,
            INCONSISTENT_ORDERING,
            OVER_SEGMENTATION,
            UNDER_SEGMENTATION,
            AMBIGUOUS_NAMING,
            VERSION_MISPLACEMENT,
            CASING_SEPARATOR_DRIFT,
        }

    @pytest.mark.parametrize("rule_id", RULE_IDS)
    def test_subset_of_rules_gives_subset_of_diagnostics(
        self, messy_corpus: Corpus, rule_id: str
    ) -> None:
        full = set(analyze(messy_corpus))
        partial = analyze(messy_corpus, RuleConfig().with_rules(rule_id))
        assert set(partial) <= full

    def test_parallel_matches_sequential(self, messy_corpus: Corpus) -> None:
        assert analyze(messy_corpus, max_workers=4) == analyze(messy_corpus)

    def test_output_sorted(self, messy_corpus: Corpus) -> None:
        diagnostics = analyze(messy_corpus)
        assert diagnostics == sorted(diagnostics, key=Diagnostic.sort_key)

    def test_unknown_rule_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown rule"):
            RuleConfig().with_rules("no-such-rule")
