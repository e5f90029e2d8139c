"""Tests for subjectlint.migration.planner — plan construction and phase transitions."""

from __future__ import annotations

import pytest

from subjectlint.analysis.corpus import Corpus
from subjectlint.analysis.rule_engine import analyze
from subjectlint.migration.planner import (
    COMPLETE,
    DECOMMISSION,
    DRAFT,
    DUAL_PUBLISH,
    PHASE_ORDER,
    SUBSCRIBER_CUTOVER,
    InvalidTransitionError,
    MigrationPlan,
    SchemaError,
    SubjectSchema,
    advance,
    plan,
    schemas_from_rewrites,
)
from subjectlint.subjects.model import Pattern


@pytest.fixture()
def old_schema() -> SubjectSchema:
    return SubjectSchema.from_strings(
        "v1",
        {
            "order-created": "orders.*.created",
            "order-shipped": "orders.*.shipped",
            "legacy-ping": "ping",
        },
    )


@pytest.fixture()
def new_schema() -> SubjectSchema:
    return SubjectSchema.from_strings(
        "v2",
        {
            "order-created": "orders.created.*",
            "order-shipped": "orders.*.shipped",
            "order-cancelled": "orders.cancelled.*",
        },
    )


@pytest.fixture()
def migration(old_schema: SubjectSchema, new_schema: SubjectSchema) -> MigrationPlan:
    return plan(old_schema, new_schema)


# ---------------------------------------------------------------------------
# TestPlan
# ---------------------------------------------------------------------------


class TestPlan:
    """Tests for plan()."""

    def test_starts_in_draft(self, migration: MigrationPlan) -> None:
        assert migration.current == DRAFT
        assert migration.source == "v1"
        assert migration.target == "v2"
        assert tuple(p.name for p in migration.phases) == PHASE_ORDER

    def test_schema_diff(self, migration: MigrationPlan) -> None:
        assert migration.added == ("orders.cancelled.*",)
        assert migration.retired == ("ping",)
        assert migration.phase(DUAL_PUBLISH).active_mapping == (
            ("orders.*.created", "orders.created.*"),
        )
        assert migration.phase(DRAFT).active_mapping == ()

    def test_publish_sets(self, migration: MigrationPlan) -> None:
        assert migration.phase(DRAFT).publish == ("orders.*.created", "orders.*.shipped", "ping")
        assert migration.phase(DUAL_PUBLISH).publish == (
            "orders.*.created",
            "orders.*.shipped",
            "orders.cancelled.*",
            "orders.created.*",
            "ping",
        )
        assert migration.phase(DECOMMISSION).publish == (
            "orders.*.shipped",
            "orders.cancelled.*",
            "orders.created.*",
        )
        assert migration.phase(COMPLETE).publish == migration.phase(DECOMMISSION).publish

    def test_default_cutovers_are_moving_templates(self, migration: MigrationPlan) -> None:
        assert migration.phase(SUBSCRIBER_CUTOVER).required_cutovers == (
            "ping",
            "orders.*.created",
        )
        for name in (DRAFT, DUAL_PUBLISH, DECOMMISSION, COMPLETE):
            assert migration.phase(name).required_cutovers == ()

    def test_cutovers_from_subscribers(
        self, old_schema: SubjectSchema, new_schema: SubjectSchema
    ) -> None:
        subscribers = [Pattern.parse("orders.>"), Pattern.parse("billing.>")]
        migration = plan(old_schema, new_schema, subscribers=subscribers)
        assert migration.phase(SUBSCRIBER_CUTOVER).required_cutovers == ("orders.>",)

    def test_deterministic(self, old_schema: SubjectSchema, new_schema: SubjectSchema) -> None:
        assert plan(old_schema, new_schema) == plan(old_schema, new_schema)

    def test_unknown_phase_lookup(self, migration: MigrationPlan) -> None:
        with pytest.raises(KeyError):
            migration.phase("rollback")


# ---------------------------------------------------------------------------
# TestAdvance
# ---------------------------------------------------------------------------


class TestAdvance:
    """Tests for forward-only phase transitions."""

    def test_in_sequence_reaches_complete(self, migration: MigrationPlan) -> None:
        for name in PHASE_ORDER[1:]:
            migration = advance(migration, name)
            assert migration.current_phase.name == name
        assert migration.is_complete
        assert migration.next_phase is None

    def test_skip_rejected(self, migration: MigrationPlan) -> None:
        with pytest.raises(InvalidTransitionError, match="next phase is 'dual-publish'"):
            advance(migration, SUBSCRIBER_CUTOVER)

    def test_rewind_rejected(self, migration: MigrationPlan) -> None:
        moved = advance(advance(migration, DUAL_PUBLISH), SUBSCRIBER_CUTOVER)
        with pytest.raises(InvalidTransitionError):
            advance(moved, DUAL_PUBLISH)

    def test_same_phase_rejected(self, migration: MigrationPlan) -> None:
        with pytest.raises(InvalidTransitionError):
            advance(migration, DRAFT)

    def test_terminal(self, migration: MigrationPlan) -> None:
        for name in PHASE_ORDER[1:]:
            migration = advance(migration, name)
        with pytest.raises(InvalidTransitionError, match="already complete"):
            advance(migration, COMPLETE)

    def test_unknown_phase(self, migration: MigrationPlan) -> None:
        with pytest.raises(InvalidTransitionError, match="Unknown migration phase"):
            advance(migration, "rollback")

    def test_original_plan_untouched(self, migration: MigrationPlan) -> None:
        advance(migration, DUAL_PUBLISH)
        assert migration.current == DRAFT


# ---------------------------------------------------------------------------
# TestSchemas
# ---------------------------------------------------------------------------


class TestSchemas:
    def test_empty_name(self) -> None:
        with pytest.raises(SchemaError, match="non-empty name"):
            SubjectSchema.from_strings("  ", {"a": "orders.created"})

    def test_bad_template_names_entry(self) -> None:
        with pytest.raises(SchemaError, match="entry 'broken'"):
            SubjectSchema.from_strings("v1", {"broken": "orders..created"})

    def test_from_rewrites(self, left_heavy_corpus: Corpus) -> None:
        old, new = schemas_from_rewrites(analyze(left_heavy_corpus))
        assert old.name == "current"
        assert new.name == "proposed"
        assert {k: str(v) for k, v in new.entries.items()} == {
            "orders.order-1.created": "orders.created.order-1"
        }
        migration = plan(old, new)
        assert migration.phase(DUAL_PUBLISH).active_mapping == (
            ("orders.order-1.created", "orders.created.order-1"),
        )

    def test_from_rewrites_skips_unparseable(self) -> None:
        corpus = Corpus.build(["Orders.created", "v1.orders.created"])
        old, new = schemas_from_rewrites(analyze(corpus))
        assert set(old.entries) == {"v1.orders.created"}
        assert str(new.entries["v1.orders.created"]) == "orders.created.v1"
