"""Migration domain: forward-only subject schema migration plans."""

from subjectlint.migration.planner import (
    COMPLETE,
    DECOMMISSION,
    DRAFT,
    DUAL_PUBLISH,
    PHASE_ORDER,
    SUBSCRIBER_CUTOVER,
    InvalidTransitionError,
    MigrationPlan,
    Phase,
    SchemaError,
    SubjectSchema,
    advance,
    plan,
    schemas_from_rewrites,
)

__all__ = [
    "COMPLETE",
    "DECOMMISSION",
    "DRAFT",
    "DUAL_PUBLISH",
    "PHASE_ORDER",
    "SUBSCRIBER_CUTOVER",
    "InvalidTransitionError",
    "MigrationPlan",
    "Phase",
    "SchemaError",
    "SubjectSchema",
    "advance",
    "plan",
    "schemas_from_rewrites",
]
