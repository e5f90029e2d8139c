"""Authorization domain: per-principal permission compilation and isolation checks."""

from subjectlint.auth.projector import (
    ISOLATION_VIOLATION,
    REDUNDANT_ALLOW,
    SHADOWED_ALLOW,
    UNUSED_DENY,
    AuthorizationError,
    CompiledPermissionSet,
    PrincipalPermission,
    audit_least_privilege,
    compile_permissions,
    verify_configured_isolation,
    verify_isolation,
)

__all__ = [
    "ISOLATION_VIOLATION",
    "REDUNDANT_ALLOW",
    "SHADOWED_ALLOW",
    "UNUSED_DENY",
    "AuthorizationError",
    "CompiledPermissionSet",
    "PrincipalPermission",
    "audit_least_privilege",
    "compile_permissions",
    "verify_configured_isolation",
    "verify_isolation",
]
