"""
Role/permission authorization engine.

This package has no dependency on other hrm packages (hrm.db, hrm.security,
etc.). Build a RoleStore, wrap it in a PermissionEngine, and ask it for
decisions.
"""

from .catalog import HR_PERMISSIONS, Permission, PermissionCatalog, UnknownPermissionError
from .engine import PermissionEngine
from .roles import (
    Role,
    RoleConfigError,
    RoleStore,
    ScopedPermission,
    expand_wildcards,
    load_role_definitions,
    role_from_record,
    with_expanded_wildcards,
)
from .scope import Scope, Subject, TargetReference, parse_scope, scope_satisfied

__all__ = [
    "HR_PERMISSIONS",
    "Permission",
    "PermissionCatalog",
    "UnknownPermissionError",
    "PermissionEngine",
    "Role",
    "RoleConfigError",
    "RoleStore",
    "ScopedPermission",
    "expand_wildcards",
    "load_role_definitions",
    "role_from_record",
    "with_expanded_wildcards",
    "Scope",
    "Subject",
    "TargetReference",
    "parse_scope",
    "scope_satisfied",
]
