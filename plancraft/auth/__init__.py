"""
Authorization: roles, permission matching, scoped checks.

Design principles:
1. Roles are data; permissions resolve up a parent chain
2. Checks fail closed and never raise for "no"
3. One FastAPI dependency for route-level checks
"""

from plancraft.auth.roles import (
    BUILTIN_ROLES,
    RoleCatalog,
    RoleDefinition,
    RoleLimits,
    does_permission_match,
    get_role_catalog,
    get_role_limits,
    has_permission,
    resolve_role_permissions,
    set_role_catalog,
)
from plancraft.auth.context import AuthContext, load_auth_context
from plancraft.auth.permissions import (
    add_owned_resource,
    check_permissions,
    share_resource,
)
from plancraft.auth.policies import require_permission

__all__ = [
    # Roles
    "BUILTIN_ROLES",
    "RoleCatalog",
    "RoleDefinition",
    "RoleLimits",
    "does_permission_match",
    "get_role_catalog",
    "get_role_limits",
    "has_permission",
    "resolve_role_permissions",
    "set_role_catalog",
    # Context
    "AuthContext",
    "load_auth_context",
    # Store-backed operations
    "add_owned_resource",
    "check_permissions",
    "share_resource",
    # Routes
    "require_permission",
]
