"""
Roles, permissions and limits.

This defines WHAT each role may do. Roles are plain records that name at
most one parent; a role's effective permissions are its own plus everything
up its parent chain.

Permission strings look like ``resource:action[:scope]``:

    project:read:own     read projects the user owns
    project:*            anything on projects
    *                    anything at all
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

WILDCARD = "*"
UNLIMITED = -1

DEFAULT_ROLE = "user"


class RoleLimits(BaseModel):
    """Usage limits attached to a role. -1 means unlimited."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    max_projects: int = 5
    max_collaborators_per_project: int = 1
    max_storage_gb: int = 1


class RoleDefinition(BaseModel):
    """A named bundle of permissions and limits."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    description: str = ""
    permissions: frozenset[str] = Field(default_factory=frozenset)
    inherits_from: str | None = None
    limits: RoleLimits = Field(default_factory=RoleLimits)


# =============================================================================
# Built-in Roles
# =============================================================================


BUILTIN_ROLES: tuple[RoleDefinition, ...] = (
    RoleDefinition(
        name="user",
        description="Standard user with basic permissions",
        permissions=frozenset({
            "user:read:self",
            "user:update:self",
            "preferences:read:self",
            "preferences:update:self",
            "settings:read:self",
            "settings:update:self",
            "project:create",
            "project:read:own",
            "project:update:own",
            "project:delete:own",
            "plan:create:own",
            "plan:read:own",
            "plan:update:own",
            "plan:delete:own",
            "conversation:create:own",
            "conversation:read:own",
            "conversation:update:own",
        }),
        limits=RoleLimits(max_projects=5, max_collaborators_per_project=1, max_storage_gb=1),
    ),
    RoleDefinition(
        name="pro",
        description="Pro user with enhanced capabilities",
        inherits_from="user",
        permissions=frozenset({
            "api:access",
            "integration:github",
            "integration:jira",
            "integration:trello",
            "feature:advancedPlanning",
            "feature:codeGeneration",
        }),
        limits=RoleLimits(max_projects=20, max_collaborators_per_project=5, max_storage_gb=10),
    ),
    RoleDefinition(
        name="team",
        description="Team user with collaboration capabilities",
        inherits_from="pro",
        permissions=frozenset({
            "user:list:team",
            "project:share",
            "project:read:shared",
            "project:update:shared",
            "plan:read:shared",
            "plan:update:shared",
            "conversation:read:shared",
        }),
        limits=RoleLimits(max_projects=50, max_collaborators_per_project=10, max_storage_gb=50),
    ),
    RoleDefinition(
        name="team_admin",
        description="Team administrator with management capabilities",
        inherits_from="team",
        permissions=frozenset({
            "team:manage",
            "user:invite",
            "user:disable:team",
            "user:read:team",
            "billing:view",
            "billing:update",
        }),
        limits=RoleLimits(max_projects=100, max_collaborators_per_project=20, max_storage_gb=100),
    ),
    RoleDefinition(
        name="admin",
        description="System administrator with full access",
        permissions=frozenset({
            "admin:full",
            "user:*",
            "project:*",
            "plan:*",
            "conversation:*",
            "settings:*",
            "preferences:*",
            "billing:*",
            "team:*",
            "integration:*",
            "feature:*",
            "api:*",
            "logs:*",
            "system:*",
        }),
        limits=RoleLimits(
            max_projects=UNLIMITED,
            max_collaborators_per_project=UNLIMITED,
            max_storage_gb=UNLIMITED,
        ),
    ),
)


# =============================================================================
# Catalog
# =============================================================================


class RoleCatalog:
    """
    Lookup table of role definitions.

    The built-in catalog covers every deployment today; a YAML catalog can
    replace it where a stack needs different tiers.
    """

    def __init__(self, roles: Iterable[RoleDefinition]):
        self._roles: dict[str, RoleDefinition] = {role.name: role for role in roles}

    @classmethod
    def from_yaml(cls, path: Path | str) -> RoleCatalog:
        """
        Load a catalog from YAML.

        Expected shape:

            roles:
              user:
                description: Standard user
                permissions: [user:read:self, project:read:own]
                limits: {max_projects: 5}
              pro:
                inherits_from: user
                permissions: [api:access]
        """
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        roles = [
            RoleDefinition.model_validate({**(definition or {}), "name": name})
            for name, definition in (data.get("roles") or {}).items()
        ]
        return cls(roles)

    def get(self, role_name: str) -> RoleDefinition | None:
        return self._roles.get(role_name)

    def names(self) -> list[str]:
        return list(self._roles)

    def resolve_permissions(self, role_name: str) -> set[str]:
        """
        All permissions for a role, including every ancestor's.

        Unknown roles resolve to an empty set. The walk stops at an unknown
        parent or at a role already visited, so a bad catalog can never loop.
        """
        permissions: set[str] = set()
        visited: set[str] = set()

        current: str | None = role_name
        while current and current not in visited:
            role = self._roles.get(current)
            if role is None:
                break
            visited.add(current)
            permissions.update(role.permissions)
            current = role.inherits_from

        return permissions

    def get_limits(self, role_name: str) -> RoleLimits:
        """Limits for a role; unknown roles get the default role's limits."""
        role = self._roles.get(role_name) or self._roles.get(DEFAULT_ROLE)
        if role is None:
            return RoleLimits()
        return role.limits


_default_catalog = RoleCatalog(BUILTIN_ROLES)


def get_role_catalog() -> RoleCatalog:
    """The catalog used when callers don't pass one."""
    return _default_catalog


def set_role_catalog(catalog: RoleCatalog | None) -> None:
    """Replace the default catalog (None restores the built-in roles)."""
    global _default_catalog
    _default_catalog = catalog or RoleCatalog(BUILTIN_ROLES)


# =============================================================================
# Matching
# =============================================================================


def resolve_role_permissions(role_name: str, catalog: RoleCatalog | None = None) -> set[str]:
    """Effective permission set for a role name."""
    return (catalog or _default_catalog).resolve_permissions(role_name)


def get_role_limits(role_name: str, catalog: RoleCatalog | None = None) -> RoleLimits:
    """Usage limits for a role name."""
    return (catalog or _default_catalog).get_limits(role_name)


def resource_of(permission: str) -> str:
    """The resource segment: everything before the first colon."""
    return permission.split(":", 1)[0]


def does_permission_match(held: str, required: str) -> bool:
    """
    Does a held permission satisfy a required one?

    ``resource:*`` compares only the resource segment, so ``project:*``
    covers ``project:read:own`` and ``project:share`` alike.
    """
    if held == required:
        return True

    if held == WILDCARD:
        return True

    if held.endswith(":" + WILDCARD):
        return resource_of(held) == resource_of(required)

    return False


def has_permission(held: Iterable[str], required: str) -> bool:
    """True if any held permission matches."""
    return any(does_permission_match(perm, required) for perm in held)
