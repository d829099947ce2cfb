"""
Auth context - the "who can do what" for each request.

This is the lightweight object handed to route handlers. It holds everything
needed to make an authorization decision, so `can()` never touches storage.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from plancraft.auth.roles import (
    DEFAULT_ROLE,
    WILDCARD,
    RoleCatalog,
    does_permission_match,
    get_role_catalog,
    has_permission,
)
from plancraft.storage.base import Attributes, UserStore

# Scopes that tie a permission to the caller's relationship with a resource
SCOPE_SELF = "self"
SCOPE_OWN = "own"
SCOPE_SHARED = "shared"
SCOPE_TEAM = "team"
RELATIONAL_SCOPES = frozenset({SCOPE_SELF, SCOPE_OWN, SCOPE_SHARED, SCOPE_TEAM})


def split_permission(permission: str) -> tuple[str, str, str | None]:
    """Split ``resource:action[:scope]``; missing parts come back empty/None."""
    parts = permission.split(":")
    resource = parts[0]
    action = parts[1] if len(parts) > 1 else ""
    scope = parts[2] if len(parts) > 2 else None
    return resource, action, scope


def is_wildcard(permission: str) -> bool:
    return permission == WILDCARD or permission.endswith(":" + WILDCARD)


@dataclass
class AuthContext:
    """
    Authorization context for a request.

    Usage in routes:
        async def my_route(ctx: AuthContext = Depends(require_permission("user:read:self", "user_id"))):
            if ctx.can("project:update:own", project_id):
                ...
    """

    user_id: str | None = None
    role: str = DEFAULT_ROLE

    permissions: set[str] = field(default_factory=set)

    # resource type -> resource ids
    owned_resources: dict[str, list[str]] = field(default_factory=dict)
    shared_resources: dict[str, list[str]] = field(default_factory=dict)

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None

    def owns(self, resource: str, resource_id: str) -> bool:
        return resource_id in self.owned_resources.get(resource, [])

    def has_shared(self, resource: str, resource_id: str) -> bool:
        return resource_id in self.shared_resources.get(resource, [])

    def can(self, permission: str, resource_id: str | None = None) -> bool:
        """
        Check a permission, optionally against a specific resource.

        Without a resource id this is a plain capability check. With one, a
        relational scope (self/own/shared/team) must also hold for that
        resource; only a wildcard grant such as ``project:*`` skips the
        relationship check.
        """
        if self.is_anonymous:
            return False

        resource, action, scope = split_permission(permission)

        if resource_id is None or scope not in RELATIONAL_SCOPES:
            return has_permission(self.permissions, permission)

        if any(
            is_wildcard(held) and does_permission_match(held, permission)
            for held in self.permissions
        ):
            return True

        if scope == SCOPE_SELF:
            return resource_id == self.user_id and has_permission(
                self.permissions, f"{resource}:{action}:{SCOPE_SELF}"
            )

        if scope == SCOPE_OWN:
            return self.owns(resource, resource_id) and has_permission(
                self.permissions, f"{resource}:{action}:{SCOPE_OWN}"
            )

        if scope == SCOPE_SHARED:
            return self.has_shared(resource, resource_id) and has_permission(
                self.permissions, f"{resource}:{action}:{SCOPE_SHARED}"
            )

        # TODO: team scope needs team membership on the user record; until
        # then it is never granted through a specific resource.
        return False

    def can_any(self, *permissions: str, resource_id: str | None = None) -> bool:
        return any(self.can(p, resource_id) for p in permissions)

    def can_all(self, *permissions: str, resource_id: str | None = None) -> bool:
        return all(self.can(p, resource_id) for p in permissions)

    @classmethod
    def anonymous(cls) -> AuthContext:
        """Create an anonymous context (no user, no permissions)."""
        return cls()

    @classmethod
    def from_record(
        cls,
        record: dict[str, Any],
        catalog: RoleCatalog | None = None,
    ) -> AuthContext:
        """Build a context from a stored user record."""
        catalog = catalog or get_role_catalog()
        role = record.get(Attributes.ROLE) or DEFAULT_ROLE
        return cls(
            user_id=record[Attributes.ID],
            role=role,
            permissions=catalog.resolve_permissions(role),
            owned_resources=_resource_map(record.get(Attributes.OWNED_RESOURCES)),
            shared_resources=_resource_map(record.get(Attributes.SHARED_RESOURCES)),
        )


def _resource_map(value: Any) -> dict[str, list[str]]:
    """Keep only well-formed ``{type: [ids]}`` entries."""
    if not isinstance(value, dict):
        return {}
    return {k: list(v) for k, v in value.items() if isinstance(v, list)}


# =============================================================================
# Context Resolution
# =============================================================================


async def load_auth_context(
    store: UserStore,
    user_id: str | None,
    catalog: RoleCatalog | None = None,
) -> AuthContext:
    """
    Resolve the auth context for a user id.

    Unknown or missing users get an anonymous context. Store failures
    propagate; callers that must fail closed catch them.
    """
    if not user_id:
        return AuthContext.anonymous()

    record = await store.get(user_id)
    if not record:
        return AuthContext.anonymous()

    return AuthContext.from_record({**record, Attributes.ID: user_id}, catalog)
