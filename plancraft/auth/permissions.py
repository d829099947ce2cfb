"""
Permission checks and resource registration against the user store.

Checks fail closed: anything unexpected while loading the user is logged and
treated as "no". The two mutations propagate store failures so callers can
tell "denied" apart from "could not save".
"""

from __future__ import annotations

import logging

from plancraft.auth.context import load_auth_context
from plancraft.auth.roles import RoleCatalog
from plancraft.core.errors import AuthorizationError
from plancraft.storage.base import Attributes, UserStore

logger = logging.getLogger(__name__)


async def check_permissions(
    store: UserStore,
    user_id: str | None,
    required_permission: str,
    resource_id: str | None = None,
    catalog: RoleCatalog | None = None,
) -> bool:
    """
    Does the user hold ``required_permission`` (optionally for one resource)?

    Never raises for "not found" or "not allowed"; both are just False.
    """
    if not user_id:
        return False

    try:
        ctx = await load_auth_context(store, user_id, catalog)
    except Exception:
        logger.exception("Error checking permissions for user %s", user_id)
        return False

    return ctx.can(required_permission, resource_id)


async def add_owned_resource(
    store: UserStore,
    user_id: str,
    resource_type: str,
    resource_id: str,
) -> None:
    """Record that ``user_id`` owns a resource."""
    await store.append_unique(user_id, Attributes.OWNED_RESOURCES, resource_type, resource_id)
    logger.debug("User %s now owns %s %s", user_id, resource_type, resource_id)


async def share_resource(
    store: UserStore,
    owner_id: str,
    target_user_id: str,
    resource_type: str,
    resource_id: str,
) -> None:
    """
    Share an owned resource with another user.

    Raises:
        AuthorizationError: ``owner_id`` does not own the resource
    """
    owner = await store.get(owner_id)
    owned = (owner or {}).get(Attributes.OWNED_RESOURCES) or {}

    if resource_id not in (owned.get(resource_type) or []):
        raise AuthorizationError("Not authorized to share this resource")

    await store.append_unique(target_user_id, Attributes.SHARED_RESOURCES, resource_type, resource_id)
    logger.info(
        "User %s shared %s %s with user %s",
        owner_id, resource_type, resource_id, target_user_id,
    )
