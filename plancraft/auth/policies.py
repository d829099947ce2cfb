"""
Policies - the route-level interface to authorization.

    @app.get("/users/{user_id}/onboarding")
    async def get_onboarding(
        user_id: str,
        ctx: AuthContext = Depends(require_permission("user:read:self", "user_id")),
    ):
        ...

- `require_permission()` returns a FastAPI dependency that resolves to AuthContext
- It extracts the caller from the bearer token and the resource id from the path
- No identity raises 401, denial raises 403
"""

from __future__ import annotations

import logging
from typing import Callable

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from plancraft.auth.context import AuthContext, load_auth_context
from plancraft.config import get_settings

logger = logging.getLogger(__name__)


# Optional bearer (doesn't fail if no token)
optional_bearer = HTTPBearer(auto_error=False)


def decode_user_id(token: str) -> str | None:
    """
    Map a bearer token to a user id.

    Handles:
    - JWTs signed with the configured secret (user id in ``sub``)
    - Dev tokens like "user_123" or "dev_abc", outside production only
    """
    settings = get_settings()

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        return payload.get("sub")
    except jwt.PyJWTError:
        pass  # Fall through to dev mode

    if not settings.is_production and token.startswith(("user_", "dev_")):
        return token

    return None


async def get_user_from_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_bearer),
) -> str | None:
    if not credentials:
        return None
    return decode_user_id(credentials.credentials)


def require_permission(permission: str, resource_param: str | None = None) -> Callable:
    """
    Require a permission to access a route.

    Args:
        permission: Permission string, e.g. "project:update:own"
        resource_param: Path parameter holding the resource id the scope
            applies to (e.g. "user_id" for self-scoped permissions)

    Returns:
        FastAPI dependency that resolves to AuthContext
    """

    async def dependency(
        request: Request,
        user_id: str | None = Depends(get_user_from_token),
    ) -> AuthContext:
        if not user_id:
            raise HTTPException(status_code=401, detail="Authentication required")

        resource_id = request.path_params.get(resource_param) if resource_param else None
        store = request.app.state.store

        try:
            ctx = await load_auth_context(store, user_id, request.app.state.roles)
        except Exception:
            logger.exception("Error loading auth context for user %s", user_id)
            ctx = AuthContext.anonymous()

        if not ctx.can(permission, resource_id):
            raise HTTPException(status_code=403, detail=f"Permission denied: {permission}")

        return ctx

    return dependency
