"""
Tests for scoped permission checks and resource registration.
"""

import pytest

from plancraft.auth import (
    AuthContext,
    add_owned_resource,
    check_permissions,
    load_auth_context,
    share_resource,
)
from plancraft.core.errors import AuthorizationError
from plancraft.storage import InMemoryUserStore


class BrokenStore(InMemoryUserStore):
    """Store whose every read fails."""

    async def get(self, user_id):
        raise ConnectionError("table unavailable")


# =============================================================================
# AuthContext
# =============================================================================


class TestAuthContext:
    def test_anonymous_can_nothing(self):
        ctx = AuthContext.anonymous()

        assert ctx.is_anonymous
        assert not ctx.can("user:read:self")
        assert not ctx.can("project:read:own", "p1")

    def test_from_record_defaults_role(self):
        ctx = AuthContext.from_record({"id": "u1"})

        assert ctx.role == "user"
        assert "project:read:own" in ctx.permissions

    def test_malformed_resource_maps_are_ignored(self):
        ctx = AuthContext.from_record({
            "id": "u1",
            "ownedResources": {"project": "not-a-list", "plan": ["pl1"]},
            "sharedResources": "garbage",
        })

        assert ctx.owned_resources == {"plan": ["pl1"]}
        assert ctx.shared_resources == {}

    def test_can_any_and_all(self):
        ctx = AuthContext.from_record({"id": "u1", "role": "pro"})

        assert ctx.can_any("billing:view", "api:access")
        assert not ctx.can_all("billing:view", "api:access")
        assert ctx.can_all("api:access", "integration:jira")

    @pytest.mark.asyncio
    async def test_load_missing_user_is_anonymous(self, store):
        ctx = await load_auth_context(store, "user_nobody")
        assert ctx.is_anonymous

    @pytest.mark.asyncio
    async def test_load_propagates_store_errors(self):
        with pytest.raises(ConnectionError):
            await load_auth_context(BrokenStore(), "user_alice")


# =============================================================================
# check_permissions
# =============================================================================


class TestCheckPermissions:
    @pytest.mark.asyncio
    async def test_unscoped_permission(self, store):
        assert await check_permissions(store, "user_alice", "project:create")
        assert not await check_permissions(store, "user_alice", "api:access")
        assert await check_permissions(store, "user_paul", "api:access")

    @pytest.mark.asyncio
    async def test_own_scope_requires_ownership(self, store):
        assert await check_permissions(store, "user_alice", "project:read:own", "p1")
        assert not await check_permissions(store, "user_alice", "project:read:own", "p2")

    @pytest.mark.asyncio
    async def test_own_scope_without_resource_is_capability_check(self, store):
        assert await check_permissions(store, "user_alice", "project:read:own")

    @pytest.mark.asyncio
    async def test_self_scope(self, store):
        assert await check_permissions(store, "user_alice", "user:update:self", "user_alice")
        assert not await check_permissions(store, "user_alice", "user:update:self", "user_paul")

    @pytest.mark.asyncio
    async def test_shared_scope_needs_share_permission(self, store):
        # Alice has p9 shared with her but the user role can't read shared projects
        assert not await check_permissions(store, "user_alice", "project:read:shared", "p9")

        await store.append_unique("user_tess", "sharedResources", "project", "p9")
        assert await check_permissions(store, "user_tess", "project:read:shared", "p9")
        assert not await check_permissions(store, "user_tess", "project:read:shared", "p1")

    @pytest.mark.asyncio
    async def test_team_scope_is_never_granted_for_a_resource(self, store):
        assert await check_permissions(store, "user_tess", "user:list:team")
        assert not await check_permissions(store, "user_tess", "user:list:team", "user_alice")

    @pytest.mark.asyncio
    async def test_admin_wildcard_skips_relationship(self, store):
        assert await check_permissions(store, "user_root", "project:read:own", "someone-elses")
        assert await check_permissions(store, "user_root", "user:update:self", "user_alice")
        assert not await check_permissions(store, "user_root", "unknown:thing")

    @pytest.mark.asyncio
    async def test_missing_user_or_id(self, store):
        assert not await check_permissions(store, "user_nobody", "project:create")
        assert not await check_permissions(store, None, "project:create")
        assert not await check_permissions(store, "", "project:create")

    @pytest.mark.asyncio
    async def test_store_failure_denies(self):
        assert not await check_permissions(BrokenStore(), "user_alice", "project:create")

    @pytest.mark.asyncio
    async def test_unknown_role_denies(self):
        store = InMemoryUserStore({"u1": {"role": "ghost"}})
        assert not await check_permissions(store, "u1", "project:create")


# =============================================================================
# Resource registration
# =============================================================================


class TestResources:
    @pytest.mark.asyncio
    async def test_add_owned_resource(self, store):
        await add_owned_resource(store, "user_paul", "project", "np1")

        record = await store.get("user_paul")
        assert record["ownedResources"] == {"project": ["np1"]}
        assert await check_permissions(store, "user_paul", "project:update:own", "np1")

    @pytest.mark.asyncio
    async def test_add_owned_resource_is_idempotent(self, store):
        await add_owned_resource(store, "user_alice", "project", "p1")
        await add_owned_resource(store, "user_alice", "project", "p1")

        record = await store.get("user_alice")
        assert record["ownedResources"]["project"] == ["p1"]

    @pytest.mark.asyncio
    async def test_share_owned_resource(self, store):
        await share_resource(store, "user_tess", "user_paul", "project", "t1")

        record = await store.get("user_paul")
        assert record["sharedResources"] == {"project": ["t1"]}

    @pytest.mark.asyncio
    async def test_share_twice_keeps_one_entry(self, store):
        await share_resource(store, "user_tess", "user_paul", "project", "t1")
        await share_resource(store, "user_tess", "user_paul", "project", "t1")

        record = await store.get("user_paul")
        assert record["sharedResources"]["project"] == ["t1"]

    @pytest.mark.asyncio
    async def test_share_unowned_resource_fails(self, store):
        with pytest.raises(AuthorizationError) as exc:
            await share_resource(store, "user_tess", "user_paul", "project", "p1")

        assert exc.value.status_code == 403
        assert "sharedResources" not in await store.get("user_paul")

    @pytest.mark.asyncio
    async def test_share_propagates_store_errors(self):
        with pytest.raises(ConnectionError):
            await share_resource(BrokenStore(), "user_tess", "user_paul", "project", "t1")
