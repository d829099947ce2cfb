"""
Tests for the onboarding service: persistence, profile sync, completion events.
"""

import pytest

from plancraft.core.errors import InvalidFeatureError, InvalidStepError, UserNotFoundError, ValidationError
from plancraft.services import OnboardingService
from plancraft.storage import InMemoryUserStore


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def service(store, event_bus):
    return OnboardingService(store, event_bus)


@pytest.fixture
def completions(event_bus):
    """Collects onboarding.completed events."""
    received = []

    async def handler(event):
        received.append(event)

    event_bus.subscribe("onboarding.*", handler)
    return received


class FlakyWriteStore(InMemoryUserStore):
    """Accepts the onboarding write, fails any other update."""

    async def update(self, user_id, updates):
        if "onboarding" not in updates:
            raise ConnectionError("write throttled")
        return await super().update(user_id, updates)


# =============================================================================
# Loading
# =============================================================================


class TestGetState:
    @pytest.mark.asyncio
    async def test_lazy_init_uses_record_name(self, service, store):
        state = await service.get_state("user_alice")

        assert state.profile.name.first_name == "Alice"
        assert state.profile.name.last_name == "Ng"
        assert state.progress == 0
        # Reading alone doesn't persist anything
        assert "onboarding" not in await store.get("user_alice")

    @pytest.mark.asyncio
    async def test_unknown_user(self, service):
        with pytest.raises(UserNotFoundError) as exc:
            await service.get_state("user_nobody")
        assert exc.value.status_code == 404

    @pytest.mark.asyncio
    async def test_reads_stored_state(self, service, store):
        await service.update_step("user_paul", "profile", is_complete=True)

        state = await service.get_state("user_paul")
        assert state.steps["profile"].is_complete is True
        assert state.progress == 33


# =============================================================================
# Step updates
# =============================================================================


class TestUpdateStep:
    @pytest.mark.asyncio
    async def test_persists_camel_case(self, service, store):
        await service.update_step("user_alice", "preferences", is_complete=True)

        record = await store.get("user_alice")
        assert record["onboarding"]["steps"]["preferences"]["isComplete"] is True
        assert record["onboarding"]["progress"] == 33
        assert "updatedAt" in record

    @pytest.mark.asyncio
    async def test_invalid_step(self, service):
        with pytest.raises(InvalidStepError):
            await service.update_step("user_alice", "bogus", is_complete=True)

    @pytest.mark.asyncio
    async def test_invalid_data_is_rejected_with_errors(self, service, store):
        with pytest.raises(ValidationError) as exc:
            await service.update_step(
                "user_alice", "profile",
                is_complete=True,
                step_data={"name": {"firstName": "", "lastName": ""}, "teamSize": "many"},
            )

        assert exc.value.errors == [
            "First name is required",
            "Last name is required",
            "Team size must be a number",
        ]
        assert "onboarding" not in await store.get("user_alice")

    @pytest.mark.asyncio
    async def test_move_to_next(self, service):
        state = await service.update_step("user_alice", "profile", is_complete=True, move_to_next=True)
        assert state.current_step == "preferences"

    @pytest.mark.asyncio
    async def test_move_to_next_ignored_for_incomplete_step(self, service):
        state = await service.update_step("user_alice", "profile", move_to_next=True)
        assert state.current_step == "profile"

    @pytest.mark.asyncio
    async def test_profile_sync(self, service, store):
        await service.update_step(
            "user_alice", "profile",
            is_complete=True,
            step_data={
                "name": {"firstName": "Alicia", "lastName": "Ng"},
                "jobTitle": "Engineer",
                "company": "Acme",
            },
        )

        record = await store.get("user_alice")
        assert record["firstName"] == "Alicia"
        assert record["jobTitle"] == "Engineer"
        assert record["company"] == "Acme"
        assert record["onboarding"]["profile"]["jobTitle"] == "Engineer"

    @pytest.mark.asyncio
    async def test_preferences_sync_keeps_other_preferences(self, service, store):
        await store.update("user_alice", {
            "preferences": {"theme": "dark", "notifications": {"email": {"weeklyDigest": True}}},
        })

        await service.update_step(
            "user_alice", "preferences",
            is_complete=True,
            step_data={"showTips": False, "enableEmailUpdates": False},
        )

        prefs = (await store.get("user_alice"))["preferences"]
        assert prefs["theme"] == "dark"
        assert prefs["interface"]["showTips"] is False
        assert prefs["notifications"]["email"] == {"weeklyDigest": True, "marketingContent": False}

    @pytest.mark.asyncio
    async def test_sync_failure_is_not_fatal(self, event_bus):
        store = FlakyWriteStore({"u1": {"firstName": "A", "lastName": "B"}})
        service = OnboardingService(store, event_bus)

        state = await service.update_step("u1", "profile", is_complete=True)

        assert state.steps["profile"].is_complete is True
        assert (await store.get("u1"))["onboarding"]["steps"]["profile"]["isComplete"] is True

    @pytest.mark.asyncio
    async def test_other_step_data_is_stored(self, service, store):
        await service.update_step("user_alice", "projectSetup", step_data={"projectName": "Atlas"})

        record = await store.get("user_alice")
        assert record["onboarding"]["stepData"] == {"projectSetup": {"projectName": "Atlas"}}


# =============================================================================
# Completion events
# =============================================================================


class TestCompletion:
    @pytest.mark.asyncio
    async def test_completion_announced_once(self, service, completions):
        for step in ("profile", "preferences", "projectSetup"):
            await service.update_step("user_alice", step, is_complete=True)

        assert len(completions) == 1
        assert completions[0].event_type == "onboarding.completed"
        assert completions[0].user_id == "user_alice"
        assert completions[0].payload["skipped"] is False

        await service.update_step("user_alice", "integrations", is_complete=True)
        assert len(completions) == 1

    @pytest.mark.asyncio
    async def test_skip(self, service, store, completions):
        state = await service.skip("user_paul")

        assert state.is_complete is True
        assert state.progress == 100
        assert (await store.get("user_paul"))["onboarding"]["isComplete"] is True
        assert len(completions) == 1
        assert completions[0].payload == {"completed_at": state.completed_at, "skipped": True}

    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_break_update(self, service, event_bus):
        async def boom(event):
            raise RuntimeError("mailer down")

        event_bus.subscribe("onboarding.completed", boom)

        state = await service.skip("user_alice")
        assert state.is_complete is True
        assert len(event_bus.get_history(event_type="onboarding.completed")) == 1


# =============================================================================
# Features
# =============================================================================


class TestUpdateFeature:
    @pytest.mark.asyncio
    async def test_update_feature(self, service, store):
        await service.update_feature("user_alice", "claudeAssistant", introduced=True)

        record = await store.get("user_alice")
        assert record["onboarding"]["features"]["claudeAssistant"] == {
            "introduced": True, "interacted": False,
        }

    @pytest.mark.asyncio
    async def test_invalid_feature(self, service):
        with pytest.raises(InvalidFeatureError):
            await service.update_feature("user_alice", "teleportation", introduced=True)
