"""
Onboarding Service.

Drives a user's onboarding document: loads it from the user record (creating
a fresh one on first use), applies state-machine transitions, writes it back,
and announces completion on the event bus.
"""

from __future__ import annotations

import logging
from typing import Any

from plancraft.core.errors import InvalidStepError, UserNotFoundError, ValidationError
from plancraft.core.events import EventBus, get_event_bus, onboarding_completed
from plancraft.onboarding import (
    OnboardingState,
    StepName,
    advance_current_step,
    apply_step_data,
    initialize_onboarding,
    skip_onboarding,
    update_feature_status,
    update_step_completion,
    validate_step_data,
)
from plancraft.storage.base import Attributes, UserStore

logger = logging.getLogger(__name__)


class OnboardingService:
    """
    Onboarding operations against the user store.

    Responsibilities:
    - Lazily initialize onboarding for users who have none
    - Validate and merge step data, apply completion and step advances
    - Copy completed profile and preference answers onto the user record
    - Emit onboarding.completed when a user finishes (or skips)
    """

    def __init__(self, store: UserStore, event_bus: EventBus | None = None):
        self.store = store
        self.event_bus = event_bus or get_event_bus()

    async def _load(self, user_id: str) -> tuple[dict[str, Any], OnboardingState]:
        record = await self.store.get(user_id)
        if not record:
            raise UserNotFoundError(user_id)

        stored = record.get(Attributes.ONBOARDING)
        if stored:
            return record, OnboardingState.from_record(stored)

        return record, initialize_onboarding({
            "firstName": record.get(Attributes.FIRST_NAME) or "",
            "lastName": record.get(Attributes.LAST_NAME) or "",
        })

    async def _save(self, user_id: str, state: OnboardingState) -> None:
        await self.store.update(user_id, {Attributes.ONBOARDING: state.to_record()})

    async def get_state(self, user_id: str) -> OnboardingState:
        """Current onboarding state; a fresh one if the user has none yet."""
        _, state = await self._load(user_id)
        return state

    async def update_step(
        self,
        user_id: str,
        step: str,
        is_complete: bool | None = None,
        step_data: dict[str, Any] | None = None,
        move_to_next: bool = False,
    ) -> OnboardingState:
        """
        Apply one step update.

        Raises:
            UserNotFoundError: no such user
            InvalidStepError: unknown step
            ValidationError: step data failed validation
        """
        record, state = await self._load(user_id)
        was_complete = bool((record.get(Attributes.ONBOARDING) or {}).get("isComplete"))

        if step not in state.steps:
            raise InvalidStepError(step)

        if step_data:
            result = validate_step_data(step, step_data)
            if not result.is_valid:
                raise ValidationError(f"Invalid data for step '{step}'", result.errors)
            state = apply_step_data(state, step, step_data)

        if is_complete is not None:
            state = update_step_completion(state, step, is_complete)

        if move_to_next and state.steps[step].is_complete:
            state = advance_current_step(state)

        await self._save(user_id, state)

        if is_complete and step == StepName.PROFILE.value:
            await self._sync_profile(user_id, state)

        if is_complete and step == StepName.PREFERENCES.value:
            await self._sync_preferences(user_id, state)

        if state.is_complete and not was_complete:
            await self._announce_completion(user_id, state, skipped=False)

        return state

    async def skip(self, user_id: str) -> OnboardingState:
        """Mark the whole flow complete."""
        _, state = await self._load(user_id)

        state = skip_onboarding(state)
        await self._save(user_id, state)

        logger.info("Onboarding skipped for user %s", user_id)
        await self._announce_completion(user_id, state, skipped=True)
        return state

    async def update_feature(
        self,
        user_id: str,
        feature: str,
        introduced: bool | None = None,
        interacted: bool | None = None,
    ) -> OnboardingState:
        """Record that a feature was introduced and/or used."""
        _, state = await self._load(user_id)

        state = update_feature_status(state, feature, introduced, interacted)
        await self._save(user_id, state)
        return state

    # =========================================================================
    # Side effects
    # =========================================================================

    async def _sync_profile(self, user_id: str, state: OnboardingState) -> None:
        """Copy profile answers onto the user record. Best effort."""
        profile = state.profile
        try:
            await self.store.update(user_id, {
                Attributes.FIRST_NAME: profile.name.first_name,
                Attributes.LAST_NAME: profile.name.last_name,
                Attributes.JOB_TITLE: profile.job_title or None,
                Attributes.COMPANY: profile.company or None,
            })
        except Exception:
            logger.exception("Error syncing profile data for user %s", user_id)

    async def _sync_preferences(self, user_id: str, state: OnboardingState) -> None:
        """Fold onboarding preferences into the user's preference document. Best effort."""
        try:
            record = await self.store.get(user_id)
            if not record:
                return

            current = record.get(Attributes.PREFERENCES) or {}
            notifications = current.get("notifications") or {}
            updated = {
                **current,
                "interface": {
                    **(current.get("interface") or {}),
                    "showTips": state.preferences.show_tips,
                },
                "notifications": {
                    **notifications,
                    "email": {
                        **(notifications.get("email") or {}),
                        "marketingContent": state.preferences.enable_email_updates,
                    },
                },
            }
            await self.store.update(user_id, {Attributes.PREFERENCES: updated})
        except Exception:
            logger.exception("Error syncing preferences for user %s", user_id)

    async def _announce_completion(
        self,
        user_id: str,
        state: OnboardingState,
        skipped: bool,
    ) -> None:
        logger.info("Onboarding completed for user %s (skipped=%s)", user_id, skipped)
        await self.event_bus.publish(
            onboarding_completed(user_id, state.completed_at, skipped=skipped)
        )
